"""Query classification: decide whether a message is about a portfolio, an asset, or neither."""
from __future__ import annotations

import logging
import re
from typing import Any, Callable, Dict, List, Optional, Pattern, Tuple

from .assets import find_asset

logger = logging.getLogger("financebot.query_router")

INTENT_PORTFOLIO = "portfolio"
INTENT_NON_FINANCIAL = "non_financial"
INTENT_FINANCIAL_GENERAL = "financial_general"
INTENT_GENERAL = "general"
INTENT_WELCOME = "welcome"
INTENT_CLARIFICATION = "clarification"

COMPLEXITY_LOW = "low"
COMPLEXITY_MEDIUM = "medium"
COMPLEXITY_HIGH = "high"

STRATEGY_PORTFOLIO = "portfolio"
STRATEGY_REMOTE = "remote_analysis"
STRATEGY_STATIC = "static"

PORTFOLIO_REFERENCE = re.compile(r"portfolio|my holdings", re.IGNORECASE)

NON_FINANCIAL_PATTERNS: List[Tuple[str, Pattern[str]]] = [
    ("off_topic", re.compile(
        r"\b(weather|food|movies?|music|sports?|travel|health|medicine|politics|religion)\b", re.IGNORECASE)),
    ("small_talk", re.compile(
        r"\b(how are you|hello|hi|hey|good morning|good evening|thank you|thanks)\b", re.IGNORECASE)),
    ("leisure", re.compile(
        r"\b(recipes?|cooking|how (?:do i|to) cook|pizza|pasta|games?|entertainment|celebrity|weather forecast)\b", re.IGNORECASE)),
    ("everyday", re.compile(
        r"\b(fix my car|car repair|programming|coding|workout|exercise routine|relationship advice|dating)\b",
        re.IGNORECASE)),
]

FINANCIAL_VOCABULARY = re.compile(
    r"\b(stocks?|crypto\w*|forex|invest\w*|trading|markets?|econom\w*|inflation|interest rates?"
    r"|dividends?|etfs?|bonds?|sectors?|diversif\w*|risk management|recession|earnings)\b",
    re.IGNORECASE,
)
CHART_REQUEST = re.compile(r"chart|graph|visual|trend|price movement", re.IGNORECASE)
HIGH_COMPLEXITY = re.compile(r"deep|in-depth|comprehensive|detailed|technical|thorough", re.IGNORECASE)
LOW_COMPLEXITY = re.compile(r"\b(simple|quick|brief|overview|summary|tl;?dr)\b", re.IGNORECASE)


class QueryIntent:
    def __init__(
        self,
        type: str = INTENT_GENERAL,
        topic: Optional[str] = None,
        complexity: str = COMPLEXITY_MEDIUM,
        needs_chart: bool = False,
        rule: Optional[str] = None,
    ):
        self.type = type
        self.topic = topic
        self.complexity = complexity
        self.needs_chart = needs_chart
        self.rule = rule

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "topic": self.topic,
            "complexity": self.complexity,
            "needsChart": self.needs_chart,
        }

    def __repr__(self) -> str:
        return (
            f"QueryIntent(type={self.type!r}, topic={self.topic!r}, "
            f"complexity={self.complexity!r}, needs_chart={self.needs_chart!r}, rule={self.rule!r})"
        )


def _portfolio_rule(message: str, has_portfolio: bool) -> Optional[QueryIntent]:
    if has_portfolio and PORTFOLIO_REFERENCE.search(message):
        return QueryIntent(INTENT_PORTFOLIO, needs_chart=True, rule="portfolio")
    return None


def _non_financial_rule(message: str, has_portfolio: bool) -> Optional[QueryIntent]:
    for name, pattern in NON_FINANCIAL_PATTERNS:
        if pattern.search(message):
            return QueryIntent(INTENT_NON_FINANCIAL, rule=f"non_financial:{name}")
    return None


# Rules that short-circuit classification, evaluated strictly in this order.
TERMINAL_RULES: List[Tuple[str, Callable[[str, bool], Optional[QueryIntent]]]] = [
    ("portfolio", _portfolio_rule),
    ("non_financial", _non_financial_rule),
]


def detect_topic(message: str) -> Optional[str]:
    """First lexicon entry whose pattern matches wins, even if a later alias also matches."""
    entry = find_asset(message)
    return entry.name if entry else None


def detect_complexity(message: str) -> str:
    if HIGH_COMPLEXITY.search(message):
        return COMPLEXITY_HIGH
    if LOW_COMPLEXITY.search(message):
        return COMPLEXITY_LOW
    return COMPLEXITY_MEDIUM


def analyze_query_intent(message: str, has_portfolio: bool = False) -> QueryIntent:
    """
    Classify a chat message.

    Args:
        message: Sanitised user message
        has_portfolio: Whether the caller's session holds an uploaded portfolio

    Returns:
        QueryIntent. Total over every string input; never raises.
    """
    message = message or ""

    for _, rule in TERMINAL_RULES:
        intent = rule(message, has_portfolio)
        if intent is not None:
            return intent

    intent = QueryIntent(rule="default")
    intent.topic = detect_topic(message)
    if intent.topic:
        intent.rule = "asset"
        intent.needs_chart = True
    elif FINANCIAL_VOCABULARY.search(message):
        intent.type = INTENT_FINANCIAL_GENERAL
        intent.rule = "financial_vocabulary"

    if CHART_REQUEST.search(message):
        intent.needs_chart = True

    intent.complexity = detect_complexity(message)

    if intent.type == INTENT_GENERAL and not intent.topic:
        if has_portfolio or PORTFOLIO_REFERENCE.search(message):
            intent.type = INTENT_CLARIFICATION
        else:
            intent.type = INTENT_WELCOME

    return intent


def strategy_for(intent: QueryIntent) -> str:
    if intent.type == INTENT_PORTFOLIO:
        return STRATEGY_PORTFOLIO
    if intent.topic:
        return STRATEGY_REMOTE
    return STRATEGY_STATIC


def route_query(message: str, has_portfolio: bool = False) -> Tuple[str, QueryIntent]:
    """
    Route query to the portfolio analyzer, the remote analysis gateway or static copy.

    Returns:
        Tuple of (strategy, intent)
    """
    intent = analyze_query_intent(message, has_portfolio)
    strategy = strategy_for(intent)
    logger.info(
        "router.decision strategy=%s type=%s topic=%s complexity=%s chart=%s rule=%s",
        strategy,
        intent.type,
        intent.topic,
        intent.complexity,
        intent.needs_chart,
        intent.rule,
    )
    return strategy, intent
