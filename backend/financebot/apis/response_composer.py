"""Turn classifier output plus analysis text / portfolio math into structured chat replies."""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional, Pattern, Tuple

from . import settings
from .portfolio_analyzer import PortfolioAnalysis
from .query_router import (
    INTENT_CLARIFICATION,
    INTENT_FINANCIAL_GENERAL,
    INTENT_NON_FINANCIAL,
    INTENT_PORTFOLIO,
    PORTFOLIO_REFERENCE,
    QueryIntent,
)

logger = logging.getLogger("financebot.response_composer")

SECTION_TECHNICAL = "technical"
SECTION_RISK = "risk"
SECTION_ACTIONABLE = "actionable"
SECTION_GENERAL = "general"

REPLY_GUARDRAIL = "guardrail"
REPLY_ANALYSIS = "analysis"
REPLY_PORTFOLIO = INTENT_PORTFOLIO

OVERVIEW_TITLE = "Overview"
CONCENTRATION_THRESHOLD = 30.0

_PRICE = r"\$\s?(?P<value>\d+(?:,\d{3})*(?:\.\d+)?)"

MARKDOWN_HEADING = re.compile(r"^#{1,6}\s+(?P<title>.+?)\s*#*$")
BOLD_HEADING = re.compile(r"^\*\*(?P<title>[^*]{2,60})\*\*\s*:?$")
KEYWORD_HEADING = re.compile(
    r"^(?P<title>technical analysis|risk factors?|risks?|key levels(?: to watch)?|market drivers"
    r"|what'?s driving the price|entry\s*/\s*exit|entry and exit(?: thoughts)?|outlook|summary"
    r"|recommendations?|price action|fundamentals|bottom line|overview)\s*:?$",
    re.IGNORECASE,
)
BULLET_PREFIX = re.compile(r"^(?:[-*•]|\d+[.)])\s+")
ASCII_ART = re.compile(r"^[\s─-╿]+$")
SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")

SECTION_TYPE_RULES: List[Tuple[str, Pattern[str]]] = [
    (SECTION_RISK, re.compile(r"risk|warning|caution|downside", re.IGNORECASE)),
    (SECTION_ACTIONABLE, re.compile(r"entry|exit|strateg|recommend|action|trade|thoughts", re.IGNORECASE)),
    (SECTION_TECHNICAL, re.compile(r"technical|level|support|resistance|chart|price action|indicator", re.IGNORECASE)),
]

ACTION_PATTERNS: List[Tuple[str, Pattern[str], str]] = [
    ("buy", re.compile(
        r"\b(?:buy(?:ing)?|accumulat\w*|entry|enter|add(?:ing)? on dips)\b[^$\n]{0,40}?" + _PRICE,
        re.IGNORECASE), "Consider buying near ${value}"),
    ("sell", re.compile(
        r"\b(?:sell(?:ing)?|take profits?|exit|trim)\b[^$\n]{0,40}?" + _PRICE,
        re.IGNORECASE), "Take profit near ${value}"),
    ("stop_loss", re.compile(
        r"\bstop[- ]?loss\b[^$\n]{0,40}?" + _PRICE,
        re.IGNORECASE), "Set a stop-loss at ${value}"),
]

METRIC_PATTERNS: List[Tuple[str, Pattern[str]]] = [
    ("currentPrice", re.compile(
        r"(?:trading at|current price|currently at|price(?: is| of)?:?)[^$\n]{0,20}?" + _PRICE, re.IGNORECASE)),
    ("support", re.compile(r"support[^$\n]{0,30}?" + _PRICE, re.IGNORECASE)),
    ("resistance", re.compile(r"resistance[^$\n]{0,30}?" + _PRICE, re.IGNORECASE)),
]
CHANGE_24H = re.compile(
    r"\b(?P<direction>up|down|gained|lost|rose|fell|climbed|dropped)?\s*(?P<value>[+-]?\d+(?:\.\d+)?)%"
    r"[^\n%]{0,40}?\b(?:24h|24-hour|24 hours|today)\b",
    re.IGNORECASE,
)
NEGATIVE_DIRECTIONS = {"down", "lost", "fell", "dropped"}
PRICE_EMPHASIS = re.compile(r"(?<!\*)\$\d+(?:,\d{3})*(?:\.\d+)?(?![\d*])")


class StructuredReply:
    def __init__(
        self,
        type: str,
        title: str,
        summary: Optional[List[str]] = None,
        sections: Optional[List[Dict[str, Any]]] = None,
        action_items: Optional[List[str]] = None,
        key_metrics: Optional[Dict[str, Any]] = None,
        message: str = "",
    ):
        self.type = type
        self.title = title
        self.summary = summary or []
        self.sections = sections or []
        self.action_items = action_items or []
        self.key_metrics = key_metrics or {}
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "title": self.title,
            "summary": self.summary,
            "sections": self.sections,
            "actionItems": self.action_items,
            "keyMetrics": self.key_metrics,
        }


# ---------------------------------------------------------------------------
# Free-text analysis
# ---------------------------------------------------------------------------

def _heading_title(line: str) -> Optional[str]:
    for pattern in (MARKDOWN_HEADING, BOLD_HEADING, KEYWORD_HEADING):
        match = pattern.match(line)
        if match:
            return match.group("title").strip().rstrip(":").strip("* ")
    return None


def _clean_line(line: str) -> str:
    line = BULLET_PREFIX.sub("", line.strip())
    return line.replace("**", "").strip()


def section_type_for(title: str) -> str:
    for section_type, pattern in SECTION_TYPE_RULES:
        if pattern.search(title):
            return section_type
    return SECTION_GENERAL


def split_sections(text: str, max_lines: Optional[int] = None) -> List[Dict[str, Any]]:
    """
    Group lines under the most recent heading-like line.

    Text before the first heading becomes "Overview". Headings with no content
    are dropped and each section keeps at most ``max_lines`` lines.
    """
    max_lines = settings.MAX_SECTION_LINES if max_lines is None else max_lines
    sections: List[Dict[str, Any]] = []
    title = OVERVIEW_TITLE
    lines: List[str] = []

    def flush() -> None:
        if lines:
            sections.append({
                "title": title,
                "type": section_type_for(title),
                "content": lines[:max_lines],
            })

    for raw in (text or "").splitlines():
        stripped = raw.strip()
        if not stripped or ASCII_ART.match(stripped):
            continue
        heading = _heading_title(stripped)
        if heading:
            flush()
            title, lines = heading, []
            continue
        cleaned = _clean_line(stripped)
        if cleaned:
            lines.append(cleaned)
    flush()
    return sections


def extract_summary(sections: List[Dict[str, Any]], limit: Optional[int] = None, max_chars: int = 140) -> List[str]:
    limit = settings.MAX_SUMMARY_ITEMS if limit is None else limit
    source = next((s for s in sections if s["title"] == OVERVIEW_TITLE), sections[0] if sections else None)
    if not source:
        return []
    summary: List[str] = []
    for line in source["content"]:
        for sentence in SENTENCE_SPLIT.split(line):
            sentence = sentence.strip()
            if len(sentence) < 3:
                continue
            if len(sentence) > max_chars:
                sentence = sentence[: max_chars - 1].rstrip() + "…"
            summary.append(sentence)
            if len(summary) >= limit:
                return summary
    return summary


def extract_action_items(text: str, per_kind: Optional[int] = None, limit: Optional[int] = None) -> List[str]:
    per_kind = settings.MAX_ACTIONS_PER_KIND if per_kind is None else per_kind
    limit = settings.MAX_ACTION_ITEMS if limit is None else limit
    items: List[str] = []
    for _, pattern, template in ACTION_PATTERNS:
        found = 0
        for match in pattern.finditer(text or ""):
            item = template.format(value=match.group("value"))
            if item in items:
                continue
            items.append(item)
            found += 1
            if found >= per_kind or len(items) >= limit:
                break
        if len(items) >= limit:
            break
    return items


def extract_key_metrics(text: str) -> Dict[str, str]:
    metrics: Dict[str, str] = {}
    text = text or ""
    for key, pattern in METRIC_PATTERNS:
        match = pattern.search(text)
        if match:
            metrics[key] = f"${match.group('value')}"
    change = CHANGE_24H.search(text)
    if change:
        value = change.group("value")
        direction = (change.group("direction") or "").lower()
        if direction in NEGATIVE_DIRECTIONS and not value.startswith("-"):
            value = f"-{value.lstrip('+')}"
        elif not value.startswith(("+", "-")):
            value = f"+{value}"
        metrics["change24h"] = f"{value}%"
    return metrics


def format_analysis_text(text: str, topic: str, max_words: Optional[int] = None) -> str:
    max_words = settings.MAX_REPLY_WORDS if max_words is None else max_words
    lines = [line for line in (text or "").splitlines() if not ASCII_ART.match(line) or not line.strip()]
    formatted = "\n".join(lines).strip()

    if topic.lower() not in formatted[:80].lower():
        formatted = f"{topic} Quick Analysis\n\n{formatted}"

    formatted = PRICE_EMPHASIS.sub(lambda m: f"**{m.group(0)}**", formatted)

    words = formatted.split(" ")
    if len(words) > max_words:
        formatted = " ".join(words[: max_words - 20]) + "...\n\nWant more details? Just ask for a deeper analysis!"
    return formatted


def compose_analysis_reply(
    topic: str,
    text: str,
    complexity: str,
    *,
    max_section_lines: Optional[int] = None,
    max_action_items: Optional[int] = None,
) -> StructuredReply:
    sections = split_sections(text, max_lines=max_section_lines)
    reply = StructuredReply(
        type=REPLY_ANALYSIS,
        title=f"{topic} Analysis",
        summary=extract_summary(sections),
        sections=sections,
        action_items=extract_action_items(text, limit=max_action_items),
        key_metrics=extract_key_metrics(text),
        message=format_analysis_text(text, topic),
    )
    logger.info(
        "composer.analysis topic=%s complexity=%s sections=%s actions=%s metrics=%s",
        topic,
        complexity,
        len(reply.sections),
        len(reply.action_items),
        sorted(reply.key_metrics),
    )
    return reply


# ---------------------------------------------------------------------------
# Portfolio
# ---------------------------------------------------------------------------

def compose_portfolio_reply(analysis: PortfolioAnalysis) -> StructuredReply:
    gain = analysis.total_gain_loss
    direction = "up" if gain >= 0 else "down"
    top = analysis.top_holdings[:3]
    top_pct = analysis.top_percentage

    summary = [
        f"{analysis.holdings_count} holdings worth ${analysis.total_value:,.2f}",
        f"Currently {direction} ${abs(gain):,.2f} overall",
    ]
    if top:
        summary.append(f"Largest position: {top[0]['symbol']} at {top[0]['percentage']:.1f}%")

    sections: List[Dict[str, Any]] = [{
        "title": "Top Holdings",
        "type": SECTION_GENERAL,
        "content": [f"{h['symbol']}: ${h['value']:,.2f} ({h['percentage']:.1f}%)" for h in top],
    }]
    if analysis.distribution:
        ranked_types = sorted(analysis.distribution.items(), key=lambda item: item[1], reverse=True)
        sections.append({
            "title": "Allocation",
            "type": SECTION_GENERAL,
            "content": [f"{asset_type}: ${value:,.2f}" for asset_type, value in ranked_types[: settings.MAX_SECTION_LINES]],
        })

    action_items: List[str] = []
    if top_pct > CONCENTRATION_THRESHOLD:
        sections.append({
            "title": "Concentration Risk",
            "type": SECTION_RISK,
            "content": [f"Your top holding is {top_pct:.1f}% of the portfolio."],
        })
        action_items.append(f"Consider trimming {top[0]['symbol']} to diversify")
    elif top_pct < 15 and analysis.holdings_count > 10:
        sections.append({
            "title": "Diversification",
            "type": SECTION_GENERAL,
            "content": ["Nice diversification across your holdings!"],
        })

    lines = [
        "Your Portfolio Snapshot",
        "",
        f"You've got **{analysis.holdings_count} holdings** worth **${analysis.total_value:,.2f}**",
        f"Currently {'looking good' if gain >= 0 else 'down a bit'}: **${abs(gain):,.2f}**",
        "",
        "**Top 3 Holdings:**",
    ]
    lines.extend(f"{i}. {h['symbol']}: {h['percentage']:.1f}%" for i, h in enumerate(top, 1))
    if action_items:
        lines.extend(["", f"Your top holding is {top_pct:.1f}% - consider diversifying!"])
    lines.extend(["", "Want detailed charts and insights? Just ask!"])

    return StructuredReply(
        type=REPLY_PORTFOLIO,
        title="Your Portfolio Snapshot",
        summary=summary,
        sections=sections,
        action_items=action_items,
        key_metrics={
            "totalValue": round(analysis.total_value, 2),
            "totalGainLoss": round(gain, 2),
            "holdingsCount": analysis.holdings_count,
            "topHoldingPercentage": top_pct,
        },
        message="\n".join(lines),
    )


# ---------------------------------------------------------------------------
# Static copy
# ---------------------------------------------------------------------------

FINANCE_SUGGESTIONS = [
    "Stock analysis (try 'analyze Apple')",
    "Crypto insights (ask about Bitcoin)",
    "Portfolio reviews (upload your CSV)",
]

REDIRECTIONS: List[Tuple[Pattern[str], str]] = [
    (re.compile(r"\b(hello|hi|hey|good morning|good evening)\b", re.IGNORECASE),
     "Hello there! Nice to meet you! I'm Max, your friendly financial advisor. While I'd love to chat "
     "about everything, I'm really passionate about investments, stocks, crypto, and portfolio management!"),
    (re.compile(r"\b(how are you|how's it going)\b", re.IGNORECASE),
     "I'm doing great, thanks for asking! I'm always excited when I get to talk about finance. "
     "Are you looking to analyze any investments or check on market trends?"),
    (re.compile(r"\b(thank you|thanks)\b", re.IGNORECASE),
     "You're very welcome! Got any other questions about stocks, crypto, or your investments?"),
]
DEFAULT_REDIRECTION = (
    "That sounds interesting! While I'd love to chat about that, I'm specialized in financial topics. "
    "How about we explore something finance-related instead?"
)


def friendly_redirection(message: str) -> str:
    for pattern, copy in REDIRECTIONS:
        if pattern.search(message or ""):
            return copy
    return DEFAULT_REDIRECTION


def _static_reply(reply_type: str, title: str, lead: str, suggestions: List[str]) -> StructuredReply:
    body = [lead, ""] + [f"- {s}" for s in suggestions]
    return StructuredReply(
        type=reply_type,
        title=title,
        summary=[SENTENCE_SPLIT.split(lead)[0]],
        sections=[{"title": "Try asking", "type": SECTION_GENERAL, "content": suggestions[: settings.MAX_SECTION_LINES]}],
        message="\n".join(body),
    )


def compose_static_reply(intent: QueryIntent, message: str, has_portfolio: bool = False) -> StructuredReply:
    """Canned copy for everything that is neither a portfolio nor an asset query."""
    if intent.type == INTENT_NON_FINANCIAL:
        return _static_reply(
            REPLY_GUARDRAIL,
            "Let's talk finance instead",
            friendly_redirection(message),
            ["Stock market trends", "Cryptocurrency analysis", "Portfolio optimization"],
        )
    if intent.type == INTENT_FINANCIAL_GENERAL:
        return _static_reply(
            INTENT_FINANCIAL_GENERAL,
            "General Finance",
            "I love talking general finance! But I'm even better when we dive into specific assets.",
            [
                "Individual stocks (Apple, Tesla, Microsoft...)",
                "Crypto prices (Bitcoin, Ethereum...)",
                "Commodities (Gold, Oil, Silver...)",
            ],
        )
    if intent.type == INTENT_CLARIFICATION:
        if not has_portfolio and PORTFOLIO_REFERENCE.search(message or ""):
            return _static_reply(
                INTENT_CLARIFICATION,
                "Upload your portfolio",
                "I'd love to review your portfolio, but I don't see one yet. Upload a CSV with columns like "
                "symbol, shares, current_price, market_value.",
                ["Upload a portfolio CSV", "Ask about a specific asset", "Try 'analyze Bitcoin'"],
            )
        return _static_reply(
            INTENT_CLARIFICATION,
            "Need a bit more detail",
            "Hmm, I'm not sure what you're looking for! Try asking about a specific stock or crypto, "
            "or say 'analyze my portfolio'.",
            ["Analyze my portfolio", "Bitcoin price trends", "Apple stock analysis"],
        )
    return _static_reply(
        intent.type,
        "Welcome to FinanceBot",
        "Hey there! I'm Max, your friendly finance buddy. What financial topic can I help you explore?",
        FINANCE_SUGGESTIONS,
    )
