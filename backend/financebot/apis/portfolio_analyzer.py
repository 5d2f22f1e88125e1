"""Aggregate portfolio math: totals, ranked holdings and type distribution."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence

from .portfolio_ingestion import Holding
from .utils import to_number

logger = logging.getLogger("financebot.portfolio_analyzer")

DEFAULT_DISTRIBUTION_LABEL = "Other"


def percentage_of(value: float, total: float) -> float:
    """Share of ``total`` in percent, one decimal. A zero total yields 0.0."""
    if not total:
        return 0.0
    return round(value / total * 100, 1)


class PortfolioAnalysis:
    def __init__(self, holdings: Sequence[Holding]):
        self.holdings: List[Holding] = list(holdings)
        self.holdings_count = len(self.holdings)
        self.total_value = 0.0
        self.total_gain_loss = 0.0
        self.distribution: Dict[str, float] = {}
        self.top_holdings: List[Dict[str, Any]] = []

    @property
    def top_percentage(self) -> float:
        if not self.top_holdings:
            return 0.0
        return self.top_holdings[0]["percentage"]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "holdings": [holding.to_dict() for holding in self.holdings],
            "holdingsCount": self.holdings_count,
            "totalValue": self.total_value,
            "totalGainLoss": self.total_gain_loss,
            "topHoldings": self.top_holdings,
            "distribution": self.distribution,
        }


def analyze_portfolio(holdings: Sequence[Holding]) -> PortfolioAnalysis:
    """
    Compute totals, a value-ranked holding list and asset-type distribution.

    Raises:
        ValueError: if ``holdings`` is empty. Callers gate on an uploaded portfolio.
    """
    if not holdings:
        raise ValueError("Portfolio analysis requires at least one holding")

    analysis = PortfolioAnalysis(holdings)
    for holding in analysis.holdings:
        value = to_number(holding.market_value)
        analysis.total_value += value
        analysis.total_gain_loss += to_number(holding.gain_loss)
        asset_type = holding.asset_type or DEFAULT_DISTRIBUTION_LABEL
        analysis.distribution[asset_type] = analysis.distribution.get(asset_type, 0.0) + value

    # sorted() is stable, so equal values keep their upload order
    ranked = sorted(analysis.holdings, key=lambda h: to_number(h.market_value), reverse=True)
    analysis.top_holdings = [
        {
            "symbol": holding.label,
            "value": to_number(holding.market_value),
            "percentage": percentage_of(to_number(holding.market_value), analysis.total_value),
        }
        for holding in ranked
    ]

    logger.info(
        "portfolio.analyzed holdings=%s total_value=%.2f total_gain_loss=%.2f",
        analysis.holdings_count,
        analysis.total_value,
        analysis.total_gain_loss,
    )
    return analysis
