"""CSV portfolio ingestion: pandas parsing plus column-alias normalisation."""
from __future__ import annotations

import io
import logging
import re
from typing import Any, Dict, List, Optional

import pandas as pd

from . import settings
from .utils import first_key, to_number

logger = logging.getLogger("financebot.portfolio_ingestion")

_HEADER_SEPARATORS = re.compile(r"[\s_]+")
REQUIRED_FIELDS = ["symbol", "market_value"]
DEFAULT_ASSET_TYPE = "stock"


class Holding:
    """One normalised portfolio line item."""

    def __init__(
        self,
        symbol: str = "",
        asset: str = "",
        shares: float = 0.0,
        purchase_price: float = 0.0,
        current_price: float = 0.0,
        market_value: float = 0.0,
        gain_loss: float = 0.0,
        asset_type: str = DEFAULT_ASSET_TYPE,
    ):
        self.symbol = symbol
        self.asset = asset
        self.shares = max(shares, 0.0)
        self.purchase_price = max(purchase_price, 0.0)
        self.current_price = max(current_price, 0.0)
        self.market_value = max(market_value, 0.0)
        self.gain_loss = gain_loss
        self.asset_type = asset_type or DEFAULT_ASSET_TYPE

        if not self.market_value and self.shares and self.current_price:
            self.market_value = self.shares * self.current_price
        if not self.gain_loss and self.market_value and self.shares and self.purchase_price:
            self.gain_loss = self.market_value - self.shares * self.purchase_price

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Holding":
        return cls(
            symbol=str(first_key(row, settings.SYMBOL_CANDIDATES, default="")).strip(),
            asset=str(first_key(row, settings.ASSET_CANDIDATES, default="")).strip(),
            shares=to_number(first_key(row, settings.SHARES_CANDIDATES)),
            purchase_price=to_number(first_key(row, settings.PURCHASE_PRICE_CANDIDATES)),
            current_price=to_number(first_key(row, settings.CURRENT_PRICE_CANDIDATES)),
            market_value=to_number(first_key(row, settings.MARKET_VALUE_CANDIDATES)),
            gain_loss=to_number(first_key(row, settings.GAIN_LOSS_CANDIDATES)),
            asset_type=str(first_key(row, settings.ASSET_TYPE_CANDIDATES, default=DEFAULT_ASSET_TYPE)).strip(),
        )

    @property
    def label(self) -> str:
        return self.symbol or self.asset

    @property
    def is_empty(self) -> bool:
        return not self.symbol and not self.asset

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "asset": self.asset,
            "shares": self.shares,
            "purchase_price": self.purchase_price,
            "current_price": self.current_price,
            "market_value": self.market_value,
            "gain_loss": self.gain_loss,
            "asset_type": self.asset_type,
        }

    def __repr__(self) -> str:
        return f"Holding(symbol={self.symbol!r}, market_value={self.market_value!r})"


def normalize_header(header: Any) -> str:
    return _HEADER_SEPARATORS.sub("_", str(header).strip().lower())


def parse_portfolio_csv(payload: bytes) -> Dict[str, Any]:
    """
    Parse uploaded CSV bytes into normalised holdings.

    Returns:
        ``{"success": True, "data": [Holding, ...], "headers": [...], "rowCount": n}``
        or ``{"success": False, "error": str, "data": []}``. Parse problems are
        reported, never raised.
    """
    try:
        frame = pd.read_csv(
            io.BytesIO(payload),
            dtype=str,
            encoding="utf-8-sig",
            keep_default_na=False,
            skip_blank_lines=True,
            skipinitialspace=True,
        )
    except pd.errors.EmptyDataError:
        return {"success": False, "error": "CSV file is empty", "data": []}
    except (pd.errors.ParserError, UnicodeDecodeError, ValueError) as exc:
        logger.error("csv.parse_failed error=%s", exc)
        return {"success": False, "error": str(exc), "data": []}

    frame.columns = [normalize_header(col) for col in frame.columns]
    # Duplicate headers after normalisation keep the first occurrence
    frame = frame.loc[:, ~frame.columns.duplicated()]

    holdings: List[Holding] = []
    for row in frame.to_dict(orient="records"):
        holding = Holding.from_row(row)
        if holding.is_empty:
            continue
        holdings.append(holding)

    logger.info("csv.parsed rows=%s holdings=%s", len(frame.index), len(holdings))
    return {
        "success": True,
        "data": holdings,
        "headers": list(frame.columns),
        "rowCount": len(holdings),
    }


def validate_portfolio_data(holdings: List[Holding]) -> Dict[str, Any]:
    """Every required field must be populated on at least one holding."""
    missing: List[str] = []
    for field in REQUIRED_FIELDS:
        if not any(getattr(holding, field, None) for holding in holdings):
            missing.append(field)
    return {"valid": not missing, "missing": missing}


def summarize_parse_error(result: Dict[str, Any]) -> Optional[str]:
    if result.get("success"):
        if not result.get("data"):
            return "No valid portfolio data found in CSV"
        return None
    return result.get("error") or "Failed to parse CSV"
