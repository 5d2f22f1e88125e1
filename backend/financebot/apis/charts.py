"""Declarative chart payloads for the Chart.js front end."""
from __future__ import annotations

import random
from typing import Any, Dict, List, Optional, Sequence

from .assets import base_price_for
from .portfolio_analyzer import percentage_of
from .utils import first_key, to_iso, to_number

COLORS = {
    "primary": "#22c55e",
    "danger": "#ef4444",
    "warning": "#f59e0b",
    "info": "#3b82f6",
    "gold": "#FFD700",
}
COMPARISON_PALETTE = [COLORS["primary"], COLORS["info"], COLORS["warning"]]
DONUT_PALETTE = [
    "#22c55e", "#3b82f6", "#f59e0b", "#ef4444", "#8b5cf6",
    "#ec4899", "#10b981", "#f97316", "#06b6d4", "#6366f1",
    "#64748b",
]
DONUT_TOP_N = 10
OTHERS_LABEL = "Others"
DEFAULT_HEIGHT = 400

_TITLE_FONT = {"size": 16, "weight": "bold"}


def _title_plugin(text: str) -> Dict[str, Any]:
    return {"display": True, "text": text, "font": dict(_TITLE_FONT)}


def _fill(color: str) -> str:
    return f"{color}20"


def generate_price_chart(
    series: Sequence[Dict[str, Any]],
    title: str = "Price Chart",
    label: str = "Asset",
) -> Optional[Dict[str, Any]]:
    """Line chart from points keyed ``time|date|x`` and ``price|close|value|y``."""
    if not series:
        return None

    labels: List[Any] = []
    values: List[float] = []
    for index, point in enumerate(series):
        labels.append(first_key(point, ("time", "date", "x"), default=index))
        values.append(to_number(first_key(point, ("price", "close", "value", "y"))))

    return {
        "type": "line",
        "title": title,
        "height": DEFAULT_HEIGHT,
        "format": {"y": "currency"},
        "data": {
            "labels": labels,
            "datasets": [{
                "label": label,
                "data": values,
                "borderColor": COLORS["primary"],
                "backgroundColor": _fill(COLORS["primary"]),
                "fill": True,
                "tension": 0.3,
                "pointRadius": 3,
                "pointHoverRadius": 5,
            }],
        },
        "options": {
            "responsive": True,
            "plugins": {
                "title": _title_plugin(title),
                "legend": {"display": True, "position": "top"},
                "tooltip": {"mode": "index", "intersect": False},
            },
            "scales": {
                "x": {"display": True, "title": {"display": True, "text": "Time"}},
                "y": {"display": True, "title": {"display": True, "text": "Price ($)"}},
            },
        },
    }


def generate_candlestick_chart(
    ohlc: Sequence[Dict[str, Any]],
    title: str = "Price Movement",
    symbol: str = "Asset",
) -> Optional[Dict[str, Any]]:
    if not ohlc:
        return None

    candles = []
    for candle in ohlc:
        raw_x = first_key(candle, ("date", "time"))
        candles.append({
            "x": to_iso(raw_x) or raw_x,
            "o": to_number(candle.get("open")),
            "h": to_number(candle.get("high")),
            "l": to_number(candle.get("low")),
            "c": to_number(candle.get("close")),
            "v": candle.get("volume"),
        })
    return {
        "type": "candlestick",
        "title": title,
        "symbol": symbol,
        "data": candles,
    }


def generate_portfolio_donut(
    holdings: Sequence[Dict[str, Any]],
    total_value: float,
) -> Optional[Dict[str, Any]]:
    """
    Doughnut of the ten largest positions.

    Anything past the tenth position is folded into one "Others" slice. Slice
    percentages are precomputed against ``total_value``; a zero total gives 0.0.
    """
    if not holdings:
        return None

    ranked = sorted(holdings, key=lambda h: to_number(h.get("value")), reverse=True)
    top = ranked[:DONUT_TOP_N]
    remainder = ranked[DONUT_TOP_N:]

    labels = [str(first_key(h, ("symbol", "asset"), default="Unknown")) for h in top]
    values = [to_number(h.get("value")) for h in top]
    if remainder:
        labels.append(OTHERS_LABEL)
        values.append(sum(to_number(h.get("value")) for h in remainder))

    total_value = to_number(total_value)
    percentages = [percentage_of(value, total_value) for value in values]
    title = f"Portfolio Distribution - Total: ${total_value:,.2f}"

    return {
        "type": "doughnut",
        "title": "Portfolio Distribution",
        "totalValue": total_value,
        "percentages": percentages,
        "data": {
            "labels": labels,
            "datasets": [{
                "data": values,
                "backgroundColor": DONUT_PALETTE[: len(values)],
                "borderWidth": 2,
                "borderColor": "#0a0e1a",
            }],
        },
        "options": {
            "responsive": True,
            "plugins": {
                "title": _title_plugin(title),
                "legend": {
                    "position": "right",
                    "labels": {
                        "padding": 15,
                        "items": [
                            {"text": f"{label}: {pct:.1f}%", "fillStyle": DONUT_PALETTE[i % len(DONUT_PALETTE)], "index": i}
                            for i, (label, pct) in enumerate(zip(labels, percentages))
                        ],
                    },
                },
            },
        },
    }


def generate_comparison_chart(
    assets: Sequence[Dict[str, Any]],
    period: str = "1D",
) -> Optional[Dict[str, Any]]:
    if not assets:
        return None

    datasets = []
    for index, asset in enumerate(assets):
        color = COMPARISON_PALETTE[index % len(COMPARISON_PALETTE)]
        series = first_key(asset, ("series", "prices"), default=[]) or []
        datasets.append({
            "label": first_key(asset, ("name", "symbol"), default=f"Asset {index + 1}"),
            "data": [to_number(value) for value in series],
            "borderColor": color,
            "backgroundColor": _fill(color),
            "fill": False,
            "tension": 0.3,
        })

    return {
        "type": "line",
        "title": "Asset Comparison",
        "data": {
            "labels": list(range(len(datasets[0]["data"]))),
            "datasets": datasets,
        },
        "options": {
            "responsive": True,
            "interaction": {"mode": "index", "intersect": False},
            "plugins": {"title": _title_plugin(f"Performance Comparison - {period}")},
        },
    }


def generate_data_table(rows: Sequence[Dict[str, Any]], title: str = "Data Summary") -> Optional[Dict[str, Any]]:
    if not rows:
        return None
    headers = list(rows[0].keys())
    return {
        "type": "table",
        "title": title,
        "headers": headers,
        "rows": [[row.get(header) for header in headers] for row in rows],
    }


def _signed_pct(value: Any) -> Optional[str]:
    if value is None:
        return None
    number = to_number(value)
    return f"{'+' if number >= 0 else ''}{number}%"


def generate_key_stats_table(asset: str, stats: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    price = stats.get("price")
    rows = [
        {"metric": "Current Price", "value": f"${price}" if price is not None else None},
        {"metric": "24h Change", "value": _signed_pct(stats.get("change24h"))},
        {"metric": "7d Change", "value": _signed_pct(stats.get("change7d"))},
        {"metric": "Market Cap", "value": stats.get("marketCap")},
        {"metric": "Volume", "value": stats.get("volume")},
    ]
    rows = [row for row in rows if row["value"] not in (None, "", "N/A")]
    return generate_data_table(rows, f"{asset} Key Statistics")


def generate_mock_price_data(
    topic: Optional[str],
    points: int = 24,
    rng: Optional[random.Random] = None,
) -> List[Dict[str, Any]]:
    """Synthetic hourly random walk around the asset's reference price."""
    rng = rng or random.Random()
    base_price = base_price_for(topic)
    floor = base_price * 0.01
    price = base_price
    data = []
    for hour in range(points):
        price += (rng.random() - 0.5) * base_price * 0.02
        price = max(price, floor)
        data.append({"time": f"{hour}:00", "price": round(price, 2)})
    return data
