import random

from financebot.apis.charts import (
    COMPARISON_PALETTE,
    OTHERS_LABEL,
    generate_candlestick_chart,
    generate_comparison_chart,
    generate_data_table,
    generate_key_stats_table,
    generate_mock_price_data,
    generate_portfolio_donut,
    generate_price_chart,
)


def test_donut_folds_tail_into_others():
    holdings = [{"symbol": f"S{rank}", "value": (13 - rank) * 100} for rank in range(1, 13)]
    total = sum(h["value"] for h in holdings)

    chart = generate_portfolio_donut(holdings, total)

    labels = chart["data"]["labels"]
    values = chart["data"]["datasets"][0]["data"]
    assert chart["type"] == "doughnut"
    assert len(labels) == 11
    assert labels[:10] == [f"S{rank}" for rank in range(1, 11)]
    assert labels[-1] == OTHERS_LABEL
    assert values[-1] == 200 + 100
    assert sum(values) == total


def test_donut_without_tail_has_no_others_slice():
    chart = generate_portfolio_donut([{"symbol": "AAPL", "value": 10000}, {"symbol": "GOOGL", "value": 8000}], 18000)
    assert chart["data"]["labels"] == ["AAPL", "GOOGL"]
    assert chart["percentages"] == [55.6, 44.4]
    legend_items = chart["options"]["plugins"]["legend"]["labels"]["items"]
    assert legend_items[0]["text"] == "AAPL: 55.6%"


def test_donut_with_zero_total():
    chart = generate_portfolio_donut([{"symbol": "A", "value": 0}, {"symbol": "B", "value": 0}], 0)
    assert chart["percentages"] == [0.0, 0.0]
    assert chart["totalValue"] == 0


def test_empty_inputs_return_none():
    assert generate_portfolio_donut([], 0) is None
    assert generate_price_chart([]) is None
    assert generate_candlestick_chart([]) is None
    assert generate_comparison_chart([]) is None
    assert generate_data_table([]) is None


def test_price_chart_reads_time_and_price():
    chart = generate_price_chart(
        [{"time": "0:00", "price": "$1,000.50"}, {"date": "1:00", "close": 1010}],
        title="Gold Price Movement",
        label="Gold",
    )
    assert chart["type"] == "line"
    assert chart["data"]["labels"] == ["0:00", "1:00"]
    assert chart["data"]["datasets"][0]["data"] == [1000.5, 1010.0]
    assert chart["options"]["plugins"]["title"]["text"] == "Gold Price Movement"


def test_comparison_palette_cycles():
    assets = [{"name": f"A{i}", "series": [1, 2, 3]} for i in range(4)]
    chart = generate_comparison_chart(assets, period="1W")

    colors = [dataset["borderColor"] for dataset in chart["data"]["datasets"]]
    assert colors == COMPARISON_PALETTE + [COMPARISON_PALETTE[0]]
    assert chart["data"]["labels"] == [0, 1, 2]


def test_candlestick_normalises_dates():
    chart = generate_candlestick_chart(
        [{"date": "2024-01-02", "open": 10, "high": 12, "low": 9, "close": 11, "volume": 1000}],
        symbol="AAPL",
    )
    assert chart["data"][0] == {"x": "2024-01-02", "o": 10.0, "h": 12.0, "l": 9.0, "c": 11.0, "v": 1000}


def test_key_stats_table_skips_missing_values():
    table = generate_key_stats_table("Bitcoin", {"price": 43000, "change24h": -1.5, "marketCap": "N/A"})
    assert table["title"] == "Bitcoin Key Statistics"
    assert table["headers"] == ["metric", "value"]
    assert table["rows"] == [["Current Price", "$43000"], ["24h Change", "-1.5%"]]


def test_mock_price_data_stays_above_floor():
    series = generate_mock_price_data("Silver", points=48, rng=random.Random(7))
    assert len(series) == 48
    assert series[0]["time"] == "0:00"
    assert all(point["price"] >= 23 * 0.01 for point in series)


def test_mock_price_data_unknown_topic_uses_default_base():
    series = generate_mock_price_data(None, points=1, rng=random.Random(1))
    assert 98 <= series[0]["price"] <= 102
