from financebot.apis.portfolio_ingestion import (
    Holding,
    normalize_header,
    parse_portfolio_csv,
    summarize_parse_error,
    validate_portfolio_data,
)


def test_minimal_symbol_value_csv():
    result = parse_portfolio_csv(b"symbol,value\nAAPL,10000\nGOOGL,8000\n")

    assert result["success"] is True
    assert result["rowCount"] == 2
    assert result["headers"] == ["symbol", "value"]
    first = result["data"][0]
    assert first.symbol == "AAPL"
    assert first.market_value == 10000
    assert first.asset_type == "stock"


def test_header_aliases_and_currency_strings():
    payload = (
        "\ufeffTicker,Quantity,Current Price,Avg Cost,Type\n"
        'MSFT,10,"$300.00",$250,etf\n'
    ).encode("utf-8")
    holding = parse_portfolio_csv(payload)["data"][0]

    assert holding.symbol == "MSFT"
    assert holding.shares == 10
    assert holding.current_price == 300
    assert holding.market_value == 3000
    assert holding.gain_loss == 500
    assert holding.asset_type == "etf"


def test_explicit_market_value_is_not_overwritten():
    holding = parse_portfolio_csv(b"symbol,shares,current_price,market_value\nTSLA,2,200,999\n")["data"][0]
    assert holding.market_value == 999


def test_rows_without_symbol_or_asset_are_dropped():
    result = parse_portfolio_csv(b"symbol,value\nAAPL,100\n,200\n")
    assert [h.symbol for h in result["data"]] == ["AAPL"]


def test_asset_label_used_when_symbol_missing():
    holding = parse_portfolio_csv(b"name,value\nVanguard Total Market,5000\n")["data"][0]
    assert holding.symbol == ""
    assert holding.label == "Vanguard Total Market"


def test_negative_quantities_are_clamped():
    holding = Holding("X", shares=-5, current_price=-1, market_value=-10, gain_loss=-3)
    assert (holding.shares, holding.current_price, holding.market_value) == (0, 0, 0)
    assert holding.gain_loss == -3


def test_empty_file_reports_error():
    result = parse_portfolio_csv(b"")
    assert result["success"] is False
    assert summarize_parse_error(result) == "CSV file is empty"


def test_header_only_file_has_no_holdings():
    result = parse_portfolio_csv(b"symbol,value\n")
    assert result["success"] is True
    assert summarize_parse_error(result) == "No valid portfolio data found in CSV"


def test_validation_reports_missing_fields():
    holdings = parse_portfolio_csv(b"symbol,shares\nAAPL,10\n")["data"]
    assert validate_portfolio_data(holdings) == {"valid": False, "missing": ["market_value"]}


def test_normalize_header():
    assert normalize_header("  Market  Value ") == "market_value"
    assert normalize_header("Gain__Loss") == "gain_loss"
