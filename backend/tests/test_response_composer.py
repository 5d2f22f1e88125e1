from financebot.apis.portfolio_analyzer import analyze_portfolio
from financebot.apis.portfolio_ingestion import Holding
from financebot.apis.query_router import analyze_query_intent
from financebot.apis.response_composer import (
    REPLY_GUARDRAIL,
    SECTION_ACTIONABLE,
    SECTION_GENERAL,
    SECTION_RISK,
    SECTION_TECHNICAL,
    compose_analysis_reply,
    compose_portfolio_reply,
    compose_static_reply,
    extract_action_items,
    extract_key_metrics,
    format_analysis_text,
    split_sections,
)

ANALYSIS_TEXT = """Bitcoin is trading at $43,000, up 2.5% in the last 24h.
## Technical Analysis
- Support near $41,000
- Resistance at $45,000
- RSI is neutral
- Volume is light
## Risk Factors
- Regulatory headlines can move prices fast
## Entry/Exit
- Consider buying near $42,000
- Take profit near $46,000
- Set a stop-loss at $39,000
"""


def test_split_sections_assigns_types_and_caps_lines():
    sections = split_sections(ANALYSIS_TEXT, max_lines=3)

    assert [s["title"] for s in sections] == ["Overview", "Technical Analysis", "Risk Factors", "Entry/Exit"]
    assert [s["type"] for s in sections] == [SECTION_GENERAL, SECTION_TECHNICAL, SECTION_RISK, SECTION_ACTIONABLE]
    assert sections[1]["content"] == ["Support near $41,000", "Resistance at $45,000", "RSI is neutral"]


def test_split_sections_handles_bold_and_keyword_headings():
    text = "**Key Levels**\n- Support $10\nRisks:\n- Thin liquidity\n\n**Empty Heading**\n"
    sections = split_sections(text)
    assert [(s["title"], s["type"]) for s in sections] == [
        ("Key Levels", SECTION_TECHNICAL),
        ("Risks", SECTION_RISK),
    ]


def test_split_sections_skips_box_drawing_lines():
    sections = split_sections("Intro line\n────────\n╔══╗\nSecond line")
    assert sections == [{"title": "Overview", "type": SECTION_GENERAL, "content": ["Intro line", "Second line"]}]


def test_action_items_are_extracted_and_capped():
    assert extract_action_items(ANALYSIS_TEXT) == [
        "Consider buying near $42,000",
        "Take profit near $46,000",
        "Set a stop-loss at $39,000",
    ]
    assert len(extract_action_items(ANALYSIS_TEXT, limit=2)) == 2


def test_key_metrics():
    metrics = extract_key_metrics(ANALYSIS_TEXT)
    assert metrics == {
        "currentPrice": "$43,000",
        "support": "$41,000",
        "resistance": "$45,000",
        "change24h": "+2.5%",
    }
    assert extract_key_metrics("Gold fell 1.2% today")["change24h"] == "-1.2%"


def test_compose_analysis_reply():
    reply = compose_analysis_reply("Bitcoin", ANALYSIS_TEXT, "medium")
    payload = reply.to_dict()

    assert payload["type"] == "analysis"
    assert payload["title"] == "Bitcoin Analysis"
    assert payload["summary"] == ["Bitcoin is trading at $43,000, up 2.5% in the last 24h."]
    assert len(payload["actionItems"]) == 3
    assert payload["keyMetrics"]["support"] == "$41,000"
    assert "message" not in payload
    assert "**$43,000**" in reply.message


def test_format_analysis_text_adds_heading_and_truncates():
    formatted = format_analysis_text("Prices are calm.", "Gold")
    assert formatted.startswith("Gold Quick Analysis")

    long_text = "Gold " + " ".join(["word"] * 400)
    truncated = format_analysis_text(long_text, "Gold", max_words=100)
    assert truncated.endswith("Just ask for a deeper analysis!")
    assert len(truncated.split(" ")) < 100


def test_portfolio_reply_flags_concentration():
    analysis = analyze_portfolio([Holding("AAPL", market_value=10000), Holding("GOOGL", market_value=8000)])
    reply = compose_portfolio_reply(analysis)

    assert reply.title == "Your Portfolio Snapshot"
    assert reply.key_metrics["totalValue"] == 18000
    assert reply.key_metrics["topHoldingPercentage"] == 55.6
    assert reply.sections[0]["content"][0] == "AAPL: $10,000.00 (55.6%)"
    assert reply.sections[-1]["title"] == "Concentration Risk"
    assert reply.action_items == ["Consider trimming AAPL to diversify"]
    assert "**2 holdings**" in reply.message


def test_balanced_portfolio_has_no_concentration_warning():
    holdings = [Holding(f"T{i}", market_value=100) for i in range(12)]
    reply = compose_portfolio_reply(analyze_portfolio(holdings))
    assert reply.action_items == []
    assert reply.sections[-1]["title"] == "Diversification"


def test_guardrail_reply_for_non_financial_message():
    message = "how do I make pizza"
    reply = compose_static_reply(analyze_query_intent(message), message)
    assert reply.type == REPLY_GUARDRAIL
    assert reply.title == "Let's talk finance instead"
    assert "specialized in financial topics" in reply.message


def test_greeting_gets_friendly_redirection():
    reply = compose_static_reply(analyze_query_intent("hello"), "hello")
    assert reply.message.startswith("Hello there!")
    assert reply.summary == ["Hello there!"]


def test_clarification_prompts_upload_when_portfolio_missing():
    message = "analyze my portfolio"
    reply = compose_static_reply(analyze_query_intent(message), message, has_portfolio=False)
    assert reply.title == "Upload your portfolio"


def test_welcome_reply():
    reply = compose_static_reply(analyze_query_intent("hmm"), "hmm")
    assert reply.title == "Welcome to FinanceBot"
    assert reply.type == "welcome"
