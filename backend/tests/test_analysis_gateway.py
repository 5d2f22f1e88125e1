import pytest
import requests

from financebot.apis import settings
from financebot.apis.analysis_gateway import (
    AnalysisClient,
    LLMConfigurationError,
    build_messages,
    get_financial_analysis,
    get_last_llm_provider,
    reset_llm_provider,
)
from financebot.apis.error_handler import InsufficientContextError, ServiceUnavailableError


class FakeResponse:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, headers=None, json=None, timeout=None):
        self.calls.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        if self.error:
            raise self.error
        return self.response


def _client(session):
    return AnalysisClient(api_key="test-key", api_base="https://api.example.test/", timeout=5, session=session)


def test_prompt_pair_names_the_topic():
    system, user = build_messages("Gold")
    assert system["role"] == "system" and "about Gold" in system["content"]
    assert user["role"] == "user" and "analysis of Gold" in user["content"]


def test_chat_posts_payload_and_returns_content():
    session = FakeSession(FakeResponse({
        "choices": [{"message": {"content": "  Gold is trading at $2,040.  "}}],
        "citations": ["https://reuters.com/x"],
    }))
    reset_llm_provider()

    result = _client(session).chat(build_messages("Gold"), "high")

    call = session.calls[0]
    assert call["url"] == "https://api.example.test/chat/completions"
    assert call["timeout"] == 5
    assert call["headers"]["Authorization"] == "Bearer test-key"
    assert call["json"]["model"] == settings.PERPLEXITY_MODEL_COMPLEX
    assert call["json"]["search_recency_filter"] == "day"
    assert result["content"] == "Gold is trading at $2,040."
    assert result["citations"] == ["https://reuters.com/x"]
    assert get_last_llm_provider() == "perplexity"


def test_balanced_model_for_low_and_medium():
    assert AnalysisClient.model_for("low") == settings.PERPLEXITY_MODEL_BALANCED
    assert AnalysisClient.model_for("medium") == settings.PERPLEXITY_MODEL_BALANCED


@pytest.mark.parametrize("error", [requests.Timeout("slow"), requests.ConnectionError("down")])
def test_transport_failures_become_service_unavailable(error):
    session = FakeSession(error=error)
    with pytest.raises(ServiceUnavailableError):
        _client(session).chat(build_messages("Oil"), "medium")
    assert len(session.calls) == 1


def test_http_error_and_empty_content_become_service_unavailable():
    with pytest.raises(ServiceUnavailableError):
        _client(FakeSession(FakeResponse({}, status=500))).chat(build_messages("Oil"), "medium")
    with pytest.raises(ServiceUnavailableError):
        _client(FakeSession(FakeResponse({"choices": [{"message": {"content": ""}}]}))).chat(
            build_messages("Oil"), "medium"
        )


def test_mock_mode_returns_structured_markdown():
    text = get_financial_analysis("Bitcoin", "medium")
    assert "Bitcoin is trading at $43,000.00" in text
    assert "## Risk Factors" in text
    assert get_last_llm_provider() == "mock"


def test_missing_topic_is_insufficient_context():
    with pytest.raises(InsufficientContextError):
        get_financial_analysis("", "medium")


def test_missing_api_key_is_configuration_error(monkeypatch):
    monkeypatch.setattr(settings, "LLM_MODE", "")
    monkeypatch.setattr(settings, "PERPLEXITY_API_KEY", None)
    with pytest.raises(LLMConfigurationError) as excinfo:
        get_financial_analysis("Gold", "medium")
    assert excinfo.value.status == 503
