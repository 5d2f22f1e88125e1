import pytest

from financebot.apis import security, settings
from financebot.apis.error_handler import InvalidInputError, RateLimitedError
from financebot.apis.security import RateLimiter, clean_message, read_chat_body, sanitize_input, validate_query


def test_sanitize_input_strips_brackets_and_whitespace():
    assert sanitize_input("  what   about <b>gold</b>?  ") == "what about bgold/b?"
    assert sanitize_input("") == ""


def test_validate_query_rejects_scripts_and_long_input():
    assert validate_query("analyze bitcoin") is True
    assert validate_query("<script>alert(1)</script>") is False
    assert validate_query("javascript:void(0)") is False
    assert validate_query("x" * 11, max_length=10) is False
    assert validate_query("   ") is False


def test_clean_message_contract(monkeypatch):
    monkeypatch.setattr(settings, "MAX_MESSAGE_LENGTH", 20)

    assert clean_message("  analyze   tesla ") == "analyze tesla"
    for bad in (None, "", "   ", 42, "x" * 21, "<iframe src=x>"):
        with pytest.raises(InvalidInputError):
            clean_message(bad)


def test_rate_limiter_window():
    limiter = RateLimiter(max_requests=2, time_window=60)
    assert limiter.check_request("1.2.3.4") is True
    assert limiter.check_request("1.2.3.4") is True
    assert limiter.check_request("1.2.3.4") is False
    assert limiter.check_request("5.6.7.8") is True

    with pytest.raises(RateLimitedError):
        limiter.enforce("1.2.3.4")


def test_rate_limiter_prunes_idle_clients(monkeypatch):
    limiter = RateLimiter(max_requests=5, time_window=10)
    limiter.check_request("1.2.3.4")

    real_time = security.time.time
    monkeypatch.setattr(security.time, "time", lambda: real_time() + 60)
    assert limiter.prune() == 1
    assert limiter.requests == {}


def test_read_chat_body():
    assert read_chat_body({"message": "gold", "sessionId": "s1"}) == ("s1", "gold")
    assert read_chat_body(None) == (None, None)
    assert read_chat_body({"message": "gold", "sessionId": ""}) == (None, "gold")
    for bad in (["gold"], "gold", {"message": "gold", "sessionId": {"a": 1}}):
        with pytest.raises(InvalidInputError):
            read_chat_body(bad)
