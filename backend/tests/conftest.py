import pytest

from app import create_app
from financebot.apis import settings
from financebot.apis.analysis_gateway import reset_analysis_client
from financebot.apis.analytics import chatbot_analytics
from financebot.apis.chat import analysis_cache
from financebot.apis.security import rate_limiter
from financebot.apis.sessions import session_manager


@pytest.fixture(autouse=True)
def isolated_state(monkeypatch):
    """Every test starts in mock LLM mode with empty sessions, cache and counters."""
    monkeypatch.setattr(settings, "LLM_MODE", "mock")
    monkeypatch.setattr(settings, "APP_ENV", "test")
    reset_analysis_client()
    session_manager.sessions.clear()
    analysis_cache.clear()
    rate_limiter.reset()
    chatbot_analytics.reset()
    yield
    reset_analysis_client()


@pytest.fixture
def app():
    app = create_app()
    app.config.update(TESTING=True)
    return app


@pytest.fixture
def client(app):
    return app.test_client()
