"""Remote market analysis via the Perplexity chat-completions API."""
from __future__ import annotations

import logging
import time
from contextvars import ContextVar
from typing import Any, Dict, List, Optional

import requests

from . import settings
from .assets import base_price_for
from .error_handler import InsufficientContextError, ServiceUnavailableError
from .query_router import COMPLEXITY_HIGH

logger = logging.getLogger("financebot.analysis_gateway")


class LLMConfigurationError(ServiceUnavailableError):
    default_message = "The analysis service is not configured yet. Please add a PERPLEXITY_API_KEY."


_ANALYSIS_CLIENT: Optional["AnalysisClient"] = None

_LLM_PROVIDER_TOKEN: ContextVar[str] = ContextVar("llm_provider", default="none")


def record_llm_provider(provider: str) -> None:
    """Store the provider that answered for the active request."""
    _LLM_PROVIDER_TOKEN.set((provider or "none").lower())


def reset_llm_provider() -> None:
    record_llm_provider("none")


def get_last_llm_provider() -> str:
    return _LLM_PROVIDER_TOKEN.get()


def build_messages(topic: str) -> List[Dict[str, str]]:
    system_prompt = f"""You are Max, a friendly and knowledgeable financial advisor who loves talking about {topic}!

Your personality:
- Conversational and approachable, like chatting with a smart financial buddy
- Enthusiastic about finance but easy to understand
- Keep responses concise but informative
- Friendly warnings about risks, not scary lectures

IMPORTANT RULES:
1. Focus ONLY on {topic} - politely redirect if asked about other assets
2. Keep responses under 200 words unless specifically asked for details
3. Use bullet points and clear structure with short section headings
4. Include specific prices/percentages
5. If someone asks about non-financial topics, be friendly but redirect to finance

Style: Think 'helpful financial friend', not 'formal advisor'."""

    user_prompt = f"""Give me a friendly but insightful analysis of {topic}. I want:
- Current price & recent changes
- Key levels to watch (support and resistance)
- What's driving the price
- Quick entry/exit thoughts
- Main risks to know

Keep it concise but actionable - like you're texting a friend who knows finance!"""

    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_prompt},
    ]


def _mock_analysis(topic: str) -> str:
    record_llm_provider("mock")
    price = base_price_for(topic)
    return (
        f"{topic} is trading at ${price:,.2f}, up 1.8% over the last 24h.\n"
        f"Momentum has been steady this week.\n\n"
        f"## Technical Analysis\n"
        f"- Support sits near ${price * 0.95:,.2f}\n"
        f"- Resistance is around ${price * 1.05:,.2f}\n"
        f"- Trend remains constructive above the 50-day average\n\n"
        f"## Market Drivers\n"
        f"- Broader risk appetite and rate expectations\n\n"
        f"## Entry/Exit\n"
        f"- Consider buying on dips near ${price * 0.96:,.2f}\n"
        f"- Take profit or sell into strength near ${price * 1.08:,.2f}\n"
        f"- Set a stop-loss at ${price * 0.9:,.2f}\n\n"
        f"## Risk Factors\n"
        f"- Volatility can spike on macro headlines\n"
        f"- Position sizing matters more than timing\n"
    )


class AnalysisClient:
    def __init__(
        self,
        api_key: str,
        api_base: str,
        timeout: int,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.endpoint = f"{api_base.rstrip('/')}/chat/completions"
        self.timeout = timeout
        self.session = session or requests.Session()

    @staticmethod
    def model_for(complexity: str) -> str:
        if complexity == COMPLEXITY_HIGH:
            return settings.PERPLEXITY_MODEL_COMPLEX
        return settings.PERPLEXITY_MODEL_BALANCED

    def chat(self, messages: List[Dict[str, str]], complexity: str, recency: str = "day") -> Dict[str, Any]:
        payload = {
            "model": self.model_for(complexity),
            "messages": messages,
            "max_tokens": settings.LLM_MAX_TOKENS,
            "temperature": settings.LLM_TEMPERATURE,
            "top_p": 0.9,
            "return_citations": True,
            "search_domain_filter": settings.PERPLEXITY_DOMAINS,
            "search_recency_filter": recency,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        start_time = time.perf_counter()
        try:
            resp = self.session.post(self.endpoint, headers=headers, json=payload, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except requests.Timeout as exc:
            logger.error("perplexity.timeout timeout=%s error=%s", self.timeout, exc)
            raise ServiceUnavailableError(details="Remote analysis timed out") from exc
        except (requests.RequestException, ValueError) as exc:
            logger.error("perplexity.request_failed error=%s", exc)
            raise ServiceUnavailableError(details=str(exc)) from exc

        choices = data.get("choices") if isinstance(data, dict) else None
        message = choices[0].get("message") if choices and isinstance(choices[0], dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not content:
            logger.error("perplexity.empty_response payload_keys=%s", list(data.keys()) if isinstance(data, dict) else None)
            raise ServiceUnavailableError(details="Remote analysis returned no content")

        logger.info(
            "perplexity.success model=%s latency_ms=%.0f",
            payload["model"],
            (time.perf_counter() - start_time) * 1000,
        )
        record_llm_provider("perplexity")
        return {
            "content": str(content).strip(),
            "citations": data.get("citations") or [],
            "usage": data.get("usage"),
        }


def _ensure_client() -> Optional[AnalysisClient]:
    global _ANALYSIS_CLIENT
    if _ANALYSIS_CLIENT:
        return _ANALYSIS_CLIENT
    if settings.LLM_MODE == "mock":
        return None
    if not settings.PERPLEXITY_API_KEY:
        raise LLMConfigurationError()
    _ANALYSIS_CLIENT = AnalysisClient(
        api_key=settings.PERPLEXITY_API_KEY,
        api_base=settings.PERPLEXITY_API_BASE,
        timeout=settings.PERPLEXITY_TIMEOUT,
    )
    return _ANALYSIS_CLIENT


def reset_analysis_client() -> None:
    global _ANALYSIS_CLIENT
    _ANALYSIS_CLIENT = None


def is_configured() -> bool:
    return settings.LLM_MODE == "mock" or bool(settings.PERPLEXITY_API_KEY)


def get_financial_analysis(topic: str, complexity: str) -> str:
    """
    Fetch free-text analysis for one asset. Attempted once; no retries.

    Raises:
        InsufficientContextError: no topic supplied.
        ServiceUnavailableError: timeout, network failure, bad payload or missing config.
    """
    if not topic:
        raise InsufficientContextError()

    client = _ensure_client()
    if client is None:
        return _mock_analysis(topic)

    result = client.chat(build_messages(topic), complexity)
    return result["content"]
