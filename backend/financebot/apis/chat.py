"""Chat pipeline: classify, route, compose, attach charts."""
from __future__ import annotations

import logging
import platform
import time
import uuid
from typing import Any, Dict, Optional, Tuple

from flask import jsonify, request

from . import settings
from .analysis_gateway import (
    get_financial_analysis,
    get_last_llm_provider,
    is_configured,
    record_llm_provider,
    reset_llm_provider,
)
from .analytics import chatbot_analytics
from .charts import generate_mock_price_data, generate_portfolio_donut, generate_price_chart
from .error_handler import categorize_error, error_response
from .portfolio_analyzer import analyze_portfolio
from .query_router import STRATEGY_PORTFOLIO, STRATEGY_REMOTE, QueryIntent, route_query
from .response_composer import (
    StructuredReply,
    compose_analysis_reply,
    compose_portfolio_reply,
    compose_static_reply,
)
from .security import clean_message, rate_limiter, read_chat_body
from .sessions import PortfolioSession, session_manager
from .store import ExpiringStore
from .utils import utc_timestamp

logger = logging.getLogger("financebot.chat")

# Keyed by (topic, complexity). Concurrent misses for one key both hit the
# gateway and the last write wins; there is no stampede protection.
analysis_cache = ExpiringStore(ttl=settings.ANALYSIS_CACHE_TTL, limit=settings.ANALYSIS_CACHE_LIMIT)


def _truncate(text: str, limit: int = 180) -> str:
    cleaned = (text or "").replace("\n", " ").strip()
    return cleaned if len(cleaned) <= limit else f"{cleaned[: limit - 1]}…"


def _handle_portfolio_query(
    session: PortfolioSession,
    request_id: str,
) -> Tuple[StructuredReply, Optional[Dict[str, Any]]]:
    analysis = analyze_portfolio(session.portfolio or [])
    reply = compose_portfolio_reply(analysis)
    chart = generate_portfolio_donut(analysis.top_holdings, analysis.total_value)
    logger.info(
        "chat.portfolio.success id=%s holdings=%s total_value=%.2f",
        request_id,
        analysis.holdings_count,
        analysis.total_value,
    )
    return reply, chart


def _handle_asset_query(
    intent: QueryIntent,
    request_id: str,
) -> Tuple[StructuredReply, Optional[Dict[str, Any]], bool]:
    cache_key = (intent.topic, intent.complexity)
    reply = analysis_cache.get(cache_key)
    cached = reply is not None
    if cached:
        record_llm_provider("cache")
    else:
        text = get_financial_analysis(intent.topic, intent.complexity)
        reply = compose_analysis_reply(intent.topic, text, intent.complexity)
        analysis_cache.set(cache_key, reply)

    chart = None
    if intent.needs_chart:
        chart = generate_price_chart(
            generate_mock_price_data(intent.topic),
            title=f"{intent.topic} Price Movement",
            label=intent.topic,
        )
    logger.info(
        "chat.asset.success id=%s topic=%s complexity=%s cached=%s chart=%s",
        request_id,
        intent.topic,
        intent.complexity,
        cached,
        chart is not None,
    )
    return reply, chart, cached


def handle_chat(message: str, session_id: Optional[str] = None, *, request_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Answer one sanitised chat message.

    Returns:
        ``{success, message, data, chart, metadata}``

    Raises:
        ServiceUnavailableError: the remote analysis gateway failed or is unconfigured.
    """
    request_id = request_id or str(uuid.uuid4())
    logger.info(
        "chat.request.start id=%s session=%s prompt_len=%s prompt=%s",
        request_id,
        session_id,
        len(message or ""),
        _truncate(message, 240),
    )

    reset_llm_provider()
    session = session_manager.get_session(session_id)
    has_portfolio = bool(session and session.has_portfolio)
    strategy, intent = route_query(message, has_portfolio)

    chart: Optional[Dict[str, Any]] = None
    cached = False
    if strategy == STRATEGY_PORTFOLIO:
        reply, chart = _handle_portfolio_query(session, request_id)
    elif strategy == STRATEGY_REMOTE:
        reply, chart, cached = _handle_asset_query(intent, request_id)
    else:
        reply = compose_static_reply(intent, message, has_portfolio)

    return {
        "success": True,
        "message": reply.message,
        "data": reply.to_dict(),
        "chart": chart,
        "metadata": {
            "queryType": intent.type,
            "topic": intent.topic,
            "complexity": intent.complexity,
            "strategy": strategy,
            "hasChart": chart is not None,
            "cached": cached,
            "llmSource": get_last_llm_provider(),
            "timestamp": utc_timestamp(),
            "requestId": request_id,
        },
    }


def run_housekeeping() -> Dict[str, int]:
    """Expire idle sessions, stale cache entries and idle rate-limit windows."""
    return {
        "sessions": session_manager.clean_stale_sessions(),
        "cache": analysis_cache.purge_expired(),
        "rateLimiter": rate_limiter.prune(),
    }


def chat():
    data = request.get_json(silent=True)
    session_id = None
    start_time = time.perf_counter()
    try:
        rate_limiter.enforce(request.remote_addr)
        session_id, raw_message = read_chat_body(data)
        message = clean_message(raw_message)
        result = handle_chat(message, session_id)
    except Exception as exc:
        chatbot_analytics.log_query(
            session_id=session_id,
            strategy=None,
            query_type=None,
            topic=None,
            latency_ms=(time.perf_counter() - start_time) * 1000,
            status="error",
            error_type=categorize_error(exc),
        )
        logger.warning("chat.endpoint.failed ip=%s error=%s", request.remote_addr, exc)
        payload, status = error_response(exc)
        return jsonify(payload), status

    metadata = result["metadata"]
    chatbot_analytics.log_query(
        session_id=session_id,
        strategy=metadata["strategy"],
        query_type=metadata["queryType"],
        topic=metadata["topic"],
        latency_ms=(time.perf_counter() - start_time) * 1000,
        cached=metadata["cached"],
    )
    return jsonify(result)


def session_init():
    run_housekeeping()
    session = session_manager.create_session()
    return jsonify({"success": True, "sessionId": session.session_id})


def health():
    swept = run_housekeeping()
    return jsonify({
        "status": "healthy",
        "message": f"{settings.APP_NAME} - Production Ready",
        "version": settings.APP_VERSION,
        "features": {
            "modernCharts": True,
            "improvedCSVParsing": True,
            "portfolioAnalysis": True,
            "perplexityIntegration": is_configured(),
            "rateLimiting": True,
            "caching": True,
            "errorHandling": True,
            "security": True,
        },
        "system": {
            "environment": settings.APP_ENV,
            "python": platform.python_version(),
            "platform": platform.system(),
            "llmMode": settings.LLM_MODE or "perplexity",
            "sessions": len(session_manager),
            "cacheEntries": len(analysis_cache),
            "expired": swept,
        },
    }), 200


def metrics():
    return jsonify(chatbot_analytics.get_dashboard_metrics(
        sessions=len(session_manager),
        cacheEntries=len(analysis_cache),
        recentQueries=chatbot_analytics.recent(10),
    ))
