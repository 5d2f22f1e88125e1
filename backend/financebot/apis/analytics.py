"""In-process request analytics backing the /api/metrics endpoint."""
from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import Any, Deque, Dict, List, Optional

logger = logging.getLogger("financebot.analytics")

RECENT_QUERY_LIMIT = 200


class ChatbotAnalytics:
    def __init__(self, recent_limit: int = RECENT_QUERY_LIMIT):
        self.recent_queries: Deque[Dict[str, Any]] = deque(maxlen=recent_limit)
        self._lock = threading.Lock()
        self.reset()

    def reset(self) -> None:
        with self._lock:
            self.recent_queries.clear()
            self.performance_metrics: Dict[str, Any] = {
                "total_queries": 0,
                "successful_queries": 0,
                "failed_queries": 0,
                "total_response_time_ms": 0.0,
                "avg_response_time_ms": 0.0,
                "cache_hits": 0,
                "uploads": 0,
                "routing_counts": {},
                "query_type_counts": {},
                "error_counts": {},
            }
            self.start_time = time.time()

    def log_query(
        self,
        session_id: Optional[str],
        strategy: Optional[str],
        query_type: Optional[str],
        topic: Optional[str],
        latency_ms: float,
        status: str = "success",
        error_type: Optional[str] = None,
        cached: bool = False,
    ) -> None:
        entry = {
            "timestamp": time.time(),
            "session_id": session_id,
            "strategy": strategy,
            "query_type": query_type,
            "topic": topic,
            "latency_ms": latency_ms,
            "status": status,
            "error_type": error_type,
            "cached": cached,
        }
        with self._lock:
            self.recent_queries.append(entry)
            self._update_performance_metrics(entry)
        logger.debug("analytics.logged entry=%s", entry)

    def log_upload(self) -> None:
        with self._lock:
            self.performance_metrics["uploads"] += 1

    def _update_performance_metrics(self, entry: Dict[str, Any]) -> None:
        metrics = self.performance_metrics
        metrics["total_queries"] += 1
        metrics["total_response_time_ms"] += entry["latency_ms"]
        metrics["avg_response_time_ms"] = metrics["total_response_time_ms"] / metrics["total_queries"]

        if entry["status"] == "success":
            metrics["successful_queries"] += 1
        else:
            metrics["failed_queries"] += 1
            if entry["error_type"]:
                metrics["error_counts"][entry["error_type"]] = metrics["error_counts"].get(entry["error_type"], 0) + 1

        if entry["cached"]:
            metrics["cache_hits"] += 1
        if entry["strategy"]:
            metrics["routing_counts"][entry["strategy"]] = metrics["routing_counts"].get(entry["strategy"], 0) + 1
        if entry["query_type"]:
            metrics["query_type_counts"][entry["query_type"]] = (
                metrics["query_type_counts"].get(entry["query_type"], 0) + 1
            )

    def get_dashboard_metrics(self, **extra: Any) -> Dict[str, Any]:
        """Return key metrics for a dashboard."""
        with self._lock:
            metrics = self.performance_metrics
            total = metrics["total_queries"]
            data = {
                "uptime": time.time() - self.start_time,
                "total_queries": total,
                "successful_queries": metrics["successful_queries"],
                "failed_queries": metrics["failed_queries"],
                "error_rate": metrics["failed_queries"] / total if total else 0,
                "avg_response_time_ms": metrics["avg_response_time_ms"],
                "cache_hits": metrics["cache_hits"],
                "uploads": metrics["uploads"],
                "routing_distribution": dict(metrics["routing_counts"]),
                "query_type_distribution": dict(metrics["query_type_counts"]),
                "error_distribution": dict(metrics["error_counts"]),
            }
        data.update(extra)
        return data

    def recent(self, limit: int = 20) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self.recent_queries)[-limit:]


chatbot_analytics = ChatbotAnalytics()
