"""Security features for the chatbot including rate limiting and input sanitization."""
from __future__ import annotations

import logging
import re
import threading
import time
from collections import defaultdict, deque
from typing import Deque, Dict, Optional, Tuple

from . import settings
from .error_handler import InvalidInputError, RateLimitedError

logger = logging.getLogger("financebot.security")

SUSPICIOUS_PATTERNS = [
    r"<script",
    r"javascript:",
    r"vbscript:",
    r"onload=",
    r"onerror=",
    r"<iframe",
    r"<object",
    r"<embed",
]


class RateLimiter:
    def __init__(self, max_requests: int = 10, time_window: int = 60):
        self.max_requests = max_requests
        self.time_window = time_window
        self.requests: Dict[str, Deque[float]] = defaultdict(deque)
        self._lock = threading.Lock()

    def check_request(self, client_ip: str) -> bool:
        """Check if request is within rate limits."""
        current_time = time.time()
        with self._lock:
            window = self.requests[client_ip]
            while window and window[0] < current_time - self.time_window:
                window.popleft()

            if len(window) >= self.max_requests:
                return False

            window.append(current_time)
            return True

    def enforce(self, client_ip: Optional[str]) -> None:
        if not self.check_request(client_ip or "unknown"):
            logger.warning("rate_limit.exceeded ip=%s", client_ip)
            raise RateLimitedError()

    def prune(self) -> int:
        """Drop clients whose whole window has expired."""
        cutoff = time.time() - self.time_window
        with self._lock:
            idle = [ip for ip, window in self.requests.items() if not window or window[-1] < cutoff]
            for ip in idle:
                del self.requests[ip]
        return len(idle)

    def reset(self) -> None:
        with self._lock:
            self.requests.clear()


def sanitize_input(user_input: str) -> str:
    """Strip angle brackets and collapse whitespace."""
    if not user_input:
        return ""
    sanitized = re.sub(r"[<>]", "", user_input)
    return re.sub(r"\s+", " ", sanitized).strip()


def validate_query(query: str, max_length: Optional[int] = None) -> bool:
    """Validate that query is safe and reasonable."""
    max_length = settings.MAX_MESSAGE_LENGTH if max_length is None else max_length
    if not query or len(query.strip()) == 0:
        return False

    if len(query) > max_length:
        return False

    query_lower = query.lower()
    for pattern in SUSPICIOUS_PATTERNS:
        if re.search(pattern, query_lower):
            logger.warning("security.suspicious_query query=%s", query[:120])
            return False

    return True


def read_chat_body(data: object) -> Tuple[Optional[str], object]:
    """
    Split a decoded chat body into ``(session_id, raw_message)``.

    Raises:
        InvalidInputError: the body is not a JSON object, or ``sessionId`` is not a string.
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise InvalidInputError("Request body must be a JSON object")
    session_id = data.get("sessionId")
    if session_id is not None and not isinstance(session_id, str):
        raise InvalidInputError("sessionId must be a string")
    return session_id or None, data.get("message")


def clean_message(raw: object) -> str:
    """
    Enforce the chat message contract before classification.

    Raises:
        InvalidInputError: missing, empty, oversized or script-bearing messages.
    """
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidInputError("Message is required")
    if len(raw) > settings.MAX_MESSAGE_LENGTH:
        raise InvalidInputError(f"Message must be at most {settings.MAX_MESSAGE_LENGTH} characters")
    if not validate_query(raw):
        raise InvalidInputError("Message contains unsupported content")
    message = sanitize_input(raw)
    if not message:
        raise InvalidInputError("Message is required")
    return message


rate_limiter = RateLimiter(
    max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
    time_window=settings.RATE_LIMIT_WINDOW,
)
