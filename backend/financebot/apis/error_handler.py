"""Error taxonomy and structured error responses for the chat backend."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

import requests

from . import settings

logger = logging.getLogger("financebot.error_handler")


class FinanceBotError(Exception):
    code = "INTERNAL_ERROR"
    status = 500
    default_message = "Something went wrong. Please try again."

    def __init__(self, message: Optional[str] = None, *, details: Any = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details = details


class InvalidInputError(FinanceBotError):
    code = "INVALID_INPUT"
    status = 400
    default_message = "Invalid request."


class UnsupportedMediaError(FinanceBotError):
    code = "UNSUPPORTED_MEDIA"
    status = 415
    default_message = "Only CSV portfolio files are supported."


class ParseFailureError(FinanceBotError):
    code = "PARSE_FAILURE"
    status = 422
    default_message = "Could not parse portfolio data."


class InsufficientContextError(FinanceBotError):
    code = "INSUFFICIENT_CONTEXT"
    status = 422
    default_message = "Could not determine which asset or portfolio you mean."


class ServiceUnavailableError(FinanceBotError):
    code = "SERVICE_UNAVAILABLE"
    status = 503
    default_message = "Analysis temporarily unavailable. Please try again."


class RateLimitedError(FinanceBotError):
    code = "RATE_LIMITED"
    status = 429
    default_message = "Too many requests. Please slow down and try again shortly."


def error_response(exc: Exception, **extra: Any) -> Tuple[Dict[str, Any], int]:
    """Convert any exception into a ``(payload, status)`` pair for jsonify."""
    if isinstance(exc, FinanceBotError):
        payload: Dict[str, Any] = {
            "success": False,
            "error": exc.message,
            "code": exc.code,
        }
        status = exc.status
        details = exc.details
    else:
        logger.exception("request.unhandled error=%s", exc)
        payload = {
            "success": False,
            "error": FinanceBotError.default_message,
            "code": FinanceBotError.code,
        }
        status = FinanceBotError.status
        details = str(exc)

    if details is not None and settings.APP_ENV != "production":
        payload["details"] = details
    payload.update(extra)
    return payload, status


def categorize_error(exc: Exception) -> str:
    """Categorize different types of errors for analytics."""
    if isinstance(exc, FinanceBotError):
        return exc.code
    if isinstance(exc, (TimeoutError, requests.Timeout)) or "timeout" in str(exc).lower():
        return "TimeoutError"
    if isinstance(exc, requests.RequestException):
        return "APIError"
    if isinstance(exc, (ValueError, TypeError)):
        return "InputValidationError"
    return "GeneralError"
