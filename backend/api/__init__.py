from flask import Blueprint

from financebot import (
    chat,
    health,
    metrics,
    session_init,
    upload,
)

bp = Blueprint("api", __name__)

bp.add_url_rule("/api/health", view_func=health, methods=["GET"])
bp.add_url_rule("/api/chat", view_func=chat, methods=["POST"])
bp.add_url_rule("/api/upload", view_func=upload, methods=["POST"])
bp.add_url_rule("/api/session/init", view_func=session_init, methods=["GET"])
bp.add_url_rule("/api/metrics", view_func=metrics, methods=["GET"])

__all__ = ["bp"]
