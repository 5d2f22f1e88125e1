"""CSV portfolio upload endpoint."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from flask import jsonify, request

from . import settings
from .analytics import chatbot_analytics
from .error_handler import (
    InvalidInputError,
    ParseFailureError,
    UnsupportedMediaError,
    error_response,
)
from .portfolio_analyzer import analyze_portfolio
from .portfolio_ingestion import Holding, parse_portfolio_csv, summarize_parse_error, validate_portfolio_data
from .security import rate_limiter
from .sessions import session_manager

logger = logging.getLogger("financebot.uploads")

UPLOAD_HINT = "Expected a header row with at least a symbol (or ticker) column and a market_value (or value) column."


def is_csv_upload(filename: Optional[str], mimetype: Optional[str]) -> bool:
    if (filename or "").lower().endswith(".csv"):
        return True
    return (mimetype or "").split(";")[0].strip().lower() in settings.ALLOWED_UPLOAD_MIMETYPES


def handle_upload(files: List[Any], session_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Parse uploaded CSV files and attach the resulting portfolio to the session.

    When several files parse, the last successful one is kept. Validation gaps
    and per-file problems are reported as warnings rather than failures.

    Raises:
        InvalidInputError: no files, or more than ``MAX_UPLOAD_FILES``.
        UnsupportedMediaError: none of the files is a CSV.
        ParseFailureError: no file yielded any holdings.
    """
    files = [f for f in files if f is not None and getattr(f, "filename", None)]
    if not files:
        raise InvalidInputError("No files provided")
    if len(files) > settings.MAX_UPLOAD_FILES:
        raise InvalidInputError(f"At most {settings.MAX_UPLOAD_FILES} files can be uploaded at once")

    warnings: List[str] = []
    csv_files = []
    for upload in files:
        if is_csv_upload(upload.filename, upload.mimetype):
            csv_files.append(upload)
        else:
            warnings.append(f"{upload.filename}: skipped, only CSV files are supported")
    if not csv_files:
        raise UnsupportedMediaError(details=[upload.filename for upload in files])

    portfolio: Optional[List[Holding]] = None
    parse_errors: List[Dict[str, str]] = []
    for upload in csv_files:
        payload = upload.read()
        if len(payload) > settings.MAX_UPLOAD_BYTES:
            parse_errors.append({"file": upload.filename, "error": "File exceeds the upload size limit"})
            continue

        result = parse_portfolio_csv(payload)
        problem = summarize_parse_error(result)
        if problem:
            parse_errors.append({"file": upload.filename, "error": problem})
            continue

        portfolio = result["data"]
        validation = validate_portfolio_data(portfolio)
        if not validation["valid"]:
            warnings.append(f"{upload.filename}: missing values for {', '.join(validation['missing'])}")
        logger.info("upload.parsed file=%s holdings=%s", upload.filename, len(portfolio))

    warnings.extend(f"{entry['file']}: {entry['error']}" for entry in parse_errors if portfolio)
    if not portfolio:
        raise ParseFailureError(details=parse_errors)

    session = session_manager.save_portfolio(session_id, portfolio)
    analysis = analyze_portfolio(portfolio)
    chatbot_analytics.log_upload()

    return {
        "success": True,
        "message": f"Portfolio uploaded successfully! Found {analysis.holdings_count} holdings.",
        "hasPortfolio": True,
        "sessionId": session.session_id,
        "summary": {
            "holdings": analysis.holdings_count,
            "totalValue": round(analysis.total_value, 2),
            "totalGainLoss": round(analysis.total_gain_loss, 2),
            "topHoldings": analysis.top_holdings[: settings.MAX_SUMMARY_ITEMS],
        },
        "warnings": warnings,
    }


def upload():
    session_id = request.form.get("sessionId") or request.args.get("sessionId")
    try:
        rate_limiter.enforce(request.remote_addr)
        result = handle_upload(request.files.getlist("files"), session_id)
    except Exception as exc:
        logger.warning("upload.failed session=%s error=%s", session_id, exc)
        extra = {"hint": UPLOAD_HINT} if isinstance(exc, ParseFailureError) else {}
        payload, status = error_response(exc, **extra)
        return jsonify(payload), status
    return jsonify(result)
