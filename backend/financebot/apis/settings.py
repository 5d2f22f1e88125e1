from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

load_dotenv()

APP_NAME = "FinanceBot Pro"
APP_VERSION = "3.0.0"
APP_ENV = (os.getenv("APP_ENV") or "development").strip().lower()
LOG_LEVEL = (os.getenv("LOG_LEVEL") or "INFO").strip().upper()

PERPLEXITY_API_KEY = os.getenv("PERPLEXITY_API_KEY")
PERPLEXITY_API_BASE = (os.getenv("PERPLEXITY_API_BASE") or "https://api.perplexity.ai").rstrip("/")
PERPLEXITY_MODEL_COMPLEX = os.getenv("PERPLEXITY_MODEL_COMPLEX", "llama-3.1-sonar-large-128k-online")
PERPLEXITY_MODEL_BALANCED = os.getenv("PERPLEXITY_MODEL_BALANCED", "llama-3.1-sonar-small-128k-online")
PERPLEXITY_TIMEOUT = int(os.getenv("PERPLEXITY_TIMEOUT", "30"))
PERPLEXITY_DOMAINS = [
    "yahoo.finance.com",
    "bloomberg.com",
    "reuters.com",
    "marketwatch.com",
    "tradingview.com",
]

LLM_MODE = (os.getenv("LLM_MODE") or "").strip().lower()
LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.2"))
LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "4000"))

ANALYSIS_CACHE_TTL = int(os.getenv("ANALYSIS_CACHE_TTL", "300"))
ANALYSIS_CACHE_LIMIT = int(os.getenv("ANALYSIS_CACHE_LIMIT", "500"))

SESSION_TTL = int(os.getenv("SESSION_TTL", str(24 * 60 * 60)))
SESSION_LIMIT = int(os.getenv("SESSION_LIMIT", "10000"))

RATE_LIMIT_MAX_REQUESTS = int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "30"))
RATE_LIMIT_WINDOW = int(os.getenv("RATE_LIMIT_WINDOW", "60"))

MAX_MESSAGE_LENGTH = int(os.getenv("MAX_MESSAGE_LENGTH", "1000"))
MAX_UPLOAD_FILES = int(os.getenv("MAX_UPLOAD_FILES", "5"))
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))
ALLOWED_UPLOAD_MIMETYPES = {
    "text/csv",
    "application/csv",
    "application/vnd.ms-excel",
}

MAX_SUMMARY_ITEMS = int(os.getenv("MAX_SUMMARY_ITEMS", "3"))
MAX_SECTION_LINES = int(os.getenv("MAX_SECTION_LINES", "3"))
MAX_ACTION_ITEMS = int(os.getenv("MAX_ACTION_ITEMS", "4"))
MAX_ACTIONS_PER_KIND = int(os.getenv("MAX_ACTIONS_PER_KIND", "2"))
MAX_REPLY_WORDS = int(os.getenv("MAX_REPLY_WORDS", "300"))

SYMBOL_CANDIDATES = ["symbol", "ticker", "asset", "stock"]
ASSET_CANDIDATES = ["asset", "name", "description", "symbol"]
SHARES_CANDIDATES = ["shares", "quantity", "qty", "units"]
PURCHASE_PRICE_CANDIDATES = ["purchase_price", "cost", "buy_price", "avg_cost"]
CURRENT_PRICE_CANDIDATES = ["current_price", "price", "last_price", "market_price"]
MARKET_VALUE_CANDIDATES = ["market_value", "value", "total_value", "position_value"]
GAIN_LOSS_CANDIDATES = ["gain_loss", "pnl", "profit_loss", "unrealized_gain"]
ASSET_TYPE_CANDIDATES = ["asset_type", "type", "category"]

logger = logging.getLogger("financebot")

__all__ = [
    "ALLOWED_UPLOAD_MIMETYPES",
    "ANALYSIS_CACHE_LIMIT",
    "ANALYSIS_CACHE_TTL",
    "APP_ENV",
    "APP_NAME",
    "APP_VERSION",
    "ASSET_CANDIDATES",
    "ASSET_TYPE_CANDIDATES",
    "CURRENT_PRICE_CANDIDATES",
    "GAIN_LOSS_CANDIDATES",
    "LLM_MAX_TOKENS",
    "LLM_MODE",
    "LLM_TEMPERATURE",
    "LOG_LEVEL",
    "MARKET_VALUE_CANDIDATES",
    "MAX_ACTION_ITEMS",
    "MAX_ACTIONS_PER_KIND",
    "MAX_MESSAGE_LENGTH",
    "MAX_REPLY_WORDS",
    "MAX_SECTION_LINES",
    "MAX_SUMMARY_ITEMS",
    "MAX_UPLOAD_BYTES",
    "MAX_UPLOAD_FILES",
    "PERPLEXITY_API_BASE",
    "PERPLEXITY_API_KEY",
    "PERPLEXITY_DOMAINS",
    "PERPLEXITY_MODEL_BALANCED",
    "PERPLEXITY_MODEL_COMPLEX",
    "PERPLEXITY_TIMEOUT",
    "PURCHASE_PRICE_CANDIDATES",
    "RATE_LIMIT_MAX_REQUESTS",
    "RATE_LIMIT_WINDOW",
    "SESSION_LIMIT",
    "SESSION_TTL",
    "SHARES_CANDIDATES",
    "SYMBOL_CANDIDATES",
    "logger",
]
