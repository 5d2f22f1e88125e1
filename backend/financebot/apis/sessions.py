"""Session tracking: which portfolio belongs to which chat session."""
from __future__ import annotations

import logging
import time
import uuid
from typing import List, Optional

from . import settings
from .portfolio_ingestion import Holding
from .store import ExpiringStore

logger = logging.getLogger("financebot.sessions")

DEFAULT_SESSION_ID = "default"


class PortfolioSession:
    def __init__(self, session_id: str, portfolio: Optional[List[Holding]] = None):
        self.session_id = session_id
        self.portfolio: Optional[List[Holding]] = portfolio
        self.created_at: float = time.time()
        self.updated_at: float = self.created_at

    @property
    def has_portfolio(self) -> bool:
        return bool(self.portfolio)

    def attach_portfolio(self, holdings: List[Holding]) -> None:
        self.portfolio = list(holdings)
        self.updated_at = time.time()


def new_session_id() -> str:
    return f"session_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class SessionManager:
    def __init__(self, ttl: int = settings.SESSION_TTL, limit: int = settings.SESSION_LIMIT):
        self.sessions = ExpiringStore(ttl=ttl, limit=limit)

    def create_session(self) -> PortfolioSession:
        session = PortfolioSession(new_session_id())
        self.sessions.set(session.session_id, session)
        logger.info("session.created id=%s", session.session_id)
        return session

    def get_session(self, session_id: Optional[str]) -> Optional[PortfolioSession]:
        return self.sessions.get(session_id or DEFAULT_SESSION_ID)

    def get_or_create(self, session_id: Optional[str]) -> PortfolioSession:
        session_id = session_id or DEFAULT_SESSION_ID
        session = self.sessions.get(session_id)
        if session is None:
            session = PortfolioSession(session_id)
            logger.info("session.adopted id=%s", session_id)
        return session

    def save_portfolio(self, session_id: Optional[str], holdings: List[Holding]) -> PortfolioSession:
        session = self.get_or_create(session_id)
        session.attach_portfolio(holdings)
        # Re-setting the entry restarts its TTL after every upload
        self.sessions.set(session.session_id, session)
        logger.info("session.portfolio_saved id=%s holdings=%s", session.session_id, len(holdings))
        return session

    def clean_stale_sessions(self) -> int:
        removed = self.sessions.purge_expired()
        if removed:
            logger.info("session.cleanup removed=%s", removed)
        return removed

    def __len__(self) -> int:
        return len(self.sessions)


session_manager = SessionManager()
