"""
Stale Session Sweeper.

WHAT: Background job that flags idle in-progress sessions as abandoned.

WHY: Respondents close the browser without submitting. Until a session is
flagged abandoned it keeps counting as an incomplete response and drags the
completion rate down indefinitely.

HOW: Scheduled by APScheduler (see services/scheduler.py). Each run opens
its own database session, flags sessions idle for longer than
SESSION_ABANDON_AFTER_MINUTES and commits.
"""

import logging
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from survey_analytics.core.config import settings
from survey_analytics.db.session import AsyncSessionLocal
from survey_analytics.services.response_service import ResponseService


logger = logging.getLogger(__name__)


class SessionSweeper:
    """
    Flags stale response sessions as abandoned.

    Args:
        session_factory: Optional factory for creating database sessions;
            defaults to the application's session factory
    """

    def __init__(self, session_factory: Optional[Callable[[], AsyncSession]] = None):
        self._session_factory = session_factory or AsyncSessionLocal

    async def sweep(self, older_than_minutes: Optional[int] = None) -> dict:
        """
        Run one sweep.

        Returns:
            Dict with the number of sessions flagged
        """
        minutes = older_than_minutes or settings.SESSION_ABANDON_AFTER_MINUTES
        logger.info(f"Starting stale session sweep (idle > {minutes} minutes)")

        async with self._session_factory() as session:
            try:
                abandoned = await ResponseService(session).abandon_stale_sessions(minutes)
                await session.commit()
            except Exception:
                await session.rollback()
                logger.exception("Stale session sweep failed")
                raise

        logger.info(f"Stale session sweep finished: {abandoned} abandoned")
        return {"abandoned": abandoned}


_sweeper: Optional[SessionSweeper] = None


def get_session_sweeper() -> SessionSweeper:
    """Get the shared sweeper instance."""
    global _sweeper
    if _sweeper is None:
        _sweeper = SessionSweeper()
    return _sweeper
