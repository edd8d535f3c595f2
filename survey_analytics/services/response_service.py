"""
Response Service.

WHAT: Business logic for the survey response lifecycle.

WHY: A respondent's answers live in an in-progress session while they work
through the survey and become a completed response when they submit. The
lifecycle rules decide what the analytics see:
1. At most one open session per (survey, respondent); starting again resumes it
2. Answers are upserted by question id, so re-answering replaces
3. Submission inserts the completed response and deletes the respondent's
   sessions in the same transaction, so nobody is counted twice
4. Sessions left untouched too long are flagged abandoned by a sweep

HOW: Orchestrates the survey and response DAOs. The caller's session
transaction (get_db) provides atomicity; this service only flushes.
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from survey_analytics.core.config import settings
from survey_analytics.core.exceptions import (
    AuthorizationError,
    ResponseNotFoundError,
    SessionAlreadyCompletedError,
    SessionNotFoundError,
    SurveyNotFoundError,
    SurveyNotPublishedError,
    ValidationError,
)
from survey_analytics.dao.survey import (
    IncompleteSurveyResponseDAO,
    SurveyDAO,
    SurveyResponseDAO,
)
from survey_analytics.middleware.request_context import get_request_context
from survey_analytics.models.base import utc_now
from survey_analytics.models.survey import IncompleteSurveyResponse, Survey, SurveyResponse
from survey_analytics.models.user import User, UserRole
from survey_analytics.services.breakdowns import detect_device_type
from survey_analytics.services.response_filters import record_value, to_utc_naive


logger = logging.getLogger(__name__)


# Fields an administrator may correct on a completed response
CORRECTABLE_FIELDS = {
    "responses",
    "progress",
    "response_metadata",
    "demographics",
    "section_times",
    "engagement_score",
    "start_time",
    "end_time",
}


def upsert_answer(items: Optional[List[Dict[str, Any]]], answer_item: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Replace the answer for answer_item's question, or append it.

    Returns a new list; the input is not modified so JSON columns see a
    fresh value on assignment.
    """
    question_id = answer_item["question_id"]
    updated = []
    replaced = False
    for item in items or []:
        if isinstance(item, dict) and str(record_value(item, "question_id", "questionId")) == question_id:
            updated.append(answer_item)
            replaced = True
        else:
            updated.append(item)
    if not replaced:
        updated.append(answer_item)
    return updated


def merge_answers(
    base: Optional[List[Dict[str, Any]]], overrides: List[Dict[str, Any]]
) -> List[Dict[str, Any]]:
    """Apply each override answer on top of base, in order."""
    merged = [dict(item) for item in base or [] if isinstance(item, dict)]
    for item in overrides:
        merged = upsert_answer(merged, item)
    return merged


def completion_seconds(start_time: Optional[datetime], end_time: Optional[datetime]) -> Optional[float]:
    if start_time is None or end_time is None:
        return None
    return (end_time - start_time).total_seconds()


class ResponseService:
    """
    Service for the response lifecycle.

    Args:
        session: Async database session
        now: Clock returning naive UTC time (injectable for tests)
    """

    def __init__(self, session: AsyncSession, now=None):
        self.session = session
        self.survey_dao = SurveyDAO(session)
        self.response_dao = SurveyResponseDAO(session)
        self.incomplete_dao = IncompleteSurveyResponseDAO(session)
        self._now = now or utc_now

    async def _get_open_survey(self, survey_id: int) -> Survey:
        survey = await self.survey_dao.get_by_id(survey_id)
        if not survey:
            raise SurveyNotFoundError(survey_id=survey_id)
        if not survey.published:
            raise SurveyNotPublishedError(survey_id=survey_id)
        return survey

    async def get_session(self, session_id: int) -> IncompleteSurveyResponse:
        response_session = await self.incomplete_dao.get_by_id(session_id)
        if not response_session:
            raise SessionNotFoundError(session_id=session_id)
        return response_session

    # =========================================================================
    # In-progress sessions
    # =========================================================================

    async def start_session(
        self,
        survey_id: int,
        respondent_id: str,
        device_type: Optional[str] = None,
    ) -> Tuple[IncompleteSurveyResponse, bool]:
        """
        Start or resume a respondent's session for a survey.

        WHAT: Find-or-create on (survey_id, respondent_id, not completed).
        Resuming touches last_updated_at and clears an abandoned flag.

        Args:
            survey_id: Survey ID
            respondent_id: Respondent identifier
            device_type: Device class; detected from the User-Agent if omitted

        Returns:
            (session, created)

        Raises:
            SurveyNotFoundError: If survey doesn't exist
            SurveyNotPublishedError: If survey isn't published
        """
        await self._get_open_survey(survey_id)
        now = self._now()

        existing = await self.incomplete_dao.get_open_session(survey_id, respondent_id)
        if existing:
            existing.last_updated_at = now
            existing.is_abandoned = None
            await self.session.flush()
            await self.session.refresh(existing)
            logger.debug(f"Resumed session {existing.id} for survey {survey_id}")
            return existing, False

        if device_type is None:
            context = get_request_context()
            device_type = detect_device_type(context.user_agent if context else None)

        created = await self.incomplete_dao.create(
            survey_id=survey_id,
            respondent_id=respondent_id,
            responses=[],
            is_completed=False,
            started_at=now,
            last_updated_at=now,
            device_type=device_type,
        )
        logger.info(f"Started session {created.id} for survey {survey_id}")
        return created, True

    async def record_answer(
        self,
        session_id: int,
        question_id: str,
        answer: Any,
        section_id: Optional[str] = None,
        time_spent: Optional[float] = None,
        skipped: Optional[bool] = None,
        engagement_score: Optional[float] = None,
    ) -> IncompleteSurveyResponse:
        """
        Upsert one answer into a session.

        Raises:
            SessionNotFoundError: If session doesn't exist
            SessionAlreadyCompletedError: If session was already completed
        """
        response_session = await self.get_session(session_id)
        if response_session.is_completed:
            raise SessionAlreadyCompletedError(session_id=session_id)

        item: Dict[str, Any] = {"question_id": str(question_id), "answer": answer}
        if section_id is not None:
            item["section_id"] = section_id
        if time_spent is not None:
            item["time_spent"] = time_spent
        if skipped is not None:
            item["skipped"] = skipped

        response_session.responses = upsert_answer(response_session.responses, item)
        response_session.last_updated_at = self._now()
        response_session.is_abandoned = None
        if engagement_score is not None:
            response_session.engagement_score = engagement_score

        await self.session.flush()
        await self.session.refresh(response_session)
        return response_session

    async def mark_completed(self, session_id: int) -> bool:
        """Flag a session completed. Returns False if it doesn't exist."""
        updated = await self.incomplete_dao.update(
            session_id, is_completed=True, last_updated_at=self._now()
        )
        return updated is not None

    async def mark_abandoned(self, session_id: int) -> bool:
        """Flag a session abandoned. Returns False if it doesn't exist."""
        updated = await self.incomplete_dao.update(
            session_id, is_abandoned=True, last_updated_at=self._now()
        )
        return updated is not None

    async def abandon_stale_sessions(self, older_than_minutes: Optional[int] = None) -> int:
        """
        Flag open sessions idle for longer than older_than_minutes.

        Returns:
            Number of sessions flagged
        """
        minutes = older_than_minutes or settings.SESSION_ABANDON_AFTER_MINUTES
        cutoff = self._now() - timedelta(minutes=minutes)
        count = await self.incomplete_dao.abandon_stale(cutoff)
        if count:
            logger.info(f"Flagged {count} sessions idle since before {cutoff.isoformat()} as abandoned")
        return count

    # =========================================================================
    # Submission
    # =========================================================================

    async def submit_response(
        self,
        survey_id: int,
        responses: List[Dict[str, Any]],
        respondent_id: Optional[str] = None,
        session_id: Optional[int] = None,
        user_id: Optional[int] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        progress: int = 100,
        metadata: Optional[Dict[str, Any]] = None,
        demographics: Optional[Dict[str, Any]] = None,
        section_times: Optional[Dict[str, Any]] = None,
        engagement_score: Optional[float] = None,
    ) -> Tuple[SurveyResponse, bool]:
        """
        Submit a completed response.

        WHAT: Creates the completed response and deletes the respondent's
        in-progress sessions for the survey.

        WHY: Both writes happen in the caller's transaction, so a failure
        leaves the session in place and a success never leaves both rows.
        When session_id refers to a session that was already promoted, the
        response promoted from it (recorded as metadata.session_id) is
        returned instead of creating a second. Any other earlier response
        of the respondent is left alone and SessionNotFoundError is raised.

        Args:
            survey_id: Survey ID
            responses: Answer items; override the session's answers per question
            respondent_id: Respondent identifier (session's, or generated)
            session_id: In-progress session being submitted
            user_id: Authenticated user, if any
            start_time: Defaults to the session's started_at, else end_time
            end_time: Defaults to now
            progress: 0-100
            metadata: Client metadata; ip, user agent and device are added
            demographics: Optional demographics bag
            section_times: Section id -> seconds
            engagement_score: Defaults to the session's score

        Returns:
            (response, created)

        Raises:
            SurveyNotFoundError, SurveyNotPublishedError, SessionNotFoundError,
            ValidationError
        """
        await self._get_open_survey(survey_id)

        response_session = None
        if session_id is not None:
            response_session = await self.incomplete_dao.get_by_id(session_id)
            if response_session is None:
                if respondent_id:
                    previous = await self.response_dao.get_for_respondent(survey_id, respondent_id)
                    if previous and (previous.response_metadata or {}).get("session_id") == session_id:
                        logger.info(f"Repeated submission of session {session_id}; returning response {previous.id}")
                        return previous, False
                    if previous:
                        logger.warning(
                            f"Session {session_id} not found and response {previous.id} of respondent "
                            f"{respondent_id} was not promoted from it; rejecting submission"
                        )
                raise SessionNotFoundError(session_id=session_id)
            if response_session.survey_id != survey_id:
                raise ValidationError(
                    message="Session belongs to a different survey",
                    session_id=session_id,
                    survey_id=survey_id,
                )

        if not 0 <= progress <= 100:
            raise ValidationError(message="Progress must be between 0 and 100", progress=progress)

        end = to_utc_naive(end_time) or self._now()
        start = to_utc_naive(start_time)
        if start is None and response_session is not None:
            start = response_session.started_at
        if start is None:
            start = end
        if end < start:
            raise ValidationError(
                message="End time must not be before start time",
                start_time=start.isoformat(),
                end_time=end.isoformat(),
            )

        # The session's respondent wins so the session is the one removed below
        respondent = (
            (response_session.respondent_id if response_session else None)
            or respondent_id
            or f"anon-{uuid.uuid4().hex}"
        )

        answers = merge_answers(response_session.responses if response_session else [], responses)
        if engagement_score is None and response_session is not None:
            engagement_score = response_session.engagement_score

        now = self._now()
        response = await self.response_dao.create(
            survey_id=survey_id,
            respondent_id=respondent,
            user_id=user_id,
            responses=answers,
            completed=True,
            start_time=start,
            end_time=end,
            completion_time=completion_seconds(start, end),
            progress=progress,
            response_metadata=self._build_metadata(metadata, response_session),
            demographics=demographics,
            section_times=section_times,
            engagement_score=engagement_score,
            created_at=now,
            updated_at=now,
        )

        removed = await self.incomplete_dao.delete_for_respondent(survey_id, respondent)
        logger.info(
            f"Response {response.id} submitted for survey {survey_id}; "
            f"removed {removed} in-progress session(s)"
        )
        return response, True

    def _build_metadata(
        self,
        metadata: Optional[Dict[str, Any]],
        response_session: Optional[IncompleteSurveyResponse],
    ) -> Dict[str, Any]:
        result = dict(metadata or {})
        context = get_request_context()
        if context:
            result.setdefault("ip_address", context.ip_address)
            if context.user_agent:
                result.setdefault("user_agent", context.user_agent)

        if response_session is not None:
            result["session_id"] = response_session.id

        if not result.get("device_type"):
            if response_session is not None and response_session.device_type:
                result["device_type"] = response_session.device_type
            else:
                result["device_type"] = detect_device_type(result.get("user_agent"))
        return result

    # =========================================================================
    # Administrative corrections
    # =========================================================================

    @staticmethod
    def _require_admin(actor: User, action: str, response_id: int) -> None:
        if actor is None or actor.role != UserRole.ADMIN:
            raise AuthorizationError(
                message=f"Only administrators may {action} survey responses",
                response_id=response_id,
                user_id=getattr(actor, "id", None),
            )

    async def get_response(self, response_id: int) -> SurveyResponse:
        response = await self.response_dao.get_by_id(response_id)
        if not response:
            raise ResponseNotFoundError(response_id=response_id)
        return response

    async def update_response(self, response_id: int, actor: User, **fields: Any) -> SurveyResponse:
        """
        Correct fields of a completed response.

        completion_time is recomputed when start or end time changes.

        Raises:
            AuthorizationError: If actor isn't an administrator
            ResponseNotFoundError: If response doesn't exist
            ValidationError: If an unknown field is given or times are inverted
        """
        self._require_admin(actor, "update", response_id)

        unknown = set(fields) - CORRECTABLE_FIELDS
        if unknown:
            raise ValidationError(
                message="Fields cannot be corrected",
                fields=sorted(unknown),
            )

        response = await self.get_response(response_id)

        if "start_time" in fields or "end_time" in fields:
            start = to_utc_naive(fields.get("start_time", response.start_time))
            end = to_utc_naive(fields.get("end_time", response.end_time))
            if start and end and end < start:
                raise ValidationError(message="End time must not be before start time")
            fields["start_time"] = start
            fields["end_time"] = end
            fields["completion_time"] = completion_seconds(start, end)

        updated = await self.response_dao.update(response_id, **fields)
        logger.info(f"Response {response_id} corrected by user {actor.id}: {sorted(fields)}")
        return updated

    async def delete_response(self, response_id: int, actor: User) -> None:
        """
        Delete a completed response.

        Raises:
            AuthorizationError: If actor isn't an administrator
            ResponseNotFoundError: If response doesn't exist
        """
        self._require_admin(actor, "delete", response_id)

        if not await self.response_dao.delete(response_id):
            raise ResponseNotFoundError(response_id=response_id)
        logger.info(f"Response {response_id} deleted by user {actor.id}")
