"""
Question Data Access Object (DAO).

WHAT: Loads question-bank documents for text/type resolution.
"""

from typing import Dict, Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from survey_analytics.dao.base import BaseDAO
from survey_analytics.models.question import Question


class QuestionDAO(BaseDAO[Question]):
    """Data Access Object for Question model."""

    def __init__(self, session: AsyncSession):
        """Initialize QuestionDAO."""
        super().__init__(Question, session)

    async def get_map(self, question_ids: Iterable[str]) -> Dict[str, Question]:
        """
        Load questions by id.

        WHY: Question performance resolves text and type for every question
        that appears in the answers; one IN query replaces N lookups.

        Args:
            question_ids: Question ids to load

        Returns:
            Dict of question id -> Question (unknown ids are absent)
        """
        ids = sorted({str(question_id) for question_id in question_ids})
        if not ids:
            return {}

        result = await self.session.execute(select(Question).where(Question.id.in_(ids)))
        return {question.id: question for question in result.scalars().all()}
