"""Question repository."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from survai.persistence.models.survey import Question
from survai.persistence.repositories.base import BaseRepository


class QuestionRepository(BaseRepository[Question]):
    """Repository for Question entities."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(Question, session)

    async def get_survey_id(self, question_id: str) -> str | None:
        """Resolve the survey a question belongs to.

        Args:
            question_id: Question ID

        Returns:
            Survey ID or None if the question does not exist
        """
        stmt = select(Question.survey_id).where(Question.id == question_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
