from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from models import QuizSet, QuizQuestion, PracticeAttempt, AttemptAnswer, DailyActivity
from utils.errors import ValidationFailure
from utils.query_engine import Facet, ListQueryConfig, ListQueryEngine
from utils.response_helpers import as_uuid
from routers.history.helpers import build_review, is_completed
from routers.materials.helpers import parse_level, normalize_course_code
from datetime import date
from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)

practice_set_engine = ListQueryEngine(ListQueryConfig(
    name="practice sets",
    model=QuizSet,
    path="/practice/sets",
    search_columns=[QuizSet.title, QuizSet.description, QuizSet.course_code],
    sorts={
        "newest": [QuizSet.created_at.desc()],
        "oldest": [QuizSet.created_at.asc()],
    },
    page_size=12,
    facets=[
        Facet("course", lambda value: QuizSet.course_code == value, parse=normalize_course_code),
        Facet("level", lambda value: QuizSet.level == value, parse=parse_level),
    ],
    base_filters=[QuizSet.published.is_(True)],
))


def activity_points(correct: int) -> int:
    """Every submitted attempt is worth at least one point"""
    return max(1, correct)


class PracticeHelpers:
    """Helper functions for taking practice quizzes"""

    @staticmethod
    async def get_published_set(db: AsyncSession, set_id: str) -> QuizSet:
        set_uuid = as_uuid(set_id)
        quiz_set = None
        if set_uuid is not None:
            result = await db.execute(
                select(QuizSet)
                .options(selectinload(QuizSet.questions).selectinload(QuizQuestion.options))
                .where(QuizSet.id == set_uuid)
                .where(QuizSet.published.is_(True))
            )
            quiz_set = result.scalar_one_or_none()

        if not quiz_set:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Practice set not found"
            )

        return quiz_set

    @staticmethod
    def ensure_open(attempt: PracticeAttempt):
        if is_completed(attempt) or attempt.status != "in_progress":
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Attempt already submitted"
            )

    @staticmethod
    def save_answer(attempt: PracticeAttempt, question_id: str, option_id: Optional[str]) -> AttemptAnswer:
        """Insert or replace the answer for one question. ``None`` clears the choice."""
        questions = {str(question.id): question for question in attempt.quiz_set.questions}
        question = questions.get(str(as_uuid(question_id)))
        if question is None:
            raise ValidationFailure("question_id", "Question is not part of this practice set.")

        option_uuid = None
        if option_id:
            option_uuid = as_uuid(option_id)
            if option_uuid is None or option_uuid not in {option.id for option in question.options}:
                raise ValidationFailure("selected_option_id", "Pick one of the question's options.")

        answer = next((item for item in attempt.answers if item.question_id == question.id), None)
        if answer is None:
            answer = AttemptAnswer(question_id=question.id, selected_option_id=option_uuid)
            attempt.answers.append(answer)
        else:
            answer.selected_option_id = option_uuid
        return answer

    @staticmethod
    def score(attempt: PracticeAttempt) -> Dict[str, Any]:
        answers = {
            str(answer.question_id): str(answer.selected_option_id) if answer.selected_option_id else None
            for answer in attempt.answers
        }
        return build_review(list(attempt.quiz_set.questions), answers)["summary"]

    @staticmethod
    async def record_activity(db: AsyncSession, user_id: str, activity_date: date, points: int) -> DailyActivity:
        """Mark the day as practiced and add the attempt's points"""
        result = await db.execute(
            select(DailyActivity).where(
                DailyActivity.user_id == as_uuid(user_id),
                DailyActivity.activity_date == activity_date,
            )
        )
        activity = result.scalar_one_or_none()

        if activity is None:
            activity = DailyActivity(
                user_id=as_uuid(user_id), activity_date=activity_date, did_practice=True, points=points
            )
            db.add(activity)
        else:
            activity.did_practice = True
            activity.points = (activity.points or 0) + points
        return activity


practice_helpers = PracticeHelpers()
