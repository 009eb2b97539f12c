from fastapi import HTTPException, status
from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession
from models import StudyQuestion, StudyAnswer, StudyQuestionVote
from utils.errors import ValidationFailure
from utils.query_engine import Facet, ListQueryConfig, ListQueryEngine
from utils.response_helpers import as_uuid
from routers.auth.schemas import SessionContext
from routers.materials.helpers import parse_level, parse_flag, normalize_course_code
from typing import Any, Dict, List, Optional, Tuple
import logging

logger = logging.getLogger(__name__)

TITLE_MIN_LENGTH = 8
BODY_MIN_LENGTH = 10

QUESTION_SORTS = {
    "newest": [StudyQuestion.created_at.desc()],
    "upvoted": [StudyQuestion.upvotes_count.desc()],
    "answered": [StudyQuestion.answers_count.desc()],
    "unanswered": [StudyQuestion.answers_count.asc()],
}

question_engine = ListQueryEngine(ListQueryConfig(
    name="questions",
    model=StudyQuestion,
    path="/questions",
    search_columns=[StudyQuestion.title, StudyQuestion.body],
    sorts=QUESTION_SORTS,
    page_size=14,
    facets=[
        Facet("course", lambda value: StudyQuestion.course_code == value, parse=normalize_course_code),
        Facet("level", lambda value: StudyQuestion.level == value, parse=parse_level),
        Facet("unsolved", lambda value: StudyQuestion.solved.is_(False), choices=("1",), parse=parse_flag),
    ],
))


def _clean_text(value: Optional[str]) -> str:
    return (value or "").strip()


def is_question_owner(question: StudyQuestion, user: SessionContext) -> bool:
    """Questions from before author ids were stored match on email"""
    if question.author_id is not None:
        return str(question.author_id) == str(user.user_id)
    return bool(user.email) and (question.author_email or "").strip().lower() == user.email.strip().lower()


class QuestionHelpers:
    """Helper functions for the Q&A board"""

    @staticmethod
    def validate_question(data: Dict[str, Any]) -> Dict[str, Any]:
        title = _clean_text(data.get("title"))
        if len(title) < TITLE_MIN_LENGTH:
            raise ValidationFailure("title", "Title is too short.")

        body = _clean_text(data.get("body"))
        if len(body) < BODY_MIN_LENGTH:
            raise ValidationFailure("body", "Please add more details.")

        level = _clean_text(data.get("level"))
        if level:
            level = parse_level(level)
            if not level:
                raise ValidationFailure("level", "Pick a level between 100 and 900.")

        return {
            "title": title,
            "body": body,
            "course_code": normalize_course_code(data.get("course_code") or "") or None,
            "level": level or None,
        }

    @staticmethod
    def validate_answer(body: Optional[str]) -> str:
        body = _clean_text(body)
        if len(body) < BODY_MIN_LENGTH:
            raise ValidationFailure("body", "Please add more details.")
        return body

    @staticmethod
    async def get_question(db: AsyncSession, question_id: str) -> StudyQuestion:
        question_uuid = as_uuid(question_id)
        question = None
        if question_uuid is not None:
            result = await db.execute(select(StudyQuestion).where(StudyQuestion.id == question_uuid))
            question = result.scalar_one_or_none()

        if not question:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Question not found"
            )

        return question

    @staticmethod
    async def get_answers(db: AsyncSession, question_id) -> List[StudyAnswer]:
        """Accepted answer first, then oldest first"""
        result = await db.execute(
            select(StudyAnswer)
            .where(StudyAnswer.question_id == question_id)
            .order_by(StudyAnswer.is_accepted.desc(), StudyAnswer.created_at.asc(), StudyAnswer.id.asc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def has_upvoted(db: AsyncSession, question_id, user_id: Optional[str]) -> bool:
        if not user_id:
            return False
        result = await db.execute(
            select(StudyQuestionVote.id).where(
                StudyQuestionVote.question_id == question_id,
                StudyQuestionVote.voter_id == as_uuid(user_id),
            )
        )
        return result.first() is not None

    @staticmethod
    async def add_answer(db: AsyncSession, question: StudyQuestion, user: SessionContext, body: str) -> Tuple[StudyAnswer, int]:
        """Insert the answer and bump the question's answer count in one transaction"""
        answer = StudyAnswer(
            question_id=question.id,
            author_id=as_uuid(user.user_id),
            author_email=user.email,
            body=body,
            is_accepted=False,
        )
        db.add(answer)

        result = await db.execute(
            update(StudyQuestion)
            .where(StudyQuestion.id == question.id)
            .values(answers_count=StudyQuestion.answers_count + 1)
            .returning(StudyQuestion.answers_count)
        )
        answers_count = result.scalar_one()

        await db.commit()
        await db.refresh(answer)
        return answer, answers_count

    @staticmethod
    async def accept_answer(db: AsyncSession, question: StudyQuestion, answer_id: str, user: SessionContext) -> StudyAnswer:
        if not is_question_owner(question, user):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only the question owner can accept an answer"
            )

        answer_uuid = as_uuid(answer_id)
        answer = None
        if answer_uuid is not None:
            result = await db.execute(
                select(StudyAnswer)
                .where(StudyAnswer.id == answer_uuid)
                .where(StudyAnswer.question_id == question.id)
            )
            answer = result.scalar_one_or_none()

        if not answer:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Answer not found"
            )

        await db.execute(
            update(StudyAnswer)
            .where(StudyAnswer.question_id == question.id)
            .where(StudyAnswer.id != answer.id)
            .values(is_accepted=False)
        )
        answer.is_accepted = True
        question.solved = True

        await db.commit()
        return answer

    @staticmethod
    async def toggle_upvote(db: AsyncSession, question: StudyQuestion, user_id: str) -> Tuple[bool, int]:
        """Add or remove the caller's vote. Returns whether they now upvote and the new count."""
        voter_uuid = as_uuid(user_id)
        removed = await db.execute(
            delete(StudyQuestionVote)
            .where(StudyQuestionVote.question_id == question.id)
            .where(StudyQuestionVote.voter_id == voter_uuid)
        )
        upvoted = removed.rowcount == 0

        if upvoted:
            db.add(StudyQuestionVote(question_id=question.id, voter_id=voter_uuid))
            change = 1
        else:
            change = -1

        result = await db.execute(
            update(StudyQuestion)
            .where(StudyQuestion.id == question.id)
            .values(upvotes_count=StudyQuestion.upvotes_count + change)
            .returning(StudyQuestion.upvotes_count)
        )
        upvotes_count = max(0, result.scalar_one())

        await db.commit()
        return upvoted, upvotes_count


question_helpers = QuestionHelpers()
