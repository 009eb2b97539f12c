from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from config import get_db
from models import PracticeAttempt
from routers.auth.auth import get_current_user
from routers.auth.schemas import SessionContext
from utils.errors import QueryFailure, ValidationFailure, query_failure_exception, validation_failure_exception
from utils.response_helpers import safe_model_validate, page_fields, as_uuid
from routers.history.history import attempt_to_response
from routers.history.helpers import history_helpers
from routers.history.schemas import AttemptResponse, ReviewSummary
from routers.practice.schemas import (
    PracticeSetResponse, PracticeSetListResponse, PracticeSetDetailResponse, PracticeQuestion,
    AnswerSave, AnswerSavedResponse, AttemptSubmit, AttemptSubmitResponse
)
from routers.practice.helpers import practice_helpers, practice_set_engine, activity_points
from datetime import datetime, timezone
from typing import Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/practice", tags=["Study Practice"])


# =================
# Quiz sets
# =================

@router.get("/sets", response_model=PracticeSetListResponse)
async def list_sets(
    q: Optional[str] = Query(None, description="Search title, description and course code"),
    course: Optional[str] = Query(None),
    level: Optional[str] = Query(None),
    sort: Optional[str] = Query(None, description="newest | oldest"),
    page: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    """Published practice sets"""
    try:
        result = await practice_set_engine.fetch(
            db, {"q": q, "course": course, "level": level, "sort": sort, "page": page}
        )

        return PracticeSetListResponse(
            sets=[safe_model_validate(PracticeSetResponse, quiz_set) for quiz_set in result.rows],
            **page_fields(practice_set_engine, result)
        )

    except QueryFailure as e:
        raise query_failure_exception(e, practice_set_engine.config.path)
    except Exception as e:
        logger.error(f"Error listing practice sets: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load practice sets"
        )


@router.get("/sets/{set_id}", response_model=PracticeSetDetailResponse)
async def get_set(
    set_id: str,
    db: AsyncSession = Depends(get_db)
):
    """A set with its questions. Correct answers are only revealed in the review."""
    try:
        quiz_set = await practice_helpers.get_published_set(db, set_id)

        return safe_model_validate(
            PracticeSetDetailResponse,
            quiz_set,
            question_count=len(quiz_set.questions),
            questions=[safe_model_validate(PracticeQuestion, question) for question in quiz_set.questions],
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting practice set {set_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get practice set"
        )


# =================
# Attempts
# =================

@router.post("/sets/{set_id}/attempts", response_model=AttemptResponse, status_code=status.HTTP_201_CREATED)
async def start_attempt(
    set_id: str,
    current_user: SessionContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Start a new attempt on a published set"""
    try:
        quiz_set = await practice_helpers.get_published_set(db, set_id)

        attempt = PracticeAttempt(
            user_id=as_uuid(current_user.user_id),
            set_id=quiz_set.id,
            status="in_progress",
            submitted_at=None,
            score=None,
            total_questions=len(quiz_set.questions),
            time_spent_seconds=None,
        )
        attempt.quiz_set = quiz_set

        db.add(attempt)
        await db.commit()
        await db.refresh(attempt, ["created_at", "started_at"])

        logger.info(f"Practice attempt {attempt.id} started by user {current_user.user_id}")
        return attempt_to_response(attempt)

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error starting attempt on set {set_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to start attempt"
        )


@router.put("/attempts/{attempt_id}/answers/{question_id}", response_model=AnswerSavedResponse)
async def save_answer(
    attempt_id: str,
    question_id: str,
    answer: AnswerSave,
    current_user: SessionContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Pick, change or clear the answer to one question"""
    try:
        attempt = await history_helpers.get_attempt_for_review(db, attempt_id, current_user.user_id)
        practice_helpers.ensure_open(attempt)

        saved = practice_helpers.save_answer(attempt, question_id, answer.selected_option_id)
        await db.commit()

        return AnswerSavedResponse(
            attempt_id=str(attempt.id),
            question_id=str(saved.question_id),
            selected_option_id=str(saved.selected_option_id) if saved.selected_option_id else None,
            answered=sum(1 for item in attempt.answers if item.selected_option_id),
            total_questions=len(attempt.quiz_set.questions),
        )

    except ValidationFailure as e:
        raise validation_failure_exception(e)
    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error saving answer on attempt {attempt_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save answer"
        )


@router.post("/attempts/{attempt_id}/submit", response_model=AttemptSubmitResponse)
async def submit_attempt(
    attempt_id: str,
    submission: Optional[AttemptSubmit] = None,
    current_user: SessionContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Score the attempt and record today's practice.

    The day's activity row is created or updated in the same transaction,
    so the streak and history reflect the submission immediately.
    """
    try:
        attempt = await history_helpers.get_attempt_for_review(db, attempt_id, current_user.user_id)
        practice_helpers.ensure_open(attempt)

        summary = practice_helpers.score(attempt)
        now = datetime.now(timezone.utc)

        attempt.status = "submitted"
        attempt.submitted_at = now
        attempt.score = summary["correct"]
        attempt.total_questions = summary["total"]
        if submission is not None and submission.time_spent_seconds is not None:
            attempt.time_spent_seconds = submission.time_spent_seconds

        points = activity_points(summary["correct"])
        await practice_helpers.record_activity(db, current_user.user_id, now.date(), points)

        await db.commit()

        logger.info(f"Practice attempt {attempt.id} submitted: {summary['correct']}/{summary['total']}")
        return AttemptSubmitResponse(
            attempt=attempt_to_response(attempt),
            summary=ReviewSummary(**summary),
            points=points,
        )

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error submitting attempt {attempt_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to submit attempt"
        )
