from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from config import get_db, STREAK_WINDOW_DAYS
from models import PracticeAttempt
from routers.auth.auth import get_current_user, get_optional_user
from routers.auth.schemas import SessionContext
from utils.errors import QueryFailure, query_failure_exception
from utils.query_engine import QueryPage
from utils.response_helpers import safe_model_validate, page_fields, as_uuid
from routers.history.schemas import (
    QuizSetSummary, AttemptResponse, HistoryListResponse, ReviewOption, ReviewQuestion,
    ReviewSummary, AttemptReviewResponse, StreakResponse
)
from routers.history.helpers import (
    history_helpers, history_engine, build_review, parse_flagged, compute_streak,
    is_completed, REVIEW_TABS
)
from datetime import datetime, timezone
from typing import Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/history", tags=["Study History"])


def attempt_to_response(attempt: PracticeAttempt) -> AttemptResponse:
    quiz_set = attempt.__dict__.get("quiz_set")
    return safe_model_validate(
        AttemptResponse,
        attempt,
        completed=is_completed(attempt),
        quiz_set=safe_model_validate(QuizSetSummary, quiz_set) if quiz_set is not None else None,
    )


@router.get("/", response_model=HistoryListResponse)
async def list_history(
    q: Optional[str] = Query(None, description="Search quiz set title and course code"),
    status_filter: Optional[str] = Query(None, alias="status", description="completed | in_progress"),
    course: Optional[str] = Query(None),
    recent: Optional[str] = Query(None, description="7 | 30 | all"),
    sort: Optional[str] = Query(None, description="newest | oldest | score_desc"),
    page: Optional[str] = Query(None),
    current_user: Optional[SessionContext] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
):
    """The caller's practice attempts. Anonymous callers get an empty page."""
    raw = {"q": q, "status": status_filter, "course": course, "recent": recent, "sort": sort, "page": page}
    try:
        if current_user is None:
            params = history_engine.parse(raw)
            result = QueryPage(rows=[], total=0, page=params.page,
                               page_size=history_engine.config.page_size, params=params)
        else:
            result = await history_engine.fetch(
                db, raw, extra_filters=[PracticeAttempt.user_id == as_uuid(current_user.user_id)]
            )

        return HistoryListResponse(
            attempts=[attempt_to_response(attempt) for attempt in result.rows],
            **page_fields(history_engine, result)
        )

    except QueryFailure as e:
        raise query_failure_exception(e, history_engine.config.path)
    except Exception as e:
        logger.error(f"Error listing practice history: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load history"
        )


@router.get("/streak", response_model=StreakResponse)
async def get_streak(
    current_user: SessionContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Consecutive days with practice"""
    try:
        today = datetime.now(timezone.utc).date()
        days = await history_helpers.practice_days(db, current_user.user_id, today)
        streak = compute_streak(days, today)

        return StreakResponse(window_days=STREAK_WINDOW_DAYS, **streak)

    except Exception as e:
        logger.error(f"Error computing streak for user {current_user.user_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load streak"
        )


@router.get("/{attempt_id}/review", response_model=AttemptReviewResponse)
async def review_attempt(
    attempt_id: str,
    tab: Optional[str] = Query(None, description="wrong | unanswered | flagged | all"),
    flagged: Optional[str] = Query(None, description="Comma-separated question ids flagged on this device"),
    current_user: SessionContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Per-question outcome for one of the caller's attempts.

    Flags are kept on the client's device, so they are passed in rather
    than read from the database; they do not sync between devices.
    """
    try:
        attempt = await history_helpers.get_attempt_for_review(db, attempt_id, current_user.user_id)

        questions = list(attempt.quiz_set.questions) if attempt.quiz_set else []
        answers = {
            str(answer.question_id): str(answer.selected_option_id) if answer.selected_option_id else None
            for answer in attempt.answers
        }
        review = build_review(questions, answers, parse_flagged(flagged))

        selected_tab = tab if tab in REVIEW_TABS else "wrong"

        review_questions = []
        for item in review["items"]:
            question = item["question"]
            review_questions.append(ReviewQuestion(
                id=str(question.id),
                prompt=question.prompt,
                explanation=question.explanation,
                options=[
                    ReviewOption(id=str(option.id), text=option.text, is_correct=option.is_correct)
                    for option in question.options
                ],
                outcome=item["outcome"],
                selected_option_id=item["selected_option_id"],
                correct_option_id=item["correct_option_id"],
                flagged=item["flagged"],
            ))

        return AttemptReviewResponse(
            attempt=attempt_to_response(attempt),
            summary=ReviewSummary(**review["summary"]),
            tabs=review["tabs"],
            tab=selected_tab,
            visible_question_ids=review["tabs"][selected_tab],
            default_question_id=review["default_question_id"],
            questions=review_questions,
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error reviewing attempt {attempt_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load attempt review"
        )
