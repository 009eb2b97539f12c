from fastapi import HTTPException, status
from sqlalchemy import select, func, or_, and_, not_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from models import PracticeAttempt, QuizSet, QuizQuestion, DailyActivity
from utils.query_engine import Facet, ListQueryConfig, ListQueryEngine
from utils.response_helpers import as_uuid
from config import STREAK_WINDOW_DAYS
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence
import logging

logger = logging.getLogger(__name__)

COMPLETED_STATUSES = ("submitted", "completed", "finished")
REVIEW_TABS = ("wrong", "unanswered", "flagged", "all")


def _completed_clause():
    return or_(
        PracticeAttempt.submitted_at.isnot(None),
        func.lower(PracticeAttempt.status).in_(COMPLETED_STATUSES),
    )


def _status_clause(value: str):
    if value == "completed":
        return _completed_clause()
    return not_(_completed_clause())


def _recent_clause(value: str):
    if value == "all":
        return None
    since = datetime.now(timezone.utc) - timedelta(days=int(value))
    return PracticeAttempt.created_at >= since


def is_completed(attempt: PracticeAttempt) -> bool:
    if attempt.submitted_at is not None:
        return True
    return (attempt.status or "").lower() in COMPLETED_STATUSES


HISTORY_SORTS = {
    "newest": [PracticeAttempt.created_at.desc()],
    "oldest": [PracticeAttempt.created_at.asc()],
    "score_desc": [PracticeAttempt.score.desc().nulls_last()],
}

history_engine = ListQueryEngine(ListQueryConfig(
    name="practice history",
    model=PracticeAttempt,
    path="/history",
    search_columns=[QuizSet.title, QuizSet.course_code],
    sorts=HISTORY_SORTS,
    page_size=12,
    facets=[
        Facet("status", _status_clause, choices=("completed", "in_progress")),
        Facet("course", lambda value: QuizSet.course_code == value, parse=lambda value: " ".join(value.split()).upper()),
        Facet("recent", _recent_clause, choices=("7", "30", "all")),
    ],
    joins=[(QuizSet, PracticeAttempt.set_id == QuizSet.id)],
    options=[selectinload(PracticeAttempt.quiz_set)],
))


def build_review(
    questions: Sequence[Any],
    answers: Mapping[str, Optional[str]],
    flagged: Iterable[str] = (),
) -> Dict[str, Any]:
    """
    Classify every question of an attempt.

    ``questions`` carry ``id`` and ``options`` (each with ``id`` and
    ``is_correct``); ``answers`` maps question id -> selected option id.
    ``flagged`` is the client's device-local set of flagged question ids.
    """
    flagged_set = {str(question_id) for question_id in flagged}
    items = []
    wrong_ids: List[str] = []
    unanswered_ids: List[str] = []
    flagged_ids: List[str] = []
    correct = 0

    for question in questions:
        question_id = str(question.id)
        chosen_id = answers.get(question_id)
        options = list(question.options)
        correct_option = next((option for option in options if option.is_correct), None)

        if not chosen_id:
            outcome = "unanswered"
            unanswered_ids.append(question_id)
        else:
            chosen = next((option for option in options if str(option.id) == str(chosen_id)), None)
            if chosen is not None and chosen.is_correct:
                outcome = "correct"
                correct += 1
            else:
                outcome = "wrong"
                wrong_ids.append(question_id)

        is_flagged = question_id in flagged_set
        if is_flagged:
            flagged_ids.append(question_id)

        items.append({
            "question": question,
            "outcome": outcome,
            "selected_option_id": str(chosen_id) if chosen_id else None,
            "correct_option_id": str(correct_option.id) if correct_option else None,
            "flagged": is_flagged,
        })

    all_ids = [str(question.id) for question in questions]
    total = len(all_ids)

    if wrong_ids:
        default_question_id = wrong_ids[0]
    elif unanswered_ids:
        default_question_id = unanswered_ids[0]
    else:
        default_question_id = all_ids[0] if all_ids else None

    return {
        "items": items,
        "summary": {
            "total": total,
            "answered": total - len(unanswered_ids),
            "correct": correct,
            "wrong": len(wrong_ids),
            "unanswered": len(unanswered_ids),
            "flagged": len(flagged_ids),
        },
        "tabs": {
            "wrong": wrong_ids,
            "unanswered": unanswered_ids,
            "flagged": flagged_ids,
            "all": all_ids,
        },
        "default_question_id": default_question_id,
    }


def parse_flagged(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


def compute_streak(practice_days: Mapping[date, bool], today: date, window: int = STREAK_WINDOW_DAYS) -> Dict[str, Any]:
    """
    Consecutive practice days ending today, or ending yesterday when today
    has no practice yet. Only ``window`` days are looked at.
    """
    did_today = practice_days.get(today) is True
    cursor = today if did_today else today - timedelta(days=1)

    streak = 0
    for _ in range(window):
        if practice_days.get(cursor) is True:
            streak += 1
            cursor -= timedelta(days=1)
        else:
            break

    return {"streak": streak, "did_practice_today": did_today}


class HistoryHelpers:
    """Helper functions for practice history operations"""

    @staticmethod
    async def get_attempt_for_review(db: AsyncSession, attempt_id: str, user_id: str) -> PracticeAttempt:
        attempt_uuid = as_uuid(attempt_id)
        attempt = None
        if attempt_uuid is not None:
            result = await db.execute(
                select(PracticeAttempt)
                .options(
                    selectinload(PracticeAttempt.quiz_set)
                    .selectinload(QuizSet.questions)
                    .selectinload(QuizQuestion.options),
                    selectinload(PracticeAttempt.answers),
                )
                .where(PracticeAttempt.id == attempt_uuid)
            )
            attempt = result.scalar_one_or_none()

        # Someone else's attempt looks the same as a missing one
        if not attempt or str(attempt.user_id) != str(user_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Attempt not found"
            )

        return attempt

    @staticmethod
    async def practice_days(db: AsyncSession, user_id: str, today: date, window: int = STREAK_WINDOW_DAYS) -> Dict[date, bool]:
        since = today - timedelta(days=window)
        result = await db.execute(
            select(DailyActivity.activity_date, DailyActivity.did_practice)
            .where(and_(
                DailyActivity.user_id == as_uuid(user_id),
                DailyActivity.activity_date >= since,
            ))
            .order_by(DailyActivity.activity_date.desc())
        )
        return {activity_date: bool(did_practice) for activity_date, did_practice in result.all()}


history_helpers = HistoryHelpers()
