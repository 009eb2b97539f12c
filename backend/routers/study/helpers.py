"""
Stateless study calculators: GPA / CGPA, required next-semester GPA and
the Q&A leaderboard.
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from models import StudyQuestion, StudyAnswer
from config import LEADERBOARD_LIMIT, LEADERBOARD_QUESTION_SAMPLE, LEADERBOARD_ANSWER_SAMPLE
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence
import logging
import math

logger = logging.getLogger(__name__)

GRADE_SCALES = {
    "ng_5": {"A": 5, "B": 4, "C": 3, "D": 2, "E": 1, "F": 0},
    "us_4": {"A": 4, "B": 3, "C": 2, "D": 1, "F": 0},
}

POINTS_ACCEPTED = 5
POINTS_ANSWER = 2
POINTS_QUESTION = 1
POINTS_UPVOTE = 1


def normalize_grade(value: Any) -> str:
    return " ".join(str(value or "").split()).upper()


def to_number(value: Any) -> float:
    """Float, or NaN for anything that is not a finite number."""
    if value is None or isinstance(value, bool):
        return math.nan
    try:
        number = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return math.nan
    return number if math.isfinite(number) else math.nan


def resolve_scale(scale: str, custom: Optional[Mapping[str, Any]] = None) -> Dict[str, float]:
    if scale == "custom" and custom:
        resolved = {}
        for grade, points in custom.items():
            value = to_number(points)
            if normalize_grade(grade) and not math.isnan(value):
                resolved[normalize_grade(grade)] = value
        if resolved:
            return resolved
    return dict(GRADE_SCALES.get(scale, GRADE_SCALES["ng_5"]))


def scale_max(scale: Mapping[str, float]) -> float:
    return max(scale.values()) if scale else 0


def semester_stats(courses: Iterable[Mapping[str, Any]], scale: Mapping[str, float]) -> Dict[str, Any]:
    """A row counts only when units is a positive number and the grade is on the scale."""
    units_total = 0.0
    points_total = 0.0
    valid_rows = 0
    invalid_rows = 0
    grade_count: Dict[str, int] = {}

    for course in courses:
        units = to_number(course.get("units"))
        grade = normalize_grade(course.get("grade"))
        grade_point = scale.get(grade)

        if math.isnan(units) or units <= 0 or grade_point is None:
            invalid_rows += 1
            continue

        valid_rows += 1
        units_total += units
        points_total += units * grade_point
        grade_count[grade] = grade_count.get(grade, 0) + 1

    return {
        "units_total": units_total,
        "points_total": points_total,
        "gpa": points_total / units_total if units_total > 0 else 0.0,
        "valid_rows": valid_rows,
        "invalid_rows": invalid_rows,
        "grade_count": grade_count,
    }


def cumulative_stats(semesters: Sequence[Sequence[Mapping[str, Any]]], scale: Mapping[str, float]) -> Dict[str, Any]:
    per_semester = [semester_stats(courses, scale) for courses in semesters]

    units_total = sum(stats["units_total"] for stats in per_semester)
    points_total = sum(stats["points_total"] for stats in per_semester)
    grade_count: Dict[str, int] = {}
    for stats in per_semester:
        for grade, count in stats["grade_count"].items():
            grade_count[grade] = grade_count.get(grade, 0) + count

    return {
        "semesters": per_semester,
        "units_total": units_total,
        "points_total": points_total,
        "cgpa": points_total / units_total if units_total > 0 else 0.0,
        "valid_rows": sum(stats["valid_rows"] for stats in per_semester),
        "invalid_rows": sum(stats["invalid_rows"] for stats in per_semester),
        "grade_count": grade_count,
    }


def classify_gpa(gpa: float, maximum: float) -> Dict[str, str]:
    if gpa <= 0 or maximum <= 0:
        return {"label": "No GPA yet", "hint": "Add courses to calculate."}
    ratio = gpa / maximum
    if ratio >= 0.8:
        return {"label": "Excellent", "hint": "You're doing great, keep it up."}
    if ratio >= 0.65:
        return {"label": "Good", "hint": "Solid performance, push a bit more."}
    if ratio >= 0.5:
        return {"label": "Fair", "hint": "You can improve, focus on weak courses."}
    return {"label": "Needs work", "hint": "Make a plan and get support early."}


def required_gpa(current_cgpa: Any, completed_units: Any, target_cgpa: Any, next_units: Any) -> Optional[float]:
    """
    Solve (cur*done + req*next) / (done + next) = target for req.
    ``None`` when an input is not a finite number or a unit count is not positive.
    """
    cur = to_number(current_cgpa)
    done = to_number(completed_units)
    target = to_number(target_cgpa)
    upcoming = to_number(next_units)

    if any(math.isnan(value) for value in (cur, done, target, upcoming)):
        return None
    if done <= 0 or upcoming <= 0:
        return None

    required = (target * (done + upcoming) - cur * done) / upcoming
    return required if math.isfinite(required) else None


def required_status(required: Optional[float], maximum: float) -> Optional[Dict[str, str]]:
    if required is None:
        return None
    if required < 0:
        return {"type": "success", "text": "You're already above your target. Keep it steady."}
    if required > maximum:
        return {"type": "error", "text": "Target might be unrealistic for next semester with these units."}
    if required >= maximum * 0.8:
        return {"type": "info", "text": "You'll need a very strong semester. Start early and stay consistent."}
    if required >= maximum * 0.65:
        return {"type": "info", "text": "Achievable, stay focused and prioritize tough courses."}
    return {"type": "success", "text": "Achievable, keep up a steady routine."}


def leaderboard_points(accepted: int, answers: int, questions: int, question_upvotes: int) -> int:
    return (
        accepted * POINTS_ACCEPTED
        + answers * POINTS_ANSWER
        + questions * POINTS_QUESTION
        + question_upvotes * POINTS_UPVOTE
    )


def _email_key(value: Any) -> str:
    return str(value or "").strip().lower()


def build_leaderboard(
    questions: Iterable[Mapping[str, Any]],
    answers: Iterable[Mapping[str, Any]],
    limit: int = LEADERBOARD_LIMIT,
) -> List[Dict[str, Any]]:
    """
    Aggregate both record streams per contributor (lower-cased email) and
    rank by points. Rows without an author are skipped.
    """
    rows: Dict[str, Dict[str, Any]] = {}

    def row_for(email: str) -> Dict[str, Any]:
        if email not in rows:
            rows[email] = {"email": email, "questions": 0, "answers": 0, "accepted": 0, "question_upvotes": 0}
        return rows[email]

    for question in questions:
        email = _email_key(question.get("author_email"))
        if not email:
            continue
        row = row_for(email)
        row["questions"] += 1
        upvotes = to_number(question.get("upvotes_count"))
        row["question_upvotes"] += 0 if math.isnan(upvotes) else max(0, int(upvotes))

    for answer in answers:
        email = _email_key(answer.get("author_email"))
        if not email:
            continue
        row = row_for(email)
        row["answers"] += 1
        if answer.get("is_accepted"):
            row["accepted"] += 1

    ranked = [
        {**row, "points": leaderboard_points(row["accepted"], row["answers"], row["questions"], row["question_upvotes"])}
        for row in rows.values()
    ]
    # sorted() is stable, so ties keep first-seen order
    ranked = sorted(ranked, key=lambda row: row["points"], reverse=True)
    return ranked[:limit]


async def load_leaderboard(db: AsyncSession, limit: int = LEADERBOARD_LIMIT) -> List[Dict[str, Any]]:
    question_rows = (await db.execute(
        select(StudyQuestion.author_email, StudyQuestion.upvotes_count)
        .order_by(StudyQuestion.created_at.desc())
        .limit(LEADERBOARD_QUESTION_SAMPLE)
    )).mappings().all()

    answer_rows = (await db.execute(
        select(StudyAnswer.author_email, StudyAnswer.is_accepted)
        .order_by(StudyAnswer.created_at.desc())
        .limit(LEADERBOARD_ANSWER_SAMPLE)
    )).mappings().all()

    logger.info(f"Leaderboard built from {len(question_rows)} questions and {len(answer_rows)} answers")
    return build_leaderboard(question_rows, answer_rows, limit)
