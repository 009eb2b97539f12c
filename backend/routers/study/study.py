from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from config import get_db, LEADERBOARD_LIMIT
from routers.study.schemas import (
    GpaRequest, GpaResponse, SemesterResult, GpaClassification,
    RequiredGpaRequest, RequiredGpaResponse, RequiredStatus,
    LeaderboardEntry, LeaderboardResponse
)
from routers.study.helpers import (
    resolve_scale, scale_max, cumulative_stats, classify_gpa,
    required_gpa, required_status, load_leaderboard
)
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/study", tags=["Study Tools"])


# =================
# GPA CALCULATOR
# =================

@router.post("/gpa", response_model=GpaResponse)
async def calculate_gpa(request_data: GpaRequest):
    """GPA per semester and CGPA across all of them"""
    scale = resolve_scale(request_data.scale, request_data.custom_scale)
    maximum = scale_max(scale)

    semesters = [
        [course.model_dump() for course in semester.courses]
        for semester in request_data.semesters
    ]
    totals = cumulative_stats(semesters, scale)

    return GpaResponse(
        scale=scale,
        scale_max=maximum,
        cgpa=totals["cgpa"],
        cgpa_display=f"{totals['cgpa']:.2f}",
        units_total=totals["units_total"],
        points_total=totals["points_total"],
        valid_rows=totals["valid_rows"],
        invalid_rows=totals["invalid_rows"],
        grade_count=totals["grade_count"],
        classification=GpaClassification(**classify_gpa(totals["cgpa"], maximum)),
        semesters=[
            SemesterResult(
                name=semester.name,
                gpa=stats["gpa"],
                units_total=stats["units_total"],
                points_total=stats["points_total"],
                valid_rows=stats["valid_rows"],
                invalid_rows=stats["invalid_rows"],
            )
            for semester, stats in zip(request_data.semesters, totals["semesters"])
        ],
    )


@router.post("/gpa/required", response_model=RequiredGpaResponse)
async def calculate_required_gpa(request_data: RequiredGpaRequest):
    """GPA needed next semester to reach a target CGPA"""
    maximum = scale_max(resolve_scale(request_data.scale, request_data.custom_scale))
    required = required_gpa(
        request_data.current_cgpa,
        request_data.completed_units,
        request_data.target_cgpa,
        request_data.next_units,
    )
    advice = required_status(required, maximum)

    return RequiredGpaResponse(
        required_gpa=required,
        required_display=f"{required:.2f}" if required is not None else None,
        scale_max=maximum,
        status=RequiredStatus(**advice) if advice else None,
    )


# =================
# Q&A LEADERBOARD
# =================

@router.get("/leaderboard", response_model=LeaderboardResponse)
async def get_leaderboard(
    db: AsyncSession = Depends(get_db)
):
    """Top Q&A contributors by points"""
    try:
        rows = await load_leaderboard(db, LEADERBOARD_LIMIT)

        return LeaderboardResponse(
            entries=[LeaderboardEntry(rank=index + 1, **row) for index, row in enumerate(rows)],
            limit=LEADERBOARD_LIMIT,
        )

    except Exception as e:
        logger.error(f"Error building leaderboard: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load leaderboard"
        )
