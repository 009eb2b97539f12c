from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from config import get_db
from models import StudyMaterial
from routers.auth.auth import get_current_user
from routers.auth.schemas import SessionContext
from utils.errors import QueryFailure, ValidationFailure, query_failure_exception, validation_failure_exception
from utils.response_helpers import safe_model_validate, safe_model_validate_list, page_fields, as_uuid
from routers.materials.schemas import (
    MaterialSubmit, MaterialResponse, MaterialListResponse, DownloadResponse,
    CourseResponse, CourseFacetsResponse
)
from routers.materials.helpers import material_helpers, material_engine
from typing import Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/materials", tags=["Study Materials"])


def material_to_response(material: StudyMaterial) -> MaterialResponse:
    course = material.__dict__.get("course")
    return safe_model_validate(
        MaterialResponse,
        material,
        course=safe_model_validate(CourseResponse, course) if course is not None else None,
    )


@router.get("/", response_model=MaterialListResponse)
async def list_materials(
    q: Optional[str] = Query(None, description="Search title, description and course details"),
    level: Optional[str] = Query(None),
    semester: Optional[str] = Query(None, description="1st | first | 2nd | second | summer"),
    faculty: Optional[str] = Query(None),
    dept: Optional[str] = Query(None),
    course: Optional[str] = Query(None, description="Course code, e.g. CSC 201"),
    session: Optional[str] = Query(None, description="Academic session, e.g. 2023/2024"),
    type: Optional[str] = Query(None),
    verified: Optional[str] = Query(None, description="1 to show verified materials only"),
    featured: Optional[str] = Query(None, description="1 to show featured materials only"),
    sort: Optional[str] = Query(None, description="newest | oldest | downloads_desc | downloads_asc"),
    page: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    """Approved study materials"""
    try:
        result = await material_engine.fetch(db, {
            "q": q,
            "level": level,
            "semester": semester,
            "faculty": faculty,
            "dept": dept,
            "course": course,
            "session": session,
            "type": type,
            "verified": verified,
            "featured": featured,
            "sort": sort,
            "page": page,
        })

        return MaterialListResponse(
            materials=[material_to_response(material) for material in result.rows],
            **page_fields(material_engine, result)
        )

    except QueryFailure as e:
        raise query_failure_exception(e, material_engine.config.path)
    except Exception as e:
        logger.error(f"Error listing materials: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load materials"
        )


@router.get("/courses", response_model=CourseFacetsResponse)
async def get_course_facets(
    faculty: Optional[str] = Query(None),
    dept: Optional[str] = Query(None),
    level: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    """Options for the faculty / department / course filter drop-downs"""
    try:
        facets = await material_helpers.course_facets(db, faculty=faculty, dept=dept, level=level)
        return CourseFacetsResponse(
            faculties=facets["faculties"],
            departments=facets["departments"],
            courses=safe_model_validate_list(CourseResponse, facets["courses"]),
        )

    except Exception as e:
        logger.error(f"Error getting course facets: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load courses"
        )


@router.post("/", response_model=MaterialResponse, status_code=status.HTTP_201_CREATED)
async def submit_material(
    material_data: MaterialSubmit,
    current_user: SessionContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Save an uploaded file's metadata. It stays hidden until an admin approves it."""
    try:
        values = await material_helpers.validate_submission(db, material_data.model_dump())

        material = StudyMaterial(
            uploader_id=as_uuid(current_user.user_id),
            approved=False,
            **values
        )
        db.add(material)
        await db.commit()
        await db.refresh(material)

        logger.info(f"Material {material.id} submitted by user {current_user.user_id}")
        return material_to_response(material)

    except ValidationFailure as e:
        raise validation_failure_exception(e)
    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error submitting material: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to submit material"
        )


@router.get("/{material_id}", response_model=MaterialResponse)
async def get_material(
    material_id: str,
    db: AsyncSession = Depends(get_db)
):
    try:
        material = await material_helpers.get_material(db, material_id)
        return material_to_response(material)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting material {material_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get material"
        )


@router.post("/{material_id}/download", response_model=DownloadResponse)
async def record_download(
    material_id: str,
    db: AsyncSession = Depends(get_db)
):
    """Count a download and return the file URL"""
    try:
        downloads, file_url = await material_helpers.record_download(db, material_id)
        return DownloadResponse(id=material_id, downloads=downloads, file_url=file_url)

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error recording download for material {material_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to record download"
        )
