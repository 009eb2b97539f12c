from fastapi import HTTPException, status
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from models import StudyMaterial, StudyCourse, MATERIAL_TYPES, SEMESTERS
from utils.errors import ValidationFailure
from utils.query_engine import Facet, ListQueryConfig, ListQueryEngine, contains_pattern, LIKE_ESCAPE
from utils.response_helpers import as_uuid
from typing import Any, Dict, Optional, Tuple
import logging

logger = logging.getLogger(__name__)

SEMESTER_ALIASES = {
    "1st": "first",
    "first": "first",
    "2nd": "second",
    "second": "second",
    "summer": "summer",
}

TRUE_FLAGS = ("1", "true", "yes")

LEVEL_RANGE = (100, 900)


def parse_semester(value: str) -> str:
    return SEMESTER_ALIASES.get(value.strip().lower(), "")


def parse_level(value: str) -> str:
    """Canonical level (\"200\") or \"\" when it is not a plausible level number"""
    try:
        level = int(value.strip())
    except ValueError:
        return ""
    low, high = LEVEL_RANGE
    return str(level) if low <= level <= high else ""


def parse_flag(value: str) -> str:
    return "1" if value.strip().lower() in TRUE_FLAGS else ""


def normalize_course_code(value: str) -> str:
    return " ".join(value.split()).upper()


MATERIAL_SORTS = {
    "newest": [StudyMaterial.created_at.desc()],
    "oldest": [StudyMaterial.created_at.asc()],
    "downloads_desc": [StudyMaterial.downloads.desc().nulls_last()],
    "downloads_asc": [StudyMaterial.downloads.asc().nulls_last()],
}

MATERIAL_FACETS = [
    Facet("level", lambda value: StudyCourse.level == int(value), parse=parse_level),
    Facet("semester", lambda value: StudyCourse.semester == value, choices=SEMESTERS, parse=parse_semester),
    Facet("faculty", lambda value: StudyCourse.faculty == value),
    Facet("dept", lambda value: StudyCourse.department == value),
    Facet("course", lambda value: StudyCourse.course_code == value, parse=normalize_course_code),
    Facet("session", lambda value: StudyMaterial.session.ilike(contains_pattern(value), escape=LIKE_ESCAPE)),
    Facet("type", lambda value: StudyMaterial.material_type == value, choices=MATERIAL_TYPES),
    Facet("verified", lambda value: StudyMaterial.verified.is_(True), choices=("1",), parse=parse_flag),
    Facet("featured", lambda value: StudyMaterial.featured.is_(True), choices=("1",), parse=parse_flag),
]

material_engine = ListQueryEngine(ListQueryConfig(
    name="materials",
    model=StudyMaterial,
    path="/materials",
    search_columns=[
        StudyMaterial.title,
        StudyMaterial.description,
        StudyCourse.course_code,
        StudyCourse.course_title,
        StudyCourse.department,
        StudyCourse.faculty,
    ],
    sorts=MATERIAL_SORTS,
    page_size=12,
    facets=MATERIAL_FACETS,
    base_filters=[StudyMaterial.approved.is_(True)],
    joins=[(StudyCourse, StudyMaterial.course_id == StudyCourse.id)],
    options=[selectinload(StudyMaterial.course)],
))


class MaterialHelpers:
    """Helper functions for study material operations"""

    @staticmethod
    async def get_material(db: AsyncSession, material_id: str, approved_only: bool = True) -> StudyMaterial:
        material_uuid = as_uuid(material_id)
        material = None
        if material_uuid is not None:
            query = (
                select(StudyMaterial)
                .options(selectinload(StudyMaterial.course))
                .where(StudyMaterial.id == material_uuid)
            )
            if approved_only:
                query = query.where(StudyMaterial.approved.is_(True))
            result = await db.execute(query)
            material = result.scalar_one_or_none()

        if not material:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Material not found"
            )

        return material

    @staticmethod
    async def record_download(db: AsyncSession, material_id: str) -> Tuple[int, Optional[str]]:
        """
        Single UPDATE ... SET downloads = downloads + 1 so concurrent readers
        never lose a count. Returns the new count and the file URL.
        """
        material_uuid = as_uuid(material_id)
        row = None
        if material_uuid is not None:
            result = await db.execute(
                update(StudyMaterial)
                .where(StudyMaterial.id == material_uuid)
                .where(StudyMaterial.approved.is_(True))
                .values(downloads=StudyMaterial.downloads + 1)
                .returning(StudyMaterial.downloads, StudyMaterial.file_url)
            )
            row = result.first()

        if row is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Material not found"
            )

        await db.commit()
        return row[0], row[1]

    @staticmethod
    async def course_facets(db: AsyncSession, faculty: Optional[str] = None, dept: Optional[str] = None,
                            level: Optional[str] = None) -> Dict[str, Any]:
        """Drop-down options: every faculty, departments within ``faculty``, courses within the narrowing."""
        faculties = (await db.execute(
            select(StudyCourse.faculty).distinct().order_by(StudyCourse.faculty)
        )).scalars().all()

        dept_query = select(StudyCourse.department).distinct().order_by(StudyCourse.department)
        course_query = select(StudyCourse).order_by(StudyCourse.course_code)

        if faculty:
            dept_query = dept_query.where(StudyCourse.faculty == faculty)
            course_query = course_query.where(StudyCourse.faculty == faculty)
        if dept:
            course_query = course_query.where(StudyCourse.department == dept)
        level_value = parse_level(level or "")
        if level_value:
            course_query = course_query.where(StudyCourse.level == int(level_value))

        departments = (await db.execute(dept_query)).scalars().all()
        courses = (await db.execute(course_query)).scalars().all()

        return {
            "faculties": list(faculties),
            "departments": list(departments),
            "courses": list(courses),
        }

    @staticmethod
    async def validate_submission(db: AsyncSession, data: Dict[str, Any]) -> Dict[str, Any]:
        title = " ".join((data.get("title") or "").split())
        if not title:
            raise ValidationFailure("title", "Title is required.")

        material_type = data.get("material_type") or "other"
        if material_type not in MATERIAL_TYPES:
            raise ValidationFailure("material_type", f"Type must be one of: {', '.join(MATERIAL_TYPES)}.")

        course_uuid = as_uuid(data.get("course_id"))
        course = None
        if course_uuid is not None:
            course = (await db.execute(
                select(StudyCourse).where(StudyCourse.id == course_uuid)
            )).scalar_one_or_none()
        if course is None:
            raise ValidationFailure("course_id", "Pick a course from the list.")

        file_url = (data.get("file_url") or "").strip() or None
        file_path = (data.get("file_path") or "").strip() or None
        if not file_url and not file_path:
            raise ValidationFailure("file_url", "Upload a file first.")

        return {
            "course_id": course.id,
            "title": title,
            "description": " ".join((data.get("description") or "").split()) or None,
            "material_type": material_type,
            "session": " ".join((data.get("session") or "").split()) or None,
            "file_url": file_url,
            "file_path": file_path,
        }


material_helpers = MaterialHelpers()
