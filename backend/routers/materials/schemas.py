from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from utils.response_helpers import PageResponse


class CourseResponse(BaseModel):
    id: str
    faculty: str
    department: str
    level: int
    semester: str
    course_code: str
    course_title: Optional[str] = None

    class Config:
        from_attributes = True


class MaterialSubmit(BaseModel):
    course_id: str
    title: str
    description: Optional[str] = None
    material_type: Optional[str] = "other"
    session: Optional[str] = None
    file_url: Optional[str] = None
    file_path: Optional[str] = None


class MaterialResponse(BaseModel):
    id: str
    course_id: str
    title: str
    description: Optional[str] = None
    file_url: Optional[str] = None
    session: Optional[str] = None
    material_type: str
    approved: bool = False
    verified: bool = False
    featured: bool = False
    downloads: int = 0
    created_at: datetime
    course: Optional[CourseResponse] = None

    class Config:
        from_attributes = True


class MaterialListResponse(PageResponse):
    materials: List[MaterialResponse]


class DownloadResponse(BaseModel):
    id: str
    downloads: int
    file_url: Optional[str] = None


class CourseFacetsResponse(BaseModel):
    faculties: List[str]
    departments: List[str]
    courses: List[CourseResponse]
