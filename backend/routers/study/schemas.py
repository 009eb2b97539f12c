from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Union


# Units and grades arrive as typed into the form; bad rows are skipped, not rejected
class GpaCourse(BaseModel):
    code: Optional[str] = None
    units: Optional[Union[float, str]] = None
    grade: Optional[str] = None


class GpaSemester(BaseModel):
    name: Optional[str] = None
    courses: List[GpaCourse] = []


class GpaRequest(BaseModel):
    scale: str = Field("ng_5", description="ng_5 | us_4 | custom")
    custom_scale: Optional[Dict[str, float]] = None
    semesters: List[GpaSemester] = []


class SemesterResult(BaseModel):
    name: Optional[str] = None
    gpa: float
    units_total: float
    points_total: float
    valid_rows: int
    invalid_rows: int


class GpaClassification(BaseModel):
    label: str
    hint: str


class GpaResponse(BaseModel):
    scale: Dict[str, float]
    scale_max: float
    cgpa: float
    cgpa_display: str
    units_total: float
    points_total: float
    valid_rows: int
    invalid_rows: int
    grade_count: Dict[str, int]
    classification: GpaClassification
    semesters: List[SemesterResult]


class RequiredGpaRequest(BaseModel):
    current_cgpa: Optional[Union[float, str]] = None
    completed_units: Optional[Union[float, str]] = None
    target_cgpa: Optional[Union[float, str]] = None
    next_units: Optional[Union[float, str]] = None
    scale: str = "ng_5"
    custom_scale: Optional[Dict[str, float]] = None


class RequiredStatus(BaseModel):
    type: str  # success | info | error
    text: str


class RequiredGpaResponse(BaseModel):
    required_gpa: Optional[float] = None
    required_display: Optional[str] = None
    scale_max: float
    status: Optional[RequiredStatus] = None


class LeaderboardEntry(BaseModel):
    rank: int
    email: str
    questions: int
    answers: int
    accepted: int
    question_upvotes: int
    points: int


class LeaderboardResponse(BaseModel):
    entries: List[LeaderboardEntry]
    limit: int
