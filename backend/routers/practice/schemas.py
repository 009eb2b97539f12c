from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from utils.response_helpers import PageResponse
from routers.history.schemas import AttemptResponse, ReviewSummary


class PracticeSetResponse(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    course_code: Optional[str] = None
    level: Optional[str] = None
    time_limit_minutes: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class PracticeSetListResponse(PageResponse):
    sets: List[PracticeSetResponse]


class PracticeOption(BaseModel):
    """Answer choice without its correctness"""
    id: str
    text: str

    class Config:
        from_attributes = True


class PracticeQuestion(BaseModel):
    id: str
    prompt: str
    position: Optional[int] = None
    options: List[PracticeOption]

    class Config:
        from_attributes = True


class PracticeSetDetailResponse(PracticeSetResponse):
    question_count: int
    questions: List[PracticeQuestion]


class AnswerSave(BaseModel):
    selected_option_id: Optional[str] = None


class AnswerSavedResponse(BaseModel):
    attempt_id: str
    question_id: str
    selected_option_id: Optional[str] = None
    answered: int
    total_questions: int


class AttemptSubmit(BaseModel):
    time_spent_seconds: Optional[int] = Field(None, ge=0)


class AttemptSubmitResponse(BaseModel):
    attempt: AttemptResponse
    summary: ReviewSummary
    points: int
