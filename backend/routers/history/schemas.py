from pydantic import BaseModel
from typing import Optional, List, Dict
from datetime import datetime
from utils.response_helpers import PageResponse


class QuizSetSummary(BaseModel):
    id: str
    title: str
    course_code: Optional[str] = None
    level: Optional[str] = None
    time_limit_minutes: Optional[int] = None

    class Config:
        from_attributes = True


class AttemptResponse(BaseModel):
    id: str
    set_id: str
    status: str
    completed: bool = False
    started_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    score: Optional[int] = None
    total_questions: Optional[int] = None
    time_spent_seconds: Optional[int] = None
    created_at: datetime
    quiz_set: Optional[QuizSetSummary] = None

    class Config:
        from_attributes = True


class HistoryListResponse(PageResponse):
    attempts: List[AttemptResponse]


class ReviewOption(BaseModel):
    id: str
    text: str
    is_correct: bool = False


class ReviewQuestion(BaseModel):
    id: str
    prompt: str
    explanation: Optional[str] = None
    options: List[ReviewOption]
    outcome: str  # correct | wrong | unanswered
    selected_option_id: Optional[str] = None
    correct_option_id: Optional[str] = None
    flagged: bool = False


class ReviewSummary(BaseModel):
    total: int
    answered: int
    correct: int
    wrong: int
    unanswered: int
    flagged: int


class AttemptReviewResponse(BaseModel):
    attempt: AttemptResponse
    summary: ReviewSummary
    tabs: Dict[str, List[str]]
    tab: str
    visible_question_ids: List[str]
    default_question_id: Optional[str] = None
    questions: List[ReviewQuestion]


class StreakResponse(BaseModel):
    streak: int
    did_practice_today: bool
    window_days: int
