from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from utils.response_helpers import PageResponse


class QuestionAsk(BaseModel):
    title: str
    body: str
    course_code: Optional[str] = None
    level: Optional[str] = None


class QuestionResponse(BaseModel):
    id: str
    title: str
    body: Optional[str] = None
    course_code: Optional[str] = None
    level: Optional[str] = None
    author_email: Optional[str] = None
    upvotes_count: int = 0
    answers_count: int = 0
    solved: bool = False
    created_at: datetime

    class Config:
        from_attributes = True


class QuestionListResponse(PageResponse):
    questions: List[QuestionResponse]


class AnswerPost(BaseModel):
    body: str


class AnswerResponse(BaseModel):
    id: str
    question_id: str
    body: str
    author_email: Optional[str] = None
    is_accepted: bool = False
    created_at: datetime

    class Config:
        from_attributes = True


class QuestionDetailResponse(BaseModel):
    question: QuestionResponse
    answers: List[AnswerResponse]
    my_upvoted: bool = False
    is_owner: bool = False


class UpvoteResponse(BaseModel):
    question_id: str
    upvoted: bool
    upvotes_count: int
