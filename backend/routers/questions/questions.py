from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from config import get_db
from models import StudyQuestion
from routers.auth.auth import get_current_user, get_optional_user
from routers.auth.schemas import SessionContext
from utils.errors import QueryFailure, ValidationFailure, query_failure_exception, validation_failure_exception
from utils.response_helpers import safe_model_validate, safe_model_validate_list, page_fields, as_uuid
from routers.questions.schemas import (
    QuestionAsk, QuestionResponse, QuestionListResponse, QuestionDetailResponse,
    AnswerPost, AnswerResponse, UpvoteResponse
)
from routers.questions.helpers import question_helpers, question_engine, is_question_owner
from typing import Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/questions", tags=["Study Q&A"])


# =================
# Questions
# =================

@router.get("/", response_model=QuestionListResponse)
async def list_questions(
    q: Optional[str] = Query(None, description="Search title and body"),
    course: Optional[str] = Query(None),
    level: Optional[str] = Query(None),
    unsolved: Optional[str] = Query(None, description="1 to show unsolved questions only"),
    sort: Optional[str] = Query(None, description="newest | upvoted | answered | unanswered"),
    page: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    """The Q&A board"""
    try:
        result = await question_engine.fetch(db, {
            "q": q, "course": course, "level": level, "unsolved": unsolved, "sort": sort, "page": page,
        })

        return QuestionListResponse(
            questions=safe_model_validate_list(QuestionResponse, result.rows),
            **page_fields(question_engine, result)
        )

    except QueryFailure as e:
        raise query_failure_exception(e, question_engine.config.path)
    except Exception as e:
        logger.error(f"Error listing questions: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load questions"
        )


@router.post("/", response_model=QuestionResponse, status_code=status.HTTP_201_CREATED)
async def ask_question(
    question_data: QuestionAsk,
    current_user: SessionContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Post a question to the board"""
    try:
        values = question_helpers.validate_question(question_data.model_dump())
        question = StudyQuestion(
            **values,
            author_id=as_uuid(current_user.user_id),
            author_email=current_user.email,
            upvotes_count=0,
            answers_count=0,
            solved=False,
        )

        db.add(question)
        await db.commit()
        await db.refresh(question)

        logger.info(f"Question {question.id} asked by user {current_user.user_id}")
        return safe_model_validate(QuestionResponse, question)

    except ValidationFailure as e:
        raise validation_failure_exception(e)
    except Exception as e:
        await db.rollback()
        logger.error(f"Error asking question: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to post question"
        )


@router.get("/{question_id}", response_model=QuestionDetailResponse)
async def get_question(
    question_id: str,
    current_user: Optional[SessionContext] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
):
    """A question with its answers, accepted answer first"""
    try:
        question = await question_helpers.get_question(db, question_id)
        answers = await question_helpers.get_answers(db, question.id)
        user_id = current_user.user_id if current_user else None

        return QuestionDetailResponse(
            question=safe_model_validate(QuestionResponse, question),
            answers=safe_model_validate_list(AnswerResponse, answers),
            my_upvoted=await question_helpers.has_upvoted(db, question.id, user_id),
            is_owner=current_user is not None and is_question_owner(question, current_user),
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting question {question_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get question"
        )


# =================
# Answers and votes
# =================

@router.post("/{question_id}/answers", response_model=AnswerResponse, status_code=status.HTTP_201_CREATED)
async def post_answer(
    question_id: str,
    answer_data: AnswerPost,
    current_user: SessionContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    try:
        body = question_helpers.validate_answer(answer_data.body)
        question = await question_helpers.get_question(db, question_id)

        answer, answers_count = await question_helpers.add_answer(db, question, current_user, body)

        logger.info(f"Answer {answer.id} posted on question {question_id} ({answers_count} answers)")
        return safe_model_validate(AnswerResponse, answer)

    except ValidationFailure as e:
        raise validation_failure_exception(e)
    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error answering question {question_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to post answer"
        )


@router.post("/{question_id}/answers/{answer_id}/accept", response_model=AnswerResponse)
async def accept_answer(
    question_id: str,
    answer_id: str,
    current_user: SessionContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Mark one answer as accepted and the question as solved. Owner only."""
    try:
        question = await question_helpers.get_question(db, question_id)
        answer = await question_helpers.accept_answer(db, question, answer_id, current_user)

        logger.info(f"Answer {answer_id} accepted on question {question_id}")
        return safe_model_validate(AnswerResponse, answer)

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error accepting answer {answer_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to accept answer"
        )


@router.post("/{question_id}/upvote", response_model=UpvoteResponse)
async def toggle_upvote(
    question_id: str,
    current_user: SessionContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Upvote, or take back an upvote"""
    try:
        question = await question_helpers.get_question(db, question_id)
        upvoted, upvotes_count = await question_helpers.toggle_upvote(db, question, current_user.user_id)

        return UpvoteResponse(question_id=str(question.id), upvoted=upvoted, upvotes_count=upvotes_count)

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error toggling upvote on question {question_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update vote"
        )
