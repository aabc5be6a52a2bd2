import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, ConfigDict, Field

from trainer.core.session import get_progress
from trainer.models.catalog import CatalogType
from trainer.services.catalog_store import QuestionNotFoundError
from trainer.services.progress import SessionProgress
from trainer.services.quiz_engine import QuizEngine

logger = logging.getLogger(__name__)

router = APIRouter()

MSG_CORRECT = "Correct!"
MSG_COMPLETED = "Congratulations! You've completed all questions!"
MSG_WRONG = "Wrong answer. Please try again."


class CatalogSummary(BaseModel):
    type: CatalogType
    total_count: int
    answered_count: int


class AnswerOut(BaseModel):
    text: str


class QuestionOut(BaseModel):
    id: str
    question: str
    answers: List[AnswerOut]


class QuizState(BaseModel):
    type: CatalogType
    completed: bool
    question: Optional[QuestionOut] = None
    answered_count: int
    total_count: int
    message: Optional[str] = None


class CheckRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question_id: str = Field(alias="questionId")
    answer_text: str = Field(alias="answerText")
    type: CatalogType


class CheckResponse(BaseModel):
    correct: bool
    completed: bool
    message: str


def get_engine(request: Request) -> QuizEngine:
    return request.app.state.engine


@router.get("/", response_model=List[CatalogSummary])
def start(engine: QuizEngine = Depends(get_engine), progress: SessionProgress = Depends(get_progress)):
    return [
        CatalogSummary(type=t, total_count=engine.total_questions(t), answered_count=progress.answered_count(t))
        for t in engine.catalogs.catalogs()
    ]


@router.get("/quiz", response_model=QuizState)
def quiz(
    catalog: CatalogType = Query(alias="type"),
    engine: QuizEngine = Depends(get_engine),
    progress: SessionProgress = Depends(get_progress),
):
    logger.info("Quiz requested for catalog: %s", catalog.value)
    turn = engine.next_question(progress, catalog)
    if turn.completed:
        return QuizState(
            type=catalog, completed=True,
            answered_count=turn.answered_count, total_count=turn.total_count,
            message=f"Congratulations! You've completed all {turn.total_count} questions in the {catalog.value} catalog!",
        )
    q = turn.question
    return QuizState(
        type=catalog, completed=False,
        question=QuestionOut(id=q.id, question=q.question, answers=[AnswerOut(text=a.text) for a in q.answers]),
        answered_count=turn.answered_count, total_count=turn.total_count,
    )


@router.post("/quiz/check", response_model=CheckResponse)
def check_answer(
    payload: CheckRequest,
    engine: QuizEngine = Depends(get_engine),
    progress: SessionProgress = Depends(get_progress),
):
    logger.info("Checking answer for question %s in catalog %s", payload.question_id, payload.type.value)
    try:
        outcome = engine.submit_answer(progress, payload.type, payload.question_id, payload.answer_text)
    except QuestionNotFoundError as e:
        raise HTTPException(404, str(e))
    if not outcome.correct:
        return CheckResponse(correct=False, completed=False, message=MSG_WRONG)
    if outcome.completed:
        return CheckResponse(correct=True, completed=True, message=MSG_COMPLETED)
    return CheckResponse(correct=True, completed=False, message=MSG_CORRECT)
