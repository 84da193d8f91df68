import asyncio
import logging
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from mathquiz.core.config import load_settings
from mathquiz.db.session import get_db, init_db
from mathquiz.engine.aggregator import evaluate_quiz
from mathquiz.engine.comparator import equivalent, extract_values
from mathquiz.engine.normalizer import normalize
from mathquiz.schemas.evaluation import QuizEvaluation
from mathquiz.schemas.quiz import Quiz, QuizListResponse
from mathquiz.schemas.quiz_submit import (
    CompareRequest,
    CompareResponse,
    InlineQuizEvaluateRequest,
    NormalizeRequest,
    NormalizeResponse,
    QuizEvaluateRequest,
)
from mathquiz.services.llm.base import StepGradingClient
from mathquiz.services.provider_factory import build_grading_client
from mathquiz.services.quiz_service import (
    QuizServiceError,
    delete_quiz,
    evaluate_saved_quiz,
    get_quiz,
    list_quizzes,
    parse_quiz,
    save_quiz,
)
from mathquiz.services.step_grader import StepGradingAdapter

settings = load_settings()
scoring_policy = settings.scoring_policy()
grading_client = build_grading_client(settings)
logger = logging.getLogger(__name__)

app = FastAPI(docs_url="/api-docs", redoc_url="/api-redoc")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_grading_client() -> Optional[StepGradingClient]:
    return grading_client


def _error_response(exc: QuizServiceError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": exc.status_code, "message": exc.message, "details": exc.details or {}},
    )


def _timeout_response() -> JSONResponse:
    return JSONResponse(
        status_code=504,
        content={
            "code": 504,
            "message": "Quiz evaluation timed out",
            "details": {"timeout_seconds": settings.evaluation_timeout},
        },
    )


@app.on_event("startup")
def create_tables_on_startup():
    init_db()


@app.get("/health")
def health():
    return {"status": "ok", "step_grading": grading_client is not None}


@app.post("/quizzes", response_model=Quiz)
def create_or_update_quiz(payload: dict, db: Session = Depends(get_db)):
    try:
        return save_quiz(db, payload)
    except QuizServiceError as exc:
        return _error_response(exc)


@app.get("/quizzes", response_model=QuizListResponse)
def quizzes_list(db: Session = Depends(get_db)):
    return {"items": list_quizzes(db)}


@app.get("/quizzes/{quiz_id}", response_model=Quiz)
def quiz_detail(quiz_id: str, db: Session = Depends(get_db)):
    try:
        return get_quiz(db, quiz_id)
    except QuizServiceError as exc:
        return _error_response(exc)


@app.delete("/quizzes/{quiz_id}")
def quiz_delete(quiz_id: str, db: Session = Depends(get_db)):
    try:
        delete_quiz(db, quiz_id)
    except QuizServiceError as exc:
        return _error_response(exc)
    return {"deleted": quiz_id}


@app.post("/quizzes/{quiz_id}/evaluate", response_model=QuizEvaluation)
async def quiz_evaluate(
    quiz_id: str,
    request: QuizEvaluateRequest,
    db: Session = Depends(get_db),
    client: Optional[StepGradingClient] = Depends(get_grading_client),
):
    try:
        return await asyncio.wait_for(
            evaluate_saved_quiz(
                db,
                quiz_id,
                request.answers,
                grader=StepGradingAdapter(client),
                policy=scoring_policy,
            ),
            timeout=settings.evaluation_timeout,
        )
    except QuizServiceError as exc:
        return _error_response(exc)
    except asyncio.TimeoutError:
        logger.warning("Evaluation of quiz %s exceeded %ss.", quiz_id, settings.evaluation_timeout)
        return _timeout_response()


@app.post("/evaluate", response_model=QuizEvaluation)
async def inline_evaluate(
    request: InlineQuizEvaluateRequest,
    client: Optional[StepGradingClient] = Depends(get_grading_client),
):
    try:
        quiz = parse_quiz({**request.quiz, "id": request.quiz.get("id") or "inline"})
    except QuizServiceError as exc:
        return _error_response(exc)
    try:
        return await asyncio.wait_for(
            evaluate_quiz(quiz, request.answers, grader=StepGradingAdapter(client), policy=scoring_policy),
            timeout=settings.evaluation_timeout,
        )
    except asyncio.TimeoutError:
        logger.warning("Inline evaluation of quiz %s exceeded %ss.", quiz.id, settings.evaluation_timeout)
        return _timeout_response()


@app.post("/normalize", response_model=NormalizeResponse)
def normalize_expression(request: NormalizeRequest):
    return {"expression": request.expression, "normalized": normalize(request.expression)}


@app.post("/compare", response_model=CompareResponse)
def compare_expressions(request: CompareRequest):
    return {
        "equivalent": equivalent(request.student, request.correct),
        "student_values": extract_values(request.student),
        "correct_values": extract_values(request.correct),
    }
