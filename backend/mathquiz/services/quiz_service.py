import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError
from sqlalchemy.orm import Session

from mathquiz.db import models
from mathquiz.engine.aggregator import evaluate_quiz
from mathquiz.engine.evaluators import StepGrader
from mathquiz.engine.policy import DEFAULT_POLICY, ScoringPolicy
from mathquiz.schemas.evaluation import QuizEvaluation
from mathquiz.schemas.migration import load_quiz
from mathquiz.schemas.quiz import Quiz

logger = logging.getLogger(__name__)


class QuizServiceError(Exception):
    def __init__(self, status_code: int, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.details = details


def generate_quiz_id() -> str:
    return uuid.uuid4().hex


def parse_quiz(raw: Mapping[str, Any]) -> Quiz:
    try:
        return load_quiz(dict(raw))
    except ValidationError as exc:
        raise QuizServiceError(
            422,
            "Invalid quiz payload",
            {"errors": exc.errors(include_url=False, include_context=False)},
        ) from exc


def _record_to_quiz(record: models.QuizRecord) -> Quiz:
    payload = dict(record.payload_json or {})
    payload["id"] = record.id
    payload["created_at"] = record.created_at
    payload["updated_at"] = record.updated_at
    return parse_quiz(payload)


def save_quiz(db: Session, raw: Mapping[str, Any]) -> Quiz:
    payload = dict(raw)
    quiz_id = str(payload.get("id") or "").strip() or generate_quiz_id()
    payload["id"] = quiz_id
    quiz = parse_quiz(payload)
    stored = quiz.model_dump(mode="json", exclude={"created_at", "updated_at"})

    now = datetime.utcnow()
    record = db.get(models.QuizRecord, quiz_id)
    if record is None:
        record = models.QuizRecord(id=quiz_id, created_at=now)
        db.add(record)
    record.title = quiz.title
    record.payload_json = stored
    record.updated_at = now
    db.commit()
    db.refresh(record)
    return _record_to_quiz(record)


def get_quiz(db: Session, quiz_id: str) -> Quiz:
    record = db.get(models.QuizRecord, quiz_id)
    if record is None:
        raise QuizServiceError(404, "Quiz not found", {"quiz_id": quiz_id})
    return _record_to_quiz(record)


def list_quizzes(db: Session) -> List[Dict[str, Any]]:
    records = db.query(models.QuizRecord).order_by(models.QuizRecord.updated_at.desc()).all()
    items: List[Dict[str, Any]] = []
    for record in records:
        questions = (record.payload_json or {}).get("questions") or []
        items.append(
            {
                "id": record.id,
                "title": record.title or "",
                "question_count": len(questions),
                "total_marks": sum(int(question.get("marks") or 1) for question in questions),
                "created_at": record.created_at,
                "updated_at": record.updated_at,
            }
        )
    return items


def delete_quiz(db: Session, quiz_id: str) -> None:
    record = db.get(models.QuizRecord, quiz_id)
    if record is None:
        raise QuizServiceError(404, "Quiz not found", {"quiz_id": quiz_id})
    db.delete(record)
    db.commit()


async def evaluate_saved_quiz(
    db: Session,
    quiz_id: str,
    answers: Mapping[str, Mapping[str, Any]],
    grader: Optional[StepGrader] = None,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> QuizEvaluation:
    quiz = await run_in_threadpool(get_quiz, db, quiz_id)
    unknown = sorted(set(answers or {}) - {question.id for question in quiz.questions})
    if unknown:
        logger.info("Ignoring answers for unknown questions %s on quiz %s.", unknown, quiz_id)
    return await evaluate_quiz(quiz, answers or {}, grader=grader, policy=policy)
