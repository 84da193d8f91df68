"""Load-time normalization of stored quizzes.

Older quizzes were saved by the authoring UI with camelCase keys and often
without an explicit question type: a question carrying ``mcqOptions`` was an
MCQ, ``fill-in-the-blank`` was the tag spelling, and anything else was treated
as open-ended. Everything is rewritten here, once, into the canonical
snake_case shape with a ``question_type`` discriminant so the evaluation
engine only ever sees one representation.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from pydantic import TypeAdapter

from .quiz import Question, QuestionType, Quiz

logger = logging.getLogger(__name__)

_CAMEL_BOUNDARY_RE = re.compile(r"(?<=[a-z0-9])([A-Z])")
_FINAL_ANSWER_LINE_RE = re.compile(r"^\s*final\s+answer\s*[:：]\s*(.+)$", re.IGNORECASE)

LEGACY_TYPE_TAGS = {
    "mcq": QuestionType.mcq,
    "multiple-choice": QuestionType.mcq,
    "multiple_choice": QuestionType.mcq,
    "fill-in-blank": QuestionType.fill_in_blank,
    "fill-in-the-blank": QuestionType.fill_in_blank,
    "fill_blank": QuestionType.fill_in_blank,
    "fill_in_blank": QuestionType.fill_in_blank,
    "open-ended": QuestionType.open_ended,
    "open_ended": QuestionType.open_ended,
}

_question_adapter = TypeAdapter(Question)


def _snake_case(key: str) -> str:
    return _CAMEL_BOUNDARY_RE.sub(lambda match: "_" + match.group(1).lower(), key)


def _snake_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {_snake_case(str(key)): _snake_keys(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_snake_keys(item) for item in value]
    return value


def infer_question_type(payload: Dict[str, Any]) -> QuestionType:
    tag = str(payload.get("question_type") or "").strip().lower()
    if tag in LEGACY_TYPE_TAGS:
        return LEGACY_TYPE_TAGS[tag]
    if tag:
        logger.warning("Unknown question type %r on question %s; inferring from shape.", tag, payload.get("id"))
    if payload.get("mcq_options"):
        return QuestionType.mcq
    if payload.get("segmented_elements"):
        return QuestionType.fill_in_blank
    return QuestionType.open_ended


def _coerce_marks(value: Any) -> int:
    try:
        marks = int(value)
    except (TypeError, ValueError, OverflowError):
        return 1
    return marks if marks >= 1 else 1


def _final_answer_from_model_answer(lines: List[Any]) -> Optional[str]:
    for line in reversed(lines):
        match = _FINAL_ANSWER_LINE_RE.match(str(line))
        if match:
            return match.group(1).strip()
    return None


def migrate_question_payload(raw: Dict[str, Any]) -> Dict[str, Any]:
    payload = _snake_keys(dict(raw))
    question_type = infer_question_type(payload)
    payload["question_type"] = question_type.value
    payload["marks"] = _coerce_marks(payload.get("marks"))

    question_id = str(payload.get("id") or "")
    blocks = payload.get("blocks") or []
    if isinstance(blocks, list):
        payload["blocks"] = [
            {**block, "id": str(block.get("id") or f"{question_id}-block-{index}")}
            for index, block in enumerate(blocks)
            if isinstance(block, dict)
        ]

    if question_type == QuestionType.open_ended:
        model_answer = payload.get("model_answer")
        if not isinstance(model_answer, list):
            model_answer = []
        payload["model_answer"] = [str(line) for line in model_answer]
        if not payload.get("answer_boxes") and not payload.get("final_answer"):
            payload["final_answer"] = _final_answer_from_model_answer(model_answer)
    return payload


def load_question(raw: Dict[str, Any]) -> Question:
    if not isinstance(raw, dict):
        return _question_adapter.validate_python(raw)
    return _question_adapter.validate_python(migrate_question_payload(raw))


def load_quiz(raw: Dict[str, Any]) -> Quiz:
    payload = _snake_keys(dict(raw))
    questions = payload.get("questions") or []
    if isinstance(questions, list):
        payload["questions"] = [load_question(item) for item in questions]
    return Quiz.model_validate(payload)
