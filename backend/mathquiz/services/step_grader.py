"""Adapter between the evaluation engine and the external step grader.

The grader has spoken two response protocols over time:

* legacy: ``{"steps": [...], "correctSolutionSteps": [...]}``
* current: ``{"steps": [...], "modelAnswer": [...], "correctPoints": [...],
  "improvementPoints": [...]}``

Both are folded into one ``GradingResult``. The grader's own copy of each step
is never trusted: feedback is re-attached to the submitted step text by
position, and the list is cut or padded to the submitted step count.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional, Union

from mathquiz.schemas.evaluation import FeedbackBundle, GradingResult, StepEvaluation
from mathquiz.schemas.quiz import OpenEndedQuestion

from .llm.base import StepGradingClient

logger = logging.getLogger(__name__)

UNPARSABLE_STEP_FEEDBACK = "Could not parse the grader response. Please review manually."
UNEVALUATED_STEP_FEEDBACK = "Could not evaluate this step automatically."

_FENCED_JSON_RE = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)


class _Unparsable(ValueError):
    pass


def build_grading_request(
    question: OpenEndedQuestion,
    steps: List[str],
    student_final: Union[str, List[str]],
    correct_final: Union[str, List[str]],
) -> Dict[str, Any]:
    return {
        "question": {
            "id": question.id,
            "instruction": question.instruction,
            "blocks": [{"type": block.type, "content": block.content} for block in question.blocks],
            "answerBoxes": [
                {"id": box.id, "label": box.label, "answer": box.answer} for box in (question.answer_boxes or [])
            ],
            "marks": question.marks,
        },
        "studentSteps": list(steps),
        "studentFinalAnswer": student_final,
        "correctAnswer": correct_final,
    }


def _decode(payload: Any) -> Any:
    if isinstance(payload, (bytes, bytearray)):
        payload = payload.decode("utf-8", errors="replace")
    if not isinstance(payload, str):
        return payload
    try:
        return json.loads(payload)
    except json.JSONDecodeError:
        match = _FENCED_JSON_RE.search(payload)
        if match:
            try:
                return json.loads(match.group(1))
            except json.JSONDecodeError:
                pass
    raise _Unparsable("Grader payload is not JSON.")


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if item is not None and str(item).strip()]


def _coerce_correct(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"true", "yes", "correct", "1"}
    return False


def _coerce_marks(value: Any) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        marks = int(value)
    except (TypeError, ValueError):
        return None
    return marks if marks >= 0 else None


def fallback_result(steps: List[str], feedback: str) -> GradingResult:
    return GradingResult(
        steps=[
            StepEvaluation(step_index=index, step_content=step, is_correct=False, feedback=feedback)
            for index, step in enumerate(steps)
        ],
        protocol="fallback",
    )


def normalize_grading_payload(payload: Any, steps: List[str]) -> Optional[GradingResult]:
    """Turn a raw grader payload into a ``GradingResult``.

    Returns ``None`` when the grader reports an error; malformed payloads give
    a fallback result with one unevaluated entry per submitted step.
    """
    try:
        data = _decode(payload)
    except _Unparsable:
        logger.warning("Step grader returned unparsable payload; using fallback step results.")
        return fallback_result(steps, UNPARSABLE_STEP_FEEDBACK)

    if not isinstance(data, dict):
        logger.warning("Step grader returned %s instead of an object.", type(data).__name__)
        return fallback_result(steps, UNEVALUATED_STEP_FEEDBACK)

    if data.get("error"):
        logger.warning("Step grader reported an error: %s", data.get("error"))
        return None

    raw_steps = data.get("steps")
    if not isinstance(raw_steps, list):
        logger.warning("Step grader payload has no step list; using fallback step results.")
        return fallback_result(steps, UNEVALUATED_STEP_FEEDBACK)

    evaluations: List[StepEvaluation] = []
    for index, step in enumerate(steps):
        item = raw_steps[index] if index < len(raw_steps) else None
        if not isinstance(item, dict):
            evaluations.append(
                StepEvaluation(step_index=index, step_content=step, is_correct=False, feedback=UNEVALUATED_STEP_FEEDBACK)
            )
            continue
        evaluations.append(
            StepEvaluation(
                step_index=index,
                step_content=step,
                is_correct=_coerce_correct(item.get("isCorrect", item.get("is_correct"))),
                feedback=str(item.get("feedback") or "").strip(),
                marks_awarded=_coerce_marks(item.get("marksAwarded", item.get("marks_awarded"))),
            )
        )
    if len(raw_steps) != len(steps):
        logger.info("Step grader returned %d steps for %d submitted; realigned.", len(raw_steps), len(steps))

    if "correctSolutionSteps" in data and "modelAnswer" not in data:
        return GradingResult(
            steps=evaluations,
            feedback=FeedbackBundle(model_answer=_string_list(data.get("correctSolutionSteps"))),
            protocol="legacy",
        )
    return GradingResult(
        steps=evaluations,
        feedback=FeedbackBundle(
            model_answer=_string_list(data.get("modelAnswer")),
            correct_points=_string_list(data.get("correctPoints")),
            improvement_points=_string_list(data.get("improvementPoints")),
        ),
        protocol="current",
    )


async def grade_steps(
    question: OpenEndedQuestion,
    steps: List[str],
    student_final: Union[str, List[str]],
    correct_final: Union[str, List[str]],
    client: Optional[StepGradingClient],
) -> Optional[GradingResult]:
    if client is None:
        logger.warning("No step grader configured; skipping step grading for question %s.", question.id)
        return None
    if not steps:
        return GradingResult(protocol="current")

    request = build_grading_request(question, steps, student_final, correct_final)
    try:
        payload = await client.grade(request)
    except Exception as exc:
        logger.warning("Step grading failed for question %s: %s", question.id, exc)
        return None

    try:
        return normalize_grading_payload(payload, steps)
    except Exception as exc:
        logger.warning("Step grading payload for question %s could not be normalized: %s", question.id, exc)
        return fallback_result(steps, UNEVALUATED_STEP_FEEDBACK)


class StepGradingAdapter:
    """Binds a grading client so the engine can call ``grade_steps`` on it."""

    def __init__(self, client: Optional[StepGradingClient]):
        self.client = client

    async def grade_steps(
        self,
        question: OpenEndedQuestion,
        steps: List[str],
        student_final: Union[str, List[str]],
        correct_final: Union[str, List[str]],
    ) -> Optional[GradingResult]:
        return await grade_steps(question, steps, student_final, correct_final, self.client)
