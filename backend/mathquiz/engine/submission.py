import json
import logging
from typing import Any, Dict, List, Mapping

logger = logging.getLogger(__name__)

WORKING_STEPS_KEY_PREFIX = "working-steps-"
FINAL_ANSWER_KEY_PREFIX = "final-answer-"

QuestionAnswers = Mapping[str, Any]
Submission = Mapping[str, QuestionAnswers]


def working_steps_key(question_id: str) -> str:
    return f"{WORKING_STEPS_KEY_PREFIX}{question_id}"


def final_answer_key(question_id: str, answer_box_id: str = "") -> str:
    key = f"{FINAL_ANSWER_KEY_PREFIX}{question_id}"
    return f"{key}-{answer_box_id}" if answer_box_id else key


def answer_value(answers: QuestionAnswers, key: str) -> str:
    value = answers.get(key)
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def parse_working_steps(answers: QuestionAnswers, question_id: str) -> List[str]:
    """Working steps arrive as a JSON-encoded list of strings."""
    raw = answers.get(working_steps_key(question_id))
    if raw is None or raw == "":
        return []
    if isinstance(raw, list):
        steps = raw
    else:
        try:
            steps = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Unreadable working steps for question %s; ignoring them.", question_id)
            return []
    if not isinstance(steps, list):
        return []
    return ["" if step is None else str(step) for step in steps]


def clean_steps(steps: List[str]) -> List[str]:
    return [step.strip() for step in steps if step and step.strip()]


def answers_for(submissions: Submission, question_id: str) -> Dict[str, Any]:
    answers = submissions.get(question_id) if submissions else None
    return dict(answers) if isinstance(answers, Mapping) else {}
