import asyncio
import json

import httpx

from mathquiz.schemas.quiz import AnswerBox, OpenEndedQuestion
from mathquiz.services.llm.base import GradingUnavailableError
from mathquiz.services.step_grader import (
    UNEVALUATED_STEP_FEEDBACK,
    UNPARSABLE_STEP_FEEDBACK,
    StepGradingAdapter,
    build_grading_request,
    grade_steps,
    normalize_grading_payload,
)

QUESTION = OpenEndedQuestion(
    id="q",
    instruction="Solve",
    marks=4,
    answer_boxes=[AnswerBox(id="x", label="x=", answer="4")],
)
STEPS = ["2x + 1 = 9", "2x = 8", "x = 4"]


class StaticClient:
    def __init__(self, payload=None, error=None):
        self.payload = payload
        self.error = error
        self.requests = []

    async def grade(self, request):
        self.requests.append(request)
        if self.error:
            raise self.error
        return self.payload


def _grade(client, steps=STEPS):
    return asyncio.run(grade_steps(QUESTION, steps, "4", "4", client))


def test_current_protocol_is_normalized():
    payload = {
        "steps": [
            {"stepIndex": 0, "stepContent": "paraphrased", "isCorrect": True, "feedback": "Good"},
            {"stepIndex": 1, "stepContent": "2x=8", "isCorrect": True, "feedback": "Good"},
            {"stepIndex": 2, "stepContent": "x=4", "isCorrect": False, "feedback": "Check"},
        ],
        "modelAnswer": ["Subtract 1", "Divide by 2"],
        "correctPoints": ["Clear layout"],
        "improvementPoints": None,
    }
    result = _grade(StaticClient(payload))
    assert result.protocol == "current"
    assert [step.step_content for step in result.steps] == STEPS
    assert [step.is_correct for step in result.steps] == [True, True, False]
    assert result.feedback.model_answer == ["Subtract 1", "Divide by 2"]
    assert result.feedback.correct_points == ["Clear layout"]
    assert result.feedback.improvement_points == []


def test_legacy_protocol_is_normalized():
    payload = json.dumps(
        {
            "steps": [{"isCorrect": True, "feedback": "ok"}] * 3,
            "correctSolutionSteps": ["2x = 8", "x = 4"],
        }
    )
    result = _grade(StaticClient(payload))
    assert result.protocol == "legacy"
    assert result.feedback.model_answer == ["2x = 8", "x = 4"]
    assert result.feedback.correct_points == []


def test_extra_steps_are_truncated_and_missing_steps_padded():
    many = {"steps": [{"isCorrect": True, "feedback": "hallucinated"}] * 6}
    result = normalize_grading_payload(many, STEPS)
    assert len(result.steps) == 3
    assert [step.step_index for step in result.steps] == [0, 1, 2]

    few = {"steps": [{"isCorrect": True, "feedback": "ok"}]}
    result = normalize_grading_payload(few, STEPS)
    assert len(result.steps) == 3
    assert result.steps[0].is_correct
    assert not result.steps[2].is_correct
    assert result.steps[2].feedback == UNEVALUATED_STEP_FEEDBACK
    assert result.steps[2].step_content == "x = 4"


def test_malformed_json_gives_fallback_per_step():
    result = _grade(StaticClient("not json {"))
    assert result is not None
    assert result.protocol == "fallback"
    assert len(result.steps) == len(STEPS)
    assert all(not step.is_correct for step in result.steps)
    assert all(step.feedback == UNPARSABLE_STEP_FEEDBACK for step in result.steps)


def test_fenced_json_is_recovered():
    payload = 'Here you go:\n```json\n{"steps": [{"isCorrect": true}], "modelAnswer": []}\n```'
    result = normalize_grading_payload(payload, ["x = 4"])
    assert result.protocol == "current"
    assert result.steps[0].is_correct


def test_wrong_shape_gives_fallback():
    assert normalize_grading_payload([1, 2], STEPS).protocol == "fallback"
    result = normalize_grading_payload({"modelAnswer": ["x"]}, STEPS)
    assert result.protocol == "fallback"
    assert result.steps[0].feedback == UNEVALUATED_STEP_FEEDBACK


def test_string_flags_and_step_marks_are_coerced():
    payload = {"steps": [{"isCorrect": "true", "marksAwarded": "2"}, {"isCorrect": "no", "marksAwarded": -1}]}
    result = normalize_grading_payload(payload, ["a", "b"])
    assert result.steps[0].is_correct
    assert result.steps[0].marks_awarded == 2
    assert not result.steps[1].is_correct
    assert result.steps[1].marks_awarded is None


def test_error_field_returns_none():
    assert _grade(StaticClient({"error": "OPENAI_API_KEY not configured", "steps": []})) is None


def test_client_failures_return_none():
    assert _grade(StaticClient(error=httpx.ConnectError("refused"))) is None
    assert _grade(StaticClient(error=GradingUnavailableError("missing key"))) is None
    assert _grade(StaticClient(error=asyncio.TimeoutError())) is None
    assert _grade(None) is None


def test_request_carries_question_and_answers():
    client = StaticClient({"steps": []})
    asyncio.run(StepGradingAdapter(client).grade_steps(QUESTION, STEPS, ["4"], ["4"]))
    request = client.requests[0]
    assert request["studentSteps"] == STEPS
    assert request["studentFinalAnswer"] == ["4"]
    assert request["correctAnswer"] == ["4"]
    assert request["question"]["answerBoxes"][0]["answer"] == "4"
    assert request == build_grading_request(QUESTION, STEPS, ["4"], ["4"])
