from typing import Any, Dict, List

from mathquiz.engine.comparator import equivalent

from .base import StepGradingClient


def _as_list(value: Any) -> List[str]:
    if isinstance(value, list):
        return [str(item) for item in value]
    if value is None or value == "":
        return []
    return [str(value)]


class MockGradingClient(StepGradingClient):
    """Offline grader for local runs without model credentials.

    It can only recognise steps that state one of the expected final answers;
    every other step is reported as unchecked and counts as not correct.
    """

    def __init__(self):
        self.requests: List[Dict[str, Any]] = []

    async def grade(self, request: Dict[str, Any]) -> Dict[str, Any]:
        self.requests.append(request)
        expected = _as_list(request.get("correctAnswer"))
        steps = request.get("studentSteps") or []

        evaluations = []
        for index, step in enumerate(steps):
            reached = any(equivalent(step, answer) for answer in expected)
            evaluations.append(
                {
                    "stepIndex": index,
                    "stepContent": step,
                    "isCorrect": reached,
                    "feedback": "This step reaches the expected result."
                    if reached
                    else "Not checked by the offline grader.",
                }
            )

        reached_count = sum(1 for item in evaluations if item["isCorrect"])
        return {
            "steps": evaluations,
            "modelAnswer": [f"Final answer: ${answer}$" for answer in expected],
            "correctPoints": ["Your working reaches the expected result."] if reached_count else [],
            "improvementPoints": [] if reached_count else ["Show a step that states the final result."],
        }
