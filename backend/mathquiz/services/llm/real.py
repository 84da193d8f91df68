import re
from typing import Any, Dict, List, Union

import httpx

from .base import GradingUnavailableError, StepGradingClient


def normalize_base_url(base_url: str) -> str:
    cleaned = (base_url or "").strip().rstrip("/")
    if not cleaned:
        return ""
    if cleaned.endswith("/v1"):
        return cleaned
    return f"{cleaned}/v1"


SYSTEM_PROMPT = (
    "You are a mathematics examiner. Always respond with one valid JSON object and no other text."
)


def _as_text(value: Union[str, List[str], None]) -> str:
    if isinstance(value, list):
        return ", ".join(str(item) for item in value)
    return str(value or "")


def build_grading_prompt(request: Dict[str, Any]) -> str:
    question = request.get("question") or {}
    blocks = question.get("blocks") or []
    question_text = " ".join(str(block.get("content") or "") for block in blocks if isinstance(block, dict))
    correct = _as_text(request.get("correctAnswer"))
    student_final = _as_text(request.get("studentFinalAnswer"))
    steps = request.get("studentSteps") or []
    steps_text = "\n".join(f"Step {index + 1}: {step}" for index, step in enumerate(steps))
    marks = question.get("marks") or 1

    return (
        "Grade a student's working for a mathematics exam question.\n\n"
        f"Question: {question.get('instruction') or ''}\n{question_text}\n"
        f"Marks available: {marks}\n"
        f"Ground-truth final answer: {correct}\n\n"
        "Solve the question yourself first and make sure your solution reaches the ground truth. "
        "If your solution disagrees with the ground truth, your solution is wrong.\n\n"
        f"Student final answer: {student_final}\n"
        f"Student working:\n{steps_text}\n\n"
        "Rules:\n"
        "- Judge every student step on its own, whether or not the final answer is right.\n"
        "- Only mark a step wrong when it contains an actual mathematical error.\n"
        "- A different but valid method is not an error.\n"
        "- Use $...$ around all mathematics in text fields.\n"
        "- modelAnswer lists one logical step per item, without 'Step N' prefixes.\n"
        "- improvementPoints only names real errors; if there are none say "
        "\"Your answer is completely correct.\"\n\n"
        "Return JSON of the form:\n"
        "{\"steps\": [{\"stepIndex\": 0, \"stepContent\": \"...\", \"isCorrect\": true, \"feedback\": \"...\"}], "
        "\"modelAnswer\": [\"...\"], \"correctPoints\": [\"...\"], \"improvementPoints\": [\"...\"]}"
    )


class RealGradingClient(StepGradingClient):
    """Grades steps directly against an OpenAI-compatible chat completions API."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str,
        timeout: float = 30.0,
        max_tokens: int = 1500,
        temperature: float = 0.3,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = normalize_base_url(base_url)
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.transport = transport

    async def grade(self, request: Dict[str, Any]) -> str:
        if not self.api_key:
            raise GradingUnavailableError("Grading API key is not configured.")
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_grading_prompt(request)},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "response_format": {"type": "json_object"},
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(
                f"{self.base_url}/chat/completions",
                json=payload,
                headers=headers,
            )
        response.raise_for_status()
        data = response.json()
        choices = data.get("choices") or []
        if not choices:
            raise RuntimeError("Grader response missing choices.")
        message = choices[0].get("message") or {}
        content = (message.get("content") or "").strip()
        if not content:
            reasoning = (message.get("reasoning_content") or "").strip()
            matches = re.findall(r"\{.*\}", reasoning, re.DOTALL)
            if matches:
                content = matches[-1].strip()
        if not content:
            raise RuntimeError("Grader response missing content.")
        return content
