from typing import Any, Dict

from pydantic import BaseModel, Field


class QuizEvaluateRequest(BaseModel):
    answers: Dict[str, Dict[str, Any]] = Field(default_factory=dict)


class InlineQuizEvaluateRequest(BaseModel):
    quiz: Dict[str, Any]
    answers: Dict[str, Dict[str, Any]] = Field(default_factory=dict)


class NormalizeRequest(BaseModel):
    expression: str = ""


class NormalizeResponse(BaseModel):
    expression: str
    normalized: str


class CompareRequest(BaseModel):
    student: str = ""
    correct: str = ""


class CompareResponse(BaseModel):
    equivalent: bool
    student_values: list[str]
    correct_values: list[str]
