from enum import Enum
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field


class EvaluationStatus(str, Enum):
    correct = "correct"
    partially_correct = "partially_correct"
    incorrect = "incorrect"


class StepEvaluation(BaseModel):
    step_index: int = Field(..., ge=0)
    step_content: str
    is_correct: bool = False
    feedback: str = ""
    marks_awarded: Optional[int] = Field(None, ge=0)


class FeedbackBundle(BaseModel):
    model_answer: List[str] = Field(default_factory=list)
    correct_points: List[str] = Field(default_factory=list)
    improvement_points: List[str] = Field(default_factory=list)


class GradingResult(BaseModel):
    steps: List[StepEvaluation] = Field(default_factory=list)
    feedback: FeedbackBundle = Field(default_factory=FeedbackBundle)
    protocol: Literal["legacy", "current", "fallback"] = "current"


class EvaluationResult(BaseModel):
    question_id: str
    is_correct: bool
    status: EvaluationStatus
    student_answer: Union[str, List[str]] = ""
    correct_answer: Union[str, List[str]] = ""
    final_answer_correct: bool = False
    working_steps: Optional[List[StepEvaluation]] = None
    external_feedback: Optional[FeedbackBundle] = None
    marks_awarded: int = Field(..., ge=0)
    max_marks: int = Field(..., ge=1)
    feedback: str = ""


class QuizEvaluation(BaseModel):
    results: List[EvaluationResult]
    total_score: int = Field(..., ge=0)
    max_score: int = Field(..., ge=0)
    total_marks_awarded: int = Field(..., ge=0)
    total_max_marks: int = Field(..., ge=0)
    percentage: int = Field(..., ge=0, le=100)
