from datetime import datetime
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class QuestionType(str, Enum):
    mcq = "mcq"
    fill_in_blank = "fill-in-blank"
    open_ended = "open-ended"


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class QuestionBlock(FrozenModel):
    id: str
    type: Literal["text", "math"] = "text"
    content: str = ""


class MathSegment(FrozenModel):
    type: Literal["math"] = "math"
    id: str
    value: str = ""


class BlankSegment(FrozenModel):
    type: Literal["blank"] = "blank"
    id: Union[int, str]


SegmentedElement = Annotated[Union[MathSegment, BlankSegment], Field(discriminator="type")]


class AnswerBox(FrozenModel):
    id: str
    label: str = ""
    label_is_math: bool = False
    answer: str = ""


class MCQOption(FrozenModel):
    id: str
    label: str = ""
    is_correct: bool = False


class QuestionBase(FrozenModel):
    id: str = Field(..., min_length=1)
    instruction: str = ""
    blocks: List[QuestionBlock] = Field(default_factory=list)
    marks: int = Field(1, ge=1)


class MCQQuestion(QuestionBase):
    question_type: Literal["mcq"] = "mcq"
    mcq_options: Optional[List[MCQOption]] = None


class FillInBlankQuestion(QuestionBase):
    question_type: Literal["fill-in-blank"] = "fill-in-blank"
    segmented_elements: List[SegmentedElement] = Field(default_factory=list)
    answer_boxes: Optional[List[AnswerBox]] = None


class OpenEndedQuestion(QuestionBase):
    question_type: Literal["open-ended"] = "open-ended"
    answer_boxes: Optional[List[AnswerBox]] = None
    final_answer: Optional[str] = None
    model_answer: List[str] = Field(default_factory=list)


Question = Annotated[
    Union[MCQQuestion, FillInBlankQuestion, OpenEndedQuestion],
    Field(discriminator="question_type"),
]


class Quiz(FrozenModel):
    id: str = Field(..., min_length=1)
    title: str = ""
    questions: List[Question] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class QuizSummary(BaseModel):
    id: str
    title: str
    question_count: int
    total_marks: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class QuizListResponse(BaseModel):
    items: List[QuizSummary]
