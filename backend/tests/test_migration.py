import pytest
from pydantic import ValidationError

from mathquiz.schemas.migration import infer_question_type, load_question, load_quiz
from mathquiz.schemas.quiz import FillInBlankQuestion, MCQQuestion, OpenEndedQuestion, QuestionType


def test_explicit_tags_are_canonicalized():
    assert infer_question_type({"question_type": "fill-in-the-blank"}) == QuestionType.fill_in_blank
    assert infer_question_type({"question_type": "MCQ"}) == QuestionType.mcq
    assert infer_question_type({"question_type": "open-ended", "mcq_options": [{"id": "a"}]}) == (
        QuestionType.open_ended
    )


def test_untagged_questions_are_inferred_from_shape():
    assert infer_question_type({"mcq_options": [{"id": "a"}]}) == QuestionType.mcq
    assert infer_question_type({"segmented_elements": [{"type": "blank", "id": 1}]}) == QuestionType.fill_in_blank
    assert infer_question_type({"answer_boxes": []}) == QuestionType.open_ended
    assert infer_question_type({"question_type": "essay"}) == QuestionType.open_ended


def test_legacy_mcq_payload_loads_as_tagged_question():
    question = load_question(
        {
            "id": "q1",
            "instruction": "Pick",
            "blocks": [{"id": "b", "type": "math", "content": "1+1"}],
            "mcqOptions": [{"id": "a", "label": "2", "isCorrect": True}],
        }
    )
    assert isinstance(question, MCQQuestion)
    assert question.question_type == "mcq"
    assert question.mcq_options[0].is_correct
    assert question.marks == 1


def test_fill_in_blank_segments_load():
    question = load_question(
        {
            "id": "q2",
            "questionType": "fill-in-the-blank",
            "segmentedElements": [
                {"type": "math", "id": "s1", "value": "2+"},
                {"type": "blank", "id": 1},
            ],
            "answerBoxes": [{"id": "1", "label": "", "labelIsMath": True, "answer": "3"}],
            "marks": 2,
        }
    )
    assert isinstance(question, FillInBlankQuestion)
    assert question.segmented_elements[1].type == "blank"
    assert question.answer_boxes[0].label_is_math


def test_blank_segments_accept_string_ids():
    question = load_question(
        {
            "id": "q2",
            "questionType": "fill-in-blank",
            "segmentedElements": [{"type": "math", "id": "s1", "value": "x^2 ="}, {"type": "blank", "id": "box1"}],
            "answerBoxes": [{"id": "box1", "answer": "4"}],
        }
    )
    assert question.segmented_elements[1].id == "box1"
    assert question.segmented_elements[0].value == "x^2 ="


def test_open_ended_final_answer_backfilled_from_model_answer():
    question = load_question(
        {
            "id": "q3",
            "blocks": [{"type": "text", "content": "Solve"}],
            "modelAnswer": ["Subtract 1", "Divide by 2", "Final Answer: x = 4"],
            "marks": 0,
        }
    )
    assert isinstance(question, OpenEndedQuestion)
    assert question.final_answer == "x = 4"
    assert question.marks == 1
    assert question.blocks[0].id == "q3-block-0"


def test_questions_are_immutable():
    question = load_question({"id": "q1", "questionType": "mcq", "mcqOptions": []})
    with pytest.raises(ValidationError):
        question.marks = 5


def test_load_quiz_keeps_order_and_timestamps():
    quiz = load_quiz(
        {
            "id": "quiz",
            "title": "Mixed",
            "createdAt": "2024-01-01T00:00:00Z",
            "questions": [{"id": "a", "mcqOptions": [{"id": "o", "isCorrect": True}]}, {"id": "b"}],
        }
    )
    assert [question.id for question in quiz.questions] == ["a", "b"]
    assert quiz.created_at is not None


def test_load_quiz_rejects_questions_without_id():
    with pytest.raises(ValidationError):
        load_quiz({"id": "quiz", "questions": [{"instruction": "no id"}]})


@pytest.mark.parametrize(
    "questions",
    [["not-a-question"], {"q1": {"id": "q1"}}, "q1", [{"id": "q1", "blocks": 5}]],
)
def test_load_quiz_rejects_malformed_questions(questions):
    with pytest.raises(ValidationError):
        load_quiz({"id": "quiz", "questions": questions})


def test_overflowing_marks_fall_back_to_one():
    question = load_question({"id": "q1", "marks": float("inf")})
    assert question.marks == 1
