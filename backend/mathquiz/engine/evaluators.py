import logging
from typing import List, Optional, Protocol, Sequence, Union

from mathquiz.schemas.evaluation import EvaluationResult, EvaluationStatus, GradingResult
from mathquiz.schemas.quiz import FillInBlankQuestion, MCQQuestion, OpenEndedQuestion

from .comparator import equivalent
from .policy import DEFAULT_POLICY, ScoringPolicy, proportional_marks
from .submission import (
    QuestionAnswers,
    answer_value,
    clean_steps,
    final_answer_key,
    parse_working_steps,
)

logger = logging.getLogger(__name__)

NO_ANSWER_PLACEHOLDER = "(no answer provided)"
STEP_FEEDBACK_UNAVAILABLE = "Step-level feedback is unavailable right now."


class StepGrader(Protocol):
    async def grade_steps(
        self,
        question: OpenEndedQuestion,
        steps: List[str],
        student_final: Union[str, List[str]],
        correct_final: Union[str, List[str]],
    ) -> Optional[GradingResult]:
        ...


def _collapse(values: Sequence[str]) -> Union[str, List[str]]:
    return values[0] if len(values) == 1 else list(values)


def _status(is_correct: bool, marks_awarded: int) -> EvaluationStatus:
    if is_correct:
        return EvaluationStatus.correct
    if marks_awarded > 0:
        return EvaluationStatus.partially_correct
    return EvaluationStatus.incorrect


def invalid_result(question_id: str, max_marks: int, reason: str, student_answer=None) -> EvaluationResult:
    return EvaluationResult(
        question_id=question_id,
        is_correct=False,
        status=EvaluationStatus.incorrect,
        student_answer=student_answer if student_answer is not None else "",
        correct_answer="",
        final_answer_correct=False,
        marks_awarded=0,
        max_marks=max_marks,
        feedback=f"Invalid question format: {reason}",
    )


def evaluate_mcq(question: MCQQuestion, answers: QuestionAnswers) -> EvaluationResult:
    max_marks = question.marks
    selected = answer_value(answers, question.id).strip()
    if not question.mcq_options:
        logger.warning("MCQ question %s has no options.", question.id)
        return invalid_result(question.id, max_marks, "no answer options defined.", selected)

    correct_option = next((option for option in question.mcq_options if option.is_correct), None)
    if correct_option is None:
        logger.warning("MCQ question %s has no option flagged correct.", question.id)
    is_correct = correct_option is not None and selected == correct_option.id
    return EvaluationResult(
        question_id=question.id,
        is_correct=is_correct,
        status=_status(is_correct, 0),
        student_answer=selected,
        correct_answer=correct_option.id if correct_option else "",
        final_answer_correct=is_correct,
        marks_awarded=max_marks if is_correct else 0,
        max_marks=max_marks,
        feedback="Correct!" if is_correct else "Incorrect. Please try again.",
    )


def evaluate_fill_in_blank(question: FillInBlankQuestion, answers: QuestionAnswers) -> EvaluationResult:
    max_marks = question.marks
    if not question.answer_boxes:
        return invalid_result(
            question.id,
            max_marks,
            "no answer boxes defined.",
            [answer_value(answers, key) for key in answers],
        )

    student_answers: List[str] = []
    correct_answers: List[str] = []
    correct_count = 0
    for box in question.answer_boxes:
        student_value = answer_value(answers, box.id)
        student_answers.append(student_value)
        correct_answers.append(box.answer)
        if equivalent(student_value, box.answer):
            correct_count += 1

    total = len(question.answer_boxes)
    all_correct = correct_count == total
    marks_awarded = proportional_marks(max_marks, correct_count, total)
    if all_correct:
        feedback = "All blanks filled correctly!"
    elif correct_count == 0:
        feedback = "All answers are incorrect."
    else:
        feedback = f"Some answers are incorrect. ({correct_count} of {total} correct)"

    if all_correct:
        status = EvaluationStatus.correct
    elif correct_count == 0:
        status = EvaluationStatus.incorrect
    else:
        status = EvaluationStatus.partially_correct

    return EvaluationResult(
        question_id=question.id,
        is_correct=all_correct,
        status=status,
        student_answer=student_answers,
        correct_answer=correct_answers,
        final_answer_correct=all_correct,
        marks_awarded=marks_awarded,
        max_marks=max_marks,
        feedback=feedback,
    )


def collect_final_answers(
    question: OpenEndedQuestion,
    answers: QuestionAnswers,
    steps: List[str],
    policy: ScoringPolicy = DEFAULT_POLICY,
):
    """Return (submitted, correct) final-answer lists, aligned by position.

    Without answer boxes the question has one bare final answer. If the
    student left it blank and the policy allows it, the last non-empty working
    step stands in for it.
    """
    if question.answer_boxes:
        submitted = [answer_value(answers, final_answer_key(question.id, box.id)) for box in question.answer_boxes]
        expected = [box.answer for box in question.answer_boxes]
        return submitted, expected

    bare = answer_value(answers, final_answer_key(question.id)).strip()
    if not bare and policy.infer_final_answer_from_steps and steps:
        bare = steps[-1]
    return [bare], [question.final_answer or ""]


async def evaluate_open_ended(
    question: OpenEndedQuestion,
    answers: QuestionAnswers,
    grader: Optional[StepGrader] = None,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> EvaluationResult:
    max_marks = question.marks
    steps = clean_steps(parse_working_steps(answers, question.id))
    final_answers, correct_answers = collect_final_answers(question, answers, steps, policy)

    final_answer_correct = len(final_answers) == len(correct_answers) and all(
        equivalent(student, correct) for student, correct in zip(final_answers, correct_answers)
    )

    grading: Optional[GradingResult] = None
    if steps and grader is not None:
        submitted_final = [value if value.strip() else NO_ANSWER_PLACEHOLDER for value in final_answers]
        try:
            grading = await grader.grade_steps(
                question,
                steps,
                _collapse(submitted_final),
                _collapse(correct_answers),
            )
        except Exception:
            logger.exception("Step grading raised for question %s; using the final-answer verdict.", question.id)
            grading = None

    if final_answer_correct:
        marks_awarded = max_marks
    elif grading and grading.steps:
        correct_steps = sum(1 for step in grading.steps if step.is_correct)
        marks_awarded = proportional_marks(max_marks, correct_steps, len(grading.steps), policy.method_mark_weight)
    else:
        marks_awarded = 0

    if final_answer_correct:
        feedback = "Correct answer!"
    elif marks_awarded > 0:
        feedback = "Incorrect final answer, but method marks were awarded for your working."
    else:
        feedback = "Incorrect answer. Please review your solution."
    if steps and grading is None:
        feedback = f"{feedback} {STEP_FEEDBACK_UNAVAILABLE}"

    return EvaluationResult(
        question_id=question.id,
        is_correct=final_answer_correct,
        status=_status(final_answer_correct, marks_awarded),
        student_answer=_collapse(final_answers),
        correct_answer=_collapse(correct_answers),
        final_answer_correct=final_answer_correct,
        working_steps=grading.steps if grading else None,
        external_feedback=grading.feedback if grading else None,
        marks_awarded=marks_awarded,
        max_marks=max_marks,
        feedback=feedback,
    )
