import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from mathquiz.schemas.evaluation import EvaluationResult, EvaluationStatus, QuizEvaluation
from mathquiz.schemas.quiz import Question, QuestionType, Quiz

from .evaluators import StepGrader, evaluate_fill_in_blank, evaluate_mcq, evaluate_open_ended
from .policy import DEFAULT_POLICY, ScoringPolicy, percentage
from .submission import QuestionAnswers, Submission, answers_for

logger = logging.getLogger(__name__)

Evaluator = Callable[[Any, QuestionAnswers, Optional[StepGrader], ScoringPolicy], Awaitable[EvaluationResult]]


async def _mcq(question, answers, grader, policy):
    return evaluate_mcq(question, answers)


async def _fill_in_blank(question, answers, grader, policy):
    return evaluate_fill_in_blank(question, answers)


async def _open_ended(question, answers, grader, policy):
    return await evaluate_open_ended(question, answers, grader=grader, policy=policy)


EVALUATORS: Dict[QuestionType, Evaluator] = {
    QuestionType.mcq: _mcq,
    QuestionType.fill_in_blank: _fill_in_blank,
    QuestionType.open_ended: _open_ended,
}


async def evaluate_question(
    question: Question,
    submissions: Submission,
    grader: Optional[StepGrader] = None,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> EvaluationResult:
    evaluator = EVALUATORS[QuestionType(question.question_type)]
    return await evaluator(question, answers_for(submissions, question.id), grader, policy)


async def evaluate_quiz(
    quiz: Quiz,
    submissions: Submission,
    grader: Optional[StepGrader] = None,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> QuizEvaluation:
    """Score every question in declared order.

    Questions are awaited one at a time so the external grader sees at most
    one request per quiz evaluation and results keep the quiz order.
    """
    results: List[EvaluationResult] = []
    for question in quiz.questions:
        try:
            result = await evaluate_question(question, submissions, grader=grader, policy=policy)
        except Exception:
            logger.exception("Evaluation of question %s failed; scoring it as zero.", question.id)
            result = EvaluationResult(
                question_id=question.id,
                is_correct=False,
                status=EvaluationStatus.incorrect,
                marks_awarded=0,
                max_marks=question.marks,
                feedback="This question could not be evaluated automatically.",
            )
        results.append(result)

    total_marks_awarded = sum(result.marks_awarded for result in results)
    total_max_marks = sum(result.max_marks for result in results)
    return QuizEvaluation(
        results=results,
        total_score=sum(1 for result in results if result.is_correct),
        max_score=len(results),
        total_marks_awarded=total_marks_awarded,
        total_max_marks=total_max_marks,
        percentage=percentage(total_marks_awarded, total_max_marks),
    )
