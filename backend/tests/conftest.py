import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("GRADER_PROVIDER", "none")

from mathquiz.schemas.evaluation import FeedbackBundle, GradingResult, StepEvaluation


class FakeGrader:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    async def grade_steps(self, question, steps, student_final, correct_final):
        self.calls.append(
            {
                "question_id": question.id,
                "steps": list(steps),
                "student_final": student_final,
                "correct_final": correct_final,
            }
        )
        if self.error:
            raise self.error
        return self.result


def grading_result(flags, model_answer=None):
    return GradingResult(
        steps=[
            StepEvaluation(step_index=index, step_content=f"step {index}", is_correct=flag, feedback="")
            for index, flag in enumerate(flags)
        ],
        feedback=FeedbackBundle(model_answer=model_answer or []),
    )
