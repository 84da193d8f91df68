import asyncio
import os
import sys
import uuid

BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if BACKEND_DIR not in sys.path:
    sys.path.insert(0, BACKEND_DIR)

from mathquiz.db.session import SessionLocal, init_db
from mathquiz.services.quiz_service import delete_quiz, evaluate_saved_quiz, get_quiz, save_quiz


def main() -> None:
    quiz_id = f"verify-{uuid.uuid4().hex[:8]}"
    init_db()
    db = SessionLocal()
    try:
        save_quiz(
            db,
            {
                "id": quiz_id,
                "title": "Schema check",
                "questions": [
                    {
                        "id": "q1",
                        "questionType": "mcq",
                        "instruction": "Sample question?",
                        "mcqOptions": [
                            {"id": "a", "label": "1", "isCorrect": True},
                            {"id": "b", "label": "2", "isCorrect": False},
                        ],
                    },
                    {
                        "id": "q2",
                        "instruction": "Solve 2x = 8",
                        "answerBoxes": [{"id": "x", "label": "x=", "answer": "4"}],
                    },
                ],
            },
        )
        loaded = get_quiz(db, quiz_id)
        evaluation = asyncio.run(
            evaluate_saved_quiz(db, quiz_id, {"q1": {"q1": "a"}, "q2": {"final-answer-q2-x": "4"}})
        )
        delete_quiz(db, quiz_id)

        print(
            "quiz_id={quiz_id} questions={questions} types={types} marks={awarded}/{total}".format(
                quiz_id=loaded.id,
                questions=len(loaded.questions),
                types=",".join(question.question_type for question in loaded.questions),
                awarded=evaluation.total_marks_awarded,
                total=evaluation.total_max_marks,
            )
        )
    finally:
        db.close()


if __name__ == "__main__":
    main()
