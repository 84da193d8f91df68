import json

from fastapi.testclient import TestClient

from mathquiz.main import app, get_grading_client
from mathquiz.services.llm.mock import MockGradingClient

QUIZ = {
    "title": "Linear equations",
    "questions": [
        {
            "id": "q1",
            "questionType": "mcq",
            "instruction": "Which value solves x + 1 = 3?",
            "blocks": [],
            "marks": 1,
            "mcqOptions": [
                {"id": "a", "label": "2", "isCorrect": True},
                {"id": "b", "label": "3", "isCorrect": False},
            ],
        },
        {
            "id": "q2",
            "questionType": "fill-in-blank",
            "instruction": "Complete",
            "blocks": [],
            "marks": 2,
            "segmentedElements": [
                {"id": "s1", "type": "math", "value": "x^2 ="},
                {"id": 1, "type": "blank"},
            ],
            "answerBoxes": [{"id": "box1", "label": "", "answer": "\\frac{1}{4}"}],
        },
        {
            "id": "q3",
            "questionType": "open-ended",
            "instruction": "Solve",
            "blocks": [{"id": "b", "type": "math", "content": "2x + 1 = 9"}],
            "marks": 10,
            "answerBoxes": [{"id": "x", "label": "x=", "answer": "4"}],
        },
    ],
}

ANSWERS = {
    "q1": {"q1": "a"},
    "q2": {"box1": "\\frac{1}{4} "},
    "q3": {
        "working-steps-q3": json.dumps(["2x = 8", "x = 4"]),
        "final-answer-q3-x": "5",
    },
}


def test_health():
    with TestClient(app) as client:
        response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_quiz_lifecycle():
    with TestClient(app) as client:
        created = client.post("/quizzes", json={**QUIZ, "id": "lifecycle"})
        assert created.status_code == 200
        body = created.json()
        assert body["id"] == "lifecycle"
        assert [question["question_type"] for question in body["questions"]] == ["mcq", "fill-in-blank", "open-ended"]
        assert body["created_at"]

        fetched = client.get("/quizzes/lifecycle")
        assert fetched.status_code == 200
        assert fetched.json()["questions"][1]["answer_boxes"][0]["answer"] == "\\frac{1}{4}"
        segments = fetched.json()["questions"][1]["segmented_elements"]
        assert segments == [{"type": "math", "id": "s1", "value": "x^2 ="}, {"type": "blank", "id": 1}]

        listed = client.get("/quizzes").json()["items"]
        summary = next(item for item in listed if item["id"] == "lifecycle")
        assert summary["question_count"] == 3
        assert summary["total_marks"] == 13

        updated = client.post("/quizzes", json={**QUIZ, "id": "lifecycle", "title": "Renamed"})
        assert updated.json()["title"] == "Renamed"
        assert updated.json()["created_at"] == body["created_at"]

        deleted = client.delete("/quizzes/lifecycle")
        assert deleted.json() == {"deleted": "lifecycle"}
        missing = client.get("/quizzes/lifecycle")
        assert missing.status_code == 404
        assert missing.json()["code"] == 404
        assert client.delete("/quizzes/lifecycle").status_code == 404


def test_save_without_id_generates_one():
    with TestClient(app) as client:
        response = client.post("/quizzes", json=QUIZ)
        assert response.status_code == 200
        quiz_id = response.json()["id"]
        assert len(quiz_id) == 32
        client.delete(f"/quizzes/{quiz_id}")


def test_invalid_quiz_is_rejected():
    payload = {"title": "Broken", "questions": [{"instruction": "No id", "marks": 1}]}
    with TestClient(app) as client:
        response = client.post("/quizzes", json=payload)
    assert response.status_code == 422
    body = response.json()
    assert body["code"] == 422
    assert body["details"]["errors"]


def test_evaluate_saved_quiz_with_mock_grader():
    app.dependency_overrides[get_grading_client] = lambda: MockGradingClient()
    try:
        with TestClient(app) as client:
            client.post("/quizzes", json={**QUIZ, "id": "graded"})
            response = client.post("/quizzes/graded/evaluate", json={"answers": ANSWERS})
            client.delete("/quizzes/graded")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    body = response.json()
    assert [result["marks_awarded"] for result in body["results"]] == [1, 2, 4]
    assert body["total_score"] == 2
    assert body["max_score"] == 3
    assert body["total_marks_awarded"] == 7
    assert body["total_max_marks"] == 13
    assert body["percentage"] == 54

    open_ended = body["results"][2]
    assert open_ended["status"] == "partially_correct"
    assert [step["is_correct"] for step in open_ended["working_steps"]] == [False, True]
    assert open_ended["external_feedback"]["model_answer"] == ["Final answer: $4$"]


def test_evaluate_unknown_quiz_returns_404():
    with TestClient(app) as client:
        response = client.post("/quizzes/nope/evaluate", json={"answers": {}})
    assert response.status_code == 404


def test_inline_evaluation_without_grader():
    with TestClient(app) as client:
        response = client.post("/evaluate", json={"quiz": QUIZ, "answers": ANSWERS})
    assert response.status_code == 200
    body = response.json()
    assert [result["marks_awarded"] for result in body["results"]] == [1, 2, 0]
    open_ended = body["results"][2]
    assert open_ended["working_steps"] is None
    assert open_ended["feedback"].endswith("Step-level feedback is unavailable right now.")


def test_normalize_and_compare():
    with TestClient(app) as client:
        normalized = client.post("/normalize", json={"expression": "\\frac{1}{2} \\cdot X"}).json()
        compared = client.post("/compare", json={"student": "x = -3 or x = -2", "correct": "x=-2, x=-3"}).json()
    assert normalized["normalized"] == "\\frac{1}{2}*x"
    assert compared["equivalent"] is True
    assert sorted(compared["student_values"]) == ["-2", "-3"]


def test_malformed_questions_are_rejected_not_crashed():
    with TestClient(app) as client:
        not_an_object = client.post("/quizzes", json={"id": "bad", "questions": ["not-a-question"]})
        mapping = client.post("/evaluate", json={"quiz": {"questions": {"q1": {}}}, "answers": {}})
    assert not_an_object.status_code == 422
    assert not_an_object.json()["code"] == 422
    assert mapping.status_code == 422
    assert mapping.json()["code"] == 422
