import uuid
from datetime import datetime, timezone

import pytest
from sqlalchemy import select

from conftest import at, auth_headers
from models import AttemptAnswer, DailyActivity, PracticeAttempt, QuizOption, QuizQuestion, QuizSet
from routers.practice.helpers import activity_points


def make_quiz(title: str, minutes: int, questions: int = 3, **overrides) -> QuizSet:
    values = {"title": title, "course_code": "CSC 201", "level": "200", "created_at": at(minutes)}
    values.update(overrides)
    quiz = QuizSet(**values)
    quiz.questions = [
        QuizQuestion(
            prompt=f"Question {index}",
            position=index,
            options=[
                QuizOption(text="Right", is_correct=True, position=0),
                QuizOption(text="Wrong", is_correct=False, position=1),
            ],
        )
        for index in range(1, questions + 1)
    ]
    return quiz


@pytest.fixture
async def quiz_set(db):
    quiz = make_quiz("CSC 201 Mock", 1)
    db.add(quiz)
    await db.commit()
    return quiz


async def start(client, quiz: QuizSet, user_id: str) -> str:
    response = await client.post(f"/practice/sets/{quiz.id}/attempts", headers=auth_headers(user_id))
    assert response.status_code == 201
    return response.json()["id"]


async def choose(client, attempt_id: str, question: QuizQuestion, option: QuizOption, user_id: str):
    return await client.put(
        f"/practice/attempts/{attempt_id}/answers/{question.id}",
        json={"selected_option_id": str(option.id)},
        headers=auth_headers(user_id),
    )


class TestPracticeSets:
    """Test browsing practice sets"""

    async def test_only_published_sets(self, client, db, quiz_set):
        db.add_all([
            make_quiz("Torts revision", 2, course_code="LAW 305", level="300"),
            make_quiz("Draft set", 3, published=False),
        ])
        await db.commit()

        response = await client.get("/practice/sets")
        assert response.status_code == 200

        data = response.json()
        assert [item["title"] for item in data["sets"]] == ["Torts revision", "CSC 201 Mock"]
        assert data["total"] == 2

    async def test_course_and_level_filters(self, client, db, quiz_set):
        db.add(make_quiz("Torts revision", 2, course_code="LAW 305", level="300"))
        await db.commit()

        response = await client.get("/practice/sets", params={"course": "law  305"})
        assert [item["title"] for item in response.json()["sets"]] == ["Torts revision"]

        response = await client.get("/practice/sets", params={"level": " 200 "})
        assert [item["title"] for item in response.json()["sets"]] == ["CSC 201 Mock"]

        response = await client.get("/practice/sets", params={"level": "²"})
        assert response.status_code == 200
        assert response.json()["total"] == 2

    async def test_detail_hides_correct_answers(self, client, quiz_set):
        response = await client.get(f"/practice/sets/{quiz_set.id}")
        assert response.status_code == 200

        data = response.json()
        assert data["question_count"] == 3
        assert [question["prompt"] for question in data["questions"]] == ["Question 1", "Question 2", "Question 3"]
        option = data["questions"][0]["options"][0]
        assert set(option) == {"id", "text"}

    async def test_unpublished_or_unknown_set(self, client, db):
        draft = make_quiz("Draft set", 1, published=False)
        db.add(draft)
        await db.commit()

        response = await client.get(f"/practice/sets/{draft.id}")
        assert response.status_code == 404

        response = await client.get("/practice/sets/not-an-id")
        assert response.status_code == 404


class TestTakingPractice:
    """Test starting, answering and submitting an attempt"""

    async def test_start_requires_sign_in(self, client, quiz_set):
        response = await client.post(f"/practice/sets/{quiz_set.id}/attempts")
        assert response.status_code in (401, 403)

    async def test_start_attempt(self, client, quiz_set, user_id):
        response = await client.post(f"/practice/sets/{quiz_set.id}/attempts", headers=auth_headers(user_id))
        assert response.status_code == 201

        data = response.json()
        assert data["status"] == "in_progress"
        assert data["completed"] is False
        assert data["total_questions"] == 3
        assert data["quiz_set"]["title"] == "CSC 201 Mock"

    async def test_change_and_clear_answer(self, client, db, quiz_set, user_id):
        attempt_id = await start(client, quiz_set, user_id)
        first = quiz_set.questions[0]

        response = await choose(client, attempt_id, first, first.options[1], user_id)
        assert response.status_code == 200
        assert response.json()["answered"] == 1

        response = await choose(client, attempt_id, first, first.options[0], user_id)
        assert response.json()["selected_option_id"] == str(first.options[0].id)
        assert response.json()["answered"] == 1

        response = await client.put(
            f"/practice/attempts/{attempt_id}/answers/{first.id}",
            json={"selected_option_id": None},
            headers=auth_headers(user_id),
        )
        assert response.json()["answered"] == 0

        rows = (await db.execute(select(AttemptAnswer))).scalars().all()
        assert len(rows) == 1

    async def test_answer_must_belong_to_set(self, client, db, quiz_set, user_id):
        other = make_quiz("Torts revision", 2, questions=1)
        db.add(other)
        await db.commit()
        attempt_id = await start(client, quiz_set, user_id)
        first = quiz_set.questions[0]

        response = await choose(client, attempt_id, other.questions[0], other.questions[0].options[0], user_id)
        assert response.status_code == 422
        assert response.json()["detail"]["field"] == "question_id"

        response = await choose(client, attempt_id, first, quiz_set.questions[1].options[0], user_id)
        assert response.status_code == 422
        assert response.json()["detail"]["field"] == "selected_option_id"

    async def test_someone_elses_attempt(self, client, quiz_set, user_id, other_user_id):
        attempt_id = await start(client, quiz_set, user_id)
        first = quiz_set.questions[0]

        response = await choose(client, attempt_id, first, first.options[0], other_user_id)
        assert response.status_code == 404

        response = await client.post(f"/practice/attempts/{attempt_id}/submit", headers=auth_headers(other_user_id))
        assert response.status_code == 404

    async def test_submit_scores_and_records_activity(self, client, db, quiz_set, user_id):
        attempt_id = await start(client, quiz_set, user_id)
        first, second, _ = quiz_set.questions
        await choose(client, attempt_id, first, first.options[0], user_id)
        await choose(client, attempt_id, second, second.options[1], user_id)

        response = await client.post(
            f"/practice/attempts/{attempt_id}/submit",
            json={"time_spent_seconds": 95},
            headers=auth_headers(user_id),
        )
        assert response.status_code == 200

        data = response.json()
        assert data["summary"] == {
            "total": 3, "answered": 2, "correct": 1, "wrong": 1, "unanswered": 1, "flagged": 0,
        }
        assert data["points"] == 1
        assert data["attempt"]["status"] == "submitted"
        assert data["attempt"]["completed"] is True
        assert data["attempt"]["score"] == 1
        assert data["attempt"]["time_spent_seconds"] == 95

        activity = (await db.execute(select(DailyActivity))).scalar_one()
        assert str(activity.user_id) == user_id
        assert activity.activity_date == datetime.now(timezone.utc).date()
        assert activity.did_practice is True

        response = await client.get("/history/streak", headers=auth_headers(user_id))
        assert response.json()["did_practice_today"] is True
        assert response.json()["streak"] == 1

        response = await client.get("/history/", params={"status": "completed"}, headers=auth_headers(user_id))
        assert response.json()["total"] == 1

    async def test_points_accumulate_for_the_day(self, client, db, quiz_set, user_id):
        db.add(DailyActivity(
            user_id=uuid.UUID(user_id),
            activity_date=datetime.now(timezone.utc).date(),
            did_practice=False,
            points=4,
        ))
        await db.commit()

        attempt_id = await start(client, quiz_set, user_id)
        for question in quiz_set.questions:
            await choose(client, attempt_id, question, question.options[0], user_id)
        response = await client.post(f"/practice/attempts/{attempt_id}/submit", headers=auth_headers(user_id))
        assert response.json()["points"] == 3

        db.expire_all()
        activity = (await db.execute(select(DailyActivity))).scalar_one()
        assert activity.points == 7
        assert activity.did_practice is True

    async def test_submitted_attempt_is_closed(self, client, db, quiz_set, user_id):
        attempt_id = await start(client, quiz_set, user_id)
        headers = auth_headers(user_id)

        response = await client.post(f"/practice/attempts/{attempt_id}/submit", headers=headers)
        assert response.status_code == 200
        assert response.json()["summary"]["unanswered"] == 3

        response = await client.post(f"/practice/attempts/{attempt_id}/submit", headers=headers)
        assert response.status_code == 409

        first = quiz_set.questions[0]
        response = await choose(client, attempt_id, first, first.options[0], user_id)
        assert response.status_code == 409

        db.expire_all()
        activity = (await db.execute(select(DailyActivity))).scalar_one()
        assert activity.points == 1

        stored = (await db.execute(select(PracticeAttempt))).scalar_one()
        assert stored.score == 0

    def test_empty_attempt_still_earns_a_point(self):
        assert activity_points(0) == 1
        assert activity_points(5) == 5
