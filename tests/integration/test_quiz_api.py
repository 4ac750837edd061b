"""Quiz attempt flow: answers, rewards, completion, leaderboard and achievements."""

import pytest

from tests.conftest import CORRECT_ANSWERS, WRONG_ANSWERS, answer_all, create_lesson_via_api


@pytest.fixture
def start_attempt(client, register_user, subject_id):
    """Factory: a learner and a started attempt on a fresh lesson."""

    async def _start():
        instructor = await register_user("instructor")
        learner = await register_user("learner", name="Quinn")
        lesson = (await create_lesson_via_api(client, instructor["headers"], subject_id))["lesson"]
        response = await client.post(f"/api/v1/quizzes/{lesson['quiz_id']}/attempts", headers=learner["headers"])
        assert response.status_code == 201, response.text
        return learner, response.json()

    return _start


class TestAnswers:
    @pytest.mark.asyncio
    async def test_correct_answer_pays_reward(self, client, start_attempt):
        learner, attempt = await start_attempt()
        question = attempt["questions"][0]

        response = await client.post(
            f"/api/v1/attempts/{attempt['attempt_id']}/answers",
            json={"question_id": question["id"], "answer": CORRECT_ANSWERS[question["order"]]},
            headers=learner["headers"],
        )
        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "is_correct": True,
            "points_earned": 10,
            "coins_earned": 2,
            "new_balance": 152,
        }

    @pytest.mark.asyncio
    async def test_wrong_answer_pays_nothing(self, client, start_attempt):
        learner, attempt = await start_attempt()
        question = attempt["questions"][0]

        response = await client.post(
            f"/api/v1/attempts/{attempt['attempt_id']}/answers",
            json={"question_id": question["id"], "answer": WRONG_ANSWERS[question["order"]]},
            headers=learner["headers"],
        )
        data = response.json()
        assert data["is_correct"] is False
        assert data["points_earned"] == -1
        assert data["coins_earned"] == 0
        assert data["new_balance"] == 150

    @pytest.mark.asyncio
    async def test_question_answered_once(self, client, start_attempt):
        learner, attempt = await start_attempt()
        question = attempt["questions"][0]
        body = {"question_id": question["id"], "answer": CORRECT_ANSWERS[question["order"]]}
        url = f"/api/v1/attempts/{attempt['attempt_id']}/answers"

        await client.post(url, json=body, headers=learner["headers"])
        response = await client.post(url, json=body, headers=learner["headers"])
        assert response.status_code == 409

        balance = await client.get("/api/v1/economy/balance", headers=learner["headers"])
        assert balance.json()["wisdom_coins"] == 152

    @pytest.mark.asyncio
    async def test_question_from_another_quiz(self, client, start_attempt):
        learner, attempt = await start_attempt()
        response = await client.post(
            f"/api/v1/attempts/{attempt['attempt_id']}/answers",
            json={"question_id": 99999, "answer": "x"},
            headers=learner["headers"],
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_someone_elses_attempt(self, client, register_user, start_attempt):
        _, attempt = await start_attempt()
        intruder = await register_user("learner")
        response = await client.post(
            f"/api/v1/attempts/{attempt['attempt_id']}/answers",
            json={"question_id": attempt["questions"][0]["id"], "answer": "x"},
            headers=intruder["headers"],
        )
        assert response.status_code == 403


class TestCompletion:
    @pytest.mark.asyncio
    async def test_perfect_quiz(self, client, start_attempt):
        learner, attempt = await start_attempt()
        await answer_all(client, learner["headers"], attempt["attempt_id"], attempt["questions"], CORRECT_ANSWERS)

        response = await client.post(f"/api/v1/attempts/{attempt['attempt_id']}/complete", headers=learner["headers"])
        assert response.status_code == 200
        data = response.json()
        assert data["score"] == 50
        assert data["correct_answers"] == 5
        assert data["total_questions"] == 5
        assert data["is_perfect"] is True
        assert data["bonus_awarded"] == 50
        assert {a["slug"] for a in data["new_achievements"]} == {"first_quiz", "perfect_quiz"}

        board = await client.get("/api/v1/leaderboard", headers=learner["headers"])
        row = board.json()["entries"][0]
        assert row["user_id"] == learner["id"]
        assert row["score"] == 100
        assert row["quiz_count"] == 1
        assert row["accuracy"] == 100.0

        balance = await client.get("/api/v1/economy/balance", headers=learner["headers"])
        assert balance.json()["wisdom_coins"] == 160

    @pytest.mark.asyncio
    async def test_mixed_quiz(self, client, start_attempt):
        learner, attempt = await start_attempt()
        answers = {**WRONG_ANSWERS, 1: CORRECT_ANSWERS[1], 2: CORRECT_ANSWERS[2], 3: CORRECT_ANSWERS[3]}
        await answer_all(client, learner["headers"], attempt["attempt_id"], attempt["questions"], answers)

        data = (
            await client.post(f"/api/v1/attempts/{attempt['attempt_id']}/complete", headers=learner["headers"])
        ).json()
        assert data["score"] == 28
        assert data["is_perfect"] is False
        assert data["bonus_awarded"] == 0
        assert [a["slug"] for a in data["new_achievements"]] == ["first_quiz"]

        board = await client.get("/api/v1/leaderboard", headers=learner["headers"])
        assert board.json()["entries"][0]["score"] == 28

    @pytest.mark.asyncio
    async def test_unanswered_questions(self, client, start_attempt):
        learner, attempt = await start_attempt()
        await answer_all(client, learner["headers"], attempt["attempt_id"], attempt["questions"][:2], CORRECT_ANSWERS)

        response = await client.post(f"/api/v1/attempts/{attempt['attempt_id']}/complete", headers=learner["headers"])
        assert response.status_code == 400
        body = response.json()
        assert body["detail"] == "Please answer all questions. 2/5 answered."
        assert body["answered"] == 2

    @pytest.mark.asyncio
    async def test_completes_once(self, client, start_attempt):
        learner, attempt = await start_attempt()
        await answer_all(client, learner["headers"], attempt["attempt_id"], attempt["questions"], CORRECT_ANSWERS)
        url = f"/api/v1/attempts/{attempt['attempt_id']}/complete"

        assert (await client.post(url, headers=learner["headers"])).status_code == 200
        second = await client.post(url, headers=learner["headers"])
        assert second.status_code == 400
        assert second.json()["detail"] == "Quiz already completed"

        board = await client.get("/api/v1/leaderboard", headers=learner["headers"])
        assert board.json()["entries"][0]["quiz_count"] == 1

    @pytest.mark.asyncio
    async def test_no_answers_after_completion(self, client, start_attempt):
        learner, attempt = await start_attempt()
        await answer_all(client, learner["headers"], attempt["attempt_id"], attempt["questions"], CORRECT_ANSWERS)
        await client.post(f"/api/v1/attempts/{attempt['attempt_id']}/complete", headers=learner["headers"])

        response = await client.post(
            f"/api/v1/attempts/{attempt['attempt_id']}/answers",
            json={"question_id": attempt["questions"][0]["id"], "answer": "x"},
            headers=learner["headers"],
        )
        assert response.status_code == 400


class TestReview:
    @pytest.mark.asyncio
    async def test_answers_hidden_until_completed(self, client, start_attempt):
        learner, attempt = await start_attempt()
        url = f"/api/v1/attempts/{attempt['attempt_id']}"

        before = (await client.get(url, headers=learner["headers"])).json()
        assert all(q["correct_answer"] is None for q in before["questions"])

        await answer_all(client, learner["headers"], attempt["attempt_id"], attempt["questions"], CORRECT_ANSWERS)
        await client.post(f"{url}/complete", headers=learner["headers"])

        after = (await client.get(url, headers=learner["headers"])).json()
        assert after["completed_at"] is not None
        assert after["score"] == 50
        assert after["questions"][1]["correct_answer"] == "Paris"
        assert len(after["answers"]) == 5


class TestAchievementsEndpoint:
    @pytest.mark.asyncio
    async def test_progress_after_quiz(self, client, start_attempt):
        learner, attempt = await start_attempt()
        await answer_all(client, learner["headers"], attempt["attempt_id"], attempt["questions"], CORRECT_ANSWERS)
        await client.post(f"/api/v1/attempts/{attempt['attempt_id']}/complete", headers=learner["headers"])

        response = await client.get("/api/v1/achievements", headers=learner["headers"])
        assert response.status_code == 200
        data = response.json()
        assert data["earned"] == 2
        assert data["total"] == 5
        ten = next(a for a in data["achievements"] if a["slug"] == "ten_quizzes")
        assert ten["progress"] == 1
        assert ten["earned"] is False
