"""Administrator account management and moderation."""

import pytest

from ailesson.economy.pricing import Role
from tests.conftest import CHAT_REPLY, PASSWORD, create_lesson_via_api

SURVEY = {
    "learning_style": "visual",
    "preferred_tone": "friendly",
    "expertise_level": "beginner",
    "interests": ["cells"],
    "communication_preference": "short answers",
}


async def _expert(client, headers):
    response = await client.post("/api/v1/experts/generate", json=SURVEY, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def _chat(client, headers, expert_id, message):
    response = await client.post(
        "/api/v1/chat/messages", json={"expert_id": expert_id, "message": message}, headers=headers
    )
    assert response.status_code == 200, response.text
    return response.json()


def _expert_body(owner_id):
    return {
        "owner_id": owner_id,
        "name": "Socrates",
        "personality": "Asks questions until you find the answer.",
        "communication_style": "Dialogue",
        "appearance": "avatar2",
    }


async def _create_expert(client, headers, owner_id):
    response = await client.post("/api/v1/admin/experts", json=_expert_body(owner_id), headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestAccounts:
    @pytest.mark.asyncio
    async def test_list_by_role(self, client, admin_headers, register_user):
        await register_user("learner")
        await register_user("instructor")
        response = await client.get("/api/v1/admin/users?role=learner", headers=admin_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["users"][0]["role"] == "learner"

    @pytest.mark.asyncio
    async def test_non_admin_refused(self, client, register_user):
        instructor = await register_user("instructor")
        response = await client.get("/api/v1/admin/users", headers=instructor["headers"])
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_balance_edit_is_ledgered(self, client, admin_headers, register_user):
        learner = await register_user("learner")
        response = await client.patch(
            f"/api/v1/admin/users/{learner['id']}", json={"wisdom_coins": 40}, headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["wisdom_coins"] == 40

        history = (await client.get("/api/v1/economy/transactions", headers=learner["headers"])).json()
        latest = history["entries"][0]
        assert latest["reason"] == "admin_grant"
        assert latest["amount"] == -110
        assert sum(e["amount"] for e in history["entries"]) == 40

    @pytest.mark.asyncio
    async def test_negative_balance_refused(self, client, admin_headers, register_user):
        learner = await register_user("learner")
        response = await client.patch(
            f"/api/v1/admin/users/{learner['id']}", json={"wisdom_coins": -1}, headers=admin_headers
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_role_change_to_learner_joins_leaderboard(self, client, admin_headers, register_user):
        guardian = await register_user("guardian")
        response = await client.patch(
            f"/api/v1/admin/users/{guardian['id']}", json={"role": "learner"}, headers=admin_headers
        )
        assert response.json()["role"] == "learner"

        board = (await client.get("/api/v1/leaderboard", headers=guardian["headers"])).json()
        assert [row["user_id"] for row in board["entries"]] == [guardian["id"]]

    @pytest.mark.asyncio
    async def test_demoting_overdrawn_administrator_refused(self, client, admin_headers, make_account):
        other = await make_account(Role.ADMINISTRATOR, name="Overdrawn")
        withdraw = await client.post(
            f"/api/v1/admin/users/{other.id}/grant", json={"amount": -1_000_049}, headers=admin_headers
        )
        assert withdraw.json()["new_balance"] == -50

        response = await client.patch(
            f"/api/v1/admin/users/{other.id}", json={"role": "learner"}, headers=admin_headers
        )
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

        users = (await client.get("/api/v1/admin/users?role=administrator", headers=admin_headers)).json()["users"]
        overdrawn = next(u for u in users if u["id"] == other.id)
        assert overdrawn["role"] == "administrator"
        assert overdrawn["wisdom_coins"] == -50

    @pytest.mark.asyncio
    async def test_demotion_with_balance_reset_accepted(self, client, admin_headers, make_account):
        other = await make_account(Role.ADMINISTRATOR, name="Overdrawn")
        await client.post(f"/api/v1/admin/users/{other.id}/grant", json={"amount": -1_000_049}, headers=admin_headers)

        response = await client.patch(
            f"/api/v1/admin/users/{other.id}", json={"role": "instructor", "wisdom_coins": 0}, headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["role"] == "instructor"
        assert response.json()["wisdom_coins"] == 0

    @pytest.mark.asyncio
    async def test_password_reset(self, client, admin_headers, register_user):
        learner = await register_user("learner", email="reset@example.com")
        await client.patch(
            f"/api/v1/admin/users/{learner['id']}", json={"password": "BrandNewP@ss"}, headers=admin_headers
        )
        old = await client.post("/api/v1/auth/login", json={"email": "reset@example.com", "password": PASSWORD})
        new = await client.post("/api/v1/auth/login", json={"email": "reset@example.com", "password": "BrandNewP@ss"})
        assert old.status_code == 400
        assert new.status_code == 200

    @pytest.mark.asyncio
    async def test_email_conflict(self, client, admin_headers, register_user):
        await register_user("learner", email="taken@example.com")
        other = await register_user("learner")
        response = await client.patch(
            f"/api/v1/admin/users/{other['id']}", json={"email": "taken@example.com"}, headers=admin_headers
        )
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_grant(self, client, admin_headers, register_user):
        learner = await register_user("learner")
        response = await client.post(
            f"/api/v1/admin/users/{learner['id']}/grant",
            json={"amount": 30, "description": "Contest prize"},
            headers=admin_headers,
        )
        assert response.json() == {"success": True, "amount": 30, "new_balance": 180}

    @pytest.mark.asyncio
    async def test_delete_account(self, client, admin_headers, register_user):
        learner = await register_user("learner")
        response = await client.delete(f"/api/v1/admin/users/{learner['id']}", headers=admin_headers)
        assert response.status_code == 204

        me = await client.get("/api/v1/auth/me", headers=learner["headers"])
        assert me.status_code == 401

    @pytest.mark.asyncio
    async def test_self_delete_refused(self, client, admin_headers):
        me = (await client.get("/api/v1/auth/me", headers=admin_headers)).json()
        response = await client.delete(f"/api/v1/admin/users/{me['id']}", headers=admin_headers)
        assert response.status_code == 400


class TestModeration:
    @pytest.mark.asyncio
    async def test_flag_lesson(self, client, admin_headers, register_user, subject_id):
        instructor = await register_user("instructor")
        lesson = (await create_lesson_via_api(client, instructor["headers"], subject_id))["lesson"]
        assert lesson["is_flagged"] is False

        response = await client.patch(
            f"/api/v1/admin/lessons/{lesson['id']}/flag", json={"flagged": True}, headers=admin_headers
        )
        assert response.json() == {"id": lesson["id"], "is_flagged": True}

        detail = await client.get(f"/api/v1/lessons/{lesson['id']}", headers=instructor["headers"])
        assert detail.json()["is_flagged"] is True

    @pytest.mark.asyncio
    async def test_list_all_lessons(self, client, admin_headers, register_user, subject_id):
        instructor = await register_user("instructor", name="Ivy")
        lesson = (await create_lesson_via_api(client, instructor["headers"], subject_id))["lesson"]

        response = await client.get("/api/v1/admin/lessons", headers=admin_headers)
        assert response.status_code == 200
        [row] = response.json()["lessons"]
        assert row["id"] == lesson["id"]
        assert row["creator_name"] == "Ivy"
        assert row["subject_name"] == "Biology"
        assert row["question_count"] == 5

    @pytest.mark.asyncio
    async def test_delete_lesson_removes_quiz(self, client, admin_headers, register_user, subject_id):
        instructor = await register_user("instructor")
        lesson = (await create_lesson_via_api(client, instructor["headers"], subject_id))["lesson"]

        response = await client.delete(f"/api/v1/admin/lessons/{lesson['id']}", headers=admin_headers)
        assert response.status_code == 204

        detail = await client.get(f"/api/v1/lessons/{lesson['id']}", headers=admin_headers)
        assert detail.status_code == 404
        learner = await register_user("learner")
        attempt = await client.post(f"/api/v1/quizzes/{lesson['quiz_id']}/attempts", headers=learner["headers"])
        assert attempt.status_code == 404
        assert (await client.get("/api/v1/admin/lessons", headers=admin_headers)).json()["lessons"] == []

    @pytest.mark.asyncio
    async def test_delete_missing_lesson(self, client, admin_headers):
        response = await client.delete("/api/v1/admin/lessons/999", headers=admin_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_conversations(self, client, admin_headers, register_user):
        learner = await register_user("learner", name="Lena")
        expert = await _expert(client, learner["headers"])
        await _chat(client, learner["headers"], expert["id"], "What is a cell?")
        await _chat(client, learner["headers"], expert["id"], "And a tissue?")
        await register_user("learner")

        response = await client.get("/api/v1/admin/chats", headers=admin_headers)
        [row] = response.json()["conversations"]
        assert row["user_id"] == learner["id"]
        assert row["user_name"] == "Lena"
        assert row["expert_name"] == "Ada"
        assert row["message_count"] == 4

        messages = (await client.get(f"/api/v1/admin/chats/{learner['id']}", headers=admin_headers)).json()["messages"]
        assert [m["is_from_user"] for m in messages] == [True, False, True, False]
        assert messages[0]["content"] == "What is a cell?"
        assert messages[1]["content"] == CHAT_REPLY

    @pytest.mark.asyncio
    async def test_conversation_of_unknown_user(self, client, admin_headers):
        response = await client.get("/api/v1/admin/chats/999", headers=admin_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_chat_message(self, client, admin_headers, register_user):
        learner = await register_user("learner")
        expert = await _expert(client, learner["headers"])
        exchange = await _chat(client, learner["headers"], expert["id"], "Hello")

        message_id = exchange["user_message"]["id"]
        response = await client.delete(f"/api/v1/admin/chats/messages/{message_id}", headers=admin_headers)
        assert response.status_code == 204

        history = await client.get(f"/api/v1/chat/history?expert_id={expert['id']}", headers=learner["headers"])
        assert [m["id"] for m in history.json()["messages"]] == [exchange["expert_message"]["id"]]

        again = await client.delete(f"/api/v1/admin/chats/messages/{message_id}", headers=admin_headers)
        assert again.status_code == 404

    @pytest.mark.asyncio
    async def test_moderation_requires_admin(self, client, register_user):
        instructor = await register_user("instructor")
        for url in ("/api/v1/admin/lessons", "/api/v1/admin/chats", "/api/v1/admin/experts"):
            response = await client.get(url, headers=instructor["headers"])
            assert response.status_code == 403


class TestExpertAdministration:
    @pytest.mark.asyncio
    async def test_create_and_list(self, client, admin_headers, register_user):
        owner = await register_user("learner", name="Olive")
        response = await client.post("/api/v1/admin/experts", json=_expert_body(owner["id"]), headers=admin_headers)
        assert response.status_code == 201
        created = response.json()
        assert created["owner"] == {"id": owner["id"], "name": "Olive", "email": owner["email"]}
        assert created["users_count"] == 0

        experts = (await client.get("/api/v1/admin/experts", headers=admin_headers)).json()["experts"]
        assert [e["id"] for e in experts] == [created["id"]]

    @pytest.mark.asyncio
    async def test_create_rejects_unknown_owner_and_appearance(self, client, admin_headers, register_user):
        missing = await client.post("/api/v1/admin/experts", json=_expert_body(999), headers=admin_headers)
        assert missing.status_code == 404

        owner = await register_user("learner")
        body = {**_expert_body(owner["id"]), "appearance": "avatar99"}
        invalid = await client.post("/api/v1/admin/experts", json=body, headers=admin_headers)
        assert invalid.status_code == 422

    @pytest.mark.asyncio
    async def test_update(self, client, admin_headers, register_user):
        owner = await register_user("learner")
        new_owner = await register_user("learner")
        expert = await _create_expert(client, admin_headers, owner["id"])

        response = await client.patch(
            f"/api/v1/admin/experts/{expert['id']}",
            json={"name": "Marie", "owner_id": new_owner["id"]},
            headers=admin_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Marie"
        assert data["owner"]["id"] == new_owner["id"]
        assert data["personality"] == expert["personality"]

    @pytest.mark.asyncio
    async def test_delete_refused_while_selected(self, client, admin_headers, register_user):
        learner = await register_user("learner")
        expert = await _expert(client, learner["headers"])

        response = await client.delete(f"/api/v1/admin/experts/{expert['id']}", headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["users"] == 1

        listed = (await client.get("/api/v1/admin/experts", headers=admin_headers)).json()["experts"]
        assert listed[0]["users_count"] == 1

    @pytest.mark.asyncio
    async def test_delete_unused_expert(self, client, admin_headers, register_user):
        owner = await register_user("learner")
        expert = await _create_expert(client, admin_headers, owner["id"])

        response = await client.delete(f"/api/v1/admin/experts/{expert['id']}", headers=admin_headers)
        assert response.status_code == 204
        assert (await client.get("/api/v1/admin/experts", headers=admin_headers)).json()["experts"] == []

    @pytest.mark.asyncio
    async def test_assign_lets_learner_chat(self, client, admin_headers, register_user):
        owner = await register_user("learner")
        learner = await register_user("learner")
        expert = await _create_expert(client, admin_headers, owner["id"])

        response = await client.post(
            "/api/v1/admin/experts/assign",
            json={"user_id": learner["id"], "expert_id": expert["id"]},
            headers=admin_headers,
        )
        assert response.json() == {
            "success": True,
            "user_id": learner["id"],
            "expert_id": expert["id"],
            "expert_name": "Socrates",
        }

        selected = await client.get("/api/v1/experts/selected", headers=learner["headers"])
        assert selected.json()["expert"]["id"] == expert["id"]
        exchange = await _chat(client, learner["headers"], expert["id"], "Hi")
        assert exchange["expert_message"]["content"] == CHAT_REPLY

    @pytest.mark.asyncio
    async def test_assign_unknown_expert(self, client, admin_headers, register_user):
        learner = await register_user("learner")
        response = await client.post(
            "/api/v1/admin/experts/assign", json={"user_id": learner["id"], "expert_id": 999}, headers=admin_headers
        )
        assert response.status_code == 404
