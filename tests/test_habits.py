from unittest.mock import AsyncMock, patch

from conftest import API, create_habit
from habit_tracker.errors import StorageError


def test_create_habit_requires_token(client):
    response = client.post(f"{API}/habits", json={"habit_name": "Read"})

    assert response.status_code == 401
    assert response.json()["error"] == "MISSING_TOKEN"


def test_validation_runs_before_authentication(client):
    response = client.post(f"{API}/habits", json={"habit_name": ""})

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "VALIDATION_ERROR"
    assert body["data"] == [
        {"field": "habit_name", "message": "Habit name must be 1-100 characters long"}
    ]


def test_create_and_list_habits(client, alice, bob):
    habit = create_habit(client, alice, "  Drink water  ", history="Forget after lunch")
    create_habit(client, bob, "Run")

    assert habit["habit_name"] == "Drink water"
    assert habit["user_history"] == "Forget after lunch"

    response = client.get(f"{API}/habits", headers=alice)

    assert response.status_code == 200
    habits = response.json()["data"]
    assert [h["habit_name"] for h in habits] == ["Drink water"]


def test_history_length_is_limited(client, alice):
    response = client.post(
        f"{API}/habits",
        json={"habit_name": "Read", "user_history": "x" * 1001},
        headers=alice,
    )

    assert response.status_code == 400
    assert response.json()["data"][0]["field"] == "user_history"


def test_foreign_habit_looks_like_missing_habit(client, alice, bob):
    habit = create_habit(client, alice)

    foreign = client.get(f"{API}/habits/{habit['id']}", headers=bob)
    missing = client.get(f"{API}/habits/does-not-exist", headers=bob)

    assert foreign.status_code == missing.status_code == 404
    assert foreign.json() == missing.json()
    assert foreign.json()["error"] == "HABIT_NOT_FOUND"


def test_partial_update(client, alice):
    habit = create_habit(client, alice, history="Old notes")

    response = client.patch(
        f"{API}/habits/{habit['id']}", json={"habit_name": "Drink 2L water"}, headers=alice
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["habit_name"] == "Drink 2L water"
    assert data["user_history"] == "Old notes"


def test_update_foreign_habit_is_not_found(client, alice, bob):
    habit = create_habit(client, alice)

    response = client.patch(
        f"{API}/habits/{habit['id']}", json={"habit_name": "Hijacked"}, headers=bob
    )

    assert response.status_code == 404
    assert client.get(f"{API}/habits/{habit['id']}", headers=alice).json()["data"]["habit_name"] == "Drink water"


def test_delete_habit(client, alice, bob):
    habit = create_habit(client, alice)

    assert client.delete(f"{API}/habits/{habit['id']}", headers=bob).status_code == 404

    response = client.delete(f"{API}/habits/{habit['id']}", headers=alice)

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Habit deleted successfully"}
    assert client.get(f"{API}/habits/{habit['id']}", headers=alice).status_code == 404


def test_storage_failure_is_a_generic_error(client, alice, storage):
    failing = AsyncMock(side_effect=StorageError("GET /habits/user/u1 returned 500: disk full"))

    with patch.object(storage, "list_habits", failing):
        response = client.get(f"{API}/habits", headers=alice)

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "message": "Failed to retrieve habits",
        "error": "GET_HABITS_ERROR",
    }
