from datetime import date

from conftest import API, create_habit, create_schedule
from habit_tracker.errors import GenerationError, GenerationParseError


def test_create_schedule_generates_one_task_per_day(client, alice, generator):
    habit = create_habit(client, alice, "Drink water", history="Forget on weekends")

    schedule = create_schedule(client, alice, habit["id"])

    dates = [task["date"] for task in schedule["schedule_data"]]
    assert dates == ["2024-01-01", "2024-01-02", "2024-01-03", "2024-01-04", "2024-01-05"]
    assert schedule["generated_by_ai"] is True
    assert schedule["habit_id"] == habit["id"]
    assert schedule["start_date"] == "2024-01-01"
    assert schedule["end_date"] == "2024-01-05"
    assert schedule["ai_reasoning"] == "Start small and build up"
    assert schedule["ai_recommendations"] == ["Keep it visible"]

    kind, call = generator.calls[0]
    assert kind == "generate"
    assert call["habit_name"] == "Drink water"
    assert call["user_history"] == "Forget on weekends"


def test_explicit_history_overrides_habit_history(client, alice, generator):
    habit = create_habit(client, alice, history="Stored history")

    client.post(f"{API}/schedules", json={
        "habit_id": habit["id"],
        "start_date": "2024-01-01",
        "end_date": "2024-01-02",
        "user_history": "Fresh context",
    }, headers=alice)

    assert generator.calls[0][1]["user_history"] == "Fresh context"


def test_fetched_schedule_matches_generated_one(client, alice):
    habit = create_habit(client, alice)
    created = create_schedule(client, alice, habit["id"])

    response = client.get(f"{API}/schedules/{created['id']}", headers=alice)

    assert response.status_code == 200
    fetched = response.json()["data"]
    assert fetched["schedule_data"] == created["schedule_data"]
    assert "ai_reasoning" not in fetched


def test_list_schedules_only_returns_own(client, alice, bob):
    create_schedule(client, alice, create_habit(client, alice)["id"])
    create_schedule(client, bob, create_habit(client, bob, "Run")["id"])

    response = client.get(f"{API}/schedules", headers=alice)

    schedules = response.json()["data"]
    assert len(schedules) == 1
    assert schedules[0]["schedule_data"][0]["task_description"] == "Drink water day 1"


def test_schedule_for_foreign_habit_is_not_found(client, alice, bob, generator):
    habit = create_habit(client, alice)

    response = client.post(f"{API}/schedules", json={
        "habit_id": habit["id"],
        "start_date": "2024-01-01",
        "end_date": "2024-01-05",
    }, headers=bob)

    assert response.status_code == 404
    assert response.json()["error"] == "HABIT_NOT_FOUND"
    assert generator.calls == []


def test_end_date_before_start_date_is_invalid(client, alice):
    response = client.post(f"{API}/schedules", json={
        "habit_id": "h1",
        "start_date": "2024-01-05",
        "end_date": "2024-01-01",
    }, headers=alice)

    assert response.status_code == 400
    assert response.json()["data"] == [
        {"field": "end_date", "message": "End date must not be before start date"}
    ]


def test_bad_date_format_is_invalid(client, alice):
    response = client.post(f"{API}/schedules", json={
        "habit_id": "h1",
        "start_date": "January first",
        "end_date": "2024-01-01",
    }, headers=alice)

    assert response.status_code == 400
    assert response.json()["data"][0]["field"] == "start_date"


def test_generation_failure_is_a_generic_error(client, alice, generator):
    habit = create_habit(client, alice)
    generator.error = GenerationError("upstream said: secret internals")

    response = client.post(f"{API}/schedules", json={
        "habit_id": habit["id"],
        "start_date": "2024-01-01",
        "end_date": "2024-01-05",
    }, headers=alice)

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "message": "Failed to create schedule",
        "error": "CREATE_SCHEDULE_ERROR",
    }
    assert client.get(f"{API}/schedules", headers=alice).json()["data"] == []


def test_unparseable_generation_has_its_own_code(client, alice, generator):
    habit = create_habit(client, alice)
    generator.error = GenerationParseError("No JSON found")

    response = client.post(f"{API}/schedules", json={
        "habit_id": habit["id"],
        "start_date": "2024-01-01",
        "end_date": "2024-01-05",
    }, headers=alice)

    assert response.status_code == 500
    assert response.json()["error"] == "GENERATION_PARSE_ERROR"


def test_foreign_schedule_looks_like_missing_schedule(client, alice, bob):
    schedule = create_schedule(client, alice, create_habit(client, alice)["id"])

    foreign = client.get(f"{API}/schedules/{schedule['id']}", headers=bob)
    missing = client.get(f"{API}/schedules/nope", headers=bob)

    assert foreign.status_code == 404
    assert foreign.json() == missing.json()
    assert foreign.json()["error"] == "SCHEDULE_NOT_FOUND"


def test_reschedule_replaces_tasks_but_keeps_dates(client, alice, generator):
    schedule = create_schedule(client, alice, create_habit(client, alice)["id"])

    response = client.post(f"{API}/schedules/{schedule['id']}/reschedule", json={
        "missed_dates": ["2024-01-02"],
        "current_progress": {"completed_tasks": 1, "total_tasks": 5},
    }, headers=alice)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["start_date"] == schedule["start_date"]
    assert data["end_date"] == schedule["end_date"]
    assert data["generated_by_ai"] is True
    assert data["schedule_data"][0]["task_description"] == "Rescheduled Drink water day 1"
    assert data["ai_reasoning"] == "Spread the missed work out"
    assert data["last_updated"] >= schedule["last_updated"]

    kind, call = generator.calls[-1]
    assert kind == "reschedule"
    progress = call["current_progress"]
    assert progress.completed_tasks == 1
    assert progress.total_tasks == 5
    assert progress.missed_dates == [date(2024, 1, 2)]


def test_reschedule_derives_progress_when_not_given(client, alice, generator):
    schedule = create_schedule(client, alice, create_habit(client, alice)["id"])

    response = client.post(f"{API}/schedules/{schedule['id']}/reschedule", json={}, headers=alice)

    assert response.status_code == 200
    progress = generator.calls[-1][1]["current_progress"]
    assert progress.completed_tasks == 0
    assert progress.total_tasks == 5
    assert progress.missed_dates == []


def test_reschedule_foreign_schedule_is_not_found(client, alice, bob, generator):
    schedule = create_schedule(client, alice, create_habit(client, alice)["id"])

    response = client.post(f"{API}/schedules/{schedule['id']}/reschedule", json={}, headers=bob)

    assert response.status_code == 404
    assert [kind for kind, _ in generator.calls] == ["generate"]


def test_update_schedule(client, alice):
    schedule = create_schedule(client, alice, create_habit(client, alice)["id"])
    tasks = schedule["schedule_data"][:2]
    tasks[0]["is_completed"] = True

    response = client.patch(f"{API}/schedules/{schedule['id']}", json={
        "schedule_data": tasks,
        "generated_by_ai": False,
    }, headers=alice)

    assert response.status_code == 200
    data = response.json()["data"]
    assert len(data["schedule_data"]) == 2
    assert data["schedule_data"][0]["is_completed"] is True
    assert data["generated_by_ai"] is False


def test_update_schedule_rejects_inverted_range(client, alice):
    schedule = create_schedule(client, alice, create_habit(client, alice)["id"])

    response = client.patch(
        f"{API}/schedules/{schedule['id']}", json={"end_date": "2023-12-01"}, headers=alice
    )

    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"


def test_update_schedule_rejects_bad_priority(client, alice):
    schedule = create_schedule(client, alice, create_habit(client, alice)["id"])
    tasks = schedule["schedule_data"]
    tasks[0]["priority"] = 9

    response = client.patch(
        f"{API}/schedules/{schedule['id']}", json={"schedule_data": tasks}, headers=alice
    )

    assert response.status_code == 400
    assert response.json()["data"][0]["field"] == "schedule_data.0.priority"


def test_delete_schedule(client, alice, bob):
    schedule = create_schedule(client, alice, create_habit(client, alice)["id"])

    assert client.delete(f"{API}/schedules/{schedule['id']}", headers=bob).status_code == 404
    assert client.delete(f"{API}/schedules/{schedule['id']}", headers=alice).status_code == 200
    assert client.get(f"{API}/schedules/{schedule['id']}", headers=alice).status_code == 404


def test_reschedule_after_habit_deleted_is_not_found(client, alice, generator):
    habit = create_habit(client, alice)
    schedule = create_schedule(client, alice, habit["id"])
    assert client.delete(f"{API}/habits/{habit['id']}", headers=alice).status_code == 200

    response = client.post(f"{API}/schedules/{schedule['id']}/reschedule", json={}, headers=alice)

    assert response.status_code == 404
    assert response.json()["error"] == "HABIT_NOT_FOUND"
    assert client.get(f"{API}/schedules/{schedule['id']}", headers=alice).status_code == 200
    assert [kind for kind, _ in generator.calls] == ["generate"]
