from conftest import API, create_habit, create_schedule


def _complete(client, headers, task_id, is_completed=True, notes=None):
    body = {"task_id": task_id, "is_completed": is_completed}
    if notes is not None:
        body["notes"] = notes
    return client.patch(f"{API}/tasks/completion", json=body, headers=headers)


def test_update_task_completion(client, alice):
    schedule = create_schedule(client, alice, create_habit(client, alice)["id"])
    task = schedule["schedule_data"][0]

    response = _complete(client, alice, task["id"], notes="  Felt great  ")

    assert response.status_code == 200
    completion = response.json()["data"]
    assert completion["task_id"] == task["id"]
    assert completion["task_date"] == "2024-01-01"
    assert completion["is_completed"] is True
    assert completion["completed_at"] is not None
    assert completion["notes"] == "Felt great"


def test_completion_is_overwritten_not_duplicated(client, alice):
    schedule = create_schedule(client, alice, create_habit(client, alice)["id"])
    task_id = schedule["schedule_data"][0]["id"]

    first = _complete(client, alice, task_id).json()["data"]
    second = _complete(client, alice, task_id, is_completed=False).json()["data"]

    assert first["id"] == second["id"]
    assert second["is_completed"] is False
    assert second["completed_at"] is None
    assert len(client.get(f"{API}/tasks/completions", headers=alice).json()["data"]) == 1


def test_cannot_complete_someone_elses_task(client, alice, bob):
    schedule = create_schedule(client, alice, create_habit(client, alice)["id"])

    response = _complete(client, bob, schedule["schedule_data"][0]["id"])

    assert response.status_code == 404
    assert response.json()["error"] == "TASK_NOT_FOUND"


def test_completion_payload_is_validated(client, alice):
    response = client.patch(f"{API}/tasks/completion", json={
        "task_id": "t1",
        "is_completed": "sometimes",
        "notes": "x" * 501,
    }, headers=alice)

    assert response.status_code == 400
    assert [item["field"] for item in response.json()["data"]] == ["is_completed", "notes"]


def test_completions_filtered_by_date_range(client, alice):
    schedule = create_schedule(client, alice, create_habit(client, alice)["id"])
    for task in schedule["schedule_data"]:
        _complete(client, alice, task["id"])

    response = client.get(
        f"{API}/tasks/completions",
        params={"start_date": "2024-01-02", "end_date": "2024-01-03"},
        headers=alice,
    )

    assert response.status_code == 200
    assert [c["task_date"] for c in response.json()["data"]] == ["2024-01-02", "2024-01-03"]


def test_completions_query_dates_are_validated(client, alice):
    response = client.get(
        f"{API}/tasks/completions", params={"start_date": "yesterday"}, headers=alice
    )

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "VALIDATION_ERROR"
    assert body["data"][0]["field"] == "start_date"


def test_foreign_completion_looks_like_missing_completion(client, alice, bob):
    schedule = create_schedule(client, alice, create_habit(client, alice)["id"])
    completion = _complete(client, alice, schedule["schedule_data"][0]["id"]).json()["data"]

    own = client.get(f"{API}/tasks/completion/{completion['id']}", headers=alice)
    foreign = client.get(f"{API}/tasks/completion/{completion['id']}", headers=bob)
    missing = client.get(f"{API}/tasks/completion/nope", headers=bob)

    assert own.status_code == 200
    assert own.json()["data"]["id"] == completion["id"]
    assert foreign.status_code == 404
    assert foreign.json() == missing.json()
    assert foreign.json()["error"] == "TASK_COMPLETION_NOT_FOUND"


def test_progress_reflects_completions(client, alice):
    schedule = create_schedule(client, alice, create_habit(client, alice)["id"])
    _complete(client, alice, schedule["schedule_data"][1]["id"])

    response = client.get(f"{API}/tasks/progress/{schedule['id']}", headers=alice)

    assert response.status_code == 200
    progress = response.json()["data"]
    assert progress["schedule_id"] == schedule["id"]
    assert progress["total_tasks"] == 5
    assert progress["completed_tasks"] == 1
    # Every date in January 2024 is in the past
    assert progress["missed_tasks"] == 4
    assert progress["completion_rate"] == 20.0
    assert progress["tasks"][1] == {
        "id": schedule["schedule_data"][1]["id"],
        "date": "2024-01-02",
        "description": "Drink water day 2",
        "is_completed": True,
        "priority": 2,
    }


def test_progress_of_foreign_schedule_is_not_found(client, alice, bob):
    schedule = create_schedule(client, alice, create_habit(client, alice)["id"])

    response = client.get(f"{API}/tasks/progress/{schedule['id']}", headers=bob)

    assert response.status_code == 404
    assert response.json()["error"] == "SCHEDULE_NOT_FOUND"
