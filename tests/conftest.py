"""Shared fixtures: an app wired to in-memory SQL storage and a scripted generator."""

import os

# Must be set before habit_tracker.config is imported
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ["STORAGE_BACKEND"] = "sql"
os.environ["DATABASE_URL"] = "sqlite://"

from datetime import date, timedelta
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from habit_tracker.main import create_app
from habit_tracker.schemas.schedule import DailyTask, GeneratedSchedule
from habit_tracker.services.sql_storage import SqlStorage

API = "/api/v1"
PASSWORD = "password123"


class FakeGenerator:
    """Produces one task per day and records every call."""

    def __init__(self):
        self.calls = []
        self.error = None

    def _tasks(self, prefix, start_date, end_date):
        days = (end_date - start_date).days + 1
        return [
            DailyTask(
                id=str(uuid4()),
                date=start_date + timedelta(days=offset),
                task_description=f"{prefix} day {offset + 1}",
                priority=min(offset + 1, 5),
            )
            for offset in range(days)
        ]

    async def generate_schedule(self, habit_name, user_history, start_date, end_date):
        self.calls.append(("generate", {
            "habit_name": habit_name,
            "user_history": user_history,
            "start_date": start_date,
            "end_date": end_date,
        }))
        if self.error:
            raise self.error
        return GeneratedSchedule(
            tasks=self._tasks(habit_name, start_date, end_date),
            reasoning="Start small and build up",
            recommendations=["Keep it visible"],
        )

    async def reschedule_tasks(self, habit_name, user_history, start_date, end_date, current_progress):
        self.calls.append(("reschedule", {
            "habit_name": habit_name,
            "start_date": start_date,
            "end_date": end_date,
            "current_progress": current_progress,
        }))
        if self.error:
            raise self.error
        return GeneratedSchedule(
            tasks=self._tasks(f"Rescheduled {habit_name}", start_date, end_date),
            reasoning="Spread the missed work out",
            recommendations=["Be kind to yourself"],
        )


@pytest.fixture
def storage():
    return SqlStorage("sqlite://")


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def app(storage, generator):
    return create_app(storage=storage, generator=generator)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def signup(client, email="alice@example.com", username="alice", password=PASSWORD):
    return client.post(f"{API}/auth/signup", json={
        "email": email,
        "username": username,
        "password": password,
        "confirm_password": password,
    })


def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def alice(client):
    response = signup(client)
    assert response.status_code == 201
    return auth_headers(response.json()["data"]["token"])


@pytest.fixture
def bob(client):
    response = signup(client, email="bob@example.com", username="bob")
    assert response.status_code == 201
    return auth_headers(response.json()["data"]["token"])


def create_habit(client, headers, name="Drink water", history=None):
    body = {"habit_name": name}
    if history is not None:
        body["user_history"] = history
    response = client.post(f"{API}/habits", json=body, headers=headers)
    assert response.status_code == 201
    return response.json()["data"]


def create_schedule(client, headers, habit_id, start=date(2024, 1, 1), end=date(2024, 1, 5)):
    response = client.post(f"{API}/schedules", json={
        "habit_id": habit_id,
        "start_date": start.isoformat(),
        "end_date": end.isoformat(),
    }, headers=headers)
    assert response.status_code == 201, response.json()
    return response.json()["data"]
