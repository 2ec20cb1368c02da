from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import pytest
from fastapi.testclient import TestClient

from openform.app import create_app
from openform.config import Settings
from openform.repo_json import JSONStorage
from openform.repo_sqlite import SQLiteStorage


@pytest.fixture
def settings(tmp_path, monkeypatch) -> Settings:
    monkeypatch.setenv("STORAGE_BACKEND", "sqlite")
    monkeypatch.setenv("SQLITE_PATH", str(tmp_path / "data" / "app.db"))
    monkeypatch.setenv("JSON_PATH", str(tmp_path / "data" / "jsonstore.json"))
    monkeypatch.delenv("EXPORT_TIMEZONE", raising=False)
    return Settings()


@pytest.fixture(params=["sqlite", "json"])
def storage(request, tmp_path):
    if request.param == "sqlite":
        return SQLiteStorage(tmp_path / "app.db")
    return JSONStorage(tmp_path / "jsonstore.json")


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as test_client:
        yield test_client


def make_form(status: str = "draft", form_id: str = "form-1") -> dict[str, Any]:
    now = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)
    return {
        "id": form_id,
        "title": "Feedback",
        "description": "",
        "status": status,
        "created_at": now,
        "updated_at": now,
    }


def make_field(
    field_id: str,
    field_type: str = "text",
    order: int = 1,
    label: str | None = None,
    required: bool = False,
    options: dict[str, str] | None = None,
) -> dict[str, Any]:
    return {
        "id": field_id,
        "form_id": "form-1",
        "label": {"en": label if label is not None else field_id.upper()},
        "type": field_type,
        "order": order,
        "required": required,
        "options": options or {},
        "placeholder": {},
        "help_text": {},
        "created_at": datetime(2024, 5, 1, tzinfo=timezone.utc),
    }


def make_response(
    answers: list[dict[str, Any]],
    respondent: dict[str, str] | None = None,
    response_id: str = "resp-1",
) -> dict[str, Any]:
    return {
        "id": response_id,
        "form_id": "form-1",
        "respondent": respondent,
        "submitted_at": datetime(2024, 5, 2, 14, 5, 9, tzinfo=timezone.utc),
        "answers": answers,
    }
