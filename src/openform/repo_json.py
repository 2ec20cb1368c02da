from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable

from filelock import FileLock, Timeout
from tinydb import Query, TinyDB

from openform.errors import TransientError
from openform.utils import parse_dt, to_iso

LOCK_TIMEOUT = 10.0


def _iso_or_value(value: Any) -> Any:
    return to_iso(value) if isinstance(value, datetime) else value


class JSONRepoBase:
    def __init__(self, path: Path, lock: FileLock) -> None:
        self._path = path
        self._lock = lock

    @contextmanager
    def _db(self) -> Iterable[TinyDB]:
        try:
            self._lock.acquire(timeout=LOCK_TIMEOUT)
        except Timeout as exc:
            raise TransientError(f"storage is locked: {self._path}") from exc
        try:
            db = TinyDB(self._path)
            try:
                yield db
            finally:
                db.close()
        finally:
            self._lock.release()


class JSONFormRepo(JSONRepoBase):
    def list_forms(self) -> list[dict[str, Any]]:
        with self._db() as db:
            items = db.table("forms").all()
        forms = [self._from_record(item) for item in items]
        return sorted(forms, key=lambda x: x["created_at"], reverse=True)

    def get_form(self, form_id: str) -> dict[str, Any] | None:
        with self._db() as db:
            item = db.table("forms").get(Query().id == form_id)
        return self._from_record(item) if item else None

    def create_form(self, form: dict[str, Any]) -> None:
        record = {key: _iso_or_value(value) for key, value in form.items()}
        with self._db() as db:
            db.table("forms").insert(record)

    def update_form(self, form_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        with self._db() as db:
            table = db.table("forms")
            item = table.get(Query().id == form_id)
            if not item:
                raise KeyError(form_id)
            item = dict(item)
            for key in ("title", "description", "status", "updated_at"):
                if key in updates:
                    item[key] = _iso_or_value(updates[key])
            table.update(item, Query().id == form_id)
        return self._from_record(item)

    def delete_form(self, form_id: str) -> None:
        with self._db() as db:
            db.table("forms").remove(Query().id == form_id)

    @staticmethod
    def _from_record(record: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": record["id"],
            "title": record.get("title", ""),
            "description": record.get("description", ""),
            "status": record.get("status", "draft"),
            "created_at": parse_dt(record.get("created_at")),
            "updated_at": parse_dt(record.get("updated_at")),
        }


class JSONFieldRepo(JSONRepoBase):
    def list_fields(self, form_id: str) -> list[dict[str, Any]]:
        with self._db() as db:
            items = db.table("fields").search(Query().form_id == form_id)
        fields = [self._from_record(item) for item in items]
        return sorted(fields, key=lambda x: (x["order"], x["id"]))

    def get_field(self, field_id: str) -> dict[str, Any] | None:
        with self._db() as db:
            item = db.table("fields").get(Query().id == field_id)
        return self._from_record(item) if item else None

    def create_field(self, field: dict[str, Any]) -> None:
        record = {key: _iso_or_value(value) for key, value in field.items()}
        with self._db() as db:
            db.table("fields").insert(record)

    def update_field(self, field_id: str, field: dict[str, Any]) -> dict[str, Any]:
        with self._db() as db:
            table = db.table("fields")
            item = table.get(Query().id == field_id)
            if not item:
                raise KeyError(field_id)
            item = dict(item)
            for key in ("label", "type", "order", "required", "options", "placeholder", "help_text"):
                if key in field:
                    item[key] = field[key]
            table.update(item, Query().id == field_id)
        return self._from_record(item)

    def delete_field(self, field_id: str) -> None:
        with self._db() as db:
            db.table("fields").remove(Query().id == field_id)

    def delete_fields_of_form(self, form_id: str) -> None:
        with self._db() as db:
            db.table("fields").remove(Query().form_id == form_id)

    @staticmethod
    def _from_record(record: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": record["id"],
            "form_id": record["form_id"],
            "label": record.get("label") or {},
            "type": record.get("type", ""),
            "order": record.get("order", 0),
            "required": bool(record.get("required")),
            "options": record.get("options") or {},
            "placeholder": record.get("placeholder") or {},
            "help_text": record.get("help_text") or {},
            "created_at": parse_dt(record.get("created_at")),
        }


class JSONResponseRepo(JSONRepoBase):
    def list_responses(self, form_id: str) -> list[dict[str, Any]]:
        with self._db() as db:
            items = db.table("responses").search(Query().form_id == form_id)
        responses = [self._from_record(item) for item in items]
        return sorted(responses, key=lambda x: (x["submitted_at"], x["id"]))

    def get_response(self, response_id: str) -> dict[str, Any] | None:
        with self._db() as db:
            item = db.table("responses").get(Query().id == response_id)
        return self._from_record(item) if item else None

    def create_response(self, response: dict[str, Any]) -> None:
        record = {
            "id": response["id"],
            "form_id": response["form_id"],
            "respondent": response.get("respondent"),
            "answers": response["answers"],
            "submitted_at": to_iso(response["submitted_at"]),
        }
        with self._db() as db:
            db.table("responses").insert(record)

    def delete_response(self, response_id: str) -> None:
        with self._db() as db:
            db.table("responses").remove(Query().id == response_id)

    def delete_responses_of_form(self, form_id: str) -> None:
        with self._db() as db:
            db.table("responses").remove(Query().form_id == form_id)

    @staticmethod
    def _from_record(record: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": record["id"],
            "form_id": record["form_id"],
            "respondent": record.get("respondent"),
            "submitted_at": parse_dt(record.get("submitted_at")),
            "answers": record.get("answers") or [],
        }


class JSONStorage:
    def __init__(self, path: Path) -> None:
        self._lock = FileLock(f"{path}.lock")
        self.forms = JSONFormRepo(path, self._lock)
        self.fields = JSONFieldRepo(path, self._lock)
        self.responses = JSONResponseRepo(path, self._lock)
