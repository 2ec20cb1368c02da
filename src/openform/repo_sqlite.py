from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

from openform.errors import TransientError
from openform.models import Base, FieldModel, FormModel, ResponseModel
from openform.utils import dumps_json, ensure_aware, loads_json


def _aware(value: Any) -> Any:
    # SQLite hands DateTime columns back without tzinfo; they are stored as UTC.
    return ensure_aware(value) if value is not None else None


class SQLiteRepoBase:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._Session = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            with self._Session() as session:
                yield session
        except OperationalError as exc:
            raise TransientError(f"database unavailable: {exc.orig}") from exc


class SQLiteFormRepo(SQLiteRepoBase):
    def list_forms(self) -> list[dict[str, Any]]:
        with self._session() as session:
            rows = session.query(FormModel).order_by(FormModel.created_at.desc()).all()
            return [self._to_dict(row) for row in rows]

    def get_form(self, form_id: str) -> dict[str, Any] | None:
        with self._session() as session:
            row = session.get(FormModel, form_id)
            return self._to_dict(row) if row else None

    def create_form(self, form: dict[str, Any]) -> None:
        with self._session() as session:
            row = FormModel(
                id=form["id"],
                title=form["title"],
                description=form["description"],
                status=form["status"],
                created_at=form["created_at"],
                updated_at=form["updated_at"],
            )
            session.add(row)
            session.commit()

    def update_form(self, form_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        with self._session() as session:
            row = session.get(FormModel, form_id)
            if not row:
                raise KeyError(form_id)
            for key in ("title", "description", "status", "updated_at"):
                if key in updates:
                    setattr(row, key, updates[key])
            session.commit()
            session.refresh(row)
            return self._to_dict(row)

    def delete_form(self, form_id: str) -> None:
        with self._session() as session:
            row = session.get(FormModel, form_id)
            if row:
                session.delete(row)
                session.commit()

    @staticmethod
    def _to_dict(row: FormModel) -> dict[str, Any]:
        return {
            "id": row.id,
            "title": row.title or "",
            "description": row.description or "",
            "status": row.status,
            "created_at": _aware(row.created_at),
            "updated_at": _aware(row.updated_at),
        }


class SQLiteFieldRepo(SQLiteRepoBase):
    def list_fields(self, form_id: str) -> list[dict[str, Any]]:
        with self._session() as session:
            rows = (
                session.query(FieldModel)
                .filter(FieldModel.form_id == form_id)
                .order_by(FieldModel.field_order, FieldModel.id)
                .all()
            )
            return [self._to_dict(row) for row in rows]

    def get_field(self, field_id: str) -> dict[str, Any] | None:
        with self._session() as session:
            row = session.get(FieldModel, field_id)
            return self._to_dict(row) if row else None

    def create_field(self, field: dict[str, Any]) -> None:
        with self._session() as session:
            row = FieldModel(
                id=field["id"],
                form_id=field["form_id"],
                label_json=dumps_json(field["label"]),
                type=field["type"],
                field_order=field["order"],
                required=int(bool(field.get("required"))),
                options_json=dumps_json(field.get("options") or {}),
                placeholder_json=dumps_json(field.get("placeholder") or {}),
                help_text_json=dumps_json(field.get("help_text") or {}),
                created_at=field["created_at"],
            )
            session.add(row)
            session.commit()

    def update_field(self, field_id: str, field: dict[str, Any]) -> dict[str, Any]:
        with self._session() as session:
            row = session.get(FieldModel, field_id)
            if not row:
                raise KeyError(field_id)
            row.label_json = dumps_json(field["label"])
            row.type = field["type"]
            row.field_order = field["order"]
            row.required = int(bool(field.get("required")))
            row.options_json = dumps_json(field.get("options") or {})
            row.placeholder_json = dumps_json(field.get("placeholder") or {})
            row.help_text_json = dumps_json(field.get("help_text") or {})
            session.commit()
            session.refresh(row)
            return self._to_dict(row)

    def delete_field(self, field_id: str) -> None:
        with self._session() as session:
            row = session.get(FieldModel, field_id)
            if row:
                session.delete(row)
                session.commit()

    def delete_fields_of_form(self, form_id: str) -> None:
        with self._session() as session:
            session.query(FieldModel).filter(FieldModel.form_id == form_id).delete()
            session.commit()

    @staticmethod
    def _to_dict(row: FieldModel) -> dict[str, Any]:
        return {
            "id": row.id,
            "form_id": row.form_id,
            "label": loads_json(row.label_json) or {},
            "type": row.type or "",
            "order": row.field_order or 0,
            "required": bool(row.required),
            "options": loads_json(row.options_json) or {},
            "placeholder": loads_json(row.placeholder_json) or {},
            "help_text": loads_json(row.help_text_json) or {},
            "created_at": _aware(row.created_at),
        }


class SQLiteResponseRepo(SQLiteRepoBase):
    def list_responses(self, form_id: str) -> list[dict[str, Any]]:
        with self._session() as session:
            rows = (
                session.query(ResponseModel)
                .filter(ResponseModel.form_id == form_id)
                .order_by(ResponseModel.submitted_at, ResponseModel.id)
                .all()
            )
            return [self._to_dict(row) for row in rows]

    def get_response(self, response_id: str) -> dict[str, Any] | None:
        with self._session() as session:
            row = session.get(ResponseModel, response_id)
            return self._to_dict(row) if row else None

    def create_response(self, response: dict[str, Any]) -> None:
        with self._session() as session:
            row = ResponseModel(
                id=response["id"],
                form_id=response["form_id"],
                respondent_json=dumps_json(response.get("respondent")),
                answers_json=dumps_json(response["answers"]),
                submitted_at=response["submitted_at"],
            )
            session.add(row)
            session.commit()

    def delete_response(self, response_id: str) -> None:
        with self._session() as session:
            row = session.get(ResponseModel, response_id)
            if row:
                session.delete(row)
                session.commit()

    def delete_responses_of_form(self, form_id: str) -> None:
        with self._session() as session:
            session.query(ResponseModel).filter(ResponseModel.form_id == form_id).delete()
            session.commit()

    @staticmethod
    def _to_dict(row: ResponseModel) -> dict[str, Any]:
        return {
            "id": row.id,
            "form_id": row.form_id,
            "respondent": loads_json(row.respondent_json),
            "submitted_at": _aware(row.submitted_at),
            "answers": loads_json(row.answers_json) or [],
        }


class SQLiteStorage:
    def __init__(self, db_path: Path) -> None:
        self._engine = create_engine(f"sqlite:///{db_path}", future=True)
        self._Session = sessionmaker(self._engine, expire_on_commit=False)
        Base.metadata.create_all(self._engine)
        self.forms = SQLiteFormRepo(self._Session)
        self.fields = SQLiteFieldRepo(self._Session)
        self.responses = SQLiteResponseRepo(self._Session)
