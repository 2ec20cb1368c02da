"""Resource operations over a storage backend.

These are the operations the HTTP routes and the CLI share. Every function
takes the storage explicitly and raises the errors of ``openform.errors``.
"""

from __future__ import annotations

import logging
from datetime import tzinfo
from typing import Any

from jsonschema import Draft7Validator

from openform import lifecycle
from openform.answers import encode_answers, render_answers
from openform.errors import ConflictError, NotFoundError, ValidationError
from openform.export import export_csv as tabulate_csv
from openform.protocols import Storage
from openform.schema import add_field, replace_field, sanitize_field_output, sort_fields
from openform.utils import new_ulid, now_utc, to_iso

logger = logging.getLogger(__name__)

_LOCALIZED_TEXT = {"type": ["string", "object", "null"]}

FORM_PAYLOAD_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "title": {"type": "string"},
        "description": {"type": ["string", "null"]},
    },
}

FIELD_PAYLOAD_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["form_id"],
    "properties": {
        "form_id": {"type": "string"},
        "label": _LOCALIZED_TEXT,
        "type": {"type": ["string", "null"]},
        "required": {"type": ["boolean", "null"]},
        "options": {"type": ["string", "array", "object", "null"]},
        "placeholder": _LOCALIZED_TEXT,
        "help_text": _LOCALIZED_TEXT,
    },
}

FIELD_UPDATE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        **FIELD_PAYLOAD_SCHEMA["properties"],
        "order": {"type": ["integer", "null"], "minimum": 1},
    },
}

RESPONSE_PAYLOAD_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["form_id", "answers"],
    "properties": {
        "form_id": {"type": "string"},
        "respondent": {
            "type": ["object", "null"],
            "properties": {
                "name": {"type": ["string", "null"]},
                "email": {"type": ["string", "null"]},
            },
        },
        "answers": {
            "type": ["array", "object"],
            "items": {
                "type": "object",
                "required": ["field_id"],
                "properties": {"field_id": {"type": "string"}},
            },
        },
    },
}


def validate_payload(schema: dict[str, Any], payload: Any) -> None:
    validator = Draft7Validator(schema)
    errors = sorted(validator.iter_errors(payload), key=lambda err: list(err.path))
    if errors:
        raise ValidationError("invalid request", [error.message for error in errors])


def sanitize_form_output(form: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": form["id"],
        "title": form.get("title", ""),
        "description": form.get("description", ""),
        "status": lifecycle.status_of(form),
        "created_at": to_iso(form.get("created_at") or now_utc()),
        "updated_at": to_iso(form.get("updated_at") or now_utc()),
    }


def sanitize_response_output(response: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": response["id"],
        "form_id": response["form_id"],
        "respondent": response.get("respondent"),
        "submitted_at": to_iso(response.get("submitted_at") or now_utc()),
        "answers": response.get("answers") or [],
    }


# forms


def list_forms(storage: Storage) -> list[dict[str, Any]]:
    return storage.forms.list_forms()


def get_form(storage: Storage, form_id: str) -> dict[str, Any]:
    form = storage.forms.get_form(form_id)
    if not form:
        raise NotFoundError(f"form not found: {form_id}")
    return form


def create_form(storage: Storage, title: Any, description: Any = "") -> dict[str, Any]:
    validate_payload(FORM_PAYLOAD_SCHEMA, {"title": title, "description": description})
    title = str(title or "").strip()
    if not title:
        raise ValidationError("title is required")
    now = now_utc()
    form = {
        "id": new_ulid(),
        "title": title,
        "description": str(description or "").strip(),
        "status": lifecycle.DRAFT,
        "created_at": now,
        "updated_at": now,
    }
    storage.forms.create_form(form)
    logger.info("Created form %s", form["id"])
    return get_form(storage, form["id"])


def update_form(storage: Storage, form_id: str, payload: dict[str, Any]) -> dict[str, Any]:
    validate_payload(FORM_PAYLOAD_SCHEMA, payload)
    form = get_form(storage, form_id)
    if not lifecycle.is_editable(form):
        raise ConflictError("a closed form cannot be updated")
    updates: dict[str, Any] = {}
    if "title" in payload:
        title = str(payload.get("title") or "").strip()
        if not title:
            raise ValidationError("title is required")
        updates["title"] = title
    if "description" in payload:
        updates["description"] = str(payload.get("description") or "").strip()
    updates["updated_at"] = now_utc()
    return _update_form(storage, form_id, updates)


def _update_form(storage: Storage, form_id: str, updates: dict[str, Any]) -> dict[str, Any]:
    try:
        return storage.forms.update_form(form_id, updates)
    except KeyError:
        raise NotFoundError(f"form not found: {form_id}") from None


def _apply_transition(storage: Storage, form_id: str, action: str) -> dict[str, Any]:
    form = get_form(storage, form_id)
    updated = lifecycle.transition(form, action)
    result = _update_form(
        storage, form_id, {"status": updated["status"], "updated_at": updated["updated_at"]}
    )
    logger.info(
        "Form %s: %s -> %s", form_id, lifecycle.status_of(form), lifecycle.status_of(result)
    )
    return result


def publish_form(storage: Storage, form_id: str) -> dict[str, Any]:
    return _apply_transition(storage, form_id, "publish")


def close_form(storage: Storage, form_id: str) -> dict[str, Any]:
    return _apply_transition(storage, form_id, "close")


def delete_form(storage: Storage, form_id: str) -> None:
    get_form(storage, form_id)
    storage.fields.delete_fields_of_form(form_id)
    storage.responses.delete_responses_of_form(form_id)
    storage.forms.delete_form(form_id)
    logger.info("Deleted form %s", form_id)


def public_view(storage: Storage, form_id: str) -> dict[str, Any]:
    """What the public page of a form may show in its current state."""
    form = get_form(storage, form_id)
    state = lifecycle.public_state(form)
    fields = list_fields(storage, form_id) if state == lifecycle.PUBLIC_OPEN else []
    return {
        "form": sanitize_form_output(form),
        "state": state,
        "accepting_responses": lifecycle.accepts_responses(form),
        "message": lifecycle.PUBLIC_MESSAGES[state],
        "fields": [sanitize_field_output(field) for field in fields],
    }


# fields


def list_fields(storage: Storage, form_id: str) -> list[dict[str, Any]]:
    get_form(storage, form_id)
    return sort_fields(storage.fields.list_fields(form_id))


def create_field(storage: Storage, field_spec: dict[str, Any]) -> dict[str, Any]:
    validate_payload(FIELD_PAYLOAD_SCHEMA, field_spec)
    form = get_form(storage, field_spec["form_id"])
    if not lifecycle.is_editable(form):
        raise ConflictError("cannot add a field to a closed form")
    field = add_field(form, field_spec, storage.fields.list_fields(form["id"]))
    storage.fields.create_field(field)
    logger.info("Added %s field %s to form %s", field["type"], field["id"], form["id"])
    return field


def update_field(storage: Storage, field_id: str, field_spec: dict[str, Any]) -> dict[str, Any]:
    validate_payload(FIELD_UPDATE_SCHEMA, field_spec)
    field = storage.fields.get_field(field_id)
    if not field:
        raise NotFoundError(f"field not found: {field_id}")
    form = get_form(storage, field["form_id"])
    if not lifecycle.is_editable(form):
        raise ConflictError("cannot update a field of a closed form")
    updated = replace_field(field, field_spec)
    try:
        result = storage.fields.update_field(field_id, updated)
    except KeyError:
        raise NotFoundError(f"field not found: {field_id}") from None
    logger.info("Updated field %s of form %s", field_id, form["id"])
    return result


def delete_field(storage: Storage, field_id: str) -> None:
    field = storage.fields.get_field(field_id)
    if not field:
        raise NotFoundError(f"field not found: {field_id}")
    storage.fields.delete_field(field_id)
    logger.info("Deleted field %s of form %s", field_id, field["form_id"])


# responses


def _collect_raw_answers(raw: Any) -> dict[str, Any]:
    if isinstance(raw, dict):
        return {str(key): value for key, value in raw.items()}
    collected: dict[str, Any] = {}
    for item in raw or []:
        field_id = str(item["field_id"])
        if field_id in collected:
            raise ConflictError(f"more than one answer for field {field_id}")
        collected[field_id] = item.get("value")
    return collected


def _normalize_respondent(raw: Any) -> dict[str, str] | None:
    if not isinstance(raw, dict):
        return None
    name = str(raw.get("name") or "").strip()
    email = str(raw.get("email") or "").strip()
    if not name and not email:
        return None
    return {"name": name, "email": email}


def list_responses(storage: Storage, form_id: str) -> list[dict[str, Any]]:
    get_form(storage, form_id)
    return storage.responses.list_responses(form_id)


def get_response(storage: Storage, response_id: str) -> dict[str, Any]:
    response = storage.responses.get_response(response_id)
    if not response:
        raise NotFoundError(f"response not found: {response_id}")
    return response


def describe_response(storage: Storage, response_id: str) -> dict[str, Any]:
    response = get_response(storage, response_id)
    fields = storage.fields.list_fields(response["form_id"])
    return {
        **sanitize_response_output(response),
        "display": render_answers(response, fields),
    }


def create_response(storage: Storage, payload: dict[str, Any]) -> dict[str, Any]:
    validate_payload(RESPONSE_PAYLOAD_SCHEMA, payload)
    form = get_form(storage, payload["form_id"])
    if not lifecycle.accepts_responses(form):
        raise ConflictError("this form is not accepting responses")
    fields = sort_fields(storage.fields.list_fields(form["id"]))
    if not fields:
        raise ValidationError("this form has no fields")

    answers = encode_answers(fields, _collect_raw_answers(payload.get("answers")))
    response = {
        "id": new_ulid(),
        "form_id": form["id"],
        "respondent": _normalize_respondent(payload.get("respondent")),
        "submitted_at": now_utc(),
        "answers": answers,
    }
    storage.responses.create_response(response)
    logger.info("Accepted response %s for form %s", response["id"], form["id"])
    return response


def delete_response(storage: Storage, response_id: str) -> None:
    get_response(storage, response_id)
    storage.responses.delete_response(response_id)


def export_csv(storage: Storage, form_id: str, tz: tzinfo | None = None) -> bytes:
    form = get_form(storage, form_id)
    fields = storage.fields.list_fields(form["id"])
    responses = storage.responses.list_responses(form["id"])
    return tabulate_csv(fields, responses, tz)
