from __future__ import annotations

from typing import Any, Iterable

from openform.errors import ValidationError
from openform.field_types import is_choice_type, is_supported, normalize_type
from openform.utils import new_ulid, now_utc, to_iso

DEFAULT_LOCALE = "en"


def localized(mapping: Any, locale: str = DEFAULT_LOCALE) -> str:
    """Text for ``locale``, falling back to English, then to ``""``."""
    if isinstance(mapping, str):
        return mapping
    if not isinstance(mapping, dict):
        return ""
    return str(mapping.get(locale) or mapping.get(DEFAULT_LOCALE) or "")


def normalize_localized(value: Any) -> dict[str, str]:
    if value is None:
        return {}
    if isinstance(value, dict):
        return {
            str(locale): str(text).strip()
            for locale, text in value.items()
            if text is not None and str(text).strip()
        }
    text = str(value).strip()
    return {DEFAULT_LOCALE: text} if text else {}


def parse_options(text: str) -> dict[str, str]:
    """Parse comma-separated option labels into an option mapping.

    Each entry is trimmed and empty entries are dropped. The key is the
    trimmed label itself, so two identical labels end up as one option.
    """
    options: dict[str, str] = {}
    for entry in (text or "").split(","):
        trimmed = entry.strip()
        if trimmed:
            options[trimmed] = trimmed
    return options


def normalize_options(raw: Any) -> dict[str, str]:
    if raw is None:
        return {}
    if isinstance(raw, str):
        return parse_options(raw)
    if isinstance(raw, dict):
        options: dict[str, str] = {}
        for key, label in raw.items():
            key_text = str(key).strip()
            if not key_text:
                continue
            label_text = str(label).strip() if label is not None else ""
            options[key_text] = label_text or key_text
        return options
    if isinstance(raw, (list, tuple)):
        return parse_options(",".join(str(item) for item in raw))
    raise ValidationError("options must be a string, a list or a mapping")


def _field_contents(field_spec: dict[str, Any]) -> dict[str, Any]:
    errors: list[str] = []
    label = normalize_localized(field_spec.get("label"))
    if not localized(label):
        errors.append("label is required")

    # Unknown types are kept as given; the encoder treats them as unsupported.
    raw_type = str(field_spec.get("type") or "").strip()
    field_type = normalize_type(raw_type) if is_supported(raw_type) else raw_type
    if not field_type:
        errors.append("type is required")

    options: dict[str, str] = {}
    if is_choice_type(field_type):
        try:
            options = normalize_options(field_spec.get("options"))
        except ValidationError as exc:
            errors.extend(exc.errors)
        else:
            if not options:
                errors.append(f"{field_type} fields need at least one option")

    if errors:
        raise ValidationError("invalid field", errors)

    return {
        "label": label,
        "type": field_type,
        "required": bool(field_spec.get("required")),
        "options": options,
        "placeholder": normalize_localized(field_spec.get("placeholder")),
        "help_text": normalize_localized(field_spec.get("help_text")),
    }


def add_field(
    form: dict[str, Any],
    field_spec: dict[str, Any],
    existing_fields: Iterable[dict[str, Any]],
) -> dict[str, Any]:
    """Build the next field of ``form``, appended after ``existing_fields``."""
    contents = _field_contents(field_spec)
    return {
        "id": new_ulid(),
        "form_id": form["id"],
        **contents,
        "order": len(list(existing_fields)) + 1,
        "created_at": now_utc(),
    }


def replace_field(field: dict[str, Any], field_spec: dict[str, Any]) -> dict[str, Any]:
    """Replace the contents of ``field``; id, form and creation time stay.

    The position is kept unless ``field_spec`` gives a new ``order``.
    """
    contents = _field_contents(field_spec)
    order = field_spec.get("order")
    return {
        **field,
        **contents,
        "order": order if isinstance(order, int) and order > 0 else field.get("order"),
    }


def _order_of(field: dict[str, Any]) -> int:
    try:
        return int(field.get("order") or 0)
    except (TypeError, ValueError):
        return 0


def sort_fields(fields: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Fields in display order: ascending ``order``, ties broken by ``id``."""
    return sorted(fields, key=lambda field: (_order_of(field), str(field.get("id", ""))))


def field_index(fields: Iterable[dict[str, Any]]) -> dict[str, dict[str, Any]]:
    return {str(field["id"]): field for field in fields}


def sanitize_field_output(field: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": field["id"],
        "form_id": field["form_id"],
        "label": field.get("label") or {},
        "type": field.get("type", ""),
        "order": _order_of(field),
        "required": bool(field.get("required")),
        "options": field.get("options") or {},
        "placeholder": field.get("placeholder") or {},
        "help_text": field.get("help_text") or {},
        "created_at": to_iso(field.get("created_at") or now_utc()),
    }
