"""Answer values: encoding raw input on submission, decoding for display.

Encoding is strict: a required field without input, or a choice that is not
one of the field's options, raises ``ValidationError``. Decoding is lenient
and always produces a string, because stored answers may predate the current
schema.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable

import orjson

from openform.errors import ValidationError
from openform.field_types import get_field_type, normalize_type
from openform.schema import field_index, localized, sort_fields

logger = logging.getLogger(__name__)

PLACEHOLDER = "-"
UNKNOWN_FIELD_LABEL = "Unknown field"

Encoder = Callable[[dict[str, Any], Any], "dict[str, Any] | None"]

# Type name -> encoder. Types registered in ``openform.field_types`` without an
# entry here are encoded by the shape of their registry entry.
ENCODERS: dict[str, Encoder] = {}


def register_encoder(*type_names: str) -> Callable[[Encoder], Encoder]:
    def decorator(func: Encoder) -> Encoder:
        for name in type_names:
            ENCODERS[normalize_type(name)] = func
        return func

    return decorator


def _label(field: dict[str, Any]) -> str:
    return localized(field.get("label")) or str(field.get("id", ""))


def _missing(field: dict[str, Any]) -> None:
    if field.get("required"):
        raise ValidationError(f"{_label(field)} is required")
    return None


def _check_option(field: dict[str, Any], key: str) -> None:
    options = field.get("options") or {}
    if key not in options:
        raise ValidationError(f"{_label(field)}: '{key}' is not one of the options")


def _unwrap(raw: Any) -> Any:
    # Clients may send the canonical payload instead of the bare input.
    if isinstance(raw, dict):
        if "text" in raw:
            return raw["text"]
        if "selected" in raw:
            return raw["selected"]
    return raw


@register_encoder("text", "textarea", "number", "email", "date")
def encode_text(field: dict[str, Any], raw: Any) -> dict[str, Any] | None:
    if isinstance(raw, (list, tuple, set, dict)):
        raise ValidationError(f"{_label(field)}: expected a single value")
    text = "" if raw is None else str(raw)
    if not text.strip():
        return _missing(field)
    return {"text": text}


@register_encoder("select", "radio")
def encode_single_choice(field: dict[str, Any], raw: Any) -> dict[str, Any] | None:
    if isinstance(raw, (list, tuple)):
        if len(raw) > 1:
            raise ValidationError(f"{_label(field)}: only one option can be chosen")
        raw = raw[0] if raw else None
    key = "" if raw is None else str(raw).strip()
    if not key:
        return _missing(field)
    _check_option(field, key)
    return {"selected": key}


@register_encoder("checkbox")
def encode_multi_choice(field: dict[str, Any], raw: Any) -> dict[str, Any] | None:
    if raw is None:
        items: list[Any] = []
    elif isinstance(raw, str):
        items = [raw]
    elif isinstance(raw, (list, tuple, set)):
        items = list(raw)
    else:
        raise ValidationError(f"{_label(field)}: expected a list of options")

    keys: list[str] = []
    for item in items:
        key = "" if item is None else str(item).strip()
        if key and key not in keys:
            keys.append(key)
    if not keys:
        return _missing(field)
    for key in keys:
        _check_option(field, key)
    return {"selected": keys}


def encoder_for(field_type: Any) -> Encoder | None:
    encoder = ENCODERS.get(normalize_type(field_type))
    if encoder is not None:
        return encoder
    info = get_field_type(field_type)
    if info is None:
        return None
    if info["multiple"]:
        return encode_multi_choice
    if info["choice"] or info["value_key"] == "selected":
        return encode_single_choice
    return encode_text


def encode_answer(field: dict[str, Any], raw: Any) -> dict[str, Any] | None:
    """Canonical answer for ``field``, or ``None`` when there is nothing to store."""
    encoder = encoder_for(field.get("type"))
    if encoder is None:
        logger.warning(
            "Field %s has unsupported type %r; answer skipped",
            field.get("id"),
            field.get("type"),
        )
        return None
    value = encoder(field, _unwrap(raw))
    if value is None:
        return None
    return {"field_id": field["id"], "field_type": field.get("type", ""), "value": value}


def encode_answers(
    fields: Iterable[dict[str, Any]], raw_answers: dict[str, Any]
) -> list[dict[str, Any]]:
    """Encode a whole submission, collecting every problem before raising."""
    fields = sort_fields(fields)
    known = field_index(fields)
    errors = [
        f"unknown field: {field_id}" for field_id in raw_answers if str(field_id) not in known
    ]
    answers: list[dict[str, Any]] = []
    for field in fields:
        try:
            answer = encode_answer(field, raw_answers.get(field["id"]))
        except ValidationError as exc:
            errors.extend(exc.errors)
            continue
        if answer is not None:
            answers.append(answer)
    if errors:
        raise ValidationError("invalid response", errors)
    return answers


def _option_label(key: Any, options: Any) -> str:
    text = str(key)
    if isinstance(options, dict) and text in options:
        return str(options[text])
    return text


def _dump(value: Any) -> str:
    try:
        return orjson.dumps(value, option=orjson.OPT_SORT_KEYS).decode("utf-8")
    except TypeError:
        return repr(value)


def decode_answer(answer: Any, field: dict[str, Any] | None = None) -> str:
    """Human readable text of an answer. Never raises.

    Selected keys are shown with the option label of ``field`` when the field
    still has that key, otherwise the stored key itself is shown.
    """
    if answer is None:
        return PLACEHOLDER
    value = answer.get("value") if isinstance(answer, dict) else answer
    if isinstance(value, dict):
        if value.get("text") is not None:
            return str(value["text"])
        selected = value.get("selected")
        if selected is not None:
            options = field.get("options") if isinstance(field, dict) else None
            if isinstance(selected, (list, tuple)):
                return "; ".join(_option_label(item, options) for item in selected)
            return _option_label(selected, options)
    return _dump(value)


def find_answer(response: dict[str, Any], field_id: Any) -> dict[str, Any] | None:
    answers = response.get("answers")
    if not isinstance(answers, list):
        return None
    for answer in answers:
        if isinstance(answer, dict) and str(answer.get("field_id")) == str(field_id):
            return answer
    return None


def render_answers(
    response: dict[str, Any], fields: Iterable[dict[str, Any]]
) -> list[dict[str, str]]:
    index = field_index(fields)
    rows: list[dict[str, str]] = []
    answers = response.get("answers")
    if not isinstance(answers, list):
        return rows
    for answer in answers:
        if not isinstance(answer, dict):
            continue
        field_id = str(answer.get("field_id", ""))
        field = index.get(field_id)
        rows.append(
            {
                "field_id": field_id,
                "label": localized(field.get("label")) if field else UNKNOWN_FIELD_LABEL,
                "text": decode_answer(answer, field),
            }
        )
    return rows
