from __future__ import annotations

from typing import Any

# Name -> value shape. ``value_key`` is the key of the canonical answer payload,
# ``choice`` marks types whose answers must be keys of the field's options and
# ``multiple`` marks types whose payload is a list of keys.
FIELD_TYPES: dict[str, dict[str, Any]] = {}


def register_field_type(
    name: str,
    value_key: str = "text",
    choice: bool = False,
    multiple: bool = False,
) -> None:
    FIELD_TYPES[normalize_type(name)] = {
        "value_key": value_key,
        "choice": choice,
        "multiple": multiple,
    }


def normalize_type(name: Any) -> str:
    return str(name or "").strip().lower()


def get_field_type(name: Any) -> dict[str, Any] | None:
    return FIELD_TYPES.get(normalize_type(name))


def is_supported(name: Any) -> bool:
    return normalize_type(name) in FIELD_TYPES


def is_choice_type(name: Any) -> bool:
    info = get_field_type(name)
    return bool(info and info["choice"])


for _name in ("text", "textarea", "number", "email", "date"):
    register_field_type(_name)
register_field_type("select", value_key="selected", choice=True)
register_field_type("radio", value_key="selected", choice=True)
register_field_type("checkbox", value_key="selected", choice=True, multiple=True)
