from __future__ import annotations

import re
from datetime import datetime, timezone, tzinfo
from typing import Any

import orjson
import ulid

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9]")


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_iso(dt: datetime) -> str:
    return ensure_aware(dt).isoformat()


def parse_dt(value: Any) -> datetime:
    if isinstance(value, datetime):
        return ensure_aware(value)
    if isinstance(value, str):
        try:
            return ensure_aware(datetime.fromisoformat(value))
        except ValueError:
            return now_utc()
    return now_utc()


def format_dt(value: Any, tz: tzinfo | None = None) -> str:
    """Render a timestamp for people: local time unless ``tz`` is given."""
    if isinstance(value, datetime):
        return ensure_aware(value).astimezone(tz).strftime("%Y-%m-%d %H:%M:%S")
    return str(value or "")


def dumps_json(value: Any) -> str:
    return orjson.dumps(value).decode("utf-8")


def loads_json(value: str | None) -> Any:
    if not value:
        return None
    return orjson.loads(value)


def new_ulid() -> str:
    value = ulid.new()
    return getattr(value, "str", str(value))


def safe_filename(text: str, fallback: str = "responses") -> str:
    return _UNSAFE_FILENAME_CHARS.sub("_", text or fallback)
