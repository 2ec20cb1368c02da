from __future__ import annotations

from datetime import tzinfo
from typing import Any, Iterable

from openform.answers import decode_answer, find_answer
from openform.schema import localized, sort_fields
from openform.utils import format_dt, safe_filename

BOM = "\ufeff"
FIXED_HEADERS = ["Respondent Name", "Respondent Email", "Submitted At"]
ANONYMOUS = "Anonymous"
DEFAULT_QUESTION_LABEL = "Question"

_NEEDS_QUOTING = (",", '"', "\n")


def escape_cell(value: Any) -> str:
    text = "" if value is None else str(value)
    if any(char in text for char in _NEEDS_QUOTING):
        return '"' + text.replace('"', '""') + '"'
    return text


def _respondent(response: dict[str, Any]) -> tuple[str, str]:
    respondent = response.get("respondent")
    if not isinstance(respondent, dict):
        return ANONYMOUS, ""
    name = str(respondent.get("name") or "").strip()
    email = str(respondent.get("email") or "").strip()
    return name or ANONYMOUS, email


def build_table(
    fields: Iterable[dict[str, Any]],
    responses: Iterable[dict[str, Any]],
    tz: tzinfo | None = None,
) -> list[list[str]]:
    """Header plus one row per response; every row has ``len(fields) + 3`` cells."""
    ordered = sort_fields(fields)
    table = [
        FIXED_HEADERS
        + [localized(field.get("label")) or DEFAULT_QUESTION_LABEL for field in ordered]
    ]
    for response in responses:
        name, email = _respondent(response)
        row = [name, email, format_dt(response.get("submitted_at"), tz)]
        for field in ordered:
            row.append(decode_answer(find_answer(response, field["id"]), field))
        table.append(row)
    return table


def serialize_csv(table: Iterable[Iterable[Any]]) -> str:
    lines = [",".join(escape_cell(cell) for cell in row) for row in table]
    return BOM + "\n".join(lines)


def export_csv(
    fields: Iterable[dict[str, Any]],
    responses: Iterable[dict[str, Any]],
    tz: tzinfo | None = None,
) -> bytes:
    return serialize_csv(build_table(fields, responses, tz)).encode("utf-8")


def export_filename(form: dict[str, Any]) -> str:
    return f"{safe_filename(str(form.get('title') or ''))}_responses.csv"
