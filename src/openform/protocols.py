from __future__ import annotations

from typing import Any, Protocol


class FormRepository(Protocol):
    def list_forms(self) -> list[dict[str, Any]]: ...

    def get_form(self, form_id: str) -> dict[str, Any] | None: ...

    def create_form(self, form: dict[str, Any]) -> None: ...

    def update_form(self, form_id: str, updates: dict[str, Any]) -> dict[str, Any]: ...

    def delete_form(self, form_id: str) -> None: ...


class FieldRepository(Protocol):
    def list_fields(self, form_id: str) -> list[dict[str, Any]]: ...

    def get_field(self, field_id: str) -> dict[str, Any] | None: ...

    def create_field(self, field: dict[str, Any]) -> None: ...

    def update_field(self, field_id: str, field: dict[str, Any]) -> dict[str, Any]: ...

    def delete_field(self, field_id: str) -> None: ...

    def delete_fields_of_form(self, form_id: str) -> None: ...


class ResponseRepository(Protocol):
    def list_responses(self, form_id: str) -> list[dict[str, Any]]: ...

    def get_response(self, response_id: str) -> dict[str, Any] | None: ...

    def create_response(self, response: dict[str, Any]) -> None: ...

    def delete_response(self, response_id: str) -> None: ...

    def delete_responses_of_form(self, form_id: str) -> None: ...


class Storage(Protocol):
    forms: FormRepository
    fields: FieldRepository
    responses: ResponseRepository
