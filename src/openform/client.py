"""HTTP client for the forms API and the public form session.

``FormsClient`` turns error responses back into the exceptions of
``openform.errors``. ``PublicFormSession`` is what a public page does while a
form is not open yet: it refetches the form every ``interval`` seconds until
the form is active or a response has been submitted.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from openform.config import Settings
from openform.errors import (
    ConflictError,
    FormError,
    NotFoundError,
    TransientError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def _error_for(response: httpx.Response) -> FormError:
    detail = response.text
    errors: list[str] | None = None
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        detail = str(body.get("detail") or detail)
        if isinstance(body.get("errors"), list):
            errors = [str(item) for item in body["errors"]]

    status = response.status_code
    if status == 404:
        return NotFoundError(detail)
    if status == 409:
        return ConflictError(detail)
    if status >= 500:
        return TransientError(detail or f"server error {status}")
    return ValidationError(detail, errors)


class FormsClient:
    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._client = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)

    async def __aenter__(self) -> FormsClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _send(self, method: str, path: str, payload: Any = None) -> httpx.Response:
        try:
            response = await self._client.request(method, path, json=payload)
        except httpx.TransportError as exc:
            raise TransientError(f"{method} {path} failed: {exc}") from exc
        if response.status_code >= 400:
            raise _error_for(response)
        return response

    async def _json(self, method: str, path: str, payload: Any = None) -> Any:
        response = await self._send(method, path, payload)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def list_forms(self) -> list[dict[str, Any]]:
        return await self._json("GET", "/api/forms")

    async def get_form(self, form_id: str) -> dict[str, Any]:
        return await self._json("GET", f"/api/forms/{form_id}")

    async def create_form(self, title: str, description: str = "") -> dict[str, Any]:
        return await self._json("POST", "/api/forms", {"title": title, "description": description})

    async def update_form(self, form_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        return await self._json("PUT", f"/api/forms/{form_id}", updates)

    async def publish_form(self, form_id: str) -> dict[str, Any]:
        return await self._json("POST", f"/api/forms/{form_id}/publish")

    async def close_form(self, form_id: str) -> dict[str, Any]:
        return await self._json("POST", f"/api/forms/{form_id}/close")

    async def delete_form(self, form_id: str) -> None:
        await self._json("DELETE", f"/api/forms/{form_id}")

    async def list_fields(self, form_id: str) -> list[dict[str, Any]]:
        return await self._json("GET", f"/api/forms/{form_id}/fields")

    async def create_field(self, field_spec: dict[str, Any]) -> dict[str, Any]:
        return await self._json("POST", "/api/fields", field_spec)

    async def update_field(self, field_id: str, field_spec: dict[str, Any]) -> dict[str, Any]:
        return await self._json("PUT", f"/api/fields/{field_id}", field_spec)

    async def delete_field(self, field_id: str) -> None:
        await self._json("DELETE", f"/api/fields/{field_id}")

    async def list_responses(self, form_id: str) -> list[dict[str, Any]]:
        return await self._json("GET", f"/api/forms/{form_id}/responses")

    async def create_response(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._json("POST", "/api/responses", payload)

    async def get_response(self, response_id: str) -> dict[str, Any]:
        return await self._json("GET", f"/api/responses/{response_id}")

    async def delete_response(self, response_id: str) -> None:
        await self._json("DELETE", f"/api/responses/{response_id}")

    async def get_public_form(self, form_id: str) -> dict[str, Any]:
        return await self._json("GET", f"/api/public/forms/{form_id}")

    async def export_csv(self, form_id: str) -> bytes:
        response = await self._send("GET", f"/api/forms/{form_id}/export")
        return response.content


class PublicFormSession:
    def __init__(
        self,
        client: FormsClient,
        form_id: str,
        interval: float | None = None,
    ) -> None:
        self.client = client
        self.form_id = form_id
        self.interval = interval if interval is not None else Settings().poll_interval
        self.view: dict[str, Any] | None = None
        self.submitted = False
        self._submitting = False
        self._stopped = False
        self._task: asyncio.Task[None] | None = None

    @property
    def accepting(self) -> bool:
        return bool(self.view and self.view.get("accepting_responses"))

    @property
    def should_poll(self) -> bool:
        return not self.submitted and not self.accepting

    @property
    def polling(self) -> bool:
        return self._task is not None and not self._task.done()

    async def refresh(self) -> dict[str, Any]:
        self.view = await self.client.get_public_form(self.form_id)
        return self.view

    async def _poll(self) -> None:
        while self.should_poll:
            await asyncio.sleep(self.interval)
            if self._submitting:
                continue
            try:
                await self.refresh()
            except TransientError as exc:
                logger.warning("Polling form %s failed: %s", self.form_id, exc)

    def start_polling(self) -> None:
        if not self.polling and self.should_poll:
            self._stopped = False
            self._task = asyncio.create_task(self._poll())

    def stop_polling(self) -> None:
        if self.polling:
            self._stopped = True
            self._task.cancel()
        self._task = None

    async def wait_until_open(self) -> dict[str, Any]:
        """Fetch the form and keep polling until it accepts responses."""
        await self.refresh()
        self.start_polling()
        task = self._task
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                # Only a stop_polling() ends the wait quietly; our own
                # cancellation propagates.
                if not self._stopped:
                    raise
        return self.view or {}

    async def submit(
        self,
        answers: dict[str, Any],
        respondent: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        if self.submitted:
            raise ConflictError("a response was already submitted from this session")
        self._submitting = True
        try:
            response = await self.client.create_response(
                {"form_id": self.form_id, "respondent": respondent, "answers": answers}
            )
        except ConflictError:
            # The form left the active state; the cached view is stale.
            self._submitting = False
            if self.view is not None:
                self.view = {**self.view, "accepting_responses": False}
            try:
                await self.refresh()
            except TransientError as exc:
                logger.warning("Refreshing form %s failed: %s", self.form_id, exc)
            self.start_polling()
            raise
        except FormError:
            self._submitting = False
            self.start_polling()
            raise
        self._submitting = False
        self.submitted = True
        self.stop_polling()
        return response
