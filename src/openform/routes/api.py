from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from openform import service
from openform.errors import ValidationError
from openform.export import export_filename
from openform.schema import sanitize_field_output

router = APIRouter()


async def read_json(request: Request) -> Any:
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError("request body must be JSON") from None


async def read_object(request: Request) -> dict[str, Any]:
    payload = await read_json(request)
    if not isinstance(payload, dict):
        raise ValidationError("request body must be a JSON object")
    return payload


@router.get("/api/forms", tags=["api/forms"])
async def api_list_forms(request: Request) -> JSONResponse:
    storage = request.app.state.storage
    forms = service.list_forms(storage)
    return JSONResponse([service.sanitize_form_output(form) for form in forms])


@router.post("/api/forms", tags=["api/forms"])
async def api_create_form(request: Request) -> JSONResponse:
    storage = request.app.state.storage
    payload = await read_object(request)
    form = service.create_form(storage, payload.get("title"), payload.get("description"))
    return JSONResponse(service.sanitize_form_output(form), status_code=201)


@router.get("/api/forms/{form_id}", tags=["api/forms"])
async def api_get_form(request: Request, form_id: str) -> JSONResponse:
    form = service.get_form(request.app.state.storage, form_id)
    return JSONResponse(service.sanitize_form_output(form))


@router.put("/api/forms/{form_id}", tags=["api/forms"])
async def api_update_form(request: Request, form_id: str) -> JSONResponse:
    storage = request.app.state.storage
    payload = await read_object(request)
    form = service.update_form(storage, form_id, payload)
    return JSONResponse(service.sanitize_form_output(form))


@router.delete("/api/forms/{form_id}", tags=["api/forms"])
async def api_delete_form(request: Request, form_id: str) -> Response:
    service.delete_form(request.app.state.storage, form_id)
    return Response(status_code=204)


@router.post("/api/forms/{form_id}/publish", tags=["api/forms"])
async def api_publish_form(request: Request, form_id: str) -> JSONResponse:
    form = service.publish_form(request.app.state.storage, form_id)
    return JSONResponse(service.sanitize_form_output(form))


@router.post("/api/forms/{form_id}/close", tags=["api/forms"])
async def api_close_form(request: Request, form_id: str) -> JSONResponse:
    form = service.close_form(request.app.state.storage, form_id)
    return JSONResponse(service.sanitize_form_output(form))


@router.get("/api/forms/{form_id}/fields", tags=["api/fields"])
async def api_list_fields(request: Request, form_id: str) -> JSONResponse:
    fields = service.list_fields(request.app.state.storage, form_id)
    return JSONResponse([sanitize_field_output(field) for field in fields])


@router.post("/api/fields", tags=["api/fields"])
async def api_create_field(request: Request) -> JSONResponse:
    storage = request.app.state.storage
    payload = await read_object(request)
    field = service.create_field(storage, payload)
    return JSONResponse(sanitize_field_output(field), status_code=201)


@router.put("/api/fields/{field_id}", tags=["api/fields"])
async def api_update_field(request: Request, field_id: str) -> JSONResponse:
    storage = request.app.state.storage
    payload = await read_object(request)
    field = service.update_field(storage, field_id, payload)
    return JSONResponse(sanitize_field_output(field))


@router.delete("/api/fields/{field_id}", tags=["api/fields"])
async def api_delete_field(request: Request, field_id: str) -> Response:
    service.delete_field(request.app.state.storage, field_id)
    return Response(status_code=204)


@router.get("/api/forms/{form_id}/responses", tags=["api/responses"])
async def api_list_responses(request: Request, form_id: str) -> JSONResponse:
    responses = service.list_responses(request.app.state.storage, form_id)
    return JSONResponse([service.sanitize_response_output(item) for item in responses])


@router.post("/api/responses", tags=["api/responses"])
async def api_create_response(request: Request) -> JSONResponse:
    storage = request.app.state.storage
    payload = await read_object(request)
    response = service.create_response(storage, payload)
    return JSONResponse(service.sanitize_response_output(response), status_code=201)


@router.get("/api/responses/{response_id}", tags=["api/responses"])
async def api_get_response(request: Request, response_id: str) -> JSONResponse:
    return JSONResponse(service.describe_response(request.app.state.storage, response_id))


@router.delete("/api/responses/{response_id}", tags=["api/responses"])
async def api_delete_response(request: Request, response_id: str) -> Response:
    service.delete_response(request.app.state.storage, response_id)
    return Response(status_code=204)


@router.get("/api/forms/{form_id}/export", tags=["api/responses"])
async def api_export_responses(request: Request, form_id: str) -> Response:
    storage = request.app.state.storage
    settings = request.app.state.settings
    form = service.get_form(storage, form_id)
    content = service.export_csv(storage, form_id, settings.export_tz())
    filename = export_filename(form)
    return Response(
        content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
