from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from openform import service

router = APIRouter()


@router.get("/api/public/forms/{form_id}", tags=["public"])
async def public_form(request: Request, form_id: str) -> JSONResponse:
    return JSONResponse(service.public_view(request.app.state.storage, form_id))


@router.get("/healthz", tags=["system"])
async def healthz() -> dict[str, str]:
    return {"status": "ok"}
