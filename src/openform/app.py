from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from openform.config import Settings, ensure_dirs
from openform.errors import FormError, ValidationError
from openform.protocols import Storage
from openform.routes.api import router as api_router
from openform.routes.public import router as public_router
from openform.storage import init_storage

logger = logging.getLogger(__name__)


async def handle_form_error(request: Request, exc: FormError) -> JSONResponse:
    body: dict[str, object] = {"detail": exc.message}
    if isinstance(exc, ValidationError):
        body["errors"] = exc.errors
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(body, status_code=exc.status_code)


def create_app(settings: Settings | None = None, storage: Storage | None = None) -> FastAPI:
    settings = settings or Settings()
    if storage is None:
        ensure_dirs(settings)
        storage = init_storage(settings)

    app = FastAPI(
        title="openform",
        openapi_tags=[
            {"name": "api/forms", "description": "Forms and their lifecycle"},
            {"name": "api/fields", "description": "Form fields"},
            {"name": "api/responses", "description": "Responses and CSV export"},
            {"name": "public", "description": "Public form view"},
            {"name": "system", "description": "System"},
        ],
    )

    app.state.storage = storage
    app.state.settings = settings

    app.add_exception_handler(FormError, handle_form_error)

    app.include_router(api_router)
    app.include_router(public_router)

    return app
