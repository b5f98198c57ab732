from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from oorbforms.auth import get_auth_provider
from oorbforms.config import Settings
from oorbforms.routes.auth import router as auth_router
from oorbforms.routes.exports import router as exports_router
from oorbforms.routes.folders import router as folders_router
from oorbforms.routes.forms import router as forms_router
from oorbforms.routes.responses import router as responses_router
from oorbforms.storage import Storage, init_storage

logger = logging.getLogger(__name__)

BODY_TOO_LARGE = "Request body is too large"


class BodySizeLimitMiddleware:
    """Answers 413 once a request body grows past `max_bytes`.

    Bodies sent without a Content-Length header are counted as they are read.
    """

    def __init__(self, app: ASGIApp, max_bytes: int) -> None:
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        length = Headers(scope=scope).get("content-length")
        if length and length.isdigit() and int(length) > self.max_bytes:
            response = JSONResponse({"detail": BODY_TOO_LARGE}, status_code=413)
            await response(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    raise HTTPException(status_code=413, detail=BODY_TOO_LARGE)
            return message

        await self.app(scope, limited_receive, send)


async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse({"detail": "Internal server error"}, status_code=500)


def create_app(settings: Settings | None = None, storage: Storage | None = None) -> FastAPI:
    settings = settings or Settings()
    storage = storage or init_storage(settings)
    auth = get_auth_provider(settings)

    app = FastAPI(
        title="OORB Forms API",
        openapi_tags=[
            {"name": "api/auth", "description": "Registration and login"},
            {"name": "api/forms", "description": "Form definitions"},
            {"name": "api/responses", "description": "Form submissions"},
            {"name": "api/exports", "description": "Response export"},
            {"name": "api/folders", "description": "Folders"},
            {"name": "system", "description": "System"},
        ],
    )

    app.state.storage = storage
    app.state.settings = settings
    app.state.auth_provider = auth

    app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.max_body_bytes)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["Content-Type", "Authorization"],
        expose_headers=["X-Next-Cursor", "X-Total-Count", "Content-Disposition"],
    )
    app.add_exception_handler(Exception, _unhandled_error)

    app.include_router(auth_router)
    app.include_router(forms_router)
    app.include_router(responses_router)
    app.include_router(exports_router)
    app.include_router(folders_router)

    @app.get("/api/health", tags=["system"])
    async def health() -> dict[str, Any]:
        return {"status": "OK", "message": "OORB Forms API is running"}

    return app
