from __future__ import annotations

import logging

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from packages.shared.schemas.common import ErrorResponse

from apps.api.deps import setup_app
from apps.api.routers import chat, feedback, health

logger = logging.getLogger(__name__)


def validation_message(exc: RequestValidationError) -> str:
    """Primer error de validación en texto legible (el de nuestros validators tal cual)."""
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    err = errors[0]
    ctx_error = (err.get("ctx") or {}).get("error")
    if ctx_error is not None:
        return str(ctx_error)
    field = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
    msg = str(err.get("msg", "Invalid request"))
    return f"{field}: {msg}" if field else msg


def create_app() -> FastAPI:
    app = FastAPI(title="Onomatopoeia Arena API", version="0.1.0")

    setup_app(app)

    # Preflight "pelado" (sin Origin) en cualquier ruta: 200 sin cuerpo.
    # Los preflight CORS reales los resuelve CORSMiddleware (más externo).
    @app.middleware("http")
    async def _bare_options(request: Request, call_next):
        if request.method == "OPTIONS":
            return Response(status_code=200)
        return await call_next(request)

    # CORS abierto: cualquier origen, GET/POST con Content-Type.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.exception_handler(RequestValidationError)
    async def _validation_exception_handler(request: Request, exc: RequestValidationError):
        # 400 (no 422): errores de input del cliente.
        details = [
            {"loc": [str(p) for p in e.get("loc", ())], "msg": str(e.get("msg")), "type": str(e.get("type"))}
            for e in exc.errors()
        ]
        body = ErrorResponse(error=validation_message(exc), details={"errors": details})
        return JSONResponse(status_code=400, content=body.model_dump(mode="json"))

    @app.exception_handler(StarletteHTTPException)
    async def _http_exception_handler(request: Request, exc: StarletteHTTPException):
        body = ErrorResponse(error=str(exc.detail))
        return JSONResponse(
            status_code=exc.status_code,
            content=body.model_dump(mode="json"),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal Server Error"})

    app.include_router(chat.router)
    app.include_router(feedback.router)
    app.include_router(health.router)

    return app
