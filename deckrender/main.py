import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from deckrender.api.router import api_router
from deckrender.config import Settings, get_settings
from deckrender.core.observability import configure_logging
from deckrender.features.slide_export.deps import shutdown_slide_export_service

logger = logging.getLogger(__name__)


class RequestBodyTooLarge(HTTPException):
    def __init__(self) -> None:
        super().__init__(status_code=413, detail="Request body too large")


class RequestBodyLimitMiddleware:
    """Reject request bodies larger than ``max_body_bytes``.

    A declared ``Content-Length`` is checked up front. Bodies sent without one
    (chunked uploads) are counted as they are read.
    """

    def __init__(self, app: ASGIApp, max_body_bytes: int) -> None:
        self.app = app
        self.max_body_bytes = max_body_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        content_length = Headers(scope=scope).get("content-length")
        if content_length is not None:
            try:
                length = int(content_length)
            except ValueError:
                response = JSONResponse(status_code=400, content={"error": "Invalid Content-Length header"})
                await response(scope, receive, send)
                return
            if length > self.max_body_bytes:
                logger.warning(
                    "Rejected %s %s: body of %d bytes exceeds %d",
                    scope["method"],
                    scope["path"],
                    length,
                    self.max_body_bytes,
                )
                response = JSONResponse(status_code=413, content={"error": "Request body too large"})
                await response(scope, receive, send)
                return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_bytes:
                    logger.warning(
                        "Rejected %s %s: streamed body exceeds %d bytes",
                        scope["method"],
                        scope["path"],
                        self.max_body_bytes,
                    )
                    raise RequestBodyTooLarge()
            return message

        await self.app(scope, limited_receive, send)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # The browser lives as long as the process; release it only on shutdown.
    await shutdown_slide_export_service()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="deckrender", lifespan=lifespan)
    app.add_middleware(RequestBodyLimitMiddleware, max_body_bytes=settings.max_body_bytes)

    @app.exception_handler(RequestBodyTooLarge)
    async def body_too_large_handler(request: Request, exc: RequestBodyTooLarge):
        return JSONResponse(status_code=413, content={"error": "Request body too large"})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled exception on %s %s: %s",
            request.method,
            request.url.path,
            exc,
            exc_info=exc,
        )
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    app.include_router(api_router)
    return app


app = create_app()
