"""Liveness and renderer status endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from deckrender.features.slide_export.deps import get_slide_export_service
from deckrender.features.slide_export.schemas import ServiceHealthResponse
from deckrender.features.slide_export.service import SlideExportService

router = APIRouter(tags=["Health"])


@router.get("/hello", response_class=PlainTextResponse)
def hello() -> str:
    return "Hello World!"


@router.get("/health", response_model=ServiceHealthResponse, summary="Inspect renderer state")
def service_health(
    service: SlideExportService = Depends(get_slide_export_service),
) -> ServiceHealthResponse:
    # Reports state only; never launches the browser.
    return ServiceHealthResponse(
        status="ok",
        browser_ready=service.browser_ready,
        active_renders=service.gate.active,
        max_concurrency=service.gate.limit,
    )
