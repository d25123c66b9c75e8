from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse, Response

from deckrender.config import Settings, get_settings
from deckrender.core.observability import RequestTimer

from .deps import get_slide_export_service
from .exceptions import SlideValidationError
from .export import PRESENTATION_MEDIA_TYPE
from .schemas import ErrorResponse, GeneratePresentationRequest
from .service import SlideExportService

logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "Failed to generate PPT"

router = APIRouter(
    tags=["Slide Export"],
    dependencies=[Depends(RequestTimer("deckrender.slide_export"))],
)


@router.post(
    "/generate-ppt",
    response_class=Response,
    responses={
        status.HTTP_200_OK: {"content": {PRESENTATION_MEDIA_TYPE: {}}},
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)
async def generate_presentation(
    payload: GeneratePresentationRequest,
    service: SlideExportService = Depends(get_slide_export_service),
    settings: Settings = Depends(get_settings),
) -> Response:
    """Render every slide with Chromium and return them as a PPTX download.

    Slides keep their request order. If any slide fails to render, or the
    document cannot be assembled, no file is returned.
    """
    try:
        document = await service.generate(payload.slides, payload.css)
    except SlideValidationError as exc:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": str(exc)})
    except Exception as exc:
        logger.exception("PPT generation failed: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": GENERIC_FAILURE_MESSAGE},
        )

    headers = {"Content-Disposition": f'attachment; filename="{settings.output_filename}"'}
    return Response(content=document, media_type=PRESENTATION_MEDIA_TYPE, headers=headers)
