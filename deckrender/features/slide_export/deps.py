from __future__ import annotations

import logging
import threading
from typing import Optional

from deckrender.config import get_settings

from .service import SlideExportService

logger = logging.getLogger(__name__)

_service: Optional[SlideExportService] = None
_service_lock = threading.Lock()


def get_slide_export_service() -> SlideExportService:
    """Return the process-wide export service, creating it on first use.

    FastAPI resolves sync dependencies on worker threads, so creation is
    serialised to keep one browser session and one concurrency gate.
    """

    global _service
    if _service is not None:
        return _service
    with _service_lock:
        if _service is None:
            _service = SlideExportService.from_settings(get_settings())
        return _service


async def shutdown_slide_export_service() -> None:
    global _service
    with _service_lock:
        service, _service = _service, None
    if service is not None:
        logger.info("Shutting down slide export service")
        await service.close()
