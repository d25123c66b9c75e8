from .exceptions import (
    DocumentAssemblyError,
    SlideExportError,
    SlideRenderError,
    SlideValidationError,
)
from .service import SlideExportService

__all__ = [
    "DocumentAssemblyError",
    "SlideExportError",
    "SlideExportService",
    "SlideRenderError",
    "SlideValidationError",
]
