from __future__ import annotations


class SlideExportError(Exception):
    """Base class for failures raised by the slide export pipeline."""


class SlideValidationError(SlideExportError):
    """Raised when the request does not describe any slide to export."""


class SlideRenderError(SlideExportError):
    """Raised when the browser is unable to render or capture a slide."""


class DocumentAssemblyError(SlideExportError):
    """Raised when the presentation file cannot be generated."""


__all__ = [
    "DocumentAssemblyError",
    "SlideExportError",
    "SlideRenderError",
    "SlideValidationError",
]
