from __future__ import annotations

import asyncio
import functools
import logging
from typing import Any, Optional, Protocol, Sequence

from fastapi.concurrency import run_in_threadpool

from deckrender.config import Settings

from .concurrency import ConcurrencyGate
from .exceptions import SlideExportError, SlideRenderError, SlideValidationError
from .export import DEFAULT_SLIDE_HEIGHT_IN, DEFAULT_SLIDE_WIDTH_IN, build_presentation
from .renderer import BrowserSession, RenderedSlide, SlideRenderer
from .text import normalize_text

logger = logging.getLogger(__name__)


class Renderer(Protocol):
    async def render_slide(self, html: str, css: str, width: int, height: int) -> bytes:
        ...


class SlideExportService:
    """Render a batch of slides through the concurrency gate and assemble the deck.

    The batch is all-or-nothing: every render runs to completion (so each
    browser context gets closed) and a single failure fails the request.
    """

    def __init__(
        self,
        renderer: Renderer,
        gate: ConcurrencyGate,
        *,
        session: Optional[BrowserSession] = None,
        slide_width_in: float = DEFAULT_SLIDE_WIDTH_IN,
        slide_height_in: float = DEFAULT_SLIDE_HEIGHT_IN,
        title: Optional[str] = None,
    ) -> None:
        self._renderer = renderer
        self._gate = gate
        self._session = session
        self._slide_width_in = slide_width_in
        self._slide_height_in = slide_height_in
        self._title = title

    @classmethod
    def from_settings(cls, settings: Settings) -> "SlideExportService":
        session = BrowserSession(
            headless=settings.browser_headless,
            args=settings.browser_args,
            auto_install=settings.auto_install_browser,
        )
        renderer = SlideRenderer(
            session,
            device_scale_factor=settings.device_scale_factor,
            navigation_timeout_ms=settings.navigation_timeout_ms,
        )
        return cls(
            renderer,
            ConcurrencyGate(settings.max_concurrency),
            session=session,
            slide_width_in=settings.slide_width_in,
            slide_height_in=settings.slide_height_in,
            title=settings.document_title,
        )

    @property
    def gate(self) -> ConcurrencyGate:
        return self._gate

    @property
    def browser_ready(self) -> bool:
        return self._session is not None and self._session.is_ready

    async def render(self, slide: Any, css: str) -> RenderedSlide:
        image = await self._renderer.render_slide(slide.html, css, slide.width, slide.height)
        return RenderedSlide(image=image, text=normalize_text(slide.text))

    async def render_all(self, slides: Sequence[Any], css: str) -> list[RenderedSlide]:
        outcomes = await asyncio.gather(
            *(self._gate.run(functools.partial(self.render, slide, css)) for slide in slides),
            return_exceptions=True,
        )

        failures = [
            (position, outcome)
            for position, outcome in enumerate(outcomes, start=1)
            if isinstance(outcome, BaseException)
        ]
        for position, exc in failures:
            logger.warning("Slide %d/%d failed to render: %s", position, len(slides), exc)

        if failures:
            position, first = failures[0]
            if isinstance(first, SlideExportError) or not isinstance(first, Exception):
                raise first
            raise SlideRenderError(f"Unable to render slide {position}: {first}") from first

        return list(outcomes)

    async def generate(self, slides: Optional[Sequence[Any]], css: Optional[str]) -> bytes:
        if not slides:
            raise SlideValidationError("No slides provided")

        logger.info("Rendering %d slides...", len(slides))
        rendered = await self.render_all(slides, css or "")

        document = await run_in_threadpool(
            build_presentation,
            rendered,
            slide_width_in=self._slide_width_in,
            slide_height_in=self._slide_height_in,
            title=self._title,
        )
        logger.info("Presentation generated: %d slide(s), %d bytes", len(rendered), len(document))
        return document

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
