from __future__ import annotations

import asyncio
import contextlib
import logging
import sys
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Optional

from playwright.async_api import Browser, Playwright, async_playwright

from .exceptions import SlideRenderError
from .text import NormalizedText

logger = logging.getLogger(__name__)

BrowserLauncher = Callable[[], Awaitable[Browser]]

_MISSING_EXECUTABLE_MARKERS = (
    "executable doesn't exist",
    "playwright install",
    "looks like playwright",
)

# Set once chromium has been installed by this process.
_chromium_installed = False


@dataclass(slots=True)
class RenderedSlide:
    """A captured slide image and the overlay text placed on top of it."""

    image: bytes
    text: Optional[NormalizedText] = None


def is_missing_executable_error(exc: BaseException) -> bool:
    message = str(exc).lower()
    return any(marker in message for marker in _MISSING_EXECUTABLE_MARKERS)


def compose_document(html: str, css: str) -> str:
    """Wrap a slide fragment in a minimal page carrying the shared stylesheet."""

    head_parts = ['<meta charset="utf-8">']
    css_content = (css or "").strip()
    if css_content:
        head_parts.append(f"<style>{css_content}</style>")

    return (
        "<!DOCTYPE html><html><head>"
        + "".join(head_parts)
        + '</head><body style="margin:0;padding:0;">'
        + (html or "")
        + "</body></html>"
    )


class BrowserSession:
    """Process-wide Chromium instance, launched on first demand.

    Concurrent first callers all await the same launch task, so at most one
    browser is started. A failed launch is forgotten so that a later request
    can launch again.
    """

    def __init__(
        self,
        *,
        headless: bool = True,
        args: Optional[Iterable[str]] = None,
        auto_install: bool = True,
        launcher: Optional[BrowserLauncher] = None,
    ) -> None:
        self._headless = headless
        self._args = list(args or [])
        self._auto_install = auto_install
        self._launcher = launcher or self._launch_chromium
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._launch_task: Optional[asyncio.Future] = None

    @property
    def is_ready(self) -> bool:
        return self._browser is not None

    async def get_browser(self) -> Browser:
        if self._browser is not None:
            return self._browser

        if self._launch_task is None:
            self._launch_task = asyncio.ensure_future(self._launch())

        launch_task = self._launch_task
        try:
            return await asyncio.shield(launch_task)
        except Exception:
            if self._launch_task is launch_task:
                self._launch_task = None
            raise

    async def _launch(self) -> Browser:
        try:
            browser = await self._launcher()
        except SlideRenderError:
            raise
        except Exception as exc:
            raise SlideRenderError(f"Unable to start chromium renderer: {exc}") from exc

        self._browser = browser
        logger.info("Chromium launched.")
        return browser

    async def _launch_chromium(self) -> Browser:
        try:
            return await self._start_chromium()
        except Exception as exc:
            if not (self._auto_install and is_missing_executable_error(exc)):
                raise SlideRenderError(f"Unable to start chromium renderer: {exc}") from exc
            first_error = exc

        await self._install_chromium()
        try:
            return await self._start_chromium()
        except Exception as exc:
            raise SlideRenderError(
                f"Chromium still failed to start after installation: {exc}"
            ) from first_error

    async def _start_chromium(self) -> Browser:
        if self._playwright is None:
            self._playwright = await async_playwright().start()
        return await self._playwright.chromium.launch(headless=self._headless, args=self._args)

    async def _install_chromium(self) -> None:
        """Run ``playwright install chromium`` once per process."""

        global _chromium_installed
        if _chromium_installed:
            return

        logger.info("Chromium executable missing; installing it with Playwright.")
        process = await asyncio.create_subprocess_exec(
            sys.executable,
            "-m",
            "playwright",
            "install",
            "chromium",
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
        output, _ = await process.communicate()
        log_output = (output or b"").decode(errors="replace").strip()
        if process.returncode != 0:
            if log_output:
                logger.error("Chromium installation failed: %s", log_output)
            raise SlideRenderError(
                f"Automatic chromium installation exited with status {process.returncode}"
            )

        if log_output:
            logger.debug("Chromium installation output: %s", log_output)
        _chromium_installed = True

    async def close(self) -> None:
        browser, self._browser = self._browser, None
        playwright, self._playwright = self._playwright, None
        self._launch_task = None

        if browser is not None:
            with contextlib.suppress(Exception):
                await browser.close()
            logger.info("Chromium closed.")
        if playwright is not None:
            with contextlib.suppress(Exception):
                await playwright.stop()


async def _close_quietly(page: Any, context: Any) -> None:
    if page is not None:
        with contextlib.suppress(Exception):
            await page.close()
    if context is not None:
        with contextlib.suppress(Exception):
            await context.close()


class SlideRenderer:
    """Capture slides as PNG images using the shared :class:`BrowserSession`."""

    def __init__(
        self,
        session: BrowserSession,
        *,
        device_scale_factor: float = 2.0,
        navigation_timeout_ms: Optional[int] = None,
    ) -> None:
        self._session = session
        self._device_scale_factor = device_scale_factor
        self._navigation_timeout_ms = navigation_timeout_ms

    @property
    def session(self) -> BrowserSession:
        return self._session

    async def render_slide(self, html: str, css: str, width: int, height: int) -> bytes:
        browser = await self._session.get_browser()

        # Each slide gets its own context so viewport and page state stay isolated.
        context = None
        page = None
        try:
            context = await browser.new_context(
                viewport={"width": int(width), "height": int(height)},
                device_scale_factor=self._device_scale_factor,
            )
            page = await context.new_page()
        except Exception as exc:
            await _close_quietly(page, context)
            raise SlideRenderError(f"Unable to allocate a browser page: {exc}") from exc

        set_content_kwargs: dict[str, Any] = {"wait_until": "networkidle"}
        if self._navigation_timeout_ms is not None:
            set_content_kwargs["timeout"] = self._navigation_timeout_ms

        try:
            await page.set_content(compose_document(html, css), **set_content_kwargs)
            image = await page.screenshot(type="png", full_page=True)
        except Exception as exc:
            raise SlideRenderError(
                f"Unable to capture screenshot for a {width}x{height} slide: {exc}"
            ) from exc
        finally:
            await _close_quietly(page, context)

        logger.debug("Captured %dx%d slide (%d bytes)", width, height, len(image))
        return image
