from __future__ import annotations

import asyncio
import io
import sys
from pathlib import Path
from typing import Optional

import pytest
from PIL import Image

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def make_png(color: str = "#3366FF", size: tuple[int, int] = (16, 9)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color=color).save(buffer, format="PNG")
    return buffer.getvalue()


class FakePage:
    def __init__(self, context: "FakeContext") -> None:
        self.context = context
        self.content: Optional[str] = None
        self.set_content_kwargs: dict = {}
        self.screenshot_kwargs: dict = {}
        self.closed = False

    async def set_content(self, html: str, **kwargs) -> None:
        self.content = html
        self.set_content_kwargs = kwargs
        await asyncio.sleep(0)
        marker = self.context.browser.fail_marker
        if marker and marker in html:
            raise RuntimeError("net::ERR_FAILED while loading slide")

    async def screenshot(self, **kwargs) -> bytes:
        self.screenshot_kwargs = kwargs
        return self.context.browser.image

    async def close(self) -> None:
        self.closed = True


class FakeContext:
    def __init__(self, browser: "FakeBrowser", **options) -> None:
        self.browser = browser
        self.options = options
        self.pages: list[FakePage] = []
        self.closed = False

    async def new_page(self) -> FakePage:
        if self.browser.fail_new_page:
            raise RuntimeError("Target page, context or browser has been closed")
        page = FakePage(self)
        self.pages.append(page)
        return page

    async def close(self) -> None:
        self.closed = True


class FakeBrowser:
    """In-memory stand-in for a Playwright ``Browser``."""

    def __init__(
        self,
        image: Optional[bytes] = None,
        *,
        fail_marker: Optional[str] = None,
        fail_new_page: bool = False,
    ) -> None:
        self.image = image if image is not None else make_png()
        self.fail_marker = fail_marker
        self.fail_new_page = fail_new_page
        self.contexts: list[FakeContext] = []
        self.closed = False

    async def new_context(self, **options) -> FakeContext:
        context = FakeContext(self, **options)
        self.contexts.append(context)
        return context

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def fake_browser_factory():
    return FakeBrowser


@pytest.fixture
def png_factory():
    return make_png
