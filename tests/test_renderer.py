from __future__ import annotations

import asyncio

import pytest

from deckrender.features.slide_export import renderer as renderer_module
from deckrender.features.slide_export.exceptions import SlideRenderError
from deckrender.features.slide_export.renderer import (
    BrowserSession,
    SlideRenderer,
    compose_document,
    is_missing_executable_error,
)


def _session_for(browser) -> BrowserSession:
    async def launcher():
        return browser

    return BrowserSession(launcher=launcher)


def test_compose_document_embeds_css_and_html() -> None:
    document = compose_document("<h2>Hi</h2>", "h2 { color: red; }")

    assert "<style>h2 { color: red; }</style>" in document
    assert '<body style="margin:0;padding:0;"><h2>Hi</h2></body>' in document
    assert document.index("<style>") < document.index("<body")


def test_compose_document_skips_empty_stylesheet() -> None:
    document = compose_document("<p>x</p>", "   ")
    assert "<style>" not in document


def test_install_is_only_attempted_for_missing_executable() -> None:
    assert is_missing_executable_error(RuntimeError("Executable doesn't exist at /ms-playwright"))
    assert not is_missing_executable_error(RuntimeError("Target closed"))


@pytest.mark.anyio("asyncio")
async def test_render_slide_uses_isolated_context(fake_browser_factory, png_bytes) -> None:
    browser = fake_browser_factory(png_bytes)
    renderer = SlideRenderer(_session_for(browser), device_scale_factor=2)

    image = await renderer.render_slide("<h2>Hi</h2>", "body{}", 800, 600)

    assert image == png_bytes
    assert len(browser.contexts) == 1
    context = browser.contexts[0]
    assert context.options == {
        "viewport": {"width": 800, "height": 600},
        "device_scale_factor": 2,
    }
    page = context.pages[0]
    assert page.set_content_kwargs == {"wait_until": "networkidle"}
    assert page.screenshot_kwargs == {"type": "png", "full_page": True}
    assert "<h2>Hi</h2>" in page.content
    assert page.closed and context.closed
    assert not browser.closed


@pytest.mark.anyio("asyncio")
async def test_navigation_timeout_is_forwarded(fake_browser_factory) -> None:
    browser = fake_browser_factory()
    renderer = SlideRenderer(_session_for(browser), navigation_timeout_ms=5000)

    await renderer.render_slide("<p>x</p>", "", 100, 100)

    assert browser.contexts[0].pages[0].set_content_kwargs == {
        "wait_until": "networkidle",
        "timeout": 5000,
    }


@pytest.mark.anyio("asyncio")
async def test_failed_capture_closes_page_and_context(fake_browser_factory) -> None:
    browser = fake_browser_factory(fail_marker="broken")
    renderer = SlideRenderer(_session_for(browser))

    with pytest.raises(SlideRenderError):
        await renderer.render_slide("<div>broken</div>", "", 400, 300)

    context = browser.contexts[0]
    assert context.closed
    assert all(page.closed for page in context.pages)


@pytest.mark.anyio("asyncio")
async def test_failed_page_allocation_closes_context(fake_browser_factory) -> None:
    browser = fake_browser_factory(fail_new_page=True)
    renderer = SlideRenderer(_session_for(browser))

    with pytest.raises(SlideRenderError):
        await renderer.render_slide("<p>x</p>", "", 400, 300)

    assert browser.contexts[0].closed


@pytest.mark.anyio("asyncio")
async def test_concurrent_first_use_launches_one_browser(fake_browser_factory) -> None:
    launches = []
    browser = fake_browser_factory()

    async def launcher():
        launches.append(1)
        await asyncio.sleep(0.01)
        return browser

    session = BrowserSession(launcher=launcher)
    results = await asyncio.gather(*(session.get_browser() for _ in range(5)))

    assert len(launches) == 1
    assert all(result is browser for result in results)
    assert session.is_ready

    assert await session.get_browser() is browser
    assert len(launches) == 1


@pytest.mark.anyio("asyncio")
async def test_failed_launch_is_reported_and_not_cached(fake_browser_factory) -> None:
    browser = fake_browser_factory()
    attempts = []

    async def launcher():
        attempts.append(1)
        if len(attempts) == 1:
            raise RuntimeError("chromium crashed on startup")
        return browser

    session = BrowserSession(launcher=launcher)

    with pytest.raises(SlideRenderError):
        await session.get_browser()
    assert not session.is_ready

    assert await session.get_browser() is browser
    assert len(attempts) == 2


@pytest.mark.anyio("asyncio")
async def test_render_fails_when_browser_cannot_launch() -> None:
    async def launcher():
        raise RuntimeError("no display")

    renderer = SlideRenderer(BrowserSession(launcher=launcher))

    with pytest.raises(SlideRenderError):
        await renderer.render_slide("<p>x</p>", "", 100, 100)


@pytest.mark.anyio("asyncio")
async def test_close_releases_browser(fake_browser_factory) -> None:
    browser = fake_browser_factory()
    session = _session_for(browser)
    await session.get_browser()

    await session.close()

    assert browser.closed
    assert not session.is_ready


@pytest.mark.anyio("asyncio")
async def test_missing_executable_triggers_one_install(monkeypatch, fake_browser_factory) -> None:
    browser = fake_browser_factory()
    session = BrowserSession()
    starts = []
    installs = []

    async def start_chromium():
        starts.append(1)
        if len(starts) == 1:
            raise RuntimeError("Executable doesn't exist at /ms-playwright/chromium")
        return browser

    async def install_chromium():
        installs.append(1)

    monkeypatch.setattr(session, "_start_chromium", start_chromium)
    monkeypatch.setattr(session, "_install_chromium", install_chromium)

    assert await session.get_browser() is browser
    assert len(starts) == 2
    assert len(installs) == 1


@pytest.mark.anyio("asyncio")
async def test_other_launch_errors_skip_install(monkeypatch) -> None:
    session = BrowserSession()
    installs = []

    async def start_chromium():
        raise RuntimeError("Target closed")

    async def install_chromium():
        installs.append(1)

    monkeypatch.setattr(session, "_start_chromium", start_chromium)
    monkeypatch.setattr(session, "_install_chromium", install_chromium)

    with pytest.raises(SlideRenderError):
        await session.get_browser()
    assert installs == []


@pytest.mark.anyio("asyncio")
async def test_failed_install_is_reported(monkeypatch) -> None:
    monkeypatch.setattr(renderer_module, "_chromium_installed", False)
    commands = []

    class FailedProcess:
        returncode = 1

        async def communicate(self):
            return b"download failed", None

    async def create_subprocess_exec(*args, **kwargs):
        commands.append(args)
        return FailedProcess()

    monkeypatch.setattr(renderer_module.asyncio, "create_subprocess_exec", create_subprocess_exec)

    with pytest.raises(SlideRenderError):
        await BrowserSession()._install_chromium()

    assert commands[0][1:] == ("-m", "playwright", "install", "chromium")
    assert renderer_module._chromium_installed is False
