"""Tests for the Playwright adapter using mocked pages (no browser needed)."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from browsertrace.capture.page import PageCapability
from browsertrace.capture.playwright_page import PlaywrightPage
from browsertrace.capture.snapshot import SnapshotCapturer


def _mock_page() -> MagicMock:
    page = MagicMock()
    page.url = "https://example.com"
    page.title = AsyncMock(return_value="Example")
    page.content = AsyncMock(return_value="<html><body><script>x</script><p>Hi</p></body></html>")
    page.evaluate = AsyncMock()
    page.screenshot = AsyncMock()
    page.goto = AsyncMock()
    return page


def test_adapter_satisfies_protocol() -> None:
    assert isinstance(PlaywrightPage(_mock_page()), PageCapability)


@pytest.mark.asyncio  # type: ignore[misc]
async def test_snapshot_through_adapter() -> None:
    page = _mock_page()
    page.evaluate.side_effect = [
        "Hi",
        [
            {"tag": "a", "id": "", "className": "nav", "text": "Home",
             "rect": {"x": 0, "y": 0, "width": 10, "height": 10}},
            {"tag": "button", "id": "hidden", "className": "",
             "rect": {"x": 0, "y": 0, "width": 0, "height": 0}},
        ],
    ]
    snap = await SnapshotCapturer(retries=0).capture(PlaywrightPage(page))

    assert snap.title == "Example"
    assert "<script" not in snap.html and "<p>Hi</p>" in snap.html
    assert snap.text == "Hi"
    assert [e.selector for e in snap.interactive_elements] == ["a.nav"]


@pytest.mark.asyncio  # type: ignore[misc]
async def test_screenshot_and_goto_delegate() -> None:
    page = _mock_page()
    adapter = PlaywrightPage(page)
    await adapter.capture_screenshot(Path("/tmp/shot.png"))
    page.screenshot.assert_called_once_with(path="/tmp/shot.png", full_page=False)

    await adapter.goto("https://example.com/pricing")
    page.goto.assert_called_once_with("https://example.com/pricing", wait_until="domcontentloaded")


@pytest.mark.asyncio  # type: ignore[misc]
async def test_perform_action_requires_actor() -> None:
    page = _mock_page()
    with pytest.raises(RuntimeError, match="No actor"):
        await PlaywrightPage(page).perform_action("Click Pricing")

    actor = AsyncMock(return_value={"ok": True})
    assert await PlaywrightPage(page, actor).perform_action("Click Pricing") == {"ok": True}
    actor.assert_called_once_with(page, "Click Pricing")
