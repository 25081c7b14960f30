"""Shared fixtures: an in-memory fake page and a collector writing to tmp_path.

`FakePage` implements the page capability protocol without a browser. Tests
mutate its fields (url, html, elements, ...) to simulate page changes, and
register handlers for `perform_action` to simulate the AI action engine.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Any

import pytest

from browsertrace.capture.snapshot import SnapshotCapturer
from browsertrace.collector import TraceCollector
from browsertrace.core.storage import TraceStore


class FakePage:
    """Scriptable stand-in for a live browser page."""

    def __init__(
        self,
        url: str = "https://example.com",
        title: str = "Example",
        html: str = "<html><body><a href='/pricing'>Pricing</a></body></html>",
        text: str = "Pricing",
        elements: Sequence[Mapping[str, Any]] | None = None,
    ) -> None:
        self.url = url
        self.title = title
        self.html = html
        self.text = text
        self.elements: list[Mapping[str, Any]] = list(
            elements
            if elements is not None
            else [
                {
                    "tag": "A",
                    "id": "nav-pricing",
                    "className": "nav link",
                    "text": "  Pricing  ",
                    "href": "https://example.com/pricing",
                    "rect": {"x": 10, "y": 20, "width": 80, "height": 16},
                }
            ]
        )
        self.handler: Callable[[str], Any] | None = None
        self.instructions: list[str] = []
        self.screenshots: list[Path] = []
        self.read_failures = 0

    async def current_url(self) -> str:
        if self.read_failures:
            self.read_failures -= 1
            raise RuntimeError("page navigated away")
        return self.url

    async def current_title(self) -> str:
        return self.title

    async def read_structured_content(self) -> str:
        return self.html

    async def read_visible_text(self) -> str:
        return self.text

    async def enumerate_interactive_elements(self) -> Sequence[Mapping[str, Any]]:
        return list(self.elements)

    async def capture_screenshot(self, path: Path) -> None:
        path.write_bytes(b"\x89PNG fake")
        self.screenshots.append(path)

    async def perform_action(self, instruction: str) -> Any:
        self.instructions.append(instruction)
        if self.handler is not None:
            return self.handler(instruction)
        return None


@pytest.fixture  # type: ignore[misc]
def page() -> FakePage:
    return FakePage()


@pytest.fixture  # type: ignore[misc]
def store(tmp_path: Path) -> TraceStore:
    return TraceStore(tmp_path / "training-data")


@pytest.fixture  # type: ignore[misc]
def collector(store: TraceStore) -> TraceCollector:
    """Collector with a short settle delay so the suite stays fast."""
    return TraceCollector(store, SnapshotCapturer(retries=0), settle_ms=20, screenshots=True)


@pytest.fixture  # type: ignore[misc]
def make_page() -> type[FakePage]:
    """Factory for pages with custom content."""
    return FakePage
