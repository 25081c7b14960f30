"""Page capability interface consumed by the collector.

The collector never talks to a browser library directly. Anything that can
answer these coroutines (a Playwright page, a remote browser API, a test
fake) can be traced.

``enumerate_interactive_elements`` returns raw mappings in document order.
Each mapping may carry ``tag``, ``id``, ``class``/``className``, ``text``,
``href``, ``type``, ``placeholder`` and ``rect`` (``x``/``y``/``width``/
``height``); every key is optional and the snapshot capturer normalizes them.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class PageCapability(Protocol):
    """Minimal async view of a live page."""

    async def current_url(self) -> str: ...

    async def current_title(self) -> str: ...

    async def read_structured_content(self) -> str:
        """Return the page markup (outer HTML of the document)."""
        ...

    async def read_visible_text(self) -> str: ...

    async def enumerate_interactive_elements(self) -> Sequence[Mapping[str, Any]]: ...

    async def capture_screenshot(self, path: Path) -> None: ...

    async def perform_action(self, instruction: str) -> Any:
        """Carry out a natural-language instruction; raise on failure."""
        ...


__all__ = ["PageCapability"]
