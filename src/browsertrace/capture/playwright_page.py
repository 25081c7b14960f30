"""Playwright implementation of :class:`PageCapability`.

Reads page state from a ``playwright.async_api.Page``. Natural-language
instructions are not something Playwright understands, so ``perform_action``
delegates to an injected *actor* coroutine (the AI action engine). Plain
navigation and scrolling are exposed as helpers because they need no AI.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping, Sequence
from pathlib import Path
from typing import Any

from playwright.async_api import Page

from browsertrace.core.settings import get_logger

logger = get_logger("browsertrace.capture.playwright")

Actor = Callable[[Page, str], Awaitable[Any]]

# Raw element inventory in document order. Bounding boxes are reported as-is;
# zero-area filtering and the 100-element cap happen in Python.
_ELEMENTS_JS = """() => {
    const selectors = 'a, button, input, select, textarea, [role="button"], [onclick]';
    const out = [];
    document.querySelectorAll(selectors).forEach(el => {
        const rect = el.getBoundingClientRect();
        out.push({
            tag: el.tagName.toLowerCase(),
            id: el.id || '',
            className: (el.className && el.className.toString) ? el.className.toString() : '',
            text: (el.textContent || '').slice(0, 100),
            href: el.href || '',
            type: el.type || '',
            placeholder: el.placeholder || '',
            rect: {x: rect.x, y: rect.y, width: rect.width, height: rect.height},
        });
    });
    return out;
}"""

_VISIBLE_TEXT_JS = "() => document.body ? document.body.innerText : ''"


class PlaywrightPage:
    """Adapter exposing a Playwright page through the capability protocol."""

    def __init__(self, page: Page, actor: Actor | None = None) -> None:
        self.page = page
        self.actor = actor

    async def current_url(self) -> str:
        return self.page.url

    async def current_title(self) -> str:
        return await self.page.title()

    async def read_structured_content(self) -> str:
        return await self.page.content()

    async def read_visible_text(self) -> str:
        text = await self.page.evaluate(_VISIBLE_TEXT_JS)
        return str(text or "")

    async def enumerate_interactive_elements(self) -> Sequence[Mapping[str, Any]]:
        elements = await self.page.evaluate(_ELEMENTS_JS)
        return list(elements or [])

    async def capture_screenshot(self, path: Path) -> None:
        await self.page.screenshot(path=str(path), full_page=False)

    async def perform_action(self, instruction: str) -> Any:
        if self.actor is None:
            raise RuntimeError("No actor configured; cannot perform natural-language actions.")
        return await self.actor(self.page, instruction)

    # ------------------------------ Direct helpers ---------------------------

    async def goto(self, url: str) -> None:
        logger.debug("goto %s", url)
        await self.page.goto(url, wait_until="domcontentloaded")

    async def scroll(self, delta_y: int) -> None:
        await self.page.evaluate("dy => window.scrollBy(0, dy)", delta_y)


__all__ = ["Actor", "PlaywrightPage"]
