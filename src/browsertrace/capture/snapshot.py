"""State snapshot capturer.

Turns a live :class:`PageCapability` into a bounded :class:`PageSnapshot`.

Cleaning and truncation rules
-----------------------------
- Markup: ``script``, ``style``, ``noscript``, ``svg`` and ``path`` elements
  are dropped; attribute values longer than 200 characters are cut to 200
  characters plus ``"..."``; the serialized result is capped at 50,000
  characters.
- Visible text: first 10,000 characters.
- Interactive elements: elements with a zero-area bounding box are skipped,
  then the first 100 in document order are kept. Missing fields become empty
  strings; an element without any bounding box is kept with ``None``.

All caps are positional (first N), never relevance-based.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from bs4 import BeautifulSoup
from bs4.element import Tag

from browsertrace.core.contracts.snapshot import (
    ELEMENT_ATTRIBUTES,
    MAX_ATTRIBUTE_CHARS,
    MAX_ELEMENT_TEXT_CHARS,
    MAX_ELEMENTS,
    MAX_HTML_CHARS,
    MAX_TEXT_CHARS,
    BoundingBox,
    InteractiveElement,
    PageSnapshot,
)
from browsertrace.core.errors import SnapshotCaptureError
from browsertrace.core.settings import get_logger, load_settings

from .page import PageCapability

logger = get_logger("browsertrace.capture")

NOISE_TAGS: tuple[str, ...] = ("script", "style", "noscript", "svg", "path")


def clean_markup(html: str) -> str:
    """Strip noise elements, shorten long attributes and cap the payload."""
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    for el in soup.find_all(NOISE_TAGS):
        el.decompose()

    for el in soup.find_all(True):
        if not isinstance(el, Tag):
            continue
        for name, raw in list(el.attrs.items()):
            value = " ".join(raw) if isinstance(raw, list) else str(raw)
            if len(value) > MAX_ATTRIBUTE_CHARS:
                el.attrs[name] = value[:MAX_ATTRIBUTE_CHARS] + "..."

    return str(soup)[:MAX_HTML_CHARS]


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, list | tuple):
        return " ".join(str(v) for v in value)
    return str(value)


def _bounding_box(raw: Mapping[str, Any]) -> BoundingBox | None:
    rect = raw.get("rect") or raw.get("bounding_box") or raw.get("boundingBox")
    if not isinstance(rect, Mapping):
        return None
    try:
        return BoundingBox(
            x=float(rect.get("x") or 0.0),
            y=float(rect.get("y") or 0.0),
            width=float(rect.get("width") or 0.0),
            height=float(rect.get("height") or 0.0),
        )
    except (TypeError, ValueError):
        return None


def synthesize_selector(tag: str, element_id: str, class_name: str) -> str:
    """Build ``tag#id.firstClass`` from whatever hints are available."""
    selector = tag
    if element_id:
        selector += f"#{element_id}"
    classes = class_name.split()
    if classes:
        selector += f".{classes[0]}"
    return selector


def normalize_element(raw: Mapping[str, Any]) -> InteractiveElement | None:
    """Convert one raw element mapping; return None for zero-area elements."""
    bbox = _bounding_box(raw)
    if bbox is not None and bbox.is_empty:
        return None

    tag = _as_str(raw.get("tag")).lower() or "unknown"
    class_name = _as_str(raw.get("class", raw.get("className")))
    attributes = {name: _as_str(raw.get(name)) for name in ELEMENT_ATTRIBUTES}
    attributes["class"] = class_name

    return InteractiveElement(
        selector=_as_str(raw.get("selector")) or synthesize_selector(
            tag, attributes["id"], class_name
        ),
        tag=tag,
        text=_as_str(raw.get("text")).strip()[:MAX_ELEMENT_TEXT_CHARS],
        attributes=attributes,
        bounding_box=bbox,
    )


def normalize_elements(raw_elements: Sequence[Mapping[str, Any]] | None) -> list[InteractiveElement]:
    """Normalize raw elements, keeping the first 100 visible ones in order."""
    out: list[InteractiveElement] = []
    for raw in raw_elements or ():
        if len(out) >= MAX_ELEMENTS:
            break
        if not isinstance(raw, Mapping):
            continue
        element = normalize_element(raw)
        if element is not None:
            out.append(element)
    return out


class SnapshotCapturer:
    """Read page state through a :class:`PageCapability` into a snapshot.

    Parameters
    ----------
    retries : int | None
        Extra attempts after a failed read. Defaults to
        ``settings.snapshot_retries``. When every attempt fails the last
        exception is wrapped in :class:`SnapshotCaptureError`.
    """

    def __init__(self, retries: int | None = None) -> None:
        self.retries = load_settings().snapshot_retries if retries is None else retries

    async def capture(self, page: PageCapability) -> PageSnapshot:
        attempts = self.retries + 1
        for attempt in range(1, attempts + 1):
            try:
                return await self._read(page)
            except Exception as exc:
                if attempt >= attempts:
                    raise SnapshotCaptureError(f"Snapshot capture failed: {exc}") from exc
                logger.warning("Snapshot attempt %d/%d failed: %s", attempt, attempts, exc)
        raise SnapshotCaptureError("Snapshot capture made no attempts")

    async def _read(self, page: PageCapability) -> PageSnapshot:
        url = await page.current_url()
        title = await page.current_title()
        html = await page.read_structured_content()
        text = await page.read_visible_text()
        elements = await page.enumerate_interactive_elements()

        return PageSnapshot(
            url=url or "",
            title=title or "",
            html=clean_markup(html or ""),
            text=(text or "")[:MAX_TEXT_CHARS],
            interactive_elements=normalize_elements(elements),
        )


__all__ = [
    "NOISE_TAGS",
    "SnapshotCapturer",
    "clean_markup",
    "normalize_element",
    "normalize_elements",
    "synthesize_selector",
]
