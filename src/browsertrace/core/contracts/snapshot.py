"""Page snapshot contracts.

A :class:`PageSnapshot` is a bounded, self-contained observation of one page
at one instant. The size caps below are hard limits applied by position
(first N) so that snapshot payloads stay bounded no matter how large the page
is. They live here because both the capturer and the tests rely on them.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field

MAX_HTML_CHARS = 50_000
MAX_TEXT_CHARS = 10_000
MAX_ELEMENTS = 100
MAX_ELEMENT_TEXT_CHARS = 100
MAX_ATTRIBUTE_CHARS = 200

ELEMENT_ATTRIBUTES: tuple[str, ...] = ("id", "class", "href", "type", "placeholder")


class BoundingBox(BaseModel):
    """Viewport rectangle of a rendered element."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    width: float
    height: float

    @property
    def is_empty(self) -> bool:
        """True when the element occupies no area (not rendered)."""
        return self.width <= 0 or self.height <= 0


class InteractiveElement(BaseModel):
    """A clickable or fillable element found on the page."""

    model_config = ConfigDict(frozen=True)

    selector: str = Field(description="Synthesized selector, e.g. 'button#buy.primary'.")
    tag: str = Field(description="Lower-case tag name.")
    text: str = Field(default="", max_length=MAX_ELEMENT_TEXT_CHARS)
    attributes: dict[str, str] = Field(
        default_factory=lambda: {name: "" for name in ELEMENT_ATTRIBUTES},
        description="Fixed subset: id, class, href, type, placeholder.",
    )
    bounding_box: BoundingBox | None = None


class PageSnapshot(BaseModel):
    """Point-in-time observation of the target page."""

    model_config = ConfigDict(frozen=True)

    url: str = ""
    title: str = ""
    html: str = Field(default="", max_length=MAX_HTML_CHARS)
    text: str = Field(default="", max_length=MAX_TEXT_CHARS)
    interactive_elements: list[InteractiveElement] = Field(
        default_factory=list, max_length=MAX_ELEMENTS
    )
    captured_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


__all__ = [
    "BoundingBox",
    "ELEMENT_ATTRIBUTES",
    "InteractiveElement",
    "MAX_ATTRIBUTE_CHARS",
    "MAX_ELEMENTS",
    "MAX_ELEMENT_TEXT_CHARS",
    "MAX_HTML_CHARS",
    "MAX_TEXT_CHARS",
    "PageSnapshot",
]
