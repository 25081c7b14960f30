"""Action record contract.

An :class:`ActionRecord` is one executed automation step together with the
page state observed immediately before and (after the settle delay) after it.
Records are built once inside ``TraceCollector.record`` and frozen.
"""

from __future__ import annotations

import secrets
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .snapshot import PageSnapshot


class ActionKind(StrEnum):
    """Kinds of automated browser actions that can be traced."""

    NAVIGATE = "navigate"
    CLICK = "click"
    TYPE = "type"
    EXTRACT = "extract"
    OBSERVE = "observe"
    SCREENSHOT = "screenshot"
    SCROLL = "scroll"


def new_trace_id() -> str:
    """Return a random 16-character hex id (not derived from content)."""
    return secrets.token_hex(8)


class ActionRecord(BaseModel):
    """One executed automation step with before/after observations."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_trace_id)
    kind: ActionKind
    instruction: str = Field(description="Directive handed to the action executor.")
    selector: str | None = None
    value: str | None = None

    before: PageSnapshot
    after: PageSnapshot
    before_screenshot: str | None = Field(default=None, description="Path to the PNG, if any.")
    after_screenshot: str | None = None

    success: bool
    error: str | None = None

    started_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    elapsed_ms: int = Field(ge=0)

    @model_validator(mode="after")
    def _failure_carries_message(self) -> ActionRecord:
        """A failed record must say why it failed."""
        if not self.success and not self.error:
            raise ValueError("failed action records require a non-empty error message")
        return self


__all__ = ["ActionKind", "ActionRecord", "new_trace_id"]
