"""Session contract: one end-to-end attempt at a task.

A :class:`Session` value is frozen. While a session is open the collector
keeps the growing action list in its own state object and hands out
point-in-time copies; :meth:`Session.close` produces the final, validated
value that gets persisted.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from .action import ActionRecord, new_trace_id
from .snapshot import PageSnapshot

HumanRating = Annotated[int, Field(ge=1, le=5)]


class Session(BaseModel):
    """A task attempt made of ordered action records."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_trace_id)
    task: str = Field(description="High-level task description.")
    start_url: str
    model: str = Field(description="Identifier of the model driving the browser.")
    started_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    actions: list[ActionRecord] = Field(default_factory=list)

    success: bool = False
    final_state: PageSnapshot | None = None
    human_rating: HumanRating | None = None
    human_feedback: str | None = None

    total_elapsed_ms: int = Field(default=0, ge=0)
    ended_at: datetime | None = None

    @property
    def is_closed(self) -> bool:
        return self.ended_at is not None

    def close(
        self,
        actions: Sequence[ActionRecord],
        *,
        success: bool,
        final_state: PageSnapshot,
        human_rating: int | None = None,
        human_feedback: str | None = None,
    ) -> Session:
        """Return the closed version of this session.

        The result is re-validated, so an out-of-range rating raises here,
        before anything is persisted.
        """
        ended_at = datetime.now(UTC)
        elapsed = max(0, int((ended_at - self.started_at).total_seconds() * 1000))
        return Session.model_validate(
            {
                "id": self.id,
                "task": self.task,
                "start_url": self.start_url,
                "model": self.model,
                "started_at": self.started_at,
                "actions": list(actions),
                "success": success,
                "final_state": final_state,
                "human_rating": human_rating,
                "human_feedback": human_feedback,
                "total_elapsed_ms": elapsed,
                "ended_at": ended_at,
            }
        )


__all__ = ["HumanRating", "Session"]
