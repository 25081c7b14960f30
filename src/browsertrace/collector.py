"""Trace collector: action recording and session lifecycle.

A :class:`TraceCollector` owns at most one *open* session at a time. The
lifecycle is ``uninitialized -> open -> closed``:

- :meth:`TraceCollector.start_session` opens a session (fails if one is open).
- :meth:`TraceCollector.record` wraps one automated action with a before
  snapshot, the action itself, a fixed settle pause and an after snapshot.
  The resulting :class:`ActionRecord` is appended to the open session and
  flushed to the raw action log straight away, so a crash mid-session loses
  only the in-memory session, never recorded actions.
- :meth:`TraceCollector.end_session` captures the final page state, persists
  the closed session, writes its SFT examples and clears the open slot.

Action failures never escape ``record``: they are stored as
``success=False`` with the error message, and the original exception is
kept on the returned :class:`RecordedAction` for callers that want to
re-raise it.

Calls must be serialized by the caller (one page, one action at a time). A
second ``record`` while one is in flight is rejected rather than queued.
"""

from __future__ import annotations

import asyncio
import json
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from browsertrace.capture.page import PageCapability
from browsertrace.capture.snapshot import SnapshotCapturer
from browsertrace.core.contracts.action import ActionKind, ActionRecord, new_trace_id
from browsertrace.core.contracts.session import Session
from browsertrace.core.errors import (
    ActionInFlightError,
    NoActiveSessionError,
    SessionAlreadyOpenError,
    SnapshotCaptureError,
)
from browsertrace.core.settings import get_logger, load_settings
from browsertrace.core.storage import TraceStore
from browsertrace.synthesis.sft import SFTSynthesizer

logger = get_logger("browsertrace.collector")

ExecuteFn = Callable[[], Awaitable[Any]]


@dataclass(frozen=True, slots=True)
class RecordedAction:
    """What :meth:`TraceCollector.record` hands back.

    Attributes
    ----------
    result : Any
        The action's return value, or ``None`` when it failed.
    record : ActionRecord
        The sealed trace of the action.
    exception : BaseException | None
        The exception raised by the action, if any.
    """

    result: Any
    record: ActionRecord
    exception: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.record.success

    def raise_for_failure(self) -> None:
        """Re-raise the action's original exception (no-op on success)."""
        if self.exception is not None:
            raise self.exception


@dataclass(slots=True)
class _OpenSession:
    """Mutable state of the currently open session."""

    header: Session
    actions: list[ActionRecord] = field(default_factory=list)


def _error_message(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


def _serialize_value(result: Any) -> str | None:
    if result is None:
        return None
    if isinstance(result, str):
        return result
    if hasattr(result, "model_dump"):
        result = result.model_dump(mode="json")
    return json.dumps(result, ensure_ascii=False, default=str)


class TraceCollector:
    """Record actions into sessions and persist them as training data.

    Parameters
    ----------
    store : TraceStore | None
        Durable logs; defaults to a store under ``settings.data_dir``.
    capturer : SnapshotCapturer | None
        Snapshot reader; defaults to one using ``settings.snapshot_retries``.
    settle_ms : int | None
        Pause between action completion and the after snapshot.
    screenshots : bool | None
        Whether before/after PNGs are captured.
    """

    def __init__(
        self,
        store: TraceStore | None = None,
        capturer: SnapshotCapturer | None = None,
        *,
        settle_ms: int | None = None,
        screenshots: bool | None = None,
    ) -> None:
        cfg = load_settings()
        self.store = store if store is not None else TraceStore()
        self.capturer = capturer if capturer is not None else SnapshotCapturer()
        self.settle_ms = cfg.settle_ms if settle_ms is None else settle_ms
        self.screenshots = cfg.screenshots if screenshots is None else screenshots
        self._sft = SFTSynthesizer(self.store)
        self._open: _OpenSession | None = None
        self._in_flight = False

    # ------------------------------ Introspection ---------------------------

    @property
    def is_open(self) -> bool:
        return self._open is not None

    @property
    def current_session(self) -> Session | None:
        """A point-in-time copy of the open session, or None."""
        if self._open is None:
            return None
        return self._open.header.model_copy(update={"actions": list(self._open.actions)})

    # ------------------------------ Lifecycle --------------------------------

    def start_session(self, task: str, start_url: str, model: str | None = None) -> str:
        """Open a new session and return its id."""
        if self._open is not None:
            raise SessionAlreadyOpenError(self._open.header.id)

        header = Session(
            task=task,
            start_url=start_url,
            model=model or load_settings().default_model,
        )
        self._open = _OpenSession(header=header)
        logger.info("Started session %s: %s", header.id, task)
        return header.id

    async def end_session(
        self,
        page: PageCapability,
        success: bool,
        human_rating: int | None = None,
        human_feedback: str | None = None,
    ) -> Session:
        """Close the open session, persist it and write its SFT examples."""
        state = self._open
        if state is None:
            raise NoActiveSessionError("end_session")

        final_state = await self.capturer.capture(page)
        session = state.header.close(
            state.actions,
            success=success,
            final_state=final_state,
            human_rating=human_rating,
            human_feedback=human_feedback,
        )

        self.store.append_session(session)
        # Once the session line is on disk the slot is closed, even if SFT writes fail.
        try:
            self._sft.synthesize(session)
        finally:
            self._open = None

        logger.info(
            "Session %s ended. Success: %s (%d actions, %d ms)",
            session.id,
            success,
            len(session.actions),
            session.total_elapsed_ms,
        )
        return session

    # ------------------------------ Recording --------------------------------

    async def record(
        self,
        page: PageCapability,
        kind: ActionKind | str,
        instruction: str,
        execute: ExecuteFn,
        *,
        selector: str | None = None,
        value: str | None = None,
    ) -> RecordedAction:
        """Run ``execute`` between two snapshots and trace it.

        Exactly one :class:`ActionRecord` is produced per call, whether the
        action succeeds or raises. Snapshot or storage failures propagate.
        """
        state = self._open
        if state is None:
            raise NoActiveSessionError("record")
        if self._in_flight:
            raise ActionInFlightError(
                f"Another action is still being recorded in session {state.header.id}"
            )

        self._in_flight = True
        try:
            return await self._record(
                state, page, ActionKind(kind), instruction, execute, selector, value
            )
        finally:
            self._in_flight = False

    async def _record(
        self,
        state: _OpenSession,
        page: PageCapability,
        kind: ActionKind,
        instruction: str,
        execute: ExecuteFn,
        selector: str | None,
        value: str | None,
    ) -> RecordedAction:
        action_id = new_trace_id()
        started_at = datetime.now(UTC)
        t0 = time.monotonic()

        before = await self.capturer.capture(page)
        before_shot = await self._screenshot(page, state.header.id, action_id, "before")

        result: Any = None
        failure: BaseException | None = None
        try:
            result = await execute()
        except Exception as exc:
            failure = exc
            logger.debug("Action %s raised", action_id, exc_info=True)

        await self._settle()

        after = await self.capturer.capture(page)
        after_shot = await self._screenshot(page, state.header.id, action_id, "after")

        if failure is None and value is None and kind is ActionKind.EXTRACT:
            value = _serialize_value(result)

        record = ActionRecord(
            id=action_id,
            kind=kind,
            instruction=instruction,
            selector=selector,
            value=value,
            before=before,
            after=after,
            before_screenshot=before_shot,
            after_screenshot=after_shot,
            success=failure is None,
            error=_error_message(failure) if failure is not None else None,
            started_at=started_at,
            elapsed_ms=max(0, int((time.monotonic() - t0) * 1000)),
        )

        state.actions.append(record)
        self.store.append_action(record)

        mark = "ok" if record.success else f"failed: {record.error}"
        logger.info("Action %s: %s (%s)", kind.value, instruction[:50], mark)

        return RecordedAction(
            result=result if failure is None else None,
            record=record,
            exception=failure,
        )

    async def _settle(self) -> None:
        """Unconditional pause so async page updates land before the after snapshot."""
        deadline = time.monotonic() + self.settle_ms / 1000
        while (remaining := deadline - time.monotonic()) > 0:
            await asyncio.sleep(remaining)

    async def _screenshot(
        self, page: PageCapability, session_id: str, action_id: str, marker: str
    ) -> str | None:
        if not self.screenshots:
            return None
        self.store.ensure_dirs()
        path: Path = self.store.screenshots_dir / (
            f"{session_id}_{action_id}_{marker}_{int(time.time() * 1000)}.png"
        )
        try:
            await page.capture_screenshot(path)
        except Exception as exc:
            raise SnapshotCaptureError(f"Screenshot capture failed: {exc}") from exc
        return str(path)


__all__ = ["ExecuteFn", "RecordedAction", "TraceCollector"]
