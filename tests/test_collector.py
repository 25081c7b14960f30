"""Tests for the trace collector: recording, session state machine, persistence."""

from __future__ import annotations

import asyncio
import json
from datetime import timedelta
from pathlib import Path
from typing import Any

import pytest
from pydantic import ValidationError

from browsertrace.collector import TraceCollector
from browsertrace.core.contracts.action import ActionKind
from browsertrace.core.errors import (
    ActionInFlightError,
    NoActiveSessionError,
    SessionAlreadyOpenError,
    StorageError,
)
from browsertrace.core.storage import TraceStore


def _lines(path: Path) -> list[dict[str, Any]]:
    if not path.exists():
        return []
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines() if line]


# --------------------------------------------------------------------------- #
# Session lifecycle
# --------------------------------------------------------------------------- #


def test_start_session_returns_id_and_opens(collector: TraceCollector) -> None:
    """Starting a session returns its id and exposes an empty open session."""
    sid = collector.start_session("extract pricing", "https://example.com", "test-model")
    assert collector.is_open
    current = collector.current_session
    assert current is not None
    assert current.id == sid
    assert current.model == "test-model"
    assert current.actions == []


def test_second_start_fails_without_touching_open_session(collector: TraceCollector) -> None:
    """A second start is rejected and the open session is left as it was."""
    sid = collector.start_session("task A", "https://a.example")
    with pytest.raises(SessionAlreadyOpenError):
        collector.start_session("task B", "https://b.example")
    current = collector.current_session
    assert current is not None
    assert current.id == sid
    assert current.task == "task A"


@pytest.mark.asyncio  # type: ignore[misc]
async def test_end_without_session_fails_and_writes_nothing(
    collector: TraceCollector, store: TraceStore, page: Any
) -> None:
    """Ending with nothing open fails before any log is created."""
    with pytest.raises(NoActiveSessionError):
        await collector.end_session(page, success=True)
    assert not store.sessions.path.exists()
    assert not store.sft.path.exists()
    assert not store.actions.path.exists()


@pytest.mark.asyncio  # type: ignore[misc]
async def test_end_session_twice_fails_second_time(collector: TraceCollector, page: Any) -> None:
    """A session can only be closed once."""
    collector.start_session("task", "https://example.com")
    await collector.end_session(page, success=False)
    with pytest.raises(NoActiveSessionError):
        await collector.end_session(page, success=False)


@pytest.mark.asyncio  # type: ignore[misc]
async def test_end_session_persists_closed_session(
    collector: TraceCollector, store: TraceStore, page: Any
) -> None:
    """Closing freezes the outcome and appends exactly one session line."""
    sid = collector.start_session("task", "https://example.com")
    await collector.record(page, "click", "Click Pricing", page_action(page, "Click Pricing"))
    page.url = "https://example.com/pricing"

    session = await collector.end_session(page, True, human_rating=4, human_feedback="fine")

    assert session.id == sid
    assert session.is_closed
    assert session.success is True
    assert session.human_rating == 4
    assert session.human_feedback == "fine"
    assert session.final_state is not None
    assert session.final_state.url == "https://example.com/pricing"
    assert session.total_elapsed_ms >= 0
    assert not collector.is_open

    logged = _lines(store.sessions.path)
    assert len(logged) == 1
    assert logged[0]["id"] == sid
    assert len(logged[0]["actions"]) == 1


@pytest.mark.asyncio  # type: ignore[misc]
async def test_out_of_range_rating_is_rejected_before_writing(
    collector: TraceCollector, store: TraceStore, page: Any
) -> None:
    """An invalid rating fails validation and keeps the session open."""
    collector.start_session("task", "https://example.com")
    with pytest.raises(ValidationError):
        await collector.end_session(page, True, human_rating=6)
    assert collector.is_open
    assert not store.sessions.path.exists()


@pytest.mark.asyncio  # type: ignore[misc]
async def test_new_session_after_close_is_unrelated(collector: TraceCollector, page: Any) -> None:
    """A session opened after a close starts with a new id and no actions."""
    first = collector.start_session("task", "https://example.com")
    await collector.record(page, "observe", "Look around", page_action(page, "Look around"))
    await collector.end_session(page, True)

    second = collector.start_session("task", "https://example.com")
    assert second != first
    current = collector.current_session
    assert current is not None and current.actions == []


@pytest.mark.asyncio  # type: ignore[misc]
async def test_sft_write_failure_still_closes_session(
    collector: TraceCollector, store: TraceStore, page: Any, monkeypatch: pytest.MonkeyPatch
) -> None:
    """A failing SFT append must not let a retried end_session log the session twice."""
    collector.start_session("task", "https://example.com")
    await collector.record(page, "click", "Click Pricing", page_action(page, "Click Pricing"))

    real_append = store.append_sft
    calls = {"n": 0}

    def flaky_append(example: Any) -> None:
        calls["n"] += 1
        if calls["n"] == 1:
            raise StorageError("disk full")
        real_append(example)

    monkeypatch.setattr(store, "append_sft", flaky_append)

    with pytest.raises(StorageError):
        await collector.end_session(page, True)
    assert not collector.is_open

    with pytest.raises(NoActiveSessionError):
        await collector.end_session(page, True)
    assert store.sessions.count() == 1


# --------------------------------------------------------------------------- #
# Recording
# --------------------------------------------------------------------------- #


def page_action(page: Any, instruction: str) -> Any:
    async def execute() -> Any:
        return await page.perform_action(instruction)

    return execute


@pytest.mark.asyncio  # type: ignore[misc]
async def test_record_without_session_fails(collector: TraceCollector, page: Any) -> None:
    """Recording with nothing open fails before the action runs."""
    with pytest.raises(NoActiveSessionError):
        await collector.record(page, ActionKind.CLICK, "Click", page_action(page, "Click"))
    assert page.instructions == []


@pytest.mark.asyncio  # type: ignore[misc]
async def test_record_captures_before_and_after(
    collector: TraceCollector, store: TraceStore, page: Any
) -> None:
    """Snapshots are taken before the action and after the settle delay."""
    collector.start_session("task", "https://example.com")

    def go_to_pricing(_: str) -> str:
        page.url = "https://example.com/pricing"
        page.title = "Pricing"
        return "clicked"

    page.handler = go_to_pricing
    recorded = await collector.record(
        page, ActionKind.CLICK, "Click Pricing", page_action(page, "Click Pricing"),
        selector="a#nav-pricing.nav",
    )

    rec = recorded.record
    assert recorded.result == "clicked"
    assert recorded.ok
    assert rec.success and rec.error is None
    assert rec.before.url == "https://example.com"
    assert rec.after.url == "https://example.com/pricing"
    assert rec.after.title == "Pricing"
    assert rec.selector == "a#nav-pricing.nav"
    assert rec.elapsed_ms >= collector.settle_ms
    assert rec.after.captured_at - rec.before.captured_at >= timedelta(
        milliseconds=collector.settle_ms
    )

    current = collector.current_session
    assert current is not None
    assert [a.id for a in current.actions] == [rec.id]

    raw = _lines(store.actions.path)
    assert len(raw) == 1
    assert raw[0]["type"] == "action"
    assert raw[0]["id"] == rec.id


@pytest.mark.asyncio  # type: ignore[misc]
async def test_failed_action_is_recorded_not_raised(collector: TraceCollector, page: Any) -> None:
    """An exception from the action becomes a failed record."""
    collector.start_session("task", "https://example.com")

    def boom(_: str) -> None:
        raise RuntimeError("element not found")

    page.handler = boom
    recorded = await collector.record(page, "click", "Click Ghost", page_action(page, "x"))

    assert recorded.result is None
    assert recorded.record.success is False
    assert recorded.record.error == "element not found"
    assert isinstance(recorded.exception, RuntimeError)
    with pytest.raises(RuntimeError, match="element not found"):
        recorded.raise_for_failure()

    current = collector.current_session
    assert current is not None and len(current.actions) == 1


@pytest.mark.asyncio  # type: ignore[misc]
async def test_failure_without_message_gets_class_name(collector: TraceCollector, page: Any) -> None:
    """An exception with no message is recorded under its class name."""
    collector.start_session("task", "https://example.com")

    async def times_out() -> None:
        raise TimeoutError()

    recorded = await collector.record(page, "click", "Slow click", times_out)
    assert recorded.record.error == "TimeoutError"


@pytest.mark.asyncio  # type: ignore[misc]
async def test_record_ids_are_unique_for_identical_actions(
    collector: TraceCollector, page: Any
) -> None:
    """Identical actions still get distinct record ids."""
    collector.start_session("task", "https://example.com")
    a = await collector.record(page, "click", "Click", page_action(page, "Click"))
    b = await collector.record(page, "click", "Click", page_action(page, "Click"))
    assert a.record.id != b.record.id


@pytest.mark.asyncio  # type: ignore[misc]
async def test_extract_value_defaults_to_serialized_result(
    collector: TraceCollector, page: Any
) -> None:
    """A successful extract stores its result as the record value."""
    collector.start_session("task", "https://example.com")
    plans = {"plans": [{"name": "Pro", "price": "$10"}]}
    page.handler = lambda _: plans

    recorded = await collector.record(page, "extract", "Extract plans", page_action(page, "x"))
    assert recorded.result == plans
    assert recorded.record.value is not None
    assert json.loads(recorded.record.value) == plans


@pytest.mark.asyncio  # type: ignore[misc]
async def test_screenshots_are_named_per_action(
    collector: TraceCollector, store: TraceStore, page: Any
) -> None:
    """Before/after screenshots carry session id, action id and marker."""
    sid = collector.start_session("task", "https://example.com")
    rec = (await collector.record(page, "scroll", "Scroll down", page_action(page, "x"))).record

    assert rec.before_screenshot is not None and rec.after_screenshot is not None
    before, after = Path(rec.before_screenshot), Path(rec.after_screenshot)
    assert before.parent == store.screenshots_dir
    assert before.name.startswith(f"{sid}_{rec.id}_before_")
    assert after.name.startswith(f"{sid}_{rec.id}_after_")
    assert before.exists() and after.exists()


@pytest.mark.asyncio  # type: ignore[misc]
async def test_screenshots_can_be_disabled(store: TraceStore, page: Any) -> None:
    """No screenshot is taken when screenshots are turned off."""
    collector = TraceCollector(store, settle_ms=0, screenshots=False)
    collector.start_session("task", "https://example.com")
    rec = (await collector.record(page, "click", "Click", page_action(page, "x"))).record
    assert rec.before_screenshot is None and rec.after_screenshot is None
    assert page.screenshots == []


@pytest.mark.asyncio  # type: ignore[misc]
async def test_concurrent_record_is_rejected(collector: TraceCollector, page: Any) -> None:
    """A second record while one is in flight is refused."""
    collector.start_session("task", "https://example.com")
    gate = asyncio.Event()

    async def slow() -> str:
        await gate.wait()
        return "done"

    first = asyncio.create_task(collector.record(page, "click", "Slow", slow))
    await asyncio.sleep(0)
    while not page.screenshots:
        await asyncio.sleep(0.001)

    with pytest.raises(ActionInFlightError):
        await collector.record(page, "click", "Other", page_action(page, "x"))

    gate.set()
    recorded = await first
    assert recorded.result == "done"
    current = collector.current_session
    assert current is not None and len(current.actions) == 1


@pytest.mark.asyncio  # type: ignore[misc]
async def test_actions_survive_crash_before_end(
    store: TraceStore, page: Any
) -> None:
    """Recorded actions are on disk even if the session is never closed."""
    collector = TraceCollector(store, settle_ms=0, screenshots=False)
    collector.start_session("task", "https://example.com")
    await collector.record(page, "navigate", "Navigate", page_action(page, "x"))
    await collector.record(page, "click", "Click", page_action(page, "y"))
    del collector

    assert len(_lines(store.actions.path)) == 2
    assert store.stats().traces == 0
