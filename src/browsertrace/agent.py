"""Traced agent: a browser-agent facade that records every step.

Each public coroutine is exactly one recorded action. The AI engine is
reached only through :meth:`PageCapability.perform_action`; navigation and
scrolling also go through it unless the page exposes ``goto`` / ``scroll``
helpers (as :class:`~browsertrace.capture.playwright_page.PlaywrightPage`
does).

Failures are recorded first and re-raised afterwards, so a caller's
``try/except`` around a step still sees the error while the trace keeps the
failed record.

Example
-------
>>> agent = TracedAgent(PlaywrightPage(page, actor=my_ai_actor))
>>> await agent.init("Extract pricing", "https://example.com")
>>> await agent.act("Click on Pricing link in the navigation")
>>> plans = await agent.extract("Extract all pricing plans")
>>> await agent.end_session(True, human_rating=5)
"""

from __future__ import annotations

from typing import Any, Literal

from browsertrace.capture.page import PageCapability
from browsertrace.collector import RecordedAction, TraceCollector
from browsertrace.core.contracts.action import ActionKind
from browsertrace.core.contracts.session import Session
from browsertrace.core.contracts.training import TrainingStats

SCROLL_STEP_PX = 500


class TracedAgent:
    """Drive one page through a :class:`TraceCollector`."""

    def __init__(self, page: PageCapability, collector: TraceCollector | None = None) -> None:
        self.page = page
        self.collector = collector if collector is not None else TraceCollector()
        self.session_id: str | None = None

    async def init(self, task: str, start_url: str, model: str | None = None) -> str:
        """Start a session and record the navigation to ``start_url``."""
        self.session_id = self.collector.start_session(task, start_url, model)
        await self.navigate(start_url)
        return self.session_id

    async def _run(
        self,
        kind: ActionKind,
        instruction: str,
        directive: str | None = None,
        *,
        value: str | None = None,
    ) -> RecordedAction:
        async def execute() -> Any:
            return await self.page.perform_action(directive or instruction)

        recorded = await self.collector.record(
            self.page, kind, instruction, execute, value=value
        )
        recorded.raise_for_failure()
        return recorded

    async def navigate(self, url: str) -> None:
        goto = getattr(self.page, "goto", None)
        instruction = f"Navigate to {url}"
        if goto is None:
            await self._run(ActionKind.NAVIGATE, instruction)
            return

        async def execute() -> None:
            await goto(url)

        recorded = await self.collector.record(
            self.page, ActionKind.NAVIGATE, instruction, execute, value=url
        )
        recorded.raise_for_failure()

    async def act(self, instruction: str) -> None:
        await self._run(ActionKind.CLICK, instruction)

    async def extract(self, instruction: str) -> Any:
        return (await self._run(ActionKind.EXTRACT, instruction)).result

    async def observe(self, instruction: str) -> Any:
        return (await self._run(ActionKind.OBSERVE, instruction)).result

    async def type(self, instruction: str, text: str) -> None:
        await self._run(
            ActionKind.TYPE,
            f'{instruction}: "{text}"',
            f'Type "{text}" {instruction}',
            value=text,
        )

    async def scroll(self, direction: Literal["up", "down"]) -> None:
        delta = SCROLL_STEP_PX if direction == "down" else -SCROLL_STEP_PX
        scroll = getattr(self.page, "scroll", None)
        instruction = f"Scroll {direction}"
        if scroll is None:
            await self._run(ActionKind.SCROLL, instruction)
            return

        async def execute() -> None:
            await scroll(delta)

        recorded = await self.collector.record(self.page, ActionKind.SCROLL, instruction, execute)
        recorded.raise_for_failure()

    async def end_session(
        self,
        success: bool,
        human_rating: int | None = None,
        human_feedback: str | None = None,
    ) -> Session:
        session = await self.collector.end_session(
            self.page, success, human_rating, human_feedback
        )
        self.session_id = None
        return session

    def stats(self) -> TrainingStats:
        return self.collector.store.stats()


__all__ = ["TracedAgent"]
