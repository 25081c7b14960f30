"""Supervised fine-tuning example synthesis.

Every action of a closed session becomes one :class:`SFTExample`, in order.
Failed actions are kept; filtering or weighting them is the training
consumer's decision, and ``metadata.success`` carries what it needs.
"""

from __future__ import annotations

from browsertrace.core.contracts.session import Session
from browsertrace.core.contracts.training import SFTExample, SFTMetadata
from browsertrace.core.settings import get_logger
from browsertrace.core.storage import TraceStore

from .linearize import render_action, render_state

logger = get_logger("browsertrace.synthesis.sft")


def build_sft_examples(session: Session) -> list[SFTExample]:
    """Return one example per action, indexed ``0..n-1``."""
    examples: list[SFTExample] = []
    for index, action in enumerate(session.actions):
        examples.append(
            SFTExample(
                id=f"sft_{session.id}_{index}",
                instruction=session.task,
                input=render_state(action.before, session.actions[:index]),
                output=render_action(action),
                metadata=SFTMetadata(
                    success=action.success,
                    source_trace_id=session.id,
                    action_index=index,
                ),
            )
        )
    return examples


class SFTSynthesizer:
    """Build SFT examples for a session and append them to the SFT log."""

    def __init__(self, store: TraceStore) -> None:
        self.store = store

    def synthesize(self, session: Session) -> list[SFTExample]:
        examples = build_sft_examples(session)
        for example in examples:
            self.store.append_sft(example)
        logger.info("Wrote %d SFT examples for session %s", len(examples), session.id)
        return examples


__all__ = ["SFTSynthesizer", "build_sft_examples"]
