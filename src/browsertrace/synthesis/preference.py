"""Preference pair synthesis for RLHF / DPO.

Two closed sessions for the same task are compared action by action. At the
first index where their instructions differ, the better session's state and
history form the shared prompt; the two actions at that index become the
chosen and rejected responses.

When no divergence exists within the common prefix (identical runs, or one
run is a prefix of the other) the pair is *degenerate*: its texts are empty
and ``metadata.divergence_index`` is ``None``. Degenerate pairs are still
written unless ``strict=True`` is passed, in which case
:class:`NoDivergenceError` is raised and nothing is written.
"""

from __future__ import annotations

import secrets

from browsertrace.core.contracts.session import Session
from browsertrace.core.contracts.training import PreferenceMetadata, PreferencePair
from browsertrace.core.errors import NoDivergenceError
from browsertrace.core.settings import get_logger
from browsertrace.core.storage import TraceStore

from .linearize import render_action, render_state

logger = get_logger("browsertrace.synthesis.preference")


def find_divergence(better: Session, worse: Session) -> int | None:
    """Index of the first differing instruction in the common prefix, else None."""
    for index, (a, b) in enumerate(zip(better.actions, worse.actions, strict=False)):
        if a.instruction != b.instruction:
            return index
    return None


def build_preference_pair(better: Session, worse: Session, reason: str) -> PreferencePair:
    """Construct (but do not persist) the pair for ``better`` over ``worse``."""
    if better.task != worse.task:
        logger.warning(
            "Comparing sessions with different tasks: %r vs %r", better.task, worse.task
        )

    index = find_divergence(better, worse)
    input_text = chosen = rejected = ""
    if index is not None:
        input_text = render_state(better.actions[index].before, better.actions[:index])
        chosen = render_action(better.actions[index])
        rejected = render_action(worse.actions[index])

    return PreferencePair(
        id=f"pref_{secrets.token_hex(4)}",
        instruction=better.task,
        input=input_text,
        chosen=chosen,
        rejected=rejected,
        metadata=PreferenceMetadata(
            chosen_trace_id=better.id,
            rejected_trace_id=worse.id,
            reason=reason,
            divergence_index=index,
        ),
    )


def compare_pair(
    store: TraceStore,
    better: Session,
    worse: Session,
    reason: str,
    *,
    strict: bool = False,
) -> PreferencePair:
    """Build the preference pair and append it to the preference log."""
    pair = build_preference_pair(better, worse, reason)
    if pair.is_degenerate:
        if strict:
            raise NoDivergenceError(
                f"Sessions {better.id} and {worse.id} do not diverge within "
                f"their first {min(len(better.actions), len(worse.actions))} actions"
            )
        logger.warning(
            "No divergence between %s and %s; writing an empty preference pair",
            better.id,
            worse.id,
        )
    store.append_preference(pair)
    return pair


__all__ = ["build_preference_pair", "compare_pair", "find_divergence"]
