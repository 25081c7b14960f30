"""Pydantic contracts for snapshots, actions, sessions and training data."""

from __future__ import annotations

from .action import ActionKind, ActionRecord, new_trace_id
from .session import HumanRating, Session
from .snapshot import BoundingBox, InteractiveElement, PageSnapshot
from .training import (
    PreferenceMetadata,
    PreferencePair,
    SFTExample,
    SFTMetadata,
    TrainingStats,
)

__all__ = [
    "ActionKind",
    "ActionRecord",
    "BoundingBox",
    "HumanRating",
    "InteractiveElement",
    "PageSnapshot",
    "PreferenceMetadata",
    "PreferencePair",
    "SFTExample",
    "SFTMetadata",
    "Session",
    "TrainingStats",
    "new_trace_id",
]
