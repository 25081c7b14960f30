"""Page capability interface and snapshot capture."""

from __future__ import annotations

from .page import PageCapability
from .snapshot import SnapshotCapturer

__all__ = ["PageCapability", "SnapshotCapturer"]
