"""Training artifact contracts derived from closed sessions.

- :class:`SFTExample`: instruction/input/output triple for supervised
  fine-tuning, one per recorded action.
- :class:`PreferencePair`: chosen vs. rejected continuation at the first
  point where two sessions for the same task diverge.
- :class:`TrainingStats`: line counts of the durable logs.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class SFTMetadata(BaseModel):
    """Provenance of an SFT example."""

    model_config = ConfigDict(frozen=True)

    success: bool
    source_trace_id: str
    action_index: int = Field(ge=0)


class SFTExample(BaseModel):
    """One instruction/input/output record (Alpaca layout plus provenance)."""

    model_config = ConfigDict(frozen=True)

    id: str
    instruction: str
    input: str
    output: str
    metadata: SFTMetadata


class PreferenceMetadata(BaseModel):
    """Provenance of a preference pair."""

    model_config = ConfigDict(frozen=True)

    chosen_trace_id: str
    rejected_trace_id: str
    reason: str
    divergence_index: int | None = Field(
        default=None, description="Action index of the first divergence; None when degenerate."
    )


class PreferencePair(BaseModel):
    """A chosen/rejected comparison anchored at a shared context."""

    model_config = ConfigDict(frozen=True)

    id: str
    instruction: str
    input: str = ""
    chosen: str = ""
    rejected: str = ""
    metadata: PreferenceMetadata

    @property
    def is_degenerate(self) -> bool:
        """True when no divergence was found and the texts are empty."""
        return self.metadata.divergence_index is None


class TrainingStats(BaseModel):
    """Counts of non-empty lines in the session, SFT and preference logs."""

    traces: int = 0
    sft_examples: int = 0
    preference_pairs: int = 0


__all__ = [
    "PreferenceMetadata",
    "PreferencePair",
    "SFTExample",
    "SFTMetadata",
    "TrainingStats",
]
