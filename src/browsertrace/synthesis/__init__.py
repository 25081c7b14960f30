"""Training-data synthesis: linearization, SFT examples, preference pairs."""

from __future__ import annotations

from .linearize import render_action, render_state
from .preference import build_preference_pair, compare_pair, find_divergence
from .sft import SFTSynthesizer, build_sft_examples

__all__ = [
    "SFTSynthesizer",
    "build_preference_pair",
    "build_sft_examples",
    "compare_pair",
    "find_divergence",
    "render_action",
    "render_state",
]
