"""Core package initializer for browsertrace.

Settings, errors, contracts and the append-only storage layer live here:
    from browsertrace.core.settings import settings, load_settings, Settings, get_logger
"""

from __future__ import annotations

__all__ = ["__doc__"]
