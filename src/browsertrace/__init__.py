"""browsertrace: record browser-agent actions and synthesize training data.

The package captures before/after page state around every automated browser
action, groups actions into task sessions, and derives two training artifacts
from them: SFT examples and preference pairs.
"""

from __future__ import annotations

__all__ = ["__version__"]
__version__ = "0.1.0"
