"""Text renderings of snapshots and actions used as training text.

These two functions are the whole linearization contract shared by SFT
examples and preference pairs; keep their output stable, since changing a
line here changes every dataset produced afterwards.

``render_state`` layout::

    URL: <url>
    Title: <title>

    Visible Text (truncated):
    <first 2000 chars of visible text>

    Interactive Elements:
    - [<tag>] <text[:50]> (<selector>)        # up to 30 lines

    Previous Actions:                         # only when history is non-empty
    - <kind>: <instruction[:100]>             # last 5 actions

``render_action`` layout::

    ACTION: <kind>
    INSTRUCTION: <instruction>
    SELECTOR: <selector>                      # when present
    VALUE: <value>                            # when present
"""

from __future__ import annotations

from collections.abc import Sequence

from browsertrace.core.contracts.action import ActionRecord
from browsertrace.core.contracts.snapshot import PageSnapshot

STATE_TEXT_CHARS = 2000
STATE_ELEMENTS = 30
ELEMENT_TEXT_CHARS = 50
HISTORY_WINDOW = 5
HISTORY_INSTRUCTION_CHARS = 100


def render_state(snapshot: PageSnapshot, history: Sequence[ActionRecord] = ()) -> str:
    """Render a snapshot plus the trailing window of prior actions."""
    parts = [
        f"URL: {snapshot.url}",
        f"Title: {snapshot.title}",
        "",
        "Visible Text (truncated):",
        snapshot.text[:STATE_TEXT_CHARS],
        "",
        "Interactive Elements:",
    ]
    parts.extend(
        f"- [{el.tag}] {el.text[:ELEMENT_TEXT_CHARS]} ({el.selector})"
        for el in snapshot.interactive_elements[:STATE_ELEMENTS]
    )

    if history:
        parts.extend(["", "Previous Actions:"])
        parts.extend(
            f"- {a.kind.value}: {a.instruction[:HISTORY_INSTRUCTION_CHARS]}"
            for a in history[-HISTORY_WINDOW:]
        )

    return "\n".join(parts)


def render_action(action: ActionRecord) -> str:
    """Render an action as the fixed-field training target."""
    parts = [
        f"ACTION: {action.kind.value}",
        f"INSTRUCTION: {action.instruction}",
    ]
    if action.selector:
        parts.append(f"SELECTOR: {action.selector}")
    if action.value:
        parts.append(f"VALUE: {action.value}")
    return "\n".join(parts)


__all__ = ["HISTORY_WINDOW", "render_action", "render_state"]
