"""Append-only JSON Lines storage for traces and training data.

Layout under the data directory (``BROWSERTRACE_DATA_DIR`` or
``training-data/``)::

    raw_actions.jsonl       every ActionRecord, written at record time
    traces.jsonl            every closed Session
    sft_data.jsonl          every SFTExample
    preference_pairs.jsonl  every PreferencePair
    screenshots/            before/after PNGs

Atomicity
---------
Each record is encoded to a single UTF-8 line and written with one
``os.write`` call on a descriptor opened with ``O_APPEND``. On POSIX regular
files this makes each line land whole even when several processes append to
the same log. A short write is reported as :class:`StorageError`.

A torn line is terminated with a newline so later appends stay readable.

Files are never rewritten. Reads (statistics, export, session lookup) treat a
missing file as an empty log, and skip malformed or invalid lines with a
warning instead of failing.
"""

from __future__ import annotations

import json
import os
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from .contracts.action import ActionRecord
from .contracts.session import Session
from .contracts.training import PreferencePair, SFTExample, TrainingStats
from .errors import SessionNotFoundError, StorageError
from .settings import get_logger, load_settings

logger = get_logger("browsertrace.storage")

RAW_ACTIONS_FILE = "raw_actions.jsonl"
TRACES_FILE = "traces.jsonl"
SFT_FILE = "sft_data.jsonl"
PREFERENCE_FILE = "preference_pairs.jsonl"
SCREENSHOTS_DIR = "screenshots"

ModelT = TypeVar("ModelT", bound=BaseModel)


def _default_dir() -> Path:
    """Return the configured data directory."""
    return load_settings().data_dir


def _iter_models(log: JsonlLog, model: type[ModelT]) -> Iterator[ModelT]:
    """Validate each record of ``log`` as ``model``, skipping invalid ones."""
    for payload in log.iter_records():
        try:
            item = model.model_validate(payload)
        except ValidationError as exc:
            logger.warning(
                "Skipping invalid %s record in %s: %d error(s)",
                model.__name__,
                log.path,
                exc.error_count(),
            )
            continue
        yield item


class JsonlLog:
    """A single append-only JSON Lines file."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def append(self, record: BaseModel | Mapping[str, Any]) -> None:
        """Serialize ``record`` as one line and append it atomically."""
        if isinstance(record, BaseModel):
            payload: Any = record.model_dump(mode="json")
        else:
            payload = dict(record)
        line = (json.dumps(payload, ensure_ascii=False) + "\n").encode("utf-8")

        try:
            fd = os.open(self.path, os.O_WRONLY | os.O_APPEND | os.O_CREAT, 0o644)
            try:
                written = os.write(fd, line)
                if 0 < written < len(line):
                    # Terminate the torn line so the next append starts on its own line.
                    os.write(fd, b"\n")
            finally:
                os.close(fd)
        except OSError as exc:
            raise StorageError(f"Could not append to {self.path}: {exc}") from exc

        if written != len(line):
            raise StorageError(
                f"Short write to {self.path}: {written} of {len(line)} bytes appended"
            )
        logger.debug("Appended %d bytes to %s", written, self.path.name)

    def _numbered_lines(self) -> Iterator[tuple[int, str]]:
        if not self.path.exists():
            return
        # A torn append can split a multi-byte character.
        with self.path.open("r", encoding="utf-8", errors="replace") as f:
            for lineno, raw in enumerate(f, start=1):
                line = raw.strip()
                if line:
                    yield lineno, line

    def iter_lines(self) -> Iterator[str]:
        """Yield every non-empty line; nothing when the file does not exist."""
        for _, line in self._numbered_lines():
            yield line

    def iter_records(self) -> Iterator[dict[str, Any]]:
        """Yield each line decoded as a JSON object.

        Lines that are not a JSON object (e.g. the remains of a short write)
        are skipped with a warning naming the file and line number.
        """
        for lineno, line in self._numbered_lines():
            try:
                payload = json.loads(line)
            except json.JSONDecodeError as exc:
                logger.warning("Skipping malformed line %s:%d: %s", self.path, lineno, exc)
                continue
            if not isinstance(payload, dict):
                logger.warning("Skipping non-object line %s:%d", self.path, lineno)
                continue
            yield payload

    def count(self) -> int:
        """Number of non-empty lines currently on disk."""
        return sum(1 for _ in self.iter_lines())


class TraceStore:
    """The four durable logs plus the screenshot directory.

    Parameters
    ----------
    base_dir : Path | None
        Root directory. Defaults to ``settings.data_dir``. Created on demand.
    """

    def __init__(self, base_dir: Path | None = None) -> None:
        self.base_dir: Path = base_dir if base_dir is not None else _default_dir()
        self.actions = JsonlLog(self.base_dir / RAW_ACTIONS_FILE)
        self.sessions = JsonlLog(self.base_dir / TRACES_FILE)
        self.sft = JsonlLog(self.base_dir / SFT_FILE)
        self.preferences = JsonlLog(self.base_dir / PREFERENCE_FILE)

    @property
    def screenshots_dir(self) -> Path:
        return self.base_dir / SCREENSHOTS_DIR

    def ensure_dirs(self) -> None:
        """Create the data and screenshot directories if missing."""
        try:
            self.screenshots_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Could not create data directory {self.base_dir}: {exc}") from exc

    # ------------------------------- Writes ---------------------------------

    def append_action(self, record: ActionRecord) -> None:
        """Append a raw action record tagged with ``"type": "action"``."""
        self.ensure_dirs()
        self.actions.append({"type": "action", **record.model_dump(mode="json")})

    def append_session(self, session: Session) -> None:
        self.ensure_dirs()
        self.sessions.append(session)

    def append_sft(self, example: SFTExample) -> None:
        self.ensure_dirs()
        self.sft.append(example)

    def append_preference(self, pair: PreferencePair) -> None:
        self.ensure_dirs()
        self.preferences.append(pair)

    # ------------------------------- Reads ----------------------------------

    def stats(self) -> TrainingStats:
        """Count sessions, SFT examples and preference pairs on disk (no caching)."""
        return TrainingStats(
            traces=self.sessions.count(),
            sft_examples=self.sft.count(),
            preference_pairs=self.preferences.count(),
        )

    def iter_sessions(self) -> Iterator[Session]:
        """Parse the session log back into :class:`Session` values."""
        yield from _iter_models(self.sessions, Session)

    def load_session(self, session_id: str) -> Session:
        """Return the closed session with ``session_id`` or raise."""
        for session in self.iter_sessions():
            if session.id == session_id:
                return session
        raise SessionNotFoundError(session_id)

    def iter_sft(self) -> Iterator[SFTExample]:
        yield from _iter_models(self.sft, SFTExample)


__all__ = [
    "JsonlLog",
    "PREFERENCE_FILE",
    "RAW_ACTIONS_FILE",
    "SCREENSHOTS_DIR",
    "SFT_FILE",
    "TRACES_FILE",
    "TraceStore",
]
