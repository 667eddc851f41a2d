"""Persistence store — one JSON snapshot per storage key.

The snapshot ``{profile, levelNumber, history}`` is written to
``<directory>/<key>.json``.  Writes go to a temporary file in the same
directory and are swapped in with ``os.replace``, so a later ``load``
never sees half a snapshot.

Loading is forgiving: an unreadable blob means "no saved session", and a
partial or older blob keeps whatever fields are still usable.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

import src.settings as settings
from src.errors import PersistenceCorruptError, PersistenceUnavailableError
from src.models.profile import coerce_profile
from src.models.state import HistoryEntry, Snapshot
from src.session.history import latest_level_number

logger = logging.getLogger(__name__)


class PersistenceStore:
    """Load / save / clear the single session snapshot.

    Usage:
        store = PersistenceStore()
        snapshot = store.load() or new_snapshot()
        ...
        store.save(snapshot)
    """

    def __init__(self, key: str | None = None, directory: str | Path | None = None):
        self.key = key or settings.STATE_KEY
        self.directory = Path(directory) if directory is not None else settings.STATE_DIR

    @property
    def path(self) -> Path:
        return self.directory / f"{self.key}.json"

    def load(self) -> Snapshot | None:
        """Read the stored snapshot, or ``None`` if there is nothing usable.

        Raises
        ------
        PersistenceUnavailableError
            The blob exists but cannot be read.
        """
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise PersistenceUnavailableError(f"Cannot read {self.path}: {e}") from e

        try:
            return decode_snapshot(raw)
        except PersistenceCorruptError as e:
            logger.warning("Ignoring corrupt snapshot at %s: %s", self.path, e)
            return None

    def save(self, snapshot: Snapshot) -> None:
        """Atomically overwrite the stored snapshot.

        Raises
        ------
        PersistenceUnavailableError
            The directory or file cannot be written.
        """
        payload = json.dumps(snapshot.to_wire(), indent=2, ensure_ascii=False)
        tmp_name = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.key}.", suffix=".tmp", dir=self.directory
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise PersistenceUnavailableError(f"Cannot write {self.path}: {e}") from e

    def clear(self) -> None:
        """Remove the stored snapshot; a missing one is fine."""
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise PersistenceUnavailableError(f"Cannot remove {self.path}: {e}") from e


def decode_snapshot(raw: str) -> Snapshot:
    """Decode a stored blob, defaulting missing or malformed fields one by one.

    Raises
    ------
    PersistenceCorruptError
        The blob is not a JSON object at all.
    """
    try:
        data: Any = json.loads(raw)
    except json.JSONDecodeError as e:
        raise PersistenceCorruptError(f"invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise PersistenceCorruptError(
            f"expected a JSON object, got {type(data).__name__}"
        )

    profile = coerce_profile(data.get("profile"))
    history = _decode_history(data.get("history"))

    level_number = latest_level_number(history)
    stored = data.get("levelNumber")
    if stored is not None and stored != level_number:
        logger.info(
            "Stored levelNumber=%r disagrees with history; using %d",
            stored,
            level_number,
        )

    return Snapshot(profile=profile, level_number=level_number, history=history)


def _decode_history(raw: Any) -> list[HistoryEntry]:
    if not isinstance(raw, list):
        return []
    history: list[HistoryEntry] = []
    for index, item in enumerate(raw):
        try:
            history.append(HistoryEntry.model_validate(item))
        except PydanticValidationError as e:
            logger.warning(
                "Dropping unreadable history entry #%d: %d error(s)",
                index,
                e.error_count(),
            )
    return history
