"""
Persistence for match snapshots.

This module defines the PersistenceManager contract the match session talks to
and a JSON file implementation of it.
"""
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union

logger = logging.getLogger(__name__)

Snapshot = Dict[str, Any]


class PersistenceManager(Protocol):
    """Storage for a single plain-data match snapshot."""

    def load_state(self) -> Optional[Snapshot]:
        """Return the stored snapshot, or None when nothing usable is stored."""
        ...

    def save_state(self, snapshot: Snapshot) -> bool:
        """Store ``snapshot``; return False if it could not be written."""
        ...


class InMemoryPersistenceManager:
    """Keeps the snapshot in process memory (round-tripped through JSON)."""

    def __init__(self, snapshot: Optional[Snapshot] = None):
        self._data: Optional[str] = json.dumps(snapshot) if snapshot is not None else None

    def load_state(self) -> Optional[Snapshot]:
        if self._data is None:
            return None
        return json.loads(self._data)

    def save_state(self, snapshot: Snapshot) -> bool:
        try:
            self._data = json.dumps(snapshot)
        except (TypeError, ValueError) as exc:
            logger.error("Snapshot is not serializable: %s", exc)
            return False
        return True

    def clear_state(self) -> None:
        self._data = None


class JsonFilePersistenceManager:
    """
    Persists the match snapshot to a JSON file.

    Writes go to a temporary file that replaces the target, so a crash never
    leaves a half-written snapshot behind.
    """

    def __init__(self, file_path: Union[str, Path]):
        self.file_path = Path(file_path)

    def load_state(self) -> Optional[Snapshot]:
        """
        Load the snapshot from disk.

        Returns:
            Snapshot dictionary, or None if the file is missing or unreadable
        """
        if not self.file_path.exists():
            logger.info("No saved match at %s", self.file_path)
            return None
        try:
            with open(self.file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Could not read saved match %s: %s", self.file_path, exc)
            return None
        if not isinstance(data, dict):
            logger.warning("Saved match %s is not a JSON object", self.file_path)
            return None
        return data

    def save_state(self, snapshot: Snapshot) -> bool:
        """
        Save the snapshot to disk.

        Args:
            snapshot: Plain-data snapshot

        Returns:
            True if the file was written
        """
        directory = self.file_path.parent
        tmp_path = self.file_path.with_name(self.file_path.name + ".tmp")
        try:
            if str(directory) and not directory.exists():
                directory.mkdir(parents=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(snapshot, f, indent=2)
            os.replace(tmp_path, self.file_path)
        except (OSError, TypeError, ValueError) as exc:
            logger.error("Could not save match to %s: %s", self.file_path, exc)
            return False
        logger.debug("Match saved to %s", self.file_path)
        return True

    def clear_state(self) -> None:
        """Delete the stored snapshot if present."""
        try:
            self.file_path.unlink()
        except FileNotFoundError:
            pass
