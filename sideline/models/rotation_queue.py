"""
Rotation queue model.

Ordered substitution priority: the front entry is the next to come off, the
back entry is the most recently subbed in. Entries are player ids in
individual mode and pair keys in pairs mode.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Union

from .formation import Formation
from .player import Player
from ..errors import NotInQueueError, StateDesyncError


@dataclass
class RotationQueue:
    """
    Ordered rotation priority.

    Attributes:
        entries: Queue order, front first
        inactive_hints: Last known index of entries removed while inactive
    """
    entries: List[str] = field(default_factory=list)
    inactive_hints: Dict[str, int] = field(default_factory=dict)

    def __post_init__(self):
        if len(set(self.entries)) != len(self.entries):
            raise StateDesyncError("Rotation queue contains duplicate entries",
                                   {"entries": list(self.entries)})

    @classmethod
    def initialize(cls, selected_players: Union[Mapping[str, Player], Iterable[Player]],
                   formation: Formation) -> RotationQueue:
        """
        Seed the queue from a formation.

        On-field entries come first in slot order, then substitutes in bench
        slot order. The goalie never enters the queue; inactive substitutes
        are held out with a reinsertion hint at the back.

        Args:
            selected_players: Squad for the match (mapping by id or iterable)
            formation: Formation snapshot to seed from

        Returns:
            New RotationQueue
        """
        if isinstance(selected_players, Mapping):
            players = dict(selected_players)
        else:
            players = {p.id: p for p in selected_players}

        if formation.is_pairs:
            return cls(entries=formation.pair_keys())

        entries: List[str] = []
        inactive: List[str] = []
        for player_id in formation.field_player_ids() + formation.substitute_player_ids():
            player = players.get(player_id)
            if player is not None and player.stats.is_inactive:
                inactive.append(player_id)
            else:
                entries.append(player_id)

        queue = cls(entries=entries)
        for player_id in inactive:
            queue.inactive_hints[player_id] = len(queue.entries)
        return queue

    def next(self, count: int = 1) -> Union[Optional[str], List[str]]:
        """
        Peek at the front of the queue.

        Args:
            count: Number of entries to peek; 1 returns a single id

        Returns:
            Front id (or None when empty) for ``count == 1``, otherwise a list
        """
        if count == 1:
            return self.entries[0] if self.entries else None
        return list(self.entries[:count])

    def rotate(self, entry_id: str) -> None:
        """Move ``entry_id`` to the back of the queue."""
        if entry_id not in self.entries:
            raise NotInQueueError(entry_id)
        self.entries.remove(entry_id)
        self.entries.append(entry_id)

    def remove(self, entry_id: str) -> Optional[int]:
        """Remove ``entry_id`` and return the index it held, or None if absent."""
        if entry_id not in self.entries:
            return None
        index = self.entries.index(entry_id)
        del self.entries[index]
        return index

    def reinsert_preserving_order(self, entry_id: str, previous_index_hint: Optional[int] = None) -> int:
        """
        Put ``entry_id`` back at its last known position.

        Args:
            entry_id: Entry to reinsert
            previous_index_hint: Index it held when removed; falls back to the
                stored inactive hint, then to the back of the queue

        Returns:
            Index the entry now holds
        """
        if entry_id in self.entries:
            raise StateDesyncError(f"'{entry_id}' is already in the rotation queue",
                                   {"entry_id": entry_id})
        if previous_index_hint is None:
            previous_index_hint = self.inactive_hints.get(entry_id)
        if previous_index_hint is None:
            index = len(self.entries)
        else:
            index = max(0, min(previous_index_hint, len(self.entries)))
        self.entries.insert(index, entry_id)
        self.inactive_hints.pop(entry_id, None)
        return index

    def deactivate(self, entry_id: str) -> int:
        """Remove an entry that became inactive, remembering where it was."""
        index = self.remove(entry_id)
        if index is None:
            raise NotInQueueError(entry_id)
        self.inactive_hints[entry_id] = index
        return index

    def reactivate(self, entry_id: str) -> int:
        """Reinsert a previously deactivated entry at its remembered index."""
        return self.reinsert_preserving_order(entry_id)

    def move_to_front(self, entry_id: str) -> None:
        """Make ``entry_id`` the next entry to rotate out."""
        if entry_id not in self.entries:
            raise NotInQueueError(entry_id)
        self.entries.remove(entry_id)
        self.entries.insert(0, entry_id)

    def insert_before(self, entry_id: str, target_id: str) -> None:
        """Move or insert ``entry_id`` directly in front of ``target_id``."""
        if target_id not in self.entries:
            raise NotInQueueError(target_id)
        if entry_id in self.entries:
            self.entries.remove(entry_id)
        self.entries.insert(self.entries.index(target_id), entry_id)

    def add(self, entry_id: str, position: Optional[int] = None) -> None:
        """Add a new entry at ``position`` (default: the back)."""
        if entry_id in self.entries:
            raise StateDesyncError(f"'{entry_id}' is already in the rotation queue",
                                   {"entry_id": entry_id})
        if position is None:
            self.entries.append(entry_id)
        else:
            self.entries.insert(max(0, min(position, len(self.entries))), entry_id)

    def stable_partition(self, front_ids: Iterable[str]) -> None:
        """Keep entries in ``front_ids`` ahead of the rest, preserving relative order."""
        front = set(front_ids)
        self.entries = ([e for e in self.entries if e in front]
                        + [e for e in self.entries if e not in front])

    def contains(self, entry_id: str) -> bool:
        return entry_id in self.entries

    def position_of(self, entry_id: str) -> int:
        """Index of ``entry_id`` in the queue, or -1."""
        try:
            return self.entries.index(entry_id)
        except ValueError:
            return -1

    def size(self) -> int:
        return len(self.entries)

    def inactive_players(self) -> List[str]:
        return list(self.inactive_hints)

    def to_array(self) -> List[str]:
        """Snapshot of the queue order."""
        return list(self.entries)

    def clone(self) -> RotationQueue:
        return RotationQueue(entries=list(self.entries), inactive_hints=dict(self.inactive_hints))

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self.entries

    def to_dict(self) -> Dict[str, Any]:
        return {"entries": list(self.entries), "inactive_hints": dict(self.inactive_hints)}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> RotationQueue:
        if not data:
            return cls()
        hints = {str(k): int(v) for k, v in (data.get("inactive_hints") or {}).items()}
        return cls(entries=[str(e) for e in data.get("entries") or []], inactive_hints=hints)
