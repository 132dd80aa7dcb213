"""
Rolling per-aircraft movement history.

This module provides the HistoryStore class which keeps the most recent
snapshots of every tracked aircraft, oldest first.

Example:
    >>> history = HistoryStore(max_entries=50)
    >>> entries = history.update(snapshot)
    >>> entries[-1] is snapshot
    True
"""

from collections import deque
from typing import Deque, Dict, List, Tuple

import structlog

from airwatch.models.aircraft import AircraftSnapshot

logger = structlog.get_logger(__name__)

DEFAULT_HISTORY_SIZE = 50


class HistoryStore:
    """
    Bounded, ordered snapshot history keyed by ICAO address.

    Each aircraft keeps at most ``max_entries`` snapshots; appending beyond
    that evicts the oldest. Only ``update`` and ``prune`` mutate the store.

    Attributes:
        max_entries: Snapshots kept per aircraft.
        _entries: Deque of snapshots per ICAO address.
    """

    def __init__(self, max_entries: int = DEFAULT_HISTORY_SIZE) -> None:
        self.max_entries = max_entries
        self._entries: Dict[str, Deque[AircraftSnapshot]] = {}

    def update(self, snapshot: AircraftSnapshot) -> Tuple[AircraftSnapshot, ...]:
        """
        Append a snapshot to its aircraft's history.

        Args:
            snapshot: The newest snapshot of an aircraft.

        Returns:
            Tuple[AircraftSnapshot, ...]: The aircraft's history including
                the new snapshot as its last element. The tuple is a copy;
                later updates do not change it.
        """
        entries = self._entries.get(snapshot.icao24)
        if entries is None:
            entries = deque(maxlen=self.max_entries)
            self._entries[snapshot.icao24] = entries
        entries.append(snapshot)
        return tuple(entries)

    def get(self, icao24: str) -> Tuple[AircraftSnapshot, ...]:
        """Return a copy of an aircraft's history (empty if untracked)."""
        return tuple(self._entries.get(icao24, ()))

    def prune(self, cutoff: int) -> int:
        """
        Drop snapshots older than a cutoff.

        Aircraft whose filtered history is empty are removed entirely.

        Args:
            cutoff: Epoch milliseconds; snapshots with an earlier timestamp
                are dropped.

        Returns:
            int: Number of aircraft removed.
        """
        removed = 0
        for icao24 in list(self._entries):
            kept = [s for s in self._entries[icao24] if s.timestamp >= cutoff]
            if kept:
                self._entries[icao24] = deque(kept, maxlen=self.max_entries)
            else:
                del self._entries[icao24]
                removed += 1

        if removed:
            logger.debug("history_pruned", aircraft_removed=removed, cutoff=cutoff)
        return removed

    def clear(self) -> None:
        self._entries.clear()

    def aircraft_ids(self) -> List[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, icao24: object) -> bool:
        return icao24 in self._entries
