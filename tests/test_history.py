"""Tests for the rolling per-aircraft history."""

from airwatch.detection.history import HistoryStore
from tests.conftest import BASE_TS, make_snapshot


class TestHistoryStore:
    """Bounded ordered history per aircraft"""

    def test_update_returns_history_with_current_last(self):
        history = HistoryStore(max_entries=10)
        first = make_snapshot(timestamp=BASE_TS)
        second = make_snapshot(timestamp=BASE_TS + 1000)

        assert history.update(first) == (first,)
        entries = history.update(second)

        assert entries == (first, second)
        assert entries[-1] is second

    def test_returned_history_is_a_copy(self):
        history = HistoryStore(max_entries=10)
        entries = history.update(make_snapshot(timestamp=BASE_TS))
        history.update(make_snapshot(timestamp=BASE_TS + 1000))

        assert len(entries) == 1

    def test_length_bounded_and_oldest_evicted(self):
        history = HistoryStore(max_entries=50)
        for i in range(60):
            history.update(make_snapshot(timestamp=BASE_TS + i * 1000))

        entries = history.get("4x1234")
        assert len(entries) == 50
        assert entries[0].timestamp == BASE_TS + 10 * 1000
        assert entries[-1].timestamp == BASE_TS + 59 * 1000

    def test_aircraft_are_tracked_separately(self):
        history = HistoryStore()
        history.update(make_snapshot(icao24="aaa111"))
        history.update(make_snapshot(icao24="bbb222"))
        history.update(make_snapshot(icao24="bbb222", timestamp=BASE_TS + 1000))

        assert len(history) == 2
        assert len(history.get("aaa111")) == 1
        assert len(history.get("bbb222")) == 2
        assert history.get("ccc333") == ()

    def test_prune_drops_old_snapshots_and_empty_aircraft(self):
        history = HistoryStore()
        history.update(make_snapshot(icao24="old111", timestamp=BASE_TS))
        history.update(make_snapshot(icao24="mix222", timestamp=BASE_TS))
        history.update(make_snapshot(icao24="mix222", timestamp=BASE_TS + 60_000))

        removed = history.prune(BASE_TS + 30_000)

        assert removed == 1
        assert "old111" not in history
        assert [s.timestamp for s in history.get("mix222")] == [BASE_TS + 60_000]

    def test_prune_keeps_bound_after_rebuild(self):
        history = HistoryStore(max_entries=10)
        for i in range(10):
            history.update(make_snapshot(timestamp=BASE_TS + i * 1000))
        history.prune(BASE_TS)
        history.update(make_snapshot(timestamp=BASE_TS + 20_000))

        assert len(history.get("4x1234")) == 10

    def test_clear(self):
        history = HistoryStore()
        history.update(make_snapshot())
        history.clear()

        assert len(history) == 0
        assert history.aircraft_ids() == []
