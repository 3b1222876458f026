"""Tests for key-value storage and the persisted history buffer."""
import json
import threading
from datetime import timedelta

import numpy as np
import pytest

from soil_sense.history import HistoryStore, TimeRange
from soil_sense.simulator import RandomWalkGenerator
from soil_sense.storage import JsonFileStore, MemoryStore

from conftest import NOW, make_reading


def readings_every(hours, count, end=NOW):
    """`count` readings spaced `hours` apart, oldest first, the last at `end`."""
    return [make_reading(timestamp=end - timedelta(hours=hours * i), moisture=float(i))
            for i in range(count - 1, -1, -1)]


class TestMemoryStore:
    def test_missing_key_returns_default(self):
        assert MemoryStore().get_json("nope", []) == []

    def test_corrupt_json_returns_default(self):
        store = MemoryStore({"k": "{not json"})
        assert store.get_json("k", "fallback") == "fallback"

    def test_remove_missing_key_is_noop(self):
        MemoryStore().remove_item("nope")


class TestJsonFileStore:
    def test_values_survive_new_instance(self, tmp_path):
        path = tmp_path / "store.json"
        JsonFileStore(path).set_json("soil_history", [1, 2])
        assert JsonFileStore(path).get_json("soil_history") == [1, 2]

    def test_unreadable_file_treated_as_empty(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("garbage", encoding="utf-8")
        store = JsonFileStore(path)
        assert store.get_item("soil_history") is None
        store.set_item("soil_crop", "wheat")
        assert json.loads(path.read_text(encoding="utf-8")) == {"soil_crop": "wheat"}

    def test_remove_item(self, tmp_path):
        store = JsonFileStore(tmp_path / "store.json")
        store.set_item("a", "1")
        store.remove_item("a")
        assert store.get_item("a") is None

    def test_no_temp_files_left_behind(self, tmp_path):
        store = JsonFileStore(tmp_path / "store.json")
        for i in range(5):
            store.set_item("k", str(i))
        assert [p.name for p in tmp_path.iterdir()] == ["store.json"]


class TestHistoryBuffer:
    def test_append_persists_in_order(self, store):
        history = HistoryStore(store)
        for r in readings_every(1, 3):
            history.append(r)
        assert [r.moisture for r in history.get_all()] == [2.0, 1.0, 0.0]
        assert history.latest().timestamp == NOW

    def test_bounded_to_last_two_hundred(self, store):
        history = HistoryStore(store)
        readings = readings_every(0.1, 250)
        for r in readings:
            history.append(r)
        kept = history.get_all()
        assert len(kept) == 200
        assert kept == readings[-200:]

    def test_extend_truncates_once(self, store):
        history = HistoryStore(store, max_history=10)
        history.extend(readings_every(1, 25))
        assert len(history) == 10
        assert history.get_all()[0].moisture == 9.0

    def test_corrupt_store_reads_as_empty(self):
        history = HistoryStore(MemoryStore({"soil_history": "{broken"}))
        assert history.get_all() == []
        assert history.latest() is None

    def test_non_list_reads_as_empty(self):
        history = HistoryStore(MemoryStore({"soil_history": '{"a": 1}'}))
        assert history.get_all() == []

    def test_malformed_entries_dropped(self):
        good = make_reading().to_dict()
        history = HistoryStore(MemoryStore({"soil_history": json.dumps([good, {"moisture": 5}, "x"])}))
        assert history.get_all() == [make_reading()]

    def test_clear(self, store):
        history = HistoryStore(store)
        history.append(make_reading())
        history.clear()
        assert history.get_all() == []

    def test_to_frame(self, store):
        history = HistoryStore(store)
        history.extend(readings_every(1, 5))
        df = history.to_frame(TimeRange.ALL, now=NOW)
        assert len(df) == 5
        assert list(df["moisture"]) == [4.0, 3.0, 2.0, 1.0, 0.0]

    def test_to_frame_empty(self, store):
        df = HistoryStore(store).to_frame("daily", now=NOW)
        assert df.empty
        assert "moisture" in df.columns


class TestFiltering:
    @pytest.fixture
    def history(self, store):
        history = HistoryStore(store)
        history.extend(readings_every(12, 100))   # ~50 days
        return history

    def test_ranges_nest(self, history):
        daily = history.get_filtered("daily", now=NOW)
        weekly = history.get_filtered("weekly", now=NOW)
        monthly = history.get_filtered("monthly", now=NOW)
        everything = history.get_filtered("all", now=NOW)
        assert set(daily) <= set(weekly) <= set(monthly) <= set(everything)
        assert len(daily) < len(weekly) < len(monthly) < len(everything)

    def test_window_is_inclusive(self, history):
        daily = history.get_filtered(TimeRange.DAILY, now=NOW)
        assert [NOW - r.timestamp for r in daily] == [timedelta(hours=24), timedelta(hours=12), timedelta(0)]

    def test_unknown_range_means_all(self, history):
        assert history.get_filtered("fortnightly", now=NOW) == history.get_all()

    def test_parse(self):
        assert TimeRange.parse("Weekly") is TimeRange.WEEKLY
        assert TimeRange.parse(None) is TimeRange.ALL
        assert TimeRange.ALL.window is None


class TestSeeding:
    def generator(self):
        return RandomWalkGenerator(rng=np.random.default_rng(1))

    def test_empty_history_seeded(self, store):
        history = HistoryStore(store)
        assert history.seed(self.generator(), "rice", now=NOW) == 121
        assert len(history) == 121
        assert history.latest().timestamp == NOW

    def test_threshold_is_inclusive(self, store):
        history = HistoryStore(store)
        history.extend(readings_every(1, 40, end=NOW - timedelta(days=5)))
        assert history.seed(self.generator(), "rice", now=NOW) == 121
        assert len(history) == 161

    def test_populated_history_not_reseeded(self, store):
        history = HistoryStore(store)
        history.extend(readings_every(1, 41))
        before = history.get_all()
        assert history.seed(self.generator(), "rice", now=NOW) == 0
        assert history.get_all() == before

    def test_seeding_is_idempotent(self, store):
        history = HistoryStore(store)
        history.seed(self.generator(), "rice", now=NOW)
        assert history.seed(self.generator(), "rice", now=NOW) == 0
        assert len(history) == 121

    def test_backfill_goes_ahead_of_recent_entries(self, store):
        history = HistoryStore(store)
        recent = [make_reading(timestamp=NOW - timedelta(minutes=m), moisture=float(m)) for m in (5, 4, 3, 2, 1)]
        history.extend(recent)
        assert history.seed(self.generator(), "rice", now=NOW) == 121
        readings = history.get_all()
        stamps = [r.timestamp for r in readings]
        assert stamps == sorted(stamps)
        assert readings[-5:] == recent
        assert readings[120].timestamp == NOW - timedelta(minutes=35)
        assert history.latest() == recent[-1]


class TestConcurrentAppends:
    def test_file_store_keeps_every_append(self, tmp_path):
        history = HistoryStore(JsonFileStore(tmp_path / "store.json"))

        def writer(offset):
            for i in range(25):
                history.append(make_reading(moisture=float(offset * 100 + i)))

        workers = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
        for w in workers:
            w.start()
        for w in workers:
            w.join()
        assert len(history) == 100

    def test_update_json_is_read_modify_write(self):
        store = MemoryStore()
        store.set_json("n", 1)
        assert store.update_json("n", lambda v: v + 1, 0) == 2
        assert store.get_json("n") == 2
