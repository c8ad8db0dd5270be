"""Tests for the shared fingerprint registry."""

import threading

import pytest

from photodedup.dedup.registry import DuplicateRecordError, HashRegistry
from photodedup.records import ImageRecord
from tests.helpers.image_factory import hash_with_bits


def record(record_id, owner="F1"):
    return ImageRecord(id=record_id, store_id="S1", owner_id=owner, url=f"https://img/{record_id}.png")


class TestHashRegistry:
    def test_empty_registry_matches_nothing(self):
        registry = HashRegistry()
        assert registry.find_first_match(hash_with_bits(0), threshold=64) is None
        assert len(registry) == 0

    def test_classify_registers_on_miss(self):
        registry = HashRegistry()

        match = registry.classify(record("1"), hash_with_bits(0), threshold=1)

        assert match is None
        assert "1" in registry
        assert len(registry) == 1

    def test_classify_returns_match_without_registering(self):
        registry = HashRegistry()
        registry.classify(record("1"), hash_with_bits(0), threshold=1)

        match = registry.classify(record("2"), hash_with_bits(0), threshold=1)

        assert match is not None
        assert match.record.id == "1"
        assert "2" not in registry
        assert len(registry) == 1

    def test_distance_equal_to_threshold_registers(self):
        registry = HashRegistry()
        registry.classify(record("1"), hash_with_bits(0), threshold=3)

        assert registry.classify(record("2"), hash_with_bits(3), threshold=3) is None
        assert len(registry) == 2

    def test_distance_below_threshold_matches(self):
        registry = HashRegistry()
        registry.classify(record("1"), hash_with_bits(0), threshold=3)

        match = registry.classify(record("2"), hash_with_bits(2), threshold=3)

        assert match is not None and match.record.id == "1"

    def test_first_match_in_insertion_order(self):
        """The scan stops at the first qualifying entry, not the closest one."""
        registry = HashRegistry()
        registry.insert(record("far"), hash_with_bits(4))
        registry.insert(record("near"), hash_with_bits(1))

        match = registry.find_first_match(hash_with_bits(0), threshold=5)

        assert match.record.id == "far"

    def test_insert_same_id_twice_rejected(self):
        registry = HashRegistry()
        registry.insert(record("1"), hash_with_bits(0))

        with pytest.raises(DuplicateRecordError):
            registry.insert(record("1"), hash_with_bits(40))
        assert len(registry) == 1

    def test_entries_snapshot_is_detached(self):
        registry = HashRegistry()
        registry.insert(record("1"), hash_with_bits(0))

        snapshot = registry.entries()
        registry.insert(record("2"), hash_with_bits(40))

        assert [entry.record.id for entry in snapshot] == ["1"]
        assert [entry.record.id for entry in registry.entries()] == ["1", "2"]

    def test_entries_immutable(self):
        registry = HashRegistry()
        entry = registry.insert(record("1"), hash_with_bits(0))

        with pytest.raises(AttributeError):
            entry.record = record("2")  # type: ignore


class TestConcurrentClassify:
    def test_simultaneous_identical_fingerprints_register_once(self):
        """Scan and insert are one atomic step: concurrent twins never both register."""
        registry = HashRegistry()
        n_threads = 16
        barrier = threading.Barrier(n_threads)
        matches = []
        lock = threading.Lock()

        def worker(i):
            barrier.wait()
            match = registry.classify(record(str(i)), hash_with_bits(0), threshold=1)
            with lock:
                matches.append(match)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(n_threads)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(registry) == 1
        assert sum(1 for m in matches if m is None) == 1
        registered_id = registry.entries()[0].record.id
        assert all(m.record.id == registered_id for m in matches if m is not None)

    def test_concurrent_distinct_fingerprints_all_register(self):
        registry = HashRegistry()
        barrier = threading.Barrier(8)

        def worker(i):
            barrier.wait()
            # Bits 0..i set: pairwise distance >= 1, threshold 1 never matches
            registry.classify(record(str(i)), hash_with_bits(i), threshold=1)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(registry) == 8
