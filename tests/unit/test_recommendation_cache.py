"""
Unit tests for the recommendation cache.
"""

import pytest

from neuroforge.delivery.cache import ALL_UNITS_KEY, RecommendationCache, constraint_key


@pytest.fixture
def cache():
    return RecommendationCache(max_entries=4)


class TestConstraintKey:
    def test_none_means_all_units(self):
        assert constraint_key(None) == ALL_UNITS_KEY

    def test_order_and_duplicates_ignored(self):
        assert constraint_key(["b", "a", "b"]) == constraint_key(["a", "b"]) == frozenset({"a", "b"})

    def test_ids_containing_separators_stay_distinct(self):
        assert constraint_key(["a", "b"]) != constraint_key(["a,b"])
        assert constraint_key(["*"]) != ALL_UNITS_KEY
        assert constraint_key([]) != ALL_UNITS_KEY


class TestGetPut:
    def test_miss_then_hit(self, cache):
        assert cache.get("u1") is None
        assert cache.put("u1", ALL_UNITS_KEY, ["a", "b"])
        assert cache.get("u1") == ("a", "b")
        assert cache.get("u1") == ("a", "b")
        assert cache.hits == 2
        assert cache.misses == 1

    def test_keys_are_independent(self, cache):
        cache.put("u1", ALL_UNITS_KEY, ["a", "b"])
        cache.put("u1", constraint_key(["a"]), ["a"])
        cache.put("u2", ALL_UNITS_KEY, ["c"])
        assert cache.get("u1", constraint_key(["a"])) == ("a",)
        assert cache.get("u2") == ("c",)

    def test_entry_records_generation(self, cache, day0):
        cache.put("u1", ALL_UNITS_KEY, ["a"], computed_at=day0)
        entry = cache.get_entry("u1")
        assert entry.computed_at == day0
        assert entry.generation == cache.generation("u1")

    def test_lru_eviction(self, cache):
        for n in range(4):
            cache.put(f"u{n}", ALL_UNITS_KEY, [str(n)])
        cache.get("u0")
        cache.put("u4", ALL_UNITS_KEY, ["4"])

        assert len(cache) == 4
        assert cache.get("u1") is None
        assert cache.get("u0") == ("0",)

    def test_max_entries_must_be_positive(self):
        with pytest.raises(ValueError):
            RecommendationCache(max_entries=0)


class TestInvalidation:
    def test_invalidate_drops_every_key_of_learner(self, cache):
        cache.put("u1", ALL_UNITS_KEY, ["a"])
        cache.put("u1", constraint_key(["a", "b"]), ["b"])
        cache.put("u2", ALL_UNITS_KEY, ["c"])

        assert cache.invalidate("u1") == 2
        assert cache.get("u1") is None
        assert cache.get("u1", constraint_key(["a", "b"])) is None
        assert cache.get("u2") == ("c",)

    def test_invalidate_is_idempotent(self, cache):
        cache.put("u1", ALL_UNITS_KEY, ["a"])
        assert cache.invalidate("u1") == 1
        assert cache.invalidate("u1") == 0
        assert cache.invalidate("never-seen") == 0

    def test_stale_put_discarded(self, cache):
        token = cache.generation("u1")
        cache.invalidate("u1")

        assert cache.put("u1", ALL_UNITS_KEY, ["old"], generation=token) is False
        assert cache.get("u1") is None

    def test_current_token_accepted(self, cache):
        cache.invalidate("u1")
        token = cache.generation("u1")
        assert cache.put("u1", ALL_UNITS_KEY, ["fresh"], generation=token) is True
        assert cache.get("u1") == ("fresh",)

    def test_invalidation_of_other_learner_keeps_token(self, cache):
        token = cache.generation("u1")
        cache.invalidate("u2")
        assert cache.put("u1", ALL_UNITS_KEY, ["a"], generation=token)

    def test_invalidate_all(self, cache):
        token = cache.generation("u3")
        cache.put("u1", ALL_UNITS_KEY, ["a"])
        cache.put("u2", ALL_UNITS_KEY, ["b"])

        cache.invalidate_all()
        assert len(cache) == 0
        # Learners without entries are covered too
        assert cache.put("u3", ALL_UNITS_KEY, ["c"], generation=token) is False


class TestGraphVersion:
    def test_same_version_hits(self, cache):
        cache.put("u1", ALL_UNITS_KEY, ["a"], graph_version=("store", 1))
        assert cache.get("u1", graph_version=("store", 1)) == ("a",)
        assert cache.get_entry("u1").graph_version == ("store", 1)

    def test_other_version_is_a_miss_and_dropped(self, cache):
        cache.put("u1", ALL_UNITS_KEY, ["a"], graph_version=("store", 1))
        cache.put("u1", constraint_key(["a"]), ["a"], graph_version=("store", 1))

        assert cache.get("u1", graph_version=("store", 2)) is None
        assert cache.misses == 1
        assert len(cache) == 1
        assert cache.invalidate("u1") == 1

    def test_version_not_checked_when_omitted(self, cache):
        cache.put("u1", ALL_UNITS_KEY, ["a"], graph_version=("store", 1))
        assert cache.get("u1") == ("a",)
