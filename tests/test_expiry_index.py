"""Tests for the expiration bucket index."""

import pytest

from gas_options.errors import StateError
from gas_options.market import ExpiryIndex


@pytest.fixture
def index():
    idx = ExpiryIndex()
    idx.insert("alice", 110)
    idx.insert("bob", 105)
    idx.insert("carol", 110)
    return idx


class TestExpiryIndex:
    """Tests for bucket bookkeeping."""

    def test_buckets_group_by_block(self, index):
        assert index.bucket(110) == ("alice", "carol")
        assert index.bucket(105) == ("bob",)
        assert index.bucket(200) == ()
        assert len(index) == 3
        assert index.bucket_count == 2

    def test_duplicate_insert(self, index):
        with pytest.raises(StateError):
            index.insert("alice", 110)

    def test_remove(self, index):
        index.remove("alice", 110)
        assert index.bucket(110) == ("carol",)
        assert len(index) == 2

    def test_remove_missing(self, index):
        with pytest.raises(StateError):
            index.remove("alice", 105)

    def test_remove_last_deletes_bucket(self, index):
        index.remove("bob", 105)
        assert 105 not in index
        assert not index.is_due(105)

    def test_pop_bucket(self, index):
        assert index.pop_bucket(110) == ("alice", "carol")
        assert index.pop_bucket(110) == ()
        assert len(index) == 1


class TestFirstToExpire:
    """Tests for next-due discovery."""

    def test_earliest_bucket(self, index):
        assert index.first_at_or_after(100) == 105

    def test_skips_emptied_buckets(self, index):
        index.remove("bob", 105)
        assert index.first_at_or_after(100) == 110

    def test_skips_buckets_below_floor(self, index):
        assert index.first_at_or_after(106) == 110

    def test_missed_bucket_stays_addressable(self, index):
        """A bucket skipped by discovery can still be read and emptied."""
        assert index.first_at_or_after(106) == 110
        assert index.bucket(105) == ("bob",)
        index.remove("bob", 105)
        assert len(index) == 2

    def test_empty_index(self):
        assert ExpiryIndex().first_at_or_after(0) is None

    def test_nothing_after_floor(self, index):
        assert index.first_at_or_after(111) is None

    def test_reinsert_after_pop(self, index):
        index.pop_bucket(105)
        index.insert("dave", 105)
        assert index.first_at_or_after(100) == 105


class TestSnapshot:
    """Tests for rollback support."""

    def test_restore_popped_bucket(self, index):
        saved = index.snapshot([110])
        index.pop_bucket(110)
        index.restore(saved)
        assert index.bucket(110) == ("alice", "carol")
        assert len(index) == 3
        assert index.first_at_or_after(106) == 110

    def test_restore_removes_new_bucket(self, index):
        saved = index.snapshot([120])
        index.insert("dave", 120)
        index.restore(saved)
        assert 120 not in index
        assert len(index) == 3
