"""Tests for the bounded dedup window."""

import pytest

from rocketfeed.domain.dedup import DEFAULT_CAPACITY, DedupWindow


class TestDedupWindow:
    def test_default_capacity(self):
        window = DedupWindow()
        assert window.capacity == DEFAULT_CAPACITY == 50
        assert len(window) == 0

    def test_record_and_contains(self):
        window = DedupWindow(capacity=4)
        window.record("A")
        assert window.contains("A") is True
        assert window.contains("B") is False
        assert "A" in window

    def test_no_eviction_at_bound(self):
        window = DedupWindow(capacity=4)
        for mid in "ABCD":
            window.record(mid)
        assert window.snapshot() == ("A", "B", "C", "D")

    def test_bulk_eviction_keeps_most_recent_half(self):
        window = DedupWindow(capacity=4)
        for mid in "ABCDE":
            window.record(mid)
        assert window.snapshot() == ("D", "E")
        assert window.contains("A") is False
        assert window.contains("C") is False
        assert window.contains("E") is True

    def test_length_never_exceeds_bound(self):
        for capacity in (2, 3, 5, 50):
            window = DedupWindow(capacity=capacity)
            for i in range(200):
                window.record(f"m{i}")
                assert len(window) <= capacity

    def test_odd_capacity(self):
        window = DedupWindow(capacity=5)
        for mid in "ABCDEF":
            window.record(mid)
        assert window.snapshot() == ("E", "F")

    def test_recent_ids_survive_eviction(self):
        window = DedupWindow(capacity=50)
        for i in range(51):
            window.record(f"m{i}")
        assert len(window) == 25
        assert window.contains("m50") is True
        assert window.contains("m26") is True
        assert window.contains("m25") is False

    @pytest.mark.parametrize("capacity", [0, 1, -3])
    def test_rejects_tiny_capacity(self, capacity):
        with pytest.raises(ValueError, match="at least 2"):
            DedupWindow(capacity=capacity)
