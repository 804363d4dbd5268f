"""Leveling engine tests: level and progress come from one formula."""

import pytest

from mindbreaker.gamification.leveling import (
    XP_PER_LEVEL,
    compute_level,
    get_level_from_xp,
    get_level_progress,
    get_level_start_xp,
)


class TestLevelFromXP:
    def test_level_1_at_zero_xp(self):
        assert get_level_from_xp(0) == 1

    def test_boundary_999_xp(self):
        """999 XP is still level 1."""
        assert get_level_from_xp(999) == 1

    def test_level_2_at_1000_xp(self):
        assert get_level_from_xp(1000) == 2

    def test_level_4_at_3500_xp(self):
        assert get_level_from_xp(3500) == 4

    def test_negative_xp_rejected(self):
        with pytest.raises(ValueError, match="non-negative"):
            get_level_from_xp(-1)

    def test_monotonic(self):
        levels = [get_level_from_xp(xp) for xp in range(0, 10_000, 37)]
        assert levels == sorted(levels)
        assert min(levels) >= 1


class TestLevelProgress:
    def test_zero_progress_at_boundary(self):
        result = get_level_progress(2000)
        assert result["current_level_xp"] == 0
        assert result["required_xp"] == XP_PER_LEVEL
        assert result["percent"] == 0

    def test_half_way(self):
        assert get_level_progress(1500)["percent"] == pytest.approx(50.0)

    def test_almost_next_level(self):
        result = get_level_progress(1999)
        assert result["current_level_xp"] == 999
        assert result["percent"] == pytest.approx(99.9)

    def test_stale_cached_level_is_ignored(self):
        """A cached level that disagrees with total_xp cannot push percent out of range."""
        result = get_level_progress(2500, current_level=1)
        assert result["current_level_xp"] == 500
        assert result["percent"] == pytest.approx(50.0)

    @pytest.mark.parametrize("xp", [0, 1, 250, 999, 1000, 12_345, 10_000_000])
    def test_percent_in_range(self, xp):
        assert 0 <= get_level_progress(xp)["percent"] <= 100


class TestComputeLevel:
    def test_projection(self):
        result = compute_level(3500)
        assert result == {
            "level": 4,
            "xp_into_level": 500,
            "xp_for_level": 1000,
            "percent": pytest.approx(50.0),
            "next_level": 5,
            "next_level_xp": 4000,
        }

    def test_level_start_xp(self):
        assert get_level_start_xp(1) == 0
        assert get_level_start_xp(3) == 2000
