"""Daily streak arithmetic."""

from datetime import datetime, timedelta, timezone

from mindbreaker.gamification.streak_service import next_streak, utc_day

NOON = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


class TestNextStreak:
    def test_first_activity_starts_at_one(self):
        assert next_streak(0, None, NOON) == (1, True)

    def test_same_day_is_unchanged(self):
        assert next_streak(4, NOON.replace(hour=1), NOON.replace(hour=23)) == (4, False)

    def test_next_day_increments(self):
        assert next_streak(4, NOON, NOON + timedelta(days=1)) == (5, True)

    def test_just_after_midnight_counts_as_next_day(self):
        late = NOON.replace(hour=23, minute=59)
        early = (NOON + timedelta(days=1)).replace(hour=0, minute=1)
        assert next_streak(2, late, early) == (3, True)

    def test_gap_resets(self):
        assert next_streak(9, NOON, NOON + timedelta(days=2)) == (1, True)

    def test_clock_backwards_resets(self):
        assert next_streak(3, NOON, NOON - timedelta(days=1)) == (1, True)


class TestUTCDay:
    def test_offset_converted_to_utc(self):
        """23:30 at UTC-2 is already the next UTC day."""
        local = datetime(2026, 3, 10, 23, 30, tzinfo=timezone(timedelta(hours=-2)))
        assert utc_day(local).day == 11

    def test_naive_taken_as_utc(self):
        assert utc_day(datetime(2026, 3, 10, 23, 30)).day == 10
