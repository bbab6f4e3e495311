from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from sellify.services.quota_engine import QuotaEngine, QuotaLimits, QuotaUsage
from tests.conftest import FixedClock


def make_engine(clock=None, **limits):
    defaults = dict(messages_per_day=200, messages_per_week=1000, images_per_day=50, videos_per_week=20)
    defaults.update(limits)
    return QuotaEngine(QuotaLimits(**defaults), clock=clock or FixedClock(datetime(2026, 10, 14, 10, 0, tzinfo=timezone.utc)))


class TestAdmission:
    def test_can_send_when_under_quota(self):
        assert make_engine().can_send_message() is True

    def test_cannot_send_when_day_quota_reached(self):
        engine = make_engine(messages_per_day=2)
        engine.record_message()
        assert engine.can_send_message() is True
        engine.record_message()
        assert engine.can_send_message() is False

    def test_cannot_send_when_week_quota_reached(self):
        engine = make_engine(messages_per_day=10, messages_per_week=3)
        for _ in range(3):
            engine.record_message()
        assert engine.can_send_message() is False

    def test_scenario_daily_limit_200(self):
        engine = make_engine()
        engine.usage.messages_today = 200
        assert engine.can_send_message() is False

    def test_media_limits_are_separate(self):
        engine = make_engine(images_per_day=1, videos_per_week=1)
        engine.record_media(is_video=False)
        assert engine.can_send_media(is_video=False) is False
        assert engine.can_send_media(is_video=True) is True
        engine.record_media(is_video=True)
        assert engine.can_send_media(is_video=True) is False


class TestRecording:
    def test_get_usage_and_snapshot_reflect_records(self):
        engine = make_engine()
        engine.record_message()
        engine.record_media(is_video=True)

        usage = engine.get_usage()
        assert usage.messages_today == 1
        assert usage.videos_this_week == 1
        assert engine.snapshot().to_dict() == {
            "messages_today": 1,
            "messages_this_week": 1,
            "images_today": 0,
            "videos_this_week": 1,
        }

    def test_record_message_increments_both_counters(self):
        engine = make_engine()
        engine.record_message()
        assert engine.usage.messages_today == 1
        assert engine.usage.messages_this_week == 1

    def test_record_past_limit_is_not_rejected(self):
        engine = make_engine(messages_per_day=1)
        engine.record_message()
        engine.record_message()
        assert engine.usage.messages_today == 2

    def test_record_media_image_and_video(self):
        engine = make_engine()
        engine.record_media(is_video=False)
        engine.record_media(is_video=True)
        assert engine.usage.images_today == 1
        assert engine.usage.videos_this_week == 1
        assert engine.usage.messages_today == 0


class TestDelay:
    def test_delay_always_in_range(self):
        engine = make_engine()
        for used in (0, 100, 150, 199, 200, 250):
            engine.usage.messages_today = used
            for _ in range(50):
                assert 2 <= engine.calculate_delay() <= 24

    @patch("sellify.services.quota_engine.random.randint", return_value=5)
    def test_progressive_factor(self, _mock_randint):
        engine = make_engine(messages_per_day=100)
        engine.usage.messages_today = 10
        assert engine.calculate_delay() == 5
        engine.usage.messages_today = 50
        assert engine.calculate_delay() == 5
        engine.usage.messages_today = 51
        assert engine.calculate_delay() == 10
        engine.usage.messages_today = 80
        assert engine.calculate_delay() == 10
        engine.usage.messages_today = 81
        assert engine.calculate_delay() == 15

    @patch("sellify.services.quota_engine.random.randint", return_value=8)
    def test_zero_daily_limit_uses_max_factor(self, _mock_randint):
        engine = make_engine(messages_per_day=0)
        assert engine.calculate_delay() == 24


class TestResets:
    def test_reset_daily_keeps_weekly_counters(self):
        engine = make_engine()
        engine.record_message()
        engine.record_media(is_video=False)
        engine.record_media(is_video=True)

        engine.reset_daily()

        assert engine.usage.messages_today == 0
        assert engine.usage.images_today == 0
        assert engine.usage.messages_this_week == 1
        assert engine.usage.videos_this_week == 1

    def test_reset_weekly_keeps_daily_counters(self):
        engine = make_engine()
        engine.record_message()
        engine.record_media(is_video=True)
        engine.record_media(is_video=False)

        engine.reset_weekly()

        assert engine.usage.messages_this_week == 0
        assert engine.usage.videos_this_week == 0
        assert engine.usage.messages_today == 1
        assert engine.usage.images_today == 1

    def test_daily_limit_cycle(self):
        engine = make_engine(messages_per_day=3)
        for _ in range(3):
            engine.record_message()
        assert engine.can_send_message() is False
        engine.reset_daily()
        assert engine.can_send_message() is True
        assert engine.usage.messages_this_week == 3

    def test_reset_is_idempotent_and_stamps_last_reset(self):
        clock = FixedClock(datetime(2026, 10, 14, 10, 0, tzinfo=timezone.utc))
        engine = make_engine(clock=clock)
        engine.record_message()
        clock.now = clock.now + timedelta(hours=1)
        engine.reset_daily()
        engine.reset_daily()
        assert engine.usage.messages_today == 0
        assert engine.usage.last_reset == clock.now


class TestResetWindows:
    def test_no_daily_reset_same_day(self):
        assert make_engine().needs_daily_reset() is False

    def test_daily_reset_after_midnight(self):
        clock = FixedClock(datetime(2026, 10, 14, 23, 59, tzinfo=timezone.utc))
        engine = make_engine(clock=clock)
        clock.now = datetime(2026, 10, 15, 0, 0, 1, tzinfo=timezone.utc)
        assert engine.needs_daily_reset() is True

    def test_no_weekly_reset_same_week(self):
        clock = FixedClock(datetime(2026, 10, 12, 0, 30, tzinfo=timezone.utc))  # Monday
        engine = make_engine(clock=clock)
        clock.now = datetime(2026, 10, 18, 23, 0, tzinfo=timezone.utc)  # Sunday
        assert engine.needs_weekly_reset() is False

    def test_weekly_reset_next_monday(self):
        clock = FixedClock(datetime(2026, 10, 18, 23, 0, tzinfo=timezone.utc))
        engine = make_engine(clock=clock)
        clock.now = datetime(2026, 10, 19, 0, 0, 5, tzinfo=timezone.utc)
        assert engine.needs_weekly_reset() is True

    def test_weekly_reset_across_year_boundary(self):
        # 2026-12-30 is ISO week 53 of 2026; 2027-01-04 is week 1 of 2027
        clock = FixedClock(datetime(2026, 12, 30, 12, 0, tzinfo=timezone.utc))
        engine = make_engine(clock=clock)
        clock.now = datetime(2027, 1, 4, 9, 0, tzinfo=timezone.utc)
        assert engine.needs_weekly_reset() is True

    def test_same_iso_week_across_new_year_does_not_reset(self):
        # 2027-01-01 (Fri) and 2027-01-03 (Sun) both belong to ISO week 53 of 2026
        clock = FixedClock(datetime(2027, 1, 1, 12, 0, tzinfo=timezone.utc))
        engine = make_engine(clock=clock)
        clock.now = datetime(2027, 1, 3, 12, 0, tzinfo=timezone.utc)
        assert engine.needs_weekly_reset() is False

    def test_restored_usage_is_respected(self):
        usage = QuotaUsage(messages_today=5, last_reset=datetime(2026, 10, 1, tzinfo=timezone.utc))
        engine = QuotaEngine(QuotaLimits(), usage=usage, clock=FixedClock(datetime(2026, 10, 14, tzinfo=timezone.utc)))
        assert engine.usage.messages_today == 5
        assert engine.needs_daily_reset() is True
        assert engine.needs_weekly_reset() is True
