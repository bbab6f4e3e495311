from datetime import datetime, timezone

from sellify.config import Settings, is_active_hours


def at(hour, minute=0):
    return datetime(2026, 10, 14, hour, minute, tzinfo=timezone.utc)


def make_settings(start, end, tz="UTC"):
    return Settings(_env_file=None, active_hours_start=start, active_hours_end=end, active_hours_timezone=tz)


class TestActiveHours:
    def test_daytime_window(self):
        config = make_settings("09:00", "18:00")
        assert is_active_hours(config, at(10, 30)) is True
        assert is_active_hours(config, at(9, 0)) is True
        assert is_active_hours(config, at(8, 59)) is False
        assert is_active_hours(config, at(18, 0)) is False

    def test_window_across_midnight(self):
        config = make_settings("22:00", "06:00")
        assert is_active_hours(config, at(23, 0)) is True
        assert is_active_hours(config, at(5, 0)) is True
        assert is_active_hours(config, at(12, 0)) is False

    def test_equal_bounds_means_always_active(self):
        config = make_settings("00:00", "00:00")
        assert is_active_hours(config, at(3, 0)) is True

    def test_timezone_is_applied(self):
        # 07:30 UTC is 09:30 in Paris during summer time
        config = make_settings("09:00", "18:00", tz="Europe/Paris")
        assert is_active_hours(config, at(7, 30)) is True
        assert is_active_hours(config, at(6, 30)) is False


class TestSettings:
    def test_defaults(self):
        config = Settings(_env_file=None)
        assert config.messages_per_day == 200
        assert config.messages_per_week == 1000
        assert config.images_per_day == 50
        assert config.videos_per_week == 20
        assert config.max_generated_length == 500
        assert config.max_misunderstandings == 3
        assert "AI" in config.forbidden_words

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("MESSAGES_PER_DAY", "50")
        assert Settings(_env_file=None).messages_per_day == 50
