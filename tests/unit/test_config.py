"""
Unit tests for application settings.
"""

from splitstats.config import Settings


class TestSettings:
    """Tests for Settings parsing and the exposed keys."""

    def test_cors_origins_are_split_and_trimmed(self):
        settings = Settings(cors_origins=" http://a.test , http://b.test,")

        assert settings.cors_origins == ["http://a.test", "http://b.test"]

    def test_only_consumed_development_flags_are_exposed(self):
        assert "debug" not in Settings.model_fields
        assert {"dev_mode", "testing"} <= set(Settings.model_fields)

    def test_top_performers_limit_defaults_to_five(self):
        assert Settings().top_performers_limit == 5
