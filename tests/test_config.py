"""Tests for settings and logging configuration."""

import json
import logging

from skillswap.config import MatchingSettings, RatingSettings, Settings
from skillswap.logging_config import JsonFormatter, build_logging_config


class TestSettings:
    def test_defaults(self):
        s = Settings()
        assert s.matching.shared_online_bonus == 5.0
        assert s.matching.shared_offline_bonus == 3.0
        assert s.matching.strict_mode_compatibility is True
        assert s.ratings.review_min_length == 10
        assert s.ratings.review_max_length == 500
        assert s.chat.message_page_size == 50
        assert s.sessions.join_window_minutes == 15
        assert s.skills.fuzzy_threshold == 80

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("MATCHING_STRICT_MODE_COMPATIBILITY", "false")
        monkeypatch.setenv("MATCHING_SHARED_ONLINE_BONUS", "7.5")
        m = MatchingSettings()
        assert m.strict_mode_compatibility is False
        assert m.shared_online_bonus == 7.5

    def test_rating_env(self, monkeypatch):
        monkeypatch.setenv("RATING_MAX_TRUST_SCORE", "90")
        assert RatingSettings().max_trust_score == 90.0


class TestLoggingConfig:
    def test_json_formatter(self):
        record = logging.LogRecord("skillswap.test", logging.INFO, __file__, 1, "hello %s", ("world",), None)
        payload = json.loads(JsonFormatter().format(record))
        assert payload["message"] == "hello world"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "skillswap.test"

    def test_text_config_without_file(self):
        config = build_logging_config(level="debug", fmt="text", log_file="")
        assert config["root"]["level"] == "DEBUG"
        assert set(config["handlers"]) == {"console"}
        assert config["handlers"]["console"]["formatter"] == "text"

    def test_file_handler(self, tmp_path):
        log_file = str(tmp_path / "app.log")
        config = build_logging_config(level="INFO", fmt="json", log_file=log_file)
        assert config["handlers"]["file"]["filename"] == log_file
        assert config["handlers"]["file"]["formatter"] == "json"
