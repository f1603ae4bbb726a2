"""Tests for environment-driven settings."""

import pytest

from reunite.config import LEXICAL, SEMANTIC, Settings, get_settings
from reunite.errors import ConfigurationError


class TestSettings:
    def test_defaults(self):
        settings = Settings()

        assert settings.match_strategy == LEXICAL
        assert settings.min_score == 30
        assert settings.match_top_k == 3
        assert settings.notify_min_score == 60
        assert settings.match_approved_only is False

    def test_semantic_threshold(self):
        assert Settings(match_strategy=SEMANTIC).min_score == 60

    def test_explicit_threshold_wins(self):
        assert Settings(match_strategy=SEMANTIC, match_min_score=45).min_score == 45

    def test_unknown_strategy(self):
        with pytest.raises(ConfigurationError):
            Settings(match_strategy="fuzzy")

    def test_invalid_top_k(self):
        with pytest.raises(ConfigurationError):
            Settings(match_top_k=0)

    def test_invalid_claim_timeout(self):
        with pytest.raises(ConfigurationError):
            Settings(notify_claim_timeout=0)


class TestFromEnv:
    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("MATCH_STRATEGY", "Semantic")
        monkeypatch.setenv("MATCH_TOP_K", "5")
        monkeypatch.setenv("MATCH_APPROVED_ONLY", "true")
        monkeypatch.setenv("EMBEDDING_API_KEY", "sk-test")
        monkeypatch.setenv("CORS_ORIGINS", "http://a.test, http://b.test")
        monkeypatch.delenv("MATCH_MIN_SCORE", raising=False)

        settings = Settings.from_env()

        assert settings.match_strategy == SEMANTIC
        assert settings.min_score == 60
        assert settings.match_top_k == 5
        assert settings.match_approved_only is True
        assert settings.embedding_api_key == "sk-test"
        assert settings.cors_origins == ["http://a.test", "http://b.test"]

    def test_min_score_override(self, monkeypatch):
        monkeypatch.setenv("MATCH_MIN_SCORE", "50")

        assert Settings.from_env().min_score == 50

    def test_bad_integer(self, monkeypatch):
        monkeypatch.setenv("MATCH_TOP_K", "three")

        with pytest.raises(ConfigurationError):
            Settings.from_env()


class TestGetSettings:
    def test_loaded_once(self, monkeypatch):
        get_settings.cache_clear()
        try:
            monkeypatch.setenv("NOTIFY_CLAIM_TIMEOUT", "120")
            first = get_settings()
            monkeypatch.setenv("NOTIFY_CLAIM_TIMEOUT", "60")

            assert get_settings() is first
            assert first.notify_claim_timeout == 120
        finally:
            get_settings.cache_clear()
