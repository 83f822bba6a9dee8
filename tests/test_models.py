"""Tests for configuration models."""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from fetchwrap.models import CallConfig, EffectiveRequestConfig, EndpointConfig, GlobalConfig


class TestGlobalConfig:
    """Tests for GlobalConfig defaults and validation."""

    def test_defaults(self):
        config = GlobalConfig()
        assert config.base_url == ""
        assert config.timeout_ms == 30000
        assert config.retry is False
        assert config.retry_count == 0
        assert config.timeout_retry is False
        assert config.cancel_repeated_requests is False
        assert config.credentials == "same-origin"
        assert config.error_debounce_ms == 2000

    def test_rejects_negative_counts(self):
        with pytest.raises(ValidationError):
            GlobalConfig(retry_count=-1)

    def test_rejects_zero_timeout(self):
        with pytest.raises(ValidationError):
            GlobalConfig(timeout_ms=0)

    def test_rejects_unknown_fields(self):
        with pytest.raises(ValidationError):
            GlobalConfig(retries=3)

    def test_rejects_unknown_credentials(self):
        with pytest.raises(ValidationError):
            GlobalConfig(credentials="always")


class TestGlobalConfigFromEnv:
    """Tests for GlobalConfig.from_env()."""

    def test_from_env_empty(self):
        """Should fall back to defaults when nothing is set."""
        with patch.dict(os.environ, {}, clear=True):
            config = GlobalConfig.from_env()
            assert config == GlobalConfig()

    def test_from_env_with_all_vars(self):
        env = {
            "FETCHWRAP_BASE_URL": "https://api.example.com",
            "FETCHWRAP_TIMEOUT_MS": "5000",
            "FETCHWRAP_TIMEOUT_RETRY": "true",
            "FETCHWRAP_TIMEOUT_RETRY_COUNT": "2",
            "FETCHWRAP_RETRY": "1",
            "FETCHWRAP_RETRY_COUNT": "3",
            "FETCHWRAP_RETRY_INTERVAL_MS": "250",
            "FETCHWRAP_CANCEL_REPEATED": "yes",
            "FETCHWRAP_DEBUG": "1",
        }
        with patch.dict(os.environ, env, clear=True):
            config = GlobalConfig.from_env()
            assert config.base_url == "https://api.example.com"
            assert config.timeout_ms == 5000
            assert config.timeout_retry is True
            assert config.timeout_retry_count == 2
            assert config.retry is True
            assert config.retry_count == 3
            assert config.retry_interval_ms == 250
            assert config.cancel_repeated_requests is True
            assert config.debug is True

    def test_from_env_false_flag(self):
        with patch.dict(os.environ, {"FETCHWRAP_RETRY": "0"}, clear=True):
            assert GlobalConfig.from_env().retry is False

    def test_from_env_malformed_timeout_raises(self):
        """Should raise ValueError when FETCHWRAP_TIMEOUT_MS is not an integer."""
        with patch.dict(os.environ, {"FETCHWRAP_TIMEOUT_MS": "soon"}, clear=True), pytest.raises(
            ValueError
        ):
            GlobalConfig.from_env()


class TestRequestOptions:
    """Tests for endpoint and call configuration."""

    def test_method_normalized(self):
        assert EndpointConfig(method="post").method == "POST"

    def test_empty_method_rejected(self):
        with pytest.raises(ValidationError):
            EndpointConfig(method="  ")

    def test_explicit_keeps_falsy_values(self):
        """Explicit False/0 are values, not absence."""
        call = CallConfig(retry=False, retry_count=0, path="x")
        assert call.explicit() == {"retry": False, "retry_count": 0, "path": "x"}

    def test_explicit_skips_none(self):
        assert CallConfig(retry=None).explicit() == {}

    def test_merged_overrides_win(self):
        base = CallConfig(path="a", retry=True, query={"x": 1})
        merged = base.merged(CallConfig(retry=False, query={"y": 2}))
        assert merged.path == "a"
        assert merged.retry is False
        assert merged.query == {"y": 2}

    def test_merged_with_none(self):
        base = CallConfig(path="a")
        assert base.merged(None) is base


class TestEffectiveRequestConfig:
    """Tests for EffectiveRequestConfig."""

    def test_signature(self):
        config = EffectiveRequestConfig(url="https://x/users?a=1", method="GET")
        assert config.signature == "https://x/users?a=1+GET"

    def test_frozen(self):
        config = EffectiveRequestConfig(url="https://x", method="GET")
        with pytest.raises(ValidationError):
            config.url = "https://y"

    def test_model_copy_derives_new_instance(self):
        config = EffectiveRequestConfig(url="https://x", method="GET")
        derived = config.model_copy(update={"headers": {"X-Trace": "1"}})
        assert derived.headers == {"X-Trace": "1"}
        assert config.headers == {}
