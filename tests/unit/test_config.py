"""Tests for config.py: defaults, validation and token masking."""

from __future__ import annotations

import pytest

from coedit.config import CoeditConfig


class TestDefaults:
    def test_in_memory_setup_needs_no_arguments(self):
        config = CoeditConfig()
        assert config.write_strategy == "throttle"
        assert config.write_interval_seconds == 1.0
        assert config.flush_on_close is True
        assert config.metrics is None

    def test_https_remote_accepted(self):
        config = CoeditConfig(base_url="https://store.example.com/v1", token="secret-abcd")
        assert config.base_url == "https://store.example.com/v1"

    @pytest.mark.parametrize("host", ["localhost", "127.0.0.1"])
    def test_plain_http_allowed_for_local_hosts(self, host):
        CoeditConfig(base_url=f"http://{host}:9000/v1")


class TestValidation:
    def test_plain_http_rejected_for_remote_host(self):
        with pytest.raises(ValueError, match="insecure HTTP"):
            CoeditConfig(base_url="http://store.example.com/v1")

    @pytest.mark.parametrize(
        ("field", "value", "message"),
        [
            ("write_strategy", "batch", "write_strategy"),
            ("write_interval_seconds", -1.0, "write_interval_seconds"),
            ("poll_interval_seconds", 0.0, "poll_interval_seconds"),
            ("collection", "", "collection"),
            ("retry_max_attempts", 0, "retry_max_attempts"),
            ("retry_base_delay", -0.5, "retry_base_delay"),
            ("retry_max_delay", -1.0, "retry_max_delay"),
            ("rate_limit_rps", 0.0, "rate_limit_rps"),
            ("timeout_seconds", 0.0, "timeout_seconds"),
        ],
    )
    def test_invalid_values_rejected(self, field, value, message):
        with pytest.raises(ValueError, match=message):
            CoeditConfig(**{field: value})

    def test_zero_write_interval_allowed(self):
        assert CoeditConfig(write_interval_seconds=0.0).write_interval_seconds == 0.0


class TestRepr:
    def test_token_masked(self):
        text = repr(CoeditConfig(token="super-secret-9f3a"))
        assert "super-secret" not in text
        assert "token='...9f3a'" in text

    def test_short_token_fully_masked(self):
        assert "token='****'" in repr(CoeditConfig(token="abc"))

    def test_other_fields_shown(self):
        text = repr(CoeditConfig(collection="bulletins"))
        assert text.startswith("CoeditConfig(")
        assert "collection='bulletins'" in text
