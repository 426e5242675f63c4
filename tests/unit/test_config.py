"""Unit tests for runtime configuration."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from streamdeck_runtime import PluginConfig, RegistrationInfo


class TestRegistrationInfo:
    """Tests for parsing the -info argument."""

    def test_from_json(self, registration_info):
        info = RegistrationInfo.from_json(json.dumps(registration_info))

        assert info.application.platform == "mac"
        assert info.application.platform_version == "11.4.0"
        assert info.plugin.uuid == "com.elgato.counter"
        assert info.device_pixel_ratio == 2
        assert info.colors["highlightColor"] == "#F7821BFF"
        assert len(info.devices) == 2
        assert info.devices[0].size.columns == 5

    def test_device_lookup(self, registration_info):
        info = RegistrationInfo.from_json(json.dumps(registration_info))

        device = info.device("B8F04425B95855CF417199BCB97CD2BB")

        assert device is not None
        assert device.name == "Another Device"
        assert info.device("missing") is None

    def test_minimal(self):
        """Every section is optional."""
        info = RegistrationInfo.from_json("{}")

        assert info.devices == []
        assert info.device_pixel_ratio == 1

    def test_describe(self, registration_info):
        info = RegistrationInfo.from_json(json.dumps(registration_info))

        assert info.describe() == "mac 11.4.0, app 5.0.0.14247, 2 device(s)"

    @pytest.mark.parametrize("text", ["not json", '{"devices": [{"name": "x"}]}'])
    def test_invalid(self, text):
        with pytest.raises(ValidationError):
            RegistrationInfo.from_json(text)


class TestPluginConfig:
    """Tests for PluginConfig."""

    def test_url(self, config):
        assert config.url == "ws://localhost:12345"

    def test_defaults(self, config):
        assert config.queue_size == 16
        assert config.info == RegistrationInfo()

    def test_custom_host(self):
        config = PluginConfig(port=8080, plugin_uuid="u", register_event="r", host="127.0.0.1")

        assert config.url == "ws://127.0.0.1:8080"
