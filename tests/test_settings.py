"""
Tests for YAML settings.
"""

from datetime import timedelta

import pytest

from tracker_decoder.settings import ACCESS_TOKEN_ENV, Settings, SettingsError
from tracker_decoder.solver.loracloud import SEMTECH_BASE_URL, TRAXMATE_BASE_URL


SETTINGS_YAML = """
loracloud:
  base_url: https://example.traxmate.test
  access_token: from-file
  buffered_threshold: 120
  timeout: 2.5
gnssng:
  leap_seconds: 19
decoder:
  strict: true
"""


@pytest.fixture
def settings_file(tmp_path):
    path = tmp_path / 'settings.yaml'
    path.write_text(SETTINGS_YAML)
    return path


class TestLoad:
    """Loading settings documents."""

    def test_load(self, settings_file):
        settings = Settings.load(settings_file, environ={})
        assert settings.loracloud.base_url == 'https://example.traxmate.test'
        assert settings.loracloud.access_token == 'from-file'
        assert settings.loracloud.buffered_threshold == 120
        assert settings.loracloud.timeout == 2.5
        assert settings.gnssng.leap_seconds == 19
        assert settings.decoder.strict is True
        assert settings.decoder.skip_validation is False

    def test_defaults(self):
        settings = Settings.from_dict(None, environ={})
        assert settings.loracloud.base_url == TRAXMATE_BASE_URL
        assert settings.loracloud.access_token == ''
        assert settings.loracloud.timeout == 5.0
        assert settings.gnssng.leap_seconds == 18

    def test_empty_section(self):
        settings = Settings.from_dict({'decoder': None}, environ={})
        assert settings.decoder.strict is False

    def test_environment_token(self, settings_file):
        settings = Settings.load(settings_file, environ={ACCESS_TOKEN_ENV: 'from-env'})
        assert settings.loracloud.access_token == 'from-env'

    def test_unknown_section(self):
        with pytest.raises(SettingsError) as exc:
            Settings.from_dict({'aws': {}}, environ={})
        assert 'unknown sections: aws' in str(exc.value)

    def test_unknown_key(self):
        with pytest.raises(SettingsError):
            Settings.from_dict({'loracloud': {'token': 'x'}}, environ={})

    def test_section_not_mapping(self):
        with pytest.raises(SettingsError):
            Settings.from_dict({'gnssng': 18}, environ={})

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / 'broken.yaml'
        path.write_text('loracloud: [unclosed\n')
        with pytest.raises(SettingsError):
            Settings.load(path, environ={})

    def test_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            Settings.load(tmp_path / 'absent.yaml')


class TestClients:
    """Solver clients built from settings."""

    def test_v1_client(self, settings_file):
        client = Settings.load(settings_file, environ={}).loracloud_client()
        assert client.base_url == 'https://example.traxmate.test'
        assert client.access_token == 'from-file'
        assert client.timeout == 2.5

    def test_v2_client(self, settings_file):
        client = Settings.load(settings_file, environ={}).loracloud_v2_client()
        assert client.buffered_threshold == timedelta(minutes=2)
        assert client.timeout == 2.5

    def test_semtech_warning(self, caplog):
        settings = Settings.from_dict({'loracloud': {'base_url': SEMTECH_BASE_URL}}, environ={})
        settings.loracloud_v2_client()
        assert 'sunsetting' in caplog.text
