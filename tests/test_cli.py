"""
Tests for the command line entry point.
"""

import json
from datetime import datetime, timedelta, timezone

import pytest

from tracker_decoder.cli import build_decoder, main
from tracker_decoder.gnssng import NAV_PAGE_BYTES
from tracker_decoder.nomadxs import NomadXSDecoder
from tracker_decoder.settings import Settings
from tracker_decoder.smartlabel import SmartLabelV2Decoder
from tracker_decoder.solver.loracloud_v2 import LoracloudV2Client
from tracker_decoder.tagxl import TagXLDecoder


class TestMain:
    """Decoding through main()."""

    def test_decode(self, capsys):
        assert main(['tagsl', '15', '800ee5']) == 0
        out = json.loads(capsys.readouterr().out)
        assert out['features'] == ['duty_cycle', 'config_change', 'battery']
        assert out['data']['battery'] == pytest.approx(3.813)

    def test_tagxl(self, capsys):
        assert main(['tagxl', '197', '01d63385f8ee30c2']) == 0
        out = json.loads(capsys.readouterr().out)
        assert out['data']['rssi1'] == -42

    def test_decode_error(self, capsys):
        assert main(['tagsl', '15', '80']) == 1
        assert capsys.readouterr().err.startswith('error: payload too short')

    def test_unsupported_port(self, capsys):
        assert main(['nomadxs', '99', '00']) == 1
        assert 'port not supported' in capsys.readouterr().err

    def test_strict(self, capsys):
        assert main(['tagsl', '15', '000000']) == 0
        capsys.readouterr()
        assert main(['tagsl', '15', '000000', '--strict']) == 1
        assert 'battery' in capsys.readouterr().err

    def test_skip_validation(self, capsys):
        assert main(['tagsl', '15', '800ee500', '--skip-validation']) == 0

    def test_config_file(self, tmp_path, capsys):
        path = tmp_path / 'settings.yaml'
        path.write_text('decoder:\n  strict: true\n')
        assert main(['tagsl', '15', '000000', '--config', str(path)]) == 1

    def test_missing_config(self, tmp_path, capsys):
        assert main(['tagsl', '15', '800ee5', '--config', str(tmp_path / 'none.yaml')]) == 1
        assert capsys.readouterr().err.startswith('error:')

    def test_unknown_device(self):
        with pytest.raises(SystemExit):
            main(['tagz', '15', '800ee5'])


class TestBuildDecoder:
    """Decoder construction from settings."""

    def test_without_token(self):
        settings = Settings.from_dict({}, environ={})
        assert isinstance(build_decoder('nomadxs', settings), NomadXSDecoder)
        tagxl = build_decoder('tagxl', settings)
        assert isinstance(tagxl, TagXLDecoder)
        assert tagxl.solver_v2 is None
        label = build_decoder('smartlabel', settings)
        assert isinstance(label, SmartLabelV2Decoder)
        assert label.solver_v2 is None

    def test_with_token(self):
        settings = Settings.from_dict({'loracloud': {'access_token': 'secret'}}, environ={})
        tagxl = build_decoder('tagxl', settings)
        assert isinstance(tagxl.solver_v2, LoracloudV2Client)
        assert tagxl.solver.access_token == 'secret'

    def test_unknown(self):
        with pytest.raises(ValueError):
            build_decoder('tagz', Settings.from_dict({}, environ={}))


def nav_page(zcount: int) -> str:
    bits = (zcount << 13) << (NAV_PAGE_BYTES * 8 - 60)
    return bits.to_bytes(NAV_PAGE_BYTES, 'big').hex()


# 12:42:39 UTC on 2025-07-11 in GPS Z-counts, modulo the 17 bit rollover
PAGE_12_42_39 = nav_page(318518 % (1 << 17))


class TestGNSSDebug:
    """Capture time inference from the command line."""

    def _run(self, capsys, *args):
        assert main(['gnss-debug', PAGE_12_42_39, *args]) == 0
        out = json.loads(capsys.readouterr().out)
        return datetime.fromisoformat(out['captured_at'])

    def test_captured_at(self, capsys):
        captured = self._run(capsys, '--received-at', '2025-07-11T12:42:52Z')
        expected = datetime(2025, 7, 11, 12, 42, 39, tzinfo=timezone.utc)
        assert abs(captured - expected) <= timedelta(seconds=5)

    def test_received_at_other_zone(self, capsys):
        utc = self._run(capsys, '--received-at', '2025-07-11T12:42:52+00:00')
        local = self._run(capsys, '--received-at', '2025-07-11T07:42:52-05:00')
        assert utc == local

    def test_leap_seconds_setting(self, tmp_path, capsys):
        path = tmp_path / 'settings.yaml'
        path.write_text('gnssng:\n  leap_seconds: 17\n')
        default = self._run(capsys, '-c', '2025-07-11T12:42:52Z')
        shifted = self._run(capsys, '-c', '2025-07-11T12:42:52Z', '--config', str(path))
        assert shifted - default == timedelta(seconds=1)

    def test_short_payload(self, capsys):
        assert main(['gnss-debug', '98abcd', '-c', '2025-07-11T12:42:52Z']) == 1
        assert capsys.readouterr().err.startswith('error:')

    def test_invalid_received_at(self):
        with pytest.raises(SystemExit):
            main(['gnss-debug', PAGE_12_42_39, '--received-at', 'yesterday'])
