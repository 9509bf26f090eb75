"""
Tests for the tag-XL decoder.
"""

from datetime import datetime, timedelta, timezone

import pytest

from tracker_decoder.errors import (PayloadTooShort, PortNotSupported, SolverFailed,
                                    UnknownTag, caused_by)
from tracker_decoder.features import AccessPoint, DataRate, Feature, RotationState
from tracker_decoder.solver.base import MockSolverV1, MockSolverV2
from tracker_decoder.solver.errors import RequestFailed
from tracker_decoder.tagxl import Port152Payload, TagXLDecoder
from tracker_decoder.uplink import DecodedUplink


DEV_EUI = '927da4b72110927d'


@pytest.fixture
def decoder():
    return TagXLDecoder()


def _uplink(*features):
    return DecodedUplink(features, object())


class TestPort150:
    """Device time."""

    def test_timestamp(self, decoder):
        uplink = decoder.decode('4c07014c04681a4727', 150)
        assert uplink.data.get_timestamp() == datetime(2025, 5, 6, 17, 30, 15, tzinfo=timezone.utc)
        assert uplink.features == [Feature.TIMESTAMP]


class TestPort151:
    """Tagged device settings."""

    def test_battery(self, decoder):
        uplink = decoder.decode('4c050145020a92', 151)
        assert uplink.data.get_battery_voltage() == pytest.approx(2.706)
        assert uplink.features == [Feature.BATTERY]

    def test_settings(self, decoder):
        payload = ('4c1a07'
                   + '40010e'
                   + '41040078012c'
                   + '420400c80064'
                   + '430118'
                   + '4e0102'
                   + '4604deadbeef'
                   + '470103')
        uplink = decoder.decode(payload, 151)
        data = uplink.data
        assert data.get_acceleration() is True
        assert data.get_wifi() is True
        assert data.get_gnss() is True
        assert data.firmware_upgrade is False
        assert data.get_moving_interval() == 120
        assert data.get_steady_interval() == 300
        assert data.get_accelerometer_threshold() == 200
        assert data.get_accelerometer_delay() == 100
        assert data.get_config_interval() == 24
        assert data.get_data_rate() is DataRate.QUICK
        assert data.get_firmware_hash() == 'deadbeef'
        assert data.rotation_invert is True
        assert data.rotation_confirmed is True
        assert data.get_battery_voltage() is None
        assert uplink.features == [Feature.CONFIG, Feature.FIRMWARE_VERSION]

    def test_diagnostics(self, decoder):
        data = decoder.decode('4c0c03' + '4902000a' + '4a0400000004' + '4b0400030005', 151).data
        assert data.reset_count == 10
        assert data.reset_cause == 4
        assert (data.gnss_scans, data.wifi_scans) == (3, 5)

    def test_unknown_tag(self, decoder):
        with pytest.raises(UnknownTag) as exc:
            decoder.decode('4c0501ff020000', 151)
        assert exc.value.tag == 0xff

    def test_wrong_marker(self, decoder):
        with pytest.raises(PortNotSupported) as exc:
            decoder.decode('4d050145020a92', 151)
        assert 'port 151 tag 4d not supported' in str(exc.value)


class TestPort152:
    """Rotation events."""

    def test_version1(self, decoder):
        uplink = decoder.decode('010B1066ACBE0C00A200000087', 152)
        data = uplink.data
        assert isinstance(data, Port152Payload)
        assert data.get_old_rotation_state() is RotationState.MIXING
        assert data.get_new_rotation_state() is RotationState.UNDEFINED
        assert data.get_timestamp() == datetime.fromtimestamp(0x66ACBE0C, tz=timezone.utc)
        assert data.get_rotations() == pytest.approx(16.2)
        assert data.get_duration() == timedelta(seconds=135)
        assert data.get_sequence_number() is None
        assert uplink.features == [Feature.ROTATION_STATE, Feature.TIMESTAMP]

    def test_version2(self, decoder):
        uplink = decoder.decode('020c62206822f120000d00000024', 152)
        data = uplink.data
        assert data.get_sequence_number() == 98
        assert data.get_old_rotation_state() is RotationState.POURING
        assert data.get_new_rotation_state() is RotationState.UNDEFINED
        assert data.get_rotations() == pytest.approx(1.3)
        assert data.get_duration() == timedelta(seconds=36)
        assert uplink.features == [Feature.SEQUENCE_NUMBER, Feature.ROTATION_STATE,
                                   Feature.TIMESTAMP]

    def test_too_short(self, decoder):
        with pytest.raises(PayloadTooShort):
            decoder.decode('01adbeef', 152)

    def test_unknown_version(self, decoder):
        with pytest.raises(PortNotSupported) as exc:
            decoder.decode('030c62206822f120000d00000024', 152)
        assert 'version 3 for port 152 not supported' in str(exc.value)

    def test_state_label(self, decoder):
        data = decoder.decode('010B1066ACBE0C00A200000087', 152).data
        assert data.get_old_rotation_state().label == 'mixing'


class TestWiFiPorts:
    """Versioned Wi-Fi scans."""

    def test_port197_macs(self, decoder):
        uplink = decoder.decode('003385f8ee30c2', 197)
        assert uplink.data.get_access_points() == [AccessPoint('3385f8ee30c2', None)]
        assert uplink.data.is_moving() is False
        assert uplink.features == [Feature.WIFI, Feature.MOVING]

    def test_port197_rssi(self, decoder):
        uplink = decoder.decode('01d63385f8ee30c2', 197)
        assert uplink.data.get_access_points() == [AccessPoint('3385f8ee30c2', -42)]

    def test_port198_moving(self, decoder):
        assert decoder.decode('01d63385f8ee30c2', 198).data.is_moving() is True

    def test_unknown_version(self, decoder):
        with pytest.raises(PortNotSupported):
            decoder.decode('053385f8ee30c2', 197)

    def test_port201_rssi(self, decoder):
        payload = ('68bae3ab01d3f0b0140c96bbc7e4c32a622ea4c5e0286d8a9478b4e0286d8aab'
                   'fcada86e84e1a812')
        uplink = decoder.decode(payload, 201)
        data = uplink.data
        assert [ap.rssi for ap in data.get_access_points()] == [-45, -57, -59, -76, -83]
        assert data.get_access_points()[0].mac == 'f0b0140c96bb'
        assert data.is_moving() is True
        assert data.get_timestamp() == datetime.fromtimestamp(0x68bae3ab, tz=timezone.utc)
        # captured long before the test run
        assert data.is_buffered() is True
        assert uplink.features == [Feature.WIFI, Feature.MOVING, Feature.TIMESTAMP,
                                   Feature.BUFFERED]

    def test_port200_fresh_not_buffered(self, decoder):
        now = int(datetime.now(timezone.utc).timestamp())
        payload = f'{now:08x}' + '00' + '3385f8ee30c2'
        uplink = decoder.decode(payload, 200)
        assert uplink.data.is_buffered() is False
        assert Feature.BUFFERED not in uplink
        assert uplink.data.is_moving() is False

    def test_port213_never_buffered(self, decoder):
        uplink = decoder.decode('68bae3ab' + '01' + 'd6' + '3385f8ee30c2', 213)
        assert uplink.features == [Feature.WIFI, Feature.MOVING, Feature.TIMESTAMP]
        assert not hasattr(uplink.data, 'is_buffered')

    def test_header_too_short(self, decoder):
        with pytest.raises(PayloadTooShort):
            decoder.decode('68bae3', 212)


class TestSolverRouting:
    """GNSS ports forwarded to position solvers."""

    @pytest.mark.parametrize('port,moving', [
        (192, False), (193, True), (199, None),
    ])
    def test_v2_moving_state(self, port, moving):
        solver = MockSolverV2(_uplink(Feature.GNSS))
        TagXLDecoder(solver_v2=solver).decode('aabbcc', port, DEV_EUI, 5)
        payload, options = solver.last
        assert payload == 'aabbcc'
        assert options.moving is moving
        assert options.timestamp is None
        assert options.port == 192
        assert options.uplink_counter == 5
        assert options.dev_eui == DEV_EUI

    def test_v2_uplink_counter_wraps(self):
        solver = MockSolverV2(_uplink(Feature.GNSS))
        TagXLDecoder(solver_v2=solver).decode('aabbcc', 192, DEV_EUI, 0x10002)
        assert solver.last[1].uplink_counter == 2

    @pytest.mark.parametrize('port,moving', [
        (194, False), (195, True), (210, False), (211, True),
    ])
    def test_v2_timestamp_prefix(self, port, moving):
        solver = MockSolverV2(_uplink(Feature.GNSS))
        TagXLDecoder(solver_v2=solver).decode('68bad325' + 'aabbcc', port, DEV_EUI, 1)
        payload, options = solver.last
        assert payload == 'aabbcc'
        assert options.timestamp == datetime(2025, 9, 5, 11, 30, 13, tzinfo=timezone.utc)
        assert options.moving is moving

    def test_v2_prefix_too_short(self):
        decoder = TagXLDecoder(solver_v2=MockSolverV2(_uplink()))
        with pytest.raises(PayloadTooShort):
            decoder.decode('68bad325', 210, DEV_EUI, 1)

    def test_v2_fallback(self, caplog):
        primary = MockSolverV2(error=RequestFailed('deadline exceeded'))
        result = _uplink(Feature.GNSS)
        fallback = MockSolverV2(result)
        decoder = TagXLDecoder(solver_v2=primary, fallback_solver_v2=fallback)
        assert decoder.decode('aabbcc', 192, DEV_EUI, 1) is result
        assert len(primary.calls) == 1
        assert len(fallback.calls) == 1
        assert 'using fallback' in caplog.text

    def test_v2_failure_chained(self):
        decoder = TagXLDecoder(solver_v2=MockSolverV2(error=RequestFailed()))
        with pytest.raises(SolverFailed) as exc:
            decoder.decode('aabbcc', 192, DEV_EUI, 1)
        assert caused_by(exc.value, RequestFailed)

    def test_v2_fallback_failure_chained(self):
        decoder = TagXLDecoder(solver_v2=MockSolverV2(error=RequestFailed()),
                               fallback_solver_v2=MockSolverV2(error=ValueError('boom')))
        with pytest.raises(SolverFailed) as exc:
            decoder.decode('aabbcc', 192, DEV_EUI, 1)
        assert caused_by(exc.value, ValueError)

    def test_v1_solver(self):
        result = _uplink(Feature.GNSS)
        solver = MockSolverV1(result)
        assert TagXLDecoder(solver=solver).decode('aabbcc', 193, DEV_EUI, 9) is result
        assert solver.calls == [('aabbcc', DEV_EUI, 9, 193)]

    def test_v1_fallback(self):
        result = _uplink(Feature.GNSS)
        decoder = TagXLDecoder(solver=MockSolverV1(error=RequestFailed()),
                               fallback_solver=MockSolverV1(result))
        assert decoder.decode('aabbcc', 192, DEV_EUI, 1) is result

    @pytest.mark.parametrize('port', [194, 195, 210, 211])
    def test_timestamped_needs_v2(self, port):
        decoder = TagXLDecoder(solver=MockSolverV1(_uplink()))
        with pytest.raises(PortNotSupported) as exc:
            decoder.decode('68bad325aabbcc', port, DEV_EUI, 1)
        assert f'port {port} not supported without v2 solver' in str(exc.value)

    def test_no_solver(self, decoder):
        with pytest.raises(PortNotSupported):
            decoder.decode('aabbcc', 192, DEV_EUI, 1)

    def test_v2_preferred(self):
        v1 = MockSolverV1(_uplink())
        v2 = MockSolverV2(_uplink())
        TagXLDecoder(solver=v1, solver_v2=v2).decode('aabbcc', 192, DEV_EUI, 1)
        assert v1.calls == []
        assert len(v2.calls) == 1
