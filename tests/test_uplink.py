"""
Tests for the decoded uplink envelope and capability registry.
"""

import json
from datetime import datetime, timedelta, timezone

from tracker_decoder.errors import ValidationFailed
from tracker_decoder.features import (CAPABILITIES, AccessPoint, DataRate, Feature,
                                      ResetReason, RotationState)
from tracker_decoder.tagsl import TagSLDecoder
from tracker_decoder.uplink import DecodedUplink, to_jsonable


class TestDecodedUplink:
    """Feature membership and serialisation."""

    def test_features_deduplicated_in_order(self):
        uplink = DecodedUplink([Feature.GNSS, Feature.TIMESTAMP, Feature.GNSS], None)
        assert uplink.features == [Feature.GNSS, Feature.TIMESTAMP]

    def test_membership(self):
        uplink = DecodedUplink([Feature.BATTERY], None)
        assert uplink.is_(Feature.BATTERY)
        assert Feature.BATTERY in uplink
        assert not uplink.is_(Feature.WIFI)

    def test_implements(self):
        uplink = TagSLDecoder().decode('800ee5', 15)
        assert uplink.implements(Feature.BATTERY)
        assert not uplink.implements(Feature.GNSS)

    def test_every_feature_has_capability(self):
        assert set(CAPABILITIES) == set(Feature)

    def test_to_dict_is_json(self):
        uplink = TagSLDecoder().decode('8002cdcd1300744f5e166018040b14341a', 1)
        out = uplink.to_dict()
        assert out['features'][:3] == ['duty_cycle', 'config_change', 'moving']
        assert out['data']['altitude'] == 572.8
        assert 'errors' not in out
        json.dumps(out)

    def test_to_dict_errors(self):
        uplink = DecodedUplink([], None, [ValidationFailed('battery', 0.0)])
        assert uplink.to_dict()['errors'] == ['validation failed: for battery 0.0']

    def test_repr(self):
        assert repr(DecodedUplink([Feature.GNSS], 1)) == 'DecodedUplink([gnss], 1)'


class TestToJsonable:
    """Conversion of attribute values."""

    def test_scalars(self):
        ts = datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        assert to_jsonable(ts) == '2025-01-02T03:04:05+00:00'
        assert to_jsonable(timedelta(seconds=90)) == 90.0
        assert to_jsonable(ResetReason.WATCHDOG) == 'WATCHDOG'
        assert to_jsonable(DataRate.AUTOMATIC_WIDE) == 'automatic-wide'
        assert to_jsonable(RotationState.POURING) == 2

    def test_access_points(self):
        assert to_jsonable([AccessPoint('aabbccddeeff', -50)]) == \
            [{'mac': 'aabbccddeeff', 'rssi': -50}]


class TestEnums:
    """Code mappings."""

    def test_reset_reason_unknown(self):
        assert ResetReason.from_code(99) is ResetReason.UNKNOWN

    def test_rotation_state_out_of_range(self):
        assert RotationState.from_code(7) is RotationState.UNDEFINED

    def test_data_rate(self):
        assert DataRate.from_code(0) is DataRate.BLAZING
        assert DataRate.from_code(7) is DataRate.AUTOMATIC_WIDE
        assert DataRate.from_code(8) is None
