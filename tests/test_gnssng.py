"""
Tests for the GNSS-NG header and capture-time inference.
"""

from datetime import datetime, timedelta, timezone

import pytest

from tracker_decoder.errors import caused_by
from tracker_decoder.gnssng import (NAV_PAGE_BYTES, GNSSCapture, HeaderByteMissing,
                                    InvalidTLVLength, NeedAtLeastNBytesForNAV, NoCaptures,
                                    ZCountDecodeFailed, decode_header, decode_zcount,
                                    extract_words, solve_captured_at)


UTC = timezone.utc
RECEIVED = datetime(2025, 7, 11, 12, 42, 52, tzinfo=UTC)


def nav_page(zcount: int) -> str:
    """A 38 byte NAV page whose hand-over word carries ``zcount``."""
    how = zcount << 13
    bits = how << (NAV_PAGE_BYTES * 8 - 60)
    return bits.to_bytes(NAV_PAGE_BYTES, 'big').hex()


# GPS 2025-07-11 12:42:57 is 477777 s into the week (Z-count rolled over twice)
ZCOUNT_12_42_39 = 318518 % (1 << 17)
# ten minutes after the receive time
ZCOUNT_FUTURE = 318926 % (1 << 17)


class TestHeader:
    """Group header byte."""

    @pytest.mark.parametrize('payload,eog,token', [
        (b'\x80', True, 0),
        (b'\x1f', False, 31),
        (b'\x89\x00', True, 9),
        (b'\x3f', False, 63),
    ])
    def test_decode(self, payload, eog, token):
        header = decode_header(payload)
        assert header.end_of_group is eog
        assert header.group_token == token
        assert header.reserved == 0

    def test_reserved_bit(self):
        assert decode_header(b'\x40').reserved == 1

    def test_empty(self):
        with pytest.raises(HeaderByteMissing):
            decode_header(b'')


class TestNavWords:
    """30-bit word extraction."""

    def test_zcount(self):
        assert decode_zcount(bytes.fromhex(nav_page(1000))) == 1500.0

    def test_first_word(self):
        page = bytearray(NAV_PAGE_BYTES)
        page[0] = 0xFF
        assert extract_words(bytes(page))[0] == 0xFF << 22

    def test_short_page(self):
        with pytest.raises(NeedAtLeastNBytesForNAV):
            extract_words(b'\x00' * 37)


class TestSolveCapturedAt:
    """Capture time inference."""

    def test_recorded_captures(self):
        captures = [
            GNSSCapture('98abc1e9c5f51ad71802eb020af4ae7c155b8480b2c90b6eb22ad49e3e6521e0'
                        '89d0d078cc92dc7ba74b5d440ed41c584200',
                        datetime(2025, 7, 11, 12, 43, 4, tzinfo=UTC)),
            GNSSCapture('18bbc55f5caf798d21b02ea03cedca57558ef8d76d246d366b75aca9546ff99b'
                        '080d8dc62cdbb775509f8a01d91ccd9605',
                        datetime(2025, 7, 11, 12, 42, 52, tzinfo=UTC)),
        ]
        captured = solve_captured_at(captures)
        expected = datetime(2025, 7, 11, 12, 42, 39, tzinfo=UTC)
        assert abs(captured - expected) <= timedelta(minutes=10)

    def test_synthetic_capture(self):
        captured = solve_captured_at([GNSSCapture(nav_page(ZCOUNT_12_42_39), RECEIVED)])
        expected = datetime(2025, 7, 11, 12, 42, 39, tzinfo=UTC)
        assert abs(captured - expected) <= timedelta(seconds=5)
        assert captured <= RECEIVED

    def test_tlv_wrapped(self):
        page = '01' + f'{NAV_PAGE_BYTES:02x}' + nav_page(ZCOUNT_12_42_39)
        plain = solve_captured_at([GNSSCapture(nav_page(ZCOUNT_12_42_39), RECEIVED)])
        assert solve_captured_at([GNSSCapture(page, RECEIVED)]) == plain

    def test_future_capture_falls_back(self):
        captured = solve_captured_at([GNSSCapture(nav_page(ZCOUNT_FUTURE), RECEIVED)])
        assert captured == RECEIVED

    def test_fallback_uses_last_capture(self):
        later = RECEIVED + timedelta(seconds=5)
        captures = [GNSSCapture(nav_page(ZCOUNT_FUTURE), RECEIVED),
                    GNSSCapture(nav_page(ZCOUNT_FUTURE), later)]
        assert solve_captured_at(captures) == later

    def test_best_candidate_wins(self):
        captures = [GNSSCapture(nav_page(ZCOUNT_FUTURE), RECEIVED),
                    GNSSCapture(nav_page(ZCOUNT_12_42_39), RECEIVED)]
        assert solve_captured_at(captures) < RECEIVED

    def test_week_start_in_utc(self):
        # 00:28 UTC on a Sunday is 1698 s GPS time of week
        page = nav_page(1132)
        received = datetime(2025, 7, 6, 0, 30, tzinfo=UTC)
        eastern = received.astimezone(timezone(timedelta(hours=-5)))
        expected = datetime(2025, 7, 6, 0, 28, tzinfo=UTC)
        assert solve_captured_at([GNSSCapture(page, received)]) == expected
        assert solve_captured_at([GNSSCapture(page, eastern)]) == expected

    def test_naive_received_at_is_utc(self):
        received = datetime(2025, 7, 6, 0, 30)
        captured = solve_captured_at([GNSSCapture(nav_page(1132), received)])
        assert captured == datetime(2025, 7, 6, 0, 28, tzinfo=UTC)
        assert captured.tzinfo is not None

    def test_leap_seconds_shift(self):
        capture = GNSSCapture(nav_page(ZCOUNT_12_42_39), RECEIVED)
        default = solve_captured_at([capture])
        assert solve_captured_at([capture], leap_seconds=17) == default + timedelta(seconds=1)

    def test_no_captures(self):
        with pytest.raises(NoCaptures):
            solve_captured_at([])

    def test_short_payload(self):
        with pytest.raises(ZCountDecodeFailed) as exc:
            solve_captured_at([GNSSCapture('98abcd', RECEIVED)])
        assert caused_by(exc.value, NeedAtLeastNBytesForNAV)

    def test_invalid_tlv_length(self):
        with pytest.raises(InvalidTLVLength):
            solve_captured_at([GNSSCapture('0126abcd', RECEIVED)])
