"""
gnssng.py - GNSS-NG group header and capture-time inference.

A GNSS-NG uplink starts with one header byte (end-of-group flag, reserved
bit, 6-bit group token) followed by U-GNSSLOC-NAV data. The NAV subframe's
hand-over word carries a 17-bit Z-count (time of week in 1.5 s steps) which
rolls over several times a week; the uplink receive time disambiguates it.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence

from .binary import decode_hex
from .errors import DecoderError


logger = logging.getLogger(__name__)

END_OF_GROUP_MASK = 0x80
RFU_MASK = 0x40
GROUP_TOKEN_MASK = 0x3F

LEAP_SECONDS = 18
NAV_TLV_TYPE = 0x01
NAV_PAGE_BYTES = 38
NAV_WORDS = 10
ZCOUNT_STEP = 1.5
# Z-count rollover interval, seconds
ROLLOVER_SECONDS = 196606.5
MAX_CAPTURE_AGE = timedelta(minutes=30)
WEEK = timedelta(days=7)


class GNSSNGError(DecoderError):
    kind = 'gnss-ng error'


class HeaderByteMissing(GNSSNGError):
    kind = 'gnss-ng header byte missing'


class NoCaptures(GNSSNGError):
    kind = 'no captures provided'


class InvalidTLVLength(GNSSNGError):
    kind = 'invalid TLV length'


class NeedAtLeastNBytesForNAV(GNSSNGError):
    kind = f'need at least {NAV_PAGE_BYTES} bytes for NAV page'


class ZCountDecodeFailed(GNSSNGError):
    kind = 'zcount decode'


@dataclass(frozen=True)
class GNSSNGHeader:
    end_of_group: bool
    reserved: int
    group_token: int


def decode_header(payload: bytes) -> GNSSNGHeader:
    if len(payload) < 1:
        raise HeaderByteMissing()
    b = payload[0]
    return GNSSNGHeader(
        end_of_group=(b & END_OF_GROUP_MASK) != 0,
        reserved=(b & RFU_MASK) >> 6,
        group_token=b & GROUP_TOKEN_MASK,
    )


@dataclass(frozen=True)
class GNSSCapture:
    hex_payload: str
    received_at: datetime


def extract_words(data: bytes, count: int = NAV_WORDS) -> List[int]:
    """Read ``count`` consecutive 30-bit words, MSB first."""
    if len(data) < NAV_PAGE_BYTES:
        raise NeedAtLeastNBytesForNAV(f'got {len(data)}')
    bits = int.from_bytes(data[:NAV_PAGE_BYTES], 'big')
    total = NAV_PAGE_BYTES * 8
    words = []
    for i in range(count):
        shift = total - 30 * (i + 1)
        words.append((bits >> shift) & 0x3FFFFFFF)
    return words


def decode_zcount(nav: bytes) -> float:
    """Time of week in seconds from the hand-over word (word 1, bits 13..29)."""
    how = extract_words(nav)[1]
    return ((how >> 13) & 0x1FFFF) * ZCOUNT_STEP


def _nav_bytes(payload: bytes) -> bytes:
    if payload and payload[0] == NAV_TLV_TYPE:
        if len(payload) < 2 or len(payload) < 2 + payload[1]:
            raise InvalidTLVLength()
        return payload[2:2 + payload[1]]
    return payload


def _utc(instant: datetime) -> datetime:
    """``instant`` in UTC; naive values are taken as UTC."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def _week_start(instant: datetime) -> datetime:
    """Midnight UTC of the Sunday on or before ``instant``."""
    instant = _utc(instant)
    midnight = instant.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight - timedelta(days=(instant.weekday() + 1) % 7)


def solve_captured_at(captures: Sequence[GNSSCapture],
                      leap_seconds: int = LEAP_SECONDS) -> datetime:
    """
    Infer the UTC capture instant of a group of buffered GNSS-NG scans.

    Each capture yields candidate fixes for its Z-count; a candidate is
    accepted when it lies at most 30 minutes before the capture's receive
    time. The accepted candidate closest to its receive time wins. When
    nothing is accepted the receive time of the last capture is returned.
    """
    if not captures:
        raise NoCaptures()

    leap = timedelta(seconds=leap_seconds)
    best: Optional[datetime] = None
    best_error: Optional[timedelta] = None

    for capture in captures:
        payload = decode_hex(capture.hex_payload)
        try:
            tow = decode_zcount(_nav_bytes(payload))
        except NeedAtLeastNBytesForNAV as err:
            raise ZCountDecodeFailed() from err

        received_at = _utc(capture.received_at)
        gps_received = received_at + leap
        week_start = _week_start(gps_received)
        tow_received = (gps_received - week_start).total_seconds()

        best_n = 0
        min_diff = abs(tow_received - tow)
        for n in range(-3, 4):
            diff = abs(tow_received - (tow + n * ROLLOVER_SECONDS))
            if diff < min_diff:
                min_diff = diff
                best_n = n

        fix = week_start + timedelta(seconds=tow + best_n * ROLLOVER_SECONDS)
        for candidate in (fix, fix - WEEK, fix + WEEK):
            captured = candidate - leap
            error = received_at - captured
            logger.debug('%s: tow %.1fs -> candidate %s (diff %s, n=%d)',
                         capture.hex_payload, tow, captured.isoformat(), error, best_n)
            if timedelta(0) <= error <= MAX_CAPTURE_AGE:
                if best_error is None or error < best_error:
                    best = captured
                    best_error = error

    if best is not None:
        return best
    return _utc(captures[-1].received_at)
