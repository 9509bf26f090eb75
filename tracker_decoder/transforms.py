"""
transforms.py - Field transforms shared by the device port tables.

Transforms receive the raw wire value (an unsigned big-endian int, or a hex
string for hex fields) and return the attribute value. Each ``encode_*``
function is the inverse used by the encoder.
"""

from datetime import datetime, timedelta, timezone

from .binary import to_signed


# -----------------------------------------------------------------------------
# Status byte
# -----------------------------------------------------------------------------

def duty_cycle(v):
    return (v >> 7) & 0x01 == 1


def config_id(v):
    return (v >> 3) & 0x0F


def config_change(v):
    return (v >> 2) & 0x01 == 1


def moving(v):
    return v & 0x01 == 1


low_battery = moving


def encode_duty_cycle(v):
    return int(bool(v)) << 7


def encode_config_id(v):
    return (int(v) & 0x0F) << 3


def encode_config_change(v):
    return int(bool(v)) << 2


def encode_flag(v):
    return int(bool(v))


def bit(n):
    """Transform extracting bit ``n`` as a bool."""
    def get(v):
        return (v >> n) & 0x01 == 1
    return get


def encode_bit(n):
    def put(v):
        return int(bool(v)) << n
    return put


def bits(shift, mask):
    """Transform extracting ``(v >> shift) & mask``."""
    def get(v):
        return (v >> shift) & mask
    return get


def encode_bits(shift, mask):
    def put(v):
        return (int(v) & mask) << shift
    return put


high_nibble = bits(4, 0x0F)
low_nibble = bits(0, 0x0F)
high_word = bits(16, 0xFFFF)
low_word = bits(0, 0xFFFF)


# -----------------------------------------------------------------------------
# Scaled measurements
# -----------------------------------------------------------------------------

def coordinate(v):
    """Signed int32 micro-degrees."""
    return to_signed(v, 32) / 1_000_000


def encode_coordinate(v):
    return round(v * 1_000_000)


def decimetres(v):
    return v / 10


def encode_decimetres(v):
    return round(v * 10)


def millivolts(v):
    return v / 1000


def encode_millivolts(v):
    return round(v * 1000)


def centidegrees(v):
    """Signed int16 hundredths of a degree Celsius."""
    return to_signed(v, 16) / 100


def encode_centidegrees(v):
    return round(v * 100)


def half_units(v):
    return v / 2


def encode_half_units(v):
    return round(v * 2)


def signed_scale(bits_, divisor):
    """Signed ``bits_`` integer divided by ``divisor``."""
    def get(v):
        return to_signed(v, bits_) / divisor
    return get


def encode_scale(factor):
    def put(v):
        return round(v * factor)
    return put


humidity = half_units
pdop = half_units
pressure = decimetres
altitude = decimetres
battery = millivolts
photovoltaic = millivolts


# -----------------------------------------------------------------------------
# Time
# -----------------------------------------------------------------------------

def seconds(v):
    return timedelta(seconds=v)


def encode_seconds(v):
    return int(v.total_seconds())


def timestamp(v):
    return datetime.fromtimestamp(v, tz=timezone.utc)


def encode_timestamp(v):
    return int(v.timestamp())


ttf = seconds


def date_from_parts(year, month, day, hour, minute, second):
    """Combine GNSS date components (year after 2000) into a UTC datetime."""
    try:
        return datetime(2000 + year, month, day, hour, minute, second, tzinfo=timezone.utc)
    except ValueError:
        return None


# -----------------------------------------------------------------------------
# Text
# -----------------------------------------------------------------------------

def stacktrace_part(index):
    """Pick ``line:file:function`` component ``index`` of a hex-encoded trace."""
    def get(v):
        frags = bytes.fromhex(v).decode('utf-8', errors='replace').split(':')
        if len(frags) > index:
            return frags[index]
        return None
    return get


def ascii_text(v):
    """Hex-encoded, NUL-padded ASCII."""
    return bytes.fromhex(v).rstrip(b'\x00').decode('ascii', errors='replace')


def encode_ascii_text(v):
    return v.encode('ascii', errors='replace').hex()
