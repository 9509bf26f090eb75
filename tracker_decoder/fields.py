"""
fields.py - Typed attribute declarations for decoded records.

Records are plain dataclasses. Each attribute is declared through one of the
helpers below so the parser knows how to coerce the raw wire value and which
validation bounds apply:

    @dataclass
    class Port15Payload:
        low_battery: bool = flag()
        battery: float = real(minimum=0)
        rssi: int = i8(minimum=-120, maximum=-20)

Optional attributes take ``default=None``.
"""

import dataclasses
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional


INT = 'int'
FLOAT = 'float'
STR = 'str'
BOOL = 'bool'
TIME = 'time'
DURATION = 'duration'
ANY = 'any'


def _field(kind: str, default: Any, **meta) -> Any:
    meta['kind'] = kind
    return dataclasses.field(default=default, metadata=meta)


def _int(bits: int, signed: bool, default, minimum, maximum):
    return _field(INT, default, bits=bits, signed=signed,
                  minimum=minimum, maximum=maximum)


def u8(default: Optional[int] = 0, minimum=None, maximum=None):
    return _int(8, False, default, minimum, maximum)


def i8(default: Optional[int] = 0, minimum=None, maximum=None):
    return _int(8, True, default, minimum, maximum)


def u16(default: Optional[int] = 0, minimum=None, maximum=None):
    return _int(16, False, default, minimum, maximum)


def i16(default: Optional[int] = 0, minimum=None, maximum=None):
    return _int(16, True, default, minimum, maximum)


def u32(default: Optional[int] = 0, minimum=None, maximum=None):
    return _int(32, False, default, minimum, maximum)


def u64(default: Optional[int] = 0, minimum=None, maximum=None):
    return _int(64, False, default, minimum, maximum)


def real(default: Optional[float] = 0.0, minimum=None, maximum=None):
    return _field(FLOAT, default, minimum=minimum, maximum=maximum)


def text(default: Optional[str] = '', max_length: Optional[int] = None):
    return _field(STR, default, max_length=max_length)


def flag(default: Optional[bool] = False):
    return _field(BOOL, default)


def instant(default: Optional[datetime] = None):
    return _field(TIME, default)


def duration(default: Optional[timedelta] = None):
    return _field(DURATION, default)


def value(default: Any = None):
    """Attribute whose value is always produced by a transform."""
    return _field(ANY, default)


def record_fields(record_type) -> Dict[str, dataclasses.Field]:
    return {f.name: f for f in dataclasses.fields(record_type)}


def coerce(meta, raw):
    """Convert a raw field value (int or hex string) to the declared kind."""
    kind = meta.get('kind', ANY)
    if kind == INT:
        if isinstance(raw, str):
            raw = int(raw, 16) if raw else 0
        bits = meta['bits']
        raw &= (1 << bits) - 1
        if meta['signed'] and raw & (1 << (bits - 1)):
            raw -= 1 << bits
        return raw
    if kind == FLOAT:
        return float(int(raw, 16) if isinstance(raw, str) else raw)
    if kind == STR:
        return raw if isinstance(raw, str) else str(raw)
    if kind == BOOL:
        if isinstance(raw, str):
            raw = int(raw, 16) if raw else 0
        return bool(raw & 0x01)
    if kind == TIME:
        return datetime.fromtimestamp(int(raw, 16) if isinstance(raw, str) else raw,
                                      tz=timezone.utc)
    if kind == DURATION:
        # raw integers are nanoseconds
        return timedelta(microseconds=(int(raw, 16) if isinstance(raw, str) else raw) / 1000)
    return raw


def check(meta, value) -> bool:
    """Evaluate the declared validation bounds; None always passes."""
    if value is None:
        return True
    minimum = meta.get('minimum')
    maximum = meta.get('maximum')
    if minimum is not None and value < minimum:
        return False
    if maximum is not None and value > maximum:
        return False
    max_length = meta.get('max_length')
    if max_length is not None and len(value) > max_length:
        return False
    return True


def to_wire(meta, value) -> Any:
    """Natural inverse of ``coerce`` used by the encoder."""
    kind = meta.get('kind', ANY)
    if kind == BOOL:
        return int(bool(value))
    if kind == TIME:
        return int(value.timestamp())
    if kind == DURATION:
        return int(value.total_seconds() * 1_000_000) * 1000
    if kind == FLOAT:
        return int(value)
    return value
