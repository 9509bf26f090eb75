"""
binary.py - Hex and byte-level helpers.

All multibyte integers on the wire are big-endian. ``read_field`` is the
single extraction primitive used by the parser.
"""

import binascii
import re
from typing import Optional, Union

from .errors import FieldOutOfBounds, FieldStartOutOfBounds, InvalidHex


FieldValue = Union[int, str]

_HEX_RE = re.compile(r'[0-9a-fA-F]*')


def decode_hex(payload: str) -> bytes:
    """Strict, case-insensitive hex decoding."""
    if len(payload) % 2:
        raise InvalidHex(f'odd length {len(payload)}')
    if not _HEX_RE.fullmatch(payload):
        raise InvalidHex(f'non-hex characters in {payload!r}')
    return bytes.fromhex(payload)


def encode_hex(data: bytes) -> str:
    return binascii.hexlify(data).decode('ascii')


def read_field(buf: bytes, start: int, length: int,
               optional: bool = False, hex: bool = False) -> Optional[FieldValue]:
    """
    Extract one field from ``buf``.

    ``length == -1`` reads to the end of the buffer. A slice past the end
    yields None for optional fields and raises FieldOutOfBounds (or
    FieldStartOutOfBounds for a to-end read) otherwise.
    Returns a lowercase hex string when ``hex`` is set, else the big-endian
    unsigned integer of the slice.
    """
    if length == -1:
        if start >= len(buf):
            if optional:
                return None
            raise FieldStartOutOfBounds(f'start {start} for buffer of {len(buf)} bytes')
        length = len(buf) - start
    elif start + length > len(buf):
        if optional:
            return None
        raise FieldOutOfBounds(
            f'need {length} bytes at offset {start}, got {len(buf)} bytes')

    data = buf[start:start + length]
    if hex:
        return encode_hex(data)
    return int.from_bytes(data, 'big')


def to_signed(value: int, bits: int) -> int:
    """Reinterpret the low ``bits`` of an unsigned integer as two's complement."""
    value &= (1 << bits) - 1
    if value & (1 << (bits - 1)):
        value -= 1 << bits
    return value


def int_to_bytes(value: int, length: int, signed: bool = False) -> bytes:
    """Big-endian encoding; signed values are written as two's complement."""
    if signed and value < 0:
        value += 1 << (length * 8)
    return (value & ((1 << (length * 8)) - 1)).to_bytes(length, 'big')
