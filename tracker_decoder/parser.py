"""
parser.py - Declarative framed binary parser.

Decodes a hex payload against a PayloadConfig into a zero-initialised record
and encodes records back into hex.

Usage:
    from tracker_decoder.parser import parse

    result = parse('800ee5', config)
    if not result.success:
        print(result.error)
    record = result.record
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from . import fields as kinds
from .binary import decode_hex, encode_hex, int_to_bytes, read_field
from .errors import (PayloadTooLong, PayloadTooShort, UnknownTag,
                     ValidationErrors, ValidationFailed, join_errors)
from .features import Feature
from .payload import PayloadConfig


# layout marker, length and entry count precede the first tag
TAGGED_HEADER_SIZE = 3


@dataclass
class ParseResult:
    """Result of parsing one payload."""
    record: Any
    errors: List[ValidationFailed] = field(default_factory=list)
    # features contributed by the tags of a tagged layout
    features: List[Feature] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return len(self.errors) == 0

    @property
    def error(self) -> Optional[ValidationErrors]:
        return join_errors(self.errors)


def _assign(record, metas: Dict[str, Any], name: str, raw, transform,
            errors: List[ValidationFailed]) -> None:
    meta = metas[name].metadata
    value = kinds.coerce(meta, raw)
    if transform is not None:
        value = transform(raw)
    setattr(record, name, value)
    if not kinds.check(meta, value):
        errors.append(ValidationFailed(name, value))


def parse(payload: str, config: PayloadConfig) -> ParseResult:
    """
    Decode ``payload`` into a new ``config.record_type`` instance.

    Validation failures are collected on the result and never abort the
    parse. Invalid hex and reads past the end of a required field raise.
    """
    buf = decode_hex(payload)
    record = config.record_type()
    metas = kinds.record_fields(config.record_type)
    result = ParseResult(record)

    for fc in config.fields:
        raw = read_field(buf, fc.start, fc.length, fc.optional, fc.hex)
        if raw is None:
            continue
        _assign(record, metas, fc.name, raw, fc.transform, result.errors)

    if config.tagged:
        _parse_tags(buf, config, metas, result)

    return result


def _parse_tags(buf: bytes, config: PayloadConfig, metas, result: ParseResult) -> None:
    cursor = TAGGED_HEADER_SIZE
    while cursor + 2 < len(buf):
        tag = buf[cursor]
        length = buf[cursor + 1]
        value = buf[cursor + 2:cursor + 2 + length]

        matched = [tc for tc in config.tags if tc.tag == tag]
        if not matched:
            raise UnknownTag(tag)

        for tc in matched:
            raw = read_field(value, 0, len(value), tc.optional, tc.hex)
            if raw is None:
                continue
            _assign(result.record, metas, tc.name, raw, tc.transform, result.errors)
            for feature in tc.features:
                if feature not in result.features:
                    result.features.append(feature)

        cursor += 2 + length


def length_bounds(config: PayloadConfig):
    """Return ``(minimum, maximum)`` payload bytes; maximum is None when unbounded."""
    if config.tagged:
        return TAGGED_HEADER_SIZE, None

    minimum = 0
    maximum = 0
    unbounded = False
    for fc in config.fields:
        if fc.length == -1:
            unbounded = True
            end = fc.start
        else:
            end = fc.end
        if not fc.optional:
            minimum = max(minimum, end)
        maximum = max(maximum, end)
    return minimum, (None if unbounded else maximum)


def validate_length(payload: str, config: PayloadConfig) -> None:
    """Raise PayloadTooShort / PayloadTooLong when the payload cannot fit ``config``."""
    size = len(payload) // 2
    minimum, maximum = length_bounds(config)
    if size < minimum:
        raise PayloadTooShort(f'expected at least {minimum} bytes, got {size}')
    if maximum is not None and size > maximum:
        raise PayloadTooLong(f'expected at most {maximum} bytes, got {size}')


def hex_null_pad(payload: str, config: PayloadConfig) -> str:
    """Left-pad ``payload`` with zero nibbles up to the last required field."""
    required_bits = 0
    for fc in config.fields:
        if not fc.optional and fc.length != -1:
            required_bits = max(required_bits, fc.end * 8)
    nibbles = required_bits // 4
    if len(payload) < nibbles:
        payload = '0' * (nibbles - len(payload)) + payload
    return payload


def encode(record, config: PayloadConfig) -> str:
    """
    Encode ``record`` with the fields of ``config``.

    Each value is converted by the field's ``encode`` callable when set,
    otherwise by the natural inverse of its declared kind, and OR-ed into its
    byte slot so bit slices of one byte combine. None values are skipped.
    """
    if config.tagged:
        raise ValueError('tagged layouts cannot be encoded')

    metas = kinds.record_fields(config.record_type)
    out = bytearray()
    end = 0

    for fc in config.fields:
        val = getattr(record, fc.name)
        if val is None:
            continue
        meta = metas[fc.name].metadata
        wire = fc.encode(val) if fc.encode is not None else kinds.to_wire(meta, val)

        if isinstance(wire, str):
            chunk = decode_hex(wire)
            if fc.length != -1:
                chunk = chunk[:fc.length].ljust(fc.length, b'\x00')
        else:
            chunk = int_to_bytes(int(wire), fc.length, signed=meta.get('signed', False))

        stop = fc.start + len(chunk)
        if len(out) < stop:
            out.extend(b'\x00' * (stop - len(out)))
        for i, b in enumerate(chunk):
            out[fc.start + i] |= b
        end = max(end, stop)

    return encode_hex(bytes(out[:end]))
