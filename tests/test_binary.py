"""
Tests for hex and byte-level helpers.
"""

import pytest

from tracker_decoder.binary import decode_hex, encode_hex, int_to_bytes, read_field, to_signed
from tracker_decoder.errors import FieldOutOfBounds, FieldStartOutOfBounds, InvalidHex


class TestDecodeHex:
    """Tests for strict hex decoding."""

    def test_decode_mixed_case(self):
        assert decode_hex('0aFf') == b'\x0a\xff'

    def test_decode_empty(self):
        assert decode_hex('') == b''

    def test_odd_length_rejected(self):
        with pytest.raises(InvalidHex):
            decode_hex('abc')

    def test_non_hex_rejected(self):
        with pytest.raises(InvalidHex) as exc:
            decode_hex('zz')
        assert 'invalid hex payload' in str(exc.value)

    def test_invalid_hex_is_value_error(self):
        with pytest.raises(ValueError):
            decode_hex('0x')

    def test_encode_lowercase(self):
        assert encode_hex(b'\xAB\x01') == 'ab01'


class TestReadField:
    """Tests for the field extraction primitive."""

    BUF = bytes.fromhex('0102030405')

    def test_read_u16_big_endian(self):
        assert read_field(self.BUF, 1, 2) == 0x0203

    def test_read_hex(self):
        assert read_field(self.BUF, 0, 3, hex=True) == '010203'

    def test_read_to_end(self):
        assert read_field(self.BUF, 3, -1) == 0x0405

    def test_read_to_end_past_buffer(self):
        with pytest.raises(FieldStartOutOfBounds):
            read_field(self.BUF, 5, -1)

    def test_optional_read_to_end_absent(self):
        assert read_field(self.BUF, 5, -1, optional=True) is None

    def test_required_out_of_bounds(self):
        with pytest.raises(FieldOutOfBounds) as exc:
            read_field(self.BUF, 4, 2)
        assert 'offset 4' in str(exc.value)

    def test_optional_out_of_bounds(self):
        assert read_field(self.BUF, 4, 2, optional=True) is None


class TestIntegers:
    """Tests for signed conversion helpers."""

    @pytest.mark.parametrize('value,bits,expected', [
        (0xFF, 8, -1),
        (0x7F, 8, 127),
        (0x8000, 16, -32768),
        (0xD6, 8, -42),
        (0x1FF, 8, -1),
    ])
    def test_to_signed(self, value, bits, expected):
        assert to_signed(value, bits) == expected

    def test_int_to_bytes_unsigned(self):
        assert int_to_bytes(0x0102, 2) == b'\x01\x02'

    def test_int_to_bytes_negative(self):
        assert int_to_bytes(-2, 1, signed=True) == b'\xfe'

    def test_int_to_bytes_masks_overflow(self):
        assert int_to_bytes(0x1FF, 1) == b'\xff'
