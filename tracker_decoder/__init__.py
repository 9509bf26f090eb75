"""
tracker_decoder - Uplink decoders for LPWAN asset trackers.

Usage:
    from tracker_decoder import TagSLDecoder, Feature

    uplink = TagSLDecoder().decode('800ee5', 15)
    if uplink.is_(Feature.BATTERY):
        print(uplink.data.get_battery_voltage())
"""

from .decoder import PortDecoder
from .errors import DecoderError, PortNotSupported, ValidationFailed
from .features import Feature
from .nomadxs import NomadXSDecoder
from .parser import encode, parse
from .settings import Settings
from .smartlabel import SmartLabelV1Decoder, SmartLabelV2Decoder
from .tagsl import TagSLDecoder
from .tagxl import TagXLDecoder
from .uplink import DecodedUplink

__version__ = '0.1.0'

__all__ = [
    'DecodedUplink',
    'DecoderError',
    'Feature',
    'NomadXSDecoder',
    'PortDecoder',
    'PortNotSupported',
    'Settings',
    'SmartLabelV1Decoder',
    'SmartLabelV2Decoder',
    'TagSLDecoder',
    'TagXLDecoder',
    'ValidationFailed',
    'encode',
    'parse',
]
