"""
decoder.py - Port-table decoder base.

A device decoder maps each port to a PayloadConfig. Subclasses fill ``ports``
and may override ``get_config`` when the layout depends on the payload bytes
or ``decode`` when a port is handled by a position solver.
"""

import logging
from typing import Dict, Optional

from .errors import PortNotSupported
from .parser import encode as encode_record, parse, validate_length
from .payload import PayloadConfig
from .uplink import DecodedUplink


logger = logging.getLogger(__name__)


class PortDecoder:
    """Decode hex uplinks through a static port table."""

    name = 'decoder'
    ports: Dict[int, PayloadConfig] = {}
    # ports only accepted by encode()
    downlink_ports: Dict[int, PayloadConfig] = {}

    def __init__(self, skip_validation: bool = False, strict: bool = False):
        self.skip_validation = skip_validation
        self.strict = strict

    def get_config(self, port: int, payload: Optional[str] = None) -> PayloadConfig:
        config = self.ports.get(port)
        if config is None:
            raise PortNotSupported(port)
        return config

    def decode(self, payload: str, port: int, dev_eui: str = '', fcnt: int = 0) -> DecodedUplink:
        config = self.get_config(port, payload)
        logger.debug('%s: decoding port %d with %s', self.name, port,
                     config.record_type.__name__)
        return self.decode_with(payload, config)

    def decode_with(self, payload: str, config: PayloadConfig) -> DecodedUplink:
        if not self.skip_validation:
            validate_length(payload, config)

        result = parse(payload, config)
        if self.strict and not result.success:
            raise result.error
        features = list(config.features) + result.features
        return DecodedUplink(features, result.record, result.errors)

    def encode(self, record, port: int) -> str:
        config = self.downlink_ports.get(port) or self.ports.get(port)
        if config is None or config.tagged:
            raise PortNotSupported(port)
        if not isinstance(record, config.record_type):
            raise TypeError(f'port {port} encodes {config.record_type.__name__}, '
                            f'got {type(record).__name__}')
        return encode_record(record, config)
