"""
smartlabel.py - smart-label records, port tables and decoders.

v1 decodes the sensor ports locally and forwards port 192 (LoRa Edge GNSS
scans) to a v1 position solver. v2 adds GNSS-NG groups on port 180, solved
through a v2 solver, and the tagged Wi-Fi scans of port 190.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .binary import decode_hex
from .decoder import PortDecoder
from .errors import PortNotSupported
from .features import DataRate, Feature
from .fields import flag, i8, instant, real, u8, u16
from .gnssng import decode_header
from .payload import FieldConfig, PayloadConfig, access_points
from .records import ConfigDefaults, Timestamped, access_point_record
from .solver.base import SolverV1, SolverV2, SolverV2Options
from .uplink import DecodedUplink
from . import transforms as tf


logger = logging.getLogger(__name__)

GNSS_PORT = 192
GNSSNG_PORT = 180
WIFI_TAGGED_PORT = 190


# =============================================================================
# Records
# =============================================================================

class PhotovoltaicReading:
    def get_battery_voltage(self) -> float:
        return self.battery

    def get_low_battery(self) -> Optional[bool]:
        return None

    def get_photovoltaic_voltage(self) -> float:
        return self.photovoltaic


class ClimateReading:
    def get_temperature(self) -> float:
        return self.temperature

    def get_humidity(self) -> float:
        return self.humidity


@dataclass
class Port1Payload(PhotovoltaicReading):
    battery: float = real(minimum=1, maximum=5)
    photovoltaic: float = real(minimum=0, maximum=5)


@dataclass
class Port2Payload(ClimateReading):
    temperature: float = real(minimum=-20, maximum=60)
    humidity: float = real(minimum=5, maximum=95)


@dataclass
class Port4Payload(ConfigDefaults):
    data_rate: int = u8(maximum=7)
    acceleration: bool = flag()
    wifi: bool = flag()
    gnss: bool = flag()
    steady_interval: int = u16()
    moving_interval: int = u16()
    heartbeat_interval: int = u8()
    accelerometer_threshold: int = u16()
    accelerometer_delay: int = u16()
    temperature_polling_interval: int = u16()
    temperature_uplink_interval: int = u16()
    temperature_lower_threshold: int = i8()
    temperature_upper_threshold: int = i8()
    access_points_threshold: int = u8(minimum=1, maximum=6)
    firmware_major: Optional[int] = u8(None)
    firmware_minor: Optional[int] = u8(None)
    firmware_patch: Optional[int] = u8(None)

    def get_gnss(self): return self.gnss
    def get_wifi(self): return self.wifi
    def get_acceleration(self): return self.acceleration
    def get_moving_interval(self): return self.moving_interval
    def get_steady_interval(self): return self.steady_interval
    def get_config_interval(self): return self.heartbeat_interval
    def get_accelerometer_threshold(self): return self.accelerometer_threshold
    def get_accelerometer_delay(self): return self.accelerometer_delay
    def get_low_temperature_threshold(self): return self.temperature_lower_threshold
    def get_high_temperature_threshold(self): return self.temperature_upper_threshold
    def get_access_points_threshold(self): return self.access_points_threshold

    def get_data_rate(self) -> Optional[DataRate]:
        return DataRate.from_code(self.data_rate)

    def get_firmware_hash(self) -> Optional[str]:
        return None

    def get_firmware_version(self) -> Optional[str]:
        if self.firmware_major is None:
            return None
        return f'{self.firmware_major}.{self.firmware_minor}.{self.firmware_patch}'


@dataclass
class Port11Payload(PhotovoltaicReading, ClimateReading):
    battery: float = real(minimum=1, maximum=5)
    photovoltaic: float = real(minimum=0, maximum=5)
    temperature: float = real(minimum=-20, maximum=60)
    humidity: float = real(minimum=0, maximum=100)


@dataclass
class Port150Payload:
    """Battery discharge curve: voltage at 100/80/60/40/20 percent."""
    battery_100: float = real(minimum=3.6, maximum=4.0)
    battery_80: float = real(minimum=3.5, maximum=3.7)
    battery_60: float = real(minimum=3.4, maximum=3.6)
    battery_40: float = real(minimum=3.1, maximum=3.4)
    battery_20: float = real(minimum=2.7, maximum=3.0)


@dataclass
class Port197Payload(access_point_record('ScanRssi6', 6, rssi_minimum=-120, rssi_maximum=-20)):
    tag: int = u8()


@dataclass
class Port190Payload(Timestamped, access_point_record('ScanRssi5', 5, rssi_minimum=-120,
                                                      rssi_maximum=-20)):
    tag: int = u8()
    sequence_number: Optional[int] = u16(None)
    timestamp: Optional[datetime] = instant()

    def is_moving(self) -> bool:
        return self.tag in MOVING_TAGS

    def get_sequence_number(self) -> Optional[int]:
        return self.sequence_number


# =============================================================================
# Port tables
# =============================================================================

def _battery(name, start):
    return FieldConfig(name, start, 2, transform=tf.battery, encode=tf.encode_millivolts)


def _climate(start):
    return [
        FieldConfig('temperature', start, 2, transform=tf.centidegrees,
                    encode=tf.encode_centidegrees),
        FieldConfig('humidity', start + 2, 1, transform=tf.humidity,
                    encode=tf.encode_half_units),
    ]


def _config_fields():
    return [
        FieldConfig('data_rate', 0, 1, transform=tf.bits(0, 0x07), encode=tf.encode_bits(0, 0x07)),
        FieldConfig('acceleration', 0, 1, transform=tf.bit(3), encode=tf.encode_bit(3)),
        FieldConfig('wifi', 0, 1, transform=tf.bit(4), encode=tf.encode_bit(4)),
        FieldConfig('gnss', 0, 1, transform=tf.bit(5), encode=tf.encode_bit(5)),
        FieldConfig('steady_interval', 1, 2),
        FieldConfig('moving_interval', 3, 2),
        FieldConfig('heartbeat_interval', 5, 1),
        FieldConfig('accelerometer_threshold', 6, 2),
        FieldConfig('accelerometer_delay', 8, 2),
        FieldConfig('temperature_polling_interval', 10, 2),
        FieldConfig('temperature_uplink_interval', 12, 2),
        FieldConfig('temperature_lower_threshold', 14, 1),
        FieldConfig('temperature_upper_threshold', 15, 1),
        FieldConfig('access_points_threshold', 16, 1),
    ]


PORTS = {
    1: PayloadConfig(
        [_battery('battery', 0), _battery('photovoltaic', 2)],
        Port1Payload,
        [Feature.BATTERY, Feature.PHOTOVOLTAIC],
    ),
    2: PayloadConfig(_climate(0), Port2Payload, [Feature.TEMPERATURE, Feature.HUMIDITY]),
    4: PayloadConfig(
        _config_fields() + [
            FieldConfig('firmware_major', 17, 1, optional=True),
            FieldConfig('firmware_minor', 18, 1, optional=True),
            FieldConfig('firmware_patch', 19, 1, optional=True)],
        Port4Payload,
        [Feature.CONFIG, Feature.FIRMWARE_VERSION],
    ),
    11: PayloadConfig(
        [_battery('battery', 0), _battery('photovoltaic', 2)] + _climate(4),
        Port11Payload,
        [Feature.BATTERY, Feature.PHOTOVOLTAIC, Feature.TEMPERATURE, Feature.HUMIDITY],
    ),
    150: PayloadConfig(
        [_battery(f'battery_{level}', i * 2) for i, level in enumerate((100, 80, 60, 40, 20))],
        Port150Payload,
    ),
    197: PayloadConfig(
        [FieldConfig('tag', 0, 1)] + access_points(1, 6, rssi_first=True),
        Port197Payload,
        [Feature.WIFI],
    ),
}

# configuration downlink, same layout as the port 4 report
DOWNLINK_PORTS = {
    128: PayloadConfig(_config_fields(), Port4Payload, [Feature.CONFIG]),
}


# port 190 tag byte: bit 7 sequence number, bit 3 steady, bit 2 timestamp
PORT190_MOVING = 0x10
PORT190_MOVING_TIMESTAMP = 0x14
PORT190_STEADY = 0x18
PORT190_STEADY_TIMESTAMP = 0x1c
PORT190_SEQ_MOVING = 0x80
PORT190_SEQ_MOVING_TIMESTAMP = 0x84
PORT190_SEQ_STEADY = 0x88
PORT190_SEQ_STEADY_TIMESTAMP = 0x8c

MOVING_TAGS = frozenset((PORT190_MOVING, PORT190_MOVING_TIMESTAMP,
                         PORT190_SEQ_MOVING, PORT190_SEQ_MOVING_TIMESTAMP))


def _port190_config(sequence: bool, timestamp: bool) -> PayloadConfig:
    fields = [FieldConfig('tag', 0, 1)]
    features = [Feature.WIFI, Feature.MOVING]
    pos = 1
    if sequence:
        fields.append(FieldConfig('sequence_number', pos, 2))
        features.append(Feature.SEQUENCE_NUMBER)
        pos += 2
    if timestamp:
        fields.append(FieldConfig('timestamp', pos, 4, transform=tf.timestamp,
                                  encode=tf.encode_timestamp))
        features.append(Feature.TIMESTAMP)
        pos += 4
    return PayloadConfig(fields + access_points(pos, 5, rssi_first=True),
                         Port190Payload, features)


PORT190 = {
    PORT190_MOVING: _port190_config(False, False),
    PORT190_STEADY: _port190_config(False, False),
    PORT190_MOVING_TIMESTAMP: _port190_config(False, True),
    PORT190_STEADY_TIMESTAMP: _port190_config(False, True),
    PORT190_SEQ_MOVING: _port190_config(True, False),
    PORT190_SEQ_STEADY: _port190_config(True, False),
    PORT190_SEQ_MOVING_TIMESTAMP: _port190_config(True, True),
    PORT190_SEQ_STEADY_TIMESTAMP: _port190_config(True, True),
}


# =============================================================================
# Decoders
# =============================================================================

class SmartLabelV1Decoder(PortDecoder):
    """Decoder for smart-label firmware v1 uplinks."""

    name = 'smart-label'
    ports = PORTS
    downlink_ports = DOWNLINK_PORTS

    def __init__(self, solver: SolverV1, skip_validation: bool = False,
                 strict: bool = False):
        if solver is None:
            raise ValueError('solver cannot be None')
        super().__init__(skip_validation=skip_validation, strict=strict)
        self.solver = solver

    def decode(self, payload: str, port: int, dev_eui: str = '', fcnt: int = 0) -> DecodedUplink:
        if port == GNSS_PORT:
            logger.debug('%s: port %d forwarded to v1 solver', self.name, port)
            return self.solver.solve(payload, dev_eui, fcnt, port)
        return super().decode(payload, port, dev_eui, fcnt)


class SmartLabelV2Decoder(SmartLabelV1Decoder):
    """
    Decoder for smart-label firmware v2 uplinks.

    GNSS-NG groups (port 180) are forwarded to ``solver_v2`` as LoRa Edge
    GNSS port traffic. Without a v2 solver port 180 is not supported.
    """

    def __init__(self, solver: SolverV1, solver_v2: Optional[SolverV2] = None,
                 skip_validation: bool = False, strict: bool = False):
        super().__init__(solver, skip_validation=skip_validation, strict=strict)
        self.solver_v2 = solver_v2

    def get_config(self, port: int, payload: Optional[str] = None) -> PayloadConfig:
        if port != WIFI_TAGGED_PORT:
            return super().get_config(port, payload)
        buf = decode_hex(payload or '')
        if not buf:
            raise PortNotSupported(port, f'missing tag for port {port}')
        config = PORT190.get(buf[0])
        if config is None:
            raise PortNotSupported(port, f'tag 0x{buf[0]:02x} for port {port} not supported')
        return config

    def decode(self, payload: str, port: int, dev_eui: str = '', fcnt: int = 0) -> DecodedUplink:
        if port != GNSSNG_PORT:
            return super().decode(payload, port, dev_eui, fcnt)
        if self.solver_v2 is None:
            raise PortNotSupported(port, f'port {port} requires a v2 solver')

        header = decode_header(decode_hex(payload))
        logger.debug('%s: gnss-ng group token %d (end of group: %s)',
                     self.name, header.group_token, header.end_of_group)
        options = SolverV2Options(dev_eui=dev_eui, uplink_counter=fcnt & 0xFFFF,
                                  port=GNSS_PORT)
        return self.solver_v2.solve(payload, options)
