"""
tagxl.py - tag-XL records and port dispatcher.

GNSS NAV ports are forwarded to a position solver; the v2 solver is
preferred and receives the moving state and capture timestamp the port
implies. Every other port is decoded locally, with the layout variant
selected from a version byte or a marker byte.

Solver routing:

    port  moving  timestamp prefix
    192   False   no
    193   True    no
    194   False   yes
    195   True    yes
    199   None    no
    210   False   yes (rotation triggered)
    211   True    yes (rotation triggered)

Without a v2 solver, 192/193/199 go to the v1 solver and the timestamped
ports are not supported.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional

from .binary import decode_hex
from .decoder import PortDecoder
from .errors import PayloadTooShort, PortNotSupported, SolverFailed
from .features import DataRate, Feature, RotationState
from .fields import flag, instant, real, text, u8, u16, u32
from .payload import FieldConfig, PayloadConfig, TagConfig, access_points
from .records import (AgedBuffer, ConfigDefaults, Timestamped,
                      access_point_record)
from .solver.base import SolverV1, SolverV2, SolverV2Options
from .tagsl import timestamp_field
from .uplink import DecodedUplink
from . import transforms as tf


logger = logging.getLogger(__name__)

GNSS_PORT = 192
# port -> moving state passed to the v2 solver
SOLVER_PORTS: Dict[int, Optional[bool]] = {
    192: False,
    193: True,
    194: False,
    195: True,
    199: None,
    210: False,
    211: True,
}
TIMESTAMPED_SOLVER_PORTS = frozenset((194, 195, 210, 211))
AGED_BUFFER_PORTS = frozenset((200, 201))
TIMESTAMP_PREFIX = 4

CONFIG_MARKER = 0x4c

# Wi-Fi scan layout versions
MAC_ONLY = 0x00
WITH_RSSI = 0x01

PORT152_VERSION1 = 0x01
PORT152_VERSION2 = 0x02


# =============================================================================
# Records
# =============================================================================

@dataclass
class Port150Payload(Timestamped):
    timestamp: Optional[datetime] = instant()


@dataclass
class Port151Payload(ConfigDefaults):
    """Device settings report; only the reported tags are set."""
    accelerometer_enabled: Optional[bool] = flag(None)
    wifi_enabled: Optional[bool] = flag(None)
    gnss_enabled: Optional[bool] = flag(None)
    firmware_upgrade: Optional[bool] = flag(None)
    moving_interval: Optional[int] = u16(None)
    steady_interval: Optional[int] = u16(None)
    accelerometer_threshold: Optional[int] = u16(None)
    accelerometer_delay: Optional[int] = u16(None)
    heartbeat_interval: Optional[int] = u8(None)
    fwu_advertisement_interval: Optional[int] = u8(None)
    battery: Optional[float] = real(None, minimum=1, maximum=5)
    firmware_hash: Optional[str] = text(None)
    rotation_invert: Optional[bool] = flag(None)
    rotation_confirmed: Optional[bool] = flag(None)
    reset_count: Optional[int] = u16(None)
    reset_cause: Optional[int] = u32(None)
    gnss_scans: Optional[int] = u16(None)
    wifi_scans: Optional[int] = u16(None)
    data_rate: Optional[int] = u8(None)

    def get_gnss(self): return self.gnss_enabled
    def get_wifi(self): return self.wifi_enabled
    def get_acceleration(self): return self.accelerometer_enabled
    def get_moving_interval(self): return self.moving_interval
    def get_steady_interval(self): return self.steady_interval
    def get_config_interval(self): return self.heartbeat_interval
    def get_accelerometer_threshold(self): return self.accelerometer_threshold
    def get_accelerometer_delay(self): return self.accelerometer_delay

    def get_data_rate(self) -> Optional[DataRate]:
        if self.data_rate is None:
            return None
        return DataRate.from_code(self.data_rate)

    def get_battery_voltage(self) -> Optional[float]:
        return self.battery

    def get_low_battery(self) -> Optional[bool]:
        return None

    def get_firmware_hash(self) -> Optional[str]:
        return self.firmware_hash

    def get_firmware_version(self) -> Optional[str]:
        return None


@dataclass
class Port152Payload(Timestamped):
    version: int = u8(minimum=1, maximum=2)
    sequence_number: int = u8()
    old_rotation_state: int = u8(maximum=3)
    new_rotation_state: int = u8(maximum=3)
    timestamp: Optional[datetime] = instant()
    rotations: float = real(minimum=0)
    elapsed_seconds: int = u32()

    def get_old_rotation_state(self) -> RotationState:
        return RotationState.from_code(self.old_rotation_state)

    def get_new_rotation_state(self) -> RotationState:
        return RotationState.from_code(self.new_rotation_state)

    def get_rotations(self) -> float:
        return self.rotations

    def get_duration(self) -> timedelta:
        return timedelta(seconds=self.elapsed_seconds)

    def get_sequence_number(self) -> Optional[int]:
        if self.version < PORT152_VERSION2:
            return None
        return self.sequence_number


MacScan5 = access_point_record('MacScan5', 5, rssi=False)
RssiScan5 = access_point_record('RssiScan5', 5, rssi_minimum=-120, rssi_maximum=-20)


@dataclass
class ScanHeader:
    version: int = u8()
    moving: bool = flag()

    def is_moving(self) -> bool:
        return self.moving


@dataclass
class WiFiPayload(ScanHeader, MacScan5):
    pass


@dataclass
class WiFiRssiPayload(ScanHeader, RssiScan5):
    pass


@dataclass
class TimestampedWiFiPayload(Timestamped, ScanHeader, MacScan5):
    timestamp: Optional[datetime] = instant()


@dataclass
class TimestampedWiFiRssiPayload(Timestamped, ScanHeader, RssiScan5):
    timestamp: Optional[datetime] = instant()


@dataclass
class BufferedWiFiPayload(AgedBuffer, TimestampedWiFiPayload):
    pass


@dataclass
class BufferedWiFiRssiPayload(AgedBuffer, TimestampedWiFiRssiPayload):
    pass


# =============================================================================
# Port tables
# =============================================================================

def _constant(value):
    def get(v):
        return value
    return get


def _no_bits(v):
    return 0


def _scan(record_type: type, moving: bool, timestamped: bool) -> PayloadConfig:
    fields = []
    pos = 0
    features = [Feature.WIFI, Feature.MOVING]
    if timestamped:
        fields.append(timestamp_field(0))
        features.append(Feature.TIMESTAMP)
        pos = TIMESTAMP_PREFIX
    fields += [
        FieldConfig('version', pos, 1),
        FieldConfig('moving', pos, 1, transform=_constant(moving), encode=_no_bits),
    ]
    rssi = issubclass(record_type, RssiScan5)
    fields += access_points(pos + 1, 5, rssi=rssi, rssi_first=True)
    return PayloadConfig(fields, record_type, features)


def _scan_versions(moving: bool, timestamped: bool, buffered: bool) -> Dict[int, PayloadConfig]:
    if buffered:
        records = (BufferedWiFiPayload, BufferedWiFiRssiPayload)
    elif timestamped:
        records = (TimestampedWiFiPayload, TimestampedWiFiRssiPayload)
    else:
        records = (WiFiPayload, WiFiRssiPayload)
    return {
        MAC_ONLY: _scan(records[0], moving, timestamped),
        WITH_RSSI: _scan(records[1], moving, timestamped),
    }


def _rotation(sequence: bool) -> PayloadConfig:
    offset = 1 if sequence else 0
    fields = [FieldConfig('version', 0, 1)]
    features = [Feature.ROTATION_STATE, Feature.TIMESTAMP]
    if sequence:
        fields.append(FieldConfig('sequence_number', 2, 1))
        features.insert(0, Feature.SEQUENCE_NUMBER)
    fields += [
        FieldConfig('old_rotation_state', 2 + offset, 1, transform=tf.high_nibble,
                    encode=tf.encode_bits(4, 0x0F)),
        FieldConfig('new_rotation_state', 2 + offset, 1, transform=tf.low_nibble,
                    encode=tf.encode_bits(0, 0x0F)),
        timestamp_field(3 + offset),
        FieldConfig('rotations', 7 + offset, 2, transform=tf.decimetres,
                    encode=tf.encode_decimetres),
        FieldConfig('elapsed_seconds', 9 + offset, 4),
    ]
    return PayloadConfig(fields, Port152Payload, features)


def _settings() -> PayloadConfig:
    config = (Feature.CONFIG,)
    return PayloadConfig(
        [],
        Port151Payload,
        tags=[
            TagConfig(0x40, 'accelerometer_enabled', transform=tf.bit(3), features=config),
            TagConfig(0x40, 'wifi_enabled', transform=tf.bit(2), features=config),
            TagConfig(0x40, 'gnss_enabled', transform=tf.bit(1), features=config),
            TagConfig(0x40, 'firmware_upgrade', transform=tf.bit(0), features=config),
            TagConfig(0x41, 'moving_interval', transform=tf.high_word, features=config),
            TagConfig(0x41, 'steady_interval', transform=tf.low_word, features=config),
            TagConfig(0x42, 'accelerometer_threshold', transform=tf.high_word, features=config),
            TagConfig(0x42, 'accelerometer_delay', transform=tf.low_word, features=config),
            TagConfig(0x43, 'heartbeat_interval', features=config),
            TagConfig(0x44, 'fwu_advertisement_interval', features=config),
            TagConfig(0x45, 'battery', transform=tf.battery, features=(Feature.BATTERY,)),
            TagConfig(0x46, 'firmware_hash', hex=True, features=(Feature.FIRMWARE_VERSION,)),
            TagConfig(0x47, 'rotation_invert', transform=tf.bit(0)),
            TagConfig(0x47, 'rotation_confirmed', transform=tf.bit(1)),
            TagConfig(0x49, 'reset_count'),
            TagConfig(0x4a, 'reset_cause'),
            TagConfig(0x4b, 'gnss_scans', transform=tf.high_word),
            TagConfig(0x4b, 'wifi_scans', transform=tf.low_word),
            TagConfig(0x4e, 'data_rate', features=config),
        ],
    )


PORTS = {
    150: PayloadConfig([timestamp_field(5)], Port150Payload, [Feature.TIMESTAMP]),
    151: _settings(),
}

# port -> (index of the version byte, layouts by version)
VERSIONED_PORTS = {
    152: (0, {PORT152_VERSION1: _rotation(False), PORT152_VERSION2: _rotation(True)}),
    197: (0, _scan_versions(moving=False, timestamped=False, buffered=False)),
    198: (0, _scan_versions(moving=True, timestamped=False, buffered=False)),
    200: (4, _scan_versions(moving=False, timestamped=True, buffered=True)),
    201: (4, _scan_versions(moving=True, timestamped=True, buffered=True)),
    212: (4, _scan_versions(moving=False, timestamped=True, buffered=False)),
    213: (4, _scan_versions(moving=True, timestamped=True, buffered=False)),
}


# =============================================================================
# Decoder
# =============================================================================

class TagXLDecoder(PortDecoder):
    """
    Decoder for tag-XL uplinks.

    ``solver`` / ``fallback_solver`` are v1 solvers, ``solver_v2`` /
    ``fallback_solver_v2`` v2 solvers. A failing primary solver is retried
    once on its fallback.
    """

    name = 'tag-XL'
    ports = PORTS

    def __init__(self, solver: Optional[SolverV1] = None,
                 fallback_solver: Optional[SolverV1] = None,
                 solver_v2: Optional[SolverV2] = None,
                 fallback_solver_v2: Optional[SolverV2] = None,
                 skip_validation: bool = False, strict: bool = False):
        super().__init__(skip_validation=skip_validation, strict=strict)
        self.solver = solver
        self.fallback_solver = fallback_solver
        self.solver_v2 = solver_v2
        self.fallback_solver_v2 = fallback_solver_v2

    def get_config(self, port: int, payload: Optional[str] = None) -> PayloadConfig:
        buf = decode_hex(payload or '')
        if port == 151:
            if len(buf) < 1:
                raise PayloadTooShort(f'port {port} needs a marker byte')
            if buf[0] != CONFIG_MARKER:
                raise PortNotSupported(port, f'port {port} tag {buf[0]:x} not supported')
            return self.ports[port]

        if port not in VERSIONED_PORTS:
            return super().get_config(port, payload)

        index, layouts = VERSIONED_PORTS[port]
        if len(buf) <= index:
            raise PayloadTooShort(f'port {port} needs at least {index + 1} bytes')
        version = buf[index]
        config = layouts.get(version)
        if config is None:
            raise PortNotSupported(port, f'version {version} for port {port} not supported')
        return config

    def decode(self, payload: str, port: int, dev_eui: str = '', fcnt: int = 0) -> DecodedUplink:
        if port in SOLVER_PORTS:
            return self._solve(payload, port, dev_eui, fcnt)

        uplink = super().decode(payload, port, dev_eui, fcnt)
        if port in AGED_BUFFER_PORTS and uplink.data.is_buffered():
            return DecodedUplink(uplink.features + [Feature.BUFFERED], uplink.data, uplink.errors)
        return uplink

    def _solve(self, payload: str, port: int, dev_eui: str, fcnt: int) -> DecodedUplink:
        if self.solver_v2 is not None:
            return self._solve_v2(payload, port, dev_eui, fcnt)

        if port in TIMESTAMPED_SOLVER_PORTS:
            raise PortNotSupported(port, f'port {port} not supported without v2 solver')
        if self.solver is None:
            raise PortNotSupported(port, f'port {port} requires a solver')

        logger.debug('%s: port %d forwarded to v1 solver', self.name, port)
        return self._with_fallback(
            lambda s: s.solve(payload, dev_eui, fcnt, port),
            self.solver, self.fallback_solver)

    def _solve_v2(self, payload: str, port: int, dev_eui: str, fcnt: int) -> DecodedUplink:
        timestamp = None
        if port in TIMESTAMPED_SOLVER_PORTS:
            buf = decode_hex(payload)
            if len(buf) < TIMESTAMP_PREFIX + 1:
                raise PayloadTooShort(f'port {port} needs a {TIMESTAMP_PREFIX} byte timestamp '
                                      f'and a GNSS payload')
            timestamp = tf.timestamp(int.from_bytes(buf[:TIMESTAMP_PREFIX], 'big'))
            payload = payload[TIMESTAMP_PREFIX * 2:]

        options = SolverV2Options(
            dev_eui=dev_eui,
            uplink_counter=fcnt & 0xFFFF,
            port=GNSS_PORT,
            timestamp=timestamp,
            moving=SOLVER_PORTS[port],
        )
        logger.debug('%s: port %d forwarded to v2 solver (moving=%s, timestamp=%s)',
                     self.name, port, options.moving, timestamp)
        return self._with_fallback(
            lambda s: s.solve(payload, options),
            self.solver_v2, self.fallback_solver_v2)

    def _with_fallback(self, call, primary, fallback) -> DecodedUplink:
        try:
            return call(primary)
        except Exception as err:
            if fallback is None:
                raise SolverFailed() from err
            logger.warning('%s: primary solver failed, using fallback: %s', self.name, err)
            try:
                return call(fallback)
            except Exception as fallback_err:
                raise SolverFailed() from fallback_err
