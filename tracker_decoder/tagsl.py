"""
tagsl.py - tag-S / tag-L records and port table.

Port layouts follow the device documentation (docs.truvami.com, tag-S and
tag-L payloads). Ports 128, 129, 131 and 134 are downlink configuration
frames and can be encoded as well as decoded.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from .decoder import PortDecoder
from .features import Feature
from .fields import duration, flag, i8, instant, real, text, u8, u16, u32
from .payload import FieldConfig, PayloadConfig, access_points
from .records import (AccessPoints4, AccessPoints6, AccessPoints7, BatteryReading,
                      BufferPort, ConfigDefaults, DateParts, GNSSFix, ResetCause,
                      StatusPayload, Timestamped, Versions, status_fields)
from . import transforms as tf


# =============================================================================
# Records
# =============================================================================

@dataclass
class Port1Payload(StatusPayload, GNSSFix, DateParts):
    latitude: float = real(minimum=-90, maximum=90)
    longitude: float = real(minimum=-180, maximum=180)
    altitude: float = real()
    year: int = u8()
    month: int = u8(minimum=1, maximum=12)
    day: int = u8(minimum=1, maximum=31)
    hour: int = u8(maximum=23)
    minute: int = u8(maximum=59)
    second: int = u8(maximum=59)


@dataclass
class Port2Payload(StatusPayload):
    pass


@dataclass
class Port3Payload(AccessPoints6):
    scan_pointer: int = u16()
    total_messages: int = u8()
    current_message: int = u8()


@dataclass
class Port4Payload(ConfigDefaults, Versions):
    moving_interval: int = u32()
    steady_interval: int = u32()
    heartbeat_interval: int = u32()
    gnss_timeout: int = u16()
    accelerometer_threshold: int = u16()
    accelerometer_delay: int = u16()
    # moving = 1, steady = 2
    device_state: int = u8()
    firmware_major: int = u8()
    firmware_minor: int = u8()
    firmware_patch: int = u8()
    hardware_type: int = u8()
    hardware_revision: int = u8()
    battery_interval: int = u32()
    batch_size: Optional[int] = u16(None, maximum=50)
    buffer_size: Optional[int] = u16(None, minimum=128, maximum=8128)

    def is_moving(self) -> bool:
        return self.device_state == 1

    def get_moving_interval(self): return self.moving_interval
    def get_steady_interval(self): return self.steady_interval
    def get_config_interval(self): return self.heartbeat_interval
    def get_gnss_timeout(self): return self.gnss_timeout
    def get_accelerometer_threshold(self): return self.accelerometer_threshold
    def get_accelerometer_delay(self): return self.accelerometer_delay
    def get_battery_interval(self): return self.battery_interval
    def get_batch_size(self): return self.batch_size
    def get_buffer_size(self): return self.buffer_size


@dataclass
class Port5Payload(StatusPayload, AccessPoints7):
    pass


@dataclass
class Port6Payload:
    button_pressed: bool = flag()

    def get_pressed(self) -> bool:
        return self.button_pressed


@dataclass
class Port7Payload(StatusPayload, Timestamped, AccessPoints6):
    timestamp: Optional[datetime] = instant()


@dataclass
class Port8Payload:
    scan_interval: int = u16()
    scan_time: int = u8()
    max_beacons: int = u8()
    min_rssi: int = i8()
    advertising_filter: str = text()
    accelerometer_hold_timer: int = u16()
    accelerometer_threshold: int = u16()
    scan_mode: int = u8()
    config_uplink_interval: int = u16()


@dataclass
class Port10Payload(StatusPayload, GNSSFix, Timestamped, BatteryReading):
    latitude: float = real(minimum=-90, maximum=90)
    longitude: float = real(minimum=-180, maximum=180)
    altitude: float = real(minimum=0, maximum=20000)
    timestamp: Optional[datetime] = instant()
    battery: float = real(minimum=1, maximum=5)
    ttf: Optional[timedelta] = duration()
    pdop: Optional[float] = real(None)
    satellites: Optional[int] = u8(None, minimum=3, maximum=27)


@dataclass
class Port15Payload(BatteryReading):
    duty_cycle: bool = flag()
    config_id: int = u8(maximum=15)
    config_change: bool = flag()
    low_battery: bool = flag()
    battery: float = real(minimum=1, maximum=5)

    def is_duty_cycle(self) -> bool:
        return self.duty_cycle

    def get_config_id(self) -> Optional[int]:
        return self.config_id

    def get_config_change(self) -> bool:
        return self.config_change


@dataclass
class Port50Payload(StatusPayload, GNSSFix, Timestamped, BatteryReading, AccessPoints4):
    latitude: float = real(minimum=-90, maximum=90)
    longitude: float = real(minimum=-180, maximum=180)
    altitude: float = real()
    timestamp: Optional[datetime] = instant()
    battery: float = real(minimum=1, maximum=5)
    ttf: Optional[timedelta] = duration()


@dataclass
class Port51Payload(Port50Payload):
    pdop: Optional[float] = real(None)
    satellites: Optional[int] = u8(None)


@dataclass
class Port105Payload(StatusPayload, BufferPort, Timestamped, AccessPoints6):
    buffer_level: int = u16()
    timestamp: Optional[datetime] = instant()


@dataclass
class Port110Payload(StatusPayload, BufferPort, GNSSFix, Timestamped, BatteryReading):
    buffer_level: int = u16()
    latitude: float = real(minimum=-90, maximum=90)
    longitude: float = real(minimum=-180, maximum=180)
    altitude: float = real(minimum=0, maximum=20000)
    timestamp: Optional[datetime] = instant()
    battery: float = real(minimum=1, maximum=5)
    ttf: Optional[timedelta] = duration()
    pdop: Optional[float] = real(None)
    satellites: Optional[int] = u8(None)


@dataclass
class Port150Payload(StatusPayload, BufferPort, GNSSFix, Timestamped, BatteryReading,
                     AccessPoints6):
    buffer_level: int = u16()
    latitude: float = real(minimum=-90, maximum=90)
    longitude: float = real(minimum=-180, maximum=180)
    altitude: float = real()
    timestamp: Optional[datetime] = instant()
    battery: float = real(minimum=1, maximum=5)
    ttf: Optional[timedelta] = duration()


@dataclass
class Port151Payload(StatusPayload, BufferPort, GNSSFix, Timestamped, BatteryReading,
                     AccessPoints4):
    buffer_level: int = u16()
    latitude: float = real(minimum=-90, maximum=90)
    longitude: float = real(minimum=-180, maximum=180)
    altitude: float = real()
    timestamp: Optional[datetime] = instant()
    battery: float = real(minimum=1, maximum=5)
    ttf: Optional[timedelta] = duration()
    pdop: Optional[float] = real(None)
    satellites: Optional[int] = u8(None)


@dataclass
class Port198Payload(ResetCause):
    reason: int = u8()
    line: Optional[str] = text(None)
    file: Optional[str] = text(None)
    function: Optional[str] = text(None)


@dataclass
class Port199Payload:
    constant: str = text()
    sequence: int = u32()
    number: int = u32()
    id: int = u8()


# Downlink configuration

@dataclass
class Port128Payload(ConfigDefaults):
    ble: int = u8(maximum=1)
    gnss: int = u8(maximum=1)
    wifi: int = u8(maximum=1)
    moving_interval: int = u32(minimum=60, maximum=86400)
    steady_interval: int = u32(minimum=120, maximum=86400)
    heartbeat_interval: int = u32(minimum=300, maximum=604800)
    gnss_timeout: int = u16(minimum=60, maximum=86400)
    accelerometer_threshold: int = u16(minimum=10, maximum=8000)
    accelerometer_delay: int = u16(minimum=1000, maximum=10000)
    battery_interval: int = u32(minimum=300, maximum=604800)
    batch_size: Optional[int] = u16(None, maximum=50)
    buffer_size: Optional[int] = u16(None, minimum=128, maximum=8128)

    def get_ble(self): return bool(self.ble)
    def get_gnss(self): return bool(self.gnss)
    def get_wifi(self): return bool(self.wifi)
    def get_moving_interval(self): return self.moving_interval
    def get_steady_interval(self): return self.steady_interval
    def get_config_interval(self): return self.heartbeat_interval
    def get_gnss_timeout(self): return self.gnss_timeout
    def get_accelerometer_threshold(self): return self.accelerometer_threshold
    def get_accelerometer_delay(self): return self.accelerometer_delay
    def get_battery_interval(self): return self.battery_interval
    def get_batch_size(self): return self.batch_size
    def get_buffer_size(self): return self.buffer_size


@dataclass
class Port129Payload:
    time_to_buzz: int = u8()


@dataclass
class Port131Payload:
    accuracy_enhancement: int = u8()


@dataclass
class Port134Payload:
    scan_interval: int = u16()
    scan_time: int = u8(maximum=180)
    max_beacons: int = u8()
    min_rssi: int = i8()
    advertising_name: str = text(max_length=9)
    accelerometer_hold_timer: int = u16()
    accelerometer_threshold: int = u16()
    scan_mode: int = u8(maximum=2)
    config_uplink_interval: int = u16()


# =============================================================================
# Port table
# =============================================================================

def gnss_fields(start: int):
    """Latitude, longitude and altitude (decimetres) starting at ``start``."""
    return [
        FieldConfig('latitude', start, 4, transform=tf.coordinate,
                    encode=tf.encode_coordinate),
        FieldConfig('longitude', start + 4, 4, transform=tf.coordinate,
                    encode=tf.encode_coordinate),
        FieldConfig('altitude', start + 8, 2, transform=tf.altitude,
                    encode=tf.encode_decimetres),
    ]


def date_fields(start: int):
    names = ('year', 'month', 'day', 'hour', 'minute', 'second')
    return [FieldConfig(name, start + i, 1) for i, name in enumerate(names)]


def timestamp_field(start: int):
    return FieldConfig('timestamp', start, 4, transform=tf.timestamp,
                       encode=tf.encode_timestamp)


def battery_field(start: int):
    return FieldConfig('battery', start, 2, transform=tf.battery,
                       encode=tf.encode_millivolts)


def ttf_field(start: int, optional: bool = False):
    return FieldConfig('ttf', start, 1, optional=optional, transform=tf.ttf,
                       encode=tf.encode_seconds)


def pdop_field(start: int, optional: bool = False):
    return FieldConfig('pdop', start, 1, optional=optional, transform=tf.pdop,
                       encode=tf.encode_half_units)


STATUS = [Feature.DUTY_CYCLE, Feature.CONFIG_CHANGE, Feature.MOVING]

PORTS = {
    1: PayloadConfig(
        status_fields(0) + gnss_fields(1) + date_fields(11),
        Port1Payload,
        STATUS + [Feature.GNSS, Feature.TIMESTAMP],
    ),
    2: PayloadConfig(status_fields(0), Port2Payload, STATUS),
    3: PayloadConfig(
        [FieldConfig('scan_pointer', 0, 2),
         FieldConfig('total_messages', 2, 1),
         FieldConfig('current_message', 3, 1)] + access_points(4, 6),
        Port3Payload,
        [Feature.WIFI],
    ),
    4: PayloadConfig(
        [FieldConfig('moving_interval', 0, 4),
         FieldConfig('steady_interval', 4, 4),
         FieldConfig('heartbeat_interval', 8, 4),
         FieldConfig('gnss_timeout', 12, 2),
         FieldConfig('accelerometer_threshold', 14, 2),
         FieldConfig('accelerometer_delay', 16, 2),
         FieldConfig('device_state', 18, 1),
         FieldConfig('firmware_major', 19, 1),
         FieldConfig('firmware_minor', 20, 1),
         FieldConfig('firmware_patch', 21, 1),
         FieldConfig('hardware_type', 22, 1),
         FieldConfig('hardware_revision', 23, 1),
         FieldConfig('battery_interval', 24, 4),
         FieldConfig('batch_size', 28, 2, optional=True),
         FieldConfig('buffer_size', 30, 2, optional=True)],
        Port4Payload,
        [Feature.MOVING, Feature.CONFIG, Feature.HARDWARE_VERSION, Feature.FIRMWARE_VERSION],
    ),
    5: PayloadConfig(status_fields(0) + access_points(1, 7), Port5Payload,
                     STATUS + [Feature.WIFI]),
    6: PayloadConfig([FieldConfig('button_pressed', 0, 1)], Port6Payload, [Feature.BUTTON]),
    7: PayloadConfig(
        [timestamp_field(0)] + status_fields(4) + access_points(5, 6),
        Port7Payload,
        STATUS + [Feature.WIFI],
    ),
    8: PayloadConfig(
        [FieldConfig('scan_interval', 0, 2),
         FieldConfig('scan_time', 2, 1),
         FieldConfig('max_beacons', 3, 1),
         FieldConfig('min_rssi', 4, 1),
         FieldConfig('advertising_filter', 5, 10, hex=True),
         FieldConfig('accelerometer_hold_timer', 15, 2),
         FieldConfig('accelerometer_threshold', 17, 2),
         FieldConfig('scan_mode', 19, 1),
         FieldConfig('config_uplink_interval', 20, 2)],
        Port8Payload,
    ),
    10: PayloadConfig(
        status_fields(0) + gnss_fields(1) + [
            timestamp_field(11),
            battery_field(15),
            ttf_field(17, optional=True),
            pdop_field(18, optional=True),
            FieldConfig('satellites', 19, 1, optional=True)],
        Port10Payload,
        STATUS + [Feature.GNSS, Feature.BATTERY],
    ),
    15: PayloadConfig(
        status_fields(0, low_battery=True) + [battery_field(1)],
        Port15Payload,
        [Feature.DUTY_CYCLE, Feature.CONFIG_CHANGE, Feature.BATTERY],
    ),
    50: PayloadConfig(
        status_fields(0) + gnss_fields(1) + [
            timestamp_field(11), battery_field(15), ttf_field(17)] + access_points(18, 4),
        Port50Payload,
        STATUS + [Feature.GNSS, Feature.BATTERY, Feature.WIFI],
    ),
    51: PayloadConfig(
        status_fields(0) + gnss_fields(1) + [
            timestamp_field(11), battery_field(15), ttf_field(17), pdop_field(18),
            FieldConfig('satellites', 19, 1)] + access_points(20, 4),
        Port51Payload,
        STATUS + [Feature.GNSS, Feature.BATTERY, Feature.WIFI],
    ),
    105: PayloadConfig(
        [FieldConfig('buffer_level', 0, 2), timestamp_field(2)]
        + status_fields(6) + access_points(7, 6),
        Port105Payload,
        [Feature.BUFFERED] + STATUS + [Feature.WIFI],
    ),
    110: PayloadConfig(
        [FieldConfig('buffer_level', 0, 2)] + status_fields(2) + gnss_fields(3) + [
            timestamp_field(13),
            battery_field(17),
            ttf_field(19, optional=True),
            pdop_field(20, optional=True),
            FieldConfig('satellites', 21, 1, optional=True)],
        Port110Payload,
        [Feature.BUFFERED] + STATUS + [Feature.GNSS, Feature.BATTERY],
    ),
    150: PayloadConfig(
        [FieldConfig('buffer_level', 0, 2)] + status_fields(2) + gnss_fields(3) + [
            timestamp_field(13), battery_field(17), ttf_field(19)] + access_points(20, 6),
        Port150Payload,
        [Feature.BUFFERED] + STATUS + [Feature.GNSS, Feature.BATTERY, Feature.WIFI],
    ),
    151: PayloadConfig(
        [FieldConfig('buffer_level', 0, 2)] + status_fields(2) + gnss_fields(3) + [
            timestamp_field(13), battery_field(17), ttf_field(19), pdop_field(20),
            FieldConfig('satellites', 21, 1)] + access_points(22, 4),
        Port151Payload,
        [Feature.BUFFERED] + STATUS + [Feature.GNSS, Feature.BATTERY, Feature.WIFI],
    ),
    198: PayloadConfig(
        [FieldConfig('reason', 0, 1)] + [
            FieldConfig(name, 1, -1, optional=True, hex=True,
                        transform=tf.stacktrace_part(i))
            for i, name in enumerate(('line', 'file', 'function'))],
        Port198Payload,
        [Feature.RESET_REASON],
    ),
    199: PayloadConfig(
        [FieldConfig('constant', 0, 7, hex=True),
         FieldConfig('sequence', 7, 4),
         FieldConfig('number', 11, 3),
         FieldConfig('id', 14, 1)],
        Port199Payload,
    ),
    128: PayloadConfig(
        [FieldConfig('ble', 0, 1),
         FieldConfig('gnss', 1, 1),
         FieldConfig('wifi', 2, 1),
         FieldConfig('moving_interval', 3, 4),
         FieldConfig('steady_interval', 7, 4),
         FieldConfig('heartbeat_interval', 11, 4),
         FieldConfig('gnss_timeout', 15, 2),
         FieldConfig('accelerometer_threshold', 17, 2),
         FieldConfig('accelerometer_delay', 19, 2),
         FieldConfig('battery_interval', 21, 4),
         FieldConfig('batch_size', 25, 2, optional=True),
         FieldConfig('buffer_size', 27, 2, optional=True)],
        Port128Payload,
        [Feature.CONFIG],
    ),
    129: PayloadConfig([FieldConfig('time_to_buzz', 0, 1)], Port129Payload),
    131: PayloadConfig([FieldConfig('accuracy_enhancement', 0, 1)], Port131Payload),
    134: PayloadConfig(
        [FieldConfig('scan_interval', 0, 2),
         FieldConfig('scan_time', 2, 1),
         FieldConfig('max_beacons', 3, 1),
         FieldConfig('min_rssi', 4, 1),
         FieldConfig('advertising_name', 5, 10, hex=True, transform=tf.ascii_text,
                     encode=lambda name: tf.encode_ascii_text(name[:9])),
         FieldConfig('accelerometer_hold_timer', 15, 2),
         FieldConfig('accelerometer_threshold', 17, 2),
         FieldConfig('scan_mode', 19, 1),
         FieldConfig('config_uplink_interval', 20, 2)],
        Port134Payload,
    ),
}


class TagSLDecoder(PortDecoder):
    """Decoder for tag-S and tag-L uplinks."""

    name = 'tag-S/L'
    ports = PORTS
