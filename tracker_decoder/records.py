"""
records.py - Building blocks shared by the device record types.

Mixins implement capability accessors over conventionally named attributes
(``latitude``, ``battery``, ``mac1``/``rssi1``...). ``StatusPayload`` is the
dataclass base for layouts that start with the tag-S/L status byte.
"""

from dataclasses import dataclass, make_dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from .features import AccessPoint, ResetReason
from .fields import flag, i8, text, u8
from .payload import FieldConfig
from . import transforms as tf


BUFFERED_AGE = timedelta(minutes=5)


def status_fields(start: int, low_battery: bool = False) -> List[FieldConfig]:
    """Descriptors splitting the status byte at ``start``."""
    last = ('low_battery', tf.low_battery) if low_battery else ('moving', tf.moving)
    return [
        FieldConfig('duty_cycle', start, 1, transform=tf.duty_cycle,
                    encode=tf.encode_duty_cycle),
        FieldConfig('config_id', start, 1, transform=tf.config_id,
                    encode=tf.encode_config_id),
        FieldConfig('config_change', start, 1, transform=tf.config_change,
                    encode=tf.encode_config_change),
        FieldConfig(last[0], start, 1, transform=last[1], encode=tf.encode_flag),
    ]


@dataclass
class StatusPayload:
    duty_cycle: bool = flag()
    config_id: int = u8(maximum=15)
    config_change: bool = flag()
    moving: bool = flag()

    def is_duty_cycle(self) -> bool:
        return self.duty_cycle

    def get_config_id(self) -> Optional[int]:
        return self.config_id

    def get_config_change(self) -> bool:
        return self.config_change

    def is_moving(self) -> bool:
        return self.moving


class GNSSFix:
    def get_latitude(self) -> float:
        return self.latitude

    def get_longitude(self) -> float:
        return self.longitude

    def get_altitude(self) -> float:
        return self.altitude

    def get_accuracy(self) -> Optional[float]:
        return None

    def get_ttf(self) -> Optional[timedelta]:
        return getattr(self, 'ttf', None)

    def get_pdop(self) -> Optional[float]:
        return getattr(self, 'pdop', None)

    def get_satellites(self) -> Optional[int]:
        return getattr(self, 'satellites', None)


class DateParts:
    """Timestamp assembled from year/month/day/hour/minute/second attributes."""

    def get_timestamp(self) -> Optional[datetime]:
        return tf.date_from_parts(self.year, self.month, self.day,
                                  self.hour, self.minute, self.second)


class Timestamped:
    def get_timestamp(self) -> Optional[datetime]:
        return self.timestamp


class BatteryReading:
    def get_battery_voltage(self) -> float:
        return self.battery

    def get_low_battery(self) -> Optional[bool]:
        return getattr(self, 'low_battery', None)


class BufferPort:
    """Frames delivered from the device's on-board buffer."""

    def is_buffered(self) -> bool:
        return True

    def get_buffer_level(self) -> Optional[int]:
        return self.buffer_level


class AgedBuffer:
    """Buffered when the capture timestamp is older than BUFFERED_AGE."""

    def is_buffered(self) -> bool:
        if self.timestamp is None:
            return False
        return datetime.now(timezone.utc) - self.timestamp > BUFFERED_AGE

    def get_buffer_level(self) -> Optional[int]:
        return None


class WiFiScan:
    """Access-point list built from ``macN`` / ``rssiN`` attributes."""

    def get_access_points(self) -> List[AccessPoint]:
        points = []
        i = 1
        while hasattr(self, f'mac{i}'):
            mac = getattr(self, f'mac{i}')
            if mac:
                points.append(AccessPoint(mac, getattr(self, f'rssi{i}', None)))
            i += 1
        return points


def access_point_record(name: str, count: int, rssi: bool = True,
                        rssi_minimum: Optional[int] = None,
                        rssi_maximum: Optional[int] = None) -> type:
    """Dataclass base declaring ``mac1..macN`` (and ``rssi1..rssiN``)."""
    attrs = []
    for i in range(1, count + 1):
        attrs.append((f'mac{i}', str, text()))
        if rssi:
            attrs.append((f'rssi{i}', int, i8(minimum=rssi_minimum, maximum=rssi_maximum)))
    return make_dataclass(name, attrs, bases=(WiFiScan,))


AccessPoints4 = access_point_record('AccessPoints4', 4)
AccessPoints6 = access_point_record('AccessPoints6', 6)
AccessPoints7 = access_point_record('AccessPoints7', 7)


class Versions:
    def get_firmware_hash(self) -> Optional[str]:
        return None

    def get_firmware_version(self) -> Optional[str]:
        if self.firmware_major is None:
            return None
        return f'{self.firmware_major}.{self.firmware_minor}.{self.firmware_patch}'

    def get_hardware_version(self) -> str:
        return f'{self.hardware_type}.{self.hardware_revision}'


class ResetCause:
    def get_reset_reason(self) -> ResetReason:
        return ResetReason.from_code(self.reason)


class ConfigDefaults:
    """Answers None for every Config accessor a record does not carry."""

    def get_ble(self): return None
    def get_gnss(self): return None
    def get_wifi(self): return None
    def get_acceleration(self): return None
    def get_moving_interval(self): return None
    def get_steady_interval(self): return None
    def get_config_interval(self): return None
    def get_gnss_timeout(self): return None
    def get_accelerometer_threshold(self): return None
    def get_accelerometer_delay(self): return None
    def get_battery_interval(self): return None
    def get_rejoin_interval(self): return None
    def get_low_light_threshold(self): return None
    def get_high_light_threshold(self): return None
    def get_low_temperature_threshold(self): return None
    def get_high_temperature_threshold(self): return None
    def get_access_points_threshold(self): return None
    def get_batch_size(self): return None
    def get_buffer_size(self): return None
    def get_data_rate(self): return None
