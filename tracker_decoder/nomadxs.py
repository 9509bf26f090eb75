"""
nomadxs.py - nomad-XS records and port table.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from .decoder import PortDecoder
from .features import Feature
from .fields import duration, i16, real, u8, u16, u32
from .payload import FieldConfig, PayloadConfig
from .records import ConfigDefaults, DateParts, GNSSFix, StatusPayload, Versions, status_fields
from .tagsl import PORTS as TAGSL_PORTS, date_fields, gnss_fields, ttf_field
from . import transforms as tf


gyroscope = tf.signed_scale(16, 10)
magnetometer = tf.signed_scale(16, 1000)


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
    ttf: Optional[timedelta] = duration()
    ambient_light: int = u16()
    accelerometer_x: int = i16()
    accelerometer_y: int = i16()
    accelerometer_z: int = i16()
    temperature: Optional[float] = real(None, minimum=-20, maximum=60)
    pressure: Optional[float] = real(None, minimum=0, maximum=1100)
    gyroscope_x: Optional[float] = real(None)
    gyroscope_y: Optional[float] = real(None)
    gyroscope_z: Optional[float] = real(None)
    magnetometer_x: Optional[float] = real(None)
    magnetometer_y: Optional[float] = real(None)
    magnetometer_z: Optional[float] = real(None)

    def get_temperature(self) -> Optional[float]:
        return self.temperature

    def get_pressure(self) -> Optional[float]:
        return self.pressure


@dataclass
class Port4Payload(ConfigDefaults, Versions):
    moving_interval: int = u32()
    steady_interval: int = u32()
    heartbeat_interval: int = u32()
    gnss_timeout: int = u16()
    accelerometer_threshold: int = u16()
    accelerometer_delay: int = u16()
    firmware_major: int = u8()
    firmware_minor: int = u8()
    firmware_patch: int = u8()
    hardware_type: int = u8()
    hardware_revision: int = u8()
    battery_interval: int = u32()
    rejoin_interval: int = u32()
    accuracy_enhancement: int = u8()
    light_lower_threshold: int = u16()
    light_upper_threshold: int = u16()

    def get_moving_interval(self): return self.moving_interval
    def get_steady_interval(self): return self.steady_interval
    def get_config_interval(self): return self.heartbeat_interval
    def get_gnss_timeout(self): return self.gnss_timeout
    def get_accelerometer_threshold(self): return self.accelerometer_threshold
    def get_accelerometer_delay(self): return self.accelerometer_delay
    def get_battery_interval(self): return self.battery_interval
    def get_rejoin_interval(self): return self.rejoin_interval
    def get_low_light_threshold(self): return self.light_lower_threshold
    def get_high_light_threshold(self): return self.light_upper_threshold


def _axes(prefix, start, transform, encode):
    return [FieldConfig(f'{prefix}_{axis}', start + 2 * i, 2, optional=True,
                        transform=transform, encode=encode)
            for i, axis in enumerate('xyz')]


PORTS = {
    1: PayloadConfig(
        status_fields(0) + gnss_fields(1) + date_fields(11) + [
            ttf_field(17),
            FieldConfig('ambient_light', 18, 2),
            FieldConfig('accelerometer_x', 20, 2),
            FieldConfig('accelerometer_y', 22, 2),
            FieldConfig('accelerometer_z', 24, 2),
            FieldConfig('temperature', 26, 2, optional=True, transform=tf.centidegrees,
                        encode=tf.encode_centidegrees),
            FieldConfig('pressure', 28, 2, optional=True, transform=tf.pressure,
                        encode=tf.encode_decimetres)]
        + _axes('gyroscope', 30, gyroscope, tf.encode_scale(10))
        + _axes('magnetometer', 36, magnetometer, tf.encode_scale(1000)),
        Port1Payload,
        [Feature.DUTY_CYCLE, Feature.CONFIG_CHANGE, Feature.MOVING, Feature.GNSS,
         Feature.TIMESTAMP, Feature.TEMPERATURE, Feature.PRESSURE],
    ),
    4: PayloadConfig(
        [FieldConfig('moving_interval', 0, 4),
         FieldConfig('steady_interval', 4, 4),
         FieldConfig('heartbeat_interval', 8, 4),
         FieldConfig('gnss_timeout', 12, 2),
         FieldConfig('accelerometer_threshold', 14, 2),
         FieldConfig('accelerometer_delay', 16, 2),
         FieldConfig('firmware_major', 18, 1),
         FieldConfig('firmware_minor', 19, 1),
         FieldConfig('firmware_patch', 20, 1),
         FieldConfig('hardware_type', 21, 1),
         FieldConfig('hardware_revision', 22, 1),
         FieldConfig('battery_interval', 23, 4),
         FieldConfig('rejoin_interval', 27, 4),
         FieldConfig('accuracy_enhancement', 31, 1),
         FieldConfig('light_lower_threshold', 32, 2),
         FieldConfig('light_upper_threshold', 34, 2)],
        Port4Payload,
        [Feature.CONFIG, Feature.FIRMWARE_VERSION, Feature.HARDWARE_VERSION],
    ),
    15: TAGSL_PORTS[15],
}


class NomadXSDecoder(PortDecoder):
    """Decoder for nomad-XS uplinks."""

    name = 'nomad-XS'
    ports = PORTS
