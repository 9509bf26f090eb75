"""
features.py - Capability tags and the accessor sets behind them.

A decoded record may implement several capability interfaces at once. The
uplink envelope carries the declared Feature tags so consumers can check
``uplink.is_(Feature.GNSS)`` before calling ``data.get_latitude()``.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum, IntEnum
from typing import Dict, List, Optional, Protocol, runtime_checkable


class Feature(Enum):
    TIMESTAMP = 'timestamp'
    GNSS = 'gnss'
    BUFFERED = 'buffered'
    BATTERY = 'battery'
    PHOTOVOLTAIC = 'photovoltaic'
    TEMPERATURE = 'temperature'
    HUMIDITY = 'humidity'
    PRESSURE = 'pressure'
    WIFI = 'wifi'
    MOVING = 'moving'
    DUTY_CYCLE = 'duty_cycle'
    CONFIG = 'config'
    CONFIG_CHANGE = 'config_change'
    FIRMWARE_VERSION = 'firmware_version'
    HARDWARE_VERSION = 'hardware_version'
    BUTTON = 'button'
    RESET_REASON = 'reset_reason'
    ROTATION_STATE = 'rotation_state'
    SEQUENCE_NUMBER = 'sequence_number'


# =============================================================================
# Enumerations surfaced by capability accessors
# =============================================================================

class ResetReason(Enum):
    UNKNOWN = 'UNKNOWN'
    LRR1110_FAILURE = 'LRR1110_FAILURE'
    POWER_RESET = 'POWER_RESET'
    PIN_RESET = 'PIN_RESET'
    WATCHDOG = 'WATCHDOG'
    SYSTEM_RESET = 'SYSTEM_RESET'
    OTHER_RESET = 'OTHER_RESET'

    @classmethod
    def from_code(cls, code: int) -> 'ResetReason':
        return _RESET_CODES.get(code, cls.UNKNOWN)


_RESET_CODES = {
    1: ResetReason.LRR1110_FAILURE,
    2: ResetReason.POWER_RESET,
    3: ResetReason.PIN_RESET,
    4: ResetReason.WATCHDOG,
    5: ResetReason.SYSTEM_RESET,
    6: ResetReason.OTHER_RESET,
}


class RotationState(IntEnum):
    UNDEFINED = 0
    MIXING = 1
    POURING = 2
    ERROR = 3

    @classmethod
    def from_code(cls, code: int) -> 'RotationState':
        try:
            return cls(code)
        except ValueError:
            return cls.UNDEFINED

    @property
    def label(self) -> str:
        return self.name.lower()


class DataRate(Enum):
    BLAZING = 'blazing'
    FAST = 'fast'
    QUICK = 'quick'
    MODERATE = 'moderate'
    SLOW = 'slow'
    GLACIAL = 'glacial'
    AUTOMATIC_NARROW = 'automatic-narrow'
    AUTOMATIC_WIDE = 'automatic-wide'

    @classmethod
    def from_code(cls, code: int) -> Optional['DataRate']:
        members = list(cls)
        if 0 <= code < len(members):
            return members[code]
        return None


@dataclass(frozen=True)
class AccessPoint:
    mac: str
    rssi: Optional[int] = None


# =============================================================================
# Capability interfaces
# =============================================================================

@runtime_checkable
class TimestampCapability(Protocol):
    def get_timestamp(self) -> Optional[datetime]: ...


@runtime_checkable
class GNSSCapability(Protocol):
    def get_latitude(self) -> float: ...
    def get_longitude(self) -> float: ...
    def get_altitude(self) -> float: ...
    def get_accuracy(self) -> Optional[float]: ...
    def get_ttf(self) -> Optional[timedelta]: ...
    def get_pdop(self) -> Optional[float]: ...
    def get_satellites(self) -> Optional[int]: ...


@runtime_checkable
class BufferedCapability(Protocol):
    def is_buffered(self) -> bool: ...
    def get_buffer_level(self) -> Optional[int]: ...


@runtime_checkable
class BatteryCapability(Protocol):
    def get_battery_voltage(self) -> float: ...
    def get_low_battery(self) -> Optional[bool]: ...


@runtime_checkable
class PhotovoltaicCapability(Protocol):
    def get_photovoltaic_voltage(self) -> float: ...


@runtime_checkable
class TemperatureCapability(Protocol):
    def get_temperature(self) -> float: ...


@runtime_checkable
class HumidityCapability(Protocol):
    def get_humidity(self) -> float: ...


@runtime_checkable
class PressureCapability(Protocol):
    def get_pressure(self) -> float: ...


@runtime_checkable
class WiFiCapability(Protocol):
    def get_access_points(self) -> List[AccessPoint]: ...


@runtime_checkable
class MovingCapability(Protocol):
    def is_moving(self) -> bool: ...


@runtime_checkable
class DutyCycleCapability(Protocol):
    def is_duty_cycle(self) -> bool: ...


@runtime_checkable
class ConfigCapability(Protocol):
    def get_ble(self) -> Optional[bool]: ...
    def get_gnss(self) -> Optional[bool]: ...
    def get_wifi(self) -> Optional[bool]: ...
    def get_acceleration(self) -> Optional[bool]: ...
    def get_moving_interval(self) -> Optional[int]: ...
    def get_steady_interval(self) -> Optional[int]: ...
    def get_config_interval(self) -> Optional[int]: ...
    def get_gnss_timeout(self) -> Optional[int]: ...
    def get_accelerometer_threshold(self) -> Optional[int]: ...
    def get_accelerometer_delay(self) -> Optional[int]: ...
    def get_battery_interval(self) -> Optional[int]: ...
    def get_rejoin_interval(self) -> Optional[int]: ...
    def get_low_light_threshold(self) -> Optional[int]: ...
    def get_high_light_threshold(self) -> Optional[int]: ...
    def get_low_temperature_threshold(self) -> Optional[int]: ...
    def get_high_temperature_threshold(self) -> Optional[int]: ...
    def get_access_points_threshold(self) -> Optional[int]: ...
    def get_batch_size(self) -> Optional[int]: ...
    def get_buffer_size(self) -> Optional[int]: ...
    def get_data_rate(self) -> Optional[DataRate]: ...


@runtime_checkable
class ConfigChangeCapability(Protocol):
    def get_config_id(self) -> Optional[int]: ...
    def get_config_change(self) -> bool: ...


@runtime_checkable
class FirmwareVersionCapability(Protocol):
    def get_firmware_hash(self) -> Optional[str]: ...
    def get_firmware_version(self) -> Optional[str]: ...


@runtime_checkable
class HardwareVersionCapability(Protocol):
    def get_hardware_version(self) -> str: ...


@runtime_checkable
class ButtonCapability(Protocol):
    def get_pressed(self) -> bool: ...


@runtime_checkable
class ResetReasonCapability(Protocol):
    def get_reset_reason(self) -> ResetReason: ...


@runtime_checkable
class RotationStateCapability(Protocol):
    def get_old_rotation_state(self) -> RotationState: ...
    def get_new_rotation_state(self) -> RotationState: ...
    def get_rotations(self) -> float: ...
    def get_duration(self) -> timedelta: ...


@runtime_checkable
class SequenceNumberCapability(Protocol):
    def get_sequence_number(self) -> Optional[int]: ...


CAPABILITIES: Dict[Feature, type] = {
    Feature.TIMESTAMP: TimestampCapability,
    Feature.GNSS: GNSSCapability,
    Feature.BUFFERED: BufferedCapability,
    Feature.BATTERY: BatteryCapability,
    Feature.PHOTOVOLTAIC: PhotovoltaicCapability,
    Feature.TEMPERATURE: TemperatureCapability,
    Feature.HUMIDITY: HumidityCapability,
    Feature.PRESSURE: PressureCapability,
    Feature.WIFI: WiFiCapability,
    Feature.MOVING: MovingCapability,
    Feature.DUTY_CYCLE: DutyCycleCapability,
    Feature.CONFIG: ConfigCapability,
    Feature.CONFIG_CHANGE: ConfigChangeCapability,
    Feature.FIRMWARE_VERSION: FirmwareVersionCapability,
    Feature.HARDWARE_VERSION: HardwareVersionCapability,
    Feature.BUTTON: ButtonCapability,
    Feature.RESET_REASON: ResetReasonCapability,
    Feature.ROTATION_STATE: RotationStateCapability,
    Feature.SEQUENCE_NUMBER: SequenceNumberCapability,
}
