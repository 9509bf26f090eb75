"""
aws.py - AWS IoT Wireless position-estimate data shape.

The SDK call itself lives with the caller; this module prepares the GNSS
blob and capture time for the request and turns the GeoJSON answer into an
uplink with GNSS, Timestamp and Buffered capabilities.
"""

import json
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Union

from ..features import Feature
from ..uplink import DecodedUplink
from .errors import InvalidGeoJSON, InvalidGeoJSONCoordinates, PositionResolutionIsEmpty


# deadline for GetPositionEstimate, seconds
DEFAULT_TIMEOUT = 2.0
GPS_EPOCH = datetime(1980, 1, 6, tzinfo=timezone.utc)
LEAP_SECONDS = 18
BUFFERED_AFTER = timedelta(minutes=1)


def strip_tag(payload: str) -> str:
    """Drop the leading tag byte of a GNSS blob before forwarding it."""
    return payload[2:] if len(payload) > 2 else payload


def gps_capture_seconds(captured_at: datetime) -> float:
    """Seconds since the GPS epoch (no leap-second correction)."""
    return (captured_at - GPS_EPOCH).total_seconds()


def extract_capture_time(payload: bytes, leap_seconds: int = LEAP_SECONDS) -> datetime:
    """Read the little-endian GPS-seconds capture time at bytes 1..4 as UTC."""
    if len(payload) < 5:
        raise ValueError('payload too short')
    gps_seconds = int.from_bytes(payload[1:5], 'little')
    return GPS_EPOCH + timedelta(seconds=gps_seconds - leap_seconds)


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value.replace('Z', '+00:00'))


@dataclass
class Position:
    latitude: float
    longitude: float
    altitude: Optional[float] = None
    timestamp: Optional[datetime] = None
    accuracy: Optional[float] = None
    buffered: bool = False

    @classmethod
    def from_geojson(cls, document: Union[str, bytes, Dict[str, Any]],
                     now: Optional[datetime] = None) -> 'Position':
        """
        Parse a GeoJSON Point (bare or wrapped in a Feature).

        Coordinates are ``[lon, lat, alt?]``. The position is buffered when
        its timestamp is more than a minute older than ``now``.
        """
        if not document:
            raise PositionResolutionIsEmpty()
        if isinstance(document, (str, bytes)):
            try:
                document = json.loads(document)
            except ValueError as err:
                raise InvalidGeoJSON() from err
        if not isinstance(document, dict):
            raise InvalidGeoJSON()

        geometry = document.get('geometry') or document
        coordinates = geometry.get('coordinates') or []
        if len(coordinates) < 2 or coordinates[0] is None or coordinates[1] is None:
            raise InvalidGeoJSONCoordinates()

        properties = document.get('properties') or {}
        try:
            timestamp = _parse_time(properties.get('timestamp'))
        except ValueError as err:
            raise InvalidGeoJSON() from err

        altitude = None
        if len(coordinates) > 2 and coordinates[2] is not None:
            altitude = float(coordinates[2])

        now = now or datetime.now(timezone.utc)
        return cls(
            latitude=float(coordinates[1]),
            longitude=float(coordinates[0]),
            altitude=altitude,
            timestamp=timestamp,
            accuracy=properties.get('horizontalAccuracy'),
            buffered=timestamp is not None and timestamp < now - BUFFERED_AFTER,
        )

    def to_uplink(self) -> DecodedUplink:
        return DecodedUplink([Feature.GNSS, Feature.TIMESTAMP, Feature.BUFFERED], self)

    def get_timestamp(self) -> Optional[datetime]:
        return self.timestamp

    def get_latitude(self) -> float:
        return self.latitude

    def get_longitude(self) -> float:
        return self.longitude

    def get_altitude(self) -> float:
        return self.altitude if self.altitude is not None else 0.0

    def get_accuracy(self) -> Optional[float]:
        return self.accuracy

    def get_ttf(self) -> Optional[timedelta]:
        return None

    def get_pdop(self) -> Optional[float]:
        return None

    def get_satellites(self) -> Optional[int]:
        return None

    def is_buffered(self) -> bool:
        return self.buffered

    def get_buffer_level(self) -> Optional[int]:
        return None
