"""
loracloud.py - LoRaCloud device-management client (v1 solver).

Uplinks are delivered to ``<base>/api/v1/device/send``; the response carries
the device state and, for GNSS and Wi-Fi scans, a position solution.

Usage:
    client = LoracloudClient(token)
    uplink = client.solve('8a...', dev_eui='927da4b72110927d', fcnt=42, port=192)
    print(uplink.data.get_latitude())
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

import httpx

from ..features import Feature
from ..uplink import DecodedUplink
from .errors import (DecodingResponse, DeviceEuiNotInResponse, InvalidContext,
                     MissingCapturedAt, MultipleDevicesInResponse, NoPosition,
                     ResponseInvalid, SemtechLoRaCloudShutdown, SendingRequest,
                     UnexpectedStatusCode, ZeroCoordinates)


logger = logging.getLogger(__name__)

SEMTECH_BASE_URL = 'https://mgs.loracloud.com'
TRAXMATE_BASE_URL = 'https://lw.traxmate.io'
SEMTECH_SHUTDOWN = datetime(2025, 7, 31, tzinfo=timezone.utc)
SHUTDOWN_NOTICE = 'https://www.semtech.com/loracloud-shutdown'

DEFAULT_TIMEOUT = 5.0
BUFFERED_AFTER = timedelta(minutes=1)

_DEV_EUI_RE = re.compile(r'[0-9a-fA-F]{16}')
# keys only present on a direct (non-nested) uplink response
_RESPONSE_KEYS = ('deveui', 'position_solution', 'operation', 'info_fields', 'fports')


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def valid_dev_eui(dev_eui: str) -> bool:
    return bool(_DEV_EUI_RE.fullmatch(dev_eui or ''))


def format_dev_eui(dev_eui: str) -> str:
    """Upper-case and hyphenate a bare 16 hex char DevEUI (``AA-BB-...``)."""
    dev_eui = dev_eui.upper()
    if '-' in dev_eui:
        return dev_eui
    return '-'.join(dev_eui[i:i + 2] for i in range(0, 16, 2))


def _instant(seconds: float) -> Optional[datetime]:
    if not seconds:
        return None
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


# =============================================================================
# Request / response model
# =============================================================================

@dataclass
class UplinkMsg:
    payload: str
    fcnt: int
    port: int
    msgtype: str = 'updf'
    # RX timestamp, Unix seconds UTC
    timestamp: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        out = {
            'msgtype': self.msgtype,
            'fcnt': self.fcnt,
            'port': self.port,
            'payload': self.payload,
        }
        if self.timestamp is not None:
            out['timestamp'] = self.timestamp
        return out


@dataclass
class PositionSolution:
    llh: List[float] = field(default_factory=list)
    accuracy: Optional[float] = None
    gdop: Optional[float] = None
    capture_time_gps: float = 0.0
    capture_time_utc: float = 0.0
    capture_times_gps: List[float] = field(default_factory=list)
    capture_times_utc: List[float] = field(default_factory=list)
    timestamp: float = 0.0
    algorithm_type: str = ''

    @classmethod
    def from_dict(cls, doc: Dict[str, Any]) -> 'PositionSolution':
        return cls(
            llh=[float(v) for v in doc.get('llh') or []],
            accuracy=doc.get('accuracy'),
            gdop=doc.get('gdop'),
            capture_time_gps=float(doc.get('capture_time_gps') or 0),
            capture_time_utc=float(doc.get('capture_time_utc') or 0),
            capture_times_gps=[float(v) for v in doc.get('capture_times_gps') or []],
            capture_times_utc=[float(v) for v in doc.get('capture_times_utc') or []],
            timestamp=float(doc.get('timestamp') or 0),
            algorithm_type=doc.get('algorithm_type') or '',
        )

    def capture_time(self) -> float:
        """
        Capture instant in Unix seconds, 0 when unknown.

        GNSS-NG solutions may only carry per-scan capture times; the last
        non-zero one is the most recent scan of the group.
        """
        if self.algorithm_type == 'gnssng' and not self.capture_time_utc:
            for ts in reversed(self.capture_times_utc):
                if ts:
                    return ts
            return 0.0
        return self.capture_time_utc


@dataclass
class UplinkResponse:
    """
    Result of one delivered uplink.

    Implements the Timestamp, GNSS and Buffered capabilities over the
    position solution. A missing solution reads as zero coordinates.
    """
    deveui: str = ''
    operation: str = ''
    position_solution: Optional[PositionSolution] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, result: Dict[str, Any]) -> 'UplinkResponse':
        solution = result.get('position_solution')
        return cls(
            deveui=(result.get('deveui') or '').replace('-', ''),
            operation=result.get('operation') or '',
            position_solution=PositionSolution.from_dict(solution) if solution else None,
            raw=result,
        )

    @property
    def solution(self) -> PositionSolution:
        return self.position_solution or PositionSolution()

    def _llh(self, index: int) -> float:
        llh = self.solution.llh
        return llh[index] if len(llh) > index else 0.0

    def capture_time(self) -> float:
        return self.solution.capture_time()

    def has_valid_coordinates(self) -> bool:
        return self._llh(0) != 0 and self._llh(1) != 0

    def position_problem(self) -> Optional[ResponseInvalid]:
        """Why the position cannot be used, or None when it is valid."""
        if self.position_solution is None:
            return NoPosition()
        if not self.has_valid_coordinates():
            return ZeroCoordinates()
        if not self.capture_time():
            return MissingCapturedAt()
        return None

    def has_valid_position_resolution(self) -> bool:
        return self.position_problem() is None

    # Timestamp

    def get_timestamp(self) -> Optional[datetime]:
        if self.solution.algorithm_type != 'gnssng':
            return None
        return _instant(self.capture_time())

    # GNSS

    def get_latitude(self) -> float:
        return self._llh(0)

    def get_longitude(self) -> float:
        return self._llh(1)

    def get_altitude(self) -> float:
        return self._llh(2)

    def get_accuracy(self) -> Optional[float]:
        return self.solution.accuracy

    def get_ttf(self) -> Optional[timedelta]:
        return None

    def get_pdop(self) -> Optional[float]:
        return self.solution.gdop

    def get_satellites(self) -> Optional[int]:
        return None

    # Buffered

    def is_buffered(self) -> bool:
        ts = self.get_timestamp()
        return ts is not None and ts < utcnow() - BUFFERED_AFTER

    def get_buffer_level(self) -> Optional[int]:
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'deveui': self.deveui,
            'operation': self.operation,
            'latitude': self.get_latitude(),
            'longitude': self.get_longitude(),
            'altitude': self.get_altitude(),
            'accuracy': self.get_accuracy(),
            'pdop': self.get_pdop(),
            'timestamp': self.get_timestamp(),
        }


# =============================================================================
# Client
# =============================================================================

class LoracloudClient:
    """
    LoRaCloud v1 client.

    ``http_client`` may be any ``httpx.Client``; tests pass one built on an
    ``httpx.MockTransport``. ``now`` replaces the wall clock.
    """

    def __init__(self, access_token: str, base_url: str = TRAXMATE_BASE_URL,
                 timeout: float = DEFAULT_TIMEOUT,
                 http_client: Optional[httpx.Client] = None,
                 now: Callable[[], datetime] = utcnow):
        self.access_token = access_token
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.http = http_client or httpx.Client()
        self.now = now
        self._check_semtech_shutdown()

    def _check_semtech_shutdown(self) -> None:
        if self.base_url != SEMTECH_BASE_URL:
            return
        if self.now() > SEMTECH_SHUTDOWN:
            raise SemtechLoRaCloudShutdown()
        logger.warning('LoRa Cloud is sunsetting on 31.07.2025, see %s', SHUTDOWN_NOTICE)

    @property
    def is_traxmate(self) -> bool:
        return self.base_url == TRAXMATE_BASE_URL

    def solve(self, payload: str, dev_eui: str, fcnt: int, port: int,
              timeout: Optional[float] = None) -> DecodedUplink:
        if port is None or not 0 <= port <= 255:
            raise InvalidContext('context port is invalid, must be a number between 0 and 255')
        if not valid_dev_eui(dev_eui):
            raise InvalidContext('context DevEUI is invalid, '
                                 'must be a valid hex string of length 16')
        if fcnt is None or fcnt < 0:
            raise InvalidContext('context frame counter is invalid, '
                                 'must be a positive integer')

        timestamp = None
        if self.is_traxmate:
            # Traxmate only solves uplinks that carry a receive time
            timestamp = float(int(self.now().timestamp()))

        response = self.deliver_uplink_message(
            dev_eui, UplinkMsg(payload, fcnt, port, timestamp=timestamp), timeout=timeout)
        return DecodedUplink([Feature.TIMESTAMP, Feature.GNSS, Feature.BUFFERED], response)

    def deliver_uplink_message(self, dev_eui: str, uplink: UplinkMsg,
                               timeout: Optional[float] = None) -> UplinkResponse:
        """POST one uplink and return the parsed device response."""
        dev_eui = format_dev_eui(dev_eui)
        body = {'deveui': dev_eui, 'uplink': uplink.to_dict()}
        url = f'{self.base_url}/api/v1/device/send'
        headers = {'Authorization': self.access_token, 'Content-Type': 'application/json'}

        logger.debug('delivering uplink fcnt=%d port=%d for %s', uplink.fcnt, uplink.port, dev_eui)
        try:
            response = self.http.post(url, json=body, headers=headers,
                                      timeout=timeout if timeout is not None else self.timeout)
        except httpx.HTTPError as err:
            raise SendingRequest() from err

        if response.status_code != 200:
            try:
                detail = response.json()
            except ValueError:
                detail = None
            raise UnexpectedStatusCode(response.status_code, detail)

        try:
            document = response.json()
        except ValueError as err:
            raise DecodingResponse() from err

        result = document.get('result') if isinstance(document, dict) else None
        if not isinstance(result, dict):
            raise DecodingResponse('missing result object')

        if not any(key in result for key in _RESPONSE_KEYS):
            result = self._unwrap_nested(result, dev_eui)

        try:
            return UplinkResponse.from_dict(result)
        except (TypeError, ValueError, AttributeError) as err:
            raise DecodingResponse() from err

    @staticmethod
    def _unwrap_nested(result: Dict[str, Any], dev_eui: str) -> Dict[str, Any]:
        """
        Unwrap the Traxmate shape ``{"result": {"AA-BB-...": <UplinkResponse>}}``.

        The shape is recognised from the keys of ``result`` rather than from
        ``base_url``, so a proxy in front of either service is decoded the
        same way.
        """
        if len(result) != 1:
            raise MultipleDevicesInResponse(
                f'expected exactly one device EUI in the response, got {len(result)}')
        nested = result.get(dev_eui)
        if nested is None:
            raise DeviceEuiNotInResponse(f'device EUI {dev_eui} not found in response')
        if not isinstance(nested, dict):
            raise DecodingResponse(f'unexpected entry for {dev_eui}')
        inner = nested.get('result')
        return inner if isinstance(inner, dict) else nested

    def close(self) -> None:
        self.http.close()
