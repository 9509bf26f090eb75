"""
loracloud_v2.py - LoRaCloud v2 solver.

Unlike the v1 client, the uplink context arrives as explicit options. The
moving state and capture timestamp reported by the device decide which
capability features the returned uplink declares, and the data object
implements exactly those capabilities.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import httpx

from ..errors import caused_by
from ..features import Feature
from ..uplink import DecodedUplink
from .base import SolverV2Options
from .errors import (BuildRequest, DecodeFailed, DecodingResponse, EmptyPayload,
                     InvalidDevEui, InvalidOptions, InvalidUplinkCounter, PositionInvalid,
                     PositionResolutionIsEmpty, RequestFailed, ResponseInvalid,
                     SemtechLoRaCloudShutdown, UnexpectedStatus, UnexpectedStatusCode)
from .loracloud import (DEFAULT_TIMEOUT, SEMTECH_BASE_URL, SHUTDOWN_NOTICE,
                        TRAXMATE_BASE_URL, LoracloudClient, UplinkMsg, UplinkResponse,
                        utcnow, valid_dev_eui)


logger = logging.getLogger(__name__)

DEFAULT_BUFFERED_THRESHOLD = timedelta(minutes=1)


# =============================================================================
# Data shapes
# =============================================================================

class SolverData:
    """GNSS accessors delegating to the LoRaCloud response."""

    def __init__(self, response: UplinkResponse):
        self.response = response

    def get_latitude(self) -> float:
        return self.response.get_latitude()

    def get_longitude(self) -> float:
        return self.response.get_longitude()

    def get_altitude(self) -> float:
        return self.response.get_altitude()

    def get_accuracy(self) -> Optional[float]:
        return self.response.get_accuracy()

    def get_ttf(self) -> Optional[timedelta]:
        return None

    def get_pdop(self) -> Optional[float]:
        return self.response.get_pdop()

    def get_satellites(self) -> Optional[int]:
        return None

    def to_dict(self) -> Dict[str, Any]:
        out = self.response.to_dict()
        out['captured_at'] = self.response.capture_time() or None
        return out

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.response!r})'


class SolverDataTS(SolverData):
    def __init__(self, response: UplinkResponse, timestamp: datetime):
        super().__init__(response)
        self.timestamp = timestamp

    def get_timestamp(self) -> Optional[datetime]:
        return self.timestamp

    def to_dict(self) -> Dict[str, Any]:
        out = super().to_dict()
        out['timestamp'] = self.timestamp
        return out


class SolverDataMoving(SolverData):
    def __init__(self, response: UplinkResponse, moving: bool):
        super().__init__(response)
        self.moving = moving

    def is_moving(self) -> bool:
        return self.moving

    def to_dict(self) -> Dict[str, Any]:
        out = super().to_dict()
        out['moving'] = self.moving
        return out


class SolverDataTSMoving(SolverDataTS):
    def __init__(self, response: UplinkResponse, timestamp: datetime, moving: bool):
        super().__init__(response, timestamp)
        self.moving = moving

    def is_moving(self) -> bool:
        return self.moving

    def to_dict(self) -> Dict[str, Any]:
        out = super().to_dict()
        out['moving'] = self.moving
        return out


class _Buffered:
    def is_buffered(self) -> bool:
        return True

    def get_buffer_level(self) -> Optional[int]:
        return None


class SolverDataTSBuffered(_Buffered, SolverDataTS):
    pass


class SolverDataTSMovingBuffered(_Buffered, SolverDataTSMoving):
    pass


def _shape(response: UplinkResponse, timestamp: Optional[datetime],
           moving: Optional[bool], buffered: bool) -> SolverData:
    if timestamp is not None and moving is not None:
        if buffered:
            return SolverDataTSMovingBuffered(response, timestamp, moving)
        return SolverDataTSMoving(response, timestamp, moving)
    if timestamp is not None:
        if buffered:
            return SolverDataTSBuffered(response, timestamp)
        return SolverDataTS(response, timestamp)
    if moving is not None:
        return SolverDataMoving(response, moving)
    return SolverData(response)


# =============================================================================
# Client
# =============================================================================

class LoracloudV2Client:
    """
    Stateless LoRaCloud v2 solver, safe to share between threads.

    ``timeout`` passed to ``solve`` is the caller's deadline for the HTTP
    round-trip in seconds; ``None`` falls back to the client's ``timeout``.
    """

    def __init__(self, access_token: str, base_url: str = TRAXMATE_BASE_URL,
                 buffered_threshold: timedelta = DEFAULT_BUFFERED_THRESHOLD,
                 timeout: float = DEFAULT_TIMEOUT,
                 http_client: Optional[httpx.Client] = None, now=utcnow):
        self.access_token = access_token
        self.base_url = base_url.rstrip('/')
        self.buffered_threshold = buffered_threshold
        self.timeout = timeout
        self.http = http_client or httpx.Client()
        self.now = now
        if self.base_url == SEMTECH_BASE_URL:
            logger.warning('LoRa Cloud is sunsetting on 31.07.2025, see %s', SHUTDOWN_NOTICE)

    def validate_options(self, payload: str, options: SolverV2Options) -> None:
        if not valid_dev_eui(options.dev_eui):
            raise InvalidDevEui()
        if not payload:
            raise EmptyPayload()
        if not 0 <= options.uplink_counter <= 0xFFFF:
            raise InvalidUplinkCounter(str(options.uplink_counter))
        if options.timestamp is not None and options.timestamp.tzinfo is None:
            raise InvalidOptions('timestamp must be timezone-aware')

    def solve(self, payload: str, options: SolverV2Options,
              timeout: Optional[float] = None) -> DecodedUplink:
        self.validate_options(payload, options)

        now = self.now()
        ts = options.timestamp if options.timestamp is not None else now

        try:
            client = LoracloudClient(self.access_token, base_url=self.base_url,
                                     timeout=self.timeout, http_client=self.http, now=self.now)
        except SemtechLoRaCloudShutdown as err:
            raise BuildRequest() from err

        uplink = UplinkMsg(payload, options.uplink_counter, options.port,
                           timestamp=ts.timestamp())
        try:
            response = client.deliver_uplink_message(options.dev_eui, uplink, timeout=timeout)
        except UnexpectedStatusCode as err:
            raise UnexpectedStatus(err.status, err.body) from err
        except DecodingResponse as err:
            raise DecodeFailed() from err
        except PositionResolutionIsEmpty as err:
            raise PositionInvalid() from err
        except ResponseInvalid:
            raise
        except Exception as err:
            if caused_by(err, httpx.TimeoutException):
                raise RequestFailed('deadline exceeded') from err
            raise RequestFailed() from err

        if response is None:
            raise ResponseInvalid('nil response')

        features = []
        problem = response.position_problem()
        if problem is None:
            features.append(Feature.GNSS)
        else:
            logger.warning('position resolution invalid for %s (no GNSS feature set): %s',
                           response.deveui or options.dev_eui, problem)

        buffered = False
        if options.timestamp is not None:
            features.append(Feature.TIMESTAMP)
            if options.timestamp < now - self.buffered_threshold:
                buffered = True
                features.append(Feature.BUFFERED)

        if options.moving is not None:
            features.append(Feature.MOVING)

        data = _shape(response, options.timestamp, options.moving, buffered)
        return DecodedUplink(features, data)
