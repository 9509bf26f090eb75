"""
errors.py - Position solver errors.

The LoRaCloud v1 client raises the transport-level kinds (SendingRequest,
UnexpectedStatusCode, DecodingResponse). The v2 client re-raises them under
its own taxonomy, chained to the underlying error.
"""

from typing import Any

from ..errors import DecoderError


class SolverError(DecoderError):
    kind = 'solver error'


# -----------------------------------------------------------------------------
# LoRaCloud v1
# -----------------------------------------------------------------------------

class InvalidContext(SolverError):
    """Port, DevEUI or frame counter missing from the solve call."""

    kind = 'invalid solve context'


class SemtechLoRaCloudShutdown(SolverError):
    kind = ('LoRa Cloud is no longer available after 31.07.2025, '
            'see https://www.semtech.com/loracloud-shutdown')


class SendingRequest(SolverError):
    kind = 'error sending request'


class UnexpectedStatusCode(SolverError):
    kind = 'unexpected status code returned'

    def __init__(self, status: int, body: Any = None):
        super().__init__(f'{status}')
        self.status = status
        self.body = body


class DecodingResponse(SolverError):
    kind = 'error decoding response'


class PositionResolutionIsEmpty(SolverError):
    kind = 'position resolution is empty'


# -----------------------------------------------------------------------------
# LoRaCloud v2
# -----------------------------------------------------------------------------

class InvalidOptions(SolverError):
    kind = 'invalid solver options'


class InvalidDevEui(InvalidOptions):
    kind = 'invalid DevEUI (must be 16 hex chars)'


class EmptyPayload(InvalidOptions):
    kind = 'empty payload'


class InvalidUplinkCounter(InvalidOptions):
    kind = 'invalid uplink counter (must fit 16 bits)'


class BuildRequest(SolverError):
    kind = 'failed to build request'


class RequestFailed(SolverError):
    kind = 'request failed'


class UnexpectedStatus(SolverError):
    kind = 'unexpected status code'

    def __init__(self, status: int, body: Any = None):
        super().__init__(f'{status}')
        self.status = status
        self.body = body


class DecodeFailed(SolverError):
    kind = 'failed to decode response'


class ResponseInvalid(SolverError):
    kind = 'invalid response from LoRaCloud'


class MultipleDevicesInResponse(ResponseInvalid):
    kind = 'multiple devices found in response'


class DeviceEuiNotInResponse(ResponseInvalid):
    kind = 'device EUI not found in response'


class PositionInvalid(ResponseInvalid):
    kind = 'position resolution is invalid'


class NoPosition(ResponseInvalid):
    kind = 'no position solution in response'


class ZeroCoordinates(ResponseInvalid):
    kind = 'position has zero coordinates (0,0)'


class MissingCapturedAt(ResponseInvalid):
    kind = 'missing captured_at (UTC) timestamp in response'


# -----------------------------------------------------------------------------
# AWS position shape
# -----------------------------------------------------------------------------

class InvalidGeoJSON(SolverError):
    kind = 'failed to unmarshal GeoJSON payload'


class InvalidGeoJSONCoordinates(InvalidGeoJSON):
    kind = 'invalid GeoJSON point: coordinates must have at least 2 elements'
