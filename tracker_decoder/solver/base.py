"""
base.py - Position solver interfaces.

A v1 solver receives the raw payload together with the uplink context; a
v2 solver receives the payload and explicit options (moving state and
capture timestamp when the device reported them).
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional, Protocol, Tuple

from ..uplink import DecodedUplink


@dataclass(frozen=True)
class SolverV2Options:
    dev_eui: str
    uplink_counter: int
    port: int
    # capture time reported by the device, when known
    timestamp: Optional[datetime] = None
    moving: Optional[bool] = None


class SolverV1(Protocol):
    def solve(self, payload: str, dev_eui: str, fcnt: int, port: int,
              timeout: Optional[float] = None) -> DecodedUplink: ...


class SolverV2(Protocol):
    def solve(self, payload: str, options: SolverV2Options,
              timeout: Optional[float] = None) -> DecodedUplink: ...


class NoopSolver:
    """Solver that returns an empty uplink for every payload."""

    def solve(self, payload: str, *args, **kwargs) -> DecodedUplink:
        return DecodedUplink([], [])


class MockSolverV1:
    """Returns ``data`` (or raises ``error``) and records each call."""

    def __init__(self, data: Optional[DecodedUplink] = None,
                 error: Optional[Exception] = None):
        self.data = data
        self.error = error
        self.calls: List[Tuple[str, str, int, int]] = []

    def solve(self, payload: str, dev_eui: str, fcnt: int, port: int,
              timeout: Optional[float] = None) -> DecodedUplink:
        self.calls.append((payload, dev_eui, fcnt, port))
        if self.error is not None:
            raise self.error
        return self.data


class MockSolverV2:
    """Returns ``data`` (or raises ``error``) and records each call."""

    def __init__(self, data: Optional[DecodedUplink] = None,
                 error: Optional[Exception] = None):
        self.data = data
        self.error = error
        self.calls: List[Tuple[str, SolverV2Options]] = []

    def solve(self, payload: str, options: SolverV2Options,
              timeout: Optional[float] = None) -> DecodedUplink:
        self.calls.append((payload, options))
        if self.error is not None:
            raise self.error
        return self.data

    @property
    def last(self) -> Tuple[str, Any]:
        return self.calls[-1]
