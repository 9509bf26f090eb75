from .base import MockSolverV1, MockSolverV2, NoopSolver, SolverV1, SolverV2, SolverV2Options
from .loracloud import LoracloudClient, UplinkResponse
from .loracloud_v2 import LoracloudV2Client

__all__ = [
    'LoracloudClient',
    'LoracloudV2Client',
    'MockSolverV1',
    'MockSolverV2',
    'NoopSolver',
    'SolverV1',
    'SolverV2',
    'SolverV2Options',
    'UplinkResponse',
]
