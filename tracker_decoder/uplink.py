"""
uplink.py - The decoded uplink envelope.
"""

import dataclasses
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from .errors import ValidationFailed
from .features import CAPABILITIES, AccessPoint, Feature


class DecodedUplink:
    """
    A decoded record together with the capabilities it declares.

    ``features`` keeps declaration order; membership checks go through a
    set so ``uplink.is_(Feature.GNSS)`` and ``Feature.GNSS in uplink`` are
    constant time.
    """

    def __init__(self, features: Iterable[Feature], data: Any,
                 errors: Optional[List[ValidationFailed]] = None):
        ordered = []
        for feature in features:
            if feature not in ordered:
                ordered.append(feature)
        self.features: List[Feature] = ordered
        self._feature_set = frozenset(ordered)
        self.data = data
        self.errors: List[ValidationFailed] = list(errors or [])

    def is_(self, feature: Feature) -> bool:
        return feature in self._feature_set

    def __contains__(self, feature: Feature) -> bool:
        return self.is_(feature)

    def implements(self, feature: Feature) -> bool:
        """True when ``data`` provides the accessor set of ``feature``."""
        return isinstance(self.data, CAPABILITIES[feature])

    def to_dict(self) -> Dict[str, Any]:
        out = {
            'features': [f.value for f in self.features],
            'data': to_jsonable(self.data),
        }
        if self.errors:
            out['errors'] = [str(e) for e in self.errors]
        return out

    def __repr__(self) -> str:
        names = ', '.join(f.value for f in self.features)
        return f'DecodedUplink([{names}], {self.data!r})'


def to_jsonable(value: Any) -> Any:
    """Convert records and their attribute values to JSON-compatible objects."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, timedelta):
        return value.total_seconds()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, AccessPoint):
        return {'mac': value.mac, 'rssi': value.rssi}
    if isinstance(value, type):
        return value.__name__
    if hasattr(value, 'to_dict'):
        return to_jsonable(value.to_dict())
    if dataclasses.is_dataclass(value):
        return {f.name: to_jsonable(getattr(value, f.name))
                for f in dataclasses.fields(value)}
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value
