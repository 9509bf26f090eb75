"""
payload.py - Declarative port layouts.

A PayloadConfig lists the fields of one port layout in declaration order.
Several descriptors may share a byte when each extracts a different bit
slice through its own transform (the tag-S/L status byte, the tag-XL
rotation-state nibbles).
"""

from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence, Tuple

from .features import Feature


Transform = Callable[[Any], Any]


@dataclass(frozen=True)
class FieldConfig:
    """One field of a port layout."""
    name: str
    start: int
    length: int
    optional: bool = False
    hex: bool = False
    transform: Optional[Transform] = None
    # inverse of transform, returns the raw int (or hex string) to write
    encode: Optional[Transform] = None

    @property
    def end(self) -> int:
        return self.start + self.length


@dataclass(frozen=True)
class TagConfig:
    """One attribute extracted from a tag-length-value entry."""
    tag: int
    name: str
    optional: bool = True
    hex: bool = False
    transform: Optional[Transform] = None
    features: Tuple[Feature, ...] = ()


@dataclass(frozen=True)
class PayloadConfig:
    fields: Sequence[FieldConfig]
    record_type: type
    features: Sequence[Feature] = ()
    tags: Sequence[TagConfig] = ()

    @property
    def tagged(self) -> bool:
        return len(self.tags) > 0

    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]


def access_points(start: int, count: int, rssi: bool = True,
                  rssi_first: bool = False) -> List[FieldConfig]:
    """
    Build the repeated MAC/RSSI descriptors of a Wi-Fi scan.

    The first access point is required; the rest are optional. ``rssi_first``
    selects the ``[rssi][mac]`` ordering used by tag-XL and smart-label.
    """
    configs = []
    pos = start
    for i in range(1, count + 1):
        optional = i > 1
        if not rssi:
            configs.append(FieldConfig(f'mac{i}', pos, 6, optional=optional, hex=True))
            pos += 6
            continue
        if rssi_first:
            configs.append(FieldConfig(f'rssi{i}', pos, 1, optional=optional))
            configs.append(FieldConfig(f'mac{i}', pos + 1, 6, optional=optional, hex=True))
        else:
            configs.append(FieldConfig(f'mac{i}', pos, 6, optional=optional, hex=True))
            configs.append(FieldConfig(f'rssi{i}', pos + 6, 1, optional=optional))
        pos += 7
    return configs
