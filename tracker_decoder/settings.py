"""
settings.py - YAML settings for the solver clients and decoders.

Usage:
    from tracker_decoder.settings import Settings

    settings = Settings.load('settings.yaml')
    client = settings.loracloud_v2_client()
"""

import os
from dataclasses import dataclass, field, fields, replace
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .errors import DecoderError
from .gnssng import LEAP_SECONDS
from .solver.loracloud import DEFAULT_TIMEOUT, TRAXMATE_BASE_URL, LoracloudClient
from .solver.loracloud_v2 import LoracloudV2Client


ACCESS_TOKEN_ENV = 'TRACKER_DECODER_ACCESS_TOKEN'


class SettingsError(DecoderError):
    kind = 'invalid settings'


@dataclass
class LoracloudSettings:
    base_url: str = TRAXMATE_BASE_URL
    access_token: str = ''
    # seconds
    buffered_threshold: float = 60
    timeout: float = DEFAULT_TIMEOUT


@dataclass
class GNSSNGSettings:
    leap_seconds: int = LEAP_SECONDS


@dataclass
class DecoderSettings:
    skip_validation: bool = False
    strict: bool = False


SECTIONS = {
    'loracloud': LoracloudSettings,
    'gnssng': GNSSNGSettings,
    'decoder': DecoderSettings,
}


def _section(name: str, cls: type, values: Any):
    if values is None:
        return cls()
    if not isinstance(values, dict):
        raise SettingsError(f'section {name!r} must be a mapping')
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise SettingsError(f'unknown keys in {name!r}: {", ".join(unknown)}')
    return cls(**values)


@dataclass
class Settings:
    loracloud: LoracloudSettings = field(default_factory=LoracloudSettings)
    gnssng: GNSSNGSettings = field(default_factory=GNSSNGSettings)
    decoder: DecoderSettings = field(default_factory=DecoderSettings)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]],
                  environ: Optional[Dict[str, str]] = None) -> 'Settings':
        """
        Build settings from a parsed YAML document.

        Missing sections and keys keep their defaults. The access token from
        the environment wins over the document.
        """
        data = data or {}
        if not isinstance(data, dict):
            raise SettingsError('settings document must be a mapping')
        unknown = sorted(set(data) - set(SECTIONS))
        if unknown:
            raise SettingsError(f'unknown sections: {", ".join(unknown)}')

        sections = {name: _section(name, section, data.get(name))
                    for name, section in SECTIONS.items()}
        settings = cls(**sections)

        environ = os.environ if environ is None else environ
        token = environ.get(ACCESS_TOKEN_ENV)
        if token:
            settings.loracloud = replace(settings.loracloud, access_token=token)
        return settings

    @classmethod
    def load(cls, path: Union[str, Path],
             environ: Optional[Dict[str, str]] = None) -> 'Settings':
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as err:
            raise SettingsError(str(path)) from err
        return cls.from_dict(data, environ)

    def loracloud_client(self, **kwargs) -> LoracloudClient:
        return LoracloudClient(self.loracloud.access_token,
                               base_url=self.loracloud.base_url,
                               timeout=self.loracloud.timeout, **kwargs)

    def loracloud_v2_client(self, **kwargs) -> LoracloudV2Client:
        threshold = timedelta(seconds=self.loracloud.buffered_threshold)
        return LoracloudV2Client(self.loracloud.access_token,
                                 base_url=self.loracloud.base_url,
                                 buffered_threshold=threshold,
                                 timeout=self.loracloud.timeout, **kwargs)
