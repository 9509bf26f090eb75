"""
cli.py - Decode a single uplink from the command line.

Usage:
    tracker-decoder tagsl 15 800ee5
    tracker-decoder tagxl 210 68bad325... --dev-eui 0011223344556677 --config settings.yaml
    tracker-decoder gnss-debug 98abc1e9... --received-at 2025-07-11T12:43:04Z
"""

import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from typing import List, Optional

from .decoder import PortDecoder
from .errors import DecoderError
from .gnssng import GNSSCapture, solve_captured_at
from .nomadxs import NomadXSDecoder
from .settings import Settings
from .smartlabel import SmartLabelV2Decoder
from .solver.base import NoopSolver
from .tagsl import TagSLDecoder
from .tagxl import TagXLDecoder


DEVICES = ('tagsl', 'tagxl', 'nomadxs', 'smartlabel')


def build_decoder(device: str, settings: Settings) -> PortDecoder:
    """Instantiate the decoder for ``device``; solvers need an access token."""
    options = dict(skip_validation=settings.decoder.skip_validation,
                   strict=settings.decoder.strict)
    token = settings.loracloud.access_token

    if device == 'tagsl':
        return TagSLDecoder(**options)
    if device == 'nomadxs':
        return NomadXSDecoder(**options)
    if device == 'tagxl':
        if not token:
            return TagXLDecoder(**options)
        return TagXLDecoder(solver=settings.loracloud_client(),
                            solver_v2=settings.loracloud_v2_client(), **options)
    if device == 'smartlabel':
        if not token:
            return SmartLabelV2Decoder(NoopSolver(), **options)
        return SmartLabelV2Decoder(settings.loracloud_client(),
                                   solver_v2=settings.loracloud_v2_client(), **options)
    raise ValueError(f'unknown device {device!r}')


def _received_at(value: str) -> datetime:
    try:
        instant = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        raise argparse.ArgumentTypeError(f'invalid ISO 8601 time: {value!r}')
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('--config', help='Path to settings YAML file')
    common.add_argument('-v', '--verbose', action='store_true',
                        help='Enable debug logging')

    parser = argparse.ArgumentParser(
        description='Decode an LPWAN tracker uplink and print it as JSON'
    )
    commands = parser.add_subparsers(dest='command', metavar='device')
    commands.required = True

    for device in DEVICES:
        sub = commands.add_parser(device, parents=[common],
                                  help=f'Decode a {device} uplink')
        sub.add_argument('port', type=int, help='LoRaWAN FPort')
        sub.add_argument('payload', help='Payload as a hex string')
        sub.add_argument('--dev-eui', default='', help='Device EUI (16 hex chars)')
        sub.add_argument('--fcnt', type=int, default=0, help='Uplink frame counter')
        sub.add_argument('--skip-validation', action='store_true',
                         help='Do not check the payload length')
        sub.add_argument('--strict', action='store_true',
                         help='Fail on field validation errors')

    gnss = commands.add_parser('gnss-debug', parents=[common],
                               help='Infer the capture time of a GNSS-NG NAV payload')
    gnss.add_argument('payload', help='NAV payload as a hex string')
    gnss.add_argument('-c', '--received-at', type=_received_at,
                      help='Receive time, ISO 8601 (default: now)')
    return parser.parse_args(argv)


def _decode(args: argparse.Namespace, settings: Settings) -> dict:
    if args.skip_validation:
        settings.decoder.skip_validation = True
    if args.strict:
        settings.decoder.strict = True
    decoder = build_decoder(args.command, settings)
    return decoder.decode(args.payload, args.port, args.dev_eui, args.fcnt).to_dict()


def _gnss_debug(args: argparse.Namespace, settings: Settings) -> dict:
    received_at = args.received_at or datetime.now(timezone.utc)
    captured_at = solve_captured_at([GNSSCapture(args.payload, received_at)],
                                    leap_seconds=settings.gnssng.leap_seconds)
    return {'received_at': received_at.isoformat(), 'captured_at': captured_at.isoformat()}


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )

    try:
        settings = Settings.load(args.config) if args.config else Settings.from_dict({})
        if args.command == 'gnss-debug':
            out = _gnss_debug(args, settings)
        else:
            out = _decode(args, settings)
    except (DecoderError, OSError) as e:
        print(f'error: {e}', file=sys.stderr)
        return 1

    print(json.dumps(out, indent=2))
    return 0


if __name__ == '__main__':
    sys.exit(main())
