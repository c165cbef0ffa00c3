#!/usr/bin/env python3
"""
Command line entry point: ``tfgc gc``.
"""

import argparse
import sys
import traceback
from typing import List, Optional

from .config import DEFAULT_MAX_AGE, DEFAULT_NAMESPACE, DEFAULT_SELECTOR, REQUEST_TIMEOUT
from .durations import format_duration, parse_duration
from .errors import GCError
from .gc import GarbageCollector
from .kube import connect
from .retention import RetentionPolicy


def _max_age(value: str):
    try:
        delta = parse_duration(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))
    if delta.total_seconds() < 0:
        raise argparse.ArgumentTypeError(f'duration must not be negative: {value!r}')
    return delta


def request_timeout(value: str) -> Optional[float]:
    """Parse the TFGC_REQUEST_TIMEOUT setting; empty means no limit."""
    if not value.strip():
        return None
    try:
        seconds = float(value)
    except ValueError:
        raise ValueError(f'invalid TFGC_REQUEST_TIMEOUT {value!r}: expected a number of seconds')
    if not 0 < seconds < float('inf'):
        raise ValueError(f'invalid TFGC_REQUEST_TIMEOUT {value!r}: must be a positive number of seconds')
    return seconds


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='tfgc',
        description='Garbage collects Terraform test resources.',
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    gc = subparsers.add_parser(
        'gc',
        help='Garbage collects test resources',
        description='Garbage collects test resources.',
        epilog='example: tfgc gc --ns jx --duration 3h',
    )
    gc.add_argument('-n', '--ns', default=DEFAULT_NAMESPACE,
                    help='the namespace to query the Terraform resources')
    gc.add_argument('-l', '--selector', default=DEFAULT_SELECTOR,
                    help='the selector to find the Terraform resources to remove')
    gc.add_argument('-d', '--duration', type=_max_age, default=DEFAULT_MAX_AGE,
                    help='the maximum age of a Terraform resource before it is garbage collected')
    return parser


def run_gc(args: argparse.Namespace, timeout: Optional[float] = None) -> int:
    policy = RetentionPolicy(selector=args.selector, max_age=args.duration)
    kube = connect(args.ns, request_timeout=timeout)
    print(
        f'Garbage collecting Terraform resources in {kube.namespace} '
        f'matching {policy.selector} older than {format_duration(policy.max_age)}',
        flush=True,
    )
    summary = GarbageCollector(kube, policy).run()
    print(f'Garbage collection complete: {summary.describe()}', flush=True)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        timeout = request_timeout(REQUEST_TIMEOUT)
    except ValueError as e:
        parser.error(str(e))
    try:
        return run_gc(args, timeout)
    except GCError as e:
        print(f'FATAL ERROR: {e}', file=sys.stderr)
        traceback.print_exc()
        return 1


if __name__ == '__main__':
    sys.exit(main())
