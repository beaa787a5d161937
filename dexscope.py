#!/usr/bin/env python3
"""
dexscope: dexopt status viewer for Android
------------------------------------------
- Lists installed packages (pm list packages -f)
- Reads the ART compilation report (dumpsys package dexopt)
- Shows the compiler filter of every package per architecture
- Filters by package name and by dexopt status
- Resolves application labels (APK manifest, then aapt dump badging)
- Prints a colored table, verbose per-app blocks, JSON or CSV
- Runs on the device itself (root shell) or from a host through adb
"""

import argparse
import os
import sys
from typing import List, Optional

import console
from console import FORE_GREEN, STYLE_BRIGHT, paint
from device_feeds import (
    FEED_TIMEOUT, AppType, FeedError, ShellRunner, detect_device, fetch_dump,
    fetch_packages, is_tool_available,
)
from dexopt_parser import parse_dump
from label_resolver import build_strategies, resolve_labels
from package_filter import build_reports, displayed_reports, select_packages
from report import print_reports, print_summary, to_json, write_csv


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: '{value}'")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def is_root() -> bool:
    return os.geteuid() == 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dexscope", description="Analyze dexopt status on Android devices.")
    parser.add_argument('-f', '--filter', type=str, help='Filter packages by name (substring match)')
    parser.add_argument('-s', '--status', type=str,
                        help="Filter by dexopt status (e.g. 'speed', 'verify', 'error')")
    parser.add_argument('-t', '--type', type=AppType, choices=list(AppType), default=AppType.USER,
                        metavar='{user,system,all}', help='Type of applications to analyze (default: user)')
    parser.add_argument('-v', '--verbose', action='store_true', help='Show detailed information for each package')
    output = parser.add_mutually_exclusive_group()
    output.add_argument('-j', '--json', action='store_true', help='Output results as JSON')
    output.add_argument('--csv', action='store_true', help='Output results as CSV, one row per dexopt record')
    parser.add_argument('--adb', action='store_true', help='Run commands on a connected device through adb')
    parser.add_argument('--serial', type=str, help='adb device serial (implies --adb)')
    parser.add_argument('--jobs', type=positive_int, default=None, help='Parallel label lookups (default: CPU count)')
    parser.add_argument('--timeout', type=int, default=FEED_TIMEOUT,
                        help=f'Timeout in seconds for pm/dumpsys (default: {FEED_TIMEOUT})')
    parser.add_argument('--no-color', action='store_true', help='Disable colored output')
    parser.add_argument('--debug', action='store_true', help='Print diagnostics for skipped lines and labels')
    return parser


def run(args: argparse.Namespace, runner: ShellRunner) -> int:
    machine = args.json or args.csv

    console.info(f"{paint('Fetching package list', STYLE_BRIGHT)} ({args.type}) ...")
    packages = fetch_packages(runner, args.type)
    console.info(f"Found {paint(str(len(packages)), STYLE_BRIGHT, FORE_GREEN)} packages.")

    console.info(paint("Fetching dexopt dump...", STYLE_BRIGHT))
    index = parse_dump(fetch_dump(runner))
    console.debug(f"dump covers {len(index)} packages ({len(index.headers)} sections)")

    selection = select_packages(packages, index, args.filter, args.status)

    labels = {}
    if (args.verbose or machine) and selection.displayed:
        console.info(f"Resolving labels for {len(selection.displayed)} packages ...")
        resolved = resolve_labels(selection.displayed, build_strategies(runner), args.jobs)
        labels = dict(zip((p.name for p in selection.displayed), resolved))

    reports = displayed_reports(build_reports(packages, selection, index, labels))

    if args.json:
        print(to_json(reports))
        return 0
    if args.csv:
        write_csv(reports)
        return 0

    print_reports(reports, verbose=args.verbose)
    print_summary(selection.total_displayed, selection.counts, str(args.type))

    if args.verbose and not is_tool_available(runner):
        print()
        console.warn("Warning: 'aapt' is not installed. Some application labels might be missing.")
        console.warn("Install it via 'pkg install aapt' for the best experience.")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    console.setup(color=not args.no_color, quiet=args.json or args.csv, debug=args.debug)

    runner = ShellRunner(adb=args.adb, serial=args.serial, timeout=args.timeout)
    try:
        if runner.adb:
            runner.serial = detect_device(runner)
        elif not is_root():
            console.error("This tool requires root access (su), or use --adb from a host.")
            return 1
        return run(args, runner)
    except FeedError as e:
        console.error(str(e))
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
