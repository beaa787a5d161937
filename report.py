"""
Rendering of dexopt results: colored console table, verbose per-package
blocks, the summary box, and JSON / CSV serialization.
"""

import csv
import json
import sys
from typing import Dict, Optional, Sequence, TextIO

from console import (
    FORE_BLUE, FORE_CYAN, FORE_GREEN, FORE_LIGHTBLUE, FORE_LIGHTGREEN, FORE_LIGHTWHITE,
    FORE_LIGHTYELLOW, FORE_MAGENTA, FORE_RED, FORE_WHITE, FORE_YELLOW, STYLE_BRIGHT,
    STYLE_DIM, paint,
)
from package_filter import PackageReport

PACKAGE_COLUMN = 45
STATUS_COLUMN = 30
SUMMARY_WIDTH = 47
SUMMARY_LABEL_WIDTH = 22
MIN_BLOCK_WIDTH = 40

STATUS_COLORS = {
    "speed-profile": FORE_GREEN,
    "speed": FORE_GREEN,
    "verify": FORE_YELLOW,
    "quicken": FORE_BLUE,
    "run-from-apk": FORE_RED,
    "error": FORE_RED,
    "everything": FORE_MAGENTA,
}

CSV_FIELDS = ["package", "label", "path", "status", "raw_line"]


def status_color(status: str) -> str:
    return STATUS_COLORS.get(status, FORE_WHITE)


def colorize_line(line: str, status: str) -> str:
    if status == "error":
        return paint(line, STYLE_BRIGHT, status_color(status))
    return paint(line, status_color(status))


def print_header(out: Optional[TextIO] = None) -> None:
    package = paint(f"{'Package':<{PACKAGE_COLUMN}}", STYLE_BRIGHT)
    status = paint(f"{'DexOpt Status':<{STATUS_COLUMN}}", STYLE_BRIGHT)
    print(f"\n{package} | {status}\n", file=out)


def print_table_entry(report: PackageReport, out: Optional[TextIO] = None) -> None:
    """One package in the compact view; packages without records print nothing."""
    if not report.dexopt_info:
        return
    for i, record in enumerate(report.dexopt_info):
        colored = colorize_line(record.raw_line, record.status)
        if i == 0:
            name = paint(f"{report.package.name:<{PACKAGE_COLUMN}}", FORE_LIGHTWHITE)
            print(f"{name} | {colored}", file=out)
        else:
            print(f"{'':<{PACKAGE_COLUMN}} | {colored}", file=out)
    print(file=out)


def align_records(lines: Sequence[str]) -> list:
    """Pad the text before the first ':' so the architecture columns line up."""
    width = max((line.find(":") for line in lines if ":" in line), default=0)
    aligned = []
    for line in lines:
        idx = line.find(":")
        if idx < 0:
            aligned.append(line)
        else:
            aligned.append(f"{line[:idx]:<{width}}{line[idx:]}")
    return aligned


def print_block_entry(report: PackageReport, out: Optional[TextIO] = None) -> None:
    name = report.package.name
    display_name = f"{report.label} ({name})" if report.label else name
    width = max(len(display_name) + 4, MIN_BLOCK_WIDTH)
    border = "─" * width
    pad = width - len(display_name)
    left, right = pad // 2, pad - pad // 2

    if report.label:
        inner = f"{paint(report.label, STYLE_BRIGHT, FORE_CYAN)} ({paint(name, STYLE_BRIGHT, FORE_LIGHTWHITE)})"
    else:
        inner = paint(name, STYLE_BRIGHT, FORE_LIGHTWHITE)

    print(paint(f"┌{border}┐", FORE_CYAN), file=out)
    print(f"{paint('│', FORE_CYAN)}{' ' * (left - 1)} {inner} {' ' * (right - 1)}{paint('│', FORE_CYAN)}", file=out)
    print(paint(f"└{border}┘", FORE_CYAN), file=out)

    if report.dexopt_info:
        lines = align_records([r.raw_line for r in report.dexopt_info])
        for line, record in zip(lines, report.dexopt_info):
            print(f"  {colorize_line(line, record.status)}", file=out)
    elif report.mentioned:
        print(f"  {paint('(no dexopt records)', FORE_YELLOW)}", file=out)
    else:
        print(f"  {paint('(no info found)', FORE_RED)}", file=out)
    print(file=out)


def _centered(text: str, *codes: str) -> str:
    start = (SUMMARY_WIDTH - len(text)) // 2
    end = SUMMARY_WIDTH - len(text) - start
    bar = paint("║", FORE_LIGHTBLUE)
    return f"{bar}{' ' * start}{paint(text, *codes)}{' ' * end}{bar}"


def _summary_line(label: str, value: str, value_color: str) -> str:
    bar = paint("║", FORE_LIGHTBLUE)
    label_part = paint(f"{label:<{SUMMARY_LABEL_WIDTH}}", STYLE_BRIGHT, FORE_CYAN)
    value_part = paint(value, STYLE_BRIGHT, value_color)
    padding = " " * max(SUMMARY_WIDTH - 5 - SUMMARY_LABEL_WIDTH - len(value), 0)
    return f"{bar}  {label_part} : {value_part}{padding}{bar}"


def print_summary(total: int, counts: Dict[str, int], scope: str, out: Optional[TextIO] = None) -> None:
    mid = paint(f"╠{'═' * SUMMARY_WIDTH}╣", FORE_LIGHTBLUE)
    print(file=out)
    print(paint(f"╔{'═' * SUMMARY_WIDTH}╗", FORE_LIGHTBLUE), file=out)
    print(_centered("DEXOPT ANALYSIS SUMMARY", STYLE_BRIGHT, FORE_LIGHTYELLOW), file=out)
    print(mid, file=out)
    print(_summary_line("App Scope", scope, FORE_MAGENTA), file=out)
    print(_summary_line("Total Apps Checked", str(total), FORE_LIGHTGREEN), file=out)
    print(mid, file=out)
    print(_centered("Profile Breakdown", STYLE_DIM, STYLE_BRIGHT), file=out)
    print(mid, file=out)
    if not counts:
        msg = "No profile data found."
        bar = paint("║", FORE_LIGHTBLUE)
        print(f"{bar}  {msg}{' ' * max(SUMMARY_WIDTH - 2 - len(msg), 0)}{bar}", file=out)
    else:
        for status in sorted(counts):
            print(_summary_line(status, str(counts[status]), status_color(status)), file=out)
    print(paint(f"╚{'═' * SUMMARY_WIDTH}╝", FORE_LIGHTBLUE), file=out)


def to_json(reports: Sequence[PackageReport]) -> str:
    return json.dumps([r.as_dict() for r in reports], indent=2, ensure_ascii=False)


def write_csv(reports: Sequence[PackageReport], out: Optional[TextIO] = None) -> None:
    writer = csv.writer(out or sys.stdout)
    writer.writerow(CSV_FIELDS)
    for report in reports:
        pkg = report.package
        label = report.label or ""
        if not report.dexopt_info:
            writer.writerow([pkg.name, label, pkg.path, "", ""])
            continue
        for record in report.dexopt_info:
            writer.writerow([pkg.name, label, pkg.path, record.status, record.raw_line])


def print_reports(reports: Sequence[PackageReport], verbose: bool = False,
                  out: Optional[TextIO] = None) -> None:
    if not verbose:
        print_header(out)
    for report in reports:
        if verbose:
            print_block_entry(report, out)
        else:
            print_table_entry(report, out)
