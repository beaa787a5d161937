"""
Application label lookup.

Labels come from two places, tried in order:

1. the APK itself, parsed in-process with androguard (fast, local only);
2. ``aapt dump badging`` (slow, but works on anything aapt can read, and
   through ``adb shell`` when dexscope runs from a host).

Some APKs report an activity or resource name instead of a real label
(``org.chromium.browser.Activity``); those are rejected and the next source
is tried. Nothing here raises: a missing label is just ``None``.
"""

import os
import re
import subprocess
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Callable, List, Optional, Sequence, Tuple

from androguard.core.apk import APK
from loguru import logger

import console
from device_feeds import AAPT_BINARY, BADGING_TIMEOUT, Package, ShellRunner

# androguard logs every manifest detail at DEBUG through loguru
logger.disable("androguard")

LabelStrategy = Callable[[Package], Optional[str]]

BADGING_LABEL_RE = re.compile(r"^application-label:'(.*)['‘’]$")


def clean_label(label: Optional[str]) -> str:
    if not label:
        return ""
    return label.strip().replace("\r", " ").replace("\n", " ")


def looks_like_identifier(label: str, package_name: str) -> bool:
    """True if ``label`` is an internal class/resource name, not a human label."""
    return (
        "." in label
        and " " not in label
        and label != package_name
        and all(c.isalnum() or c in "._" for c in label)
    )


def label_from_manifest(pkg: Package) -> Optional[str]:
    try:
        raw = APK(pkg.path).get_app_name()
    except Exception as e:
        console.debug(f"{pkg.name}: cannot parse {pkg.path}: {e}")
        return None
    label = clean_label(raw)
    if not label:
        return None
    if looks_like_identifier(label, pkg.name):
        console.debug(f"{pkg.name}: rejected manifest label {label!r}")
        return None
    return label


def parse_badging_label(output: str) -> Optional[str]:
    """Return the ``application-label`` value from ``aapt dump badging`` output."""
    for line in output.splitlines():
        m = BADGING_LABEL_RE.match(line.strip())
        if m and m.group(1):
            return m.group(1)
    return None


def label_from_badging(pkg: Package, runner: Optional[ShellRunner] = None) -> Optional[str]:
    runner = runner or ShellRunner()
    try:
        result = runner.run([AAPT_BINARY, "dump", "badging", pkg.path], timeout=BADGING_TIMEOUT)
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        console.debug(f"{pkg.name}: aapt unavailable: {e}")
        return None
    if result.returncode != 0:
        console.debug(f"{pkg.name}: aapt exited with {result.returncode}")
        return None
    return parse_badging_label(result.stdout)


DEFAULT_STRATEGIES: Tuple[LabelStrategy, ...] = (label_from_manifest, label_from_badging)


def build_strategies(runner: ShellRunner) -> Tuple[LabelStrategy, ...]:
    """Strategies usable with ``runner``.

    Over adb the APK paths only exist on the device, so the in-process parser
    is skipped and aapt runs remotely.
    """
    badging = partial(label_from_badging, runner=runner)
    if runner.adb:
        return (badging,)
    return (label_from_manifest, badging)


def resolve_label(pkg: Package, strategies: Sequence[LabelStrategy] = DEFAULT_STRATEGIES) -> Optional[str]:
    for strategy in strategies:
        try:
            label = strategy(pkg)
        except Exception as e:
            console.debug(f"{pkg.name}: label lookup failed: {e}")
            continue
        if label:
            return label
    return None


def resolve_labels(packages: Sequence[Package],
                   strategies: Sequence[LabelStrategy] = DEFAULT_STRATEGIES,
                   jobs: Optional[int] = None) -> List[Optional[str]]:
    """Resolve labels concurrently; the result lines up with ``packages``."""
    if not packages:
        return []
    workers = jobs or os.cpu_count() or 1
    with ThreadPoolExecutor(max_workers=workers) as executor:
        return list(executor.map(partial(resolve_label, strategies=strategies), packages))
