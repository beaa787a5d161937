"""
Source feeds: the package list from ``pm`` and the dexopt dump from
``dumpsys``.

Commands run either directly (dexscope running on the device itself, e.g.
from a root shell) or through ``adb shell`` from a host. Any failure to get a
feed is fatal for the run and surfaces as ``FeedError``.
"""

import enum
import os
import shutil
import subprocess
from dataclasses import dataclass
from typing import List, Optional, Sequence

import console

ADB_BINARY = os.environ.get("ADB", "adb")
AAPT_BINARY = "aapt"

FEED_TIMEOUT = 60  # seconds
BADGING_TIMEOUT = 20  # seconds


class FeedError(RuntimeError):
    """A source feed could not be obtained."""


@dataclass(frozen=True)
class Package:
    name: str
    path: str


class AppType(enum.Enum):
    USER = "user"
    SYSTEM = "system"
    ALL = "all"

    @property
    def pm_flag(self) -> Optional[str]:
        return {AppType.USER: "-3", AppType.SYSTEM: "-s", AppType.ALL: None}[self]

    def __str__(self) -> str:
        return self.value.capitalize()


class ShellRunner:
    """Runs shell commands locally or on a device through ``adb shell``."""

    def __init__(self, adb: bool = False, serial: Optional[str] = None,
                 adb_binary: str = ADB_BINARY, timeout: int = FEED_TIMEOUT):
        self.adb = adb or serial is not None
        self.serial = serial
        self.adb_binary = adb_binary
        self.timeout = timeout

    def command(self, args: Sequence[str]) -> List[str]:
        if not self.adb:
            return list(args)
        cmd = [self.adb_binary]
        if self.serial:
            cmd += ["-s", self.serial]
        return cmd + ["shell"] + list(args)

    def run(self, args: Sequence[str], timeout: Optional[int] = None) -> subprocess.CompletedProcess:
        """Run ``args`` and return the completed process.

        Raises ``FileNotFoundError`` when the binary is missing and
        ``subprocess.TimeoutExpired`` on timeout; a non-zero exit is left to
        the caller.
        """
        cmd = self.command(args)
        console.debug(f"running: {' '.join(cmd)}")
        return subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            timeout=timeout if timeout is not None else self.timeout,
            text=True,
            errors="replace",
        )


def run_feed(runner: ShellRunner, args: Sequence[str]) -> str:
    """Run a feed command and return its stdout, raising ``FeedError`` on any failure."""
    cmd = runner.command(args)
    try:
        result = runner.run(args)
    except FileNotFoundError:
        raise FeedError(f"'{cmd[0]}' not found. Is it installed and on your PATH?")
    except subprocess.TimeoutExpired:
        raise FeedError(f"command timed out after {runner.timeout}s: {' '.join(cmd)}")
    if result.returncode != 0:
        detail = result.stderr.strip() or result.stdout.strip()
        raise FeedError(f"command failed ({result.returncode}): {' '.join(cmd)}\n{detail}".rstrip())
    return result.stdout


def detect_device(runner: ShellRunner) -> str:
    """Return the serial of the first connected, authorized device."""
    try:
        result = subprocess.run(
            [runner.adb_binary, "devices"],
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            timeout=runner.timeout,
            text=True,
        )
    except FileNotFoundError:
        raise FeedError("adb not found. Please install Android Platform Tools and add adb to your PATH.")
    except subprocess.TimeoutExpired:
        raise FeedError("adb devices timed out.")
    lines = result.stdout.strip().splitlines()
    devices = [line.split('\t')[0] for line in lines[1:] if '\tdevice' in line]
    if runner.serial:
        if runner.serial not in devices:
            raise FeedError(f"device {runner.serial} is not connected or not authorized.")
        return runner.serial
    if not devices:
        raise FeedError("no Android device detected. Please connect and authorize your device.")
    if len(devices) > 1:
        console.warn(f"Warning: Multiple devices detected. Using the first: {devices[0]}")
    return devices[0]


def parse_package_list(raw: str) -> List[Package]:
    """Parse ``pm list packages -f`` output into packages sorted by name.

    Lines look like ``package:/data/app/.../base.apk=com.example.app``. The
    path may itself contain ``=``, so the split is on the last one.
    """
    packages = {}
    for line in raw.splitlines():
        line = line.strip()
        if not line.startswith("package:"):
            continue
        entry = line[len("package:"):]
        path, sep, name = entry.rpartition("=")
        if not sep:
            continue
        name = name.strip()
        if name and name not in packages:
            packages[name] = Package(name=name, path=path.strip())
    return sorted(packages.values(), key=lambda p: p.name)


def fetch_packages(runner: ShellRunner, app_type: AppType = AppType.USER) -> List[Package]:
    args = ["pm", "list", "packages", "-f"]
    if app_type.pm_flag:
        args.append(app_type.pm_flag)
    return parse_package_list(run_feed(runner, args))


def fetch_dump(runner: ShellRunner) -> str:
    return run_feed(runner, ["dumpsys", "package", "dexopt"])


def is_tool_available(runner: ShellRunner, tool: str = AAPT_BINARY) -> bool:
    if not runner.adb:
        return shutil.which(tool) is not None
    try:
        result = runner.run(["command", "-v", tool])
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return False
    return result.returncode == 0 and bool(result.stdout.strip())
