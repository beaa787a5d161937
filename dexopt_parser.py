"""
Parser for ``dumpsys package dexopt`` output.

The dump is free-form text. The parts we care about look like::

    [com.example.app]
      path: /data/app/~~x==/com.example.app-y==/base.apk
        arm64: [status=speed-profile] [reason=bg-dexopt] [primary-abi]
        arm: [status=verify] [reason=install]

A bracketed line without spaces or ``=`` opens a package section, and every
architecture-tagged line after it belongs to that package until the next
header. Everything else is ignored, so format drift between Android releases
degrades to missing data instead of a crash.
"""

import enum
import re
from dataclasses import dataclass
from collections.abc import Mapping
from typing import Dict, FrozenSet, Iterator, List, Optional, Tuple

UNKNOWN_STATUS = "unknown"

ARCH_TAG_RE = re.compile(r"(arm64:|arm:)")
STATUS_FIELD_RE = re.compile(r"\b(?:status|filter)=([^\]\s]+)")


@dataclass(frozen=True)
class DexoptRecord:
    raw_line: str
    status: str

    def as_dict(self) -> Dict[str, str]:
        return {"raw_line": self.raw_line, "status": self.status}


class ScanState(enum.Enum):
    NO_PACKAGE = "no-package"
    IN_PACKAGE = "in-package"


class DumpIndex(Mapping):
    """Read-only package name -> records mapping built by ``parse_dump``.

    A package that had a header but no record lines is not a key, same as a
    package that never appeared. ``mentions`` tells those two cases apart.
    """

    def __init__(self, records: Dict[str, Tuple[DexoptRecord, ...]], headers: FrozenSet[str] = frozenset()):
        self._records = dict(records)
        self._headers = frozenset(headers) | frozenset(self._records)

    def __getitem__(self, name: str) -> Tuple[DexoptRecord, ...]:
        return self._records[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __eq__(self, other) -> bool:
        if not isinstance(other, DumpIndex):
            return NotImplemented
        return self._records == other._records and self._headers == other._headers

    def __repr__(self) -> str:
        return f"DumpIndex({len(self._records)} packages, {len(self._headers)} headers)"

    @property
    def headers(self) -> FrozenSet[str]:
        return self._headers

    def mentions(self, name: str) -> bool:
        """True if the dump had a section header for ``name``."""
        return name in self._headers


def is_package_header(line: str) -> bool:
    return (
        line.startswith("[")
        and line.endswith("]")
        and " " not in line
        and "=" not in line
    )


def extract_status(line: str) -> str:
    m = STATUS_FIELD_RE.search(line)
    if m:
        return m.group(1)
    return UNKNOWN_STATUS


def parse_dump(dump: str) -> DumpIndex:
    """Build a ``DumpIndex`` from raw dexopt dump text. Never raises."""
    records: Dict[str, List[DexoptRecord]] = {}
    headers = set()
    state = ScanState.NO_PACKAGE
    current: Optional[str] = None

    for line in dump.splitlines():
        trimmed = line.strip()
        if not trimmed:
            continue

        if is_package_header(trimmed):
            current = trimmed[1:-1]
            headers.add(current)
            state = ScanState.IN_PACKAGE
            continue

        if state is ScanState.IN_PACKAGE and ARCH_TAG_RE.search(trimmed):
            record = DexoptRecord(raw_line=trimmed, status=extract_status(trimmed))
            records.setdefault(current, []).append(record)

    return DumpIndex({name: tuple(items) for name, items in records.items()}, frozenset(headers))
