"""Name/status filtering and per-status counting over the package list."""

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from device_feeds import Package
from dexopt_parser import DexoptRecord, DumpIndex


@dataclass(frozen=True)
class Selection:
    displayed: Tuple[Package, ...]
    counts: Dict[str, int] = field(default_factory=dict)
    total_displayed: int = 0


@dataclass(frozen=True)
class PackageReport:
    package: Package
    label: Optional[str]
    dexopt_info: Optional[Tuple[DexoptRecord, ...]]
    displayed: bool = True
    mentioned: bool = False

    def as_dict(self) -> Dict:
        return {
            "package": self.package.name,
            "label": self.label,
            "path": self.package.path,
            "dexopt_info": [r.as_dict() for r in self.dexopt_info] if self.dexopt_info is not None else None,
        }


def matches_status(records: Optional[Sequence[DexoptRecord]], status_filter: str) -> bool:
    if not records:
        return False
    return any(status_filter in r.status for r in records)


def select_packages(packages: Sequence[Package], index: DumpIndex,
                    name_filter: Optional[str] = None,
                    status_filter: Optional[str] = None) -> Selection:
    """Apply the filters and count statuses over what is left.

    Once a package is included, all of its records are counted, not only
    the ones matching ``status_filter``.
    """
    displayed: List[Package] = []
    counts: Counter = Counter()

    for pkg in packages:
        if name_filter and name_filter not in pkg.name:
            continue
        records = index.get(pkg.name)
        if status_filter is not None and not matches_status(records, status_filter):
            continue
        displayed.append(pkg)
        for record in records or ():
            counts[record.status] += 1

    return Selection(
        displayed=tuple(displayed),
        counts=dict(sorted(counts.items())),
        total_displayed=len(displayed),
    )


def build_reports(packages: Sequence[Package], selection: Selection, index: DumpIndex,
                  labels: Optional[Mapping[str, Optional[str]]] = None) -> Dict[str, PackageReport]:
    """Per-package result for every entry of ``packages``, keyed by name.

    Iteration order follows ``packages``. ``displayed`` marks the entries that
    survived the filters; labels are only expected for those.
    """
    labels = labels or {}
    shown = {pkg.name for pkg in selection.displayed}
    return {
        pkg.name: PackageReport(
            package=pkg,
            label=labels.get(pkg.name),
            dexopt_info=index.get(pkg.name),
            displayed=pkg.name in shown,
            mentioned=index.mentions(pkg.name),
        )
        for pkg in packages
    }


def displayed_reports(reports: Mapping[str, PackageReport]) -> List[PackageReport]:
    return [r for r in reports.values() if r.displayed]
