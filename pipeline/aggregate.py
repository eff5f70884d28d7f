from __future__ import annotations

from typing import Iterable, List

from core.models import ScanResult


def sort_results(results: Iterable[ScanResult]) -> List[ScanResult]:
    return sorted(results, key=lambda r: (r.host, r.port))


def open_only(results: Iterable[ScanResult]) -> List[ScanResult]:
    return [r for r in results if r.open]


def aggregate(results: Iterable[ScanResult], include_closed: bool = True) -> List[ScanResult]:
    """Merge results from any number of hosts into (host, port) order."""
    merged = sort_results(results)
    if not include_closed:
        merged = open_only(merged)
    return merged
