"""
Result rendering: a per-host table (coloured on a terminal) and JSON.
"""

import json
from itertools import groupby
from typing import IO, List

from core.models import ScanResult
from pipeline.aggregate import sort_results

RESET = "\x1b[0m"
BOLD = "\x1b[1m"
DIM = "\x1b[2m"
RED = "\x1b[31m"
GREEN = "\x1b[32m"
YELLOW = "\x1b[33m"
BLUE = "\x1b[34m"
CYAN = "\x1b[36m"
GRAY = "\x1b[90m"


def _is_tty(stream: IO) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def _paint(enabled: bool, color: str, text: str) -> str:
    return f"{color}{text}{RESET}" if enabled else text


def _latency_color(latency_s: float) -> str:
    if latency_s < 0.005:
        return GREEN
    if latency_s < 0.050:
        return YELLOW
    return RED


def format_row(r: ScanResult, color: bool = False) -> str:
    state = "open" if r.open else "closed"
    # pad before colouring so escape codes don't skew the columns
    state_col = f"{state:<7}"
    latency_col = f"{r.latency_ms:6.2f}ms"
    if color:
        state_col = _paint(True, GREEN + BOLD if r.open else RED, state_col)
        latency_col = _paint(True, _latency_color(r.latency), latency_col)

    parts = []
    if r.service:
        parts.append(_paint(color, BLUE, r.service))
    detail = r.fingerprint or r.banner
    if detail:
        parts.append(_paint(color, DIM, detail))
    return f"{r.port:<5} {state_col} {latency_col:>8}  {' '.join(parts)}".rstrip()


def render_table(results: List[ScanResult], stream: IO) -> None:
    if not results:
        print("No results.", file=stream)
        return
    color = _is_tty(stream)
    for host, rows in groupby(sort_results(results), key=lambda r: r.host):
        print(f"{_paint(color, BOLD + CYAN, 'Host:')} {host}", file=stream)
        print(_paint(color, GRAY, f"{'PORT':<5} {'STATE':<7} {'LATENCY':<8}  SERVICE"), file=stream)
        print(_paint(color, GRAY, "----- ------- --------  ------------------------------"), file=stream)
        for r in rows:
            print(format_row(r, color), file=stream)
        print(file=stream)


def to_json(results: List[ScanResult]) -> str:
    return json.dumps([r.to_doc() for r in results], indent=2)


def render_json(results: List[ScanResult], stream: IO) -> None:
    print(to_json(results), file=stream)


def save_results(results: List[ScanResult], path: str, as_json: bool) -> str:
    with open(path, "w", encoding="utf-8") as f:
        if as_json:
            render_json(results, f)
        else:
            render_table(results, f)
    return path
