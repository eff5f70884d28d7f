"""
Port specification parsing and the curated "top N" port list.
"""

from __future__ import annotations

from typing import List

MAX_PORT = 65535
DEFAULT_TOP = 100

# Seed list of commonly exposed TCP ports, most interesting first.
TOP_PORTS_SEED = (
    80, 443, 22, 21, 25, 53, 110, 995, 143, 993,
    587, 465, 3306, 3389, 135, 139, 445, 8080, 8443, 5900,
    23, 8000, 1723, 111, 123, 500, 1433, 1521, 5432, 6379,
    27017, 11211, 389, 636, 554, 1720, 5060, 5061, 88, 1900,
    5353, 1025, 1026, 1027, 1028, 69, 161, 162, 5000, 5001,
    5985, 8081, 8082, 8083, 8444, 9000, 9090, 3128, 1080, 6667,
    7001, 7002, 8181, 8888, 8883, 2181, 2049, 4190, 10000, 25565,
    25575, 5901, 5902, 5903, 9200, 179, 631, 1524, 1434, 19,
    7, 13,
)


def top_ports(n: int) -> List[int]:
    """
    First n common ports: the seed list, then the remaining well-known
    ports 1-1024, then everything above ascending.
    """
    if n <= 0:
        n = 1
    seen = set()
    out: List[int] = []

    def add(port: int) -> bool:
        if port not in seen:
            seen.add(port)
            out.append(port)
        return len(out) >= n

    for p in TOP_PORTS_SEED:
        if add(p):
            return out
    for p in range(1, MAX_PORT + 1):
        if add(p):
            break
    return out


def _parse_int(text: str, what: str) -> int:
    try:
        return int(text.strip())
    except ValueError as exc:
        raise ValueError(f"invalid {what}: {text}") from exc


def parse_ports(spec: str) -> List[int]:
    """
    Parses a port specification string into a sorted, de-duplicated list.
    Supports:
    - "" or "top:" -> top 100
    - "top:N"      -> top N
    - Single ports: "80"
    - Ranges: "1-1024" (members above 65535 are dropped)
    - Mixed: "1-1024,8080,9000-9005"
    """
    spec = (spec or "").strip()
    if not spec or spec.startswith("top:"):
        count = DEFAULT_TOP
        value = spec[len("top:"):]
        if value:
            count = _parse_int(value, "top count")
            if count <= 0:
                raise ValueError(f"invalid top count: {value}")
        return top_ports(count)

    ports = set()
    for part in spec.split(","):
        part = part.strip()
        if not part:
            continue
        if "-" in part:
            start_s, end_s = part.split("-", 1)
            start = _parse_int(start_s, "range")
            end = _parse_int(end_s, "range")
            if start <= 0 or end <= 0 or end < start:
                raise ValueError(f"invalid range: {part}")
            ports.update(range(start, min(end, MAX_PORT) + 1))
            continue
        port = _parse_int(part, "port")
        if port < 1 or port > MAX_PORT:
            raise ValueError(f"invalid port: {part}")
        ports.add(port)

    if not ports:
        raise ValueError(f"no ports in spec: {spec}")
    return sorted(ports)
