"""
Host specification expansion: comma lists of hostnames/IPv4 literals and
IPv4 CIDR blocks.
"""

import ipaddress
from typing import List


def _expand_cidr(item: str) -> List[str]:
    try:
        net = ipaddress.ip_network(item, strict=False)
    except ValueError as exc:
        raise ValueError(f"invalid CIDR: {item}") from exc
    if net.version != 4:
        raise ValueError(f"only IPv4 CIDR supported: {item}")
    # network and broadcast addresses are scanned too
    start = int(net.network_address)
    end = int(net.broadcast_address)
    return [str(ipaddress.IPv4Address(n)) for n in range(start, end + 1)]


def expand_hosts(spec: str) -> List[str]:
    """
    Supports:
      - Hostnames and IPv4 literals: "example.com,10.0.0.5"
      - IPv4 CIDR: "192.168.1.0/30" (every address, network to broadcast)
    Order of the input is preserved.
    """
    if not spec or not spec.strip():
        raise ValueError("hosts required")

    hosts: List[str] = []
    for item in spec.split(","):
        item = item.strip()
        if not item:
            continue
        if "/" in item:
            hosts.extend(_expand_cidr(item))
        else:
            hosts.append(item)

    if not hosts:
        raise ValueError("no valid hosts provided")
    return hosts
