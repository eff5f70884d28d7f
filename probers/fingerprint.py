"""
Post-connect service identification.

A fixed decision tree: read whatever the peer volunteers, check greeting
based protocols (SSH first, then SMTP/FTP/POP3/IMAP by port), then try an
HTTP request or a TLS handshake on their conventional ports. The first
branch that matches ends the cascade.
"""

from __future__ import annotations

import logging
import socket
from typing import NamedTuple

from probers import http_probe, tls_fingerprint
from probers.banner import read_banner
from probers.services import BANNER_RULES, HTTP_PORTS, TLS_PORTS

log = logging.getLogger(__name__)


class Fingerprint(NamedTuple):
    service: str = ""
    banner: str = ""
    fingerprint: str = ""


def _ssh(sock: socket.socket, banner: str, timeout: float) -> Fingerprint:
    if not banner:
        # some daemons greet only after a short delay
        banner = read_banner(sock, timeout / 2)
    if banner:
        return Fingerprint("ssh", banner, banner)
    return Fingerprint()


def fingerprint_service(
    sock: socket.socket,
    host: str,
    port: int,
    timeout: float,
    header_limit: int = http_probe.HEADER_SCAN_LIMIT,
) -> Fingerprint:
    banner = read_banner(sock, timeout / 3)

    # an SSH greeting wins regardless of the port it shows up on
    if banner.startswith("SSH-") or port == 22:
        return _ssh(sock, banner, timeout)

    for rule in BANNER_RULES:
        if rule.matches(port, banner):
            return Fingerprint(rule.service, banner, banner)

    if port in HTTP_PORTS:
        found = Fingerprint(*http_probe.http_probe(sock, host, timeout, header_limit))
        if found.service:
            return found

    if port in TLS_PORTS:
        found = Fingerprint(*tls_fingerprint.tls_probe(sock, host, port, timeout, header_limit))
        if found.service:
            return found

    log.debug("no protocol match for %s:%s (banner=%r)", host, port, banner)
    return Fingerprint(banner=banner)
