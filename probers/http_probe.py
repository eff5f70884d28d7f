"""
HTTP probing over an already-connected socket: one minimal request, the
status line and a bounded scan of the response headers.
"""

import logging
import socket
from typing import Optional, Tuple

from core.config import settings
from probers.banner import DeadlineReader, sanitize_banner

log = logging.getLogger(__name__)

HEADER_SCAN_LIMIT = 20


def build_request(method: str, host: str, user_agent: Optional[str] = None) -> bytes:
    lines = [f"{method} / HTTP/1.0", f"Host: {host}"]
    if user_agent:
        lines.append(f"User-Agent: {user_agent}")
    lines.append("Connection: close")
    return ("\r\n".join(lines) + "\r\n\r\n").encode()


def read_response_head(reader: DeadlineReader, header_limit: int = HEADER_SCAN_LIMIT) -> Tuple[str, Optional[str]]:
    """
    Returns (sanitized status line, Server header value). The server value is
    None unless the status line looks like HTTP and a Server header shows up
    within header_limit lines.
    """
    status = sanitize_banner(reader.readline())
    if not status.startswith("HTTP/"):
        return status, None

    server = None
    for _ in range(header_limit):
        raw = reader.readline()
        if not raw:
            break
        line = raw.decode(errors="ignore").strip()
        if not line:
            break
        if line.lower().startswith("server:"):
            server = sanitize_banner(line[len("server:"):])
    return status, server


def send_request(sock: socket.socket, payload: bytes, timeout: float) -> bool:
    sock.settimeout(timeout)
    try:
        sock.sendall(payload)
    except OSError as exc:
        log.debug("http request write failed: %s", exc)
        return False
    return True


def http_probe(sock: socket.socket, host: str, timeout: float, header_limit: int = HEADER_SCAN_LIMIT) -> Tuple[str, str, str]:
    """
    Send GET / HTTP/1.0 and classify as http when the reply starts with
    "HTTP/". Returns (service, banner, fingerprint); all empty otherwise.
    """
    request = build_request("GET", host, settings.user_agent)
    if not send_request(sock, request, timeout / 2):
        return "", "", ""

    status, server = read_response_head(DeadlineReader(sock, timeout), header_limit)
    if not status.startswith("HTTP/"):
        return "", "", ""

    fingerprint = " ".join(p for p in (status, server) if p).strip()
    return "http", status, fingerprint
