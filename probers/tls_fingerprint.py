"""
Lightweight TLS fingerprinting over an already-connected socket: peer
certificate subject/issuer CN, negotiated ALPN and, for https, the Server
header from a HEAD request.

Certificate verification is switched off on purpose. This is a
reconnaissance probe that only reads what the peer presents; never reuse
this context anywhere a trust decision is needed.
"""

import logging
import selectors
import socket
import ssl
import time
from typing import List, Optional, Tuple

from cryptography import x509
from cryptography.x509.oid import NameOID

from probers.banner import DeadlineReader, sanitize_banner
from probers.http_probe import HEADER_SCAN_LIMIT, build_request, read_response_head, send_request
from probers.services import tls_service

log = logging.getLogger(__name__)

ALPN_PROTOCOLS = ["http/1.1"]


def _probe_context() -> ssl.SSLContext:
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    context.set_alpn_protocols(ALPN_PROTOCOLS)
    return context


def _common_name(name: x509.Name) -> Optional[str]:
    attrs = name.get_attributes_for_oid(NameOID.COMMON_NAME)
    if not attrs:
        return None
    value = attrs[0].value
    if isinstance(value, bytes):
        value = value.decode(errors="ignore")
    return sanitize_banner(value) or None


def handshake(tls: ssl.SSLSocket, deadline: float) -> None:
    """
    Drive the handshake in non-blocking mode so the whole exchange, however
    many records the peer splits it into, ends by deadline.
    """
    tls.setblocking(False)
    with selectors.DefaultSelector() as sel:
        while True:
            try:
                tls.do_handshake()
                break
            except ssl.SSLWantReadError:
                events = selectors.EVENT_READ
            except ssl.SSLWantWriteError:
                events = selectors.EVENT_WRITE
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise socket.timeout("tls handshake timed out")
            sel.register(tls, events)
            ready = sel.select(remaining)
            sel.unregister(tls)
            if not ready:
                raise socket.timeout("tls handshake timed out")
    tls.setblocking(True)


def cert_names(der: Optional[bytes]) -> Tuple[Optional[str], Optional[str]]:
    """(subject CN, issuer CN) from a DER certificate; (None, None) if unreadable."""
    if not der:
        return None, None
    try:
        cert = x509.load_der_x509_certificate(der)
    except ValueError as exc:
        log.debug("certificate parse failed: %s", exc)
        return None, None
    return _common_name(cert.subject), _common_name(cert.issuer)


def build_fingerprint(cn: Optional[str], issuer: Optional[str], alpn: Optional[str]) -> str:
    parts: List[str] = []
    if cn:
        parts.append(f"CN={cn}")
    if issuer:
        parts.append(f"Issuer={issuer}")
    if alpn:
        parts.append(f"ALPN={alpn}")
    return ", ".join(parts)


def tls_probe(
    sock: socket.socket,
    host: str,
    port: int,
    timeout: float,
    header_limit: int = HEADER_SCAN_LIMIT,
) -> Tuple[str, str, str]:
    """
    Handshake on the existing connection with host as SNI. Returns
    (service, banner, fingerprint); all empty when the handshake fails.
    The TLS wrapper takes over the socket and is closed here.
    """
    sock.settimeout(timeout)
    try:
        tls = _probe_context().wrap_socket(sock, server_hostname=host, do_handshake_on_connect=False)
    except (ssl.SSLError, OSError, ValueError) as exc:
        log.debug("tls wrap failed for %s:%s: %s", host, port, exc)
        return "", "", ""

    try:
        try:
            handshake(tls, time.monotonic() + timeout)
        except (ssl.SSLError, OSError) as exc:
            log.debug("tls handshake failed for %s:%s: %s", host, port, exc)
            return "", "", ""

        service = tls_service(port)
        cn, issuer = cert_names(tls.getpeercert(binary_form=True))
        fingerprint = build_fingerprint(cn, issuer, tls.selected_alpn_protocol())
        if service != "https":
            return service, "", fingerprint

        if not send_request(tls, build_request("HEAD", host), timeout / 2):
            return service, "", fingerprint
        status, server = read_response_head(DeadlineReader(tls, timeout), header_limit)
        if not status.startswith("HTTP/"):
            return service, "", fingerprint
        if server:
            fingerprint = ", ".join(p for p in (fingerprint, f"Server={server}") if p)
        return service, status, fingerprint
    finally:
        tls.close()
