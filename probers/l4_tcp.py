"""
TCP connect scanner: one full-handshake connect() per port, no raw packets
and no retries. Name resolution and every resolved address share one
deadline.
"""

import logging
import socket
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import List, Tuple

from core.models import ScanConfig, ScanResult
from probers.fingerprint import Fingerprint, fingerprint_service
from probers.services import known_service

log = logging.getLogger(__name__)

AddrInfo = Tuple[int, int, int, str, tuple]

# getaddrinfo cannot be interrupted, so lookups run here and are waited on
# with a timeout; a lookup that overruns finishes in the background.
_resolver = ThreadPoolExecutor(max_workers=32, thread_name_prefix="resolve")


def resolve(host: str, port: int, timeout: float) -> List[AddrInfo]:
    try:
        # literal addresses resolve locally without a lookup
        return socket.getaddrinfo(host, port, type=socket.SOCK_STREAM, flags=socket.AI_NUMERICHOST)
    except socket.gaierror:
        pass
    future = _resolver.submit(socket.getaddrinfo, host, port, type=socket.SOCK_STREAM)
    try:
        return future.result(timeout=timeout)
    except FutureTimeout:
        raise socket.timeout(f"name resolution for {host} timed out") from None


def _attempt(family: int, socktype: int, proto: int, addr: tuple, timeout: float) -> socket.socket:
    sock = socket.socket(family, socktype, proto)
    try:
        sock.settimeout(timeout)
        sock.connect(addr)
    except OSError:
        sock.close()
        raise
    return sock


def tcp_connect(host: str, port: int, timeout: float) -> socket.socket:
    """
    Connect to the first reachable address of host. Each address gets only
    what is left of timeout; raises socket.timeout once it is spent.
    """
    deadline = time.monotonic() + timeout
    infos = resolve(host, port, timeout)
    if not infos:
        raise OSError(f"no addresses for {host}")

    last_exc = None
    for family, socktype, proto, _, addr in infos:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            break
        try:
            return _attempt(family, socktype, proto, addr, remaining)
        except OSError as exc:
            last_exc = exc
    if last_exc is None or deadline - time.monotonic() <= 0:
        raise socket.timeout("timed out")
    raise last_exc


def _error_text(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


def _probe(sock: socket.socket, host: str, port: int, config: ScanConfig) -> Fingerprint:
    try:
        return fingerprint_service(sock, host, port, config.timeout, config.header_scan_limit)
    except (OSError, ValueError) as exc:
        # the connect already succeeded; a broken probe only means fewer details
        log.debug("probe degraded for %s:%s: %s", host, port, exc)
        return Fingerprint()


def scan_port(host: str, port: int, config: ScanConfig) -> ScanResult:
    start = time.perf_counter()
    try:
        sock = tcp_connect(host, port, config.timeout)
    except (OSError, UnicodeError) as exc:
        latency = time.perf_counter() - start
        log.debug("%s:%s closed: %s", host, port, exc)
        return ScanResult(host=host, port=port, open=False, latency=latency, error=_error_text(exc))
    latency = time.perf_counter() - start

    try:
        found = _probe(sock, host, port, config) if config.probe else Fingerprint()
    finally:
        sock.close()

    return ScanResult(
        host=host,
        port=port,
        open=True,
        latency=latency,
        service=found.service or known_service(port),
        banner=found.banner,
        fingerprint=found.fingerprint,
    )
