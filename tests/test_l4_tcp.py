import socket
import time

import pytest

from core.models import ScanConfig
from probers import l4_tcp

ADDRS = [
    (socket.AF_INET, socket.SOCK_STREAM, 6, "", ("192.0.2.1", 80)),
    (socket.AF_INET, socket.SOCK_STREAM, 6, "", ("192.0.2.2", 80)),
    (socket.AF_INET, socket.SOCK_STREAM, 6, "", ("192.0.2.3", 80)),
]


def fake_getaddrinfo(addrs, delay=0.0):
    def getaddrinfo(host, port, *args, **kwargs):
        if kwargs.get("flags", 0) & socket.AI_NUMERICHOST:
            raise socket.gaierror(socket.EAI_NONAME, "not numeric")
        time.sleep(delay)
        return list(addrs)

    return getaddrinfo


def test_blackholed_addresses_share_one_budget(monkeypatch):
    budgets = []

    def hang(family, socktype, proto, addr, timeout):
        budgets.append(timeout)
        time.sleep(timeout)
        raise socket.timeout("timed out")

    monkeypatch.setattr(l4_tcp.socket, "getaddrinfo", fake_getaddrinfo(ADDRS))
    monkeypatch.setattr(l4_tcp, "_attempt", hang)

    start = time.monotonic()
    with pytest.raises(socket.timeout):
        l4_tcp.tcp_connect("multi.example", 80, 0.3)
    assert time.monotonic() - start < 0.5
    assert len(budgets) == 1
    assert budgets[0] <= 0.3


def test_refused_addresses_fall_through_with_shrinking_budget(monkeypatch):
    budgets = []
    sentinel = object()

    def refuse_then_accept(family, socktype, proto, addr, timeout):
        budgets.append(timeout)
        time.sleep(0.05)
        if addr[0] != "192.0.2.3":
            raise ConnectionRefusedError("refused")
        return sentinel

    monkeypatch.setattr(l4_tcp.socket, "getaddrinfo", fake_getaddrinfo(ADDRS))
    monkeypatch.setattr(l4_tcp, "_attempt", refuse_then_accept)

    assert l4_tcp.tcp_connect("multi.example", 80, 1.0) is sentinel
    assert len(budgets) == 3
    assert budgets == sorted(budgets, reverse=True)
    assert budgets[0] <= 1.0


def test_last_connect_error_is_reported(monkeypatch):
    def refuse(family, socktype, proto, addr, timeout):
        raise ConnectionRefusedError(f"refused by {addr[0]}")

    monkeypatch.setattr(l4_tcp.socket, "getaddrinfo", fake_getaddrinfo(ADDRS))
    monkeypatch.setattr(l4_tcp, "_attempt", refuse)
    result = l4_tcp.scan_port("multi.example", 80, ScanConfig(timeout=1.0))
    assert result.open is False
    assert result.error == "refused by 192.0.2.3"


def test_slow_name_resolution_counts_against_timeout(monkeypatch):
    monkeypatch.setattr(l4_tcp.socket, "getaddrinfo", fake_getaddrinfo(ADDRS, delay=1.0))
    start = time.monotonic()
    result = l4_tcp.scan_port("slow-dns.example", 80, ScanConfig(timeout=0.2))
    assert time.monotonic() - start < 0.6
    assert result.open is False
    assert "timed out" in result.error


def test_literal_address_connects(serve):
    port = serve(lambda conn: None)
    sock = l4_tcp.tcp_connect("127.0.0.1", port, 1.0)
    try:
        assert sock.getpeername() == ("127.0.0.1", port)
    finally:
        sock.close()
