"""
Banner helpers: sanitizing raw bytes into a single printable line and
deadline-bounded reads from a connected socket.
"""

from __future__ import annotations

import socket
import time
from typing import Union

_WHITESPACE = frozenset("\n\r\t ")

READ_SIZE = 256


def sanitize_banner(raw: Union[str, bytes]) -> str:
    """
    Keep printable ASCII (32-126) only, collapse runs of whitespace into one
    space and trim the ends. Applying it twice changes nothing.
    """
    if isinstance(raw, bytes):
        raw = raw.decode(errors="ignore")
    out = []
    last_space = False
    for ch in raw:
        if ch in _WHITESPACE:
            if not last_space:
                out.append(" ")
                last_space = True
            continue
        if not (32 <= ord(ch) <= 126):
            continue
        out.append(ch)
        last_space = False
    return "".join(out).strip()


class DeadlineReader:
    """
    Buffered line reader over a socket where every recv() shares one
    absolute deadline, so a trickling peer cannot stretch the read.
    """

    def __init__(self, sock: socket.socket, timeout: float, max_line: int = 4096):
        self.sock = sock
        self.deadline = time.monotonic() + timeout
        self.max_line = max_line
        self._buf = b""
        self._eof = False

    def _fill(self) -> bool:
        remaining = self.deadline - time.monotonic()
        if remaining <= 0 or self._eof:
            return False
        self.sock.settimeout(remaining)
        try:
            chunk = self.sock.recv(4096)
        except OSError:
            self._eof = True
            return False
        if not chunk:
            self._eof = True
            return False
        self._buf += chunk
        return True

    def readline(self) -> bytes:
        """Next line including its newline; partial data on EOF or deadline."""
        while b"\n" not in self._buf and len(self._buf) < self.max_line:
            if not self._fill():
                break
        idx = self._buf.find(b"\n")
        if idx == -1:
            line, self._buf = self._buf[: self.max_line], self._buf[self.max_line:]
        else:
            line, self._buf = self._buf[: idx + 1], self._buf[idx + 1:]
        return line


def read_banner(sock: socket.socket, timeout: float, n: int = READ_SIZE) -> str:
    """Single read bounded by timeout; empty string when the peer stays quiet."""
    sock.settimeout(timeout)
    try:
        data = sock.recv(n)
    except OSError:
        return ""
    return sanitize_banner(data)
