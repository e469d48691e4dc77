"""Network endpoint addresses of the form ``ip:port``."""

from __future__ import annotations

import socket
import string
from dataclasses import dataclass

from .constants import LOCALHOST


def _parse_port(text: str) -> int:
    try:
        return int(text.strip())
    except ValueError:
        raise ValueError(f"invalid port: {text!r}") from None


@dataclass(frozen=True, order=True)
class Address:
    """An IPv4 host and UDP port; ordered by host, then port."""

    ip: str = LOCALHOST
    port: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.port <= 0xFFFF:
            raise ValueError(f"port out of range: {self.port}")

    @classmethod
    def parse(cls, text: str) -> Address:
        """Parse ``ip``, ``ip:port`` or ``:port`` (which means localhost)."""
        ip, sep, port = text.partition(":")
        if not sep:
            return cls(text, 0)
        return cls(ip or LOCALHOST, _parse_port(port))

    @classmethod
    def from_sockaddr(cls, sockaddr: tuple) -> Address:
        """Build an address from a socket-level ``(host, port)`` pair."""
        host, port = sockaddr[0], sockaddr[1]
        return cls(host, port)

    def to_sockaddr(self) -> tuple[str, int]:
        """Return a ``(host, port)`` pair, resolving a host name to IPv4."""
        host = self.ip
        if host and host[0] not in string.digits:
            try:
                host = socket.gethostbyname(host)
            except OSError:
                pass
        return host, self.port

    def __str__(self) -> str:
        return f"{self.ip}:{self.port}"