"""Datagram transports used by mailboxes."""

from __future__ import annotations

import socket
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator

from .address import Address
from .constants import MAX_UDP_PAYLOAD, RECEIVE_TIMEOUT
from .log import error


class Socket(ABC):
    """A datagram endpoint that can send and receive packets."""

    @abstractmethod
    def receive(self) -> tuple[Address, bytes] | None:
        """Return ``(sender, data)``, or None when nothing arrived in time."""

    @abstractmethod
    def send(self, to: Address, data: bytes) -> None:
        """Send one packet; raises OSError when it cannot be sent."""

    @abstractmethod
    def close(self) -> None:
        """Release the endpoint."""

    def __enter__(self) -> Socket:
        return self

    def __exit__(self, *args) -> None:
        self.close()


@contextmanager
def _failure(what: str) -> Iterator[None]:
    try:
        yield
    except OSError as exc:
        raise OSError(exc.errno, f"Failed to {what}: {exc.strerror or exc}") from exc


class UDPSocket(Socket):
    """A UDP socket bound to an address.

    After construction ``address`` holds the address actually bound, so a
    port of zero is replaced by the one the system assigned.
    """

    def __init__(self, address: Address) -> None:
        self._lock = threading.Lock()
        with _failure("open UDP socket"):
            self._sock = socket.socket(
                socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP
            )
        try:
            with _failure("set UDP socket reuse option"):
                self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            with _failure("bind UDP socket"):
                self._sock.bind(address.to_sockaddr())
            with _failure("get UDP socket name"):
                self.address = Address.from_sockaddr(self._sock.getsockname())
            with _failure("set UDP socket receive timeout"):
                self._sock.settimeout(RECEIVE_TIMEOUT)
        except OSError:
            self._sock.close()
            raise

    def receive(self) -> tuple[Address, bytes] | None:
        try:
            data, sockaddr = self._sock.recvfrom(MAX_UDP_PAYLOAD)
        except TimeoutError:
            return None
        except OSError as exc:
            error(f"Failed to receive packet: {exc.strerror or exc}")
            return None
        return Address.from_sockaddr(sockaddr), data

    def send(self, to: Address, data: bytes) -> None:
        with self._lock:
            self._sock.sendto(bytes(data), to.to_sockaddr())

    def close(self) -> None:
        self._sock.close()