"""Reliable message delivery over datagrams with acknowledgements and retries."""

from __future__ import annotations

import struct
import threading
import time
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field

from .address import Address
from .constants import MAX_RETRIES, MAX_UDP_PAYLOAD, RECEIVE_TIMEOUT, SEND_TIMEOUT
from .log import error, info
from .transport import Socket

_SEQ = struct.Struct("<I")
_SEQ_MASK = 0xFFFFFFFF
_ACK = "ack"
_ENCODING = "utf-8"
_ERRORS = "surrogateescape"


class Mailbox(ABC):
    """Sends and receives text messages addressed to endpoints."""

    @abstractmethod
    def receive(self) -> tuple[Address, str] | None:
        """Return ``(sender, message)``, or None if none arrived in time."""

    @abstractmethod
    def send(self, to: Address, message: str) -> None:
        """Queue a message for delivery."""

    @abstractmethod
    def flushed(self) -> bool:
        """Return True once every queued message has been settled."""

    def close(self) -> None:
        """Release resources held by the mailbox."""

    def __enter__(self) -> Mailbox:
        return self

    def __exit__(self, *args) -> None:
        self.close()


@dataclass
class _Outgoing:
    address: Address
    message: str
    seq_num: int
    time: float = field(default_factory=time.monotonic)
    attempts: int = 0

    @property
    def deadline(self) -> float:
        return self.time + self.attempts * RECEIVE_TIMEOUT

    def packet(self) -> bytes:
        payload = self.message.encode(_ENCODING, _ERRORS)
        return _SEQ.pack(self.seq_num) + payload[: MAX_UDP_PAYLOAD - _SEQ.size]


class AsyncMailbox(Mailbox):
    """A mailbox whose background threads send, retry and acknowledge.

    Each packet starts with a four-byte little-endian sequence number,
    numbered per destination from zero. Receivers acknowledge every packet
    with its sequence number followed by ``ack`` and drop duplicates.
    """

    def __init__(self, socket: Socket) -> None:
        self.socket = socket
        self._incoming = threading.Condition()
        self._outgoing = threading.Condition()
        self._received: deque[tuple[Address, str]] = deque()
        self._pending: list[_Outgoing] = []
        self._incoming_seq_nums: dict[Address, int] = {}
        self._outgoing_seq_nums: dict[Address, int] = {}
        self._stop = threading.Event()
        self._closed = False
        self._receiver = threading.Thread(
            target=self._run_receiver, name="mailbox-receiver", daemon=True
        )
        self._sender = threading.Thread(
            target=self._run_sender, name="mailbox-sender", daemon=True
        )
        self._receiver.start()
        self._sender.start()

    def receive(self) -> tuple[Address, str] | None:
        with self._incoming:
            if not self._incoming.wait_for(lambda: self._received, RECEIVE_TIMEOUT):
                return None
            return self._received.popleft()

    def send(self, to: Address, message: str) -> None:
        with self._outgoing:
            previous = self._outgoing_seq_nums.get(to)
            seq_num = 0 if previous is None else (previous + 1) & _SEQ_MASK
            self._outgoing_seq_nums[to] = seq_num
            self._pending.append(_Outgoing(to, message, seq_num))
            self._outgoing.notify_all()

    def flushed(self) -> bool:
        with self._outgoing:
            return self._outgoing.wait_for(lambda: not self._pending, SEND_TIMEOUT)

    def close(self) -> None:
        """Wait until all messages are settled, then stop and close the socket."""
        if self._closed:
            return
        self._closed = True
        while not self.flushed():
            pass
        self._stop.set()
        with self._outgoing:
            self._outgoing.notify_all()
        self._receiver.join()
        self._sender.join()
        self.socket.close()

    def _run_receiver(self) -> None:
        while not self._stop.is_set():
            self._receive_one()

    def _run_sender(self) -> None:
        while not self._stop.is_set():
            self._send_pending()

    def _receive_one(self) -> None:
        packet = self.socket.receive()
        if packet is None:
            return
        sender, data = packet
        data = data.rstrip(b"\n")
        if len(data) < _SEQ.size:
            error(f"Message too small: {len(data)}")
            return

        (seq_num,) = _SEQ.unpack_from(data)
        message = data[_SEQ.size :].decode(_ENCODING, _ERRORS)

        if message == _ACK:
            self._acknowledged(sender, seq_num)
            return

        try:
            self.socket.send(sender, data[: _SEQ.size] + _ACK.encode())
        except OSError as exc:
            error(f"Failed to acknowledge {sender}: {exc.strerror or exc}")

        last = self._incoming_seq_nums.get(sender)
        if last is not None and seq_num <= last:
            info(f"Dropping duplicate message: {seq_num}")
            return
        self._incoming_seq_nums[sender] = seq_num

        with self._incoming:
            self._received.append((sender, message))
            self._incoming.notify_all()

    def _acknowledged(self, sender: Address, seq_num: int) -> None:
        with self._outgoing:
            match = next(
                (
                    item
                    for item in self._pending
                    if item.address == sender and item.seq_num == seq_num
                ),
                None,
            )
            if match is not None:
                self._pending.remove(match)
                self._outgoing.notify_all()

    def _send_pending(self) -> None:
        with self._outgoing:
            if not self._outgoing.wait_for(
                lambda: self._pending or self._stop.is_set(), SEND_TIMEOUT
            ):
                return

            now = time.monotonic()
            remaining = []
            for item in self._pending:
                if item.attempts >= MAX_RETRIES:
                    error(
                        f"Failed to deliver to {item.address} failed after "
                        f"{item.attempts} attempts"
                    )
                    continue
                if now >= item.deadline:
                    try:
                        self.socket.send(item.address, item.packet())
                    except OSError as exc:
                        error(f"Failed to send to {item.address}: {exc.strerror or exc}")
                    item.attempts += 1
                remaining.append(item)

            if len(remaining) < len(self._pending):
                self._outgoing.notify_all()
            self._pending = remaining

            if remaining and not self._stop.is_set():
                delay = min(
                    0.0 if item.attempts >= MAX_RETRIES else item.deadline - now
                    for item in remaining
                )
                if delay > 0:
                    self._outgoing.wait(delay)