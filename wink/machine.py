"""Hierarchical state machines that talk to each other by message."""

from __future__ import annotations

import os
import sys
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from itertools import takewhile
from time import time as _now
from typing import Callable, Iterable, Mapping, Optional, Sequence

from .address import Address
from .constants import HEARTBEAT_TIMEOUT, PULSE_INTERVAL, SERVER_PORT
from .log import error as log_error
from .log import info
from .mailbox import AsyncMailbox, Mailbox
from .transport import UDPSocket

Trigger = Callable[[], None]
Receiver = Callable[[Address, str], None]


@dataclass(frozen=True)
class State:
    """A named state with an optional parent, entry/exit actions and receivers.

    Receivers map a message's first word to a callable that gets the sender
    and the rest of the message. A receiver under the empty key catches any
    message the state has no specific receiver for and gets the whole text.
    """

    name: str
    parent: str = ""
    on_enter: Optional[Trigger] = None
    on_exit: Optional[Trigger] = None
    receivers: Mapping[str, Receiver] = field(default_factory=dict)


@dataclass(frozen=True)
class _Scheduled:
    address: Address
    message: str
    time: float


def _fire(trigger: Optional[Trigger]) -> None:
    if trigger is not None:
        trigger()


def parse_machine_name(name: str) -> tuple[str, str]:
    """Split a machine name into its binary and its ``#tag`` (or "")."""
    binary, sep, tag = name.partition("#")
    return (binary, sep + tag) if sep else (name, "")


def _first_word(text: str) -> tuple[str, str]:
    parts = text.split(None, 1)
    if not parts:
        return "", ""
    return parts[0], parts[1] if len(parts) > 1 else ""


class Machine:
    """A hierarchical state machine bound to an address.

    Without a mailbox, a UDP socket is bound to ``address`` and the bound
    address (with any system-assigned port) replaces it. ``on_exit`` runs
    last when the machine exits; by default it ends the process.
    """

    def __init__(
        self,
        name: str,
        address: Address,
        parent: Address,
        mailbox: Mailbox | None = None,
    ) -> None:
        if mailbox is None:
            sock = UDPSocket(address)
            address = sock.address
            mailbox = AsyncMailbox(sock)
        self.name = name
        self.address = address
        self.parent = parent
        self.mailbox = mailbox
        self.on_exit: Trigger = lambda: os._exit(0)
        self._uid = ""
        self._running = True
        self._states: dict[str, State] = {}
        self._current = ""
        self._queue: list[_Scheduled] = []
        self._queue_lock = threading.Lock()
        self._spawned: dict[Address, tuple[str, float]] = {}

    @property
    def uid(self) -> str:
        """The machine's unique identifier, ``name@ip:port``, set on start."""
        return self._uid

    def start(self, initial: str = "") -> None:
        """Run the machine until it exits.

        Notifies the parent, registers with the server and enters ``initial``,
        or the first state added when ``initial`` is empty. Does nothing when
        the machine has no states.
        """
        if not self._states:
            return

        self._uid = f"{self.name}@{self.address}"
        info(f"{self._uid} started")
        self.send(self.parent, f"started {self.name}")
        self._register(self.name, os.getpid())

        state = initial or self._current
        self._current = ""
        self.transition(state)

        last = _now()
        while self._running:
            now = _now()
            self._check_children(now)
            if now - last > PULSE_INTERVAL:
                self._send_pulse()
                last = now
            self._send_scheduled(now)
            self._receive_message(now)

    def exit(self) -> None:
        """Leave every active state, notify the parent and stop running."""
        info(f"{self._uid} exited")
        for name in self._lineage(self._current):
            _fire(self._states[name].on_exit)

        self.send(self.parent, f"exited {self.name}")
        self._unregister()

        while not self.mailbox.flushed():
            pass

        self.on_exit()
        self._running = False

    def error(self, message: str) -> None:
        """Report an error to the parent, then exit."""
        info(f"{self._uid} errored: {message}")
        self.send(self.parent, f"errored {self.name} {message}")
        self.exit()

    def add_state(self, state: State) -> None:
        """Add a state; the first one added is the default initial state."""
        if not self._current:
            self._current = state.name
        self._states.setdefault(state.name, state)

    def transition(self, state: str) -> None:
        """Move to ``state``, exiting and entering only the states that differ."""
        info(f"{self._uid} transitioned: {self._current} to {state}")
        leaving = self._lineage(self._current)[::-1]
        entering = self._lineage(state)[::-1]
        common = sum(1 for _ in takewhile(lambda p: p[0] == p[1], zip(leaving, entering)))

        for name in reversed(leaving[common:]):
            _fire(self._states[name].on_exit)

        self._current = state

        for name in entering[common:]:
            _fire(self._states[name].on_enter)

    def send(self, to: Address, message: str) -> None:
        """Send a message to an address."""
        info(f"{self._uid} > {to} {message}")
        self.mailbox.send(to, message)

    def send_at(self, to: Address, message: str, time: datetime | float) -> None:
        """Send a message once the given time (datetime or epoch seconds) has passed."""
        when = time.timestamp() if isinstance(time, datetime) else float(time)
        with self._queue_lock:
            self._queue.append(_Scheduled(to, message, when))

    def send_after(self, to: Address, message: str, delay: timedelta | float) -> None:
        """Send a message after a delay (timedelta or seconds)."""
        seconds = delay.total_seconds() if isinstance(delay, timedelta) else float(delay)
        self.send_at(to, message, _now() + seconds)

    def spawn(
        self,
        machine: str,
        destination: Address | None = None,
        args: Iterable[str] = (),
    ) -> None:
        """Ask the server at ``destination`` to start a machine.

        Without a destination the machine is started on this machine's host
        on any free port.
        """
        if destination is None:
            destination = Address(self.address.ip, 0)
        server = Address(destination.ip, SERVER_PORT)
        request = " ".join(["start", machine, f":{destination.port}", *args])
        self.send(server, request)

    def _check_children(self, now: float) -> None:
        dead = [
            (address, name)
            for address, (name, seen) in self._spawned.items()
            if now - seen > HEARTBEAT_TIMEOUT
        ]
        for address, name in dead:
            if address in self._spawned:
                self._handle_message(now, address, f"errored {name} heartbeat timeout")
                self._handle_message(now, address, f"exited {name}")

    def _send_pulse(self) -> None:
        self.send(self.parent, f"pulsed {self.name}")

    def _send_scheduled(self, now: float) -> None:
        with self._queue_lock:
            due = [item for item in self._queue if item.time < now]
            self._queue = [item for item in self._queue if item.time >= now]
        for item in due:
            self.send(item.address, item.message)

    def _receive_message(self, now: float) -> None:
        received = self.mailbox.receive()
        if received is not None:
            sender, message = received
            self._handle_message(now, sender, message)

    def _handle_message(self, now: float, sender: Address, message: str) -> None:
        info(f"{self._uid} < {sender} {message}")
        command, args = _first_word(message)

        if command == "started":
            child, _ = _first_word(args)
            self._spawned.setdefault(sender, (child, now))
        elif command == "exited":
            self._spawned.pop(sender, None)
        elif command == "pulsed" and sender in self._spawned:
            self._spawned[sender] = (self._spawned[sender][0], now)

        name = self._current
        while name:
            state = self._states.get(name)
            if state is None:
                log_error(f"{self._uid}: No such state: {name}")
                self.error(f"Unrecognized state: {name}")
                return
            receiver = state.receivers.get(command)
            if receiver is not None:
                receiver(sender, args)
                return
            catch_all = state.receivers.get("")
            if catch_all is not None:
                catch_all(sender, message)
                return
            name = state.parent

        log_error(f"{self._uid}: Failed to handle message")
        self.error(f"Unhandled message: {command}")

    def _register(self, machine: str, pid: int) -> None:
        self.send(Address(self.address.ip, SERVER_PORT), f"register {machine} {pid}")

    def _unregister(self) -> None:
        self.send(Address(self.address.ip, SERVER_PORT), "unregister")

    def _lineage(self, state: str) -> list[str]:
        """Return ``state`` and its ancestors, deepest first."""
        lineage = []
        while state:
            try:
                node = self._states[state]
            except KeyError:
                raise KeyError(f"no such state: {state}") from None
            lineage.append(state)
            state = node.parent
        return lineage


def _logged_state(
    name: str, receivers: Mapping[str, Receiver], parent: str = ""
) -> State:
    """A state that logs its entry and exit under its own name."""
    return State(
        name=name,
        parent=parent,
        on_enter=lambda: info(f"{name}: OnEntry"),
        on_exit=lambda: info(f"{name}: OnExit"),
        receivers=receivers,
    )


def _run_sample(
    argv: Sequence[str] | None,
    configure: Callable[..., None],
    extra: Sequence[str] = (),
) -> int:
    """Run a machine from ``<name> <address> <parent> [extra...]``.

    The extra arguments are handed to ``configure`` after the machine.
    Returns the process exit status.
    """
    args = list(sys.argv if argv is None else argv)
    if len(args) < 3 + len(extra):
        expected = " ".join(["<address>", "<parent>", *(f"<{e}>" for e in extra)])
        log_error(f"Incorrect parameters, expected {expected}")
        return 1
    machine = Machine(args[0], Address.parse(args[1]), Address.parse(args[2]))
    configure(machine, *args[3 : 3 + len(extra)])
    machine.start()
    return 0