"""A server that starts, stops and lists machines on its host."""

from __future__ import annotations

import os
import signal
import subprocess
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Sequence

from .address import Address
from .client import send_message
from .log import error, info, log_to_file
from .machine import parse_machine_name
from .mailbox import Mailbox

_HEADER = "Port,PID,Machine"


def _to_int(text: str) -> int:
    try:
        return int(text)
    except ValueError:
        return 0


def _open_log(directory: str | os.PathLike, name: str) -> int:
    """Create a timestamped log file for a started machine; return its descriptor."""
    path = Path(directory)
    if not path.exists():
        os.mkdir(path, 0o777)
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
    return os.open(path / f"{stamp}{name}.log", os.O_RDWR | os.O_CREAT, 0o600)


class Server:
    """Serves requests to run machine binaries found in a directory.

    Machines register themselves with the port they send from and their
    process id; ``stop`` terminates the machine registered on a port.
    """

    def __init__(self, address: Address, mailbox: Mailbox, log: str = "") -> None:
        self.address = address
        self.mailbox = mailbox
        self.log = log
        self._running = threading.Event()
        self._machines: dict[int, str] = {}
        self._pids: dict[int, int] = {}
        self._children: dict[int, subprocess.Popen] = {}

    def serve(self, directory: str | os.PathLike) -> None:
        """Handle requests until ``shutdown`` is called.

        Raises OSError when logging cannot be set up or a machine cannot be
        stopped on request.
        """
        self._running.set()
        if self.log:
            try:
                log_to_file(self.log, "server")
            except OSError:
                error("Failed to setup logging")
                raise

        info(f"Directory: {directory}")
        info(f"Address: {self.address}")

        root = Path(directory)
        while self._running.is_set():
            self._reap()
            received = self.mailbox.receive()
            if received is None:
                continue
            sender, message = received
            info(f"< {sender} {message}")
            try:
                self._handle(root, sender, message)
            except ValueError:
                error(f"Failed to parse {message}")

        while not self.mailbox.flushed():
            pass

    def start(self, binary: str | os.PathLike, parameters: Sequence[str]) -> int:
        """Run ``binary`` with ``parameters`` as its argument vector; return its pid.

        The first parameter becomes the program name. With a log directory
        the machine's output goes to a log file named after it.
        """
        log_fd = None
        if self.log:
            name = parameters[0].replace("/", "_").replace("#", "_")
            try:
                log_fd = _open_log(self.log, name)
            except OSError:
                error("Failed to setup logging")
                raise
        try:
            process = subprocess.Popen(
                list(parameters),
                executable=os.fspath(binary),
                stdout=log_fd,
                stderr=log_fd,
            )
        finally:
            if log_fd is not None:
                os.close(log_fd)
        info(f"Forked: {process.pid}")
        self._children[process.pid] = process
        return process.pid

    def stop(self, port: int) -> int:
        """Terminate the machine registered on ``port``; return its pid or 0."""
        pid = self._pids.get(port, 0)
        if pid > 0:
            os.kill(pid, signal.SIGTERM)
            self._machines.pop(port, None)
            self._pids.pop(port, None)
        return pid

    def list(self) -> str:
        """Return a CSV listing of registered machines, one line per port."""
        lines = [_HEADER]
        lines.extend(
            f"{port},{self._pids.get(port, 0)},{machine}"
            for port, machine in sorted(self._machines.items())
        )
        return "\n".join(lines) + "\n"

    def shutdown(self) -> None:
        """Make ``serve`` return after the request it is waiting for."""
        self._running.clear()

    def _handle(self, directory: Path, sender: Address, message: str) -> None:
        command, *args = message.split() or [""]
        if command == "start":
            self._start_requested(directory, sender, args)
        elif command == "stop":
            port = _to_int(args[0]) if args else 0
            try:
                self.stop(port)
            except OSError:
                error("Failed to stop process")
                raise
        elif command == "register":
            machine = args[0] if args else ""
            pid = _to_int(args[1]) if len(args) > 1 else 0
            self._machines.setdefault(sender.port, machine)
            self._pids.setdefault(sender.port, pid)
        elif command == "unregister":
            if sender.port in self._pids:
                self._machines.pop(sender.port, None)
                self._pids.pop(sender.port, None)
            else:
                error(f"Unrecognized port {sender.port}")
        elif command == "list":
            send_message(self.mailbox, sender, self.list())
        else:
            error(f"Failed to parse {message}")

    def _start_requested(
        self, directory: Path, sender: Address, args: list[str]
    ) -> None:
        name = args[0] if args else ""
        requested = Address.parse(args[1]) if len(args) > 1 else Address()
        destination = Address(self.address.ip, requested.port)

        if destination.port > 0:
            try:
                self.stop(destination.port)
            except OSError:
                pass

        binary = directory / parse_machine_name(name)[0]
        parameters = [name, str(destination), str(sender), *args[2:]]
        try:
            self.start(binary, parameters)
        except OSError as exc:
            error(
                f"Failed to execute binary: {name}: {binary}: {exc.strerror or exc}"
            )
            error("Failed to start process")

    def _reap(self) -> None:
        self._children = {
            pid: process
            for pid, process in self._children.items()
            if process.poll() is None
        }