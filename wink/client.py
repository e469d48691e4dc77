"""Requests a client sends to a server or to machines."""

from __future__ import annotations

from typing import Iterable

from .address import Address
from .constants import MAX_RETRIES, SERVER_PORT
from .log import info
from .machine import parse_machine_name
from .mailbox import Mailbox


def _command(message: str) -> tuple[str, str]:
    parts = message.split(None, 1)
    if not parts:
        return "", ""
    return parts[0], parts[1] if len(parts) > 1 else ""


def send_message(mailbox: Mailbox, to: Address, message: str) -> None:
    """Log and send a message."""
    info(f"> {to} {message}")
    mailbox.send(to, message)


def receive_message(mailbox: Mailbox) -> tuple[Address, str] | None:
    """Receive one message, trying up to the retry limit; None if none came."""
    for _ in range(MAX_RETRIES):
        received = mailbox.receive()
        if received is not None:
            return received
    return None


def start_machine(
    mailbox: Mailbox,
    address: Address,
    machine: str,
    destination: Address,
    args: Iterable[str] = (),
    follow: bool = False,
) -> Address:
    """Ask the server on ``destination``'s host to start a machine.

    Returns the address of the started machine. With ``follow`` it keeps
    logging the machine's messages until it reports that it exited.
    Raises TimeoutError when no reply arrives and ValueError when the reply
    is not the expected ``started`` message.
    """
    info(f"Address: {address}")

    server = Address(destination.ip, SERVER_PORT)
    request = " ".join(["start", machine, f":{destination.port}", *args])
    send_message(mailbox, server, request)

    received = receive_message(mailbox)
    if received is None:
        raise TimeoutError('Failed to receive "started" message')
    started_at, message = received
    info(f"< {started_at} {message}")

    command, rest = _command(message)
    if command != "started":
        raise ValueError(
            f'Incorrect message received. Expected: "started", Got: "{command}"'
        )
    expected_binary = parse_machine_name(machine)[0]
    name, _ = _command(rest)
    started_binary = parse_machine_name(name)[0]
    if started_binary != expected_binary:
        raise ValueError(
            f'Incorrect machine binary started. Expected: "{expected_binary}", '
            f'Got: "{started_binary}"'
        )

    while follow:
        received = mailbox.receive()
        if received is None:
            continue
        sender, message = received
        info(f"< {sender} {message}")
        if _command(message)[0] == "exited":
            break

    return started_at


def stop_machine(mailbox: Mailbox, address: Address) -> None:
    """Ask the server on the machine's host to stop the machine at ``address``."""
    server = Address(address.ip, SERVER_PORT)
    send_message(mailbox, server, f"stop {address.port}")


def list_machines(mailbox: Mailbox, server: Address) -> str:
    """Ask a server for its machines and return the listing it replies with.

    Raises TimeoutError when no reply arrives.
    """
    send_message(mailbox, server, "list")
    received = receive_message(mailbox)
    if received is None:
        raise TimeoutError('Failed to receive "list" message')
    sender, message = received
    info(f"< {sender} {message}")
    return message