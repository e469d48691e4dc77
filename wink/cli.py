"""Command line client that starts, stops, lists and messages machines."""

from __future__ import annotations

import os
import sys
from typing import Sequence

from .address import Address
from .client import (
    list_machines,
    receive_message,
    send_message,
    start_machine,
    stop_machine,
)
from .constants import LOCALHOST, SERVER_PORT
from .log import error, info
from .mailbox import AsyncMailbox
from .transport import UDPSocket

PROG = "Wink"

_HELP = {
    "start": (
        "Start a new machine.\n\n"
        "Options;"
        f"\n\t-a\n\t\tThe address to bind to (default {LOCALHOST})\n"
        "\n\t-f\n\t\tFollow the lifecycle of the machine (default false)\n"
        "Parameters;"
        "\n\tbinary\n\t\tThe machine binary to start\n"
        "\n\thost\n\t\tThe host to start the machine on\n"
        "Examples;"
        "\n\tstart machine.bin\n\t\tStart a new machine on localhost on "
        "any available port\n"
        "\n\tstart machine.bin :64646\n\t\tStart a new machine on "
        "localhost port 64646\n"
        "\n\tstart machine.bin 123.45.67.89\n\t\tStart a new machine on "
        "ip 123.45.67.89 any available port\n"
        "\n\tstart machine.bin 123.45.67.89:64646\n\t\tStart a new "
        "machine on ip 123.45.67.89 port 64646\n"
    ),
    "stop": (
        "Stop an existing machine.\n\n"
        "Options;"
        "Parameters;"
        "\n\tmachine\n\t\tThe machine to stop\n"
        "Examples;"
        "\n\tstop 123.45.67.89:64646\n\t\tStop an existing machine on ip "
        "123.45.67.89 port 64646\n"
    ),
    "send": (
        "Sends a message to a machine\n\n"
        "Options;"
        "\n\t-r\n\t\tThe number of replies to await (default 0)\n"
        "Parameters;"
        "\n\tmachine\n\t\tThe machine to send to\n"
        "\n\tmessage\n\t\tThe message to send\n"
        "Examples;"
        "\n\tsend :64646 add(2,8)\n\t\tSend a message to machine on "
        "localhost port 64646\n"
        "\n\tsend 123.45.67.89:64646 add(2,8)\n\t\tSend a message to "
        "machine on ip 123.45.67.89 port 64646\n"
    ),
    "list": (
        "List machines running on a host\n\n"
        "Options;"
        "Parameters;"
        "\n\thost\n\t\tThe host to list the machines from\n"
        "Examples;"
        "\n\tlist\n\t\tLists the machines running on localhost port 42000\n"
        "\n\tlist :64646\n\t\tLists the machines running on localhost "
        "port 64646\n"
        "\n\tlist 123.45.67.89:64646\n\t\tLists the machines running on "
        "ip 123.45.67.89 port 64646\n"
    ),
}


def usage(name: str = PROG) -> None:
    """Print the list of commands."""
    print(
        f"{name}\n"
        "\tstart [options] <binary> <host>\n"
        "\tstop [options] <machine>\n"
        "\tsend [options] <machine> <message>\n"
        "\tlist [options] <host>\n"
        "\thelp",
        flush=True,
    )


def command_help(name: str, command: str) -> None:
    """Print the help for one command, or the usage for an unknown one."""
    text = _HELP.get(command)
    if text is None:
        usage()
    else:
        print(text, end="", flush=True)


def _split_arguments(args: Sequence[str]) -> tuple[dict[str, str], list[str]]:
    options: dict[str, str] = {}
    parameters: list[str] = []
    items = iter(args)
    for arg in items:
        if arg.startswith("-"):
            value = next(items, None)
            if value is not None:
                options.setdefault(arg, value)
                continue
        parameters.append(arg)
    return options, parameters


def _first_token(text: str) -> str:
    tokens = text.split()
    return tokens[0] if tokens else ""


def _to_count(text: str) -> int:
    try:
        return max(0, int(_first_token(text)))
    except ValueError:
        return 0


def _unsupported(options: dict[str, str]) -> None:
    for key, value in sorted(options.items()):
        error(f"Option {key}:{value} not supported")


def _program_name() -> str:
    return os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else PROG


def _start(options: dict[str, str], parameters: list[str]) -> int:
    address = Address(LOCALHOST, 0)
    follow = False
    for key, value in sorted(options.items()):
        if key == "-a":
            address = Address.parse(_first_token(value))
        elif key == "-f":
            follow = _first_token(value).lower() in ("1", "true")
        else:
            error(f"Option {key}:{value} not supported")

    if not parameters:
        error("Missing <binary> parameter")
        return 1
    binary, *rest = parameters
    destination = Address(LOCALHOST, 0)
    args: list[str] = []
    if rest:
        destination = Address.parse(rest[0])
        args = rest[1:]

    sock = UDPSocket(address)
    with AsyncMailbox(sock) as mailbox:
        start_machine(mailbox, sock.address, binary, destination, args, follow)
    return 0


def _stop(options: dict[str, str], parameters: list[str]) -> int:
    _unsupported(options)
    if not parameters:
        error("Missing <machine> parameter")
        return 1
    if len(parameters) > 1:
        error("Too many parameters")
        return 1
    destination = Address.parse(_first_token(parameters[0]))

    with AsyncMailbox(UDPSocket(Address())) as mailbox:
        stop_machine(mailbox, destination)
    return 0


def _send(options: dict[str, str], parameters: list[str]) -> int:
    replies = 0
    for key, value in sorted(options.items()):
        if key == "-r":
            replies = _to_count(value)
        else:
            error(f"Option {key}:{value} not supported")

    if not parameters:
        error("Missing <machine> parameter")
        return 1
    if len(parameters) == 1:
        error("Missing <message> parameter")
        return 1
    if len(parameters) > 2:
        error("Too many parameters")
        return 1
    receiver = Address.parse(_first_token(parameters[0]))
    message = parameters[1]

    with AsyncMailbox(UDPSocket(Address(LOCALHOST, 0))) as mailbox:
        send_message(mailbox, receiver, message)
        for _ in range(replies):
            while (received := receive_message(mailbox)) is None:
                pass
            sender, reply = received
            info(f"< {sender} {reply}")
    return 0


def _list(options: dict[str, str], parameters: list[str]) -> int:
    _unsupported(options)
    if len(parameters) > 1:
        error("Too many parameters")
        return 1
    receiver = Address(LOCALHOST, SERVER_PORT)
    if parameters:
        receiver = Address.parse(_first_token(parameters[0]))

    with AsyncMailbox(UDPSocket(Address(LOCALHOST, 0))) as mailbox:
        list_machines(mailbox, receiver)
    return 0


_COMMANDS = {"start": _start, "stop": _stop, "send": _send, "list": _list}


def main(argv: Sequence[str] | None = None) -> int:
    """Run the client command line; returns the exit status."""
    args = list(sys.argv[1:] if argv is None else argv)
    name = _program_name()
    if not args:
        usage(name)
        return 0

    command, rest = args[0], args[1:]
    options, parameters = _split_arguments(rest)

    handler = _COMMANDS.get(command)
    if handler is not None:
        try:
            return handler(options, parameters)
        except (OSError, ValueError) as exc:
            error(str(exc))
            return 1
    if command == "help":
        if rest:
            command_help(name, rest[0])
        else:
            usage()
        return 0
    usage(name)
    return 0


if __name__ == "__main__":
    sys.exit(main())