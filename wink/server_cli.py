"""Command line entry point that runs a machine server."""

from __future__ import annotations

import os
import sys
from typing import Sequence

from .address import Address
from .constants import LOCALHOST, SERVER_PORT
from .log import error
from .mailbox import AsyncMailbox
from .server import Server
from .transport import UDPSocket

PROG = "WinkServer"

_HELP = {
    "serve": (
        "Starts the Wink Server to serve the given directory.\n\n"
        "Options;"
        f"\n\t-a\n\t\tThe address to bind to (default {LOCALHOST}:{SERVER_PORT})\n"
        "\n\t-l\n\t\tThe directory to log to (default disabled)\n"
        "Parameters;"
        "\n\tdirectory\n\t\tThe directory containing machine files\n"
    ),
}


def usage(name: str = PROG) -> None:
    """Print the list of commands."""
    print(f"{name}\n\tserve [options] <directory>\n\thelp", flush=True)


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


def _program_name() -> str:
    return os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else PROG


def _serve(options: dict[str, str], parameters: list[str]) -> int:
    if not parameters:
        error("Missing <directory> parameter")
        return 1

    address = Address(LOCALHOST, SERVER_PORT)
    log = ""
    try:
        for key, value in sorted(options.items()):
            if key == "-a":
                address = Address.parse(_first_token(value))
            elif key == "-l":
                log = value
            else:
                error(f"Option {key}:{value} not supported")

        sock = UDPSocket(address)
        with AsyncMailbox(sock) as mailbox:
            Server(sock.address, mailbox, log).serve(parameters[0])
    except (OSError, ValueError) as exc:
        error(str(exc))
        return 1
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Run the server command line; returns the exit status."""
    args = list(sys.argv[1:] if argv is None else argv)
    name = _program_name()
    if not args:
        usage(name)
        return 0

    command, rest = args[0], args[1:]
    options, parameters = _split_arguments(rest)

    if command == "serve":
        return _serve(options, parameters)
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