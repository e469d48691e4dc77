"""A machine that exits as soon as it starts."""

from __future__ import annotations

import sys
from typing import Sequence

from ..address import Address
from ..log import error, info
from ..machine import Machine, State


def configure(machine: Machine) -> None:
    """Add the single state whose entry exits the machine."""

    def on_enter() -> None:
        info("main: OnEntry")
        machine.exit()

    machine.add_state(
        State(name="main", on_enter=on_enter, on_exit=lambda: info("main: OnExit"))
    )


def main(argv: Sequence[str] | None = None) -> int:
    """Run the machine from ``<name> <address> <parent>``; returns the exit status."""
    args = list(sys.argv if argv is None else argv)
    if len(args) < 3:
        error("Incorrect parameters, expected <address> <parent>")
        return 1
    machine = Machine(args[0], Address.parse(args[1]), Address.parse(args[2]))
    configure(machine)
    machine.start()
    return 0


if __name__ == "__main__":
    sys.exit(main())