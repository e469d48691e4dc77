"""A light switch machine with an off state and a nested on state."""

from __future__ import annotations

import sys
from typing import Sequence

from ..address import Address
from ..log import error, info
from ..machine import Machine, State


def configure(machine: Machine) -> None:
    """Add the ``off`` state and the ``on`` state nested inside it."""
    machine.add_state(
        State(
            name="off",
            on_enter=lambda: info("Switch is OFF"),
            receivers={
                "on": lambda sender, args: machine.transition("on"),
                "off": lambda sender, args: machine.transition("off"),
            },
        )
    )
    machine.add_state(
        State(name="on", parent="off", on_enter=lambda: info("Switch is ON"))
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