"""A machine that replies to every message with the message itself."""

from __future__ import annotations

import sys
from typing import Sequence

from ..address import Address
from ..machine import Machine, _logged_state, _run_sample


def configure(machine: Machine) -> None:
    """Add the single state that echoes every message back to its sender."""

    def echo(sender: Address, message: str) -> None:
        machine.send(sender, message)

    machine.add_state(_logged_state("main", {"": echo}))


def main(argv: Sequence[str] | None = None) -> int:
    """Run the machine from ``<name> <address> <parent>``; returns the exit status."""
    return _run_sample(argv, configure)


if __name__ == "__main__":
    sys.exit(main())