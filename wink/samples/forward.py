"""A machine that forwards every message it receives to a fixed destination."""

from __future__ import annotations

import sys
from typing import Sequence

from ..address import Address
from ..machine import Machine, _logged_state, _run_sample


def configure(machine: Machine, destination: Address) -> None:
    """Add the single state that forwards every message to ``destination``."""

    def forward(sender: Address, message: str) -> None:
        machine.send(destination, message)

    machine.add_state(_logged_state("main", {"": forward}))


def main(argv: Sequence[str] | None = None) -> int:
    """Run from ``<name> <address> <parent> <destination>``; returns the exit status."""
    return _run_sample(
        argv,
        lambda machine, destination: configure(machine, Address.parse(destination)),
        extra=("destination",),
    )


if __name__ == "__main__":
    sys.exit(main())