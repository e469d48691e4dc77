"""A machine that plays FizzBuzz with the numbers it is sent."""

from __future__ import annotations

import re
import sys
from typing import Sequence

from ..address import Address
from ..log import error, info
from ..machine import Machine, State

_NUMBER = re.compile(r"\s*([+-]?\d+)")


def _leading_int(text: str) -> int:
    match = _NUMBER.match(text)
    return int(match.group(1)) if match else 0


def configure(machine: Machine) -> None:
    """Add the main state and its Fizz, Buzz and FizzBuzz sub-states."""

    def play(sender: Address, message: str) -> None:
        n = _leading_int(message)
        if n % 15 == 0:
            machine.transition("FizzBuzz")
        elif n % 5 == 0:
            machine.transition("Buzz")
        elif n % 3 == 0:
            machine.transition("Fizz")
        else:
            info(str(n))

    machine.add_state(
        State(
            name="main",
            on_enter=lambda: info("main: OnEntry"),
            on_exit=lambda: info("main: OnExit"),
            receivers={"": play},
        )
    )
    for word in ("Fizz", "Buzz", "FizzBuzz"):
        machine.add_state(
            State(name=word, parent="main", on_enter=lambda word=word: info(word))
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