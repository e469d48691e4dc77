"""A parent machine that spawns and respawns two tagged child machines."""

from __future__ import annotations

import sys
from typing import Sequence

from ..address import Address
from ..log import error, info
from ..machine import Machine, State

CHILDREN = ("family/Child#Alice", "family/Child#Bob")
ERROR_DELAY = 10.0


def _first(text: str) -> tuple[str, str]:
    parts = text.split(None, 1)
    if not parts:
        return "", ""
    return parts[0], parts[1] if len(parts) > 1 else ""


def configure_parent(machine: Machine) -> None:
    """Add the state that spawns the children, reports on them and respawns them."""

    def on_enter() -> None:
        info("Parent: OnEntry")
        for child in CHILDREN:
            machine.spawn(child)

    def started(sender: Address, args: str) -> None:
        info(f"Parent: {sender} {_first(args)[0]} has started")

    def pulsed(sender: Address, args: str) -> None:
        info(f"Parent: {sender} {_first(args)[0]} has pulsed")

    def errored(sender: Address, args: str) -> None:
        child, reason = _first(args)
        info(f"Parent: {sender} {child} has errored: {reason.strip()}")

    def exited(sender: Address, args: str) -> None:
        child = _first(args)[0]
        info(f"Parent: {sender} {child} has exited")
        machine.spawn(child)

    machine.add_state(
        State(
            name="main",
            on_enter=on_enter,
            on_exit=lambda: info("Parent: OnExit"),
            receivers={
                "started": started,
                "pulsed": pulsed,
                "errored": errored,
                "exited": exited,
            },
        )
    )


def configure_child(machine: Machine, address: Address) -> None:
    """Add the state that errors out a while after it is entered."""

    def on_enter() -> None:
        info("main: OnEntry")
        machine.send_after(address, "error", ERROR_DELAY)

    machine.add_state(
        State(
            name="main",
            on_enter=on_enter,
            on_exit=lambda: info("main: OnExit"),
            receivers={"error": lambda sender, args: machine.error("AHHHHH")},
        )
    )


def _machine(argv: Sequence[str] | None) -> Machine | None:
    args = list(sys.argv if argv is None else argv)
    if len(args) < 3:
        error("Incorrect parameters, expected <address> <parent>")
        return None
    return Machine(args[0], Address.parse(args[1]), Address.parse(args[2]))


def parent_main(argv: Sequence[str] | None = None) -> int:
    """Run the parent from ``<name> <address> <parent>``; returns the exit status."""
    machine = _machine(argv)
    if machine is None:
        return 1
    configure_parent(machine)
    machine.start()
    return 0


def child_main(argv: Sequence[str] | None = None) -> int:
    """Run a child from ``<name> <address> <parent>``; returns the exit status."""
    machine = _machine(argv)
    if machine is None:
        return 1
    configure_child(machine, machine.address)
    machine.start()
    return 0