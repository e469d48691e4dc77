"""Machines that show how nested states are entered, exited and searched."""

from __future__ import annotations

import sys
from typing import Sequence

from ..address import Address
from ..log import error, info
from ..machine import Machine, Receiver, State


def _announcing(name: str, parent: str = "", receivers=None) -> State:
    return State(
        name=name,
        parent=parent,
        on_enter=lambda: info(f"{name}: OnEntry"),
        on_exit=lambda: info(f"{name}: OnExit"),
        receivers=receivers or {},
    )


def _exit_receiver(machine: Machine) -> Receiver:
    return lambda sender, args: machine.exit()


def _goto_receiver(machine: Machine) -> Receiver:
    def goto(sender: Address, args: str) -> None:
        words = args.split()
        machine.transition(words[0] if words else "")

    return goto


def configure_leaf(machine: Machine) -> None:
    """Add a single ``Leaf`` state that exits on ``exit``."""
    machine.add_state(_announcing("Leaf", receivers={"exit": _exit_receiver(machine)}))


def configure_simple(machine: Machine) -> None:
    """Add a ``Parent`` state handling ``goto`` and ``exit``, with two leaves."""
    machine.add_state(
        _announcing(
            "Parent",
            receivers={
                "goto": _goto_receiver(machine),
                "exit": _exit_receiver(machine),
            },
        )
    )
    machine.add_state(_announcing("Leaf1", "Parent"))
    machine.add_state(_announcing("Leaf2", "Parent"))


def configure_bigger(machine: Machine) -> None:
    """Add a three-level tree whose states each log the messages they catch."""

    def receivers(name: str) -> dict[str, Receiver]:
        def show(sender: Address, message: str) -> None:
            info(f"{name}: {message}")

        return {"exit": _exit_receiver(machine), "": show}

    for name, parent in (
        ("Parent", ""),
        ("Leaf1", "Parent"),
        ("Child1", "Parent"),
        ("Leaf2", "Child1"),
        ("Leaf3", "Child1"),
    ):
        machine.add_state(_announcing(name, parent, receivers(name)))


def configure_forrest(machine: Machine) -> None:
    """Add several separate trees; their roots handle ``goto`` and ``exit``."""
    roots = {
        "goto": _goto_receiver(machine),
        "exit": _exit_receiver(machine),
    }
    for name, parent in (
        ("Leaf1", ""),
        ("Parent1", ""),
        ("Leaf2", "Parent1"),
        ("Child2", "Parent1"),
        ("Leaf4", "Child2"),
        ("Leaf5", "Child2"),
        ("Parent2", ""),
        ("Child3", "Parent2"),
        ("Leaf6", "Child3"),
        ("Child4", "Parent2"),
        ("Leaf7", "Child4"),
        ("Parent3", ""),
        ("Leaf3", "Parent3"),
    ):
        machine.add_state(_announcing(name, parent, roots if not parent else None))


def _machine(argv: Sequence[str] | None) -> Machine | None:
    args = list(sys.argv if argv is None else argv)
    if len(args) < 3:
        error("Incorrect parameters, expected <address> <parent>")
        return None
    return Machine(args[0], Address.parse(args[1]), Address.parse(args[2]))


def _run(argv: Sequence[str] | None, configure=None, initial: str = "") -> int:
    machine = _machine(argv)
    if machine is None:
        return 1
    with machine.mailbox:
        if configure is not None:
            configure(machine)
        machine.start(initial)
    return 0


def empty_main(argv: Sequence[str] | None = None) -> int:
    """Run a machine with no states, which stops at once; returns the exit status."""
    return _run(argv)


def leaf_main(argv: Sequence[str] | None = None) -> int:
    """Run the single-leaf machine; returns the exit status."""
    return _run(argv, configure_leaf)


def simple_main(argv: Sequence[str] | None = None) -> int:
    """Run the two-level machine starting in ``Leaf2``; returns the exit status."""
    return _run(argv, configure_simple, "Leaf2")


def bigger_main(argv: Sequence[str] | None = None) -> int:
    """Run the three-level machine starting in ``Child1``; returns the exit status."""
    return _run(argv, configure_bigger, "Child1")


def forrest_main(argv: Sequence[str] | None = None) -> int:
    """Run the machine made of several trees; returns the exit status."""
    return _run(argv, configure_forrest)