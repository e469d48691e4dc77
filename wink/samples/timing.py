"""Machines that act on timers: delayed and timed messages, a stopwatch, a ticker."""

from __future__ import annotations

import math
import sys
import threading
import time
from typing import Sequence

from ..address import Address
from ..log import error, info
from ..machine import Machine, State

AFTER_DELAY = 10.0


def _exit_state(machine: Machine, on_enter) -> State:
    return State(
        name="main",
        on_enter=on_enter,
        on_exit=lambda: info("main: OnExit"),
        receivers={"exit": lambda sender, args: machine.exit()},
    )


def configure_after(machine: Machine, address: Address) -> None:
    """Add a state that sends itself ``exit`` a fixed delay after entry."""

    def on_enter() -> None:
        info("main: OnEntry")
        machine.send_after(address, "exit", AFTER_DELAY)

    machine.add_state(_exit_state(machine, on_enter))


def configure_at(machine: Machine, address: Address) -> None:
    """Add a state that sends itself ``exit`` at the start of the next minute."""

    def on_enter() -> None:
        info("main: OnEntry")
        next_minute = math.ceil(time.time() / 60) * 60
        machine.send_at(address, "exit", next_minute)

    machine.add_state(_exit_state(machine, on_enter))


def configure_stopwatch(machine: Machine) -> None:
    """Add ``idle`` and ``timing`` states; ``stop`` replies with the seconds elapsed."""
    started = [0.0]

    def start(sender: Address, args: str) -> None:
        started[0] = time.monotonic()
        machine.transition("timing")

    def stop(sender: Address, args: str) -> None:
        elapsed = math.floor(time.monotonic() - started[0])
        machine.send(sender, f"elapsed {elapsed} seconds")
        machine.transition("idle")

    machine.add_state(
        State(
            name="idle",
            on_enter=lambda: info("StopWatch is IDLE"),
            receivers={
                "idle": lambda sender, args: machine.transition("idle"),
                "start": start,
                "stop": lambda sender, args: machine.transition("idle"),
                "exit": lambda sender, args: machine.exit(),
            },
        )
    )
    machine.add_state(
        State(
            name="timing",
            parent="idle",
            on_enter=lambda: info("StopWatch is TIMING"),
            receivers={"stop": stop},
        )
    )


def configure_ticker(
    machine: Machine, name: str, parent: Address, interval: float
) -> threading.Thread:
    """Start a thread sending ``tick <name>`` to ``parent`` every interval.

    Adds a state whose ``exit`` stops the thread and exits the machine.
    Returns the thread.
    """
    stopped = threading.Event()

    def tick() -> None:
        while not stopped.is_set():
            if not stopped.wait(interval):
                machine.send(parent, f"tick {name}")

    worker = threading.Thread(target=tick, name="ticker", daemon=True)
    worker.start()

    def exit_(sender: Address, args: str) -> None:
        stopped.set()
        worker.join()
        machine.exit()

    machine.add_state(
        State(
            name="main",
            on_enter=lambda: info("main: OnEntry"),
            on_exit=lambda: info("main: OnExit"),
            receivers={"exit": exit_},
        )
    )
    return worker


def _arguments(argv: Sequence[str] | None, count: int, expected: str) -> list[str] | None:
    args = list(sys.argv if argv is None else argv)
    if len(args) < count:
        error(f"Incorrect parameters, expected {expected}")
        return None
    return args


def _machine(args: list[str]) -> Machine:
    return Machine(args[0], Address.parse(args[1]), Address.parse(args[2]))


def _run(argv: Sequence[str] | None, configure) -> int:
    args = _arguments(argv, 3, "<address> <parent>")
    if args is None:
        return 1
    machine = _machine(args)
    with machine.mailbox:
        configure(machine, machine.address)
        machine.start()
    return 0


def after_main(argv: Sequence[str] | None = None) -> int:
    """Run the machine that exits after a delay; returns the exit status."""
    return _run(argv, configure_after)


def at_main(argv: Sequence[str] | None = None) -> int:
    """Run the machine that exits at the next minute; returns the exit status."""
    return _run(argv, configure_at)


def stopwatch_main(argv: Sequence[str] | None = None) -> int:
    """Run the stopwatch machine; returns the exit status."""
    return _run(argv, lambda machine, address: configure_stopwatch(machine))


def ticker_main(argv: Sequence[str] | None = None) -> int:
    """Run from ``<name> <address> <parent> <interval>``; returns the exit status."""
    args = _arguments(argv, 4, "<address> <parent> <interval>")
    if args is None:
        return 1
    try:
        interval = int(args[3])
    except ValueError:
        error(f"Invalid interval: {args[3]}")
        return 1
    machine = _machine(args)
    with machine.mailbox:
        configure_ticker(machine, args[0], machine.parent, interval)
        machine.start()
    return 0