"""A publisher that fans updates out to subscribers, and a subscriber."""

from __future__ import annotations

import sys
from typing import Sequence

from ..address import Address
from ..log import error, info
from ..machine import Machine, State

UNSUBSCRIBE_DELAY = 10.0
EXIT_DELAY = 15.0


def _first(text: str) -> str:
    parts = text.split()
    return parts[0] if parts else ""


def configure_publisher(machine: Machine) -> set[Address]:
    """Add the publisher state; returns the live set of subscriber addresses."""
    subscribers: set[Address] = set()

    def subscribe(sender: Address, args: str) -> None:
        if sender not in subscribers:
            subscribers.add(sender)
            info(f"Publisher: subscribed: {sender}")

    def unsubscribe(sender: Address, args: str) -> None:
        if sender in subscribers:
            subscribers.discard(sender)
            info(f"Publisher: unsubscribed: {sender}")

    def publish(sender: Address, args: str) -> None:
        payload = _first(args)
        info(f"Publisher: publish {payload}")
        message = f"update {payload}"
        for subscriber in sorted(subscribers):
            machine.send(subscriber, message)

    machine.add_state(
        State(
            name="main",
            on_enter=lambda: info("Publisher: OnEntry"),
            on_exit=lambda: info("Publisher: OnExit"),
            receivers={
                "subscribe": subscribe,
                "unsubscribe": unsubscribe,
                "publish": publish,
                "exit": lambda sender, args: machine.exit(),
            },
        )
    )
    return subscribers


def configure_subscriber(
    machine: Machine, address: Address, publisher: Address, name: str
) -> None:
    """Add the subscriber state: subscribe, unsubscribe later, then exit."""

    def on_enter() -> None:
        info("main: OnEntry")
        machine.send(publisher, "subscribe")
        machine.send_after(publisher, "unsubscribe", UNSUBSCRIBE_DELAY)
        machine.send_after(address, "exit", EXIT_DELAY)

    def update(sender: Address, args: str) -> None:
        info(f"{sender} updated {name}: {_first(args)}")

    machine.add_state(
        State(
            name="main",
            on_enter=on_enter,
            on_exit=lambda: info("main: OnExit"),
            receivers={
                "update": update,
                "exit": lambda sender, args: machine.exit(),
            },
        )
    )


def publisher_main(argv: Sequence[str] | None = None) -> int:
    """Run the publisher from ``<name> <address> <parent>``; returns the exit status."""
    args = list(sys.argv if argv is None else argv)
    if len(args) < 3:
        error("Incorrect parameters, expected <address> <parent>")
        return 1
    machine = Machine(args[0], Address.parse(args[1]), Address.parse(args[2]))
    configure_publisher(machine)
    machine.start()
    return 0


def subscriber_main(argv: Sequence[str] | None = None) -> int:
    """Run from ``<name> <address> <parent> <publisher>``; returns the exit status."""
    args = list(sys.argv if argv is None else argv)
    if len(args) < 4:
        error("Incorrect parameters, expected <address> <parent> <publisher>")
        return 1
    machine = Machine(args[0], Address.parse(args[1]), Address.parse(args[2]))
    configure_subscriber(machine, machine.address, Address.parse(args[3]), args[0])
    machine.start()
    return 0