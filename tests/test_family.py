from collections import deque

from wink.address import Address
from wink.constants import LOCALHOST, SERVER_PORT
from wink.machine import Machine
from wink.mailbox import Mailbox
from wink.samples.family import child_main, configure_child, configure_parent, parent_main


class ScriptedMailbox(Mailbox):
    def __init__(self, incoming=()):
        self.incoming = deque(incoming)
        self.sent = []
        self.machine = None
        self.stopped = False

    def receive(self):
        if self.incoming:
            return self.incoming.popleft()
        if not self.stopped and self.machine is not None:
            self.stopped = True
            self.machine.exit()
        return None

    def send(self, to, message):
        self.sent.append((to, message))

    def flushed(self):
        return True


PARENT = Address.parse(":42001")
SERVER = Address(LOCALHOST, SERVER_PORT)
CHILD = Address("12.34.56.78", 42424)


def make(incoming, name):
    mailbox = ScriptedMailbox(incoming)
    machine = Machine(name, Address.parse(":42002"), PARENT, mailbox)
    machine.on_exit = lambda: None
    mailbox.machine = machine
    return machine, mailbox


def start_requests(mailbox):
    return [m for to, m in mailbox.sent if to == SERVER and m.startswith("start ")]


def test_parent_spawns_both_children_on_entry():
    machine, mailbox = make([], "family/Parent")
    configure_parent(machine)
    machine.start()
    assert start_requests(mailbox) == [
        "start family/Child#Alice :0",
        "start family/Child#Bob :0",
    ]


def test_parent_respawns_exited_child():
    machine, mailbox = make(
        [(CHILD, "started family/Child#Alice"), (CHILD, "exited family/Child#Alice")],
        "family/Parent",
    )
    configure_parent(machine)
    machine.start()
    assert start_requests(mailbox).count("start family/Child#Alice :0") == 2


def test_parent_reports_child_error(capsys):
    machine, _ = make([(CHILD, "errored family/Child#Bob AHHHHH")], "family/Parent")
    configure_parent(machine)
    machine.start()
    out = capsys.readouterr().out
    assert f"Parent: {CHILD} family/Child#Bob has errored: AHHHHH" in out


def test_parent_reports_child_start(capsys):
    machine, _ = make([(CHILD, "started family/Child#Alice")], "family/Parent")
    configure_parent(machine)
    machine.start()
    assert f"Parent: {CHILD} family/Child#Alice has started" in capsys.readouterr().out


def test_child_errors_on_error_message():
    machine, mailbox = make([(CHILD, "error")], "family/Child")
    configure_child(machine, machine.address)
    machine.start()
    to_parent = [m for to, m in mailbox.sent if to == PARENT]
    assert to_parent == [
        "started family/Child",
        "errored family/Child AHHHHH",
        "exited family/Child",
    ]


def test_child_errors_on_unhandled_message():
    machine, mailbox = make([(CHILD, "ping")], "family/Child")
    configure_child(machine, machine.address)
    machine.start()
    assert (PARENT, "errored family/Child Unhandled message: ping") in mailbox.sent


def test_mains_reject_missing_parameters():
    assert parent_main(["family/Parent"]) == 1
    assert child_main(["family/Child", ":42002"]) == 1