import queue
import threading
import time

from wink.address import Address
from wink.machine import Machine
from wink.mailbox import Mailbox
from wink.samples import timing

ADDRESS = Address.parse(":42002")
PARENT = Address.parse(":42001")
SERVER = Address("127.0.0.1", 42000)
SENDER = Address("12.34.56.78", 42424)


class FakeMailbox(Mailbox):
    def __init__(self, loopback=None):
        self.incoming = queue.Queue()
        self.sent = []
        self.loopback = loopback

    def receive(self):
        try:
            return self.incoming.get(timeout=0.01)
        except queue.Empty:
            return None

    def send(self, to, message):
        self.sent.append((to, message))
        if to == self.loopback:
            self.incoming.put((to, message))

    def flushed(self):
        return True


def make(loopback=None):
    mailbox = FakeMailbox(loopback)
    machine = Machine("test/Test", ADDRESS, PARENT, mailbox)
    machine.on_exit = lambda: None
    return machine, mailbox


def run(machine, mailbox, messages):
    for message in messages:
        mailbox.incoming.put((SENDER, message))
    worker = threading.Thread(target=machine.start, daemon=True)
    worker.start()
    worker.join(timeout=10)
    assert not worker.is_alive()


def test_after_sends_itself_exit(monkeypatch, capsys):
    monkeypatch.setattr(timing, "AFTER_DELAY", 0.05)
    machine, mailbox = make(loopback=ADDRESS)
    timing.configure_after(machine, ADDRESS)
    run(machine, mailbox, [])
    assert (ADDRESS, "exit") in mailbox.sent
    assert mailbox.sent[-2:] == [(PARENT, "exited test/Test"), (SERVER, "unregister")]
    lines = capsys.readouterr().out.splitlines()
    assert lines.index("main: OnEntry") < lines.index("main: OnExit")


def test_after_does_not_send_before_delay(monkeypatch):
    monkeypatch.setattr(timing, "AFTER_DELAY", 30.0)
    machine, mailbox = make(loopback=ADDRESS)
    timing.configure_after(machine, ADDRESS)
    run(machine, mailbox, ["exit"])
    assert (ADDRESS, "exit") not in mailbox.sent
    assert (PARENT, "exited test/Test") in mailbox.sent


def test_at_exits_on_request(capsys):
    machine, mailbox = make()
    timing.configure_at(machine, ADDRESS)
    run(machine, mailbox, ["exit"])
    assert mailbox.sent[0] == (PARENT, "started test/Test")
    assert mailbox.sent[-2:] == [(PARENT, "exited test/Test"), (SERVER, "unregister")]
    lines = capsys.readouterr().out.splitlines()
    assert "main: OnEntry" in lines and "main: OnExit" in lines


def test_stopwatch_reports_elapsed(capsys):
    machine, mailbox = make()
    timing.configure_stopwatch(machine)
    run(machine, mailbox, ["start", "stop", "exit"])
    assert (SENDER, "elapsed 0 seconds") in mailbox.sent
    lines = [
        line
        for line in capsys.readouterr().out.splitlines()
        if line.startswith("StopWatch is")
    ]
    assert lines == ["StopWatch is IDLE", "StopWatch is TIMING"]


def test_stopwatch_stop_while_idle_sends_nothing():
    machine, mailbox = make()
    timing.configure_stopwatch(machine)
    run(machine, mailbox, ["stop", "idle", "exit"])
    assert not any(message.startswith("elapsed") for _, message in mailbox.sent)
    assert (PARENT, "exited test/Test") in mailbox.sent


def test_ticker_ticks_until_exit():
    machine, mailbox = make()
    worker = timing.configure_ticker(machine, "test/Test", PARENT, 0.02)
    deadline = time.monotonic() + 5
    while (PARENT, "tick test/Test") not in mailbox.sent:
        assert time.monotonic() < deadline
        time.sleep(0.01)
    run(machine, mailbox, ["exit"])
    assert not worker.is_alive()
    ticks = mailbox.sent.count((PARENT, "tick test/Test"))
    time.sleep(0.1)
    assert mailbox.sent.count((PARENT, "tick test/Test")) == ticks
    assert (PARENT, "exited test/Test") in mailbox.sent


def test_mains_reject_missing_arguments(capsys):
    for main in (timing.after_main, timing.at_main, timing.stopwatch_main):
        assert main(["After", ":42002"]) == 1
    assert timing.ticker_main(["Ticker", ":42002", ":42001"]) == 1
    err = capsys.readouterr().err
    assert err.count("Incorrect parameters, expected <address> <parent>\n") == 3
    assert "Incorrect parameters, expected <address> <parent> <interval>" in err


def test_ticker_main_rejects_bad_interval(capsys):
    assert timing.ticker_main(["Ticker", ":42002", ":42001", "soon"]) == 1
    assert "soon" in capsys.readouterr().err