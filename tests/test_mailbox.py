import multiprocessing
import queue
import threading
import time

import pytest

from wink.address import Address
from wink.constants import LOCALHOST, MAX_RETRIES
from wink.mailbox import AsyncMailbox
from wink.transport import Socket, UDPSocket

TEST_MESSAGE = "test 1234"
TEST_PACKET = b"\x00\x00\x00\x00test 1234"
TEST_ACK = b"\x00\x00\x00\x00ack"
SENDER = Address(LOCALHOST, 0)
RECEIVER = Address(LOCALHOST, 0)


class MockSocket(Socket):
    """An in-memory socket: tests push incoming packets and await outgoing ones."""

    def __init__(self):
        self._incoming = queue.Queue()
        self._sent = queue.Queue()

    def receive(self):
        try:
            return self._incoming.get(timeout=0.05)
        except queue.Empty:
            return None

    def send(self, to, data):
        self._sent.put((to, bytes(data)))

    def close(self):
        pass

    def push(self, sender, data):
        self._incoming.put((sender, bytes(data)))

    def await_sent(self, timeout=10.0):
        return self._sent.get(timeout=timeout)


def _receive_with_retries(mailbox):
    for _ in range(MAX_RETRIES):
        result = mailbox.receive()
        if result is not None:
            return result
    return None


def _send_after_delay(receiver_address):
    time.sleep(1)
    with AsyncMailbox(UDPSocket(Address(LOCALHOST, 0))) as sender_mailbox:
        sender_mailbox.send(receiver_address, TEST_MESSAGE)


def _expect_packet(socket):
    to, data = socket.await_sent()
    assert to == RECEIVER
    assert data == TEST_PACKET


def _expect_ack(socket):
    to, data = socket.await_sent()
    assert to.ip == SENDER.ip
    assert data == TEST_ACK


def _deliver(socket, mailbox):
    socket.push(SENDER, TEST_PACKET)
    received = mailbox.receive()
    assert received is not None
    assert received[0].ip == SENDER.ip
    assert received[1] == TEST_MESSAGE


@pytest.mark.parametrize(
    "make_worker", [threading.Thread, multiprocessing.Process], ids=["thread", "process"]
)
def test_delivery(make_worker):
    receiver_socket = UDPSocket(Address(LOCALHOST, 0))
    receiver_address = receiver_socket.address
    with AsyncMailbox(receiver_socket) as receiver_mailbox:
        worker = make_worker(target=_send_after_delay, args=(receiver_address,))
        worker.start()
        result = _receive_with_retries(receiver_mailbox)
        worker.join(timeout=30)
    assert result is not None
    assert result[1] == TEST_MESSAGE
    assert result[0].ip == LOCALHOST


def test_timeout():
    with AsyncMailbox(UDPSocket(Address(LOCALHOST, 0))) as mailbox:
        assert mailbox.receive() is None


@pytest.mark.parametrize("lost", [None, "message", "ack"])
def test_acknowledged_delivery(lost):
    sender_socket = MockSocket()
    receiver_socket = MockSocket()
    with AsyncMailbox(sender_socket) as sender_mailbox, AsyncMailbox(
        receiver_socket
    ) as receiver_mailbox:
        sender_mailbox.send(RECEIVER, TEST_MESSAGE)
        _expect_packet(sender_socket)

        if lost == "message":
            # The first packet is lost; the sender retries.
            _expect_packet(sender_socket)

        _deliver(receiver_socket, receiver_mailbox)
        _expect_ack(receiver_socket)

        if lost == "ack":
            # The acknowledgement is lost; the sender retries.
            _expect_packet(sender_socket)
            receiver_socket.push(SENDER, TEST_PACKET)
            # The duplicate is dropped but acknowledged again.
            assert receiver_mailbox.receive() is None
            _expect_ack(receiver_socket)

        sender_socket.push(RECEIVER, TEST_ACK)
        assert sender_mailbox.flushed()


def test_sequence_numbers_increase_per_destination():
    sender_socket = MockSocket()
    first = Address(LOCALHOST, 1)
    second = Address(LOCALHOST, 2)
    with AsyncMailbox(sender_socket) as mailbox:
        mailbox.send(first, "a")
        mailbox.send(first, "b")
        mailbox.send(second, "c")
        sent = {sender_socket.await_sent() for _ in range(3)}
        assert sent == {
            (first, b"\x00\x00\x00\x00a"),
            (first, b"\x01\x00\x00\x00b"),
            (second, b"\x00\x00\x00\x00c"),
        }
        for to, data in sent:
            sender_socket.push(to, data[:4] + b"ack")
        assert mailbox.flushed()


def test_too_small_packet_is_ignored():
    receiver_socket = MockSocket()
    with AsyncMailbox(receiver_socket) as mailbox:
        receiver_socket.push(SENDER, b"\x00\n\n")
        receiver_socket.push(SENDER, TEST_PACKET + b"\n")
        received = mailbox.receive()
        assert received == (SENDER, TEST_MESSAGE)
        to, data = receiver_socket.await_sent()
        assert data == TEST_ACK