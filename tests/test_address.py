import pytest

from wink.address import Address
from wink.constants import LOCALHOST

TEST_PORT = 42424


def test_read_from():
    address = Address.from_sockaddr((LOCALHOST, TEST_PORT))
    assert address.ip == LOCALHOST
    assert address.port == TEST_PORT


def test_write_to():
    address = Address(LOCALHOST, TEST_PORT)
    assert address.to_sockaddr() == (LOCALHOST, TEST_PORT)


def test_write_to_resolve_hostname():
    address = Address("localhost", TEST_PORT)
    assert address.to_sockaddr() == (LOCALHOST, TEST_PORT)


def test_stream_round_trip():
    a1 = Address(LOCALHOST, TEST_PORT)
    a2 = Address.parse(str(a1))
    assert a2.ip == LOCALHOST
    assert a2.port == TEST_PORT
    assert a2 == a1


def test_str_format():
    assert str(Address(LOCALHOST, TEST_PORT)) == "127.0.0.1:42424"


def test_default_is_localhost_any_port():
    assert Address() == Address(LOCALHOST, 0)


def test_parse_port_only_means_localhost():
    assert Address.parse(":42002") == Address(LOCALHOST, 42002)


def test_parse_host_only_has_port_zero():
    assert Address.parse("12.34.56.78") == Address("12.34.56.78", 0)


def test_parse_host_and_port():
    assert Address.parse("12.34.56.78:42424") == Address("12.34.56.78", TEST_PORT)


def test_parse_invalid_port_raises():
    with pytest.raises(ValueError):
        Address.parse("12.34.56.78:abc")


def test_parse_empty_port_raises():
    with pytest.raises(ValueError):
        Address.parse("12.34.56.78:")


def test_port_out_of_range_raises():
    with pytest.raises(ValueError):
        Address(LOCALHOST, 70000)


def test_ordering_by_ip_then_port():
    addresses = [Address("b", 1), Address("a", 2), Address("a", 1)]
    assert sorted(addresses) == [Address("a", 1), Address("a", 2), Address("b", 1)]


def test_hashable_as_key():
    table = {Address(LOCALHOST, TEST_PORT): "x"}
    assert table[Address.parse(f":{TEST_PORT}")] == "x"


def test_empty_ip_binds_any():
    assert Address("", TEST_PORT).to_sockaddr() == ("", TEST_PORT)