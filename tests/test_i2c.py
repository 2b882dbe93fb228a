import os
import socket
from unittest.mock import call, patch

import pytest

from biosense.i2c import (
    I2C_BUFFER_LENGTH,
    I2C_SLAVE,
    MAX30105_ADDRESS,
    I2CBus,
    chunk_sizes,
)


@pytest.fixture
def link():
    local, peer = socket.socketpair()
    with local, peer:
        yield local, peer


def test_chunk_sizes_trims_to_whole_records():
    assert chunk_sizes(60, 6, 32) == [30, 30]


def test_chunk_sizes_small_read_is_single_request():
    assert chunk_sizes(27, 9, 32) == [27]


def test_chunk_sizes_nothing_to_read():
    assert chunk_sizes(0, 6) == []


@pytest.mark.parametrize("record", [3, 6, 9])
def test_chunk_sizes_largest_fifo_burst(record):
    sizes = chunk_sizes(288, record)
    assert sum(sizes) == 288
    assert all(size <= I2C_BUFFER_LENGTH for size in sizes)
    assert all(size % record == 0 for size in sizes)


def test_chunk_sizes_rejects_oversized_record():
    with pytest.raises(ValueError):
        chunk_sizes(66, 33, 32)


def test_chunk_sizes_rejects_empty_record():
    with pytest.raises(ValueError):
        chunk_sizes(10, 0)


def test_write_sends_bytes_and_selects_address(link):
    local, peer = link
    bus = I2CBus(fd=local.fileno())
    with patch("fcntl.ioctl") as ioctl:
        bus.write(MAX30105_ADDRESS, [0x09, 0x40])
    assert peer.recv(16) == bytes([0x09, 0x40])
    ioctl.assert_called_once_with(local.fileno(), I2C_SLAVE, MAX30105_ADDRESS)


def test_address_selected_only_on_change(link):
    local, peer = link
    bus = I2CBus(fd=local.fileno())
    with patch("fcntl.ioctl") as ioctl:
        bus.write(0x57, b"\x01")
        bus.write(0x57, b"\x02")
        bus.write(0x10, b"\x03")
    assert ioctl.call_args_list == [
        call(local.fileno(), I2C_SLAVE, 0x57),
        call(local.fileno(), I2C_SLAVE, 0x10),
    ]


def test_read_returns_device_bytes(link):
    local, peer = link
    bus = I2CBus(fd=local.fileno())
    peer.sendall(b"\x15\x03\x07")
    with patch("fcntl.ioctl"):
        assert bus.read(MAX30105_ADDRESS, 3) == b"\x15\x03\x07"


def test_read_zero_bytes(link):
    local, _ = link
    bus = I2CBus(fd=local.fileno())
    with patch("fcntl.ioctl"):
        assert bus.read(MAX30105_ADDRESS, 0) == b""


def test_short_read_raises(link):
    local, peer = link
    bus = I2CBus(fd=local.fileno())
    peer.sendall(b"\x01")
    peer.shutdown(socket.SHUT_WR)
    with patch("fcntl.ioctl"), pytest.raises(OSError):
        bus.read(MAX30105_ADDRESS, 3)


def test_write_then_read(link):
    local, peer = link
    bus = I2CBus(fd=local.fileno())
    peer.sendall(b"\xab")
    with patch("fcntl.ioctl"):
        result = bus.write_then_read(MAX30105_ADDRESS, [0xFF], 1)
    assert result == b"\xab"
    assert peer.recv(16) == b"\xff"


@pytest.mark.parametrize("address", [-1, 0x80, 0x100])
def test_invalid_address_rejected(link, address):
    local, _ = link
    bus = I2CBus(fd=local.fileno())
    with patch("fcntl.ioctl"), pytest.raises(ValueError):
        bus.write(address, b"\x00")


def test_negative_count_rejected(link):
    local, _ = link
    bus = I2CBus(fd=local.fileno())
    with patch("fcntl.ioctl"), pytest.raises(ValueError):
        bus.read(MAX30105_ADDRESS, -1)


def test_closed_bus_refuses_io(link):
    local, _ = link
    with I2CBus(fd=local.fileno()) as bus:
        pass
    assert bus.closed
    with pytest.raises(ValueError):
        bus.write(MAX30105_ADDRESS, b"\x00")


def test_borrowed_descriptor_left_open(link):
    local, _ = link
    bus = I2CBus(fd=local.fileno())
    bus.close()
    assert os.fstat(local.fileno()).st_size >= 0
    assert local.fileno() >= 0


def test_owned_descriptor_closed(tmp_path):
    device = tmp_path / "i2c-dev"
    device.write_bytes(b"")
    bus = I2CBus(device)
    fd = bus.fileno()
    bus.close()
    with pytest.raises(OSError):
        os.fstat(fd)


def test_missing_adapter_raises():
    with pytest.raises(FileNotFoundError):
        I2CBus(987654)