"""Access to an I2C bus through the Linux i2c-dev interface."""

from __future__ import annotations

import fcntl
import os

MAX30105_ADDRESS = 0x57
I2C_SPEED_STANDARD = 100_000
I2C_SPEED_FAST = 400_000
I2C_BUFFER_LENGTH = 32

I2C_SLAVE = 0x0703
_MAX_ADDRESS = 0x7F


def chunk_sizes(total: int, record_size: int, buffer_length: int = I2C_BUFFER_LENGTH) -> list[int]:
    """Split a burst read of ``total`` bytes into bus-sized requests.

    A request that would exceed ``buffer_length`` is trimmed to the largest
    whole number of records that fits.
    """
    if record_size <= 0:
        raise ValueError("record size must be positive")
    if record_size > buffer_length:
        raise ValueError(
            f"record size {record_size} exceeds buffer length {buffer_length}"
        )
    sizes = []
    left = total
    while left > 0:
        to_get = left
        if to_get > buffer_length:
            to_get = buffer_length - buffer_length % record_size
        left -= to_get
        sizes.append(to_get)
    return sizes


class I2CBus:
    """An I2C adapter opened through ``/dev/i2c-N``.

    ``device`` is the adapter number or a device path. A file descriptor that
    is already open may be passed as ``fd`` instead; it is then not closed by
    the bus.
    """

    def __init__(self, device: int | str | os.PathLike = 1, *, fd: int | None = None) -> None:
        if fd is not None:
            self._fd: int | None = fd
            self._owns_fd = False
        else:
            path = f"/dev/i2c-{device}" if isinstance(device, int) else os.fspath(device)
            self._fd = os.open(path, os.O_RDWR)
            self._owns_fd = True
        self._address: int | None = None

    def __enter__(self) -> I2CBus:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._fd is None

    def fileno(self) -> int:
        return self._require_fd()

    def close(self) -> None:
        """Release the bus; closes the descriptor if the bus opened it."""
        if self._fd is not None and self._owns_fd:
            os.close(self._fd)
        self._fd = None
        self._address = None

    def _require_fd(self) -> int:
        if self._fd is None:
            raise ValueError("I2C bus is closed")
        return self._fd

    def _select(self, address: int) -> int:
        fd = self._require_fd()
        if not 0 <= address <= _MAX_ADDRESS:
            raise ValueError(f"invalid 7-bit I2C address: {address:#x}")
        if address != self._address:
            fcntl.ioctl(fd, I2C_SLAVE, address)
            self._address = address
        return fd

    def write(self, address: int, data) -> None:
        """Write the given bytes to the device at ``address``."""
        payload = bytes(data)
        fd = self._select(address)
        view = memoryview(payload)
        while view:
            written = os.write(fd, view)
            view = view[written:]

    def read(self, address: int, count: int) -> bytes:
        """Read exactly ``count`` bytes from the device at ``address``."""
        if count < 0:
            raise ValueError("count must not be negative")
        fd = self._select(address)
        received = bytearray()
        while len(received) < count:
            part = os.read(fd, count - len(received))
            if not part:
                raise OSError(
                    f"short read from {address:#04x}: got {len(received)} of {count} bytes"
                )
            received += part
        return bytes(received)

    def write_then_read(self, address: int, data, count: int) -> bytes:
        """Write ``data`` (typically a register number), then read ``count`` bytes."""
        self.write(address, data)
        return self.read(address, count)