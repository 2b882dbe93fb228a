"""Optical heart-beat detection with the peripheral beat amplitude method.

Samples from an IR channel are turned into beat events. The DC level is
estimated with a running average. The remaining AC part passes through a
symmetric low-pass FIR filter. A rising zero crossing counts as a beat when
the swing of the previous cycle lies inside a plausible range.
"""

from __future__ import annotations

FIR_COEFFS = (172, 321, 579, 927, 1360, 1858, 2390, 2916, 3391, 3768, 4012, 4096)

_BUFFER_LEN = 32
_BUFFER_MASK = _BUFFER_LEN - 1
_MIN_SWING = 20
_MAX_SWING = 1000


def _wrap(value: int, bits: int, signed: bool = True) -> int:
    value &= (1 << bits) - 1
    if signed and value >= 1 << (bits - 1):
        value -= 1 << bits
    return value


def _int16(value: int) -> int:
    return _wrap(value, 16)


def _uint16(value: int) -> int:
    return _wrap(value, 16, signed=False)


def _int32(value: int) -> int:
    return _wrap(value, 32)


def mul16(x: int, y: int) -> int:
    """Multiply two values after truncating each to a signed 16-bit integer."""
    return _int16(x) * _int16(y)


def average_dc_estimator(register: int, x: int) -> tuple[int, int]:
    """Advance the running DC average by one sample.

    Returns the new 32-bit register value and the 16-bit DC estimate.
    The sample is taken as an unsigned 16-bit value.
    """
    register = _int32(register)
    step = _int32((_uint16(x) << 15) - register) >> 4
    register = _int32(register + step)
    return register, _int16(register >> 15)


class LowPassFIR:
    """A 23-tap symmetric low-pass filter over signed 16-bit samples."""

    def __init__(self) -> None:
        self._buffer = [0] * _BUFFER_LEN
        self._offset = 0

    def filter(self, din: int) -> int:
        """Push one sample and return the filtered output."""
        buf = self._buffer
        offset = self._offset
        buf[offset] = _int16(din)

        z = mul16(FIR_COEFFS[11], buf[(offset - 11) & _BUFFER_MASK])
        for i, coeff in enumerate(FIR_COEFFS[:11]):
            pair = buf[(offset - i) & _BUFFER_MASK] + buf[(offset - 22 + i) & _BUFFER_MASK]
            z = _int32(z + mul16(coeff, pair))

        self._offset = (offset + 1) % _BUFFER_LEN
        return _int16(z >> 15)


class BeatDetector:
    """Detects heart beats in a stream of IR samples."""

    def __init__(self) -> None:
        self._fir = LowPassFIR()
        self._avg_register = 0
        self.dc_estimate = 0
        self.ac_signal = 0
        self.ac_max = 20
        self.ac_min = -20
        self._signal_max = 0
        self._signal_min = 0
        self._positive_edge = False
        self._negative_edge = False

    def check_for_beat(self, sample: int) -> bool:
        """Feed one sample; return True if it completes a detected beat."""
        beat = False
        previous = self.ac_signal
        sample = _int32(sample)

        self._avg_register, self.dc_estimate = average_dc_estimator(
            self._avg_register, sample
        )
        current = self._fir.filter(sample - self.dc_estimate)
        self.ac_signal = current

        if previous < 0 <= current:
            self.ac_max = self._signal_max
            self.ac_min = self._signal_min
            self._positive_edge = True
            self._negative_edge = False
            self._signal_max = 0
            swing = self.ac_max - self.ac_min
            if _MIN_SWING < swing < _MAX_SWING:
                beat = True

        if previous > 0 >= current:
            self._positive_edge = False
            self._negative_edge = True
            self._signal_min = 0

        if self._positive_edge and current > previous:
            self._signal_max = current

        if self._negative_edge and current < previous:
            self._signal_min = current

        return beat