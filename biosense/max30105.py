"""Driver for the MAX30105 optical particle / pulse-oximetry sensor on I2C.

The chip has up to three LEDs: red, IR and green. Readings collect in an
on-chip FIFO of 32 samples. :meth:`MAX30105.check` drains that FIFO into a
small circular store on the host. The ``get_fifo_*`` and ``next_sample``
methods then walk the store.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from .i2c import MAX30105_ADDRESS, chunk_sizes
from .max30105_registers import (
    A_FULL_MASK,
    ADCRANGE_MASK,
    BYTES_PER_SAMPLE,
    EXPECTED_PART_ID,
    FIFO_DEPTH,
    INT_A_FULL_ENABLE,
    INT_A_FULL_MASK,
    INT_ALC_OVF_ENABLE,
    INT_ALC_OVF_MASK,
    INT_DATA_RDY_ENABLE,
    INT_DATA_RDY_MASK,
    INT_DIE_TEMP_RDY_ENABLE,
    INT_DIE_TEMP_RDY_MASK,
    INT_DISABLE,
    INT_PROX_INT_ENABLE,
    INT_PROX_INT_MASK,
    MODE_MASK,
    PULSEWIDTH_MASK,
    RESET,
    RESET_MASK,
    ROLLOVER_DISABLE,
    ROLLOVER_ENABLE,
    ROLLOVER_MASK,
    SAMPLEAVG_MASK,
    SAMPLERATE_MASK,
    SHUTDOWN,
    SHUTDOWN_MASK,
    SLOT1_MASK,
    SLOT2_MASK,
    SLOT3_MASK,
    SLOT4_MASK,
    WAKEUP,
    Register,
    SlotDevice,
    choose_adc_range,
    choose_led_mode,
    choose_pulse_width,
    choose_sample_average,
    choose_sample_rate,
    decode_sample,
)

STORAGE_SIZE = 4
_POLL_TIMEOUT_S = 0.1
_POLL_INTERVAL_S = 0.001
_NEW_DATA_TIMEOUT_MS = 250

_SLOTS = {
    1: (Register.MULTI_LED_CONFIG_1, SLOT1_MASK, 0),
    2: (Register.MULTI_LED_CONFIG_1, SLOT2_MASK, 4),
    3: (Register.MULTI_LED_CONFIG_2, SLOT3_MASK, 0),
    4: (Register.MULTI_LED_CONFIG_2, SLOT4_MASK, 4),
}


class SensorNotFoundError(Exception):
    """The device on the bus did not report the expected part ID."""


def _zeros() -> list[int]:
    return [0] * STORAGE_SIZE


@dataclass
class _SampleStore:
    red: list[int] = field(default_factory=_zeros)
    ir: list[int] = field(default_factory=_zeros)
    green: list[int] = field(default_factory=_zeros)
    head: int = 0
    tail: int = 0


def _signed8(value: int) -> int:
    value &= 0xFF
    return value - 0x100 if value & 0x80 else value


class MAX30105:
    """One MAX30105 (or MAX30102) sensor reached through an I2C bus.

    ``bus`` needs ``write(address, data)``, ``read(address, count)`` and
    ``write_then_read(address, data, count)``.
    """

    def __init__(self, bus, address: int = MAX30105_ADDRESS) -> None:
        self._bus = bus
        self.address = address
        self.revision_id: int | None = None
        self.active_leds = 3
        self._store = _SampleStore()

    # Low-level access

    def read_register(self, reg: int) -> int:
        """Read one register; 0 if the device returned nothing."""
        data = self._bus.write_then_read(self.address, bytes([reg & 0xFF]), 1)
        return data[0] if data else 0

    def write_register(self, reg: int, value: int) -> None:
        """Write one register."""
        self._bus.write(self.address, bytes([reg & 0xFF, value & 0xFF]))

    def _bit_mask(self, reg: int, mask: int, thing: int) -> None:
        contents = self.read_register(reg) & mask
        self.write_register(reg, contents | thing)

    def _poll(self, reg: int, done) -> None:
        start = time.monotonic()
        while time.monotonic() - start < _POLL_TIMEOUT_S:
            if done(self.read_register(reg)):
                return
            time.sleep(_POLL_INTERVAL_S)

    # Identification

    def read_part_id(self) -> int:
        """Return the part ID register (0x15 for MAX30105 and MAX30102)."""
        return self.read_register(Register.PART_ID)

    def begin(self) -> None:
        """Check that a sensor answers on the bus and read its revision."""
        part_id = self.read_part_id()
        if part_id != EXPECTED_PART_ID:
            raise SensorNotFoundError(
                f"expected part ID {EXPECTED_PART_ID:#04x}, got {part_id:#04x}"
            )
        self.revision_id = self.read_register(Register.REVISION_ID)

    # Interrupts

    def get_int1(self) -> int:
        """Return the main interrupt status register."""
        return self.read_register(Register.INT_STATUS_1)

    def get_int2(self) -> int:
        """Return the temperature-ready interrupt status register."""
        return self.read_register(Register.INT_STATUS_2)

    def enable_afull(self) -> None:
        self._bit_mask(Register.INT_ENABLE_1, INT_A_FULL_MASK, INT_A_FULL_ENABLE)

    def disable_afull(self) -> None:
        self._bit_mask(Register.INT_ENABLE_1, INT_A_FULL_MASK, INT_DISABLE)

    def enable_data_ready(self) -> None:
        self._bit_mask(Register.INT_ENABLE_1, INT_DATA_RDY_MASK, INT_DATA_RDY_ENABLE)

    def disable_data_ready(self) -> None:
        self._bit_mask(Register.INT_ENABLE_1, INT_DATA_RDY_MASK, INT_DISABLE)

    def enable_alc_overflow(self) -> None:
        self._bit_mask(Register.INT_ENABLE_1, INT_ALC_OVF_MASK, INT_ALC_OVF_ENABLE)

    def disable_alc_overflow(self) -> None:
        self._bit_mask(Register.INT_ENABLE_1, INT_ALC_OVF_MASK, INT_DISABLE)

    def enable_prox_int(self) -> None:
        self._bit_mask(Register.INT_ENABLE_1, INT_PROX_INT_MASK, INT_PROX_INT_ENABLE)

    def disable_prox_int(self) -> None:
        self._bit_mask(Register.INT_ENABLE_1, INT_PROX_INT_MASK, INT_DISABLE)

    def enable_die_temp_ready(self) -> None:
        self._bit_mask(
            Register.INT_ENABLE_2, INT_DIE_TEMP_RDY_MASK, INT_DIE_TEMP_RDY_ENABLE
        )

    def disable_die_temp_ready(self) -> None:
        self._bit_mask(Register.INT_ENABLE_2, INT_DIE_TEMP_RDY_MASK, INT_DISABLE)

    # Mode configuration

    def soft_reset(self) -> None:
        """Reset all registers to power-on values; wait up to 100 ms for it."""
        self._bit_mask(Register.MODE_CONFIG, RESET_MASK, RESET)
        self._poll(Register.MODE_CONFIG, lambda value: value & RESET == 0)

    def shut_down(self) -> None:
        """Enter low-power mode; the chip still answers but takes no readings."""
        self._bit_mask(Register.MODE_CONFIG, SHUTDOWN_MASK, SHUTDOWN)

    def wake_up(self) -> None:
        """Leave low-power mode."""
        self._bit_mask(Register.MODE_CONFIG, SHUTDOWN_MASK, WAKEUP)

    def set_led_mode(self, mode: int) -> None:
        """Write the LED mode field (a :class:`LedMode` value)."""
        self._bit_mask(Register.MODE_CONFIG, MODE_MASK, mode)

    def set_adc_range(self, adc_range: int) -> None:
        """Write the ADC range field (an :class:`AdcRange` value)."""
        self._bit_mask(Register.PARTICLE_CONFIG, ADCRANGE_MASK, adc_range)

    def set_sample_rate(self, sample_rate: int) -> None:
        """Write the sample rate field (a :class:`SampleRate` value)."""
        self._bit_mask(Register.PARTICLE_CONFIG, SAMPLERATE_MASK, sample_rate)

    def set_pulse_width(self, pulse_width: int) -> None:
        """Write the pulse width field (a :class:`PulseWidth` value)."""
        self._bit_mask(Register.PARTICLE_CONFIG, PULSEWIDTH_MASK, pulse_width)

    def set_pulse_amplitude_red(self, amplitude: int) -> None:
        self.write_register(Register.LED1_PULSE_AMP, amplitude)

    def set_pulse_amplitude_ir(self, amplitude: int) -> None:
        self.write_register(Register.LED2_PULSE_AMP, amplitude)

    def set_pulse_amplitude_green(self, amplitude: int) -> None:
        self.write_register(Register.LED3_PULSE_AMP, amplitude)

    def set_pulse_amplitude_proximity(self, amplitude: int) -> None:
        self.write_register(Register.LED_PROX_AMP, amplitude)

    def set_proximity_threshold(self, thresh_msb: int) -> None:
        """Set the 8 most significant bits of the IR count that starts particle sensing."""
        self.write_register(Register.PROX_INT_THRESH, thresh_msb)

    def enable_slot(self, slot_number: int, device: int) -> None:
        """Assign a :class:`SlotDevice` to multi-LED slot 1 to 4."""
        try:
            reg, mask, shift = _SLOTS[slot_number]
        except KeyError:
            raise ValueError(f"slot number must be 1..4, got {slot_number}") from None
        self._bit_mask(reg, mask, (device << shift) & 0xFF)

    def disable_slots(self) -> None:
        """Clear every slot assignment."""
        self.write_register(Register.MULTI_LED_CONFIG_1, 0)
        self.write_register(Register.MULTI_LED_CONFIG_2, 0)

    # FIFO configuration

    def set_fifo_average(self, samples: int) -> None:
        """Write the sample averaging field (a :class:`SampleAverage` value)."""
        self._bit_mask(Register.FIFO_CONFIG, SAMPLEAVG_MASK, samples)

    def clear_fifo(self) -> None:
        """Zero the FIFO write, overflow and read pointers."""
        self.write_register(Register.FIFO_WRITE_PTR, 0)
        self.write_register(Register.FIFO_OVERFLOW, 0)
        self.write_register(Register.FIFO_READ_PTR, 0)

    def enable_fifo_rollover(self) -> None:
        self._bit_mask(Register.FIFO_CONFIG, ROLLOVER_MASK, ROLLOVER_ENABLE)

    def disable_fifo_rollover(self) -> None:
        self._bit_mask(Register.FIFO_CONFIG, ROLLOVER_MASK, ROLLOVER_DISABLE)

    def set_fifo_almost_full(self, samples: int) -> None:
        """Set the almost-full trigger; 0x00 means 32 samples, 0x0F means 17."""
        self._bit_mask(Register.FIFO_CONFIG, A_FULL_MASK, samples)

    def get_write_pointer(self) -> int:
        return self.read_register(Register.FIFO_WRITE_PTR)

    def get_read_pointer(self) -> int:
        return self.read_register(Register.FIFO_READ_PTR)

    # Die temperature

    def read_temperature(self) -> float:
        """Take one die temperature reading in degrees Celsius."""
        self.write_register(Register.DIE_TEMP_CONFIG, 0x01)
        self._poll(
            Register.INT_STATUS_2, lambda value: value & INT_DIE_TEMP_RDY_ENABLE > 0
        )
        whole = _signed8(self.read_register(Register.DIE_TEMP_INT))
        fraction = self.read_register(Register.DIE_TEMP_FRAC)
        return whole + fraction * 0.0625

    def read_temperature_f(self) -> float:
        """Take one die temperature reading in degrees Fahrenheit."""
        return self.read_temperature() * 1.8 + 32.0

    # Setup

    def setup(
        self,
        power_level: int = 0x1F,
        sample_average: int = 4,
        led_mode: int = 3,
        sample_rate: int = 400,
        pulse_width: int = 411,
        adc_range: int = 4096,
    ) -> None:
        """Reset the chip and configure it for sampling with the given settings."""
        if not 1 <= led_mode <= 3:
            raise ValueError(f"led_mode must be 1, 2 or 3, got {led_mode}")
        self.soft_reset()

        self.set_fifo_average(choose_sample_average(sample_average))
        self.enable_fifo_rollover()

        self.set_led_mode(choose_led_mode(led_mode))
        self.active_leds = led_mode

        self.set_adc_range(choose_adc_range(adc_range))
        self.set_sample_rate(choose_sample_rate(sample_rate))
        self.set_pulse_width(choose_pulse_width(pulse_width))

        self.set_pulse_amplitude_red(power_level)
        self.set_pulse_amplitude_ir(power_level)
        self.set_pulse_amplitude_green(power_level)
        self.set_pulse_amplitude_proximity(power_level)

        self.enable_slot(1, SlotDevice.RED_LED)
        if led_mode > 1:
            self.enable_slot(2, SlotDevice.IR_LED)
        if led_mode > 2:
            self.enable_slot(3, SlotDevice.GREEN_LED)

        self.clear_fifo()

    # Data collection

    def available(self) -> int:
        """Number of stored samples not yet consumed with :meth:`next_sample`."""
        return (self._store.head - self._store.tail) % STORAGE_SIZE

    def check(self) -> int:
        """Drain new samples from the chip's FIFO; return how many there were."""
        read_ptr = self.get_read_pointer()
        write_ptr = self.get_write_pointer()
        if read_ptr == write_ptr:
            return 0

        count = (write_ptr - read_ptr) % FIFO_DEPTH
        record_size = self.active_leds * BYTES_PER_SAMPLE
        self._bus.write(self.address, bytes([Register.FIFO_DATA]))

        store = self._store
        for size in chunk_sizes(count * record_size, record_size):
            data = self._bus.read(self.address, size)
            for start in range(0, size, record_size):
                record = data[start:start + record_size]
                store.head = (store.head + 1) % STORAGE_SIZE
                channels = (store.red, store.ir, store.green)[: self.active_leds]
                for index, target in enumerate(channels):
                    offset = index * BYTES_PER_SAMPLE
                    target[store.head] = decode_sample(
                        record[offset:offset + BYTES_PER_SAMPLE]
                    )
        return count

    def safe_check(self, max_time_ms: int) -> bool:
        """Poll for new data for up to ``max_time_ms``; True once some arrived."""
        start = time.monotonic()
        while True:
            if (time.monotonic() - start) * 1000 > max_time_ms:
                return False
            if self.check():
                return True
            time.sleep(_POLL_INTERVAL_S)

    def get_red(self) -> int:
        """Newest red reading, or 0 if no data arrived within 250 ms."""
        if self.safe_check(_NEW_DATA_TIMEOUT_MS):
            return self._store.red[self._store.head]
        return 0

    def get_ir(self) -> int:
        """Newest IR reading, or 0 if no data arrived within 250 ms."""
        if self.safe_check(_NEW_DATA_TIMEOUT_MS):
            return self._store.ir[self._store.head]
        return 0

    def get_green(self) -> int:
        """Newest green reading, or 0 if no data arrived within 250 ms."""
        if self.safe_check(_NEW_DATA_TIMEOUT_MS):
            return self._store.green[self._store.head]
        return 0

    def get_fifo_red(self) -> int:
        """Red reading at the tail of the store."""
        return self._store.red[self._store.tail]

    def get_fifo_ir(self) -> int:
        """IR reading at the tail of the store."""
        return self._store.ir[self._store.tail]

    def get_fifo_green(self) -> int:
        """Green reading at the tail of the store."""
        return self._store.green[self._store.tail]

    def next_sample(self) -> None:
        """Advance the tail, if any unconsumed samples remain."""
        if self.available():
            self._store.tail = (self._store.tail + 1) % STORAGE_SIZE