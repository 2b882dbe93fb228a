"""Driver for the AD5593R 8-channel configurable ADC/DAC/GPIO chip on I2C.

Each of the eight pins can act as a 12-bit DAC output, a 12-bit ADC input or
a general-purpose digital pin. DAC and ADC functions need a reference voltage.
Either enable the internal 2.5 V reference or declare an external one with
:meth:`AD5593R.set_vref`.

Several chips can share one bus when each has its A0 pin wired to a
controllable line. Pass a ``select_pin`` callable that drives that line: it is
held high while idle and pulled low around every transaction with the chip.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from itertools import islice

logger = logging.getLogger(__name__)

NUM_CHANNELS = 8
I2C_ADDRESS = 0x10
INTERNAL_VREF = 2.5
FULL_SCALE = 4095

# Control register pointers
REG_ADC_SEQUENCE = 0x02
REG_GP_CONTROL = 0x03
REG_ADC_CONFIG = 0x04
REG_DAC_CONFIG = 0x05
REG_PULL_DOWN = 0x06
REG_LDAC_MODE = 0x07
REG_GPIO_WR_CONFIG = 0x08
REG_GPIO_WR_DATA = 0x09
REG_GPIO_RD_CONFIG = 0x0A
REG_POWER_REF_CTRL = 0x0B
REG_OPEN_DRAIN_CFG = 0x0C
REG_THREE_STATE = 0x0D
REG_SOFT_RESET = 0x0F

# Write / read pointer bytes
DAC_WRITE = 0x10
ADC_READ = 0x40
DAC_READ = 0x50
REG_READ = 0x60
GPIO_READ = 0x70

_VREF_ON = 0x02
_ADC_SEQUENCE_MSB = 0x02
_ADC_RANGE_2X = 0x20
_DAC_RANGE_2X = 0x10


class AD5593RError(Exception):
    """Base class for errors reported by the AD5593R driver."""


class ChannelNotConfiguredError(AD5593RError):
    """The channel has not been configured for the requested function."""


class ReferenceNotSetError(AD5593RError):
    """No reference voltage is known, so voltages cannot be converted."""


class VoltageOutOfRangeError(AD5593RError):
    """The requested voltage lies outside the DAC's output range."""


def _flags() -> list[bool]:
    return [False] * NUM_CHANNELS


def _unset() -> list[float | None]:
    return [None] * NUM_CHANNELS


@dataclass
class ChannelConfig:
    """Which function each channel has been configured for."""

    adcs: list[bool] = field(default_factory=_flags)
    dacs: list[bool] = field(default_factory=_flags)
    gpis: list[bool] = field(default_factory=_flags)
    gpos: list[bool] = field(default_factory=_flags)


@dataclass
class ChannelValues:
    """Last values read from or written to each channel; None if never set."""

    adcs: list[float | None] = field(default_factory=_unset)
    dacs: list[float | None] = field(default_factory=_unset)
    gpi_reads: list[bool] = field(default_factory=_flags)
    gpo_writes: list[bool] = field(default_factory=_flags)


def _check_channel(channel: int) -> int:
    if not 0 <= channel < NUM_CHANNELS:
        raise ValueError(f"channel must be in 0..{NUM_CHANNELS - 1}, got {channel}")
    return channel


class AD5593R:
    """One AD5593R chip reached through an I2C bus.

    ``bus`` needs ``write(address, data)``, ``read(address, count)`` and
    ``write_then_read(address, data, count)``. ``select_pin``, if given, is
    called with True for a high level and False for a low level on A0.
    """

    def __init__(self, bus, select_pin: Callable[[bool], None] | None = None) -> None:
        self._bus = bus
        self._select_pin = select_pin
        self.address = I2C_ADDRESS
        self.config = ChannelConfig()
        self.values = ChannelValues()

        self._gprc_msbs = 0x00
        self._gprc_lsbs = 0x00
        self._pcr_msbs = 0x00
        self._pcr_lsbs = 0x00
        self._dac_config = 0x00
        self._adc_config = 0x00
        self._gpi_config = 0x00
        self._gpo_config = 0x00

        self._vref: float | None = None
        self._adc_2x = False
        self._dac_2x = False
        self._adc_max: float | None = None
        self._dac_max: float | None = None

        if select_pin is not None:
            select_pin(True)

    @property
    def vref(self) -> float | None:
        return self._vref

    @property
    def adc_max(self) -> float | None:
        return self._adc_max

    @property
    def dac_max(self) -> float | None:
        return self._dac_max

    @contextmanager
    def _selected(self) -> Iterator[None]:
        if self._select_pin is not None:
            self._select_pin(False)
        try:
            yield
        finally:
            if self._select_pin is not None:
                self._select_pin(True)

    def _write(self, *data: int) -> None:
        self._bus.write(self.address, bytes(data))

    def _scaled(self, doubled: bool) -> float | None:
        if self._vref is None:
            return None
        return 2 * self._vref if doubled else self._vref

    # Reference and range

    def _write_power_ref(self) -> None:
        with self._selected():
            self._write(REG_POWER_REF_CTRL, self._pcr_msbs, self._pcr_lsbs)

    def _write_gp_control(self) -> None:
        with self._selected():
            self._write(REG_GP_CONTROL, self._gprc_msbs, self._gprc_lsbs)

    def enable_internal_vref(self) -> None:
        """Turn on the internal 2.5 V reference; both ranges become 1x Vref."""
        self._vref = INTERNAL_VREF
        self._adc_max = self._vref
        self._dac_max = self._vref
        self._pcr_msbs |= _VREF_ON
        self._write_power_ref()
        logger.debug("Internal reference on.")

    def disable_internal_vref(self) -> None:
        """Turn off the internal reference; the reference becomes unknown."""
        self._vref = None
        self._adc_max = None
        self._dac_max = None
        self._pcr_msbs &= ~_VREF_ON & 0xFF
        self._write_power_ref()
        logger.debug("Internal reference off.")

    def set_adc_max_2x_vref(self) -> None:
        """Set the ADC input range to 0..2x Vref."""
        self._adc_max = self._scaled(True)
        self._gprc_lsbs |= _ADC_RANGE_2X
        self._write_gp_control()
        self._adc_2x = True
        logger.debug("ADC max voltage = 2xVref")

    def set_adc_max_1x_vref(self) -> None:
        """Set the ADC input range to 0..Vref."""
        self._adc_max = self._scaled(False)
        self._gprc_lsbs &= ~_ADC_RANGE_2X & 0xFF
        self._write_gp_control()
        self._adc_2x = False
        logger.debug("ADC max voltage = 1xVref")

    def set_dac_max_2x_vref(self) -> None:
        """Set the DAC output range to 0..2x Vref."""
        self._dac_max = self._scaled(True)
        self._gprc_lsbs |= _DAC_RANGE_2X
        self._write_gp_control()
        self._dac_2x = True
        logger.debug("DAC max voltage = 2xVref")

    def set_dac_max_1x_vref(self) -> None:
        """Set the DAC output range to 0..Vref."""
        self._dac_max = self._scaled(False)
        self._gprc_lsbs &= ~_DAC_RANGE_2X & 0xFF
        self._write_gp_control()
        self._dac_2x = False
        logger.debug("DAC max voltage = 1xVref")

    def set_vref(self, vref: float) -> None:
        """Declare an external reference voltage, keeping the current ranges."""
        self._vref = vref
        self._adc_max = self._scaled(self._adc_2x)
        self._dac_max = self._scaled(self._dac_2x)

    # DAC

    def configure_dac(self, channel: int) -> None:
        """Make ``channel`` a DAC output."""
        _check_channel(channel)
        self.config.dacs[channel] = True
        self._dac_config |= 1 << channel
        with self._selected():
            self._write(REG_DAC_CONFIG, 0x00, self._dac_config)
        logger.debug("Channel %d is configured as a DAC", channel)

    def configure_dacs(self, channels: Iterable[bool]) -> None:
        """Configure as DACs the channels flagged true in ``channels``."""
        for channel, enabled in enumerate(islice(channels, NUM_CHANNELS)):
            if enabled:
                self.configure_dac(channel)

    def write_dac(self, channel: int, voltage: float) -> None:
        """Drive a DAC channel to ``voltage`` volts."""
        _check_channel(channel)
        if not self.config.dacs[channel]:
            raise ChannelNotConfiguredError(f"channel {channel} is not a DAC")
        if self._dac_max is None:
            raise ReferenceNotSetError("Vref, or DAC_max is not defined")
        if voltage > self._dac_max:
            raise VoltageOutOfRangeError(
                f"{voltage} V exceeds the DAC maximum of {self._dac_max} V"
            )
        if voltage < 0:
            raise VoltageOutOfRangeError(f"{voltage} V is below 0 V")

        data_bits = int(voltage / self._dac_max * FULL_SCALE)
        msbs = 0x80 | (channel << 4) | ((data_bits & 0xF00) >> 8)
        lsbs = data_bits & 0xFF
        with self._selected():
            self._write(DAC_WRITE | channel, msbs & 0xFF, lsbs)
        logger.debug("Channel %d is set to %s Volts", channel, voltage)
        self.values.dacs[channel] = voltage

    # ADC

    def configure_adc(self, channel: int) -> None:
        """Make ``channel`` an ADC input."""
        _check_channel(channel)
        self.config.adcs[channel] = True
        self._adc_config |= 1 << channel
        with self._selected():
            self._write(REG_ADC_CONFIG, 0x00, self._adc_config)
        logger.debug("Channel %d is configured as a ADC", channel)

    def configure_adcs(self, channels: Iterable[bool]) -> None:
        """Configure as ADCs the channels flagged true in ``channels``."""
        for channel, enabled in enumerate(islice(channels, NUM_CHANNELS)):
            if enabled:
                self.configure_adc(channel)

    def read_adc(self, channel: int) -> float:
        """Convert one ADC channel and return its voltage."""
        _check_channel(channel)
        if not self.config.adcs[channel]:
            raise ChannelNotConfiguredError(f"channel {channel} is not an ADC")
        if self._adc_max is None:
            raise ReferenceNotSetError("Vref, or ADC_max is not defined")

        with self._selected():
            self._write(REG_ADC_SEQUENCE, _ADC_SEQUENCE_MSB, (1 << channel) & 0xFF)
            raw = self._bus.write_then_read(self.address, bytes([ADC_READ]), 2)
        data_bits = 0
        if len(raw) > 0:
            data_bits = (raw[0] & 0x0F) << 8
        if len(raw) > 1:
            data_bits |= raw[1]
        voltage = self._adc_max * data_bits / FULL_SCALE
        self.values.adcs[channel] = voltage
        return voltage

    def read_adcs(self) -> list[float | None]:
        """Read every configured ADC channel; return the per-channel values."""
        for channel, enabled in enumerate(self.config.adcs):
            if enabled:
                self.read_adc(channel)
        return list(self.values.adcs)

    # GPIO

    def configure_gpi(self, channel: int) -> None:
        """Make ``channel`` a general-purpose input."""
        _check_channel(channel)
        self.config.gpis[channel] = True
        self._gpi_config |= 1 << channel
        with self._selected():
            self._write(REG_GPIO_RD_CONFIG, 0x00, self._gpi_config)
        logger.debug("Channel %d is configured as a GPI", channel)

    def configure_gpis(self, channels: Iterable[bool]) -> None:
        """Configure as inputs the channels flagged true in ``channels``."""
        for channel, enabled in enumerate(islice(channels, NUM_CHANNELS)):
            if enabled:
                self.configure_gpi(channel)

    def configure_gpo(self, channel: int) -> None:
        """Make ``channel`` a general-purpose output."""
        _check_channel(channel)
        self.config.gpos[channel] = True
        self._gpo_config |= 1 << channel
        with self._selected():
            self._write(REG_GPIO_WR_CONFIG, 0x00, self._gpo_config)
        logger.debug("Channel %d is configured as a GPO", channel)

    def configure_gpos(self, channels: Iterable[bool]) -> None:
        """Configure as outputs the channels flagged true in ``channels``."""
        for channel, enabled in enumerate(islice(channels, NUM_CHANNELS)):
            if enabled:
                self.configure_gpo(channel)

    def read_gpis(self) -> list[bool]:
        """Read the digital inputs; only configured input channels are updated."""
        with self._selected():
            raw = self._bus.write_then_read(self.address, bytes([GPIO_READ]), 2)
        data_bits = 0
        if len(raw) > 0:
            data_bits = (raw[0] & 0x0F) << 8
        if len(raw) > 1:
            data_bits |= raw[1]
        for channel, enabled in enumerate(self.config.gpis):
            if enabled:
                self.values.gpi_reads[channel] = bool(data_bits >> channel & 1)
        return list(self.values.gpi_reads)

    def write_gpos(self, pin_states: Iterable[bool]) -> None:
        """Set the digital outputs; states for non-output channels are ignored."""
        data_bits = 0
        for channel, state in enumerate(islice(pin_states, NUM_CHANNELS)):
            if self.config.gpos[channel]:
                self.values.gpo_writes[channel] = bool(state)
                if state:
                    data_bits |= 1 << channel
        with self._selected():
            self._write(REG_GPIO_WR_DATA, 0x00, data_bits)