"""Register map, field values and setting choices for the MAX30105 sensor.

The field enums hold the bit patterns that are written into their register
under the matching ``*_MASK``. The bits a mask keeps are left unchanged by the
write. The ``choose_*`` functions map a requested setting onto the nearest
field value the chip supports, falling back the same way the chip's setup
routine does.
"""

from __future__ import annotations

from enum import IntEnum

EXPECTED_PART_ID = 0x15
FIFO_DEPTH = 32
SAMPLE_BITS = 0x3FFFF
BYTES_PER_SAMPLE = 3


class Register(IntEnum):
    """Register addresses."""

    INT_STATUS_1 = 0x00
    INT_STATUS_2 = 0x01
    INT_ENABLE_1 = 0x02
    INT_ENABLE_2 = 0x03
    FIFO_WRITE_PTR = 0x04
    FIFO_OVERFLOW = 0x05
    FIFO_READ_PTR = 0x06
    FIFO_DATA = 0x07
    FIFO_CONFIG = 0x08
    MODE_CONFIG = 0x09
    PARTICLE_CONFIG = 0x0A
    LED1_PULSE_AMP = 0x0C
    LED2_PULSE_AMP = 0x0D
    LED3_PULSE_AMP = 0x0E
    LED_PROX_AMP = 0x10
    MULTI_LED_CONFIG_1 = 0x11
    MULTI_LED_CONFIG_2 = 0x12
    DIE_TEMP_INT = 0x1F
    DIE_TEMP_FRAC = 0x20
    DIE_TEMP_CONFIG = 0x21
    PROX_INT_THRESH = 0x30
    REVISION_ID = 0xFE
    PART_ID = 0xFF


# Interrupt enable bits and the masks that keep every other bit.
INT_A_FULL_MASK = ~0x80 & 0xFF
INT_A_FULL_ENABLE = 0x80
INT_DATA_RDY_MASK = ~0x40 & 0xFF
INT_DATA_RDY_ENABLE = 0x40
INT_ALC_OVF_MASK = ~0x20 & 0xFF
INT_ALC_OVF_ENABLE = 0x20
INT_PROX_INT_MASK = ~0x10 & 0xFF
INT_PROX_INT_ENABLE = 0x10
INT_DIE_TEMP_RDY_MASK = ~0x02 & 0xFF
INT_DIE_TEMP_RDY_ENABLE = 0x02
INT_DISABLE = 0x00

# FIFO configuration
SAMPLEAVG_MASK = ~0xE0 & 0xFF
ROLLOVER_MASK = 0xEF
ROLLOVER_ENABLE = 0x10
ROLLOVER_DISABLE = 0x00
A_FULL_MASK = 0xF0

# Mode configuration
SHUTDOWN_MASK = 0x7F
SHUTDOWN = 0x80
WAKEUP = 0x00
RESET_MASK = 0xBF
RESET = 0x40
MODE_MASK = 0xF8

# Particle sensing configuration
ADCRANGE_MASK = 0x9F
SAMPLERATE_MASK = 0xE3
PULSEWIDTH_MASK = 0xFC

# Multi-LED slots
SLOT1_MASK = 0xF8
SLOT2_MASK = 0x8F
SLOT3_MASK = 0xF8
SLOT4_MASK = 0x8F


class LedMode(IntEnum):
    """Mode field of the mode configuration register."""

    RED_ONLY = 0x02
    RED_IR = 0x03
    MULTI_LED = 0x07


class SampleAverage(IntEnum):
    """Sample averaging field of the FIFO configuration register."""

    AVG_1 = 0x00
    AVG_2 = 0x20
    AVG_4 = 0x40
    AVG_8 = 0x60
    AVG_16 = 0x80
    AVG_32 = 0xA0


class AdcRange(IntEnum):
    """ADC full-scale range field of the particle sensing register."""

    RANGE_2048 = 0x00
    RANGE_4096 = 0x20
    RANGE_8192 = 0x40
    RANGE_16384 = 0x60


class SampleRate(IntEnum):
    """Sample rate field of the particle sensing register."""

    RATE_50 = 0x00
    RATE_100 = 0x04
    RATE_200 = 0x08
    RATE_400 = 0x0C
    RATE_800 = 0x10
    RATE_1000 = 0x14
    RATE_1600 = 0x18
    RATE_3200 = 0x1C


class PulseWidth(IntEnum):
    """LED pulse width field of the particle sensing register."""

    WIDTH_69 = 0x00
    WIDTH_118 = 0x01
    WIDTH_215 = 0x02
    WIDTH_411 = 0x03


class SlotDevice(IntEnum):
    """What a multi-LED time slot drives."""

    NONE = 0x00
    RED_LED = 0x01
    IR_LED = 0x02
    GREEN_LED = 0x03
    NONE_PILOT = 0x04
    RED_PILOT = 0x05
    IR_PILOT = 0x06
    GREEN_PILOT = 0x07


_SAMPLE_AVERAGES = {
    1: SampleAverage.AVG_1,
    2: SampleAverage.AVG_2,
    4: SampleAverage.AVG_4,
    8: SampleAverage.AVG_8,
    16: SampleAverage.AVG_16,
    32: SampleAverage.AVG_32,
}

_ADC_STEPS = (
    (4096, AdcRange.RANGE_2048),
    (8192, AdcRange.RANGE_4096),
    (16384, AdcRange.RANGE_8192),
)

_RATE_STEPS = (
    (100, SampleRate.RATE_50),
    (200, SampleRate.RATE_100),
    (400, SampleRate.RATE_200),
    (800, SampleRate.RATE_400),
    (1000, SampleRate.RATE_800),
    (1600, SampleRate.RATE_1000),
    (3200, SampleRate.RATE_1600),
)

_WIDTH_STEPS = (
    (118, PulseWidth.WIDTH_69),
    (215, PulseWidth.WIDTH_118),
    (411, PulseWidth.WIDTH_215),
)


def _step(value: int, steps, top: int, top_choice, fallback):
    for limit, choice in steps:
        if value < limit:
            return choice
    return top_choice if value == top else fallback


def choose_sample_average(samples: int) -> SampleAverage:
    """Averaging for 1, 2, 4, 8, 16 or 32 samples; any other count gives 4."""
    return _SAMPLE_AVERAGES.get(samples, SampleAverage.AVG_4)


def choose_led_mode(led_count: int) -> LedMode:
    """Three LEDs give multi-LED mode, two give red+IR, anything else red only."""
    if led_count == 3:
        return LedMode.MULTI_LED
    if led_count == 2:
        return LedMode.RED_IR
    return LedMode.RED_ONLY


def choose_adc_range(adc_range: int) -> AdcRange:
    """Largest supported range not above ``adc_range``; above 16384 gives 2048."""
    return _step(adc_range, _ADC_STEPS, 16384, AdcRange.RANGE_16384, AdcRange.RANGE_2048)


def choose_sample_rate(sample_rate: int) -> SampleRate:
    """Largest supported rate not above ``sample_rate``; above 3200 gives 50."""
    return _step(sample_rate, _RATE_STEPS, 3200, SampleRate.RATE_3200, SampleRate.RATE_50)


def choose_pulse_width(pulse_width: int) -> PulseWidth:
    """Largest supported width not above ``pulse_width``; above 411 gives 69."""
    return _step(pulse_width, _WIDTH_STEPS, 411, PulseWidth.WIDTH_411, PulseWidth.WIDTH_69)


def decode_sample(raw) -> int:
    """Turn three big-endian FIFO bytes into an 18-bit reading."""
    data = bytes(raw)
    if len(data) != BYTES_PER_SAMPLE:
        raise ValueError(f"a sample is {BYTES_PER_SAMPLE} bytes, got {len(data)}")
    return int.from_bytes(data, "big") & SAMPLE_BITS