import pytest

from biosense.ad5593r import (
    AD5593R,
    AD5593RError,
    ChannelNotConfiguredError,
    I2C_ADDRESS,
    ReferenceNotSetError,
    VoltageOutOfRangeError,
)


class FakeBus:
    def __init__(self, responses=()):
        self.writes = []
        self.responses = list(responses)

    def write(self, address, data):
        self.writes.append((address, bytes(data)))

    def read(self, address, count):
        return self.responses.pop(0)[:count]

    def write_then_read(self, address, data, count):
        self.write(address, data)
        return self.read(address, count)


@pytest.fixture
def bus():
    return FakeBus()


def test_enable_internal_vref_wire_bytes(bus):
    chip = AD5593R(bus)
    chip.enable_internal_vref()
    assert bus.writes == [(I2C_ADDRESS, bytes([0x0B, 0x02, 0x00]))]
    assert chip.vref == 2.5
    assert chip.dac_max == 2.5
    assert chip.adc_max == 2.5


def test_disable_internal_vref_clears_reference(bus):
    chip = AD5593R(bus)
    chip.enable_internal_vref()
    chip.disable_internal_vref()
    assert bus.writes[-1] == (I2C_ADDRESS, bytes([0x0B, 0x00, 0x00]))
    assert chip.vref is None
    assert chip.adc_max is None


def test_range_doubling_and_vref(bus):
    chip = AD5593R(bus)
    chip.set_vref(2.0)
    chip.set_adc_max_2x_vref()
    assert bus.writes[-1][1] == bytes([0x03, 0x00, 0x20])
    chip.set_dac_max_2x_vref()
    assert bus.writes[-1][1] == bytes([0x03, 0x00, 0x30])
    assert chip.adc_max == 4.0
    chip.set_vref(1.5)
    assert chip.adc_max == 3.0
    assert chip.dac_max == 3.0
    chip.set_adc_max_1x_vref()
    chip.set_dac_max_1x_vref()
    assert bus.writes[-1][1] == bytes([0x03, 0x00, 0x00])
    assert chip.adc_max == 1.5
    assert chip.dac_max == 1.5


def test_configure_dacs_accumulate_mask(bus):
    chip = AD5593R(bus)
    chip.configure_dacs([True, False, False, True, False, False, False, False])
    assert [w[1] for w in bus.writes] == [
        bytes([0x05, 0x00, 0x01]),
        bytes([0x05, 0x00, 0x09]),
    ]
    assert chip.config.dacs[0] and chip.config.dacs[3]
    assert not chip.config.dacs[1]


def test_write_dac_full_scale(bus):
    chip = AD5593R(bus)
    chip.enable_internal_vref()
    chip.configure_dac(0)
    chip.write_dac(0, 2.5)
    assert bus.writes[-1] == (I2C_ADDRESS, bytes([0x10, 0x8F, 0xFF]))
    assert chip.values.dacs[0] == 2.5


def test_write_dac_zero_uses_channel_bits(bus):
    chip = AD5593R(bus)
    chip.enable_internal_vref()
    chip.configure_dac(1)
    chip.write_dac(1, 0.0)
    address, data = bus.writes[-1]
    assert data[0] == 0x10 | 1
    assert data[1] == 0x80 | (1 << 4)
    assert data[2] == 0


def test_write_dac_errors(bus):
    chip = AD5593R(bus)
    with pytest.raises(ChannelNotConfiguredError):
        chip.write_dac(2, 1.0)
    chip.configure_dac(2)
    with pytest.raises(ReferenceNotSetError):
        chip.write_dac(2, 1.0)
    chip.enable_internal_vref()
    with pytest.raises(VoltageOutOfRangeError):
        chip.write_dac(2, 3.0)
    assert issubclass(VoltageOutOfRangeError, AD5593RError)
    assert chip.values.dacs[2] is None


def test_invalid_channel(bus):
    chip = AD5593R(bus)
    with pytest.raises(ValueError):
        chip.configure_adc(8)


def test_read_adc_full_scale(bus):
    bus.responses.append(bytes([0xFF, 0xFF]))
    chip = AD5593R(bus)
    chip.enable_internal_vref()
    chip.configure_adc(2)
    voltage = chip.read_adc(2)
    assert voltage == pytest.approx(2.5)
    assert bus.writes[-2][1] == bytes([0x02, 0x02, 0x04])
    assert bus.writes[-1][1] == bytes([0x40])
    assert chip.values.adcs[2] == voltage


def test_read_adc_errors(bus):
    chip = AD5593R(bus)
    with pytest.raises(ChannelNotConfiguredError):
        chip.read_adc(0)
    chip.configure_adc(0)
    with pytest.raises(ReferenceNotSetError):
        chip.read_adc(0)


def test_read_adcs_only_configured(bus):
    bus.responses.extend([bytes([0x00, 0x00]), bytes([0x0F, 0xFF])])
    chip = AD5593R(bus)
    chip.set_vref(3.0)
    chip.configure_adcs([False, True, False, False, False, True])
    values = chip.read_adcs()
    assert values[0] is None
    assert values[1] == 0.0
    assert values[5] == pytest.approx(3.0)


def test_gpio_round_trip(bus):
    bus.responses.append(bytes([0x00, 0b0000_0101]))
    chip = AD5593R(bus)
    chip.configure_gpis([True, True, True])
    assert bus.writes[-1][1] == bytes([0x0A, 0x00, 0x07])
    reads = chip.read_gpis()
    assert reads[:3] == [True, False, True]
    assert bus.writes[-1][1] == bytes([0x70])

    chip.configure_gpo(4)
    chip.configure_gpo(6)
    assert bus.writes[-1][1] == bytes([0x08, 0x00, 0x50])
    chip.write_gpos([True, True, False, False, True, False, False, False])
    assert bus.writes[-1][1] == bytes([0x09, 0x00, 0x10])
    assert chip.values.gpo_writes[4] is True
    assert chip.values.gpo_writes[0] is False


def test_select_pin_toggles_around_transactions(bus):
    levels = []
    chip = AD5593R(bus, levels.append)
    assert levels == [True]
    chip.configure_dac(0)
    assert levels == [True, False, True]
    chip.enable_internal_vref()
    assert levels[-2:] == [False, True]
    assert len(bus.writes) == 2