# biosense

Signal-processing algorithms for optical pulse sensors, plus drivers for the
MAX30105 (and MAX30102) particle/pulse-oximetry sensor and the AD5593R
configurable DAC/ADC/GPIO chip. It needs nothing outside the standard library.

## Install

```
pip install .
```

The tests run with `pip install .[test]` and then `pytest`.

## Beat detection

`biosense.heartrate.BeatDetector` takes one IR sample at a time and reports
whether that sample completes a heartbeat. It estimates the DC level with a
running average and low-pass filters what remains. A beat counts when the
filtered signal crosses zero on the way up and the swing of the previous cycle
lies between 20 and 1000.

```python
from biosense.heartrate import BeatDetector

detector = BeatDetector()
for sample in ir_samples:
    if detector.check_for_beat(sample):
        print("beat")
```

The building blocks can also be used on their own:

- `average_dc_estimator(register, x)` returns the new register value and the DC estimate.
- `LowPassFIR().filter(din)` is a 23-tap symmetric filter.
- `mul16(x, y)` multiplies two values as signed 16-bit integers.

## Heart rate and SpO2 from a buffer

`biosense.spo2.heart_rate_and_oxygen_saturation(ir_buffer, red_buffer)` takes
exactly `BUFFER_SIZE` (100) IR samples and as many red samples. That is four
seconds at 25 Hz. Any other length raises `ValueError`. The function returns a
frozen `Spo2Result` with these fields:

- `spo2` and `spo2_valid`
- `heart_rate` and `heart_rate_valid`

A value that cannot be computed is reported as `INVALID` (-999), and its flag
is then False.

```python
from biosense.spo2 import heart_rate_and_oxygen_saturation

result = heart_rate_and_oxygen_saturation(ir_buffer, red_buffer)
if result.heart_rate_valid:
    print(result.heart_rate)
```

The peak-finding helpers are public too:

- `find_peaks`
- `peaks_above_min_height`
- `remove_close_peaks`
- `sort_indices_descend`

## The I2C bus

The drivers work with any object that has these three methods:

- `write(address, data)`
- `read(address, count)`
- `write_then_read(address, data, count)`

That can be a fake object in tests, or a bridge of your own.

`biosense.i2c.I2CBus` implements these methods over the Linux `/dev/i2c-N`
interface. Pass it an adapter number or a device path, or pass an open file
descriptor as `fd=`. Use it as a context manager or call `close()` when you are
done.

```python
from biosense.i2c import I2CBus

with I2CBus(1) as bus:
    ...
```

`chunk_sizes(total, record_size, buffer_length=32)` splits a burst read into
requests that fit the bus buffer. Each request holds whole records only.

## MAX30105 sensor

```python
from biosense.max30105 import MAX30105

sensor = MAX30105(bus)          # address defaults to 0x57
sensor.begin()                  # raises SensorNotFoundError on a wrong part ID
sensor.setup()                  # defaults: 0x1F, 4, 3, 400, 411, 4096
ir = sensor.get_ir()            # 0 if no data arrived within 250 ms
print(sensor.read_temperature())
```

`setup(power_level, sample_average, led_mode, sample_rate, pulse_width,
adc_range)` first resets the chip. It then picks the nearest supported value
for each setting. `led_mode` must be 1, 2 or 3.

`check()` drains the sensor's FIFO into a four-entry ring buffer and returns
how many samples it read. Walk that buffer with these methods:

- `available()`
- `get_fifo_red()`, `get_fifo_ir()` and `get_fifo_green()`
- `next_sample()`

The methods for interrupt enables, slots, FIFO settings, LED amplitudes and raw
register access are also on the class. Register addresses and field enums are
in `biosense.max30105_registers`:

- `Register`, `LedMode`, `SampleAverage`, `AdcRange`, `SampleRate`, `PulseWidth` and `SlotDevice`
- the `choose_*` functions
- `decode_sample`

## AD5593R DAC/ADC/GPIO

```python
from biosense.ad5593r import AD5593R

chip = AD5593R(bus, None)
chip.enable_internal_vref()     # 2.5 V; or chip.set_vref(volts)
chip.configure_dac(0)
chip.write_dac(0, 1.2)
chip.configure_adc(1)
volts = chip.read_adc(1)
```

Pass a callable as the second argument when several chips share one bus. The
driver calls it with True to drive the chip's A0 line high and with False to
pull it low. The line is held low around each transaction.

Errors are raised as subclasses of `AD5593RError`:

- `ChannelNotConfiguredError`: the channel has not been configured for the requested use.
- `ReferenceNotSetError`: no reference voltage is known.
- `VoltageOutOfRangeError`: the voltage is above the DAC maximum or below 0 V.

A channel number outside 0–7 raises `ValueError`.

## What it does not do

- There is no command-line program. The package is a library only.
- The sensor's interrupt line is not used; data is obtained by polling.
- The AD5593R driver does not perform these functions:
  - read back DAC values
  - power down channels
  - set pull-downs or the LDAC mode
  - issue a software reset

## Not for medical use

These algorithms are examples of optical signal processing. Do not use them
for diagnosis.