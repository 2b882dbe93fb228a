"""Heart rate and blood oxygen saturation from buffered red and IR samples.

Valleys of the IR photoplethysmogram are located with a peak detector run on
the inverted, smoothed signal. The heart rate follows from the mean valley
spacing. SpO2 comes from a lookup table indexed by the ratio of the red and
IR AC/DC components, measured between neighbouring valleys.
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import pairwise

SAMPLE_FREQUENCY = 25
BUFFER_SIZE = SAMPLE_FREQUENCY * 4
MA4_SIZE = 4
INVALID = -999

_MAX_PEAKS = 15
_MAX_RATIOS = 5
_MIN_THRESHOLD = 30
_MAX_THRESHOLD = 60
_PEAK_DISTANCE = 4
_DC_FLOOR = -16777216

# Approximates -45.060*r*r + 30.354*r + 94.845 for the ratio r (scaled by 100).
SPO2_TABLE = (
    95, 95, 95, 96, 96, 96, 97, 97, 97, 97, 97, 98, 98, 98, 98, 98, 99, 99, 99, 99,
    99, 99, 99, 99, 100, 100, 100, 100, 100, 100, 100, 100, 100, 100, 100, 100, 100, 100, 100, 100,
    100, 100, 100, 100, 99, 99, 99, 99, 99, 99, 99, 99, 98, 98, 98, 98, 98, 98, 97, 97,
    97, 97, 96, 96, 96, 96, 95, 95, 95, 94, 94, 94, 93, 93, 93, 92, 92, 92, 91, 91,
    90, 90, 89, 89, 89, 88, 88, 87, 87, 86, 86, 85, 85, 84, 84, 83, 82, 82, 81, 81,
    80, 80, 79, 78, 78, 77, 76, 76, 75, 74, 74, 73, 72, 72, 71, 70, 69, 69, 68, 67,
    66, 66, 65, 64, 63, 62, 62, 61, 60, 59, 58, 57, 56, 56, 55, 54, 53, 52, 51, 50,
    49, 48, 47, 46, 45, 44, 43, 42, 41, 40, 39, 38, 37, 36, 35, 34, 33, 31, 30, 29,
    28, 27, 26, 25, 23, 22, 21, 20, 19, 17, 16, 15, 14, 12, 11, 10, 9, 7, 6, 5,
    3, 2, 1,
)


@dataclass(frozen=True)
class Spo2Result:
    """Outcome of one analysis; invalid values are reported as ``INVALID``."""

    spo2: int
    spo2_valid: bool
    heart_rate: int
    heart_rate_valid: bool


def _int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value & 0x80000000 else value


def _uint32(value: int) -> int:
    return value & 0xFFFFFFFF


def _cdiv(a: int, b: int) -> int:
    """Integer division truncating toward zero."""
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b > 0) else -q


def sort_indices_descend(x, indices) -> list[int]:
    """Return ``indices`` ordered by descending ``x[index]``, ties kept in order."""
    return sorted(indices, key=lambda i: x[i], reverse=True)


def peaks_above_min_height(x, min_height: int) -> list[int]:
    """Locate up to 15 local maxima higher than ``min_height``.

    A flat peak is reported at its left edge.
    """
    n = len(x)
    locs: list[int] = []
    i = 1
    while i < n - 1:
        if x[i] > min_height and x[i] > x[i - 1]:
            width = 1
            while i + width < n and x[i] == x[i + width]:
                width += 1
            if i + width < n and x[i] > x[i + width] and len(locs) < _MAX_PEAKS:
                locs.append(i)
                i += width + 1
            else:
                i += width
        else:
            i += 1
    return locs


def remove_close_peaks(locs, x, min_distance: int) -> list[int]:
    """Drop peaks within ``min_distance`` of a larger one; return them ascending.

    A virtual peak at index -1 also suppresses peaks near the start.
    """
    kept: list[int] = []
    for loc in sort_indices_descend(x, locs):
        if all(abs(loc - other) > min_distance for other in (-1, *kept)):
            kept.append(loc)
    return sorted(kept)


def find_peaks(x, min_height: int, min_distance: int, max_num: int) -> list[int]:
    """Find at most ``max_num`` peaks above ``min_height``, ``min_distance`` apart."""
    locs = peaks_above_min_height(x, min_height)
    locs = remove_close_peaks(locs, x, min_distance)
    return locs[:max_num]


def _ratio_between(x, y, start: int, end: int) -> tuple[int, int]:
    x_max = y_max = _DC_FLOOR
    x_idx = y_idx = 0
    for i in range(start, end):
        if x[i] > x_max:
            x_max, x_idx = x[i], i
        if y[i] > y_max:
            y_max, y_idx = y[i], i
    span = end - start

    y_ac = _int32((y[end] - y[start]) * (y_idx - start))
    y_ac = y[start] + _cdiv(y_ac, span)
    y_ac = y[y_idx] - y_ac

    x_ac = _int32((x[end] - x[start]) * (x_idx - start))
    x_ac = x[start] + _cdiv(x_ac, span)
    x_ac = x[y_idx] - x_ac

    numerator = _int32(y_ac * x_max) >> 7
    denominator = _int32(x_ac * y_max) >> 7
    return numerator, denominator


def heart_rate_and_oxygen_saturation(ir_buffer, red_buffer) -> Spo2Result:
    """Analyse ``BUFFER_SIZE`` IR and red samples taken at 25 Hz."""
    ir = [_uint32(v) for v in ir_buffer]
    red = [_uint32(v) for v in red_buffer]
    if len(ir) != BUFFER_SIZE:
        raise ValueError(f"expected {BUFFER_SIZE} IR samples, got {len(ir)}")
    if len(red) != len(ir):
        raise ValueError("IR and red buffers differ in length")

    mean = _uint32(sum(ir)) // len(ir)
    inverted = [_int32(mean - v) for v in ir]
    smoothed = [
        _cdiv(_int32(sum(inverted[k:k + MA4_SIZE])), MA4_SIZE)
        for k in range(BUFFER_SIZE - MA4_SIZE)
    ] + inverted[BUFFER_SIZE - MA4_SIZE:]

    threshold = _cdiv(_int32(sum(smoothed)), BUFFER_SIZE)
    threshold = min(max(threshold, _MIN_THRESHOLD), _MAX_THRESHOLD)

    valleys = find_peaks(smoothed, threshold, _PEAK_DISTANCE, _MAX_PEAKS)
    if len(valleys) >= 2:
        interval = _cdiv(valleys[-1] - valleys[0], len(valleys) - 1)
        heart_rate = _cdiv(SAMPLE_FREQUENCY * 60, interval)
        heart_rate_valid = True
    else:
        heart_rate = INVALID
        heart_rate_valid = False

    if any(loc > BUFFER_SIZE for loc in valleys):
        return Spo2Result(INVALID, False, heart_rate, heart_rate_valid)

    x = [_int32(v) for v in ir]
    y = [_int32(v) for v in red]
    ratios: list[int] = []
    for start, end in pairwise(valleys):
        if end - start <= 3:
            continue
        numerator, denominator = _ratio_between(x, y, start, end)
        if denominator > 0 and len(ratios) < _MAX_RATIOS and numerator != 0:
            ratios.append(_cdiv(_int32(numerator * 100), denominator))

    padded = sorted(ratios) + [0] * (_MAX_RATIOS - len(ratios))
    middle = len(ratios) // 2
    if middle > 1:
        ratio_average = _cdiv(padded[middle - 1] + padded[middle], 2)
    else:
        ratio_average = padded[middle]

    if 2 < ratio_average < len(SPO2_TABLE):
        return Spo2Result(SPO2_TABLE[ratio_average], True, heart_rate, heart_rate_valid)
    return Spo2Result(INVALID, False, heart_rate, heart_rate_valid)