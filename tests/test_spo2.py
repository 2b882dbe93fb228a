import pytest

from biosense.spo2 import (
    BUFFER_SIZE,
    INVALID,
    Spo2Result,
    find_peaks,
    heart_rate_and_oxygen_saturation,
    peaks_above_min_height,
    remove_close_peaks,
    sort_indices_descend,
)


def _triangle(period=25, base=100000, amplitude=1000, count=BUFFER_SIZE):
    half = period // 2
    return [base + amplitude * abs(k % period - half) for k in range(count)]


def test_periodic_signal_gives_valid_heart_rate():
    ir = _triangle()
    result = heart_rate_and_oxygen_saturation(ir, ir)
    assert result.heart_rate_valid is True
    assert result.heart_rate == 60


def test_identical_red_and_ir_give_table_spo2():
    ir = _triangle()
    result = heart_rate_and_oxygen_saturation(ir, list(ir))
    assert isinstance(result, Spo2Result)
    assert result.spo2_valid is True
    assert result.spo2 == 80


def test_flat_signal_is_invalid():
    flat = [50000] * BUFFER_SIZE
    result = heart_rate_and_oxygen_saturation(flat, flat)
    assert result == Spo2Result(INVALID, False, INVALID, False)


def test_wrong_length_rejected():
    with pytest.raises(ValueError):
        heart_rate_and_oxygen_saturation([1] * 10, [1] * 10)


def test_mismatched_lengths_rejected():
    with pytest.raises(ValueError):
        heart_rate_and_oxygen_saturation([1] * BUFFER_SIZE, [1] * (BUFFER_SIZE - 1))


def test_sort_indices_descend_orders_by_value():
    x = [5, 1, 9, 3]
    order = sort_indices_descend(x, [0, 1, 2, 3])
    assert [x[i] for i in order] == sorted(x, reverse=True)
    assert sorted(order) == [0, 1, 2, 3]


def test_sort_indices_descend_keeps_ties_in_order():
    x = [2, 2, 1]
    assert sort_indices_descend(x, [1, 0, 2]) == [1, 0, 2]
    assert sort_indices_descend(x, [0, 1, 2]) == [0, 1, 2]


def test_peaks_above_min_height_simple():
    assert peaks_above_min_height([0, 5, 0, 7, 0], 1) == [1, 3]


def test_peaks_below_height_ignored():
    assert peaks_above_min_height([0, 5, 0, 7, 0], 6) == [3]


def test_flat_peak_reported_at_left_edge():
    assert peaks_above_min_height([0, 3, 3, 0], 1) == [1]


def test_plateau_to_end_is_not_a_peak():
    assert peaks_above_min_height([0, 3, 3], 1) == []


def test_peak_count_is_capped():
    signal = [0, 5] * 40 + [0]
    assert len(peaks_above_min_height(signal, 1)) == 15


def test_remove_close_peaks_keeps_larger():
    x = [0] * 40
    x[10], x[12], x[30] = 5, 9, 4
    assert remove_close_peaks([10, 12, 30], x, 4) == [12, 30]


def test_remove_close_peaks_drops_peak_near_start():
    x = [0] * 30
    x[2], x[20] = 9, 5
    assert remove_close_peaks([2, 20], x, 4) == [20]


def test_remove_close_peaks_invariants():
    x = [(i * 37) % 23 for i in range(60)]
    locs = peaks_above_min_height(x, 0)
    kept = remove_close_peaks(locs, x, 4)
    assert kept == sorted(kept)
    assert set(kept) <= set(locs)
    assert all(b - a > 4 for a, b in zip(kept, kept[1:]))
    assert all(loc > 3 for loc in kept)


def test_find_peaks_truncates_to_lowest_locations():
    x = [0] * 60
    for loc, height in ((10, 5), (25, 9), (40, 7)):
        x[loc] = height
    assert find_peaks(x, 1, 4, 2) == [10, 25]
    assert find_peaks(x, 1, 4, 15) == [10, 25, 40]