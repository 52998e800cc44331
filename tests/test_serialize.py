import math

import numpy as np
import pytest

from apps.encoder.errors import RangeOverflowError
from apps.encoder.pipeline.stages.serialize import build_payload, to_safe_numbers
from apps.encoder.types import MAX_SAFE_INTEGER


def test_in_range_values_are_returned_unchanged():
    values = np.array([0, 1, -5, 1023, MAX_SAFE_INTEGER, -MAX_SAFE_INTEGER], dtype=np.int64)

    result = to_safe_numbers(values)

    assert result == [0, 1, -5, 1023, MAX_SAFE_INTEGER, -MAX_SAFE_INTEGER]
    assert all(type(v) is int for v in result)


def test_converting_twice_is_a_no_op():
    once = to_safe_numbers(np.array([3, 1, 4, 1, 5], dtype=np.int64))

    assert to_safe_numbers(once) == once


@pytest.mark.parametrize("value", [MAX_SAFE_INTEGER + 1, -(MAX_SAFE_INTEGER + 1), 2 ** 60, -(2 ** 62)])
def test_out_of_range_integers_fail_instead_of_clamping(value):
    with pytest.raises(RangeOverflowError) as info:
        to_safe_numbers(np.array([1, value], dtype=np.int64))

    assert info.value.value == value
    assert info.value.index == 1


def test_unsigned_64_bit_values_are_checked_exactly():
    with pytest.raises(RangeOverflowError):
        to_safe_numbers(np.array([2 ** 63], dtype=np.uint64))


def test_python_big_ints_are_checked():
    with pytest.raises(RangeOverflowError):
        to_safe_numbers([1, 2 ** 80])


def test_multi_dimensional_outputs_are_flattened_in_order():
    tokens = np.arange(12, dtype=np.int64).reshape(1, 1, 3, 4)

    assert to_safe_numbers(tokens) == list(range(12))


def test_float_scales_stay_floats():
    result = to_safe_numbers(np.array([0.5, 1.25], dtype=np.float32))

    assert result == [0.5, 1.25]
    assert all(type(v) is float for v in result)


@pytest.mark.parametrize("value", [math.inf, -math.inf, math.nan, 1e300])
def test_non_representable_floats_fail(value):
    with pytest.raises(RangeOverflowError):
        to_safe_numbers(np.array([value], dtype=np.float64))


@pytest.mark.parametrize("value", [math.inf, math.nan])
def test_non_finite_floats_are_described_as_such(value):
    with pytest.raises(RangeOverflowError) as info:
        to_safe_numbers(np.array([value]), "audio_scales")

    assert "not a finite number" in str(info.value)
    assert "safe integer" not in str(info.value)


def test_large_integers_mention_the_safe_range():
    with pytest.raises(RangeOverflowError, match="exceeds the JSON safe integer range"):
        to_safe_numbers(np.array([2 ** 60], dtype=np.int64))


def test_payload_names_the_offending_field():
    with pytest.raises(RangeOverflowError) as info:
        build_payload(np.array([1, 2, 3]), np.array([2.0 ** 60]))

    assert info.value.field == "audio_scales"
    assert "audio_scales[0]" in str(info.value)


def test_payload_matches_wire_format():
    payload = build_payload(np.array([[1, 2, 3]], dtype=np.int64), np.array([0.5], dtype=np.float32))

    assert payload.to_json() == {"encoded_data": [1, 2, 3], "audio_scales": [0.5]}
