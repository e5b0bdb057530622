"""Unit tests for loopedit.dsp.loop module."""

import math

import numpy as np
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from loopedit.dsp.kernel import DEFAULT_TABLE, fast_eval, slow_eval
from loopedit.dsp.loop import (
    FAST_PADDING,
    SLOW_PADDING,
    fast_materialize,
    fold,
    materialize,
    slow_materialize,
)
from loopedit.types import Wave


def sine_wave(length: int, period: float, loop_start: float, loop_end: float) -> Wave:
    samples = np.sin(2 * np.pi * np.arange(length) / period)
    return Wave(samples, 44100, loop_start=loop_start, loop_end=loop_end)


class TestFold:
    """Test mapping positions into the loop."""

    def test_no_loop_is_identity(self):
        wave = Wave(np.zeros(10), 44100)
        assert fold(wave, 123.5) == 123.5

    def test_before_loop_end_is_identity(self):
        wave = Wave(np.zeros(100), 44100, loop_start=10.0, loop_end=20.0)
        for pos in [0.0, 5.5, 10.0, 19.999]:
            assert fold(wave, pos) == pos

    def test_wraps_past_loop_end(self):
        wave = Wave(np.zeros(100), 44100, loop_start=10.0, loop_end=20.0)
        assert fold(wave, 20.0) == 10.0
        assert fold(wave, 25.0) == 15.0
        assert fold(wave, 47.5) == pytest.approx(17.5)

    def test_fractional_loop(self):
        wave = Wave(np.zeros(100), 44100, loop_start=10.25, loop_end=20.75)
        assert fold(wave, 21.0) == pytest.approx(10.5)

    @given(
        loop_start=st.floats(min_value=0.0, max_value=500.0),
        loop_length=st.floats(min_value=0.5, max_value=500.0),
        offset=st.floats(min_value=0.0, max_value=1e5),
    )
    @settings(deadline=None)
    def test_folded_position_lies_in_loop(self, loop_start, loop_length, offset):
        loop_end = loop_start + loop_length
        wave = Wave(np.zeros(1), 44100, loop_start=loop_start, loop_end=loop_end)

        result = fold(wave, loop_end + offset)
        # Allow for floating-point rounding at the loop end
        assert loop_start - 1e-6 <= result <= loop_end + 1e-6


class TestMaterialize:
    """Test unrolling the loop into a flat buffer."""

    def test_no_loop_returns_input(self):
        wave = Wave(np.ones(32), 44100)
        assert fast_materialize(wave) is wave
        assert slow_materialize(wave) is wave

    @pytest.mark.parametrize(
        ("materializer", "padding"),
        [(fast_materialize, FAST_PADDING), (slow_materialize, SLOW_PADDING)],
    )
    def test_length_and_metadata(self, materializer, padding):
        wave = sine_wave(1000, 40.0, 300.25, 420.6)
        result = materializer(wave.replace(root_note=48, root_fine=12))

        assert len(result) == math.ceil(420.6) + padding
        assert result.loop_start == 300.25
        assert result.loop_end == 420.6
        assert result.root_note == 48
        assert result.root_fine == 12

    def test_head_is_copied_exactly(self):
        wave = sine_wave(1000, 40.0, 300.25, 420.6)
        result = slow_materialize(wave)
        np.testing.assert_array_equal(result.samples[:421], wave.samples[:421])

    def test_tail_follows_folded_positions(self):
        wave = sine_wave(600, 33.3, 300.25, 400.6)
        result = slow_materialize(wave)
        for i in range(401, len(result), 17):
            expected = slow_eval(1.0, wave.samples, fold(wave, float(i)))
            assert result.samples[i] == pytest.approx(expected, abs=1e-6)

    def test_slow_tier_keeps_periodic_signal_periodic(self):
        """A loop spanning whole periods continues the waveform across the seam."""
        period = 40.0
        wave = sine_wave(2000, period, 600.25, 600.25 + 2 * period)
        result = slow_materialize(wave)

        expected = np.sin(2 * np.pi * np.arange(len(result)) / period)
        np.testing.assert_allclose(result.samples, expected, atol=1e-3)

    def test_fast_tier_keeps_periodic_signal_periodic(self):
        period = 40.0
        wave = sine_wave(2000, period, 600.25, 600.25 + 2 * period)
        result = fast_materialize(wave)

        expected = np.sin(2 * np.pi * np.arange(len(result)) / period)
        np.testing.assert_allclose(result.samples, expected, atol=1e-2)

    def test_generic_materialize_matches_fast(self):
        wave = sine_wave(500, 21.7, 100.5, 230.3)

        def interpolate(samples, pos):
            return fast_eval(DEFAULT_TABLE, samples, pos)

        generic = materialize(wave, interpolate, FAST_PADDING)
        np.testing.assert_allclose(generic.samples, fast_materialize(wave).samples, atol=1e-6)

    def test_input_is_not_modified(self):
        wave = sine_wave(500, 21.7, 100.5, 230.3)
        before = wave.samples.copy()
        slow_materialize(wave)
        np.testing.assert_array_equal(wave.samples, before)
