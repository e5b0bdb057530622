"""Unit tests for loopedit.dsp.transforms module."""

import math

import numpy as np
import pytest
from hypothesis import assume, given, settings
from hypothesis import strategies as st

from loopedit.dsp.kernel import DEFAULT_TABLE, fast_eval_many
from loopedit.dsp.loop import SLOW_PADDING
from loopedit.dsp.transforms import (
    align_loop,
    clear_loop,
    crossfade,
    normalize,
    prepare_export,
    quantize_loop_length,
    round_tuning,
    round_tuning_fine,
    set_loop,
    set_loop_edge,
    snap_loop_to_samples,
    snap_loop_to_zero_crossings,
    snap_to_zero_crossing,
    trim_loop,
    true_peak,
    truncate_to_loop,
)
from loopedit.types import NO_LOOP, Wave


def ramp_wave(length: int = 60, loop_start: float = 10.0, loop_end: float = 50.0) -> Wave:
    return Wave(np.arange(length, dtype=np.float32), 44100, loop_start, loop_end)


def sine_wave(
    length: int = 1000,
    period: float = 37.0,
    loop_start: float = NO_LOOP,
    loop_end: float = NO_LOOP,
    amplitude: float = 0.5,
) -> Wave:
    samples = amplitude * np.sin(2 * np.pi * np.arange(length) / period)
    return Wave(samples, 44100, loop_start, loop_end)


class TestCrossfade:
    """Test crossfading the loop end into the pre-loop material."""

    def test_ramp_crossfade(self):
        """Fade 8 over a 100-sample ramp looped on [10, 50): out[i] = i - 5 * (i - 42)."""
        wave = ramp_wave(100)
        result = crossfade(wave, 8)

        expected = np.arange(100, dtype=np.float32)
        for i in range(42, 50):
            expected[i] = i - 5 * (i - 42)

        np.testing.assert_allclose(result.samples, expected, atol=1e-5)
        assert result.loop_start == 10.0
        assert result.loop_end == 50.0

    def test_ramp_crossfade_first_index_is_original(self):
        result = crossfade(ramp_wave(), 8)
        assert result.samples[42] == 42.0
        for i in range(43, 50):
            assert i - 40 < result.samples[i] < i

    def test_fade_is_clamped_to_loop_length(self):
        wave = ramp_wave(length=30, loop_start=20.0, loop_end=25.0)
        result = crossfade(wave, 100)

        # Fade covers the whole loop, echo reads one loop length earlier
        expected = np.arange(30, dtype=np.float32)
        for i in range(20, 25):
            expected[i] = i - (i - 20)
        np.testing.assert_allclose(result.samples, expected, atol=1e-5)

    def test_no_loop_returns_input(self):
        wave = sine_wave()
        assert crossfade(wave, 16) is wave

    def test_zero_fade_returns_input(self):
        wave = ramp_wave()
        assert crossfade(wave, 0) is wave

    def test_fractional_loop_end(self):
        """Indices run from ceil(loop_end - fade) up to ceil(loop_end)."""
        wave = ramp_wave(loop_start=10.5, loop_end=50.5)
        result = crossfade(wave, 4)

        np.testing.assert_array_equal(result.samples[:47], wave.samples[:47])
        np.testing.assert_array_equal(result.samples[51:], wave.samples[51:])
        assert not np.array_equal(result.samples[47:51], wave.samples[47:51])

    def test_input_is_not_modified(self):
        wave = ramp_wave()
        crossfade(wave, 8)
        np.testing.assert_array_equal(wave.samples, np.arange(60))


class TestQuantizeLoopLength:
    """Test stretching the loop to a whole number of samples."""

    @given(
        loop_start=st.floats(min_value=50.0, max_value=300.0),
        loop_length=st.floats(min_value=20.0, max_value=400.0),
    )
    @settings(deadline=None, max_examples=25)
    def test_loop_length_becomes_integral(self, loop_start, loop_length):
        wave = sine_wave(length=800, loop_start=loop_start, loop_end=loop_start + loop_length)
        assume(wave.loop_length != math.floor(wave.loop_length))
        result = quantize_loop_length(wave)

        assert abs(result.loop_length - round(result.loop_length)) < 1e-6
        assert result.loop_start == math.floor(result.loop_start)
        assert result.loop_length == math.ceil(wave.loop_length)

    def test_sample_rate_and_length_scale(self):
        wave = sine_wave(length=1000, loop_start=100.3, loop_end=350.8)
        result = quantize_loop_length(wave)

        rate = 251 / 250.5
        assert result.sample_rate == math.floor(44100 * rate + 0.5)
        assert result.loop_start == math.ceil(100.3 * rate)
        assert result.loop_end == result.loop_start + 251
        assert len(result) == math.ceil(1000 * rate + (result.loop_start - 100.3 * rate))

    def test_pitch_is_preserved(self):
        """The stretched sine keeps its period relative to the new sample rate."""
        period = 37.0
        wave = sine_wave(length=2000, period=period, loop_start=800.5, loop_end=1100.25)
        result = quantize_loop_length(wave)

        rate = 300 / 299.75
        offset = result.loop_start - 800.5 * rate
        middle = np.arange(900, 1100)
        expected = 0.5 * np.sin(2 * np.pi * ((middle - offset) / rate) / period)
        np.testing.assert_allclose(result.samples[middle], expected, atol=1e-3)

    def test_integral_loop_returns_input(self):
        wave = sine_wave(loop_start=100.5, loop_end=300.5)
        assert quantize_loop_length(wave) is wave

    def test_no_loop_returns_input(self):
        wave = sine_wave()
        assert quantize_loop_length(wave) is wave


class TestRoundTuningFine:
    """Test resampling away the cents offset."""

    def test_zero_fine_returns_identical_wave(self):
        wave = sine_wave(loop_start=10.0, loop_end=50.0)
        assert round_tuning_fine(wave) is wave

    def test_small_offset_tunes_down(self):
        wave = sine_wave(loop_start=100.0, loop_end=500.0).replace(root_note=60, root_fine=30)
        result = round_tuning_fine(wave)

        rate = 2 ** (-30 / 1200)
        assert result.root_note == 60
        assert result.root_fine == 0
        assert result.loop_start == pytest.approx(100.0 / rate)
        assert result.loop_end == pytest.approx(500.0 / rate)
        assert len(result) == math.ceil(1000 / rate)
        assert result.sample_rate == wave.sample_rate

    def test_large_offset_tunes_up_to_next_note(self):
        wave = sine_wave(loop_start=100.0, loop_end=500.0).replace(root_note=60, root_fine=70)
        result = round_tuning_fine(wave)

        rate = 2 ** (30 / 1200)
        assert result.root_note == 61
        assert result.root_fine == 0
        assert result.loop_end == pytest.approx(500.0 / rate)
        assert len(result) == math.ceil(1000 / rate)

    def test_without_loop(self):
        wave = sine_wave().replace(root_fine=20)
        result = round_tuning_fine(wave)

        assert not result.has_loop
        assert result.root_fine == 0


class TestNormalize:
    """Test true-peak normalization."""

    @given(amplitude=st.floats(min_value=0.01, max_value=4.0))
    @settings(deadline=None, max_examples=25)
    def test_peak_becomes_one(self, amplitude):
        wave = sine_wave(length=500, period=23.1, amplitude=amplitude)
        result = normalize(wave)
        assert true_peak(result.samples) == pytest.approx(1.0, abs=1e-3)

    def test_silence_is_unchanged(self):
        wave = Wave(np.full(100, 1e-4), 44100)
        assert normalize(wave) is wave

    def test_true_peak_sees_intersample_overshoot(self):
        """Alternating full-scale samples peak above 1.0 between samples."""
        samples = np.tile(np.array([1.0, 1.0, -1.0, -1.0], dtype=np.float32), 32)
        assert true_peak(samples) > 1.0

    def test_true_peak_matches_oversampled_scan(self):
        samples = sine_wave(length=300, period=7.3, amplitude=0.9).samples
        positions = (np.arange(300)[:, np.newaxis] + np.arange(10) / 10).ravel()
        scan = np.max(np.abs(fast_eval_many(DEFAULT_TABLE, samples, positions)))
        assert true_peak(samples) == pytest.approx(float(scan), abs=1e-6)

    def test_true_peak_of_empty_buffer(self):
        assert true_peak(np.zeros(0, dtype=np.float32)) == 0.0


class TestTruncateToLoop:
    """Test cutting the sample at the loop end."""

    def test_length_and_bounds(self):
        wave = sine_wave(loop_start=100.7, loop_end=300.4)
        result = truncate_to_loop(wave)

        assert len(result) == 300
        assert result.loop_start == 100.0
        assert result.loop_end == 300.0
        np.testing.assert_array_equal(result.samples, wave.samples[:300])

    def test_no_loop_returns_input(self):
        wave = sine_wave()
        assert truncate_to_loop(wave) is wave


class TestZeroCrossing:
    """Test zero-crossing search."""

    def test_finds_fractional_crossing(self):
        samples = np.sin(2 * np.pi * (np.arange(400) - 100.3) / 64).astype(np.float32)
        assert snap_to_zero_crossing(samples, 100.0) == pytest.approx(100.3, abs=0.02)

    def test_no_crossing_returns_center(self):
        samples = np.ones(64, dtype=np.float32)
        assert snap_to_zero_crossing(samples, 20.25) == 20.25

    def test_snap_loop_to_zero_crossings(self):
        samples = np.sin(2 * np.pi * (np.arange(800) - 0.4) / 64)
        wave = Wave(samples, 44100, loop_start=128.2, loop_end=384.1)
        result = snap_loop_to_zero_crossings(wave)

        assert result.loop_start == pytest.approx(128.4, abs=0.02)
        assert result.loop_end == pytest.approx(384.4, abs=0.02)


class TestLoopEditing:
    """Test setting, moving and clearing loop points."""

    def test_set_loop_orders_bounds(self):
        result = set_loop(sine_wave(), 400.0, 100.0)
        assert (result.loop_start, result.loop_end) == (100.0, 400.0)

    def test_set_loop_clamps_to_buffer(self):
        result = set_loop(sine_wave(length=1000), -50.0, 5000.0)
        assert (result.loop_start, result.loop_end) == (0.0, 1000.0)

    def test_set_loop_rejects_empty_loop(self):
        with pytest.raises(ValueError, match="empty"):
            set_loop(sine_wave(), 200.0, 200.0)

    def test_set_loop_edge_moves_one_edge(self):
        wave = sine_wave(loop_start=100.0, loop_end=400.0)
        assert set_loop_edge(wave, "start", 150.5).loop_start == 150.5
        assert set_loop_edge(wave, "end", 350.0).loop_end == 350.0

    def test_set_loop_edge_past_other_edge_swaps(self):
        wave = sine_wave(loop_start=100.0, loop_end=400.0)
        result = set_loop_edge(wave, "start", 500.0)
        assert (result.loop_start, result.loop_end) == (400.0, 500.0)

    def test_set_loop_edge_without_loop(self):
        with pytest.raises(ValueError, match="no loop"):
            set_loop_edge(sine_wave(), "start", 10.0)

    def test_clear_loop(self):
        result = clear_loop(sine_wave(loop_start=100.0, loop_end=400.0))
        assert not result.has_loop
        assert result.loop_end == NO_LOOP

    def test_snap_loop_to_samples_rounds_half_up(self):
        wave = sine_wave(loop_start=10.5, loop_end=300.49)
        result = snap_loop_to_samples(wave)
        assert (result.loop_start, result.loop_end) == (11.0, 300.0)

    def test_snap_loop_to_samples_rejects_collapsed_loop(self):
        """A loop narrower than a sample can round to nothing."""
        wave = sine_wave(loop_start=0.2, loop_end=0.4)
        with pytest.raises(ValueError, match="empty"):
            snap_loop_to_samples(wave)


class TestPipelines:
    """Test the composed editing operations."""

    def test_trim_loop(self):
        wave = sine_wave(loop_start=100.25, loop_end=300.5)
        result = trim_loop(wave)
        assert len(result) == 301 + SLOW_PADDING

    def test_round_tuning(self):
        wave = sine_wave(loop_start=100.25, loop_end=300.5).replace(root_fine=40)
        result = round_tuning(wave)
        assert result.root_fine == 0
        assert len(result) == math.ceil(result.loop_end) + SLOW_PADDING

    def test_align_loop(self):
        wave = sine_wave(loop_start=100.25, loop_end=300.5)
        result = align_loop(wave)
        assert result.loop_length == 201
        assert result.loop_start == math.floor(result.loop_start)

    def test_align_loop_without_loop(self):
        wave = sine_wave()
        assert align_loop(wave) is wave

    def test_prepare_export(self):
        wave = sine_wave(loop_start=100.25, loop_end=300.5)
        result = prepare_export(wave)

        assert result.loop_length == 201
        assert result.loop_end == len(result)
        assert result.loop_start == math.floor(result.loop_start)
