"""Loop editing transforms.

Every transform takes a Wave and returns a new one; the input is never
modified. Transforms that only make sense for a looped wave return their input
unchanged when there is no loop.

Transforms that resample by non-integer ratios (loop-length quantization,
fine-tuning rounding, crossfade echo) use the slow kernel. Peak scanning and
zero-crossing search use the fast kernel.
"""

import logging
import math

import numpy as np
from numba import njit

from loopedit.dsp.kernel import DEFAULT_TABLE, fast_eval, slow_eval_many
from loopedit.dsp.loop import slow_materialize
from loopedit.types import InterpolationTable, LoopEdge, SampleBuffer, Wave
from loopedit.utils import assert_exhaustiveness, round_half_up

logger = logging.getLogger(__name__)

SILENCE_THRESHOLD = 0.001
PEAK_OVERSAMPLING = 10
ZERO_CROSSING_STEPS = 20


def crossfade(wave: Wave, fade_length: int) -> Wave:
    """Fade the end of the loop into the material just before the loop start.

    Over the last ``fade_length`` samples before ``loop_end`` the output moves
    linearly from the original samples to an echo read one loop length
    earlier, so the waveform arriving at the seam matches what follows the
    jump back to ``loop_start``.
    """
    if not wave.has_loop:
        return wave

    fade_length = min(fade_length, math.floor(wave.loop_length))
    if fade_length <= 0:
        return wave

    fade_start = wave.loop_end - fade_length
    indices = np.arange(math.ceil(fade_start), math.ceil(wave.loop_end))
    arg = (indices - fade_start) / fade_length
    echo = slow_eval_many(1.0, wave.samples, wave.loop_start - (wave.loop_end - indices))

    out = wave.samples.copy()
    out[indices] = (1.0 - arg) * wave.samples[indices] + arg * echo

    logger.debug("Crossfaded %d samples ending at %.3f", len(indices), wave.loop_end)
    return wave.replace(samples=out)


def quantize_loop_length(wave: Wave) -> Wave:
    """Resample so the loop spans a whole number of samples.

    The whole buffer is stretched by ``ceil(loop_length) / loop_length`` and
    shifted by a sub-sample offset so the new loop start lands on an integer.
    The sample rate is scaled by the same ratio to preserve pitch.
    """
    loop_length = wave.loop_length
    if loop_length < 1:
        return wave

    new_length = math.ceil(loop_length)
    if new_length == loop_length:
        return wave

    rate = new_length / loop_length
    scaled_start = wave.loop_start * rate
    new_start = math.ceil(scaled_start)
    offset = new_start - scaled_start

    count = math.ceil(len(wave) * rate + offset)
    positions = (np.arange(count) - offset) / rate
    out = slow_eval_many(1.0, wave.samples, positions)

    logger.debug(
        "Quantized loop length %.4f -> %d (rate %.6f, offset %.4f)",
        loop_length,
        new_length,
        rate,
        offset,
    )
    return wave.replace(
        samples=out,
        sample_rate=round_half_up(wave.sample_rate * rate),
        loop_start=new_start,
        loop_end=new_start + new_length,
    )


def round_tuning_fine(wave: Wave) -> Wave:
    """Resample to remove the cents offset from the root note.

    Offsets below 50 cents are tuned down to ``root_note``; larger offsets are
    tuned up to the next semitone, which becomes the new root.
    """
    if wave.root_fine == 0:
        return wave

    if wave.root_fine < 50:
        rate = 2 ** (-wave.root_fine / 1200)
        root_note = wave.root_note
    else:
        rate = 2 ** ((100 - wave.root_fine) / 1200)
        root_note = wave.root_note + 1

    # Low-pass only when reading faster than the source rate
    cutoff = min(rate, 1.0)
    positions = np.arange(math.ceil(len(wave) / rate)) * rate
    out = slow_eval_many(cutoff, wave.samples, positions)

    logger.debug("Rounded %d cents with rate %.6f", wave.root_fine, rate)
    return wave.replace(
        samples=out,
        loop_start=wave.loop_start / rate if wave.has_loop else wave.loop_start,
        loop_end=wave.loop_end / rate if wave.has_loop else wave.loop_end,
        root_note=root_note,
        root_fine=0,
    )


@njit
def _oversampled_peak(table: np.ndarray, samples: np.ndarray) -> float:
    peak = 0.0
    for i in range(samples.shape[0]):
        for o in range(PEAK_OVERSAMPLING):
            peak = max(peak, abs(fast_eval(table, samples, i + o / PEAK_OVERSAMPLING)))
    return peak


def true_peak(samples: SampleBuffer, table: InterpolationTable = DEFAULT_TABLE) -> float:
    """Peak magnitude including inter-sample overshoot, by 10x oversampling."""
    return float(_oversampled_peak(table, samples))


def normalize(wave: Wave) -> Wave:
    """Scale so the true peak reaches 1.0. Near-silent waves are left alone."""
    peak = true_peak(wave.samples)
    if peak < SILENCE_THRESHOLD:
        logger.debug("Skipping normalization, peak %.6f below threshold", peak)
        return wave

    return wave.replace(samples=wave.samples / peak)


def truncate_to_loop(wave: Wave) -> Wave:
    """Drop everything from ``floor(loop_end)`` on and floor both loop bounds."""
    if not wave.has_loop:
        return wave

    end = math.floor(wave.loop_end)
    return wave.replace(
        samples=wave.samples[:end],
        loop_start=math.floor(wave.loop_start),
        loop_end=end,
    )


def snap_to_zero_crossing(
    samples: SampleBuffer,
    pos: float,
    table: InterpolationTable = DEFAULT_TABLE,
) -> float:
    """Bisect ``[pos - 0.5, pos + 0.5]`` towards a zero crossing.

    Returns the midpoint of the remaining bracket once its ends have the same
    sign, or after 20 steps.
    """
    lower = pos - 0.5
    upper = pos + 0.5
    for _ in range(ZERO_CROSSING_STEPS):
        middle = (lower + upper) / 2
        lower_sign = np.sign(fast_eval(table, samples, lower))
        if lower_sign == np.sign(fast_eval(table, samples, upper)):
            return middle

        if lower_sign == np.sign(fast_eval(table, samples, middle)):
            lower = middle
        else:
            upper = middle

    return (lower + upper) / 2


def _clamp_position(wave: Wave, position: float) -> float:
    return min(max(position, 0.0), float(len(wave)))


def set_loop(wave: Wave, loop_start: float, loop_end: float) -> Wave:
    """Set both loop bounds, ordered and clamped to the buffer."""
    start = _clamp_position(wave, min(loop_start, loop_end))
    end = _clamp_position(wave, max(loop_start, loop_end))
    if start >= end:
        raise ValueError(f"Loop [{loop_start}, {loop_end}) is empty within {len(wave)} samples")
    return wave.with_loop(start, end)


def set_loop_edge(wave: Wave, edge: LoopEdge, position: float) -> Wave:
    """Move one loop edge to ``position``.

    Dragging an edge past the other one swaps their roles, so the result is
    always ordered.
    """
    if not wave.has_loop:
        raise ValueError("Wave has no loop to edit")

    match edge:
        case "start":
            anchor = wave.loop_end
        case "end":
            anchor = wave.loop_start
        case _:
            assert_exhaustiveness(edge)

    return set_loop(wave, position, anchor)


def clear_loop(wave: Wave) -> Wave:
    return wave.without_loop()


def snap_loop_to_samples(wave: Wave) -> Wave:
    """Round both loop bounds to whole samples.

    Raises:
        ValueError: If both bounds round to the same sample, e.g. a loop of
            [0.2, 0.4).
    """
    if not wave.has_loop:
        return wave
    return set_loop(wave, round_half_up(wave.loop_start), round_half_up(wave.loop_end))


def snap_loop_to_zero_crossings(wave: Wave) -> Wave:
    if not wave.has_loop:
        return wave

    start = snap_to_zero_crossing(wave.samples, wave.loop_start)
    end = snap_to_zero_crossing(wave.samples, wave.loop_end)
    logger.debug(
        "Snapped loop [%.3f, %.3f) to [%.4f, %.4f)", wave.loop_start, wave.loop_end, start, end
    )
    return set_loop(wave, start, end)


def trim_loop(wave: Wave) -> Wave:
    """Replace everything after the loop with one unrolled loop pass."""
    return slow_materialize(wave)


def round_tuning(wave: Wave) -> Wave:
    return slow_materialize(round_tuning_fine(slow_materialize(wave)))


def align_loop(wave: Wave) -> Wave:
    if not wave.has_loop:
        return wave
    return slow_materialize(quantize_loop_length(slow_materialize(wave)))


def prepare_export(wave: Wave) -> Wave:
    """Quantize the loop length and cut the sample at the loop end, ready to save."""
    return truncate_to_loop(quantize_loop_length(slow_materialize(wave)))
