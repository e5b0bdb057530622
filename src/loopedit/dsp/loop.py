"""Loop-aware positions and loop unrolling.

A looped wave is played by advancing a virtual position and folding it back
into ``[loop_start, loop_end)`` whenever it passes the loop end. The
materializers bake one pass through the loop (plus some padding) into a flat
buffer, so a consumer can read ahead past the loop end without special
casing the wrap.
"""

import logging
import math

import numpy as np
from numba import njit

from loopedit.dsp.kernel import DEFAULT_TABLE, fast_eval, slow_eval
from loopedit.types import NO_LOOP, Interpolator, Wave

logger = logging.getLogger(__name__)

FAST_PADDING = 12
SLOW_PADDING = 256


@njit
def fold_position(loop_start: float, loop_end: float, position: float) -> float:
    if loop_start == NO_LOOP or position < loop_end:
        return position

    width = loop_end - loop_start
    after = position - loop_end
    return loop_start + after - width * np.floor(after / width)


def fold(wave: Wave, position: float) -> float:
    """Map ``position`` into the loop region of ``wave``.

    Positions before the loop end (or any position when there is no loop)
    are returned unchanged.
    """
    return fold_position(wave.loop_start, wave.loop_end, float(position))


def _materialized_length(wave: Wave, padding: int) -> int:
    return math.ceil(wave.loop_end) + padding


def materialize(wave: Wave, interpolate: Interpolator, padding: int) -> Wave:
    """Unroll the loop of ``wave`` into a flat buffer.

    Args:
        wave: Source wave; returned unchanged when it has no loop
        interpolate: Called as ``interpolate(samples, pos)`` for fractional positions
        padding: Extra samples written past ``ceil(loop_end)``

    Returns:
        Wave with the same loop and tuning whose buffer is
        ``ceil(loop_end) + padding`` samples long
    """
    if not wave.has_loop:
        return wave

    samples = wave.samples
    out = np.empty(_materialized_length(wave, padding), dtype=np.float32)
    pos = 0.0
    for i in range(len(out)):
        if pos == math.floor(pos):
            out[i] = samples[int(pos)]
        else:
            out[i] = interpolate(samples, pos)
        pos = fold(wave, pos + 1)

    return wave.replace(samples=out)


@njit
def _materialize_loop(
    samples: np.ndarray,
    loop_start: float,
    loop_end: float,
    length: int,
    table: np.ndarray,
    cutoff: float,
    exact: bool,
) -> np.ndarray:
    out = np.empty(length, dtype=np.float32)
    pos = 0.0
    for i in range(length):
        floor_pos = np.floor(pos)
        if pos == floor_pos:
            out[i] = samples[int(floor_pos)]
        elif exact:
            out[i] = slow_eval(cutoff, samples, pos)
        else:
            out[i] = fast_eval(table, samples, pos)
        pos = fold_position(loop_start, loop_end, pos + 1.0)
    return out


def fast_materialize(wave: Wave) -> Wave:
    """Unroll the loop with the fast kernel, ready for real-time playback."""
    if not wave.has_loop:
        return wave

    out = _materialize_loop(
        wave.samples,
        wave.loop_start,
        wave.loop_end,
        _materialized_length(wave, FAST_PADDING),
        DEFAULT_TABLE,
        1.0,
        False,
    )
    return wave.replace(samples=out)


def slow_materialize(wave: Wave) -> Wave:
    """Unroll the loop with the slow kernel, ahead of loop-editing transforms."""
    if not wave.has_loop:
        return wave

    logger.debug(
        "Materializing loop [%.3f, %.3f) of %d samples with slow kernel",
        wave.loop_start,
        wave.loop_end,
        len(wave),
    )
    out = _materialize_loop(
        wave.samples,
        wave.loop_start,
        wave.loop_end,
        _materialized_length(wave, SLOW_PADDING),
        DEFAULT_TABLE,
        1.0,
        True,
    )
    return wave.replace(samples=out)
