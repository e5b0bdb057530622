"""Windowed-sinc interpolation in two precision tiers.

The fast tier reads weights from a precomputed table of 24 taps at 32
sub-sample offsets and linearly interpolates between neighbouring offset
rows. It is cheap enough to run once per output sample during playback.

The slow tier rebuilds a 512-tap kernel for every position. It is used by the
editing transforms that resample by arbitrary ratios, where the table's
interpolation error would accumulate.

Both tiers clamp reads outside the buffer to the first/last sample and return
the stored sample unchanged at integer positions.
"""

from functools import lru_cache

import numpy as np
from numba import njit
from numpy.typing import NDArray

from loopedit.types import InterpolationTable, SampleBuffer

TAPS = 24
CENTER_TAP = 11
SUBDIVISIONS = 32
TABLE_ROWS = SUBDIVISIONS + 1

SLOW_TAPS = 512
SLOW_CENTER_TAP = 255


@njit
def sinc(x: float) -> float:
    if x == 0.0:
        return 1.0
    v = np.pi * x
    return np.sin(v) / v


@njit
def kernel(x: float, cutoff: float, width: float) -> float:
    """Sinc low-pass at ``cutoff`` (ratio of Nyquist) under a sinc window ``width`` taps wide."""
    return sinc(cutoff * x) * sinc(2.0 * x / width)


@njit
def _fill_table(cutoff: float) -> np.ndarray:
    table = np.zeros((TABLE_ROWS, TAPS, 2), dtype=np.float32)
    weights = np.empty(TAPS, dtype=np.float64)

    for row in range(TABLE_ROWS):
        offset = row / SUBDIVISIONS
        total = 0.0
        for i in range(TAPS):
            weights[i] = kernel(offset - i + CENTER_TAP, cutoff, TAPS)
            total += weights[i]
        # Each row sums to 1 so DC gain is exact at every offset
        for i in range(TAPS):
            table[row, i, 0] = weights[i] / total

    for row in range(SUBDIVISIONS):
        for i in range(TAPS):
            table[row, i, 1] = table[row + 1, i, 0] - table[row, i, 0]

    return table


def build_table(cutoff: float = 1.0) -> InterpolationTable:
    """Build a fast-tier interpolation table.

    Args:
        cutoff: Low-pass cutoff as a ratio of the source Nyquist (<= 1).
            Use 1.0 for native-rate playback and ``output_rate / input_rate``
            when downsampling.

    Returns:
        Read-only float32 array of shape (33, 24, 2) holding (weight, delta)
        per offset row and tap.
    """
    if not 0.0 < cutoff <= 1.0:
        raise ValueError(f"Cutoff ratio must be in (0, 1], got {cutoff}")

    table = _fill_table(float(cutoff))
    table.flags.writeable = False
    return table


@lru_cache(maxsize=16)
def get_table(cutoff: float = 1.0) -> InterpolationTable:
    """Shared table for ``cutoff``, built once per distinct ratio."""
    return build_table(cutoff)


DEFAULT_TABLE = get_table(1.0)


@njit
def _sample_at(samples: np.ndarray, index: int) -> float:
    n = samples.shape[0]
    if n == 0:
        return 0.0
    if index < 0:
        return samples[0]
    if index >= n:
        return samples[n - 1]
    return samples[index]


@njit
def fast_eval(table: np.ndarray, samples: np.ndarray, pos: float) -> float:
    """Evaluate ``samples`` at fractional ``pos`` using a precomputed table."""
    floor_pos = np.floor(pos)
    index = int(floor_pos)
    if pos == floor_pos:
        return float(_sample_at(samples, index))

    offset = (pos - floor_pos) * SUBDIVISIONS
    row = int(np.floor(offset))
    residual = offset - row

    result = 0.0
    for i in range(TAPS):
        weight = table[row, i, 0] + table[row, i, 1] * residual
        result += _sample_at(samples, index + i - CENTER_TAP) * weight
    return result


@njit
def slow_eval(cutoff: float, samples: np.ndarray, pos: float) -> float:
    """Evaluate ``samples`` at fractional ``pos`` with a freshly sampled 512-tap kernel."""
    floor_pos = np.floor(pos)
    index = int(floor_pos)
    if pos == floor_pos:
        return float(_sample_at(samples, index))

    offset = pos - floor_pos
    total = 0.0
    result = 0.0
    for i in range(SLOW_TAPS):
        weight = kernel(offset - i + SLOW_CENTER_TAP, cutoff, SLOW_TAPS)
        total += weight
        result += _sample_at(samples, index + i - SLOW_CENTER_TAP) * weight
    return result / total


@njit
def _fast_eval_many(table: np.ndarray, samples: np.ndarray, positions: np.ndarray) -> np.ndarray:
    out = np.empty(positions.shape[0], dtype=np.float32)
    for k in range(positions.shape[0]):
        out[k] = fast_eval(table, samples, positions[k])
    return out


@njit
def _slow_eval_many(cutoff: float, samples: np.ndarray, positions: np.ndarray) -> np.ndarray:
    out = np.empty(positions.shape[0], dtype=np.float32)
    for k in range(positions.shape[0]):
        out[k] = slow_eval(cutoff, samples, positions[k])
    return out


def fast_eval_many(
    table: InterpolationTable,
    samples: SampleBuffer,
    positions: NDArray[np.floating],
) -> SampleBuffer:
    """Fast-tier evaluation at every position of a 1-D array."""
    return _fast_eval_many(table, samples, np.ascontiguousarray(positions, dtype=np.float64))


def slow_eval_many(
    cutoff: float,
    samples: SampleBuffer,
    positions: NDArray[np.floating],
) -> SampleBuffer:
    """Slow-tier evaluation at every position of a 1-D array."""
    return _slow_eval_many(
        float(cutoff), samples, np.ascontiguousarray(positions, dtype=np.float64)
    )
