import logging
from dataclasses import dataclass, field

import numpy as np
from numba import njit

from loopedit.dsp.kernel import DEFAULT_TABLE, fast_eval
from loopedit.types import SampleBuffer, Wave
from loopedit.utils import round_half_up

logger = logging.getLogger(__name__)

PEAK_OVERSAMPLING = 10
# Level 0 scans offsets -5/10 .. 5/10 around each sample
PEAK_SPAN = 5
MAX_CHUNK_WIDTH = 8


@dataclass
class PeakPyramid:
    """Min/max envelopes of a wave at successively halved resolutions.

    Level 0 holds one entry per sample; level ``L`` entry ``i`` covers samples
    ``[i * 2**L, (i + 1) * 2**L)``.
    """

    min: list[SampleBuffer] = field(default_factory=list)
    max: list[SampleBuffer] = field(default_factory=list)
    wave_id: int | None = None

    @property
    def length(self) -> int:
        return len(self.min[0]) if self.min else 0

    @property
    def num_levels(self) -> int:
        return len(self.min)


@njit
def _oversampled_extremes(table: np.ndarray, samples: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    length = samples.shape[0]
    out_min = np.empty(length, dtype=np.float32)
    out_max = np.empty(length, dtype=np.float32)
    for i in range(length):
        low = np.inf
        high = -np.inf
        for o in range(-PEAK_SPAN, PEAK_SPAN + 1):
            value = fast_eval(table, samples, i + o / PEAK_OVERSAMPLING)
            low = min(low, value)
            high = max(high, value)
        out_min[i] = low
        out_max[i] = high
    return out_min, out_max


def build_peak_pyramid(wave: Wave, wave_id: int | None = None) -> PeakPyramid:
    """Build the display peak index for ``wave``.

    Args:
        wave: Wave to index
        wave_id: Identifier stored on the pyramid, e.g. drawn from an id generator

    Returns:
        PeakPyramid whose level 0 holds the true min/max over +-0.5 samples
        around each sample, found by evaluating the fast kernel at 11 points
    """
    samples = wave.samples
    length = len(samples)
    if length == 0:
        empty = np.zeros(0, dtype=np.float32)
        return PeakPyramid(min=[empty], max=[empty.copy()], wave_id=wave_id)

    current_min, current_max = _oversampled_extremes(DEFAULT_TABLE, samples)
    pyramid = PeakPyramid(min=[current_min], max=[current_max], wave_id=wave_id)

    while len(current_min) > 1:
        if len(current_min) % 2:
            # Dangling last entry pairs with itself
            current_min = np.append(current_min, current_min[-1])
            current_max = np.append(current_max, current_max[-1])
        current_min = np.minimum(current_min[0::2], current_min[1::2])
        current_max = np.maximum(current_max[0::2], current_max[1::2])
        pyramid.min.append(current_min)
        pyramid.max.append(current_max)

    logger.debug("Built %d peak levels for %d samples", pyramid.num_levels, length)
    return pyramid


def query_peaks(
    pyramid: PeakPyramid,
    start: float,
    end: float,
    columns: int,
) -> tuple[SampleBuffer, SampleBuffer]:
    """Aggregate peaks for ``columns`` equal-width chunks of ``[start, end)``.

    Each chunk reads from the coarsest level where it spans fewer than 8
    entries, so the work per column stays bounded at any zoom. Columns
    entirely outside the wave are left at zero. Zero columns yield empty arrays.

    Returns:
        Tuple of (min, max) arrays with one entry per column
    """
    out_min = np.zeros(columns, dtype=np.float32)
    out_max = np.zeros(columns, dtype=np.float32)
    if columns == 0:
        return out_min, out_max

    width = (end - start) / columns
    length = pyramid.length

    for column in range(columns):
        chunk_start = round_half_up(start + column * width)
        chunk_end = round_half_up(start + (column + 1) * width)
        if chunk_end <= 0 or chunk_start >= length:
            continue

        chunk_start = max(0, chunk_start)
        chunk_end = min(length, chunk_end)
        if chunk_start == chunk_end:
            chunk_end += 1

        level = 0
        while chunk_end - chunk_start >= MAX_CHUNK_WIDTH:
            level += 1
            chunk_start //= 2
            chunk_end //= 2

        out_min[column] = pyramid.min[level][chunk_start:chunk_end].min()
        out_max[column] = pyramid.max[level][chunk_start:chunk_end].max()

    return out_min, out_max

