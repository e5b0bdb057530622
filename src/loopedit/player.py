"""Offline playback voice.

``LoopPlayer`` mirrors what an audio callback does with a wave: it unrolls the
loop once on start, then renders blocks by evaluating the fast kernel at a
position that advances by ``wave_rate / device_rate`` per output sample and
folds back into the loop. A sine reference tone can be mixed in for tuning
checks.
"""

import logging

import numpy as np
from numba import njit

from loopedit.dsp.kernel import DEFAULT_TABLE, fast_eval, get_table
from loopedit.dsp.loop import fast_materialize, fold_position
from loopedit.types import InterpolationTable, SampleBuffer, Wave
from loopedit.tuning import reference_tone_frequency

logger = logging.getLogger(__name__)

HEADROOM = 0.8
STOPPED = -1.0


@njit
def _render_block(
    out: np.ndarray,
    samples: np.ndarray,
    table: np.ndarray,
    loop_start: float,
    loop_end: float,
    pos: float,
    step: float,
    tone_pos: float,
    tone_step: float,
    tone_volume: float,
) -> tuple[float, float]:
    length = samples.shape[0]
    for i in range(out.shape[0]):
        if pos >= length:
            pos = STOPPED
            break

        signal = fast_eval(table, samples, pos) * HEADROOM * (1.0 - tone_volume)
        out[i] = signal + np.sin(tone_pos * 2.0 * np.pi) * tone_volume
        pos = fold_position(loop_start, loop_end, pos + step)
        tone_pos = tone_pos + tone_step
        tone_pos = tone_pos - np.floor(tone_pos)
    return pos, tone_pos


class LoopPlayer:
    """Render a wave the way the real-time player would.

    Args:
        device_sample_rate: Output sample rate in Hz
    """

    def __init__(self, device_sample_rate: float = 44100.0):
        self._device_sample_rate = float(device_sample_rate)
        self._wave: Wave | None = None
        self._table: InterpolationTable = DEFAULT_TABLE
        self._pos = STOPPED
        self._step = 1.0
        self._tone_pos = 0.0
        self._tone_step = 0.0
        self._tone_volume = 0.0

    @property
    def position(self) -> float:
        """Playhead in source samples, or -1 when stopped."""
        return self._pos

    @property
    def playing(self) -> bool:
        return self._pos != STOPPED

    def start(self, wave: Wave) -> None:
        step = wave.sample_rate / self._device_sample_rate
        if step != self._step:
            if self._device_sample_rate < wave.sample_rate:
                # Reading faster than the device rate needs an anti-alias cutoff
                self._table = get_table(self._device_sample_rate / wave.sample_rate)
            else:
                self._table = DEFAULT_TABLE

        self._wave = fast_materialize(wave)
        self._step = step
        self._pos = 0.0
        logger.debug("Started playback at step %.6f", step)

    def stop(self) -> None:
        self._pos = STOPPED

    def tune(self, frequency: float, volume: float) -> None:
        """Set the reference tone frequency (Hz) and mix volume (0..1)."""
        self._tone_step = min(max(frequency / self._device_sample_rate, 0.0), 1.0)
        self._tone_volume = min(max(volume, 0.0), 1.0)

    def render(self, frames: int) -> SampleBuffer:
        """Render the next ``frames`` output samples; silence once stopped."""
        out = np.zeros(frames, dtype=np.float32)
        if self._wave is None or self._pos == STOPPED:
            return out

        self._pos, self._tone_pos = _render_block(
            out,
            self._wave.samples,
            self._table,
            self._wave.loop_start,
            self._wave.loop_end,
            self._pos,
            self._step,
            self._tone_pos,
            self._tone_step,
            self._tone_volume,
        )
        return out


def render_wave(
    wave: Wave,
    seconds: float,
    device_sample_rate: float = 44100.0,
    tune_volume: float = 0.0,
    tuning_standard: float = 440.0,
    block_size: int = 128,
) -> SampleBuffer:
    """Play ``wave`` for ``seconds`` and return the device-rate output."""
    player = LoopPlayer(device_sample_rate)
    player.tune(reference_tone_frequency(wave, tuning_standard), tune_volume)
    player.start(wave)

    total = int(round(seconds * device_sample_rate))
    blocks = [player.render(min(block_size, total - i)) for i in range(0, total, block_size)]
    if not blocks:
        return np.zeros(0, dtype=np.float32)
    return np.concatenate(blocks)
