"""Wave file writer.

Writes PCM audio with soundfile, then appends a ``smpl`` chunk recording the
root note, fine tuning and loop.
"""

import logging
import math
from pathlib import Path

import numpy as np
import soundfile as sf

from loopedit.format.riff import SMPL_ID, append_chunk
from loopedit.format.types import FRACTION_SCALE, LoopType, SmplChunk, SmplLoop
from loopedit.types import BitDepth, Wave
from loopedit.utils import assert_exhaustiveness

logger = logging.getLogger(__name__)


def _subtype(bit_depth: BitDepth) -> str:
    match bit_depth:
        case 16:
            return "PCM_16"
        case 24:
            return "PCM_24"
        case 32:
            return "FLOAT"
        case _:
            assert_exhaustiveness(bit_depth)


def build_smpl_chunk(wave: Wave) -> SmplChunk:
    """Sampler metadata for ``wave``. Loop bounds are floored to whole samples."""
    loops = []
    if wave.has_loop:
        loops.append(
            SmplLoop(
                start=math.floor(wave.loop_start),
                end=math.floor(wave.loop_end) - 1,
                loop_type=LoopType.FORWARD,
            )
        )

    return SmplChunk(
        unity_note=min(max(wave.root_note, 0), 127),
        pitch_fraction=math.floor(wave.root_fine / 100 * FRACTION_SCALE),
        sample_period=math.floor(1e9 / wave.sample_rate),
        loops=loops,
    )


def save_wave(path: Path | str, wave: Wave, bit_depth: BitDepth = 16) -> None:
    """Save a wave as a mono WAV file with a ``smpl`` chunk.

    Samples are clipped to [-1, 1] before encoding.

    Args:
        path: Output file path.
        wave: Wave to write.
        bit_depth: 16 or 24 for integer PCM, 32 for float.

    Raises:
        ValueError: If the wave has a non-positive sample rate.
    """
    if wave.sample_rate <= 0:
        raise ValueError(f"sample_rate must be > 0, got {wave.sample_rate}")

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    samples = np.clip(wave.samples, -1.0, 1.0)
    sf.write(
        path,
        samples,
        round(wave.sample_rate),
        subtype=_subtype(bit_depth),
        format="WAV",
    )
    append_chunk(path, SMPL_ID, build_smpl_chunk(wave).to_bytes())

    logger.debug("Saved %d samples to %s as %d-bit", len(wave), path, bit_depth)
