"""Wave file reader.

Audio is decoded with soundfile; loop points and tuning come from the
``smpl`` chunk when the file has one.
"""

import logging
from pathlib import Path

import soundfile as sf

from loopedit.format.riff import SMPL_ID, RiffError, read_chunk, read_fmt_chunk
from loopedit.format.types import FRACTION_SCALE, LoopType, SmplChunk
from loopedit.format.validation import ValidationError, validate_wave
from loopedit.types import DEFAULT_ROOT_NOTE, NO_LOOP, Wave
from loopedit.utils import round_half_up

logger = logging.getLogger(__name__)


def _tuning_from_smpl(smpl: SmplChunk) -> tuple[int, int]:
    root_note = smpl.unity_note
    root_fine = round_half_up(smpl.pitch_fraction / FRACTION_SCALE * 100)
    if root_fine == 100:
        root_note += 1
        root_fine = 0
    return root_note, root_fine


def _loop_from_smpl(smpl: SmplChunk) -> tuple[float, float]:
    if not smpl.loops:
        return NO_LOOP, NO_LOOP

    loop = smpl.loops[0]
    if LoopType.from_value(loop.loop_type) is not LoopType.FORWARD:
        raise ValidationError("Unsupported loop type", field="loop_type")

    # smpl loop ends are inclusive
    return float(loop.start), float(loop.end + 1)


def load_wave(path: Path | str, *, validate: bool = True) -> Wave:
    """Load a mono WAV file with its loop and root note.

    Args:
        path: Path to the WAV file.
        validate: Whether to validate the loaded wave.

    Returns:
        Wave with float32 samples. Without a ``smpl`` chunk the root note is
        60 with no fine tuning and there is no loop.

    Raises:
        RiffError: If the file is missing or not a valid WAV.
        ValidationError: If the file is not mono, holds no samples, uses a
            loop type other than forward, or fails validation.
    """
    path = Path(path)

    _, num_channels, _, _ = read_fmt_chunk(path)
    if num_channels != 1:
        raise ValidationError("File is not mono", field="channels")

    try:
        samples, sample_rate = sf.read(path, dtype="float32")
    except sf.LibsndfileError as e:
        raise RiffError(f"Cannot decode audio in {path}: {e}") from e

    if len(samples) == 0:
        raise ValidationError("Wave is empty", field="samples")

    smpl_data = read_chunk(path, SMPL_ID)
    if smpl_data is None:
        root_note, root_fine = DEFAULT_ROOT_NOTE, 0
        loop_start, loop_end = NO_LOOP, NO_LOOP
    else:
        smpl = SmplChunk.from_bytes(smpl_data)
        root_note, root_fine = _tuning_from_smpl(smpl)
        loop_start, loop_end = _loop_from_smpl(smpl)

    wave = Wave(
        samples=samples,
        sample_rate=sample_rate,
        loop_start=loop_start,
        loop_end=loop_end,
        root_note=root_note,
        root_fine=root_fine,
    )

    if validate:
        result = validate_wave(wave)
        if not result.valid:
            raise ValidationError(f"Wave validation failed: {result.errors}")
        for warning in result.warnings:
            logger.warning("%s: %s", path.name, warning)

    logger.debug(
        "Loaded %s: %d samples at %d Hz, loop [%s, %s), root %d + %d cents",
        path,
        len(wave),
        sample_rate,
        loop_start,
        loop_end,
        root_note,
        root_fine,
    )
    return wave
