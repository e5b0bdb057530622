"""Looped sample file format.

Waves are stored as standard mono WAV files. Loop points and tuning live in
the ``smpl`` chunk that samplers already understand:

    +----------------------------------------+
    | RIFF Header ("WAVE")                   |
    +----------------------------------------+
    | fmt  chunk (audio format)              |
    +----------------------------------------+
    | data chunk (mono samples)              |
    |   - 16/24-bit PCM or 32-bit float      |
    +----------------------------------------+
    | smpl chunk                             |
    |   - Unity note + pitch fraction        |
    |   - One forward loop, inclusive end    |
    +----------------------------------------+

Example Usage
-------------
>>> from loopedit.format import load_wave, save_wave
>>> wave = load_wave("pad.wav")
>>> print(wave.loop_start, wave.loop_end, wave.root_note)
>>> save_wave("pad_edited.wav", wave, bit_depth=24)
"""

from loopedit.format.reader import load_wave
from loopedit.format.riff import RiffError
from loopedit.format.types import LoopType, SmplChunk, SmplLoop
from loopedit.format.validation import ValidationError, ValidationResult, validate_wave
from loopedit.format.writer import build_smpl_chunk, save_wave

__all__ = [
    # Types
    "LoopType",
    "SmplChunk",
    "SmplLoop",
    # Reader
    "load_wave",
    # Writer
    "save_wave",
    "build_smpl_chunk",
    # Validation
    "validate_wave",
    "ValidationResult",
    "ValidationError",
    "RiffError",
]
