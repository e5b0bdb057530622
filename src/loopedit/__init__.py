"""loopedit - Looped sample editing toolkit.

This package provides tools for placing loop points in mono samples,
smoothing and aligning loops by band-limited resampling, tuning them to a
root note, and exporting them as WAV files with a ``smpl`` chunk that
hardware and software samplers understand.

Resampling
----------
Two windowed-sinc interpolators back every edit: a fast 24-tap table used for
playback and display, and a slow 512-tap kernel used by the editing
transforms in ``loopedit.dsp.transforms``.

Example Usage
-------------
>>> from loopedit import load_wave, save_wave
>>> from loopedit.dsp.transforms import crossfade, prepare_export, set_loop
>>>
>>> wave = load_wave("pad.wav")
>>> wave = set_loop(wave, 10250.4, 18420.9)
>>> wave = crossfade(wave, 256)
>>>
>>> # Quantize the loop length and cut the sample at the loop end
>>> save_wave("pad_looped.wav", prepare_export(wave), bit_depth=24)
"""

# Re-export the common entry points for convenience
from loopedit.format import (
    LoopType,
    RiffError,
    ValidationError,
    load_wave,
    save_wave,
    validate_wave,
)
from loopedit.types import EditorSettings, RenderParams, Wave

__all__ = [
    # Types
    "Wave",
    "EditorSettings",
    "RenderParams",
    "LoopType",
    # Reader
    "load_wave",
    # Writer
    "save_wave",
    # Validation
    "validate_wave",
    "ValidationError",
    "RiffError",
]
