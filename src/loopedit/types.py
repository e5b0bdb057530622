import dataclasses
from collections.abc import Callable
from dataclasses import dataclass
from functools import cached_property
from typing import TYPE_CHECKING, Any, Literal, TypeAlias

import numpy as np
from numpy.typing import NDArray

if TYPE_CHECKING:
    from loopedit.dsp.peaks import PeakPyramid

SampleBuffer: TypeAlias = NDArray[np.float32]
InterpolationTable: TypeAlias = NDArray[np.float32]
Interpolator: TypeAlias = Callable[[SampleBuffer, float], float]

BitDepth = Literal[16, 24, 32]
LoopEdge = Literal["start", "end"]

# Loop bounds sentinel meaning "no loop"
NO_LOOP = -1.0
DEFAULT_ROOT_NOTE = 60


@dataclass(frozen=True, eq=False)
class Wave:
    """A mono sample with optional loop region and root-note tuning.

    Waves are values: the sample buffer is copied on construction and marked
    read-only, and every edit produces a new Wave.

    Args:
        samples: Mono samples, converted to float32
        sample_rate: Sample rate in Hz
        loop_start: Loop start in fractional samples, or NO_LOOP
        loop_end: Loop end (exclusive) in fractional samples, or NO_LOOP
        root_note: MIDI note the sample plays at native rate
        root_fine: Cents above root_note, in [0, 100)
    """

    samples: SampleBuffer
    sample_rate: float
    loop_start: float = NO_LOOP
    loop_end: float = NO_LOOP
    root_note: int = DEFAULT_ROOT_NOTE
    root_fine: int = 0

    def __post_init__(self) -> None:
        samples = np.array(self.samples, dtype=np.float32)
        if samples.ndim != 1:
            raise ValueError(f"Wave samples must be 1-D, got shape {samples.shape}")
        samples.flags.writeable = False

        object.__setattr__(self, "samples", samples)
        object.__setattr__(self, "sample_rate", float(self.sample_rate))
        object.__setattr__(self, "loop_start", float(self.loop_start))
        object.__setattr__(self, "loop_end", float(self.loop_end))
        object.__setattr__(self, "root_note", int(self.root_note))
        object.__setattr__(self, "root_fine", int(self.root_fine))

    def __len__(self) -> int:
        return len(self.samples)

    @property
    def has_loop(self) -> bool:
        return self.loop_start != NO_LOOP

    @property
    def loop_length(self) -> float:
        """Loop length in samples (0.0 when there is no loop)."""
        if not self.has_loop:
            return 0.0
        return self.loop_end - self.loop_start

    @cached_property
    def peaks(self) -> "PeakPyramid":
        """Peak pyramid for display, built on first access."""
        from loopedit.dsp.peaks import build_peak_pyramid

        return build_peak_pyramid(self)

    def replace(self, **changes: Any) -> "Wave":
        return dataclasses.replace(self, **changes)

    def with_loop(self, loop_start: float, loop_end: float) -> "Wave":
        return self.replace(loop_start=loop_start, loop_end=loop_end)

    def without_loop(self) -> "Wave":
        return self.replace(loop_start=NO_LOOP, loop_end=NO_LOOP)


@dataclass
class EditorSettings:
    crossfade_length: int = 24
    tuning_standard: float = 440.0
    loop_count: int = 1
    tune_volume: float = 0.0
    linked: bool = False


@dataclass
class RenderParams:
    device_sample_rate: int = 44100
    seconds: float = 2.0
    bit_depth: BitDepth = 16


@dataclass
class DisplayParams:
    columns: int = 1024
    figsize: tuple[float, float] = (14.0, 4.0)
