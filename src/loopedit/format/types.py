"""Python types for the WAV ``smpl`` chunk.

The chunk stores the sampler metadata a loop editor cares about: the MIDI
unity note, a pitch fraction in units of 1/2^32 semitone, and a list of loops
whose end points are inclusive sample indices.
"""

import struct
from dataclasses import dataclass, field
from enum import IntEnum

from loopedit.format.riff import RiffError

SMPL_HEADER = struct.Struct("<9I")
SMPL_LOOP = struct.Struct("<6I")

FRACTION_SCALE = 2**32


class LoopType(IntEnum):
    """How a sampler plays the loop region."""

    FORWARD = 0
    """Jump back to the loop start at the loop end. The only supported type."""

    PING_PONG = 1
    """Alternate forward and backward passes."""

    REVERSE = 2
    """Play the loop backwards."""

    @classmethod
    def from_value(cls, value: int) -> "LoopType | None":
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass
class SmplLoop:
    """One loop record. ``end`` is the index of the last sample played."""

    start: int
    end: int
    loop_type: int = LoopType.FORWARD
    cue_point_id: int = 0
    fraction: int = 0
    play_count: int = 0

    def to_bytes(self) -> bytes:
        return SMPL_LOOP.pack(
            self.cue_point_id,
            self.loop_type,
            self.start,
            self.end,
            self.fraction,
            self.play_count,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "SmplLoop":
        cue_point_id, loop_type, start, end, fraction, play_count = SMPL_LOOP.unpack(data)
        return cls(
            start=start,
            end=end,
            loop_type=loop_type,
            cue_point_id=cue_point_id,
            fraction=fraction,
            play_count=play_count,
        )


@dataclass
class SmplChunk:
    """Contents of a ``smpl`` chunk."""

    unity_note: int = 60
    pitch_fraction: int = 0
    sample_period: int = 0
    loops: list[SmplLoop] = field(default_factory=list)
    manufacturer: int = 0
    product: int = 0
    smpte_format: int = 0
    smpte_offset: int = 0
    sampler_data: bytes = b""

    def to_bytes(self) -> bytes:
        header = SMPL_HEADER.pack(
            self.manufacturer,
            self.product,
            self.sample_period,
            self.unity_note,
            self.pitch_fraction,
            self.smpte_format,
            self.smpte_offset,
            len(self.loops),
            len(self.sampler_data),
        )
        return header + b"".join(loop.to_bytes() for loop in self.loops) + self.sampler_data

    @classmethod
    def from_bytes(cls, data: bytes) -> "SmplChunk":
        """Parse a chunk payload.

        Raises:
            RiffError: If the payload is shorter than its declared loop count.
        """
        if len(data) < SMPL_HEADER.size:
            raise RiffError(f"smpl chunk too small: {len(data)} bytes")

        (
            manufacturer,
            product,
            sample_period,
            unity_note,
            pitch_fraction,
            smpte_format,
            smpte_offset,
            num_loops,
            sampler_data_size,
        ) = SMPL_HEADER.unpack_from(data)

        loops_end = SMPL_HEADER.size + num_loops * SMPL_LOOP.size
        if len(data) < loops_end:
            raise RiffError(f"smpl chunk declares {num_loops} loops but holds {len(data)} bytes")

        loops = [
            SmplLoop.from_bytes(data[offset : offset + SMPL_LOOP.size])
            for offset in range(SMPL_HEADER.size, loops_end, SMPL_LOOP.size)
        ]
        return cls(
            unity_note=unity_note,
            pitch_fraction=pitch_fraction,
            sample_period=sample_period,
            loops=loops,
            manufacturer=manufacturer,
            product=product,
            smpte_format=smpte_format,
            smpte_offset=smpte_offset,
            sampler_data=data[loops_end : loops_end + sampler_data_size],
        )
