"""RIFF/WAV chunk utilities.

soundfile handles the audio payload; these helpers cover the chunks it does
not, chiefly the ``smpl`` chunk carrying the loop points and root note.
"""

import logging
import struct
from pathlib import Path
from typing import BinaryIO

logger = logging.getLogger(__name__)

# FourCC identifiers
RIFF_ID = b"RIFF"
WAVE_ID = b"WAVE"
FMT_ID = b"fmt "
DATA_ID = b"data"
SMPL_ID = b"smpl"

# Audio format code for integer PCM
WAVE_FORMAT_PCM = 1


class RiffError(Exception):
    """Error reading or writing RIFF files."""


def read_chunk_header(f: BinaryIO) -> tuple[bytes, int]:
    """Read a RIFF chunk header (FourCC + size).

    Args:
        f: File handle positioned at the start of a chunk.

    Returns:
        Tuple of (chunk_id, chunk_size).

    Raises:
        RiffError: If the header cannot be read.
    """
    header = f.read(8)
    if len(header) < 8:
        raise RiffError("Unexpected end of file reading chunk header")

    chunk_id = header[:4]
    chunk_size = struct.unpack("<I", header[4:8])[0]
    return chunk_id, chunk_size


def find_chunk(f: BinaryIO, target_id: bytes, file_size: int) -> bytes | None:
    """Find a chunk by its FourCC identifier.

    Args:
        f: File handle positioned after the RIFF header (at first chunk).
        target_id: The FourCC identifier to search for.
        file_size: Total file size for bounds checking.

    Returns:
        The chunk data if found, None otherwise.
    """
    while f.tell() < file_size:
        try:
            chunk_id, chunk_size = read_chunk_header(f)
        except RiffError:
            return None

        if chunk_id == target_id:
            return f.read(chunk_size)

        # Chunks are word aligned
        f.seek(chunk_size + (chunk_size % 2), 1)

    return None


def _read_riff_header(f: BinaryIO, file_path: Path) -> int:
    """Validate the RIFF/WAVE header and return the total file size it declares."""
    riff_header = f.read(12)
    if len(riff_header) < 12:
        raise RiffError(f"File too small to be a valid WAV file: {file_path}")

    if riff_header[:4] != RIFF_ID or riff_header[8:12] != WAVE_ID:
        raise RiffError(f"Not a valid WAVE file: {file_path}")

    return struct.unpack("<I", riff_header[4:8])[0] + 8


def read_chunk(file_path: Path | str, chunk_id: bytes) -> bytes | None:
    """Read the payload of the first chunk with the given FourCC.

    Returns:
        The chunk data, or None if the file has no such chunk.

    Raises:
        RiffError: If the file cannot be opened or is not a valid WAV.
    """
    file_path = Path(file_path)

    try:
        f = open(file_path, "rb")
    except FileNotFoundError as e:
        raise RiffError(f"File not found: {file_path}") from e
    except OSError as e:
        raise RiffError(f"Cannot open file: {file_path}") from e

    with f:
        file_size = _read_riff_header(f, file_path)
        return find_chunk(f, chunk_id, file_size)


def read_fmt_chunk(file_path: Path | str) -> tuple[int, int, int, int]:
    """Read the fmt chunk to extract audio format information.

    Args:
        file_path: Path to the WAV file.

    Returns:
        Tuple of (audio_format, num_channels, sample_rate, bits_per_sample).

    Raises:
        RiffError: If the file is not a valid WAV or fmt chunk is missing.
    """
    fmt_data = read_chunk(file_path, FMT_ID)
    if fmt_data is None:
        raise RiffError("fmt chunk not found in WAV file")

    if len(fmt_data) < 16:
        raise RiffError("fmt chunk too small")

    audio_format, num_channels, sample_rate = struct.unpack("<HHI", fmt_data[0:8])
    bits_per_sample = struct.unpack("<H", fmt_data[14:16])[0]
    return audio_format, num_channels, sample_rate, bits_per_sample


def append_chunk(file_path: Path | str, chunk_id: bytes, data: bytes) -> None:
    """Append a chunk to an existing WAV file.

    This modifies the file in place, appending the chunk and updating the RIFF size.

    Args:
        file_path: Path to the WAV file.
        chunk_id: FourCC of the new chunk.
        data: Chunk payload.

    Raises:
        RiffError: If the file is not a valid WAV file.
    """
    if len(chunk_id) != 4:
        raise ValueError(f"Chunk id must be 4 bytes, got {chunk_id!r}")

    file_path = Path(file_path)

    with open(file_path, "r+b") as f:
        _read_riff_header(f, file_path)
        f.seek(4)
        current_riff_size = struct.unpack("<I", f.read(4))[0]

        f.seek(0, 2)
        f.write(chunk_id)
        f.write(struct.pack("<I", len(data)))
        f.write(data)

        chunk_total_size = 8 + len(data)
        if len(data) % 2:
            f.write(b"\x00")
            chunk_total_size += 1

        f.seek(4)
        f.write(struct.pack("<I", current_riff_size + chunk_total_size))

    logger.debug("Appended %r chunk of %d bytes to %s", chunk_id, len(data), file_path)
