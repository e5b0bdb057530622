import math

from loopedit.types import Wave
from loopedit.utils import round_half_up

NOTE_NAMES = ["A", "A#", "B", "C", "C#", "D", "D#", "E", "F", "F#", "G", "G#"]
A4_MIDI = 69


def midi_to_name(midi: int) -> str:
    """Note name with octave, e.g. 60 -> 'C4', 69 -> 'A4'."""
    return f"{NOTE_NAMES[(midi + 3) % 12]}{midi // 12 - 1}"


def loop_note(
    wave: Wave,
    loop_count: int = 1,
    tuning_standard: float = 440.0,
) -> tuple[int, int]:
    """Pitch of the loop when played at native rate.

    Args:
        wave: Looped wave
        loop_count: Number of waveform cycles contained in the loop
        tuning_standard: Frequency of A4 in Hz

    Returns:
        Tuple of (MIDI note, cents in [0, 100))
    """
    if wave.loop_length < 1:
        raise ValueError("Loop must span at least one sample to have a pitch")

    freq = wave.sample_rate * loop_count / wave.loop_length
    midi_fine = math.log2(freq / tuning_standard) * 12 + A4_MIDI
    midi = math.floor(midi_fine)
    cents = round_half_up((midi_fine - midi) * 100)
    if cents == 100:
        midi += 1
        cents = 0
    return midi, cents


def with_fine_tuning(wave: Wave, cents: int, root_note: int | None = None) -> Wave:
    """Set the tuning, carrying whole semitones of ``cents`` into the root note."""
    base = wave.root_note if root_note is None else root_note
    semitones = math.floor(cents / 100)
    return wave.replace(root_note=base + semitones, root_fine=cents - semitones * 100)


def link_tuning_to_loop(
    wave: Wave,
    loop_count: int = 1,
    tuning_standard: float = 440.0,
) -> Wave:
    """Retune the root note to match the pitch implied by the loop length."""
    root_note, root_fine = loop_note(wave, loop_count, tuning_standard)
    return wave.replace(root_note=root_note, root_fine=root_fine)


def reference_tone_frequency(wave: Wave, tuning_standard: float = 440.0) -> float:
    """Frequency in Hz of the wave's root note plus cents."""
    return tuning_standard * 2 ** ((wave.root_note + wave.root_fine / 100 - A4_MIDI) / 12)
