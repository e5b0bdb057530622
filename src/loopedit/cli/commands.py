import logging
import sys
from pathlib import Path
from typing import Annotated, Literal

from cyclopts import App, Parameter
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from loopedit.cli.validators import (
    validate_midi_note,
    validate_non_negative_float,
    validate_positive_float,
    validate_positive_integer,
    validate_unit_interval,
)
from loopedit.dsp.transforms import (
    align_loop,
    clear_loop,
    crossfade,
    normalize,
    prepare_export,
    round_tuning,
    set_loop,
    snap_loop_to_samples,
    snap_loop_to_zero_crossings,
    true_peak,
)
from loopedit.format import (
    RiffError,
    ValidationError,
    load_wave,
    save_wave,
    validate_wave,
)
from loopedit.player import render_wave
from loopedit.plotting import waveform_figure
from loopedit.tuning import link_tuning_to_loop, loop_note, midi_to_name, with_fine_tuning
from loopedit.types import BitDepth, DisplayParams, EditorSettings, RenderParams, Wave

app = App(name="loopedit", help="Edit, tune and audition looped samples")
console = Console()

EDITOR_DEFAULTS = EditorSettings()
RENDER_DEFAULTS = RenderParams()
DISPLAY_DEFAULTS = DisplayParams()

SnapMode = Literal["sample", "zero"]


def print_error(message: str) -> None:
    """Print an error message in red."""
    console.print(message, style="bold red")


def print_success(message: str) -> None:
    """Print a success message in green."""
    console.print(message, style="bold green")


def print_warning(message: str) -> None:
    """Print a warning message in yellow."""
    console.print(message, style="bold yellow")


def configure_logging(verbose: bool) -> None:
    """Route library logging through rich; DEBUG when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=verbose)],
        force=True,
    )


def _load(source: Path) -> Wave | None:
    try:
        return load_wave(source)
    except RiffError as e:
        print_error(f"Error reading {source}: {e}")
    except ValidationError as e:
        print_error(f"Invalid wave {source}: {e}")
    return None


def _describe_loop(wave: Wave, loop_count: int, tuning_standard: float) -> str:
    if not wave.has_loop:
        return "none"

    description = f"[{wave.loop_start:g}, {wave.loop_end:g}) length {wave.loop_length:g}"
    if wave.loop_length >= 1:
        note, cents = loop_note(wave, loop_count, tuning_standard)
        description += f" ({midi_to_name(note)} +{cents}c)"
    return description


@app.command
def info(
    file: Path,
    loop_count: Annotated[int, Parameter(validator=validate_positive_integer)] = (
        EDITOR_DEFAULTS.loop_count
    ),
    tuning_standard: Annotated[float, Parameter(validator=validate_positive_float)] = (
        EDITOR_DEFAULTS.tuning_standard
    ),
    verbose: bool = False,
) -> int:
    """
    Display information about a looped sample.

    Parameters
    ----------
    file: Path
        The path to the .wav file
    loop_count: int
        Number of waveform cycles in the loop, used to derive the loop pitch
    tuning_standard: float
        Frequency of A4 in Hz
    verbose: bool
        Enable debug logging
    """
    configure_logging(verbose)

    wave = _load(file)
    if wave is None:
        return 1

    table = Table(show_header=False, title=str(file))
    table.add_column("Property", style="bold")
    table.add_column("Value", justify="left")
    table.add_row("Samples", str(len(wave)))
    table.add_row("Sample rate", f"{wave.sample_rate:g} Hz")
    table.add_row("Duration", f"{len(wave) / wave.sample_rate:.3f} s")
    root = f"{midi_to_name(wave.root_note)} ({wave.root_note}) +{wave.root_fine}c"
    table.add_row("Root note", root)
    table.add_row("Loop", _describe_loop(wave, loop_count, tuning_standard))
    table.add_row("True peak", f"{true_peak(wave.samples):.4f}")
    console.print(table)

    for warning in validate_wave(wave).warnings:
        print_warning(f"  [WARN] {warning}")

    return 0


@app.command
def edit(
    source: Path,
    output: Path = Path("edited.wav"),
    loop_start: float | None = None,
    loop_end: float | None = None,
    no_loop: bool = False,
    snap: SnapMode | None = None,
    root_note: Annotated[int | None, Parameter(validator=validate_midi_note)] = None,
    fine: int | None = None,
    link: bool = EDITOR_DEFAULTS.linked,
    loop_count: Annotated[int, Parameter(validator=validate_positive_integer)] = (
        EDITOR_DEFAULTS.loop_count
    ),
    tuning_standard: Annotated[float, Parameter(validator=validate_positive_float)] = (
        EDITOR_DEFAULTS.tuning_standard
    ),
    crossfade_length: Annotated[int | None, Parameter(validator=validate_positive_integer)] = None,
    do_normalize: Annotated[bool, Parameter(name=["--normalize"])] = False,
    do_round_tuning: Annotated[bool, Parameter(name=["--round-tuning"])] = False,
    align: bool = False,
    bit_depth: BitDepth = RENDER_DEFAULTS.bit_depth,
    verbose: bool = False,
) -> int:
    """
    Apply loop edits to a sample and save it ready for a sampler.

    Edits run in a fixed order: loop changes, snapping, tuning, crossfade,
    normalization, tuning rounding and alignment. The result is always
    passed through the export pipeline, which makes the loop length a whole
    number of samples and cuts the sample at the loop end.

    Parameters
    ----------
    source: Path
        The input .wav file
    output: Path
        The output .wav file
    loop_start: float | None
        New loop start in samples (requires loop_end unless the file is looped)
    loop_end: float | None
        New loop end in samples (requires loop_start unless the file is looped)
    no_loop: bool
        Remove the loop
    snap: SnapMode | None
        Snap loop edges to whole samples or to zero crossings
    root_note: int | None
        MIDI root note
    fine: int | None
        Fine tuning in cents; whole semitones carry into the root note
    link: bool
        Set the root note from the pitch implied by the loop length
    loop_count: int
        Number of waveform cycles in the loop, used by --link
    tuning_standard: float
        Frequency of A4 in Hz, used by --link
    crossfade_length: int | None
        Crossfade the loop end over this many samples
    do_normalize: bool
        Normalize the true peak to 1.0
    do_round_tuning: bool
        Resample so the fine tuning becomes 0
    align: bool
        Resample so the loop spans a whole number of samples
    bit_depth: BitDepth
        Output bit depth
    verbose: bool
        Enable debug logging
    """
    configure_logging(verbose)

    wave = _load(source)
    if wave is None:
        return 1

    try:
        if no_loop:
            wave = clear_loop(wave)
        elif loop_start is not None or loop_end is not None:
            if not wave.has_loop and (loop_start is None or loop_end is None):
                print_error("Error: an unlooped file needs both --loop-start and --loop-end")
                return 1
            wave = set_loop(
                wave,
                wave.loop_start if loop_start is None else loop_start,
                wave.loop_end if loop_end is None else loop_end,
            )

        match snap:
            case "sample":
                wave = snap_loop_to_samples(wave)
            case "zero":
                wave = snap_loop_to_zero_crossings(wave)
            case None:
                pass

        if link:
            if wave.loop_length < 1:
                print_warning("Skipping --link: the wave has no loop")
            else:
                wave = link_tuning_to_loop(wave, loop_count, tuning_standard)
        if root_note is not None or fine is not None:
            wave = with_fine_tuning(
                wave,
                wave.root_fine if fine is None else fine,
                root_note=root_note,
            )

        if crossfade_length:
            wave = crossfade(wave, crossfade_length)
        if do_normalize:
            wave = normalize(wave)
        if do_round_tuning:
            wave = round_tuning(wave)
        if align:
            wave = align_loop(wave)

        wave = prepare_export(wave)
    except ValueError as e:
        print_error(f"Error: {e}")
        return 1

    result = validate_wave(wave)
    if not result.valid:
        print_error(f"Error: edited wave is invalid: {result.errors}")
        return 1

    save_wave(output, wave, bit_depth=bit_depth)

    print_success(f"Saved {source} -> {output}")
    console.print(f"  Samples: {len(wave)} @ {wave.sample_rate:g} Hz")
    console.print(f"  Root: {midi_to_name(wave.root_note)} +{wave.root_fine}c")
    console.print(f"  Loop: {_describe_loop(wave, loop_count, tuning_standard)}")
    return 0


@app.command
def render(
    source: Path,
    output: Path = Path("render.wav"),
    seconds: Annotated[float, Parameter(validator=validate_positive_float)] = (
        RENDER_DEFAULTS.seconds
    ),
    device_sample_rate: Annotated[int, Parameter(validator=validate_positive_integer)] = (
        RENDER_DEFAULTS.device_sample_rate
    ),
    tune_volume: Annotated[float, Parameter(validator=validate_unit_interval)] = (
        EDITOR_DEFAULTS.tune_volume
    ),
    tuning_standard: Annotated[float, Parameter(validator=validate_positive_float)] = (
        EDITOR_DEFAULTS.tuning_standard
    ),
    bit_depth: BitDepth = RENDER_DEFAULTS.bit_depth,
    verbose: bool = False,
) -> int:
    """
    Render a looped sample through the playback voice to a .wav file.

    Parameters
    ----------
    source: Path
        The input .wav file
    output: Path
        The output .wav file
    seconds: float
        Length of the render
    device_sample_rate: int
        Output sample rate in Hz
    tune_volume: float
        Level of the reference tone at the root note pitch, 0.0 to 1.0
    tuning_standard: float
        Frequency of A4 in Hz for the reference tone
    bit_depth: BitDepth
        Output bit depth
    verbose: bool
        Enable debug logging
    """
    configure_logging(verbose)

    wave = _load(source)
    if wave is None:
        return 1

    rendered = render_wave(
        wave,
        seconds,
        device_sample_rate=device_sample_rate,
        tune_volume=tune_volume,
        tuning_standard=tuning_standard,
    )
    save_wave(output, Wave(rendered, device_sample_rate), bit_depth=bit_depth)

    print_success(f"Rendered {seconds:g} s of {source} -> {output}")
    if not wave.has_loop and len(wave) / wave.sample_rate < seconds:
        print_warning("  Sample has no loop; playback stops before the end of the render")
    return 0


@app.command
def plot(
    source: Path,
    output: Path = Path("waveform.png"),
    start: Annotated[float | None, Parameter(validator=validate_non_negative_float)] = None,
    end: Annotated[float | None, Parameter(validator=validate_positive_float)] = None,
    columns: Annotated[int, Parameter(validator=validate_positive_integer)] = (
        DISPLAY_DEFAULTS.columns
    ),
    crossfade_length: Annotated[int | None, Parameter(validator=validate_positive_integer)] = None,
    verbose: bool = False,
) -> int:
    """
    Plot the waveform and loop region of a sample to an image.

    Parameters
    ----------
    source: Path
        The input .wav file
    output: Path
        The output image path
    start: float | None
        First sample of the view (default: 0)
    end: float | None
        End of the view in samples (default: end of the sample)
    columns: int
        Horizontal resolution of the view
    crossfade_length: int | None
        Preview a crossfade of this many samples
    verbose: bool
        Enable debug logging
    """
    configure_logging(verbose)

    wave = _load(source)
    if wave is None:
        return 1

    try:
        figure = waveform_figure(
            wave,
            start,
            end,
            columns,
            crossfade_length,
            figsize=DISPLAY_DEFAULTS.figsize,
            show=False,
            output_path=output,
        )
    except ValueError as e:
        print_error(f"Error: {e}")
        return 1

    print_success(f"Plotted {source} -> {output}")
    console.print(figure.summary(max_points=4), markup=False, highlight=False)
    return 0


if __name__ == "__main__":
    sys.exit(app())
