from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

import matplotlib
import numpy as np

matplotlib.use("Agg")
import matplotlib.pyplot as plt
from matplotlib.figure import Figure
from numpy.typing import NDArray

from loopedit.dsp.kernel import DEFAULT_TABLE, fast_eval_many
from loopedit.dsp.loop import fold
from loopedit.dsp.peaks import query_peaks
from loopedit.dsp.transforms import crossfade
from loopedit.tuning import loop_note, midi_to_name
from loopedit.types import Wave

logger = logging.getLogger(__name__)

SeriesKind = Literal["line", "band"]


@dataclass
class PlotSeries:
    """A single curve, or a filled min/max band when ``kind`` is "band"."""

    label: str
    x: NDArray[np.floating]
    y: NDArray[np.floating]
    style: dict[str, Any] = field(default_factory=dict)
    kind: SeriesKind = "line"
    y2: NDArray[np.floating] | None = None

    def to_dict(self, max_points: int | None = None) -> dict[str, Any]:
        """Return a lightweight summary of the series."""
        x_values = self.x.tolist()
        y_values = self.y.tolist()
        if max_points is not None and len(x_values) > max_points:
            step = max(len(x_values) // max_points, 1)
            x_values = x_values[::step][:max_points]
            y_values = y_values[::step][:max_points]

        return {
            "label": self.label,
            "kind": self.kind,
            "points": list(zip(x_values, y_values, strict=False)),
            "style": self.style,
        }


@dataclass
class PlotPanel:
    """Configuration for a single subplot/panel."""

    title: str
    series: list[PlotSeries]
    xlabel: str = "Samples"
    ylabel: str = "Amplitude"
    xlim: tuple[float, float] | None = None
    ylim: tuple[float, float] | None = None
    vlines: list[tuple[float, str]] = field(default_factory=list)
    spans: list[tuple[float, float, str]] = field(default_factory=list)
    legend: bool = True
    grid: bool = True
    metadata: dict[str, Any] = field(default_factory=dict)

    def preview(self, max_points: int = 8) -> dict[str, Any]:
        return {
            "title": self.title,
            "series": [series.to_dict(max_points=max_points) for series in self.series],
            "vlines": self.vlines,
            "spans": self.spans,
            "metadata": self.metadata,
        }


@dataclass
class PlotFigure:
    """A collection of panels ready for rendering or textual inspection."""

    panels: list[PlotPanel]
    layout: tuple[int, int] | None = None
    figsize: tuple[float, float] = (14.0, 4.0)
    title: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def summary(self, max_points: int = 8) -> str:
        lines = []
        if self.title:
            lines.append(f"Figure: {self.title}")
        for idx, panel in enumerate(self.panels):
            lines.append(f" Panel {idx}: {panel.title}")
            for series in panel.series:
                preview = series.to_dict(max_points=max_points)
                first_points = preview["points"][: min(max_points, len(preview["points"]))]
                lines.append(
                    f"  - {series.label} ({series.kind}): {len(series.x)} points, "
                    f"preview={first_points}"
                )
        return "\n".join(lines)

    def to_dict(self, max_points: int = 64) -> dict[str, Any]:
        return {
            "title": self.title,
            "metadata": self.metadata,
            "panels": [panel.preview(max_points=max_points) for panel in self.panels],
        }


def _resolve_layout(panel_count: int, layout: tuple[int, int] | None) -> tuple[int, int]:
    if layout:
        rows, cols = layout
    else:
        rows = panel_count
        cols = 1

    if rows * cols < panel_count:
        rows = panel_count
        cols = 1

    return rows, cols


def render_figure(
    figure: PlotFigure,
    *,
    show: bool = True,
    output_path: Path | None = None,
) -> Figure:
    """Render a figure with matplotlib, optionally saving it to ``output_path``."""

    rows, cols = _resolve_layout(len(figure.panels), figure.layout)
    fig, axes = plt.subplots(rows, cols, figsize=figure.figsize, squeeze=False)

    for idx, panel in enumerate(figure.panels):
        ax = axes[idx // cols][idx % cols]
        for start, end, label in panel.spans:
            ax.axvspan(start, end, alpha=0.12, label=label or None)
        for series in panel.series:
            if series.kind == "band" and series.y2 is not None:
                ax.fill_between(series.x, series.y, series.y2, label=series.label, **series.style)
            else:
                ax.plot(series.x, series.y, label=series.label, **series.style)
        for x, label in panel.vlines:
            ax.axvline(x, linestyle="--", linewidth=1, color="gray")
            if label:
                ax.annotate(label, (x, 1.0), xycoords=("data", "axes fraction"), va="bottom")

        ax.set_title(panel.title)
        ax.set_xlabel(panel.xlabel)
        ax.set_ylabel(panel.ylabel)
        ax.grid(panel.grid, alpha=0.3)

        if panel.xlim:
            ax.set_xlim(*panel.xlim)
        if panel.ylim:
            ax.set_ylim(*panel.ylim)

        if panel.legend and any(series.label for series in panel.series):
            ax.legend(loc="upper right")

    if figure.title:
        fig.suptitle(figure.title)

    fig.tight_layout()

    if output_path:
        fig.savefig(output_path, bbox_inches="tight")

    if show:
        plt.show()
    else:
        plt.close(fig)

    return fig


def _peak_series(wave: Wave, start: float, end: float, columns: int) -> PlotSeries:
    lows, highs = query_peaks(wave.peaks, start, end, columns)
    x = start + (np.arange(columns) + 0.5) * (end - start) / columns
    return PlotSeries("peaks", x, lows, {"alpha": 0.8, "linewidth": 0}, kind="band", y2=highs)


def _curve_series(wave: Wave, start: float, end: float, columns: int) -> list[PlotSeries]:
    x = np.linspace(start, end, columns, endpoint=False)
    in_range = (x >= 0) & (x < len(wave))
    y = np.full(columns, np.nan)
    y[in_range] = fast_eval_many(DEFAULT_TABLE, wave.samples, x[in_range])
    series = [PlotSeries("wave", x, y, {"linewidth": 1.5})]

    if not wave.has_loop:
        return series

    # What the listener hears across each seam: the loop tail before the
    # start, and the loop head after the end.
    before = x < wave.loop_start
    after = x >= wave.loop_end
    echo = np.full(columns, np.nan)
    if before.any():
        echo[before] = fast_eval_many(
            DEFAULT_TABLE, wave.samples, x[before] + wave.loop_length
        )
    if after.any():
        folded = np.array([fold(wave, pos) for pos in x[after]])
        echo[after] = fast_eval_many(DEFAULT_TABLE, wave.samples, folded)
    if not np.all(np.isnan(echo)):
        series.append(PlotSeries("loop echo", x, echo, {"linewidth": 1, "alpha": 0.6}))

    return series


def waveform_figure(
    wave: Wave,
    start: float | None = None,
    end: float | None = None,
    columns: int = 1024,
    crossfade_length: int | None = None,
    *,
    figsize: tuple[float, float] = (14.0, 4.0),
    render: bool = True,
    show: bool = True,
    output_path: Path | None = None,
) -> PlotFigure:
    """Build the waveform view of ``wave`` between ``start`` and ``end``.

    Zoomed out past one sample per column, the view draws the min/max band
    from the peak pyramid. Zoomed in, it draws the interpolated curve plus the
    loop echo, so discontinuities at the loop seams are visible. With
    ``crossfade_length`` the curve previews the crossfaded result.
    """
    if columns < 1:
        raise ValueError(f"columns must be >= 1, got {columns}")

    start = 0.0 if start is None else float(start)
    end = float(len(wave)) if end is None else float(end)
    if end <= start:
        raise ValueError(f"View [{start}, {end}) is empty")

    if crossfade_length:
        wave = crossfade(wave, crossfade_length)

    samples_per_column = (end - start) / columns
    if samples_per_column > 1:
        series = [_peak_series(wave, start, end, columns)]
    else:
        series = _curve_series(wave, start, end, columns)

    vlines: list[tuple[float, str]] = []
    spans: list[tuple[float, float, str]] = []
    metadata: dict[str, Any] = {
        "samples": len(wave),
        "sample_rate": wave.sample_rate,
        "samples_per_column": samples_per_column,
        "root": f"{midi_to_name(wave.root_note)} +{wave.root_fine}c",
    }
    if wave.has_loop:
        vlines = [(wave.loop_start, "start"), (wave.loop_end, "end")]
        spans = [(wave.loop_start, wave.loop_end, "loop")]
        if crossfade_length:
            spans.append((wave.loop_end - crossfade_length, wave.loop_end, "crossfade"))
        metadata["loop"] = (wave.loop_start, wave.loop_end)
        if wave.loop_length >= 1:
            note, cents = loop_note(wave)
            metadata["loop_note"] = f"{midi_to_name(note)} +{cents}c"

    panel = PlotPanel(
        title="Waveform",
        series=series,
        xlim=(start, end),
        ylim=(-1.05, 1.05),
        vlines=vlines,
        spans=spans,
        metadata=metadata,
    )
    figure = PlotFigure(
        panels=[panel],
        figsize=figsize,
        title=f"{len(wave)} samples @ {wave.sample_rate:g} Hz",
    )
    logger.debug("Built waveform figure at %.3f samples per column", samples_per_column)

    if render:
        render_figure(figure, show=show, output_path=output_path)

    return figure


__all__ = [
    "PlotFigure",
    "PlotPanel",
    "PlotSeries",
    "render_figure",
    "waveform_figure",
]
