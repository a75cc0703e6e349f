"""Altair rendering of the exhaled-breath signal."""

from pathlib import Path

import altair as alt
import pandas as pd

from vabnsim.postprocess import BreathSignal

_SUPPORTED_SUFFIXES = {".html", ".json"}


def build_breath_chart(signal: BreathSignal, title: str | None = None) -> alt.LayerChart:
    """Line chart of breath ppb over time with the peak marked."""

    df = pd.DataFrame(
        {
            "time_min": [float(v) for v in signal.time_min],
            "breath_ppb": [float(v) for v in signal.breath_ppb],
        }
    )
    peak_df = pd.DataFrame({"time_min": [signal.peak_time_min], "breath_ppb": [signal.peak_ppb]})

    line = (
        alt.Chart(df)
        .mark_line()
        .encode(
            x=alt.X("time_min:Q", title="Time [min]"),
            y=alt.Y("breath_ppb:Q", title="Parts per billion [ppb]"),
            tooltip=[
                alt.Tooltip("time_min:Q", title="Time [min]", format=".1f"),
                alt.Tooltip("breath_ppb:Q", title="Breath [ppb]", format=".4g"),
            ],
        )
    )
    peak = (
        alt.Chart(peak_df)
        .mark_point(filled=True, size=60, color="firebrick")
        .encode(
            x="time_min:Q",
            y="breath_ppb:Q",
            tooltip=[
                alt.Tooltip("time_min:Q", title="Peak time [min]", format=".1f"),
                alt.Tooltip("breath_ppb:Q", title="Peak [ppb]", format=".4g"),
            ],
        )
    )
    chart = (line + peak).properties(height=320)
    if title:
        chart = chart.properties(title=title)
    return chart


def save_breath_chart(signal: BreathSignal, path: str | Path, title: str | None = None) -> Path:
    """Write the breath chart as standalone HTML or Vega-Lite JSON."""

    output_path = Path(path)
    if output_path.suffix not in _SUPPORTED_SUFFIXES:
        raise ValueError(f"Unsupported chart format: {output_path.suffix or '<none>'}")
    output_path.parent.mkdir(parents=True, exist_ok=True)
    build_breath_chart(signal, title=title).save(str(output_path))
    return output_path
