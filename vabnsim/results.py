"""Simulation result data structures and exports."""

from dataclasses import dataclass, fields
import csv
import io
import json
import logging
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from .model import STATE_LABELS
from .params import ParameterSet, SimulationInputs
from .postprocess import BreathSignal

logger = logging.getLogger(__name__)

BREATH_ARTIFACT_NAME = "ExhPPB"


@dataclass(frozen=True, slots=True)
class SimulationOutputs:
    time_min: np.ndarray
    states_um: np.ndarray
    signal: BreathSignal
    params: ParameterSet
    metadata: dict[str, Any]

    @property
    def breath_ppb(self) -> np.ndarray:
        return self.signal.breath_ppb


def _timeseries_columns(outputs: SimulationOutputs) -> dict[str, np.ndarray]:
    columns = {
        "time_min": outputs.time_min,
        "breath_ppb": outputs.breath_ppb,
    }
    for idx, label in enumerate(STATE_LABELS):
        columns[label] = outputs.states_um[:, idx]
    return columns


def export_breath_series(outputs: SimulationOutputs, directory: str | Path) -> Path:
    """Save the breath ppb series as the flat ``ExhPPB.npy`` array."""

    output_dir = Path(directory)
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / f"{BREATH_ARTIFACT_NAME}.npy"
    np.save(output_path, np.asarray(outputs.breath_ppb, dtype=float))
    logger.info("Wrote %s", output_path)
    return output_path


def export_csv(outputs: SimulationOutputs, path: str | Path) -> None:
    """Export simulation timeseries to CSV with deterministic column order."""

    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    columns = _timeseries_columns(outputs)

    with output_path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(list(columns))
        for idx in range(len(outputs.time_min)):
            writer.writerow([f"{values[idx]:.12g}" for values in columns.values()])
    logger.info("Wrote %s", output_path)


def export_metadata_json(
    inputs: SimulationInputs,
    outputs: SimulationOutputs,
    path: str | Path,
) -> None:
    """Export simulation inputs, parameter set and peak summary to JSON."""

    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    input_payload = {f.name: getattr(inputs, f.name) for f in fields(inputs)}
    input_payload["overrides"] = dict(inputs.overrides)
    payload: dict[str, Any] = {
        "inputs": input_payload,
        "parameters": outputs.params.as_dict(),
        "outputs_summary": {
            "n_samples": int(len(outputs.time_min)),
            "peak_ppb": outputs.signal.peak_ppb,
            "peak_time_min": outputs.signal.peak_time_min,
            "final_breath_ppb": float(outputs.breath_ppb[-1]),
        },
        "metadata": outputs.metadata,
    }

    with output_path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2, sort_keys=True)
    logger.info("Wrote %s", output_path)


def build_excel_bytes(outputs: SimulationOutputs) -> bytes:
    """Build XLSX export bytes for the timeseries output."""

    df = pd.DataFrame({name: [float(v) for v in values] for name, values in _timeseries_columns(outputs).items()})
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name="timeseries", index=False)
    return output.getvalue()
