"""Conversion of chamber reporter concentration into exhaled-breath signal."""

from collections.abc import Callable
from dataclasses import dataclass

import numpy as np

from .model import C_REPORTER_CHAMBER

# Ideal-gas molar volume at 25 C and 1 atm.
MOLAR_VOLUME_ML_PER_MOL = 24450.0


@dataclass(frozen=True, slots=True)
class BreathSignal:
    time_min: np.ndarray
    breath_ppb: np.ndarray
    peak_ppb: float
    peak_time_min: float
    peak_index: int

    def pairs(self) -> list[tuple[float, float]]:
        """Return the series as ordered (time_min, breath_ppb) pairs."""

        return [(float(t), float(v)) for t, v in zip(self.time_min, self.breath_ppb)]


BreathSink = Callable[[BreathSignal], object]


def um_to_ppb(c_um: float | np.ndarray) -> float | np.ndarray:
    """Convert a gas-phase reporter concentration from uM to ppb."""

    # uM -> M, x1000 mL/L, x molar volume gives ppm; x1000 gives ppb.
    ppm = c_um * 1e-6 * 1000 * MOLAR_VOLUME_ML_PER_MOL
    return ppm * 1000


def ppb_to_um(ppb: float | np.ndarray) -> float | np.ndarray:
    """Inverse of ``um_to_ppb``."""

    return ppb / 1000 / MOLAR_VOLUME_ML_PER_MOL / 1000 / 1e-6


def find_peak(time_min: np.ndarray, values: np.ndarray) -> tuple[float, float, int]:
    """Return (peak value, peak time, index) of the first maximum."""

    if len(values) == 0:
        raise ValueError("cannot locate the peak of an empty series")
    if len(time_min) != len(values):
        raise ValueError("time and value series must have the same length")
    index = int(np.argmax(values))
    return float(values[index]), float(time_min[index]), index


def _frozen_copy(values: np.ndarray) -> np.ndarray:
    out = np.array(values, dtype=float, copy=True)
    out.setflags(write=False)
    return out


def compute_breath_signal(time_min: np.ndarray, states_um: np.ndarray) -> BreathSignal:
    """Convert the chamber trajectory of a ``(n_samples, 5)`` state array to ppb and find its peak."""

    breath_ppb = _frozen_copy(um_to_ppb(np.asarray(states_um, dtype=float)[:, C_REPORTER_CHAMBER]))
    time_copy = _frozen_copy(time_min)
    peak_ppb, peak_time_min, peak_index = find_peak(time_copy, breath_ppb)
    return BreathSignal(
        time_min=time_copy,
        breath_ppb=breath_ppb,
        peak_ppb=peak_ppb,
        peak_time_min=peak_time_min,
        peak_index=peak_index,
    )


def hand_off(signal: BreathSignal, *sinks: BreathSink) -> list[object]:
    """Pass the breath series to each rendering or export collaborator in order."""

    return [sink(signal) for sink in sinks]
