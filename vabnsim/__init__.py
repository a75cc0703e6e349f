"""Core simulation package."""

from .params import (
    ConfigurationError,
    ParameterSet,
    SimulationInputs,
    build_parameter_set,
    default_dose_um,
    supported_combinations,
    validate_inputs,
)
from .model import (
    STATE_LABELS,
    build_initial_state,
    compute_cleavage_rate,
    compute_derivatives,
    compute_jacobian,
    michaelis_menten_rate,
)
from .postprocess import BreathSignal, compute_breath_signal, find_peak, hand_off, ppb_to_um, um_to_ppb
from .results import (
    SimulationOutputs,
    build_excel_bytes,
    export_breath_series,
    export_csv,
    export_metadata_json,
)
from .solver import IntegrationError, build_time_grid, integrate, simulate

__all__ = [
    "ConfigurationError",
    "IntegrationError",
    "ParameterSet",
    "SimulationInputs",
    "SimulationOutputs",
    "BreathSignal",
    "STATE_LABELS",
    "build_parameter_set",
    "default_dose_um",
    "supported_combinations",
    "validate_inputs",
    "build_initial_state",
    "compute_cleavage_rate",
    "compute_derivatives",
    "compute_jacobian",
    "michaelis_menten_rate",
    "build_time_grid",
    "integrate",
    "simulate",
    "compute_breath_signal",
    "find_peak",
    "hand_off",
    "um_to_ppb",
    "ppb_to_um",
    "export_breath_series",
    "export_csv",
    "export_metadata_json",
    "build_excel_bytes",
]
