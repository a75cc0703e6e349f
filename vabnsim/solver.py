"""Stiff integration driver for the vABN compartment model."""

from collections.abc import Sequence
import logging
import math

import numpy as np
from scipy.integrate import BDF, LSODA, Radau

from .model import N_STATES, build_initial_state, compute_derivatives, compute_jacobian
from .params import ConfigurationError, ParameterSet, SimulationInputs, build_parameter_set, validate_inputs
from .postprocess import compute_breath_signal
from .results import SimulationOutputs

logger = logging.getLogger(__name__)

_SOLVERS = {
    "BDF": BDF,
    "Radau": Radau,
    "LSODA": LSODA,
}


class IntegrationError(RuntimeError):
    """Raised when the stiff solver fails or runs out of steps."""


def build_time_grid(t_start: float, t_end: float, dt: float) -> np.ndarray:
    """Return the fixed sampling grid t_start, t_start+dt, ... up to t_end."""

    if not (math.isfinite(t_start) and math.isfinite(t_end)) or t_end <= t_start:
        raise ConfigurationError(f"time span must satisfy t_start < t_end, got [{t_start}, {t_end}]")
    if not math.isfinite(dt) or dt <= 0.0:
        raise ConfigurationError(f"dt must be > 0, got {dt}")
    # Tolerance keeps e.g. (120 - 0) / 0.1 from dropping the last sample.
    n_samples = math.floor((t_end - t_start) / dt + 1e-9) + 1
    time_min = t_start + np.arange(n_samples, dtype=float) * dt
    return np.minimum(time_min, t_end)


def integrate(
    params: ParameterSet,
    y0: Sequence[float] | np.ndarray,
    t_start: float = 0.0,
    t_end: float = 120.0,
    dt: float = 0.1,
    rtol: float = 1e-10,
    atol: float = 1e-10,
    method: str = "BDF",
    max_steps: int = 100_000,
) -> tuple[np.ndarray, np.ndarray, dict[str, float | int | str]]:
    """Integrate the compartment model and sample it on a fixed grid.

    Returns ``(time_min, states_um, stats)`` where ``states_um`` has shape
    ``(n_samples, 5)``. The solver chooses its own internal steps; samples
    are taken from its dense output so they do not depend on the step size.
    """

    if method not in _SOLVERS:
        raise ConfigurationError(f"Unsupported solver method: {method}")
    y_init = np.array(y0, dtype=float, copy=True)
    if y_init.shape != (N_STATES,):
        raise ConfigurationError(f"initial state must have {N_STATES} entries, got shape {y_init.shape}")

    time_min = build_time_grid(t_start, t_end, dt)
    if not np.all(np.isfinite(compute_derivatives(t_start, y_init, params))):
        raise IntegrationError(f"non-finite derivative at t={t_start:.6g} min")

    states_um = np.empty((len(time_min), N_STATES), dtype=float)
    states_um[0] = y_init

    try:
        solver = _SOLVERS[method](
            lambda t, y: compute_derivatives(t, y, params),
            t_start,
            y_init,
            t_end,
            rtol=rtol,
            atol=atol,
            jac=lambda t, y: compute_jacobian(t, y, params),
        )
    except (ValueError, ArithmeticError, np.linalg.LinAlgError) as exc:
        raise IntegrationError(f"{method} solver could not start: {exc}") from exc

    next_index = 1
    n_steps = 0
    while solver.status == "running":
        if n_steps >= max_steps:
            raise IntegrationError(
                f"{method} solver exceeded max_steps={max_steps} at t={solver.t:.6g} min"
            )
        try:
            message = solver.step()
        except (ValueError, ArithmeticError, np.linalg.LinAlgError) as exc:
            raise IntegrationError(f"{method} solver failed at t={solver.t:.6g} min: {exc}") from exc
        n_steps += 1
        if solver.status == "failed":
            raise IntegrationError(f"{method} solver failed at t={solver.t:.6g} min: {message}")
        if not np.all(np.isfinite(solver.y)):
            raise IntegrationError(f"{method} solver produced a non-finite state at t={solver.t:.6g} min")

        stop_index = int(np.searchsorted(time_min, solver.t, side="right"))
        if stop_index > next_index:
            dense = solver.dense_output()
            states_um[next_index:stop_index] = dense(time_min[next_index:stop_index]).T
            next_index = stop_index

    stats: dict[str, float | int | str] = {
        "solver": method,
        "rtol": rtol,
        "atol": atol,
        "n_steps": n_steps,
        "nfev": int(solver.nfev),
        "njev": int(solver.njev),
        "nlu": int(solver.nlu),
    }
    logger.debug("Integration finished: %s", stats)
    return time_min, states_um, stats


def simulate(inputs: SimulationInputs) -> SimulationOutputs:
    """Run one vABN simulation from a fresh, locally scoped context."""

    validate_inputs(inputs)
    params = build_parameter_set(
        inputs.species,
        inputs.reporter,
        infected=inputs.infected,
        **dict(inputs.overrides),
    )
    dose_um = inputs.resolved_dose_um()
    y0 = build_initial_state(dose_um)

    time_min, states_um, stats = integrate(
        params,
        y0,
        t_start=inputs.t_start_min,
        t_end=inputs.t_end_min,
        dt=inputs.dt_min,
        rtol=inputs.rtol,
        atol=inputs.atol,
        method=inputs.method,
        max_steps=inputs.max_steps,
    )
    signal = compute_breath_signal(time_min, states_um)

    metadata = {
        "model": "vabn_respiratory_compartments",
        "species": params.species,
        "reporter": params.reporter,
        "infected": inputs.infected,
        "dose_um": dose_um,
        "n_samples": int(len(time_min)),
        "dt_min": inputs.dt_min,
        "t_start_min": inputs.t_start_min,
        "t_end_min": inputs.t_end_min,
        "peak_ppb": signal.peak_ppb,
        "peak_time_min": signal.peak_time_min,
        **stats,
    }
    logger.info(
        "Simulated %s/%s: peak %.6g ppb at %.4g min",
        params.species,
        params.reporter,
        signal.peak_ppb,
        signal.peak_time_min,
    )
    return SimulationOutputs(
        time_min=time_min,
        states_um=states_um,
        signal=signal,
        params=params,
        metadata=metadata,
    )
