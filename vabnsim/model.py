"""Respiratory-tract compartment model for vABN activation and reporter exhalation."""

import numpy as np

from .params import ParameterSet

C_NP_LUMEN = 0
C_NP_TISSUE = 1
C_REPORTER_TISSUE = 2
C_REPORTER_LUMEN = 3
C_REPORTER_CHAMBER = 4

STATE_LABELS = (
    "c_np_lumen_um",
    "c_np_tissue_um",
    "c_reporter_tissue_um",
    "c_reporter_lumen_um",
    "c_reporter_chamber_um",
)
N_STATES = len(STATE_LABELS)


def michaelis_menten_rate(k_cat: float, enzyme_um: float, substrate_um: float, km_um: float) -> float:
    """Return the saturable cleavage rate k_cat*[E]*[S]/(Km+[S]) in uM/min."""

    return (k_cat * enzyme_um * substrate_um) / (km_um + substrate_um)


def compute_cleavage_rate(params: ParameterSet, c_np_tissue: float) -> float:
    """Reporter release from tissue vABNs by neutrophil elastase and nonspecific proteases."""

    specific = michaelis_menten_rate(params.k_cat, params.NE, c_np_tissue, params.Km)
    nonspecific = michaelis_menten_rate(params.NS_k_cat, params.NS_E, c_np_tissue, params.NS_Km)
    return specific + nonspecific


def build_initial_state(dose_um: float) -> np.ndarray:
    """Return the t=0 state with the dose in the airway lumen and nothing elsewhere."""

    y0 = np.zeros(N_STATES, dtype=float)
    y0[C_NP_LUMEN] = dose_um
    return y0


def compute_derivatives(t: float, y: np.ndarray, params: ParameterSet) -> np.ndarray:
    """Return d/dt of the five compartment concentrations (uM/min).

    The model is autonomous, so ``t`` is accepted only for the solver
    signature. Negative trial states from the integrator are evaluated as-is.
    """

    c_np_lumen = y[C_NP_LUMEN]
    c_np_tissue = y[C_NP_TISSUE]
    c_reporter_tissue = y[C_REPORTER_TISSUE]
    c_reporter_lumen = y[C_REPORTER_LUMEN]
    c_reporter_chamber = y[C_REPORTER_CHAMBER]

    np_exchange = params.k_np_tissue * (c_np_lumen - c_np_tissue)
    cleavage = compute_cleavage_rate(params, c_np_tissue)
    # Tissue concentration is divided by the tissue:air partition before comparing to gas phase.
    reporter_exchange = params.k_reporter_tissue * (
        c_reporter_tissue / params.H_tissue_air - c_reporter_lumen
    )
    reporter_clearance = params.k_reporter_clear * c_reporter_tissue / params.H_tissue_blood
    ventilation = params.Qmc * (c_reporter_lumen - c_reporter_chamber)

    dydt = np.empty(N_STATES, dtype=float)
    dydt[C_NP_LUMEN] = -np_exchange
    dydt[C_NP_TISSUE] = np_exchange - params.k_np_phago * c_np_tissue - cleavage
    dydt[C_REPORTER_TISSUE] = -reporter_exchange - reporter_clearance + cleavage
    dydt[C_REPORTER_LUMEN] = reporter_exchange - ventilation
    dydt[C_REPORTER_CHAMBER] = ventilation
    return dydt


def compute_jacobian(t: float, y: np.ndarray, params: ParameterSet) -> np.ndarray:
    """Analytic Jacobian of ``compute_derivatives`` with respect to the state."""

    c_np_tissue = y[C_NP_TISSUE]
    dcleavage = (
        params.k_cat * params.NE * params.Km / (params.Km + c_np_tissue) ** 2
        + params.NS_k_cat * params.NS_E * params.NS_Km / (params.NS_Km + c_np_tissue) ** 2
    )
    k_np = params.k_np_tissue
    k_rt = params.k_reporter_tissue
    qmc = params.Qmc

    jac = np.zeros((N_STATES, N_STATES), dtype=float)
    jac[C_NP_LUMEN, C_NP_LUMEN] = -k_np
    jac[C_NP_LUMEN, C_NP_TISSUE] = k_np
    jac[C_NP_TISSUE, C_NP_LUMEN] = k_np
    jac[C_NP_TISSUE, C_NP_TISSUE] = -k_np - params.k_np_phago - dcleavage
    jac[C_REPORTER_TISSUE, C_NP_TISSUE] = dcleavage
    jac[C_REPORTER_TISSUE, C_REPORTER_TISSUE] = (
        -k_rt / params.H_tissue_air - params.k_reporter_clear / params.H_tissue_blood
    )
    jac[C_REPORTER_TISSUE, C_REPORTER_LUMEN] = k_rt
    jac[C_REPORTER_LUMEN, C_REPORTER_TISSUE] = k_rt / params.H_tissue_air
    jac[C_REPORTER_LUMEN, C_REPORTER_LUMEN] = -k_rt - qmc
    jac[C_REPORTER_LUMEN, C_REPORTER_CHAMBER] = qmc
    jac[C_REPORTER_CHAMBER, C_REPORTER_LUMEN] = qmc
    jac[C_REPORTER_CHAMBER, C_REPORTER_CHAMBER] = -qmc
    return jac
