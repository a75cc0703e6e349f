"""Parameter sets and run inputs for VABNSim."""

from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
import logging
import math
from types import MappingProxyType

logger = logging.getLogger(__name__)

SPECIES = ("mouse", "human")
REPORTERS = ("PFC1", "PFC3", "PFC5", "PFC7")
SOLVER_METHODS = ("BDF", "Radau", "LSODA")


class ConfigurationError(ValueError):
    """Raised when a run cannot be configured."""


@dataclass(frozen=True, slots=True)
class ParameterSet:
    """Physiological, transport and enzyme constants for one species/reporter pair.

    Rates are in 1/min and concentrations in uM. The derived fields are
    recomputed from the primaries on every construction, including
    ``dataclasses.replace``.
    """

    species: str
    reporter: str
    # Physiology
    Qm: float
    Vl: float
    # Nanocarrier transport
    k_np_tissue: float
    k_np_phago: float
    # Reporter transport
    k_reporter_tissue: float
    k_reporter_clear: float
    # Specific enzyme
    NE: float
    k_cat: float
    Km: float
    # Nonspecific enzyme
    NS_E: float
    # Partition coefficients
    H_blood_air: float
    H_tissue_air: float
    Qmc: float = field(init=False)
    NS_k_cat: float = field(init=False)
    NS_Km: float = field(init=False)
    H_tissue_blood: float = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "Qmc", self.Qm / self.Vl)
        object.__setattr__(self, "NS_k_cat", self.k_cat / 60.0)
        object.__setattr__(self, "NS_Km", self.Km * 35.0)
        object.__setattr__(self, "H_tissue_blood", self.H_tissue_air / self.H_blood_air)

    def as_dict(self) -> dict[str, float | str]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True, slots=True)
class SpeciesConstants:
    Qm: float
    Vl: float
    NE_infected: float
    default_dose_um: float


@dataclass(frozen=True, slots=True)
class ReporterConstants:
    k_cat: float
    Km: float
    H_blood_air: float
    H_tissue_air: float


# Shared by both species; the vABN and reporter transport rates were fit in mice.
TRANSPORT_CONSTANTS: Mapping[str, float] = MappingProxyType(
    {
        "k_np_tissue": 0.05,
        "k_np_phago": 6e-4,
        "k_reporter_tissue": 30.8,
        "k_reporter_clear": 28.1,
        "NS_E": 2.62,
    }
)

SPECIES_CONSTANTS: Mapping[str, SpeciesConstants] = MappingProxyType(
    {
        "mouse": SpeciesConstants(Qm=0.037, Vl=0.131e-3, NE_infected=0.0035, default_dose_um=10.0),
        "human": SpeciesConstants(Qm=7.5, Vl=543.5e-3, NE_infected=2.64, default_dose_um=27.03),
    }
)

REPORTER_CONSTANTS: Mapping[str, ReporterConstants] = MappingProxyType(
    {
        "PFC1": ReporterConstants(k_cat=186.0, Km=10.91, H_blood_air=51.26, H_tissue_air=34.49),
        "PFC3": ReporterConstants(k_cat=53.4, Km=4.42, H_blood_air=31.50, H_tissue_air=36.64),
        "PFC5": ReporterConstants(k_cat=142.2, Km=56.13, H_blood_air=18.73, H_tissue_air=30.82),
        # PFC7 partitioning was not measured and reuses the PFC5 values.
        "PFC7": ReporterConstants(k_cat=4.2, Km=22.34, H_blood_air=18.73, H_tissue_air=30.82),
    }
)

SUPPORTED_COMBINATIONS: frozenset[tuple[str, str]] = frozenset(
    {("mouse", reporter) for reporter in REPORTERS} | {("human", "PFC1")}
)

_DERIVED_FIELDS = frozenset({"Qmc", "NS_k_cat", "NS_Km", "H_tissue_blood"})
_SELECTOR_FIELDS = frozenset({"species", "reporter"})
# Denominators of the derived fields.
_NONZERO_FIELDS = frozenset({"Vl", "H_blood_air", "H_tissue_air"})


def normalize_species(species: str) -> str:
    return species.strip().lower()


def normalize_reporter(reporter: str) -> str:
    return reporter.strip().upper()


def supported_combinations() -> list[tuple[str, str]]:
    """Return the defined (species, reporter) pairs in a stable order."""

    return [(s, r) for s in SPECIES for r in REPORTERS if (s, r) in SUPPORTED_COMBINATIONS]


def default_dose_um(species: str) -> float:
    """Return the default lumen vABN dose in uM for a species."""

    key = normalize_species(species)
    if key not in SPECIES_CONSTANTS:
        raise ConfigurationError(f"Unsupported species: {species}")
    return SPECIES_CONSTANTS[key].default_dose_um


def _check_selectors(species: str, reporter: str) -> list[str]:
    errors: list[str] = []
    if species not in SPECIES_CONSTANTS:
        errors.append(f"Unsupported species: {species}")
    if reporter not in REPORTER_CONSTANTS:
        errors.append(f"Unsupported reporter: {reporter}")
    if not errors and (species, reporter) not in SUPPORTED_COMBINATIONS:
        errors.append(f"No parameter set defined for species={species} with reporter={reporter}")
    return errors


def build_parameter_set(
    species: str,
    reporter: str,
    infected: bool = True,
    **overrides: float,
) -> ParameterSet:
    """Assemble the constant bundle for a (species, reporter) selector.

    ``infected=False`` gives the healthy control with no neutrophil elastase.
    Any primary field can be overridden by keyword; derived fields cannot.
    """

    species_key = normalize_species(species)
    reporter_key = normalize_reporter(reporter)
    errors = _check_selectors(species_key, reporter_key)

    primary_names = {f.name for f in fields(ParameterSet) if f.init} - _SELECTOR_FIELDS
    values: dict[str, float] = {}
    for name in sorted(overrides):
        if name in _DERIVED_FIELDS:
            errors.append(f"{name} is derived and cannot be overridden")
            continue
        if name not in primary_names:
            errors.append(f"Unknown parameter override: {name}")
            continue
        try:
            value = float(overrides[name])
        except (TypeError, ValueError):
            errors.append(f"{name} must be a number")
            continue
        if not math.isfinite(value):
            errors.append(f"{name} must be finite")
        elif value < 0.0:
            errors.append(f"{name} must be >= 0")
        elif value == 0.0 and name in _NONZERO_FIELDS:
            errors.append(f"{name} must be > 0")
        else:
            values[name] = value
    if errors:
        raise ConfigurationError("; ".join(errors))

    body = SPECIES_CONSTANTS[species_key]
    kinetics = REPORTER_CONSTANTS[reporter_key]
    params = ParameterSet(
        species=species_key,
        reporter=reporter_key,
        Qm=body.Qm,
        Vl=body.Vl,
        k_np_tissue=TRANSPORT_CONSTANTS["k_np_tissue"],
        k_np_phago=TRANSPORT_CONSTANTS["k_np_phago"],
        k_reporter_tissue=TRANSPORT_CONSTANTS["k_reporter_tissue"],
        k_reporter_clear=TRANSPORT_CONSTANTS["k_reporter_clear"],
        NE=body.NE_infected if infected else 0.0,
        k_cat=kinetics.k_cat,
        Km=kinetics.Km,
        NS_E=TRANSPORT_CONSTANTS["NS_E"],
        H_blood_air=kinetics.H_blood_air,
        H_tissue_air=kinetics.H_tissue_air,
    )
    if values:
        params = replace(params, **values)
    logger.debug(
        "Selected parameter set species=%s reporter=%s infected=%s overrides=%s",
        species_key,
        reporter_key,
        infected,
        sorted(overrides),
    )
    return params


@dataclass(frozen=True, slots=True)
class SimulationInputs:
    species: str = "mouse"
    reporter: str = "PFC1"
    infected: bool = True
    dose_um: float | None = None
    t_start_min: float = 0.0
    t_end_min: float = 120.0
    dt_min: float = 0.1
    rtol: float = 1e-10
    atol: float = 1e-10
    method: str = "BDF"
    max_steps: int = 100_000
    overrides: Mapping[str, float] | tuple[tuple[str, float], ...] = ()

    def __post_init__(self) -> None:
        # Stored as sorted (name, value) pairs so the record stays immutable and hashable.
        items = self.overrides.items() if isinstance(self.overrides, Mapping) else self.overrides
        object.__setattr__(self, "overrides", tuple(sorted((str(name), value) for name, value in items)))

    def resolved_dose_um(self) -> float:
        if self.dose_um is not None:
            return self.dose_um
        return default_dose_um(self.species)


def validate_inputs(inputs: SimulationInputs) -> None:
    """Validate simulation inputs and raise ConfigurationError on failures."""

    errors: list[str] = _check_selectors(
        normalize_species(inputs.species), normalize_reporter(inputs.reporter)
    )

    if inputs.dose_um is not None and inputs.dose_um < 0.0:
        errors.append("dose_um must be >= 0")
    if inputs.dt_min <= 0.0:
        errors.append("dt_min must be > 0")
    if inputs.t_end_min <= inputs.t_start_min:
        errors.append("t_end_min must be greater than t_start_min")
    elif inputs.dt_min > inputs.t_end_min - inputs.t_start_min:
        errors.append("dt_min must be <= t_end_min - t_start_min")
    if inputs.rtol <= 0.0:
        errors.append("rtol must be > 0")
    if inputs.atol <= 0.0:
        errors.append("atol must be > 0")
    if inputs.max_steps <= 0:
        errors.append("max_steps must be > 0")
    if inputs.method not in SOLVER_METHODS:
        errors.append(f"method must be one of {', '.join(SOLVER_METHODS)}")

    if errors:
        raise ConfigurationError("; ".join(errors))
