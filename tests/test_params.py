from dataclasses import replace

import pytest

from vabnsim.params import (
    ConfigurationError,
    SimulationInputs,
    build_parameter_set,
    default_dose_um,
    supported_combinations,
    validate_inputs,
)


def _baseline_inputs() -> SimulationInputs:
    return SimulationInputs(
        species="mouse",
        reporter="PFC1",
        infected=True,
        dose_um=10.0,
        t_start_min=0.0,
        t_end_min=120.0,
        dt_min=0.1,
    )


def test_validate_inputs_accepts_baseline() -> None:
    validate_inputs(_baseline_inputs())


@pytest.mark.parametrize("species,reporter", supported_combinations())
def test_derived_fields_follow_primaries(species: str, reporter: str) -> None:
    params = build_parameter_set(species, reporter)
    assert params.H_tissue_blood == params.H_tissue_air / params.H_blood_air
    assert params.NS_k_cat == params.k_cat / 60.0
    assert params.NS_Km == params.Km * 35.0
    assert params.Qmc == params.Qm / params.Vl


def test_supported_combinations_are_mouse_all_and_human_pfc1() -> None:
    combos = supported_combinations()
    assert combos == [
        ("mouse", "PFC1"),
        ("mouse", "PFC3"),
        ("mouse", "PFC5"),
        ("mouse", "PFC7"),
        ("human", "PFC1"),
    ]


def test_mouse_pfc1_constants() -> None:
    params = build_parameter_set("mouse", "PFC1")
    assert params.Qm == 0.037
    assert params.Vl == 0.131e-3
    assert params.NE == 0.0035
    assert params.k_cat == 186.0
    assert params.Km == 10.91
    assert params.NS_E == 2.62
    assert params.k_np_phago == 6e-4
    assert params.k_reporter_tissue == 30.8


def test_pfc7_reuses_pfc5_partition_coefficients() -> None:
    pfc5 = build_parameter_set("mouse", "PFC5")
    pfc7 = build_parameter_set("mouse", "PFC7")
    assert pfc7.H_blood_air == pfc5.H_blood_air
    assert pfc7.H_tissue_air == pfc5.H_tissue_air
    assert pfc7.k_cat != pfc5.k_cat


def test_human_uses_human_physiology_and_elastase() -> None:
    params = build_parameter_set("human", "PFC1")
    assert params.Qm == 7.5
    assert params.Vl == 543.5e-3
    assert params.NE == 2.64


def test_selectors_are_case_insensitive() -> None:
    params = build_parameter_set(" Mouse", "pfc3")
    assert params.species == "mouse"
    assert params.reporter == "PFC3"


def test_healthy_control_has_no_elastase() -> None:
    params = build_parameter_set("mouse", "PFC1", infected=False)
    assert params.NE == 0.0
    assert params.NS_E == 2.62


@pytest.mark.parametrize("reporter", ["PFC3", "PFC5", "PFC7"])
def test_human_without_pfc1_is_rejected(reporter: str) -> None:
    with pytest.raises(ConfigurationError) as exc:
        build_parameter_set("human", reporter)
    assert f"No parameter set defined for species=human with reporter={reporter}" in str(exc.value)


def test_unknown_species_and_reporter_are_both_reported() -> None:
    with pytest.raises(ConfigurationError) as exc:
        build_parameter_set("rat", "PFC9")
    msg = str(exc.value)
    assert "Unsupported species: rat" in msg
    assert "Unsupported reporter: PFC9" in msg


def test_configuration_error_is_value_error() -> None:
    with pytest.raises(ValueError):
        build_parameter_set("dog", "PFC1")


def test_overrides_recompute_derived_fields() -> None:
    params = build_parameter_set("mouse", "PFC1", k_cat=120.0, Km=5.0, Qm=0.05)
    assert params.k_cat == 120.0
    assert params.NS_k_cat == 120.0 / 60.0
    assert params.NS_Km == 5.0 * 35.0
    assert params.Qmc == 0.05 / params.Vl


def test_replace_recomputes_derived_fields() -> None:
    params = replace(build_parameter_set("mouse", "PFC1"), H_blood_air=10.0)
    assert params.H_tissue_blood == params.H_tissue_air / 10.0


def test_derived_override_is_rejected() -> None:
    with pytest.raises(ConfigurationError) as exc:
        build_parameter_set("mouse", "PFC1", NS_Km=1.0)
    assert "NS_Km is derived and cannot be overridden" in str(exc.value)


def test_unknown_override_is_rejected() -> None:
    with pytest.raises(ConfigurationError) as exc:
        build_parameter_set("mouse", "PFC1", k_unknown=1.0)
    assert "Unknown parameter override: k_unknown" in str(exc.value)


def test_parameter_set_is_immutable() -> None:
    params = build_parameter_set("mouse", "PFC1")
    with pytest.raises(AttributeError):
        params.NE = 1.0  # type: ignore[misc]


def test_default_doses() -> None:
    assert default_dose_um("mouse") == 10.0
    assert default_dose_um("human") == 27.03
    assert SimulationInputs(species="human").resolved_dose_um() == 27.03
    assert replace(_baseline_inputs(), dose_um=3.0).resolved_dose_um() == 3.0


def test_validate_inputs_rejects_unsupported_pair() -> None:
    invalid = replace(_baseline_inputs(), species="human", reporter="PFC5")
    with pytest.raises(ConfigurationError) as exc:
        validate_inputs(invalid)
    assert "No parameter set defined for species=human with reporter=PFC5" in str(exc.value)


def test_validate_inputs_rejects_negative_dose() -> None:
    invalid = replace(_baseline_inputs(), dose_um=-1.0)
    with pytest.raises(ConfigurationError) as exc:
        validate_inputs(invalid)
    assert "dose_um must be >= 0" in str(exc.value)


def test_validate_inputs_rejects_non_positive_dt() -> None:
    invalid = replace(_baseline_inputs(), dt_min=0.0)
    with pytest.raises(ConfigurationError) as exc:
        validate_inputs(invalid)
    assert "dt_min must be > 0" in str(exc.value)


def test_validate_inputs_rejects_reversed_span() -> None:
    invalid = replace(_baseline_inputs(), t_start_min=10.0, t_end_min=5.0)
    with pytest.raises(ConfigurationError) as exc:
        validate_inputs(invalid)
    assert "t_end_min must be greater than t_start_min" in str(exc.value)


def test_validate_inputs_rejects_dt_greater_than_span() -> None:
    invalid = replace(_baseline_inputs(), dt_min=200.0)
    with pytest.raises(ConfigurationError) as exc:
        validate_inputs(invalid)
    assert "dt_min must be <= t_end_min - t_start_min" in str(exc.value)


def test_validate_inputs_rejects_bad_solver_settings() -> None:
    invalid = replace(_baseline_inputs(), rtol=0.0, atol=-1.0, max_steps=0, method="RK45")
    with pytest.raises(ConfigurationError) as exc:
        validate_inputs(invalid)
    msg = str(exc.value)
    assert "rtol must be > 0" in msg
    assert "atol must be > 0" in msg
    assert "max_steps must be > 0" in msg
    assert "method must be one of BDF, Radau, LSODA" in msg


@pytest.mark.parametrize("name", ["Vl", "H_blood_air", "H_tissue_air"])
def test_zero_denominator_override_is_rejected(name: str) -> None:
    with pytest.raises(ConfigurationError) as exc:
        build_parameter_set("mouse", "PFC1", **{name: 0.0})
    assert f"{name} must be > 0" in str(exc.value)


@pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_override_is_rejected(value: float) -> None:
    with pytest.raises(ConfigurationError) as exc:
        build_parameter_set("mouse", "PFC1", k_np_tissue=value)
    assert "k_np_tissue must be finite" in str(exc.value)


@pytest.mark.parametrize("name", ["k_np_phago", "Km", "NE"])
def test_negative_override_is_rejected(name: str) -> None:
    with pytest.raises(ConfigurationError) as exc:
        build_parameter_set("mouse", "PFC1", **{name: -1.0})
    assert f"{name} must be >= 0" in str(exc.value)


def test_non_numeric_override_is_rejected() -> None:
    with pytest.raises(ConfigurationError) as exc:
        build_parameter_set("mouse", "PFC1", Km="fast")  # type: ignore[arg-type]
    assert "Km must be a number" in str(exc.value)


def test_zero_rate_override_is_allowed() -> None:
    params = build_parameter_set("mouse", "PFC1", k_np_phago=0.0, Qm=0.0)
    assert params.k_np_phago == 0.0
    assert params.Qmc == 0.0


def test_inputs_overrides_are_frozen_and_hashable() -> None:
    source = {"NS_E": 5.24, "k_cat": 100.0}
    inputs = SimulationInputs(overrides=source)
    source["NS_E"] = 0.0
    assert inputs.overrides == (("NS_E", 5.24), ("k_cat", 100.0))
    assert dict(inputs.overrides) == {"NS_E": 5.24, "k_cat": 100.0}
    assert hash(inputs) == hash(SimulationInputs(overrides={"k_cat": 100.0, "NS_E": 5.24}))
    assert replace(inputs, dt_min=0.5).overrides == inputs.overrides
