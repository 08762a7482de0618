from __future__ import annotations

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from api.server import (
    MAX_SWEEP_RUNS,
    BatchRequest,
    BatchRun,
    ScenarioPayload,
    SimulationRequest,
    SweepAxisPayload,
    SweepRequest,
    batch,
    defaults,
    health,
    simulate,
    sweep,
)
from services.scenario import ScenarioParameters


def test_health_and_defaults() -> None:
    assert health() == {"status": "ok"}
    assert defaults() == ScenarioParameters().to_dict()


def test_payload_defaults_mirror_scenario_parameters() -> None:
    assert ScenarioPayload().build() == ScenarioParameters()


def test_simulate_with_defaults() -> None:
    response = simulate(SimulationRequest())

    assert response["warnings"] == []
    assert response["output"]["hourly"] is None
    assert len(response["output"]["monthly_results"]) == 12
    assert len(response["targets"]) == 5
    assert response["insights"]
    assert "gas_twh" in response["reference_delta"]


def test_simulate_with_hourly_arrays() -> None:
    request = SimulationRequest(scenario=ScenarioPayload(seed=7), include_hourly=True)
    response = simulate(request)

    assert len(response["output"]["hourly"]["price"]) == 8760
    assert response["output"]["params"]["seed"] == 7


def test_strict_mode_rejects_warnings() -> None:
    request = SimulationRequest(scenario=ScenarioPayload(seed=0), strict=True)

    with pytest.raises(HTTPException) as excinfo:
        simulate(request)
    assert excinfo.value.status_code == 400


def test_batch_runs_each_scenario() -> None:
    request = BatchRequest(
        runs=[
            BatchRun(name="baseline", scenario=ScenarioPayload()),
            BatchRun(scenario=ScenarioPayload(gas_price_eur_mwh_th=80)),
        ]
    )
    response = batch(request)

    assert [run["name"] for run in response["runs"]] == ["baseline", "scenario"]
    prices = [run["output"]["summary"]["weighted_avg_price"] for run in response["runs"]]
    assert prices[1] > prices[0]


def test_batch_requires_runs() -> None:
    with pytest.raises(ValidationError):
        BatchRequest(runs=[])


def test_sweep_returns_one_row_per_value() -> None:
    request = SweepRequest(axes=[SweepAxisPayload(parameter="co2_price_eur_t", values=[30.0, 90.0])])
    response = sweep(request)

    assert len(response["rows"]) == 2
    assert response["rows"][0]["parameter"] == "co2_price_eur_t"
    assert response["rows"][1]["value"] == 90.0


def test_sweep_expands_a_range_axis() -> None:
    axis = SweepAxisPayload(parameter="gas_price_eur_mwh_th", min_value=30.0, max_value=60.0, steps=3)
    response = sweep(SweepRequest(axes=[axis]))

    assert response["run_count"] == 3
    assert [row["value"] for row in response["rows"]] == [30.0, 45.0, 60.0]


def test_sweep_rejects_unknown_parameter_and_incomplete_axes() -> None:
    with pytest.raises(ValidationError):
        SweepAxisPayload(parameter="coal_gw", values=[1.0])
    with pytest.raises(ValidationError):
        SweepAxisPayload(parameter="seed", values=[])
    with pytest.raises(ValidationError):
        SweepAxisPayload(parameter="seed", min_value=1.0, max_value=5.0)


def test_sweep_run_cap_cannot_be_raised_by_the_caller() -> None:
    too_many = [float(v) for v in range(MAX_SWEEP_RUNS + 1)]

    with pytest.raises(ValidationError):
        SweepRequest(axes=[SweepAxisPayload(parameter="seed", values=too_many)], max_runs=10**9)
    with pytest.raises(ValidationError):
        SweepRequest(
            axes=[SweepAxisPayload(parameter="seed", min_value=1.0, max_value=1e6, steps=MAX_SWEEP_RUNS + 1)]
        )


def test_runaway_demand_growth_is_clamped_not_an_error() -> None:
    request = SimulationRequest(scenario=ScenarioPayload(demand_growth_pct=1000, target_year=2400))
    response = simulate(request)

    assert response["output"]["adjusted_demand_twh"] == 360.0
    assert response["output"]["summary"]["adjusted_demand_twh"] == 360.0
