from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field, field_validator, model_validator

from services.analysis_sensitivity import SensitivityRequest, run_sensitivity_analysis
from services.scenario import PARAMETER_NAMES, ScenarioParameters, merge_parameters
from services.simulation_core import simulate_scenario
from utils.io import serialize_output
from utils.targets import assess_targets, build_target_insights, compare_to_reference

LOGGER = logging.getLogger(__name__)

_DEFAULT_PARAMS = ScenarioParameters()

# Upper bound on full-year simulations per /sweep request.
MAX_SWEEP_RUNS = int(os.getenv("GRIDLAB_MAX_SWEEP_RUNS", "50"))


class ScenarioPayload(BaseModel):
    """Pydantic mirror of :class:`ScenarioParameters` for FastAPI requests."""

    nuclear_gw: float = _DEFAULT_PARAMS.nuclear_gw
    solar_gw: float = _DEFAULT_PARAMS.solar_gw
    wind_gw: float = _DEFAULT_PARAMS.wind_gw
    hydro_gw: float = _DEFAULT_PARAMS.hydro_gw
    gas_gw: float = _DEFAULT_PARAMS.gas_gw
    battery_power_gw: float = _DEFAULT_PARAMS.battery_power_gw
    battery_energy_gwh: float = _DEFAULT_PARAMS.battery_energy_gwh
    pumped_power_gw: float = _DEFAULT_PARAMS.pumped_power_gw
    pumped_energy_gwh: float = _DEFAULT_PARAMS.pumped_energy_gwh
    gas_price_eur_mwh_th: float = _DEFAULT_PARAMS.gas_price_eur_mwh_th
    co2_price_eur_t: float = _DEFAULT_PARAMS.co2_price_eur_t
    ccgt_efficiency: float = _DEFAULT_PARAMS.ccgt_efficiency
    ccgt_om_eur_mwh: float = _DEFAULT_PARAMS.ccgt_om_eur_mwh
    system_charge_eur_mwh: float = _DEFAULT_PARAMS.system_charge_eur_mwh
    network_loss_rate: float = _DEFAULT_PARAMS.network_loss_rate
    seed: int = _DEFAULT_PARAMS.seed
    annual_demand_twh: float = _DEFAULT_PARAMS.annual_demand_twh
    hydraulicity: float = _DEFAULT_PARAMS.hydraulicity
    target_year: int = _DEFAULT_PARAMS.target_year
    demand_growth_pct: float = _DEFAULT_PARAMS.demand_growth_pct
    electrification_twh: float = _DEFAULT_PARAMS.electrification_twh
    demand_efficiency_pct: float = _DEFAULT_PARAMS.demand_efficiency_pct
    apply_nuclear_phaseout: bool = _DEFAULT_PARAMS.apply_nuclear_phaseout
    nuclear_closure_year: int = _DEFAULT_PARAMS.nuclear_closure_year
    flex_power_gw: float = _DEFAULT_PARAMS.flex_power_gw
    flex_pct: float = _DEFAULT_PARAMS.flex_pct
    interconnection_gw: float = _DEFAULT_PARAMS.interconnection_gw
    import_price_eur_mwh: float = _DEFAULT_PARAMS.import_price_eur_mwh
    export_price_eur_mwh: float = _DEFAULT_PARAMS.export_price_eur_mwh
    scarcity_price_eur_mwh: float = _DEFAULT_PARAMS.scarcity_price_eur_mwh

    def build(self) -> ScenarioParameters:
        try:
            return merge_parameters(self.model_dump())
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc


class SimulationRequest(BaseModel):
    scenario: ScenarioPayload = Field(default_factory=ScenarioPayload)
    include_hourly: bool = False
    strict: bool = False


class BatchRun(BaseModel):
    name: Optional[str] = None
    scenario: ScenarioPayload


class BatchRequest(BaseModel):
    runs: List[BatchRun]

    @model_validator(mode="after")
    def _require_runs(self) -> "BatchRequest":
        if not self.runs:
            raise ValueError("Provide at least one run in 'runs'.")
        return self


class SweepAxisPayload(BaseModel):
    parameter: str
    values: Optional[List[float]] = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    steps: Optional[int] = None

    @field_validator("parameter")
    @classmethod
    def _validate_parameter(cls, value: str) -> str:
        if value not in PARAMETER_NAMES:
            raise ValueError(f"parameter must be one of {list(PARAMETER_NAMES)}")
        return value

    @model_validator(mode="after")
    def _require_grid(self) -> "SweepAxisPayload":
        if self.values is not None:
            if not self.values:
                raise ValueError("values cannot be empty.")
        elif self.min_value is None or self.max_value is None or self.steps is None:
            raise ValueError("Provide values or min_value, max_value and steps.")
        return self

    @property
    def run_count(self) -> int:
        if self.values is not None:
            return len(self.values)
        if self.steps <= 1 or self.max_value <= self.min_value:
            return 1
        return self.steps


class SweepRequest(BaseModel):
    scenario: ScenarioPayload = Field(default_factory=ScenarioPayload)
    axes: List[SweepAxisPayload]

    @model_validator(mode="after")
    def _ensure_budget(self) -> "SweepRequest":
        if not self.axes:
            raise ValueError("Provide at least one sweep axis.")
        total = sum(axis.run_count for axis in self.axes)
        if total > MAX_SWEEP_RUNS:
            raise ValueError(f"Sweep requests {total} runs; the limit is {MAX_SWEEP_RUNS}.")
        return self


def _run(scenario: ScenarioPayload, include_hourly: bool = False, strict: bool = False) -> Dict[str, Any]:
    params = scenario.build()
    try:
        sim_output = simulate_scenario(params)
    except (ValueError, RuntimeError) as exc:
        LOGGER.exception("Simulation failed for seed=%s", params.seed)
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    if strict and sim_output.warnings:
        raise HTTPException(status_code=400, detail=sim_output.warnings)

    target_rows = assess_targets(params, sim_output.summary)
    return {
        "warnings": sim_output.warnings,
        "output": serialize_output(sim_output, include_hourly=include_hourly),
        "targets": target_rows,
        "insights": build_target_insights(target_rows),
        "reference_delta": compare_to_reference(sim_output.summary),
    }


app = FastAPI(
    title="GridLab API",
    description="REST API for hourly grid dispatch and price-formation scenarios.",
    version="0.1.0",
)


_default_cors_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:4173",
    "http://127.0.0.1:4173",
]
_allowed_origins_env = os.getenv("GRIDLAB_CORS_ORIGINS", "")
_allowed_origins = [
    origin.strip()
    for origin in _allowed_origins_env.split(",")
    if origin.strip()
] or _default_cors_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health() -> Dict[str, str]:
    """Simple liveness probe for container orchestrators."""
    return {"status": "ok"}


@app.get("/defaults")
def defaults() -> Dict[str, Any]:
    return _DEFAULT_PARAMS.to_dict()


@app.post("/simulate")
def simulate(request: SimulationRequest) -> Dict[str, Any]:
    """Run one full-year scenario and return KPIs, monthly rollup and target status."""

    return _run(request.scenario, include_hourly=request.include_hourly, strict=request.strict)


@app.post("/batch")
def batch(request: BatchRequest) -> Dict[str, Any]:
    """Run several scenarios and return their summaries side by side."""

    responses: List[Dict[str, Any]] = []
    warnings: List[str] = []
    for run in request.runs:
        result = _run(run.scenario)
        warnings.extend(result["warnings"])
        responses.append({"name": run.name or "scenario", **result})
    return {"warnings": warnings, "runs": responses}


@app.post("/sweep")
def sweep(request: SweepRequest) -> Dict[str, Any]:
    """One-at-a-time sensitivity sweep around the supplied scenario."""

    base = request.scenario.build()
    try:
        sensitivity = SensitivityRequest.from_dict(
            {
                "base": base.to_dict(),
                "axes": [axis.model_dump(exclude_none=True) for axis in request.axes],
            }
        )
        results_df = run_sensitivity_analysis(sensitivity)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"run_count": sensitivity.run_count, "rows": results_df.to_dict(orient="records")}


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run("api.server:app", host="0.0.0.0", port=8000, reload=False)
