"""Serialization helpers for scenarios and simulation outputs."""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Optional, Union

import numpy as np
import pandas as pd

from services.dispatch import HOUR_RECORD_FIELDS
from services.scenario import ScenarioParameters, merge_parameters
from services.simulation_core import SimulationOutput


def scenario_to_json(params: ScenarioParameters, indent: Optional[int] = 2) -> str:
    """Return the scenario as a JSON document that can be shared or reloaded."""

    return json.dumps(params.to_dict(), indent=indent, sort_keys=True)


def scenario_from_json(text: str, base: Optional[ScenarioParameters] = None) -> ScenarioParameters:
    """Parse a JSON scenario, filling missing fields from ``base`` or the defaults."""

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Scenario JSON could not be parsed: {exc.msg}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Scenario JSON must be an object of parameter names to values.")
    return merge_parameters(payload, base=base)


def hourly_frame(sim_output: SimulationOutput) -> pd.DataFrame:
    """Hour-by-hour dispatch, storage levels and price as a DataFrame."""

    log = sim_output.hourly
    hours = np.arange(len(log))
    data: Dict[str, Any] = {"hour_index": hours, "day": hours // 24, "hour_of_day": hours % 24}
    for name in HOUR_RECORD_FIELDS:
        data[f"{name}_gw"] = getattr(log, name)
    data["battery_level_gwh"] = log.battery_level_gwh
    data["pumped_level_gwh"] = log.pumped_level_gwh
    data["price_eur_mwh"] = log.price
    return pd.DataFrame(data)


def monthly_frame(sim_output: SimulationOutput) -> pd.DataFrame:
    return pd.DataFrame([asdict(m) for m in sim_output.monthly_results])


def write_hourly_csv(sim_output: SimulationOutput, path: Union[str, Path]) -> Path:
    path = Path(path)
    hourly_frame(sim_output).to_csv(path, index=False)
    return path


def serialize_hourly(sim_output: SimulationOutput) -> Dict[str, Any]:
    log = sim_output.hourly
    data = {name: getattr(log, name).tolist() for name in HOUR_RECORD_FIELDS}
    data["price"] = log.price.tolist()
    data["battery_level_gwh"] = log.battery_level_gwh.tolist()
    data["pumped_level_gwh"] = log.pumped_level_gwh.tolist()
    return data


def serialize_output(sim_output: SimulationOutput, include_hourly: bool = False) -> Dict[str, Any]:
    """JSON-ready view of a run; hourly arrays are opt-in because of their size."""

    return {
        "params": sim_output.params.to_dict(),
        "adjusted_demand_twh": sim_output.adjusted_demand_twh,
        "mean_demand_gw": sim_output.mean_demand_gw,
        "effective_nuclear_gw": sim_output.effective_nuclear_gw,
        "summary": asdict(sim_output.summary),
        "monthly_results": [asdict(m) for m in sim_output.monthly_results],
        "hourly": serialize_hourly(sim_output) if include_hourly else None,
    }
