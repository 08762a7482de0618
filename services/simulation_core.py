from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

import numpy as np

from services.aggregation import MonthResult, SimulationSummary, monthly_rollup, summarize_hours
from services.demand import adjusted_annual_demand_twh, effective_nuclear_gw, generate_demand_series
from services.dispatch import HOUR_RECORD_FIELDS, HourRecord, StorageState, dispatch_hour
from services.pricing import marginal_price
from services.rng import demand_rng, meteo_rng, wind_rng
from services.scenario import (
    HOURS_PER_YEAR,
    MODEL,
    ModelConstants,
    ScenarioParameters,
    merge_parameters,
    validate_parameters,
)
from services.weather import generate_hydro_series, generate_solar_series, generate_wind_series

LOGGER = logging.getLogger(__name__)


@dataclass
class ResourceSeries:
    """Precomputed full-year inputs consumed by the dispatch loop."""

    demand_shape: np.ndarray
    solar_cf: np.ndarray
    wind_cf: np.ndarray
    hydro_cf: np.ndarray


@dataclass
class HourlyLog:
    demand: np.ndarray
    nuclear: np.ndarray
    solar: np.ndarray
    wind: np.ndarray
    hydro: np.ndarray
    gas: np.ndarray
    battery_discharge: np.ndarray
    pumped_discharge: np.ndarray
    battery_charge: np.ndarray
    pumped_charge: np.ndarray
    flex_up: np.ndarray
    flex_down: np.ndarray
    imports: np.ndarray
    exports: np.ndarray
    curtailment: np.ndarray
    unserved: np.ndarray
    price: np.ndarray
    battery_level_gwh: np.ndarray
    pumped_level_gwh: np.ndarray

    @classmethod
    def empty(cls, hours: int) -> "HourlyLog":
        names = HOUR_RECORD_FIELDS + ("price", "battery_level_gwh", "pumped_level_gwh")
        return cls(**{name: np.zeros(hours) for name in names})

    def __len__(self) -> int:
        return len(self.price)

    def write(self, h: int, record: HourRecord, price: float, storage: StorageState) -> None:
        if not 0 <= h < len(self):
            raise RuntimeError(f"Hour index {h} is outside the {len(self)}-hour log.")
        for name in HOUR_RECORD_FIELDS:
            getattr(self, name)[h] = getattr(record, name)
        self.price[h] = price
        self.battery_level_gwh[h] = storage.battery.level_gwh
        self.pumped_level_gwh[h] = storage.pumped.level_gwh

    def record(self, h: int) -> HourRecord:
        return HourRecord(**{name: float(getattr(self, name)[h]) for name in HOUR_RECORD_FIELDS})


@dataclass
class SimulationOutput:
    params: ScenarioParameters
    adjusted_demand_twh: float
    mean_demand_gw: float
    effective_nuclear_gw: float
    hourly: HourlyLog
    summary: SimulationSummary
    monthly_results: List[MonthResult]
    warnings: List[str] = field(default_factory=list)

    @property
    def prices(self) -> np.ndarray:
        return self.hourly.price


def build_resource_series(params: ScenarioParameters) -> ResourceSeries:
    """Run every stochastic generator once, each from its own derived seed."""

    constants = params.constants
    return ResourceSeries(
        demand_shape=generate_demand_series(demand_rng(params.seed), constants),
        solar_cf=generate_solar_series(meteo_rng(params.seed), constants),
        wind_cf=generate_wind_series(wind_rng(params.seed), constants),
        hydro_cf=generate_hydro_series(params.hydraulicity, constants),
    )


def _check_hour_contract(series: ResourceSeries, hours: int) -> None:
    for name in ("demand_shape", "solar_cf", "wind_cf", "hydro_cf"):
        length = len(getattr(series, name))
        if length != hours:
            raise RuntimeError(f"{name} has {length} entries; expected {hours}.")


def run_dispatch(
    params: ScenarioParameters,
    series: ResourceSeries,
    mean_demand_gw: float,
    nuclear_gw: float,
) -> HourlyLog:
    """Sequential merit-order dispatch and pricing over the full year."""

    hours = params.constants.hours_per_year
    _check_hour_contract(series, hours)

    storage = StorageState.initial(params)
    log = HourlyLog.empty(hours)
    nuclear_output = nuclear_gw * params.constants.nuclear_capacity_factor
    solar_gw = max(0.0, params.solar_gw)
    wind_gw = max(0.0, params.wind_gw)
    hydro_gw = max(0.0, params.hydro_gw)
    previous_gas = 0.0

    for h in range(hours):
        demand_gw = mean_demand_gw * series.demand_shape[h]
        record = dispatch_hour(
            params,
            storage,
            demand_gw=demand_gw,
            nuclear_gw=nuclear_output,
            solar_gw=solar_gw * series.solar_cf[h],
            wind_gw=wind_gw * series.wind_cf[h],
            hydro_available_gw=hydro_gw * series.hydro_cf[h],
            previous_gas_gw=previous_gas,
        )
        price = marginal_price(params, record, previous_gas)
        log.write(h, record, price, storage)
        previous_gas = record.gas

    return log


def simulate_scenario(
    params: Optional[Union[ScenarioParameters, Mapping[str, Any]]] = None,
    series: Optional[ResourceSeries] = None,
) -> SimulationOutput:
    """Run one full-year simulation.

    ``params`` may be a ScenarioParameters value or a mapping of overrides on
    top of the defaults. ``series`` lets callers reuse generated weather and
    demand across runs that share a seed and hydraulicity.
    """

    if not isinstance(params, ScenarioParameters):
        params = merge_parameters(params)
    warnings = validate_parameters(params)

    demand_twh = adjusted_annual_demand_twh(params)
    mean_demand_gw = demand_twh * 1000.0 / params.constants.hours_per_year
    nuclear_gw = effective_nuclear_gw(params)

    if series is None:
        series = build_resource_series(params)
    log = run_dispatch(params, series, mean_demand_gw, nuclear_gw)

    summary = summarize_hours(params, log, demand_twh, nuclear_gw)
    LOGGER.info(
        "Simulated seed=%s target_year=%s demand=%.1f TWh weighted_price=%.2f EUR/MWh gas=%.1f TWh",
        params.seed,
        params.target_year,
        demand_twh,
        summary.weighted_avg_price,
        summary.gas_twh,
    )
    return SimulationOutput(
        params=params,
        adjusted_demand_twh=demand_twh,
        mean_demand_gw=mean_demand_gw,
        effective_nuclear_gw=nuclear_gw,
        hourly=log,
        summary=summary,
        monthly_results=monthly_rollup(log),
        warnings=warnings,
    )


def summarize_simulation(sim_output: SimulationOutput) -> Dict[str, Any]:
    """Flat KPI mapping for tables and API responses."""

    data: Dict[str, Any] = {
        "seed": sim_output.params.seed,
        "target_year": sim_output.params.target_year,
        "mean_demand_gw": sim_output.mean_demand_gw,
    }
    data.update(vars(sim_output.summary))
    return data


__all__ = [
    "HOURS_PER_YEAR",
    "MODEL",
    "HourRecord",
    "HourlyLog",
    "ModelConstants",
    "MonthResult",
    "ResourceSeries",
    "ScenarioParameters",
    "SimulationOutput",
    "SimulationSummary",
    "build_resource_series",
    "merge_parameters",
    "run_dispatch",
    "simulate_scenario",
    "summarize_simulation",
    "validate_parameters",
]
