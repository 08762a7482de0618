"""Annual KPIs, price statistics and monthly rollups from a completed run."""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Sequence

import numpy as np

from services.scenario import ScenarioParameters

if TYPE_CHECKING:
    from services.simulation_core import HourlyLog

# Event thresholds (GW) filtering numerical noise out of the hour counters.
ACTIVE_FLOW_THRESHOLD_GW = 0.2
ACTIVE_PLANT_THRESHOLD_GW = 0.3
GWH_PER_TWH = 1000.0


@dataclass
class MonthResult:
    month_index: int
    month_label: str
    hours: int
    nuclear_twh: float
    solar_twh: float
    wind_twh: float
    hydro_twh: float
    gas_twh: float
    storage_twh: float  # battery + pumped discharge
    curtailment_twh: float
    imports_twh: float
    exports_twh: float
    demand_twh: float
    avg_price: float


@dataclass
class SimulationSummary:
    avg_price: float
    weighted_avg_price: float
    price_p10: float
    price_median: float
    price_p90: float
    price_min: float
    price_max: float
    emissions_mt: float
    renewable_coverage_pct: float
    gas_dependency_pct: float
    gas_twh: float
    curtailment_twh: float
    curtailment_pct: float
    imports_twh: float
    exports_twh: float
    flex_up_twh: float
    flex_down_twh: float
    gas_hours: int
    curtailment_hours: int
    deficit_hours: int
    max_deficit_gw: float
    pumped_active_hours: int
    negative_price_hours: int
    high_price_hours: int
    import_hours: int
    export_hours: int
    flex_hours: int
    adjusted_demand_twh: float
    effective_nuclear_gw: float


def price_percentile(prices: Sequence[float], pct: float) -> float:
    """Linear-interpolated order statistic (0 for an empty series)."""

    arr = np.asarray(prices, dtype=float)
    if arr.size == 0:
        return 0.0
    return float(np.percentile(arr, pct))


def month_buckets(n_hours: int) -> np.ndarray:
    """Month index per hour using fixed 30.5-day months."""

    days = np.arange(n_hours) // 24
    return np.floor(days / 30.5).astype(int) % 12


def _safe_pct(numerator: float, denominator: float) -> float:
    return float(numerator / denominator * 100.0) if denominator > 0 else 0.0


def _count(mask: np.ndarray) -> int:
    return int(np.count_nonzero(mask))


def total_generation(log: "HourlyLog") -> float:
    """GWh injected by plants, storage and imports over the year."""

    return float(
        np.sum(
            log.nuclear
            + log.solar
            + log.wind
            + log.hydro
            + log.gas
            + log.battery_discharge
            + log.pumped_discharge
            + log.imports
        )
    )


def summarize_hours(
    params: ScenarioParameters,
    log: "HourlyLog",
    adjusted_demand_twh: float,
    effective_nuclear_gw: float,
) -> SimulationSummary:
    prices = log.price
    demand_total = float(np.sum(log.demand))
    avg_price = float(np.mean(prices)) if prices.size else 0.0
    weighted_avg_price = float(np.dot(prices, log.demand) / demand_total) if demand_total > 0 else avg_price

    generation = total_generation(log)
    renewable = float(np.sum(log.solar + log.wind + log.hydro))
    variable_renewable = float(np.sum(log.solar + log.wind))
    gas_gwh = float(np.sum(log.gas))
    curtailed_gwh = float(np.sum(log.curtailment))

    efficiency = max(params.constants.min_ccgt_efficiency, params.ccgt_efficiency)
    emissions_kt = gas_gwh * params.constants.co2_t_per_mwh_th / efficiency

    deficit_mask = log.unserved > ACTIVE_PLANT_THRESHOLD_GW
    flex_mask = (log.flex_up > ACTIVE_FLOW_THRESHOLD_GW) | (log.flex_down > ACTIVE_FLOW_THRESHOLD_GW)

    return SimulationSummary(
        avg_price=avg_price,
        weighted_avg_price=weighted_avg_price,
        price_p10=price_percentile(prices, 10),
        price_median=price_percentile(prices, 50),
        price_p90=price_percentile(prices, 90),
        price_min=float(np.min(prices)) if prices.size else 0.0,
        price_max=float(np.max(prices)) if prices.size else 0.0,
        emissions_mt=emissions_kt / GWH_PER_TWH,
        renewable_coverage_pct=_safe_pct(renewable, generation),
        gas_dependency_pct=_safe_pct(gas_gwh, generation),
        gas_twh=gas_gwh / GWH_PER_TWH,
        curtailment_twh=curtailed_gwh / GWH_PER_TWH,
        curtailment_pct=_safe_pct(curtailed_gwh, variable_renewable),
        imports_twh=float(np.sum(log.imports)) / GWH_PER_TWH,
        exports_twh=float(np.sum(log.exports)) / GWH_PER_TWH,
        flex_up_twh=float(np.sum(log.flex_up)) / GWH_PER_TWH,
        flex_down_twh=float(np.sum(log.flex_down)) / GWH_PER_TWH,
        gas_hours=_count(log.gas > ACTIVE_PLANT_THRESHOLD_GW),
        curtailment_hours=_count(log.curtailment > ACTIVE_PLANT_THRESHOLD_GW),
        deficit_hours=_count(deficit_mask),
        max_deficit_gw=float(np.max(log.unserved[deficit_mask])) if deficit_mask.any() else 0.0,
        pumped_active_hours=_count(log.pumped_charge > ACTIVE_PLANT_THRESHOLD_GW),
        negative_price_hours=_count(prices < 0),
        high_price_hours=_count(prices > params.constants.high_price_eur_mwh),
        import_hours=_count(log.imports > ACTIVE_FLOW_THRESHOLD_GW),
        export_hours=_count(log.exports > ACTIVE_FLOW_THRESHOLD_GW),
        flex_hours=_count(flex_mask),
        adjusted_demand_twh=float(adjusted_demand_twh),
        effective_nuclear_gw=float(effective_nuclear_gw),
    )


def monthly_rollup(log: "HourlyLog") -> List[MonthResult]:
    """Twelve buckets of energy (TWh) and average price."""

    buckets = month_buckets(len(log))

    def _twh(values: np.ndarray) -> np.ndarray:
        return np.bincount(buckets, weights=values, minlength=12) / GWH_PER_TWH

    hours = np.bincount(buckets, minlength=12)
    price_sum = np.bincount(buckets, weights=log.price, minlength=12)
    nuclear = _twh(log.nuclear)
    solar = _twh(log.solar)
    wind = _twh(log.wind)
    hydro = _twh(log.hydro)
    gas = _twh(log.gas)
    storage = _twh(log.battery_discharge + log.pumped_discharge)
    curtailment = _twh(log.curtailment)
    imports = _twh(log.imports)
    exports = _twh(log.exports)
    demand = _twh(log.demand)

    months: List[MonthResult] = []
    for m in range(12):
        months.append(
            MonthResult(
                month_index=m + 1,
                month_label=calendar.month_abbr[m + 1],
                hours=int(hours[m]),
                nuclear_twh=float(nuclear[m]),
                solar_twh=float(solar[m]),
                wind_twh=float(wind[m]),
                hydro_twh=float(hydro[m]),
                gas_twh=float(gas[m]),
                storage_twh=float(storage[m]),
                curtailment_twh=float(curtailment[m]),
                imports_twh=float(imports[m]),
                exports_twh=float(exports[m]),
                demand_twh=float(demand[m]),
                avg_price=float(price_sum[m] / hours[m]) if hours[m] > 0 else 0.0,
            )
        )
    return months
