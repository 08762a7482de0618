"""Policy target metadata and scenario assessment helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List

from services.aggregation import SimulationSummary
from services.scenario import ScenarioParameters

# 2030 national energy and climate plan targets for the power sector.
TARGETS_2030: Dict[str, float] = {
    "renewable_share_pct": 74.0,
    "emissions_max_mt": 35.0,
    "solar_gw": 76.0,
    "wind_gw": 62.0,
    "storage_gw": 22.0,
    "demand_twh": 280.0,
}

# Observed 2025 system used as the comparison baseline.
REFERENCE_2025: Dict[str, float] = {
    "nuclear_twh": 51.9,
    "gas_twh": 52.1,
    "demand_twh": 260.0,
    "avg_price": 65.0,
    "emissions_mt": 38.0,
    "renewable_share_pct": 56.0,
}

STATUS_MET = "met"
STATUS_PARTIAL = "partial"
STATUS_MISSED = "missed"


@dataclass(frozen=True)
class TargetDefinition:
    key: str
    label: str
    unit: str
    target: float
    partial: float
    higher_is_better: bool
    actual: Callable[[ScenarioParameters, SimulationSummary], float]
    insight: str


TARGET_DEFINITIONS: List[TargetDefinition] = [
    TargetDefinition(
        key="renewable_share",
        label="Renewable share of generation",
        unit="%",
        target=TARGETS_2030["renewable_share_pct"],
        partial=65.0,
        higher_is_better=True,
        actual=lambda params, summary: summary.renewable_coverage_pct,
        insight="Add wind/solar or storage so surplus hours displace gas instead of being curtailed.",
    ),
    TargetDefinition(
        key="emissions",
        label="Power sector CO2 emissions",
        unit="Mt",
        target=TARGETS_2030["emissions_max_mt"],
        partial=45.0,
        higher_is_better=False,
        actual=lambda params, summary: summary.emissions_mt,
        insight="Gas is still setting the residual load; raise flexibility, storage or firm low-carbon supply.",
    ),
    TargetDefinition(
        key="solar_capacity",
        label="Installed solar PV",
        unit="GW",
        target=TARGETS_2030["solar_gw"],
        partial=60.0,
        higher_is_better=True,
        actual=lambda params, summary: params.solar_gw,
        insight="Solar build-out is behind plan.",
    ),
    TargetDefinition(
        key="wind_capacity",
        label="Installed wind",
        unit="GW",
        target=TARGETS_2030["wind_gw"],
        partial=50.0,
        higher_is_better=True,
        actual=lambda params, summary: params.wind_gw,
        insight="Wind build-out is behind plan.",
    ),
    TargetDefinition(
        key="storage_capacity",
        label="Total storage power",
        unit="GW",
        target=TARGETS_2030["storage_gw"],
        partial=15.0,
        higher_is_better=True,
        actual=lambda params, summary: params.battery_power_gw + params.pumped_power_gw,
        insight="Storage power is short of plan; expect more curtailment at midday and gas in the evening.",
    ),
]


def _status(definition: TargetDefinition, actual: float) -> str:
    if definition.higher_is_better:
        if actual >= definition.target:
            return STATUS_MET
        return STATUS_PARTIAL if actual >= definition.partial else STATUS_MISSED
    if actual <= definition.target:
        return STATUS_MET
    return STATUS_PARTIAL if actual <= definition.partial else STATUS_MISSED


def assess_targets(params: ScenarioParameters, summary: SimulationSummary) -> List[Dict[str, object]]:
    """Return one row per target with the scenario value and its status."""

    rows: List[Dict[str, object]] = []
    for definition in TARGET_DEFINITIONS:
        actual = float(definition.actual(params, summary))
        comparator = ">=" if definition.higher_is_better else "<="
        rows.append(
            {
                "key": definition.key,
                "indicator": definition.label,
                "target": f"{comparator} {definition.target:g} {definition.unit}",
                "actual": actual,
                "unit": definition.unit,
                "status": _status(definition, actual),
            }
        )
    return rows


def compare_to_reference(summary: SimulationSummary) -> Dict[str, float]:
    """Differences between the scenario and the 2025 reference system."""

    return {
        "gas_twh": summary.gas_twh - REFERENCE_2025["gas_twh"],
        "demand_twh": summary.adjusted_demand_twh - REFERENCE_2025["demand_twh"],
        "avg_price": summary.weighted_avg_price - REFERENCE_2025["avg_price"],
        "emissions_mt": summary.emissions_mt - REFERENCE_2025["emissions_mt"],
        "renewable_share_pct": summary.renewable_coverage_pct - REFERENCE_2025["renewable_share_pct"],
    }


def build_target_insights(rows: List[Dict[str, object]]) -> List[str]:
    """Translate target rows into short, actionable messages."""

    by_key = {definition.key: definition for definition in TARGET_DEFINITIONS}
    insights: List[str] = []

    for row in rows:
        if row["status"] == STATUS_MET:
            continue
        definition = by_key.get(str(row["key"]))
        if definition is None:
            continue
        insights.append(
            f"{definition.label} is {row['actual']:,.1f} {definition.unit} "
            f"({row['status']}, target {row['target']}). {definition.insight}"
        )

    if not insights:
        insights.append("All 2030 targets are met in this scenario.")

    return insights
