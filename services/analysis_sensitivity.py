"""One-at-a-time parameter sweeps over the deterministic simulation core."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from services.scenario import PARAMETER_NAMES, ScenarioParameters, merge_parameters
from services.simulation_core import (
    ResourceSeries,
    SimulationOutput,
    build_resource_series,
    simulate_scenario,
    summarize_simulation,
)

LOGGER = logging.getLogger(__name__)

# Parameters that change the generated weather/demand series; every other
# field can reuse the base run's series.
SERIES_PARAMETERS = frozenset({"seed", "hydraulicity"})

SWEEP_KPI_COLUMNS: tuple[str, ...] = (
    "weighted_avg_price",
    "avg_price",
    "price_p10",
    "price_median",
    "price_p90",
    "emissions_mt",
    "renewable_coverage_pct",
    "gas_twh",
    "curtailment_pct",
    "deficit_hours",
    "negative_price_hours",
    "high_price_hours",
)


def generate_values(start: float, stop: float, steps: int) -> List[float]:
    """Evenly spaced sweep grid from ``start`` to ``stop`` inclusive.

    One step yields the midpoint; an empty or inverted range yields ``start``.
    """

    if steps <= 1:
        return [0.5 * (start + stop)]
    if stop <= start:
        return [float(start)]
    return [float(v) for v in np.linspace(start, stop, int(steps))]


@dataclass(frozen=True)
class SensitivityAxis:
    """One scenario field and the values it is swept over."""

    parameter: str
    values: List[float]

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "SensitivityAxis":
        """Build an axis from explicit ``values`` or a ``min_value``/``max_value``/``steps`` range."""

        parameter = str(payload["parameter"])
        if payload.get("values") is not None:
            values = [float(v) for v in payload["values"]]
        elif all(payload.get(key) is not None for key in ("min_value", "max_value", "steps")):
            values = generate_values(float(payload["min_value"]), float(payload["max_value"]), int(payload["steps"]))
        else:
            raise ValueError(f"Axis '{parameter}' needs either values or min_value/max_value/steps.")
        if not values:
            raise ValueError(f"Axis '{parameter}' has no values.")
        return cls(parameter=parameter, values=values)


@dataclass(frozen=True)
class SensitivityRequest:
    axes: List[SensitivityAxis]
    base_overrides: Dict[str, Any]

    @property
    def run_count(self) -> int:
        return sum(len(axis.values) for axis in self.axes)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "SensitivityRequest":
        """Parse and validate dictionary input for API payloads."""

        axes = [SensitivityAxis.from_dict(axis) for axis in payload.get("axes", [])]
        if not axes:
            raise ValueError("Provide at least one sweep axis.")
        return cls(axes=axes, base_overrides=dict(payload.get("base") or {}))


def run_parameter_sweep(
    base: ScenarioParameters,
    parameter: str,
    values: Sequence[float],
    simulate_fn: Optional[Callable[..., SimulationOutput]] = None,
    series: Optional[ResourceSeries] = None,
) -> pd.DataFrame:
    """Simulate ``base`` once per value of ``parameter`` and tabulate headline KPIs."""

    if parameter not in PARAMETER_NAMES:
        raise ValueError(f"Unsupported sensitivity parameter: {parameter}")

    simulate_fn = simulate_fn or simulate_scenario
    if parameter in SERIES_PARAMETERS:
        series = None
    elif series is None:
        series = build_resource_series(base)

    rows: List[Dict[str, Any]] = []
    for value in values:
        try:
            params = merge_parameters({parameter: value}, base=base)
        except ValueError as exc:
            LOGGER.warning("Skipping %s=%r in sweep: %s", parameter, value, exc)
            continue
        output = simulate_fn(params, series=series)
        kpis = summarize_simulation(output)
        row: Dict[str, Any] = {"parameter": parameter, "value": getattr(params, parameter)}
        row.update({column: kpis[column] for column in SWEEP_KPI_COLUMNS})
        rows.append(row)

    if not rows:
        return pd.DataFrame(columns=["parameter", "value", *SWEEP_KPI_COLUMNS])
    return pd.DataFrame(rows)


def run_sensitivity_analysis(
    request: SensitivityRequest,
    simulate_fn: Optional[Callable[..., SimulationOutput]] = None,
) -> pd.DataFrame:
    """Sweep each axis independently from the same base scenario."""

    base = merge_parameters(request.base_overrides)
    shared_series = build_resource_series(base)
    frames = [
        run_parameter_sweep(base, axis.parameter, axis.values, simulate_fn=simulate_fn, series=shared_series)
        for axis in request.axes
    ]
    return pd.concat(frames, ignore_index=True)
