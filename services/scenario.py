"""Scenario configuration values and fixed model constants."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, List, Mapping, Optional, Tuple

LOGGER = logging.getLogger(__name__)

HOURS_PER_YEAR = 8760


@dataclass(frozen=True)
class ModelConstants:
    """Physical and market constants shared by every run."""

    hours_per_year: int = HOURS_PER_YEAR
    latitude_deg: float = 40.4  # representative latitude (Madrid)
    co2_t_per_mwh_th: float = 0.202  # natural gas combustion factor
    battery_efficiency: float = 0.90  # Li-ion round trip
    pumped_efficiency: float = 0.75  # pumped hydro round trip
    nuclear_capacity_factor: float = 0.90
    battery_self_discharge: float = 0.001  # fraction per hour
    gas_ramp_fraction: float = 0.15  # of installed CCGT capacity per hour
    min_ccgt_efficiency: float = 0.45
    base_year: int = 2026
    monthly_temperature_c: Tuple[float, ...] = (
        6.3, 7.9, 11.2, 13.7, 17.6, 23.4, 27.0, 26.4, 21.8, 15.8, 10.1, 6.9,
    )
    min_price_eur_mwh: float = -25.0
    max_price_eur_mwh: float = 500.0
    high_price_eur_mwh: float = 150.0


MODEL = ModelConstants()


@dataclass(frozen=True)
class ScenarioParameters:
    # Installed capacity (GW)
    nuclear_gw: float = 7.0
    solar_gw: float = 24.0
    wind_gw: float = 31.0
    hydro_gw: float = 17.0
    gas_gw: float = 24.0
    # Storage
    battery_power_gw: float = 3.0
    battery_energy_gwh: float = 10.0
    pumped_power_gw: float = 3.5
    pumped_energy_gwh: float = 30.0
    # Commodities and CCGT economics
    gas_price_eur_mwh_th: float = 42.0
    co2_price_eur_t: float = 65.0
    ccgt_efficiency: float = 0.55
    ccgt_om_eur_mwh: float = 3.0
    # Regulated pass-through
    system_charge_eur_mwh: float = 12.0
    network_loss_rate: float = 0.05
    seed: int = 42
    annual_demand_twh: float = 260.0
    hydraulicity: float = 1.0  # wet/dry year multiplier
    # Horizon
    target_year: int = 2030
    demand_growth_pct: float = 0.6  # %/year compounded
    electrification_twh: float = 2.0  # TWh added per year
    demand_efficiency_pct: float = 0.5
    apply_nuclear_phaseout: bool = True
    nuclear_closure_year: int = 2035
    # Flexible demand
    flex_power_gw: float = 4.0
    flex_pct: float = 6.0  # % of hourly demand
    # Interconnection and reference prices
    interconnection_gw: float = 3.0
    import_price_eur_mwh: float = 90.0
    export_price_eur_mwh: float = 5.0
    scarcity_price_eur_mwh: float = 350.0
    constants: ModelConstants = field(default=MODEL, repr=False, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name != "constants"}


PARAMETER_NAMES: Tuple[str, ...] = tuple(f.name for f in fields(ScenarioParameters) if f.name != "constants")
_INT_FIELDS = {"seed", "target_year", "nuclear_closure_year"}
_BOOL_FIELDS = {"apply_nuclear_phaseout"}
MAX_INT_PARAMETER = 2**63 - 1


def _coerce(name: str, value: Any) -> Any:
    if name in _BOOL_FIELDS:
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "on"}
        return bool(value)
    if name in _INT_FIELDS and isinstance(value, int):
        return _check_int(name, int(value))
    if name in _INT_FIELDS and isinstance(value, str) and value.strip().lstrip("+-").isdigit():
        return _check_int(name, int(value.strip()))
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        raise ValueError(f"{name} must be numeric, got {value!r}.") from None
    if not math.isfinite(number):
        raise ValueError(f"{name} must be finite, got {value!r}.")
    if name in _INT_FIELDS:
        return _check_int(name, int(number))
    return number


def _check_int(name: str, value: int) -> int:
    if abs(value) > MAX_INT_PARAMETER:
        raise ValueError(f"{name} must fit in a signed 64-bit integer, got {value}.")
    return value


def merge_parameters(
    overrides: Optional[Mapping[str, Any]] = None,
    base: Optional[ScenarioParameters] = None,
) -> ScenarioParameters:
    """Return a new ScenarioParameters with ``overrides`` applied over ``base``.

    Overrides win per field. The caller's mapping and ``base`` are left
    untouched; unknown keys raise ``ValueError`` instead of being ignored.
    """

    base = base if base is not None else ScenarioParameters()
    if not overrides:
        return base

    unknown = sorted(set(overrides) - set(PARAMETER_NAMES))
    if unknown:
        raise ValueError(f"Unknown scenario parameter(s): {', '.join(unknown)}.")

    changes = {name: _coerce(name, value) for name, value in overrides.items()}
    return replace(base, **changes)


def validate_parameters(params: ScenarioParameters) -> List[str]:
    """Return human-readable configuration problems without raising.

    The engine itself tolerates all of these; callers decide whether to fail
    fast or only surface the messages.
    """

    problems: List[str] = []
    non_negative = (
        "nuclear_gw",
        "solar_gw",
        "wind_gw",
        "hydro_gw",
        "gas_gw",
        "battery_power_gw",
        "battery_energy_gwh",
        "pumped_power_gw",
        "pumped_energy_gwh",
        "annual_demand_twh",
        "hydraulicity",
        "flex_power_gw",
        "flex_pct",
        "interconnection_gw",
        "network_loss_rate",
    )
    for name in non_negative:
        if getattr(params, name) < 0:
            problems.append(f"{name} must be non-negative (got {getattr(params, name)}).")

    if not 0.0 < params.ccgt_efficiency <= 1.0:
        problems.append(
            f"ccgt_efficiency must be within (0, 1] (got {params.ccgt_efficiency}); "
            f"values below {params.constants.min_ccgt_efficiency} are floored."
        )
    if params.seed == 0:
        problems.append("seed should be a non-zero integer.")
    if params.apply_nuclear_phaseout and params.nuclear_closure_year <= params.constants.base_year:
        problems.append(
            f"nuclear_closure_year should be after {params.constants.base_year} "
            f"(got {params.nuclear_closure_year})."
        )
    if params.flex_pct > 100:
        problems.append(f"flex_pct is a percentage of demand and should not exceed 100 (got {params.flex_pct}).")

    for problem in problems:
        LOGGER.warning("Scenario validation: %s", problem)
    return problems
