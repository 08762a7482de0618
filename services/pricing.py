"""Hourly marginal price formation.

The base price comes from the first matching technology rule. Import,
export and scarcity bounds are applied afterwards so they always override
the technology price, then the regulated pass-through and final clamp.
"""

from __future__ import annotations

from services.dispatch import HourRecord
from services.scenario import ScenarioParameters

GAS_MARGINAL_THRESHOLD_GW = 0.3
HYDRO_MARGINAL_THRESHOLD_GW = 0.5
SCARCITY_THRESHOLD_GW = 0.3
RAMP_PREMIUM_THRESHOLD_GW = 1.0


def ccgt_marginal_cost(params: ScenarioParameters) -> float:
    """Fuel + carbon + O&M cost of a CCGT in EUR/MWh electrical."""

    efficiency = max(params.constants.min_ccgt_efficiency, params.ccgt_efficiency)
    fuel = params.gas_price_eur_mwh_th / efficiency
    carbon = params.constants.co2_t_per_mwh_th / efficiency * params.co2_price_eur_t
    return fuel + carbon + params.ccgt_om_eur_mwh


def base_ratio(record: HourRecord) -> float:
    """(nuclear + solar + wind) / demand, 0 when there is no demand."""

    return record.base_generation / record.demand if record.demand > 0 else 0.0


def scarcity_deficit(record: HourRecord) -> float:
    """Demand left after every supply flow except flexible-demand reduction."""

    covered = (
        record.base_generation
        + record.hydro
        + record.battery_discharge
        + record.pumped_discharge
        + record.gas
        + record.imports
    )
    return max(0.0, record.demand - covered)


def technology_price(params: ScenarioParameters, record: HourRecord, ratio: float, previous_gas_gw: float) -> float:
    if ratio > 1.20:
        return max(-20.0, 5 - (ratio - 1) * 45)
    if ratio > 1.05:
        return 5 + (1.2 - ratio) * 100
    if record.gas > GAS_MARGINAL_THRESHOLD_GW:
        utilization = min(1.0, record.gas / max(0.5, params.gas_gw))
        stress = 12 * utilization ** 1.5
        ramp = max(0.0, record.gas - previous_gas_gw)
        ramp_premium = 3 * ramp if ramp > RAMP_PREMIUM_THRESHOLD_GW else 0.0
        return ccgt_marginal_cost(params) + stress + ramp_premium
    if record.hydro > HYDRO_MARGINAL_THRESHOLD_GW:
        return 25 + 25 * min(1.0, record.hydro / max(0.5, params.hydro_gw))
    return 6 + (1 - ratio) * 30


def marginal_price(params: ScenarioParameters, record: HourRecord, previous_gas_gw: float) -> float:
    """Clamped hourly price in EUR/MWh for a dispatched hour."""

    price = technology_price(params, record, base_ratio(record), previous_gas_gw)

    if record.imports > 0:
        import_stress = min(1.0, record.imports / max(0.5, params.interconnection_gw))
        price = max(price, params.import_price_eur_mwh * (0.85 + 0.3 * import_stress))

    if record.exports > 0:
        price = min(price, params.export_price_eur_mwh + 10)

    deficit = scarcity_deficit(record)
    if deficit > SCARCITY_THRESHOLD_GW:
        deficit_share = deficit / max(1.0, record.demand)
        price = max(price, params.scarcity_price_eur_mwh * min(1.0, deficit_share * 4))

    price = price * (1 + params.network_loss_rate) + params.system_charge_eur_mwh
    return min(params.constants.max_price_eur_mwh, max(params.constants.min_price_eur_mwh, price))
