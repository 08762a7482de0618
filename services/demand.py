"""Demand shape generation and horizon adjustments."""

from __future__ import annotations

import logging
import math

import numpy as np

from services.rng import SeededRNG
from services.scenario import MODEL, ModelConstants, ScenarioParameters
from services.weather import day_hour, month_of_day

LOGGER = logging.getLogger(__name__)

HEATING_THRESHOLD_C = 15.0
COOLING_THRESHOLD_C = 25.0
HEATING_SLOPE = 0.013
COOLING_SLOPE = 0.018
WEEKDAY_FACTOR = 1.04
WEEKEND_FACTOR = 0.87
MIN_ANNUAL_DEMAND_TWH = 180.0
MAX_ANNUAL_DEMAND_TWH = 360.0
MAX_GROWTH_EXPONENT = 700.0  # exp(700) is still a finite float


def temperature_factor(temp_c: float) -> float:
    """U-shaped load sensitivity to temperature."""

    if temp_c < HEATING_THRESHOLD_C:
        return 1 + (HEATING_THRESHOLD_C - temp_c) * HEATING_SLOPE
    if temp_c > COOLING_THRESHOLD_C:
        return 1 + (temp_c - COOLING_THRESHOLD_C) * COOLING_SLOPE
    return 1.0


def intraday_profile(hour: int) -> float:
    """Nocturnal floor plus morning (~10h) and evening (~20h) peaks."""

    morning = math.exp(-(((hour - 10) / 2.8) ** 2)) * 0.28
    evening = math.exp(-(((hour - 20) / 2.5) ** 2)) * 0.32
    return 0.62 + morning + evening


def generate_demand_series(rng: SeededRNG, constants: ModelConstants = MODEL) -> np.ndarray:
    """Dimensionless hourly demand shape, later scaled by the mean level."""

    series = np.zeros(constants.hours_per_year)
    for h in range(constants.hours_per_year):
        day, hour = day_hour(h)
        month = month_of_day(day)

        temp = constants.monthly_temperature_c[month] + 4.5 * math.sin((hour - 6) * math.pi / 12)
        temp += rng.gauss(0, 1.5)

        working = WEEKDAY_FACTOR if day % 7 < 5 else WEEKEND_FACTOR
        residual = 0.97 + rng.next() * 0.06
        series[h] = intraday_profile(hour) * working * temperature_factor(temp) * residual
    return series


def compound_growth(rate: float, years: int) -> float:
    """``(1 + rate) ** years`` evaluated in log space so it saturates instead of overflowing."""

    if years == 0:
        return 1.0
    factor = 1 + rate
    if factor == 0:
        return 0.0
    magnitude = math.exp(min(MAX_GROWTH_EXPONENT, years * math.log(abs(factor))))
    return -magnitude if factor < 0 and years % 2 else magnitude


def adjusted_annual_demand_twh(params: ScenarioParameters) -> float:
    """Annual demand at the target year after growth, electrification and efficiency."""

    years = max(0, params.target_year - params.constants.base_year)
    growth = compound_growth(params.demand_growth_pct / 100, years)
    electrification = params.electrification_twh * years
    efficiency = max(0.85, 1 - params.demand_efficiency_pct / 100)
    demand = (params.annual_demand_twh * growth + electrification) * efficiency
    adjusted = max(MIN_ANNUAL_DEMAND_TWH, min(MAX_ANNUAL_DEMAND_TWH, demand))
    LOGGER.debug("Adjusted demand for %s: %.2f TWh (unclamped %.2f)", params.target_year, adjusted, demand)
    return adjusted


def effective_nuclear_gw(params: ScenarioParameters) -> float:
    """Nuclear capacity left at the target year under a linear phase-out."""

    if not params.apply_nuclear_phaseout:
        return params.nuclear_gw
    base_year = params.constants.base_year
    closure = max(base_year + 1, params.nuclear_closure_year)
    years = max(0, params.target_year - base_year)
    horizon = max(1, closure - base_year)
    return max(0.0, params.nuclear_gw * max(0.0, 1 - years / horizon))
