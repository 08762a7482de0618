"""Solar, wind and hydro resource models.

Each generator returns a full-year numpy array of capacity factors that the
dispatch loop consumes hour by hour. The generators draw from their own
``SeededRNG`` so that the order of draws is fixed per series.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List

import numpy as np

from services.rng import SeededRNG
from services.scenario import MODEL, ModelConstants

SUN_ELEVATION_THRESHOLD = 0.01  # sin(elevation) at or below this is night
WIND_PERSISTENCE = 0.94
WIND_NOISE_SIGMA = 0.06
WIND_INITIAL_STATE = 0.30
WIND_MIN_CF, WIND_MAX_CF = 0.02, 0.92
HYDRO_MIN_CF, HYDRO_MAX_CF = 0.08, 0.85


def day_hour(h: int) -> tuple[int, int]:
    return h // 24, h % 24


def month_of_day(day: int) -> int:
    """Approximate month bucket used throughout the model.

    Months are fixed 30.5-day slices, so a few boundary days land in the
    neighbouring calendar month.
    """

    return int(math.floor(day / 30.5)) % 12


def solar_capacity_factor(day: int, hour: int, cloud: float, latitude_deg: float = MODEL.latitude_deg) -> float:
    """Return the normalized PV output [0..1] for one hour.

    Parameters
    ----------
    day:
        Day of year (0-364).
    hour:
        Hour of day (0-23), 12 being solar noon.
    cloud:
        Clear-sky fraction in [0, 1]; 1 is a cloudless sky.
    """

    lat = math.radians(latitude_deg)
    # Cooper declination
    decl = math.radians(23.45 * math.sin(2 * math.pi * (284 + day) / 365))
    omega = math.radians((hour - 12) * 15)
    sin_elev = math.sin(lat) * math.sin(decl) + math.cos(lat) * math.cos(decl) * math.cos(omega)
    if sin_elev <= SUN_ELEVATION_THRESHOLD:
        return 0.0

    air_mass = 1.0 / max(0.05, sin_elev)
    transmittance = 0.75 * 0.70 ** (air_mass ** 0.678)
    irradiance = sin_elev * transmittance
    return max(0.0, min(1.0, irradiance * cloud * 1.35))


def generate_solar_series(rng: SeededRNG, constants: ModelConstants = MODEL) -> np.ndarray:
    """Hourly solar capacity factors with one cloud draw per hour."""

    series = np.zeros(constants.hours_per_year)
    for h in range(constants.hours_per_year):
        day, hour = day_hour(h)
        cloud = 0.65 + rng.next() * 0.35
        series[h] = solar_capacity_factor(day, hour, cloud, constants.latitude_deg)
    return series


@dataclass(frozen=True)
class SynopticBlock:
    """Multi-day weather regime driving wind persistence."""

    start_hour: int
    duration_hours: int
    intensity: float

    @property
    def end_hour(self) -> int:
        return self.start_hour + self.duration_hours

    def contains(self, h: int) -> bool:
        return self.start_hour <= h < self.end_hour


def generate_synoptic_blocks(rng: SeededRNG, hours: int = MODEL.hours_per_year) -> List[SynopticBlock]:
    """Partition the year into contiguous 2-7 day blocks."""

    blocks: List[SynopticBlock] = []
    h = 0
    while h < hours:
        duration = int(math.floor(48 + rng.next() * 120))
        intensity = rng.next()
        blocks.append(SynopticBlock(start_hour=h, duration_hours=duration, intensity=intensity))
        h += duration
    return blocks


def wind_seasonal_base(day: int) -> float:
    # winter-peaked; month index is not wrapped modulo 12
    month = int(math.floor(day / 30.5))
    return 0.28 + 0.14 * math.cos((month - 0.5) * math.pi / 6)


def generate_wind_series(rng: SeededRNG, constants: ModelConstants = MODEL) -> np.ndarray:
    """Autocorrelated wind capacity factors for the whole year.

    Blocks are drawn first, then the AR(1) state is advanced hour by hour:
    ``state = 0.94*state + 0.06*synoptic + N(0, 0.06)``.
    """

    hours = constants.hours_per_year
    blocks = generate_synoptic_blocks(rng, hours)
    series = np.zeros(hours)
    state = WIND_INITIAL_STATE
    block_idx = 0

    for h in range(hours):
        day, hour = day_hour(h)
        seasonal = wind_seasonal_base(day)

        while block_idx < len(blocks) and h >= blocks[block_idx].end_hour:
            block_idx += 1
        synoptic = seasonal
        if block_idx < len(blocks) and blocks[block_idx].contains(h):
            synoptic = seasonal * (0.3 + blocks[block_idx].intensity * 1.4)

        diurnal = 1 + 0.08 * math.sin((hour - 6) * math.pi / 12)
        innovation = rng.gauss(0, WIND_NOISE_SIGMA)
        state = WIND_PERSISTENCE * state + (1 - WIND_PERSISTENCE) * synoptic + innovation
        series[h] = max(WIND_MIN_CF, min(WIND_MAX_CF, state * diurnal))
    return series


def hydro_availability(day: int, hydraulicity: float) -> float:
    """Dispatchable hydro envelope, peaking in spring melt."""

    month = month_of_day(day)
    seasonal = 0.28 + 0.28 * math.cos((month - 4) * math.pi / 6)
    return max(HYDRO_MIN_CF, min(HYDRO_MAX_CF, seasonal * hydraulicity))


def generate_hydro_series(hydraulicity: float, constants: ModelConstants = MODEL) -> np.ndarray:
    series = np.zeros(constants.hours_per_year)
    for h in range(constants.hours_per_year):
        series[h] = hydro_availability(h // 24, hydraulicity)
    return series
