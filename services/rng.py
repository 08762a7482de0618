"""Deterministic pseudo-random stream used by every stochastic generator."""

from __future__ import annotations

import math

# Affine derivations of the scenario seed for each independent sub-generator.
WIND_SEED_MULT, WIND_SEED_OFFSET = 7, 13
DEMAND_SEED_MULT, DEMAND_SEED_OFFSET = 3, 7
METEO_SEED_MULT, METEO_SEED_OFFSET = 11, 37


class SeededRNG:
    """Sine-hash generator returning reproducible uniforms in [0, 1)."""

    def __init__(self, seed: float) -> None:
        self.state = float(seed)

    def next(self) -> float:
        self.state = math.sin(self.state * 9301 + 49297) * 49271
        return self.state - math.floor(self.state)

    def gauss(self, mean: float = 0.0, sigma: float = 1.0) -> float:
        """Approximately normal variate via Box-Muller (cosine branch)."""

        u1 = max(1e-10, self.next())
        u2 = self.next()
        z = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)
        return mean + sigma * z


def wind_rng(seed: int) -> SeededRNG:
    return SeededRNG(int(seed) * WIND_SEED_MULT + WIND_SEED_OFFSET)


def demand_rng(seed: int) -> SeededRNG:
    return SeededRNG(int(seed) * DEMAND_SEED_MULT + DEMAND_SEED_OFFSET)


def meteo_rng(seed: int) -> SeededRNG:
    return SeededRNG(int(seed) * METEO_SEED_MULT + METEO_SEED_OFFSET)
