"""Merit-order dispatch for a single hour.

The surplus and deficit branches are expressed as ordered tuples of
``MeritOrderStep`` folded over the remaining imbalance by :func:`allocate`.
Each step exposes a capacity probe and an optional commit hook that mutates
storage.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Callable, Dict, Optional, Sequence, Tuple

from services.scenario import ScenarioParameters


@dataclass
class Reservoir:
    """Energy store with a symmetric power limit and charge-side losses."""

    capacity_gwh: float
    level_gwh: float
    power_gw: float
    efficiency: float

    def charge_limit(self) -> float:
        headroom = max(0.0, self.capacity_gwh - self.level_gwh)
        return max(0.0, min(self.power_gw, headroom / self.efficiency))

    def discharge_limit(self) -> float:
        return max(0.0, min(self.power_gw, self.level_gwh))

    def charge(self, gw: float) -> None:
        self.level_gwh = min(self.capacity_gwh, self.level_gwh + gw * self.efficiency)

    def discharge(self, gw: float) -> None:
        self.level_gwh = max(0.0, self.level_gwh - gw)

    def self_discharge(self, rate: float) -> None:
        self.level_gwh *= 1 - rate


@dataclass
class StorageState:
    battery: Reservoir
    pumped: Reservoir

    @classmethod
    def initial(cls, params: ScenarioParameters) -> "StorageState":
        """Both reservoirs start half full."""

        c = params.constants
        battery_cap = max(0.0, params.battery_energy_gwh)
        pumped_cap = max(0.0, params.pumped_energy_gwh)
        return cls(
            battery=Reservoir(battery_cap, battery_cap * 0.5, max(0.0, params.battery_power_gw), c.battery_efficiency),
            pumped=Reservoir(pumped_cap, pumped_cap * 0.5, max(0.0, params.pumped_power_gw), c.pumped_efficiency),
        )


@dataclass(frozen=True)
class HourRecord:
    """Dispatch outcome for one hour, all values in GW."""

    demand: float = 0.0
    nuclear: float = 0.0
    solar: float = 0.0
    wind: float = 0.0
    hydro: float = 0.0
    gas: float = 0.0
    battery_discharge: float = 0.0
    pumped_discharge: float = 0.0
    battery_charge: float = 0.0
    pumped_charge: float = 0.0
    flex_up: float = 0.0
    flex_down: float = 0.0
    imports: float = 0.0
    exports: float = 0.0
    curtailment: float = 0.0
    unserved: float = 0.0

    @property
    def base_generation(self) -> float:
        return self.nuclear + self.solar + self.wind

    def supply(self) -> float:
        """Everything injected to meet demand, including unserved energy."""

        return (
            self.base_generation
            + self.hydro
            + self.gas
            + self.battery_discharge
            + self.pumped_discharge
            + self.flex_down
            + self.imports
            + self.unserved
        )

    def sinks(self) -> float:
        """Generation absorbed beyond demand."""

        return self.battery_charge + self.pumped_charge + self.flex_up + self.exports + self.curtailment

    def balance_error(self) -> float:
        return self.supply() - self.sinks() - self.demand


HOUR_RECORD_FIELDS: Tuple[str, ...] = tuple(f.name for f in fields(HourRecord))


@dataclass
class HourContext:
    """Per-hour limits seen by the merit-order probes."""

    storage: StorageState
    flex_cap_gw: float
    interconnection_gw: float
    hydro_available_gw: float = 0.0
    gas_ceiling_gw: float = 0.0


@dataclass(frozen=True)
class MeritOrderStep:
    name: str
    probe: Callable[[HourContext], float]
    commit: Optional[Callable[[HourContext, float], None]] = field(default=None, compare=False)


SURPLUS_MERIT_ORDER: Tuple[MeritOrderStep, ...] = (
    MeritOrderStep("battery_charge", lambda ctx: ctx.storage.battery.charge_limit(), lambda ctx, gw: ctx.storage.battery.charge(gw)),
    MeritOrderStep("pumped_charge", lambda ctx: ctx.storage.pumped.charge_limit(), lambda ctx, gw: ctx.storage.pumped.charge(gw)),
    MeritOrderStep("flex_up", lambda ctx: ctx.flex_cap_gw),
    MeritOrderStep("exports", lambda ctx: ctx.interconnection_gw),
)

DEFICIT_MERIT_ORDER: Tuple[MeritOrderStep, ...] = (
    MeritOrderStep("hydro", lambda ctx: ctx.hydro_available_gw),
    MeritOrderStep("battery_discharge", lambda ctx: ctx.storage.battery.discharge_limit(), lambda ctx, gw: ctx.storage.battery.discharge(gw)),
    MeritOrderStep("pumped_discharge", lambda ctx: ctx.storage.pumped.discharge_limit(), lambda ctx, gw: ctx.storage.pumped.discharge(gw)),
    MeritOrderStep("flex_down", lambda ctx: ctx.flex_cap_gw),
    MeritOrderStep("imports", lambda ctx: ctx.interconnection_gw),
    MeritOrderStep("gas", lambda ctx: ctx.gas_ceiling_gw),
)


def allocate(steps: Sequence[MeritOrderStep], ctx: HourContext, amount_gw: float) -> Tuple[Dict[str, float], float]:
    """Fold ``amount_gw`` over ``steps`` in priority order.

    Returns the allocation per step name and the unallocated remainder.
    """

    remaining = max(0.0, amount_gw)
    allocations: Dict[str, float] = {}
    for step in steps:
        take = 0.0
        if remaining > 0:
            take = max(0.0, min(remaining, step.probe(ctx)))
        if take > 0:
            if step.commit is not None:
                step.commit(ctx, take)
            remaining -= take
        allocations[step.name] = take
    return allocations, remaining


def gas_ceiling(params: ScenarioParameters, previous_gas_gw: float) -> float:
    """Installed CCGT capacity, further limited by the hourly ramp."""

    installed = max(0.0, params.gas_gw)
    return min(installed, previous_gas_gw + installed * params.constants.gas_ramp_fraction)


def flex_capacity(params: ScenarioParameters, demand_gw: float) -> float:
    return max(0.0, min(params.flex_power_gw, demand_gw * params.flex_pct / 100))


def dispatch_hour(
    params: ScenarioParameters,
    storage: StorageState,
    demand_gw: float,
    nuclear_gw: float,
    solar_gw: float,
    wind_gw: float,
    hydro_available_gw: float,
    previous_gas_gw: float,
) -> HourRecord:
    """Allocate one hour of surplus or deficit and return the hour record.

    Storage is mutated in place; battery self-discharge is applied after the
    allocation.
    """

    ctx = HourContext(
        storage=storage,
        flex_cap_gw=flex_capacity(params, demand_gw),
        interconnection_gw=max(0.0, params.interconnection_gw),
    )
    base = dict(demand=demand_gw, nuclear=nuclear_gw, solar=solar_gw, wind=wind_gw)
    surplus = nuclear_gw + solar_gw + wind_gw - demand_gw

    if surplus > 0:
        allocations, remainder = allocate(SURPLUS_MERIT_ORDER, ctx, surplus)
        record = HourRecord(**base, **allocations, curtailment=remainder)
    else:
        ctx.hydro_available_gw = max(0.0, hydro_available_gw)
        ctx.gas_ceiling_gw = gas_ceiling(params, previous_gas_gw)
        allocations, remainder = allocate(DEFICIT_MERIT_ORDER, ctx, -surplus)
        record = HourRecord(**base, **allocations, unserved=remainder)

    storage.battery.self_discharge(params.constants.battery_self_discharge)
    return record
