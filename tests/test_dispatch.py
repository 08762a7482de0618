import pytest

from services.dispatch import (
    DEFICIT_MERIT_ORDER,
    SURPLUS_MERIT_ORDER,
    HourContext,
    HourRecord,
    Reservoir,
    StorageState,
    allocate,
    dispatch_hour,
    flex_capacity,
    gas_ceiling,
)
from services.scenario import merge_parameters


def _hour(params, storage, demand, nuclear=0.0, solar=0.0, wind=0.0, hydro=0.0, previous_gas=0.0) -> HourRecord:
    return dispatch_hour(
        params,
        storage,
        demand_gw=demand,
        nuclear_gw=nuclear,
        solar_gw=solar,
        wind_gw=wind,
        hydro_available_gw=hydro,
        previous_gas_gw=previous_gas,
    )


def test_reservoir_limits_respect_headroom_and_level() -> None:
    reservoir = Reservoir(capacity_gwh=10.0, level_gwh=9.5, power_gw=3.0, efficiency=0.9)

    assert reservoir.charge_limit() == pytest.approx(0.5 / 0.9)
    assert reservoir.discharge_limit() == 3.0

    reservoir.charge(reservoir.charge_limit())
    assert reservoir.level_gwh == pytest.approx(10.0)

    empty = Reservoir(capacity_gwh=10.0, level_gwh=0.4, power_gw=3.0, efficiency=0.9)
    assert empty.discharge_limit() == pytest.approx(0.4)


def test_storage_starts_half_full() -> None:
    storage = StorageState.initial(merge_parameters())

    assert storage.battery.level_gwh == 5.0
    assert storage.pumped.level_gwh == 15.0
    assert storage.pumped.efficiency == 0.75


def test_surplus_follows_merit_order() -> None:
    params = merge_parameters()
    storage = StorageState.initial(params)

    record = _hour(params, storage, demand=30.0, nuclear=6.0, solar=40.0, wind=10.0, hydro=5.0)

    assert record.battery_charge == pytest.approx(3.0)
    assert record.pumped_charge == pytest.approx(3.5)
    assert record.flex_up == pytest.approx(1.8)
    assert record.exports == pytest.approx(3.0)
    assert record.curtailment == pytest.approx(14.7)
    assert record.gas == 0.0
    assert record.hydro == 0.0
    assert record.unserved == 0.0
    assert record.balance_error() == pytest.approx(0.0, abs=1e-9)
    # charged 3 GW at 90% then one hour of self-discharge
    assert storage.battery.level_gwh == pytest.approx((5.0 + 2.7) * 0.999)
    assert storage.pumped.level_gwh == pytest.approx(15.0 + 3.5 * 0.75)


def test_deficit_follows_merit_order_with_gas_ramp() -> None:
    params = merge_parameters()
    storage = StorageState.initial(params)

    record = _hour(params, storage, demand=40.0, nuclear=6.0, wind=4.0, hydro=5.0)

    assert record.hydro == pytest.approx(5.0)
    assert record.battery_discharge == pytest.approx(3.0)
    assert record.pumped_discharge == pytest.approx(3.5)
    assert record.flex_down == pytest.approx(2.4)
    assert record.imports == pytest.approx(3.0)
    assert record.gas == pytest.approx(24 * 0.15)
    assert record.unserved == pytest.approx(9.5)
    assert record.curtailment == 0.0
    assert record.balance_error() == pytest.approx(0.0, abs=1e-9)
    assert storage.battery.level_gwh == pytest.approx(2.0 * 0.999)


def test_small_deficit_is_covered_by_hydro_only() -> None:
    params = merge_parameters()
    storage = StorageState.initial(params)

    record = _hour(params, storage, demand=20.0, nuclear=6.0, wind=12.0, hydro=5.0)

    assert record.hydro == pytest.approx(2.0)
    assert record.battery_discharge == 0.0
    assert record.gas == 0.0
    assert record.unserved == 0.0


def test_exact_balance_dispatches_nothing() -> None:
    params = merge_parameters()
    storage = StorageState.initial(params)

    record = _hour(params, storage, demand=20.0, nuclear=10.0, solar=10.0, hydro=5.0)

    assert record.supply() == pytest.approx(20.0)
    assert record.sinks() == 0.0
    assert record.hydro == 0.0


def test_gas_ceiling_tracks_previous_hour() -> None:
    params = merge_parameters()

    assert gas_ceiling(params, 0.0) == pytest.approx(3.6)
    assert gas_ceiling(params, 10.0) == pytest.approx(13.6)
    assert gas_ceiling(params, 23.0) == 24.0


def test_flex_capacity_is_share_of_demand_capped_by_power() -> None:
    params = merge_parameters()

    assert flex_capacity(params, 30.0) == pytest.approx(1.8)
    assert flex_capacity(params, 200.0) == 4.0


def test_allocate_with_nothing_to_place() -> None:
    params = merge_parameters()
    ctx = HourContext(storage=StorageState.initial(params), flex_cap_gw=2.0, interconnection_gw=3.0)

    allocations, remainder = allocate(SURPLUS_MERIT_ORDER, ctx, 0.0)

    assert remainder == 0.0
    assert set(allocations) == {step.name for step in SURPLUS_MERIT_ORDER}
    assert all(v == 0.0 for v in allocations.values())
    assert ctx.storage.battery.level_gwh == 5.0


def test_deficit_order_names_match_record_fields() -> None:
    names = [step.name for step in DEFICIT_MERIT_ORDER]

    assert names == ["hydro", "battery_discharge", "pumped_discharge", "flex_down", "imports", "gas"]
    assert all(hasattr(HourRecord(), name) for name in names)
