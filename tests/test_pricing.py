import pytest

from services.dispatch import HourRecord
from services.pricing import base_ratio, ccgt_marginal_cost, marginal_price, scarcity_deficit
from services.scenario import merge_parameters


def _passthrough(price: float) -> float:
    return price * 1.05 + 12.0


def test_ccgt_marginal_cost_defaults() -> None:
    params = merge_parameters()
    expected = 42 / 0.55 + 0.202 / 0.55 * 65 + 3

    assert ccgt_marginal_cost(params) == pytest.approx(expected)


def test_degenerate_efficiency_is_floored() -> None:
    low = merge_parameters({"ccgt_efficiency": 0.1})
    floor = merge_parameters({"ccgt_efficiency": 0.45})

    assert ccgt_marginal_cost(low) == pytest.approx(ccgt_marginal_cost(floor))


def test_base_ratio_without_demand_is_zero() -> None:
    assert base_ratio(HourRecord(demand=0.0, solar=5.0)) == 0.0


def test_deep_surplus_floors_base_price() -> None:
    params = merge_parameters()
    record = HourRecord(demand=10.0, solar=30.0, curtailment=20.0)

    assert marginal_price(params, record, 0.0) == pytest.approx(_passthrough(-20.0))


def test_moderate_surplus_is_capped_by_exports() -> None:
    params = merge_parameters()
    record = HourRecord(demand=10.0, solar=12.5, exports=2.5)

    # ratio 1.25: 5 - 0.25 * 45 = -6.25, already below the export cap
    assert marginal_price(params, record, 0.0) == pytest.approx(_passthrough(-6.25))

    shallow = HourRecord(demand=10.0, solar=11.0, exports=1.0)
    # ratio 1.1: 5 + 0.1 * 100 = 15, equal to export price + 10
    assert marginal_price(params, shallow, 0.0) == pytest.approx(_passthrough(15.0))


def test_gas_sets_price_with_stress_and_ramp_premium() -> None:
    params = merge_parameters()
    record = HourRecord(demand=30.0, nuclear=10.0, hydro=15.0, gas=5.0)
    stress = 12 * (5 / 24) ** 1.5

    steady = marginal_price(params, record, previous_gas_gw=5.0)
    ramping = marginal_price(params, record, previous_gas_gw=2.0)

    assert steady == pytest.approx(_passthrough(ccgt_marginal_cost(params) + stress))
    assert ramping == pytest.approx(_passthrough(ccgt_marginal_cost(params) + stress + 9.0))


def test_small_ramp_has_no_premium() -> None:
    params = merge_parameters()
    record = HourRecord(demand=30.0, nuclear=10.0, hydro=15.0, gas=5.0)

    assert marginal_price(params, record, 4.5) == pytest.approx(marginal_price(params, record, 5.0))


def test_hydro_sets_price_without_gas() -> None:
    params = merge_parameters()
    record = HourRecord(demand=20.0, nuclear=11.5, hydro=8.5)

    assert marginal_price(params, record, 0.0) == pytest.approx(_passthrough(37.5))


def test_residual_formula_when_nothing_else_matches() -> None:
    params = merge_parameters()
    record = HourRecord(demand=20.0, nuclear=20.0)

    assert marginal_price(params, record, 0.0) == pytest.approx(_passthrough(6.0))


def test_imports_raise_price_to_import_floor() -> None:
    params = merge_parameters()
    record = HourRecord(demand=20.0, nuclear=15.0, hydro=3.5, imports=1.5)

    assert marginal_price(params, record, 0.0) == pytest.approx(_passthrough(90.0))


def test_unserved_energy_triggers_scarcity_price() -> None:
    params = merge_parameters()
    record = HourRecord(demand=40.0, nuclear=10.0, unserved=30.0)

    assert marginal_price(params, record, 0.0) == pytest.approx(_passthrough(350.0))


def test_scarcity_deficit_ignores_flex_down() -> None:
    params = merge_parameters()
    record = HourRecord(demand=40.0, nuclear=38.0, flex_down=2.0)

    assert scarcity_deficit(record) == pytest.approx(2.0)
    assert record.unserved == 0.0
    # 350 * min(1, 2 / 40 * 4)
    assert marginal_price(params, record, 0.0) == pytest.approx(_passthrough(70.0))


def test_final_price_is_clamped() -> None:
    high = merge_parameters({"scarcity_price_eur_mwh": 1000})
    low = merge_parameters({"network_loss_rate": 0.0, "system_charge_eur_mwh": -50})

    assert marginal_price(high, HourRecord(demand=40.0, unserved=40.0), 0.0) == 500.0
    assert marginal_price(low, HourRecord(demand=10.0, solar=30.0), 0.0) == -25.0
