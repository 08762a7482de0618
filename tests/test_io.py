import json

import pandas as pd
import pytest

from services.scenario import HOURS_PER_YEAR, ScenarioParameters, merge_parameters
from services.simulation_core import SimulationOutput, simulate_scenario
from utils.io import (
    hourly_frame,
    monthly_frame,
    scenario_from_json,
    scenario_to_json,
    serialize_output,
    write_hourly_csv,
)


@pytest.fixture(scope="module")
def sim_output() -> SimulationOutput:
    return simulate_scenario()


def test_scenario_json_round_trip() -> None:
    params = merge_parameters({"solar_gw": 55, "apply_nuclear_phaseout": False})

    assert scenario_from_json(scenario_to_json(params)) == params


def test_partial_json_is_filled_from_defaults() -> None:
    params = scenario_from_json('{"wind_gw": 40}')

    assert params.wind_gw == 40.0
    assert params.solar_gw == ScenarioParameters().solar_gw


@pytest.mark.parametrize("text", ["{not json", "[1, 2]", '{"coal_gw": 1}'])
def test_bad_scenario_json_raises(text: str) -> None:
    with pytest.raises(ValueError):
        scenario_from_json(text)


def test_hourly_frame_columns(sim_output: SimulationOutput) -> None:
    df = hourly_frame(sim_output)

    assert len(df) == HOURS_PER_YEAR
    for column in ("hour_index", "day", "hour_of_day", "demand_gw", "gas_gw", "unserved_gw", "price_eur_mwh"):
        assert column in df.columns
    assert df["day"].iloc[-1] == 364
    assert df["hour_of_day"].iloc[25] == 1


def test_monthly_frame(sim_output: SimulationOutput) -> None:
    df = monthly_frame(sim_output)

    assert len(df) == 12
    assert df["hours"].sum() == HOURS_PER_YEAR


def test_write_hourly_csv(tmp_path, sim_output: SimulationOutput) -> None:
    path = write_hourly_csv(sim_output, tmp_path / "hourly.csv")
    loaded = pd.read_csv(path)

    assert len(loaded) == HOURS_PER_YEAR
    assert loaded["price_eur_mwh"].iloc[0] == pytest.approx(sim_output.prices[0])


def test_serialize_output_is_json_ready(sim_output: SimulationOutput) -> None:
    payload = serialize_output(sim_output)

    assert payload["hourly"] is None
    assert payload["summary"]["weighted_avg_price"] == sim_output.summary.weighted_avg_price
    json.dumps(payload)

    with_hourly = serialize_output(sim_output, include_hourly=True)
    assert len(with_hourly["hourly"]["price"]) == HOURS_PER_YEAR
    assert len(with_hourly["hourly"]["battery_level_gwh"]) == HOURS_PER_YEAR
