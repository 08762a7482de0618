"""Utility helpers shared by the API and analysis modules."""

from utils.io import scenario_from_json, scenario_to_json, serialize_output
from utils.targets import TARGET_DEFINITIONS, assess_targets, build_target_insights

__all__ = [
    "TARGET_DEFINITIONS",
    "assess_targets",
    "build_target_insights",
    "scenario_from_json",
    "scenario_to_json",
    "serialize_output",
]
