"""Benchmark scenario set."""

from typing import List, Optional

from .reader_scenarios import reader_scenarios
from .registry import CONVENTIONS, TABLE_ORDER, Scenario, ScenarioGroup, snake_case
from .scalar_scenarios import scalar_scenarios

GROUPS = (scalar_scenarios, reader_scenarios)

DEFAULT_DEBUG_SCENARIO = "scalar_sync"


def discover_scenarios(name_filter: Optional[str] = None, full_matrix: bool = False) -> List[Scenario]:
    """All registered scenarios in declaration order, optionally filtered by name prefix."""
    found = []
    for group in GROUPS:
        for scenario in group.scenarios(full_matrix=full_matrix):
            if name_filter and not scenario.name.startswith(name_filter):
                continue
            found.append(scenario)
    return found


def get_scenario(name: str) -> Scenario:
    """Look a scenario up by name, across the full matrix."""
    for scenario in discover_scenarios(full_matrix=True):
        if scenario.name == name:
            return scenario
    raise KeyError(name)


__all__ = [
    "CONVENTIONS",
    "DEFAULT_DEBUG_SCENARIO",
    "GROUPS",
    "Scenario",
    "ScenarioGroup",
    "TABLE_ORDER",
    "discover_scenarios",
    "get_scenario",
    "reader_scenarios",
    "scalar_scenarios",
    "snake_case",
]
