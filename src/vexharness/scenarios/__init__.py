"""
Scenarios - independently runnable test flows for the VEX contracts.

Each module registers its scenarios in the dispatch table
(runner.SCENARIOS), one CLI subcommand per scenario:
- funding: storage-deposit, mint
- staking: stake, cover-usdc, exchange
- status:  status, pool-info
"""

from . import funding, staking, status  # noqa: F401  (registration)
from .runner import (
    SCENARIOS,
    CallRecord,
    Scenario,
    ScenarioContext,
    ScenarioResult,
    ScenarioRun,
    get_scenario,
    register,
    run_scenario,
    run_scenarios,
)

__all__ = [
    "SCENARIOS",
    "CallRecord",
    "Scenario",
    "ScenarioContext",
    "ScenarioResult",
    "ScenarioRun",
    "get_scenario",
    "register",
    "run_scenario",
    "run_scenarios",
]
