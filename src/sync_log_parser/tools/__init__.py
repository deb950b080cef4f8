"""Developer tools module for Sync Log Parser.

This module provides harness log scenario generation for tests and demos.
"""

from .scenarios import (
    SCENARIOS,
    ScenarioBuilder,
    complete_sync_logs,
    failed_sync_logs,
    get_scenario,
    incomplete_sync_logs,
    interleaved_sync_logs,
    list_scenarios,
    retry_sync_logs,
    shuffled,
    without_finish_markers,
)

__all__ = [
    "SCENARIOS",
    "ScenarioBuilder",
    "complete_sync_logs",
    "failed_sync_logs",
    "get_scenario",
    "incomplete_sync_logs",
    "interleaved_sync_logs",
    "list_scenarios",
    "retry_sync_logs",
    "shuffled",
    "without_finish_markers",
]
