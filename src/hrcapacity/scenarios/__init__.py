"""What-if scenario evaluation."""

from __future__ import annotations

from .context import Benchmarks, ScenarioContext, build_context, derive_benchmarks
from .engine import global_gates, parse_params, run_scenario
from .outputs import (
    BlockedReason,
    Bottleneck,
    Citation,
    DeepLink,
    MissingDataItem,
    RecruiterImpact,
    ResourceImpact,
    ScenarioDeltas,
    ScenarioOutput,
)

__all__ = [
    "Benchmarks",
    "BlockedReason",
    "Bottleneck",
    "Citation",
    "DeepLink",
    "MissingDataItem",
    "RecruiterImpact",
    "ResourceImpact",
    "ScenarioContext",
    "ScenarioDeltas",
    "ScenarioOutput",
    "build_context",
    "derive_benchmarks",
    "global_gates",
    "parse_params",
    "run_scenario",
]
