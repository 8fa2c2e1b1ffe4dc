"""Plain-data scenario results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from ..actions import ActionItem
from ..core.confidence import ConfidenceAssessment

Feasibility = Literal["ON_TRACK", "AT_RISK", "IMPOSSIBLE", "NOT_ENOUGH_DATA"]
ConstraintType = Literal[
    "CAPACITY_GAP",
    "PIPELINE_DEPTH",
    "VELOCITY_DECAY",
    "HM_FRICTION",
    "FORECAST_CONFIDENCE",
    "MISSING_DATA",
]
Severity = Literal["CRITICAL", "HIGH", "MEDIUM"]
StatusChange = Literal["BECOMES_OVERLOADED", "BECOMES_AVAILABLE", "NO_CHANGE"]

_FEASIBILITY_RANK: dict[str, int] = {"ON_TRACK": 0, "AT_RISK": 1, "IMPOSSIBLE": 2}
_SEVERITY_RANK: dict[str, int] = {"CRITICAL": 0, "HIGH": 1, "MEDIUM": 2}


@dataclass(slots=True)
class ScenarioDeltas:
    expected_hires_delta: float | None = None
    offers_delta: float | None = None
    pipeline_gap_delta: float | None = None
    time_to_offer_delta: float | None = None


@dataclass(slots=True)
class Bottleneck:
    constraint_type: ConstraintType
    severity: Severity
    description: str
    evidence: dict[str, Any]
    mitigation: str
    rank: int = 0


@dataclass(slots=True)
class RecruiterImpact:
    recruiter_id: str
    recruiter_name_anon: str
    current_utilization: float
    projected_utilization: float
    current_peak_utilization: float
    projected_peak_utilization: float
    status_change: StatusChange


@dataclass(slots=True)
class ResourceImpact:
    team_utilization_before: float
    team_utilization_after: float
    team_utilization_delta: float
    team_peak_before: float
    team_peak_after: float
    recruiter_impacts: list[RecruiterImpact] = field(default_factory=list)


@dataclass(slots=True)
class Citation:
    key_path: str
    label: str
    value: Any
    source: str


@dataclass(slots=True)
class DeepLink:
    label: str
    tab: str
    params: dict[str, str]
    rationale: str


@dataclass(slots=True)
class MissingDataItem:
    field: str
    description: str
    required_for: str


@dataclass(slots=True)
class BlockedReason:
    reason: str
    missing_data: list[MissingDataItem]
    fix_instructions: list[str]


@dataclass(slots=True)
class ScenarioFindings:
    """Handler result before the engine attaches identity and links."""

    feasibility: Feasibility
    deltas: ScenarioDeltas
    bottlenecks: list[Bottleneck]
    resource_impact: ResourceImpact | None
    actions: list[ActionItem]
    confidence: ConfidenceAssessment
    citations: list[Citation]


@dataclass(slots=True)
class ScenarioOutput:
    scenario_id: str
    scenario_name: str
    generated_at: str
    feasibility: Feasibility
    deltas: ScenarioDeltas
    bottlenecks: list[Bottleneck]
    resource_impact: ResourceImpact | None
    action_plan: list[ActionItem]
    confidence: ConfidenceAssessment
    citations: list[Citation]
    deep_links: list[DeepLink]
    blocked: BlockedReason | None = None


def worst_feasibility(*verdicts: Feasibility) -> Feasibility:
    return max(verdicts, key=lambda verdict: _FEASIBILITY_RANK[verdict])


def rank_bottlenecks(bottlenecks: list[Bottleneck], limit: int = 3) -> list[Bottleneck]:
    """Most severe first, stable within a severity, numbered from 1."""
    ordered = sorted(bottlenecks, key=lambda item: _SEVERITY_RANK[item.severity])[:limit]
    for rank, item in enumerate(ordered, start=1):
        item.rank = rank
    return ordered
