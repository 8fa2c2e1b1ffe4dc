"""Core capacity engine components."""

from __future__ import annotations

# NOTE: keep imports explicit for export clarity.
from .capacity import CapacityProfile, StageCapacity, infer_capacity, infer_team_capacity
from .confidence import (
    ConfidenceAssessment,
    ConfidenceReason,
    SampleSize,
    assess_confidence,
    hedge_message,
    weakest_link,
)
from .queueing import queue_delay_days, recruiter_queue_delay
from .rebalancer import (
    RebalancerResult,
    ReassignmentSuggestion,
    generate_move_candidates,
    suggest_reassignments,
)
from .simulator import ReassignmentCandidate, SimulatedMoveImpact, simulate_move
from .utilization import UtilizationResult, UtilizationRow, classify_load, compute_utilization

__all__ = [
    "CapacityProfile",
    "ConfidenceAssessment",
    "ConfidenceReason",
    "RebalancerResult",
    "ReassignmentCandidate",
    "ReassignmentSuggestion",
    "SampleSize",
    "SimulatedMoveImpact",
    "StageCapacity",
    "UtilizationResult",
    "UtilizationRow",
    "assess_confidence",
    "classify_load",
    "compute_utilization",
    "generate_move_candidates",
    "hedge_message",
    "infer_capacity",
    "infer_team_capacity",
    "queue_delay_days",
    "recruiter_queue_delay",
    "simulate_move",
    "suggest_reassignments",
    "weakest_link",
]
