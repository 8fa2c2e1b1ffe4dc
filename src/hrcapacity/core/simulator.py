"""Before/after simulation of a single requisition move."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from ..schemas import CAPACITY_STAGES, Dataset, EngineConfig
from .capacity import CapacityProfile, infer_team_capacity
from .confidence import ConfidenceLevel, hedge_message, weakest_link
from .utilization import LoadStatus, UtilizationResult, compute_utilization


@dataclass(slots=True, frozen=True)
class ReassignmentCandidate:
    """Hypothetical atomic move of one requisition between recruiters."""

    req_id: str
    source_recruiter_id: str
    target_recruiter_id: str

    def __post_init__(self) -> None:
        if self.source_recruiter_id == self.target_recruiter_id:
            raise ValueError(f"Move of {self.req_id} has identical source and target")


@dataclass(slots=True)
class RecruiterState:
    recruiter_id: str
    utilization: float
    peak_utilization: float
    queue_delay_days: float
    status: LoadStatus
    demand_by_stage: dict[str, int]
    confidence: ConfidenceLevel


@dataclass(slots=True)
class NetImpact:
    delay_reduction_days: float
    source_delay_reduction_days: float
    target_delay_increase_days: float
    source_relief_percent: float
    target_impact_percent: float


@dataclass(slots=True)
class SimulatedMoveImpact:
    move: ReassignmentCandidate
    before_source: RecruiterState
    after_source: RecruiterState
    before_target: RecruiterState
    after_target: RecruiterState
    net_impact: NetImpact
    confidence: ConfidenceLevel
    hedge: str


def simulate_move(
    move: ReassignmentCandidate,
    dataset: Dataset,
    config: EngineConfig,
    *,
    capacities: Mapping[str, CapacityProfile] | None = None,
    before: UtilizationResult | None = None,
) -> SimulatedMoveImpact:
    """Recompute utilization on the actual and the hypothetical snapshot.

    Throughput profiles are inferred once from the actual assignment and pinned
    for both passes so only demand differs between them.
    """
    req = dataset.requisition(move.req_id)
    if req is None or not req.is_open:
        raise ValueError(f"Unknown or closed requisition: {move.req_id!r}")
    if req.recruiter_id != move.source_recruiter_id:
        raise ValueError(f"Requisition {move.req_id!r} is not owned by {move.source_recruiter_id!r}")

    profiles = dict(capacities) if capacities is not None else infer_team_capacity(dataset, config)
    if before is None:
        before = compute_utilization(dataset, config, capacities=profiles)
    hypothetical = dataset.with_assignments({move.req_id: move.target_recruiter_id})
    after = compute_utilization(hypothetical, config, capacities=profiles)

    before_source = _state(before, move.source_recruiter_id)
    after_source = _state(after, move.source_recruiter_id)
    before_target = _state(before, move.target_recruiter_id)
    after_target = _state(after, move.target_recruiter_id)

    source_reduction = before_source.queue_delay_days - after_source.queue_delay_days
    target_increase = after_target.queue_delay_days - before_target.queue_delay_days
    confidence = weakest_link(
        [before_source.confidence, before_target.confidence, after_source.confidence, after_target.confidence]
    )
    return SimulatedMoveImpact(
        move=move,
        before_source=before_source,
        after_source=after_source,
        before_target=before_target,
        after_target=after_target,
        net_impact=NetImpact(
            delay_reduction_days=source_reduction - target_increase,
            source_delay_reduction_days=source_reduction,
            target_delay_increase_days=target_increase,
            source_relief_percent=(before_source.utilization - after_source.utilization) * 100,
            target_impact_percent=(after_target.utilization - before_target.utilization) * 100,
        ),
        confidence=confidence,
        hedge=hedge_message(confidence),
    )


def _state(result: UtilizationResult, recruiter_id: str) -> RecruiterState:
    row = result.row(recruiter_id)
    if row is None:
        return RecruiterState(
            recruiter_id=recruiter_id,
            utilization=0.0,
            peak_utilization=0.0,
            queue_delay_days=0.0,
            status="underutilized",
            demand_by_stage={stage: 0 for stage in CAPACITY_STAGES},
            confidence="LOW",
        )
    return RecruiterState(
        recruiter_id=recruiter_id,
        utilization=row.utilization,
        peak_utilization=row.peak_utilization,
        queue_delay_days=row.queue_delay_days,
        status=row.status,
        demand_by_stage=dict(row.demand),
        confidence=row.confidence,
    )
