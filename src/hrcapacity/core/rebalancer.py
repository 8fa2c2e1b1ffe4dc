"""Ranked requisition reassignment suggestions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

import structlog

from ..schemas import Dataset, EngineConfig
from .capacity import CapacityProfile, infer_team_capacity
from .confidence import ConfidenceLevel, hedge_message, weakest_link
from .simulator import ReassignmentCandidate, SimulatedMoveImpact, simulate_move
from .utilization import LoadStatus, UtilizationResult, compute_utilization, requisition_demand

logger = structlog.get_logger(__name__)

OVERLOADED_STATUSES = frozenset({"overloaded", "critical"})


@dataclass(slots=True)
class MoveScore:
    candidate: ReassignmentCandidate
    score: float
    impact: SimulatedMoveImpact
    transfer_cost_days: float


@dataclass(slots=True)
class EstimatedImpact:
    delay_reduction_days: float
    source_utilization_before: float
    source_utilization_after: float
    target_utilization_before: float
    target_utilization_after: float
    target_status_after: LoadStatus


@dataclass(slots=True)
class ReassignmentSuggestion:
    rank: int
    req_id: str
    req_title: str
    source_recruiter_id: str
    source_recruiter_name: str
    target_recruiter_id: str
    target_recruiter_name: str
    req_demand: dict[str, int]
    score: float
    estimated_impact: EstimatedImpact
    rationale: str
    confidence: ConfidenceLevel
    hedge: str


@dataclass(slots=True)
class RebalancerResult:
    suggestions: list[ReassignmentSuggestion]
    is_balanced: bool
    overloaded_count: int
    moves_evaluated: int
    confidence: ConfidenceLevel
    hedge: str
    notes: list[str] = field(default_factory=list)


def generate_move_candidates(dataset: Dataset, utilization: UtilizationResult) -> list[ReassignmentCandidate]:
    """Every (source, target, req) triple eligible for scoring, in stable order."""
    per_req = requisition_demand(dataset)
    sources = sorted(
        (row for row in utilization.rows if row.status in OVERLOADED_STATUSES),
        key=lambda row: row.recruiter_id,
    )
    targets = sorted(
        (row for row in utilization.rows if row.status != "critical"),
        key=lambda row: row.recruiter_id,
    )
    moves: list[ReassignmentCandidate] = []
    for source in sources:
        for req_id in source.req_ids:
            if sum(per_req.get(req_id, {}).values()) <= 0:
                continue
            for target in targets:
                if target.recruiter_id == source.recruiter_id:
                    continue
                moves.append(ReassignmentCandidate(req_id, source.recruiter_id, target.recruiter_id))
    return moves


def score_move(
    move: ReassignmentCandidate,
    dataset: Dataset,
    config: EngineConfig,
    *,
    capacities: Mapping[str, CapacityProfile],
    before: UtilizationResult,
) -> MoveScore:
    impact = simulate_move(move, dataset, config, capacities=capacities, before=before)
    cost = config.rebalancer.transfer_cost_days
    return MoveScore(
        candidate=move,
        score=impact.net_impact.delay_reduction_days - cost,
        impact=impact,
        transfer_cost_days=cost,
    )


def suggest_reassignments(
    dataset: Dataset,
    config: EngineConfig,
    *,
    max_suggestions: int | None = None,
    capacities: Mapping[str, CapacityProfile] | None = None,
) -> RebalancerResult:
    limit = config.rebalancer.max_suggestions if max_suggestions is None else max_suggestions
    profiles = dict(capacities) if capacities is not None else infer_team_capacity(dataset, config)
    before = compute_utilization(dataset, config, capacities=profiles)
    overloaded = [row for row in before.rows if row.status in OVERLOADED_STATUSES]

    if not before.data_quality.sufficient:
        logger.info("rebalancer.blocked", coverage=before.data_quality.recruiter_id_coverage)
        return RebalancerResult(
            suggestions=[],
            is_balanced=False,
            overloaded_count=len(overloaded),
            moves_evaluated=0,
            confidence="LOW",
            hedge=before.hedge,
        )

    if not overloaded:
        return RebalancerResult(
            suggestions=[],
            is_balanced=True,
            overloaded_count=0,
            moves_evaluated=0,
            confidence=before.confidence.level,
            hedge=before.hedge,
            notes=["All recruiters are operating within capacity"],
        )

    moves = generate_move_candidates(dataset, before)
    if not any(row.status not in OVERLOADED_STATUSES for row in before.rows):
        notes = ["All recruiters are at or above capacity - no rebalancing targets available"]
    else:
        notes = []

    accepted: list[MoveScore] = []
    for move in moves:
        scored = score_move(move, dataset, config, capacities=profiles, before=before)
        impact = scored.impact
        if impact.after_target.status == "critical" and impact.before_target.status != "critical":
            continue
        if scored.score <= 0:
            continue
        accepted.append(scored)

    accepted.sort(key=lambda item: (-item.score, item.candidate.req_id, item.candidate.target_recruiter_id))
    suggestions = [
        _to_suggestion(rank, scored, dataset, before)
        for rank, scored in enumerate(accepted[:limit], start=1)
    ]
    level = weakest_link(suggestion.confidence for suggestion in suggestions) if suggestions else before.confidence.level
    if not suggestions and not notes:
        notes.append("No reassignment reduces expected delay by more than the transfer cost")

    logger.info(
        "rebalancer.suggestions",
        overloaded=len(overloaded),
        moves_evaluated=len(moves),
        accepted=len(accepted),
        returned=len(suggestions),
        confidence=level,
    )
    return RebalancerResult(
        suggestions=suggestions,
        is_balanced=False,
        overloaded_count=len(overloaded),
        moves_evaluated=len(moves),
        confidence=level,
        hedge=hedge_message(level),
        notes=notes,
    )


def _to_suggestion(
    rank: int,
    scored: MoveScore,
    dataset: Dataset,
    before: UtilizationResult,
) -> ReassignmentSuggestion:
    move = scored.candidate
    impact = scored.impact
    source = before.row(move.source_recruiter_id)
    target = before.row(move.target_recruiter_id)
    confidence = weakest_link(
        [
            source.confidence,
            target.confidence,
            source.capacity_profile.confidence,
            target.capacity_profile.confidence,
        ]
    )
    req = dataset.requisition(move.req_id)
    rationale = (
        f"Reduces {source.recruiter_name}'s load by {impact.net_impact.source_relief_percent:.0f}%. "
        f"{target.recruiter_name} has capacity ({impact.after_target.utilization * 100:.0f}% after). "
        f"Expected ~{impact.net_impact.delay_reduction_days:.1f}d faster time-to-hire."
    )
    return ReassignmentSuggestion(
        rank=rank,
        req_id=move.req_id,
        req_title=req.title if req is not None else "",
        source_recruiter_id=move.source_recruiter_id,
        source_recruiter_name=source.recruiter_name,
        target_recruiter_id=move.target_recruiter_id,
        target_recruiter_name=target.recruiter_name,
        req_demand={
            stage: impact.before_source.demand_by_stage[stage] - impact.after_source.demand_by_stage[stage]
            for stage in impact.before_source.demand_by_stage
        },
        score=scored.score,
        estimated_impact=EstimatedImpact(
            delay_reduction_days=impact.net_impact.delay_reduction_days,
            source_utilization_before=impact.before_source.utilization,
            source_utilization_after=impact.after_source.utilization,
            target_utilization_before=impact.before_target.utilization,
            target_utilization_after=impact.after_target.utilization,
            target_status_after=impact.after_target.status,
        ),
        rationale=rationale,
        confidence=confidence,
        hedge=hedge_message(confidence),
    )
