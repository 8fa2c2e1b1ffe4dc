"""Recruiter workload utilization."""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Literal, Mapping

import structlog

from ..schemas import CAPACITY_STAGES, Dataset, EngineConfig
from ..schemas.config import LoadThresholds
from .capacity import CapacityProfile, infer_team_capacity
from .confidence import (
    ConfidenceAssessment,
    ConfidenceLevel,
    ConfidenceReason,
    hedge_message,
    weakest_link,
)
from .queueing import recruiter_queue_delay

LoadStatus = Literal["critical", "overloaded", "balanced", "available", "underutilized"]

LOAD_STATUSES: tuple[LoadStatus, ...] = ("critical", "overloaded", "balanced", "available", "underutilized")

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class UtilizationRow:
    recruiter_id: str
    recruiter_name: str
    req_ids: list[str]
    demand: dict[str, int]
    capacity: dict[str, float]
    stage_utilization: dict[str, float]
    utilization: float
    peak_utilization: float
    status: LoadStatus
    queue_delay_days: float
    confidence: ConfidenceLevel
    hedge: str
    capacity_profile: CapacityProfile


@dataclass(slots=True)
class TeamSummary:
    total_demand: int
    total_capacity: float
    overall_utilization: float
    status: LoadStatus
    status_counts: dict[str, int]


@dataclass(slots=True)
class DataQuality:
    recruiter_id_coverage: float
    reqs_without_recruiter: int
    total_open_reqs: int
    sufficient: bool


@dataclass(slots=True)
class UtilizationResult:
    rows: list[UtilizationRow]
    summary: TeamSummary
    data_quality: DataQuality
    confidence: ConfidenceAssessment
    hedge: str
    stage_totals: dict[str, int] = field(default_factory=dict)

    def row(self, recruiter_id: str) -> UtilizationRow | None:
        for row in self.rows:
            if row.recruiter_id == recruiter_id:
                return row
        return None


def classify_load(utilization: float, thresholds: LoadThresholds) -> LoadStatus:
    if utilization > thresholds.critical:
        return "critical"
    if utilization > thresholds.overloaded:
        return "overloaded"
    if utilization > thresholds.balanced:
        return "balanced"
    if utilization > thresholds.available:
        return "available"
    return "underutilized"


def requisition_demand(dataset: Dataset) -> dict[str, dict[str, int]]:
    """Active candidates per capacity-limited stage for every open requisition."""
    open_ids = {req.req_id for req in dataset.open_requisitions()}
    demand: dict[str, Counter[str]] = {req_id: Counter() for req_id in open_ids}
    for candidate in dataset.active_candidates():
        if candidate.req_id in open_ids and candidate.current_stage in CAPACITY_STAGES:
            demand[candidate.req_id][candidate.current_stage] += 1
    return {req_id: dict(counts) for req_id, counts in demand.items()}


def stage_utilization(
    demand: Mapping[str, int],
    capacity: Mapping[str, float],
    config: EngineConfig,
) -> dict[str, float]:
    epsilon = config.utilization.epsilon
    return {
        stage: demand.get(stage, 0) / max(capacity.get(stage, 0.0), epsilon)
        for stage in CAPACITY_STAGES
    }


def overall_utilization(per_stage: Mapping[str, float], config: EngineConfig) -> float:
    """Fixed effort-weighted sum of stage utilization across every capacity stage."""
    weights = config.utilization.stage_weights
    value = sum(weights.get(stage, 0.0) * per_stage.get(stage, 0.0) for stage in CAPACITY_STAGES)
    return value if math.isfinite(value) else 0.0


def peak_utilization(per_stage: Mapping[str, float]) -> float:
    """Utilization of the most loaded stage."""
    return max((per_stage.get(stage, 0.0) for stage in CAPACITY_STAGES), default=0.0)


def load_status(per_stage: Mapping[str, float], overall: float, thresholds: LoadThresholds) -> LoadStatus:
    """Most severe band among the overall figure and every single stage."""
    bands = [classify_load(overall, thresholds)]
    bands.extend(classify_load(per_stage.get(stage, 0.0), thresholds) for stage in CAPACITY_STAGES)
    return min(bands, key=LOAD_STATUSES.index)


def compute_utilization(
    dataset: Dataset,
    config: EngineConfig,
    *,
    capacities: Mapping[str, CapacityProfile] | None = None,
) -> UtilizationResult:
    """Full utilization pass over the snapshot.

    ``capacities`` lets callers pin throughput profiles across hypothetical
    snapshots; recruiters missing from it are inferred from ``dataset``.
    """
    settings = config.utilization
    open_reqs = dataset.open_requisitions()
    assigned = [req for req in open_reqs if req.recruiter_id]
    coverage = len(assigned) / len(open_reqs) if open_reqs else 0.0
    data_quality = DataQuality(
        recruiter_id_coverage=coverage,
        reqs_without_recruiter=len(open_reqs) - len(assigned),
        total_open_reqs=len(open_reqs),
        sufficient=bool(open_reqs) and coverage >= settings.min_recruiter_id_coverage,
    )

    # Idle recruiter users only get rows alongside at least one open requisition.
    recruiter_ids = dataset.recruiter_ids() if open_reqs else []
    profiles: dict[str, CapacityProfile] = dict(capacities or {})
    if any(recruiter_id not in profiles for recruiter_id in recruiter_ids):
        inferred = infer_team_capacity(dataset, config)
        for recruiter_id in recruiter_ids:
            profiles.setdefault(recruiter_id, inferred[recruiter_id])

    per_req = requisition_demand(dataset)
    reqs_by_recruiter: dict[str, list[str]] = {recruiter_id: [] for recruiter_id in recruiter_ids}
    for req in assigned:
        reqs_by_recruiter.setdefault(req.recruiter_id, []).append(req.req_id)

    rows: list[UtilizationRow] = []
    stage_totals: Counter[str] = Counter()
    for recruiter_id in recruiter_ids:
        req_ids = sorted(reqs_by_recruiter.get(recruiter_id, []))
        demand: Counter[str] = Counter()
        for req_id in req_ids:
            demand.update(per_req.get(req_id, {}))
        stage_totals.update(demand)

        profile = profiles[recruiter_id]
        capacity = profile.as_rates()
        per_stage = stage_utilization(demand, capacity, config)
        overall = overall_utilization(per_stage, config)
        level = profile.confidence if data_quality.sufficient else "LOW"
        rows.append(
            UtilizationRow(
                recruiter_id=recruiter_id,
                recruiter_name=dataset.display_name(recruiter_id),
                req_ids=req_ids,
                demand={stage: demand.get(stage, 0) for stage in CAPACITY_STAGES},
                capacity=capacity,
                stage_utilization=per_stage,
                utilization=overall,
                peak_utilization=peak_utilization(per_stage),
                status=load_status(per_stage, overall, settings.load_thresholds),
                queue_delay_days=recruiter_queue_delay(per_stage, config),
                confidence=level,
                hedge=hedge_message(level),
                capacity_profile=profile,
            )
        )

    rows.sort(key=lambda row: (-row.utilization, row.recruiter_id))
    summary = _summarize(rows, config)
    confidence = _assess(rows, data_quality)
    hedge = (
        _coverage_hedge(data_quality)
        if open_reqs and not data_quality.sufficient
        else hedge_message(confidence.level)
    )

    logger.debug(
        "utilization.computed",
        recruiters=len(rows),
        open_reqs=len(open_reqs),
        coverage=round(coverage, 4),
        confidence=confidence.level,
    )
    return UtilizationResult(
        rows=rows,
        summary=summary,
        data_quality=data_quality,
        confidence=confidence,
        hedge=hedge,
        stage_totals={stage: stage_totals.get(stage, 0) for stage in CAPACITY_STAGES},
    )


def _summarize(rows: list[UtilizationRow], config: EngineConfig) -> TeamSummary:
    counts = {status: 0 for status in LOAD_STATUSES}
    for row in rows:
        counts[row.status] += 1
    mean = sum(row.utilization for row in rows) / len(rows) if rows else 0.0
    return TeamSummary(
        total_demand=sum(sum(row.demand.values()) for row in rows),
        total_capacity=sum(sum(row.capacity.values()) for row in rows),
        overall_utilization=mean,
        status=classify_load(mean, config.utilization.load_thresholds),
        status_counts=counts,
    )


def _assess(rows: list[UtilizationRow], data_quality: DataQuality) -> ConfidenceAssessment:
    if not rows:
        return ConfidenceAssessment(
            level="LOW",
            reasons=[ConfidenceReason("missing_data", "No recruiters with open requisitions", "negative")],
        )
    reasons: list[ConfidenceReason] = []
    if not data_quality.sufficient:
        reasons.append(ConfidenceReason("data_quality", _coverage_hedge(data_quality), "negative"))
    fallback = [row.recruiter_id for row in rows if row.capacity_profile.used_cohort_fallback]
    if fallback:
        reasons.append(
            ConfidenceReason(
                "missing_data",
                f"{len(fallback)} recruiter(s) use cohort default capacity",
                "negative",
            )
        )
    return ConfidenceAssessment(level=weakest_link(row.confidence for row in rows), reasons=reasons)


def _coverage_hedge(data_quality: DataQuality) -> str:
    percent = round(data_quality.recruiter_id_coverage * 100)
    return f"Limited data: only {percent}% of open requisitions have recruiter_id"
