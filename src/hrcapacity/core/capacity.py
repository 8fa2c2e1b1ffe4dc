"""Per-recruiter weekly throughput inference."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

import structlog

from ..schemas import CAPACITY_STAGES, Dataset, EngineConfig
from .confidence import (
    ConfidenceLevel,
    ConfidenceReason,
    SampleSize,
    assess_confidence,
    weakest_link,
)

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class StageCapacity:
    stage: str
    throughput: float
    transitions: int
    observed_rate: float | None
    defaulted: bool
    confidence: ConfidenceLevel


@dataclass(slots=True)
class CapacityProfile:
    """Weekly throughput estimate per capacity-limited stage."""

    recruiter_id: str
    stages: dict[str, StageCapacity]
    window_weeks: int
    confidence: ConfidenceLevel
    reasons: list[ConfidenceReason] = field(default_factory=list)
    used_cohort_fallback: bool = False

    def throughput(self, stage: str) -> float:
        return self.stages[stage].throughput

    def as_rates(self) -> dict[str, float]:
        return {stage: entry.throughput for stage, entry in self.stages.items()}


def shrink_rate(observed: float, prior: float, n: int, weight: float) -> float:
    """Blend an observed rate toward the prior; ``n`` counts observations."""
    if n <= 0:
        return prior
    return (n * observed + weight * prior) / (n + weight)


def count_stage_exits(dataset: Dataset) -> dict[str, Counter[str]]:
    """Stage-change counts per current requisition owner inside the event window."""
    owners = {req.req_id: req.recruiter_id for req in dataset.requisitions if req.recruiter_id}
    window = dataset.window()
    counts: dict[str, Counter[str]] = {}
    for event in dataset.events:
        if not event.is_stage_change or event.to_stage not in CAPACITY_STAGES:
            continue
        if window is not None and not window.contains(event.event_at):
            continue
        recruiter_id = owners.get(event.req_id)
        if recruiter_id is None:
            continue
        counts.setdefault(recruiter_id, Counter())[event.to_stage] += 1
    return counts


def infer_capacity(dataset: Dataset, recruiter_id: str, config: EngineConfig) -> CapacityProfile:
    counts = count_stage_exits(dataset).get(recruiter_id, Counter())
    window = dataset.window()
    weeks = window.weeks() if window is not None else 1
    return _build_profile(recruiter_id, counts, weeks, config)


def infer_team_capacity(dataset: Dataset, config: EngineConfig) -> dict[str, CapacityProfile]:
    """Infer a profile for every recruiter in the snapshot."""
    counts = count_stage_exits(dataset)
    window = dataset.window()
    weeks = window.weeks() if window is not None else 1
    profiles = {
        recruiter_id: _build_profile(recruiter_id, counts.get(recruiter_id, Counter()), weeks, config)
        for recruiter_id in dataset.recruiter_ids()
    }
    logger.debug(
        "capacity.inferred",
        recruiters=len(profiles),
        fallback=sum(1 for profile in profiles.values() if profile.used_cohort_fallback),
    )
    return profiles


def _build_profile(
    recruiter_id: str,
    counts: Counter[str],
    weeks: int,
    config: EngineConfig,
) -> CapacityProfile:
    settings = config.capacity
    stages: dict[str, StageCapacity] = {}
    reasons: list[ConfidenceReason] = []

    for stage in CAPACITY_STAGES:
        prior = settings.default_capacity.get(stage, settings.min_throughput)
        transitions = counts.get(stage, 0)
        if transitions >= settings.min_transitions:
            observed = transitions / weeks
            throughput = shrink_rate(observed, prior, transitions, settings.shrinkage_weight)
            assessment = assess_confidence(
                [
                    SampleSize(f"{stage.lower()}_transitions", transitions, settings.min_transitions),
                    SampleSize("window_weeks", weeks, settings.min_weeks),
                ]
            )
            stages[stage] = StageCapacity(
                stage=stage,
                throughput=max(throughput, settings.min_throughput),
                transitions=transitions,
                observed_rate=observed,
                defaulted=False,
                confidence=assessment.level,
            )
            reasons.append(
                ConfidenceReason(
                    "shrinkage",
                    f"{stage}: {observed:.1f}/week observed, blended with the cohort default of {prior:g}",
                    "neutral",
                )
            )
        else:
            stages[stage] = StageCapacity(
                stage=stage,
                throughput=max(prior, settings.min_throughput),
                transitions=transitions,
                observed_rate=None,
                defaulted=True,
                confidence="LOW",
            )
            if transitions:
                reasons.append(
                    ConfidenceReason(
                        "sample_size",
                        f"{stage}: only {transitions} transitions, using the cohort default",
                        "negative",
                    )
                )

    observed_levels = [entry.confidence for entry in stages.values() if not entry.defaulted]
    fallback = not observed_levels
    if fallback:
        confidence: ConfidenceLevel = "LOW"
        reasons.append(
            ConfidenceReason("missing_data", "No stage history in window, using cohort defaults", "negative")
        )
    elif len(observed_levels) == len(stages):
        confidence = weakest_link(observed_levels)
    else:
        confidence = weakest_link([*observed_levels, "MED"])

    return CapacityProfile(
        recruiter_id=recruiter_id,
        stages=stages,
        window_weeks=weeks,
        confidence=confidence,
        reasons=reasons,
        used_cohort_fallback=fallback,
    )
