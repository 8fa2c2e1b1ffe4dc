"""Global facts shared by every scenario handler."""

from __future__ import annotations

import statistics
from dataclasses import dataclass, field
from typing import Mapping

import pendulum

from ..core.capacity import CapacityProfile, infer_team_capacity
from ..core.utilization import UtilizationResult, compute_utilization
from ..schemas import Dataset, EngineConfig

FUNNEL_STAGES: tuple[str, ...] = ("SCREEN", "HM_SCREEN", "ONSITE", "OFFER", "HIRED")


@dataclass(slots=True)
class Benchmarks:
    """Velocity benchmarks, supplied by the caller or derived from history."""

    median_ttf_days: float | None = None
    accept_rate: float | None = None
    candidates_per_hire: float | None = None
    funnel_conversion: dict[str, float] = field(default_factory=dict)
    offers_observed: int = 0
    hires_observed: int = 0


@dataclass(slots=True)
class ScenarioContext:
    dataset: Dataset
    as_of: pendulum.DateTime
    capacities: dict[str, CapacityProfile]
    utilization: UtilizationResult
    benchmarks: Benchmarks
    fit_scores: dict[str, dict[str, float]] = field(default_factory=dict)
    hm_latency_days: dict[str, float] = field(default_factory=dict)

    @property
    def recruiter_ids(self) -> list[str]:
        return [row.recruiter_id for row in sorted(self.utilization.rows, key=lambda row: row.recruiter_id)]

    def open_reqs_of(self, recruiter_id: str) -> list[str]:
        row = self.utilization.row(recruiter_id)
        return list(row.req_ids) if row is not None else []


def build_context(
    dataset: Dataset,
    config: EngineConfig,
    *,
    benchmarks: Benchmarks | None = None,
    fit_scores: Mapping[str, Mapping[str, float]] | None = None,
    hm_latency_days: Mapping[str, float] | None = None,
    as_of: pendulum.DateTime | None = None,
) -> ScenarioContext:
    capacities = infer_team_capacity(dataset, config)
    utilization = compute_utilization(dataset, config, capacities=capacities)
    return ScenarioContext(
        dataset=dataset,
        as_of=as_of if as_of is not None else dataset.as_of(),
        capacities=capacities,
        utilization=utilization,
        benchmarks=benchmarks if benchmarks is not None else derive_benchmarks(dataset),
        fit_scores={recruiter: dict(scores) for recruiter, scores in (fit_scores or {}).items()},
        hm_latency_days=(
            dict(hm_latency_days) if hm_latency_days is not None else derive_hm_latency(dataset)
        ),
    )


def derive_benchmarks(dataset: Dataset) -> Benchmarks:
    reached: dict[str, set[str]] = {stage: set() for stage in FUNNEL_STAGES}
    for event in dataset.events:
        if event.is_stage_change and event.to_stage in reached:
            reached[event.to_stage].add(event.candidate_id)
    for candidate in dataset.candidates:
        if candidate.disposition == "hired":
            reached["HIRED"].add(candidate.candidate_id)
        elif candidate.current_stage in reached:
            reached[candidate.current_stage].add(candidate.candidate_id)

    offers = len(reached["OFFER"] | reached["HIRED"])
    hires = len(reached["HIRED"])
    conversion: dict[str, float] = {}
    for current, following in zip(FUNNEL_STAGES, FUNNEL_STAGES[1:]):
        if reached[current]:
            conversion[current] = min(1.0, len(reached[following]) / len(reached[current]))

    durations = [
        (pendulum.instance(req.closed_at) - pendulum.instance(req.opened_at)).in_days()
        for req in dataset.requisitions
        if req.opened_at is not None and req.closed_at is not None and not req.is_open
    ]
    return Benchmarks(
        median_ttf_days=float(statistics.median(durations)) if durations else None,
        accept_rate=hires / offers if offers else None,
        candidates_per_hire=len(dataset.candidates) / hires if hires else None,
        funnel_conversion=conversion,
        offers_observed=offers,
        hires_observed=hires,
    )


def derive_hm_latency(dataset: Dataset) -> dict[str, float]:
    """Median days candidates wait in HM_SCREEN, per hiring manager."""
    managers = {req.req_id: req.hiring_manager_id for req in dataset.requisitions if req.hiring_manager_id}
    entered: dict[str, pendulum.DateTime] = {}
    waits: dict[str, list[float]] = {}
    for event in sorted(dataset.events, key=lambda item: (item.event_at, item.event_id)):
        if not event.is_stage_change:
            continue
        if event.to_stage == "HM_SCREEN":
            entered[event.candidate_id] = pendulum.instance(event.event_at)
        elif event.from_stage == "HM_SCREEN" and event.candidate_id in entered:
            manager = managers.get(event.req_id)
            start = entered.pop(event.candidate_id)
            if manager is not None:
                elapsed = pendulum.instance(event.event_at) - start
                waits.setdefault(manager, []).append(elapsed.total_seconds() / 86400)
    return {manager: float(statistics.median(values)) for manager, values in sorted(waits.items())}
