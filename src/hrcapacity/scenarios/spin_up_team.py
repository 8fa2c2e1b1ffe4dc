"""Spin up team: open new requisitions and project time-to-fill and workload."""

from __future__ import annotations

import math
import statistics

import pendulum
import structlog
from rapidfuzz import fuzz

from ..actions import ActionEvidence, ActionItem, RecruiterAnonymizer, make_action
from ..core.confidence import SampleSize, assess_confidence
from ..core.utilization import compute_utilization
from ..schemas import Candidate, EngineConfig, Requisition, SpinUpTeamParams
from .context import FUNNEL_STAGES, ScenarioContext
from .impact import resource_impact, utilization_feasibility
from .outputs import (
    Bottleneck,
    Citation,
    Feasibility,
    MissingDataItem,
    ScenarioDeltas,
    ScenarioFindings,
    rank_bottlenecks,
    worst_feasibility,
)

logger = structlog.get_logger(__name__)

REQUIRED_FOR = "Spin up team scenario"


def matches_function(req: Requisition, function: str, threshold: float) -> bool:
    """Fuzzy match of the role function against job family or title."""
    wanted = function.strip().lower()
    for value in (req.job_family, req.title):
        if value and fuzz.token_set_ratio(wanted, value.strip().lower()) >= threshold:
            return True
    return False


def historical_fill_days(params: SpinUpTeamParams, context: ScenarioContext, config: EngineConfig) -> list[int]:
    threshold = config.scenarios.spin_up.function_match_threshold
    return sorted(
        (pendulum.instance(req.closed_at) - pendulum.instance(req.opened_at)).in_days()
        for req in context.dataset.requisitions
        if not req.is_open
        and req.opened_at is not None
        and req.closed_at is not None
        and matches_function(req, params.role_profile.function, threshold)
    )


def gate(params: SpinUpTeamParams, context: ScenarioContext, config: EngineConfig) -> list[MissingDataItem]:
    settings = config.scenarios
    history = historical_fill_days(params, context, config)
    if len(history) < settings.min_hires_for_ttf:
        return [
            MissingDataItem(
                field="historical_hires",
                description=(
                    f"Only {len(history)} filled {params.role_profile.function} requisitions with "
                    f"open and close dates; {settings.min_hires_for_ttf} are needed"
                ),
                required_for=REQUIRED_FOR,
            )
        ]
    benchmarks = context.benchmarks
    if not benchmarks.funnel_conversion and benchmarks.candidates_per_hire is None:
        return [
            MissingDataItem(
                field="velocity_data",
                description="No funnel conversion rates or candidates-per-hire benchmark available",
                required_for=REQUIRED_FOR,
            )
        ]
    unknown = sorted(set(params.assigned_recruiter_ids) - set(context.recruiter_ids))
    if unknown:
        return [
            MissingDataItem(
                field="assigned_recruiters",
                description=f"Unknown recruiters: {', '.join(unknown)}",
                required_for=REQUIRED_FOR,
            )
        ]
    return []


def candidates_per_hire(context: ScenarioContext, config: EngineConfig) -> float:
    benchmark = context.benchmarks.candidates_per_hire
    if benchmark:
        return benchmark
    default = config.scenarios.spin_up.default_funnel_rate
    product = 1.0
    for stage in FUNNEL_STAGES[:-1]:
        product *= context.benchmarks.funnel_conversion.get(stage, default) or default
    return float(math.ceil(1 / product))


def synthetic_req_ids(context: ScenarioContext, count: int) -> list[str]:
    """Placeholder ids for new requisitions, skipping any already in the snapshot."""
    taken = {req.req_id for req in context.dataset.requisitions}
    ids: list[str] = []
    number = 0
    while len(ids) < count:
        number += 1
        candidate = f"NEW-{number:03d}"
        if candidate not in taken:
            ids.append(candidate)
    return ids


def new_req_load(context: ScenarioContext, config: EngineConfig, per_hire: float) -> dict[str, int]:
    """Concurrent active candidates one new requisition adds per stage."""
    settings = config.scenarios.spin_up
    load: dict[str, int] = {}
    reaching = per_hire
    for stage in FUNNEL_STAGES[:-1]:
        load[stage] = int(reaching * settings.pipeline_concurrency + 0.5)
        reaching *= context.benchmarks.funnel_conversion.get(stage, settings.default_funnel_rate)
    return load


def evaluate(
    params: SpinUpTeamParams,
    context: ScenarioContext,
    config: EngineConfig,
    *,
    anonymizer: RecruiterAnonymizer,
) -> ScenarioFindings:
    settings = config.scenarios.spin_up
    history = historical_fill_days(params, context, config)
    median_ttf = float(statistics.median(history))
    hm_days = context.hm_latency_days.get(params.hiring_manager_id or "")
    hm_penalty = (
        max(0.0, (hm_days - settings.baseline_hm_feedback_days) * settings.hm_latency_penalty)
        if hm_days is not None
        else 0.0
    )
    predicted_ttf = median_ttf + hm_penalty
    per_hire = candidates_per_hire(context, config)
    load = new_req_load(context, config, per_hire)

    targets = sorted(
        params.assigned_recruiter_ids or context.recruiter_ids,
        key=lambda recruiter_id: (_utilization(context, recruiter_id), recruiter_id),
    )
    new_reqs: list[Requisition] = []
    new_candidates: list[Candidate] = []
    for index, req_id in enumerate(synthetic_req_ids(context, params.headcount)):
        new_reqs.append(
            Requisition(
                req_id=req_id,
                title=params.role_profile.function,
                status="Open",
                recruiter_id=targets[index % len(targets)] if targets else None,
                hiring_manager_id=params.hiring_manager_id,
                job_family=params.role_profile.function,
                level=params.role_profile.level,
                location_type=params.role_profile.location_type,
            )
        )
        for stage, count in load.items():
            new_candidates.extend(
                Candidate(candidate_id=f"{req_id}-{stage}-{slot + 1}", req_id=req_id, current_stage=stage)
                for slot in range(count)
            )
    hypothetical = context.dataset.extended(requisitions=new_reqs, candidates=new_candidates)
    after = compute_utilization(hypothetical, config, capacities=context.capacities)
    impact = resource_impact(context.utilization, after, config, anonymizer, recruiter_ids=context.recruiter_ids)
    verdict, bottlenecks = utilization_feasibility(impact, config)

    target_capacity = sum(sum(context.capacities[rid].as_rates().values()) for rid in targets)
    target_demand = sum(sum(after.row(rid).demand.values()) for rid in targets if after.row(rid) is not None)
    capacity_gap = max(0.0, target_demand - target_capacity) / max(target_capacity, config.utilization.epsilon)

    confidence = assess_confidence(
        [
            SampleSize("historical_hires", len(history), config.scenarios.min_hires_for_ttf),
            SampleSize("offers_observed", context.benchmarks.offers_observed, config.scenarios.min_offers_for_decay),
        ]
    )
    verdict = worst_feasibility(
        verdict,
        _spin_up_verdict(params, predicted_ttf, capacity_gap, confidence.level, config),
    )

    if predicted_ttf > params.target_days * settings.ttf_at_risk_multiplier:
        bottlenecks.append(
            Bottleneck(
                constraint_type="VELOCITY_DECAY",
                severity="CRITICAL" if predicted_ttf > params.target_days * settings.ttf_impossible_multiplier else "HIGH",
                description=f"Predicted time-to-fill {predicted_ttf:.0f}d against a {params.target_days}d target",
                evidence={"median_ttf_days": median_ttf, "hm_penalty_days": round(hm_penalty, 2)},
                mitigation="Extend the target date or stagger the openings",
            )
        )
    if capacity_gap > settings.capacity_gap_at_risk:
        bottlenecks.append(
            Bottleneck(
                constraint_type="CAPACITY_GAP",
                severity="HIGH",
                description=f"Assigned recruiters short {capacity_gap * 100:.0f}% of the weekly capacity needed",
                evidence={"target_demand": target_demand, "target_capacity": round(target_capacity, 2)},
                mitigation="Assign additional recruiters or bring in sourcing support",
            )
        )
    if hm_penalty > 0:
        bottlenecks.append(
            Bottleneck(
                constraint_type="HM_FRICTION",
                severity="MEDIUM",
                description=f"Hiring manager feedback takes {hm_days:.1f}d on average",
                evidence={"hm_feedback_days": round(hm_days, 2)},
                mitigation="Agree a 48-hour feedback SLA before opening the requisitions",
            )
        )
    candidates_needed = math.ceil(params.headcount * per_hire)
    bottlenecks.append(
        Bottleneck(
            constraint_type="PIPELINE_DEPTH",
            severity="MEDIUM",
            description=f"{candidates_needed} candidates needed to make {params.headcount} hires",
            evidence={"candidates_per_hire": round(per_hire, 2)},
            mitigation="Start sourcing before the requisitions open",
        )
    )

    accept_rate = context.benchmarks.accept_rate or config.scenarios.freeze.default_accept_rate
    deltas = ScenarioDeltas(
        expected_hires_delta=float(params.headcount),
        offers_delta=float(math.ceil(params.headcount / max(accept_rate, config.utilization.epsilon))),
        pipeline_gap_delta=float(candidates_needed),
        time_to_offer_delta=round(predicted_ttf - params.target_days, 2),
    )
    citations = [
        Citation("velocity.median_ttf_days", "Median time-to-fill for the function", median_ttf, "benchmarks"),
        Citation("velocity.predicted_ttf_days", "Predicted time-to-fill", round(predicted_ttf, 2), "scenario"),
        Citation("pipeline.candidates_per_hire", "Candidates per hire", round(per_hire, 2), "benchmarks"),
        Citation("capacity.capacity_gap", "Capacity gap of assigned recruiters", round(capacity_gap, 4), "capacity"),
        Citation(
            "capacity.new_team_utilization",
            "Projected team utilization",
            round(impact.team_utilization_after, 4),
            "utilization",
        ),
    ]
    actions = _actions(params, context, targets, per_hire, hm_penalty, capacity_gap, config, anonymizer)
    logger.info(
        "scenario.spin_up_team",
        headcount=params.headcount,
        predicted_ttf=round(predicted_ttf, 2),
        feasibility=verdict,
    )
    return ScenarioFindings(
        feasibility=verdict,
        deltas=deltas,
        bottlenecks=rank_bottlenecks(bottlenecks),
        resource_impact=impact,
        actions=actions,
        confidence=confidence,
        citations=citations,
    )


def _utilization(context: ScenarioContext, recruiter_id: str) -> float:
    row = context.utilization.row(recruiter_id)
    return row.utilization if row is not None else 0.0


def _spin_up_verdict(
    params: SpinUpTeamParams,
    predicted_ttf: float,
    capacity_gap: float,
    level: str,
    config: EngineConfig,
) -> Feasibility:
    settings = config.scenarios.spin_up
    if predicted_ttf > params.target_days * settings.ttf_impossible_multiplier:
        return "IMPOSSIBLE"
    if (
        capacity_gap > settings.capacity_gap_at_risk
        or level == "LOW"
        or predicted_ttf > params.target_days * settings.ttf_at_risk_multiplier
    ):
        return "AT_RISK"
    return "ON_TRACK"


def _actions(
    params: SpinUpTeamParams,
    context: ScenarioContext,
    targets: list[str],
    per_hire: float,
    hm_penalty: float,
    capacity_gap: float,
    config: EngineConfig,
    anonymizer: RecruiterAnonymizer,
) -> list[ActionItem]:
    dataset = context.dataset
    as_of = context.as_of
    actions = [
        make_action(
            owner_type="TA_OPS",
            owner_id="ta_ops",
            owner_name="TA Ops",
            action_type="OPEN_REQS",
            title=f"Open {params.headcount} {params.role_profile.function} requisition(s)",
            priority="P0",
            due_in_days=5,
            as_of=as_of,
            evidence=ActionEvidence(kpi_key="velocity.predicted_ttf_days", short_reason=f"Target {params.target_days}d"),
            recommended_steps=["Confirm budget approval", "Publish job descriptions"],
        )
    ]
    for recruiter_id in targets:
        actions.append(
            make_action(
                owner_type="RECRUITER",
                owner_id=recruiter_id,
                owner_name=anonymizer.display(recruiter_id, dataset.display_name(recruiter_id)),
                action_type="SOURCE_CANDIDATES",
                title=f"Build a {params.role_profile.function} pipeline",
                priority="P1",
                due_in_days=14,
                as_of=as_of,
                evidence=ActionEvidence(
                    kpi_key="pipeline.candidates_per_hire",
                    short_reason=f"About {per_hire:.0f} candidates per hire",
                ),
                recommended_steps=["Calibrate the profile with the hiring manager", "Launch outbound sourcing"],
            )
        )
    if hm_penalty > 0 and params.hiring_manager_id:
        actions.append(
            make_action(
                owner_type="HIRING_MANAGER",
                owner_id=params.hiring_manager_id,
                owner_name=dataset.display_name(params.hiring_manager_id),
                action_type="FEEDBACK_SLA",
                title="Commit to a 48-hour interview feedback SLA",
                priority="P1",
                due_in_days=7,
                as_of=as_of,
                evidence=ActionEvidence(
                    kpi_key="velocity.predicted_ttf_days",
                    short_reason=f"Feedback delays add ~{hm_penalty:.0f}d to time-to-fill",
                ),
            )
        )
    if capacity_gap > config.scenarios.spin_up.capacity_gap_at_risk:
        actions.append(
            make_action(
                owner_type="TA_OPS",
                owner_id="ta_ops",
                owner_name="TA Ops",
                action_type="CAPACITY_PLANNING",
                title="Close the recruiting capacity gap for the new team",
                priority="P0",
                due_in_days=7,
                as_of=as_of,
                evidence=ActionEvidence(
                    kpi_key="capacity.capacity_gap",
                    short_reason=f"{capacity_gap * 100:.0f}% short of required capacity",
                ),
                recommended_steps=["Add a recruiter to the assignment", "Engage an agency for sourcing"],
            )
        )
    return actions
