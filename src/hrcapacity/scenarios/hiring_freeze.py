"""Hiring freeze: pause requisitions in scope and project pipeline decay."""

from __future__ import annotations

import bisect

import pendulum
import structlog

from ..actions import ActionEvidence, ActionItem, RecruiterAnonymizer, make_action
from ..core.confidence import SampleSize, assess_confidence
from ..core.utilization import compute_utilization
from ..schemas import Candidate, EngineConfig, HiringFreezeParams, Requisition
from ..schemas.config import FreezeConfig
from .context import ScenarioContext
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

REQUIRED_FOR = "Hiring freeze scenario"

RELEASED_ON_SOFT_REJECT = frozenset({"LEAD", "APPLIED", "SCREEN", "HM_SCREEN"})


def frozen_requisitions(params: HiringFreezeParams, context: ScenarioContext) -> list[Requisition]:
    reqs = context.dataset.open_requisitions()
    value = (params.filter_value or "").strip().lower()
    if params.scope == "FUNCTION":
        reqs = [req for req in reqs if (req.job_family or "").strip().lower() == value]
    elif params.scope == "LEVEL":
        reqs = [req for req in reqs if (req.level or "").strip().lower() == value]
    elif params.scope == "SPECIFIC_REQS":
        wanted = set(params.req_ids)
        reqs = [req for req in reqs if req.req_id in wanted]
    return sorted(reqs, key=lambda req: req.req_id)


def frozen_candidates(reqs: list[Requisition], context: ScenarioContext) -> list[Candidate]:
    req_ids = {req.req_id for req in reqs}
    return sorted(
        (candidate for candidate in context.dataset.active_candidates() if candidate.req_id in req_ids),
        key=lambda candidate: candidate.candidate_id,
    )


def gate(params: HiringFreezeParams, context: ScenarioContext, config: EngineConfig) -> list[MissingDataItem]:
    settings = config.scenarios
    reqs = frozen_requisitions(params, context)
    if not reqs:
        return [
            MissingDataItem(
                field="freeze_scope",
                description=f"No open requisitions match scope {params.scope}",
                required_for=REQUIRED_FOR,
            )
        ]
    pipeline = frozen_candidates(reqs, context)
    if len(pipeline) < settings.freeze.min_active_pipeline:
        return [
            MissingDataItem(
                field="active_pipeline",
                description=(
                    f"Only {len(pipeline)} active candidates in scope; "
                    f"{settings.freeze.min_active_pipeline} are needed to project decay"
                ),
                required_for=REQUIRED_FOR,
            )
        ]
    if context.benchmarks.offers_observed < settings.min_offers_for_decay:
        return [
            MissingDataItem(
                field="decay_data",
                description=(
                    f"Only {context.benchmarks.offers_observed} historical offers; "
                    f"{settings.min_offers_for_decay} are needed to anchor the decay curve"
                ),
                required_for=REQUIRED_FOR,
            )
        ]
    return []


def decay_factor(days: float, settings: FreezeConfig) -> float:
    """Share of acceptance likelihood left after ``days`` in process."""
    points = sorted(settings.decay_curve)
    days_axis = [day for day, _ in points]
    if days <= days_axis[0]:
        return points[0][1]
    if days >= days_axis[-1]:
        return points[-1][1]
    index = bisect.bisect_right(days_axis, days)
    (low_day, low_value), (high_day, high_value) = points[index - 1], points[index]
    share = (days - low_day) / (high_day - low_day)
    return low_value + (high_value - low_value) * share


def days_in_process(candidate: Candidate, as_of: pendulum.DateTime, settings: FreezeConfig) -> float:
    anchor = candidate.current_stage_entered_at or candidate.applied_at
    if anchor is None:
        return float(settings.default_days_in_process)
    return max(0.0, (as_of - pendulum.instance(anchor)).total_seconds() / 86400)


def evaluate(
    params: HiringFreezeParams,
    context: ScenarioContext,
    config: EngineConfig,
    *,
    anonymizer: RecruiterAnonymizer,
) -> ScenarioFindings:
    settings = config.scenarios.freeze
    reqs = frozen_requisitions(params, context)
    pipeline = frozen_candidates(reqs, context)
    freeze_days = params.freeze_weeks * 7
    base_rate = context.benchmarks.accept_rate or settings.default_accept_rate

    hires_before = hires_after = 0.0
    decay_before: list[float] = []
    decay_after: list[float] = []
    released = stale = offer_stage = 0
    for candidate in pipeline:
        stage = candidate.current_stage or ""
        probability = settings.hire_probability.get(stage, settings.default_hire_probability)
        current_days = days_in_process(candidate, context.as_of, settings)
        projected_days = current_days + freeze_days
        current_factor = decay_factor(current_days, settings)
        projected_factor = decay_factor(projected_days, settings)
        hires_before += probability * current_factor
        decay_before.append(current_factor)
        if stage in ("FINAL", "OFFER"):
            offer_stage += 1

        if params.candidate_action == "WITHDRAW" or (
            params.candidate_action == "REJECT_SOFT" and stage in RELEASED_ON_SOFT_REJECT
        ):
            released += 1
            continue
        hires_after += probability * projected_factor
        decay_after.append(projected_factor)
        if projected_days > settings.stale_days:
            stale += 1

    accept_before = base_rate * _mean(decay_before)
    accept_after = base_rate * (_mean(decay_after) if decay_after else _mean_projected(pipeline, context, settings, freeze_days))
    accept_change = (accept_after - accept_before) / accept_before if accept_before > 0 else 0.0
    hires_change = (hires_after - hires_before) / hires_before if hires_before > 0 else 0.0

    frozen_ids = {req.req_id for req in reqs}
    hypothetical = context.dataset.with_assignments({req_id: None for req_id in frozen_ids})
    after = compute_utilization(hypothetical, config, capacities=context.capacities)
    impact = resource_impact(
        context.utilization, after, config, anonymizer, recruiter_ids=context.recruiter_ids
    )
    verdict, bottlenecks = utilization_feasibility(impact, config)
    verdict = worst_feasibility(verdict, _freeze_verdict(params, accept_change, hires_change, settings))

    if accept_change < settings.accept_rate_drop_at_risk:
        bottlenecks.append(
            Bottleneck(
                constraint_type="VELOCITY_DECAY",
                severity="HIGH",
                description=f"Offer acceptance projected to fall {abs(accept_change) * 100:.0f}%",
                evidence={"accept_rate_before": round(accept_before, 4), "accept_rate_after": round(accept_after, 4)},
                mitigation="Keep warm candidates engaged with regular check-ins during the freeze",
            )
        )
    if stale:
        bottlenecks.append(
            Bottleneck(
                constraint_type="PIPELINE_DEPTH",
                severity="HIGH" if stale * 2 >= len(pipeline) else "MEDIUM",
                description=f"{stale} candidates exceed {settings.stale_days} days in process by the end of the freeze",
                evidence={"stale_candidates": stale, "active_candidates": len(pipeline)},
                mitigation="Prioritise late-stage candidates for exception approval",
            )
        )
    if hires_change < settings.hires_drop_at_risk:
        bottlenecks.append(
            Bottleneck(
                constraint_type="FORECAST_CONFIDENCE",
                severity="CRITICAL" if hires_change < settings.hires_drop_impossible else "HIGH",
                description=f"Expected hires from the frozen pipeline drop {abs(hires_change) * 100:.0f}%",
                evidence={"expected_hires_before": round(hires_before, 2), "expected_hires_after": round(hires_after, 2)},
                mitigation="Shorten the freeze or exempt requisitions with offers in flight",
            )
        )

    confidence = assess_confidence(
        [
            SampleSize("decay_offers", context.benchmarks.offers_observed, config.scenarios.min_offers_for_decay),
            SampleSize("active_candidates", len(pipeline), settings.active_candidates_threshold),
        ]
    )
    if confidence.level != "HIGH":
        bottlenecks.append(
            Bottleneck(
                constraint_type="MISSING_DATA",
                severity="MEDIUM",
                description="Decay projection rests on a small sample",
                evidence={"offers_observed": context.benchmarks.offers_observed, "active_candidates": len(pipeline)},
                mitigation="Validate the projection against recruiter judgement",
            )
        )

    freed = context.utilization.summary.total_demand - after.summary.total_demand
    deltas = ScenarioDeltas(
        expected_hires_delta=round(hires_after - hires_before, 4),
        offers_delta=-float(offer_stage),
        pipeline_gap_delta=float(released + stale),
        time_to_offer_delta=float(freeze_days),
    )
    citations = [
        Citation("freeze_scope.req_count", "Requisitions frozen", len(reqs), "scenario"),
        Citation("freeze_scope.active_candidates", "Active candidates paused", len(pipeline), "scenario"),
        Citation("velocity.base_accept_rate", "Baseline offer accept rate", round(base_rate, 4), "benchmarks"),
        Citation("velocity.projected_accept_rate", "Projected offer accept rate", round(accept_after, 4), "velocity"),
        Citation("forecast.expected_hires_before", "Expected hires without freeze", round(hires_before, 2), "forecast"),
        Citation("forecast.expected_hires_after", "Expected hires after freeze", round(hires_after, 2), "forecast"),
        Citation("capacity.freed_demand", "Candidate demand freed", freed, "utilization"),
    ]
    actions = _actions(params, context, reqs, released, offer_stage, anonymizer)
    logger.info(
        "scenario.hiring_freeze",
        scope=params.scope,
        reqs=len(reqs),
        candidates=len(pipeline),
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


def _freeze_verdict(
    params: HiringFreezeParams,
    accept_change: float,
    hires_change: float,
    settings: FreezeConfig,
) -> Feasibility:
    if hires_change < settings.hires_drop_impossible:
        return "IMPOSSIBLE"
    if accept_change < settings.accept_rate_drop_at_risk:
        return "AT_RISK"
    if params.candidate_action != "HOLD" and hires_change < settings.hires_drop_at_risk:
        return "AT_RISK"
    return "ON_TRACK"


def _mean(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _mean_projected(
    pipeline: list[Candidate],
    context: ScenarioContext,
    settings: FreezeConfig,
    freeze_days: int,
) -> float:
    return _mean(
        [decay_factor(days_in_process(candidate, context.as_of, settings) + freeze_days, settings) for candidate in pipeline]
    )


def _actions(
    params: HiringFreezeParams,
    context: ScenarioContext,
    reqs: list[Requisition],
    released: int,
    offer_stage: int,
    anonymizer: RecruiterAnonymizer,
) -> list[ActionItem]:
    dataset = context.dataset
    as_of = context.as_of
    actions: list[ActionItem] = []
    managers: dict[str, list[str]] = {}
    recruiters: dict[str, list[str]] = {}
    for req in reqs:
        if req.hiring_manager_id:
            managers.setdefault(req.hiring_manager_id, []).append(req.req_id)
        if req.recruiter_id:
            recruiters.setdefault(req.recruiter_id, []).append(req.req_id)

    for manager_id, req_ids in sorted(managers.items()):
        actions.append(
            make_action(
                owner_type="HIRING_MANAGER",
                owner_id=manager_id,
                owner_name=dataset.display_name(manager_id),
                action_type="COMMUNICATE_FREEZE",
                title=f"Acknowledge the {params.freeze_weeks}-week freeze on {len(req_ids)} requisition(s)",
                priority="P1",
                due_in_days=3,
                as_of=as_of,
                evidence=ActionEvidence(kpi_key="freeze_scope.req_count", short_reason=", ".join(req_ids)),
                recommended_steps=["Agree which candidates to keep warm", "Flag any business-critical exceptions"],
            )
        )

    urgent = params.candidate_action != "HOLD" or offer_stage > 0
    for recruiter_id, req_ids in sorted(recruiters.items()):
        actions.append(
            make_action(
                owner_type="RECRUITER",
                owner_id=recruiter_id,
                owner_name=anonymizer.display(recruiter_id, dataset.display_name(recruiter_id)),
                action_type="CANDIDATE_OUTREACH",
                title=f"Tell candidates on {len(req_ids)} frozen requisition(s) what happens next",
                priority="P0" if urgent else "P1",
                due_in_days=2,
                as_of=as_of,
                evidence=ActionEvidence(
                    kpi_key="freeze_scope.active_candidates",
                    short_reason=f"Candidate action: {params.candidate_action}",
                ),
                recommended_steps=["Send a personal update to every active candidate", "Log expected restart dates"],
            )
        )

    actions.append(
        make_action(
            owner_type="TA_OPS",
            owner_id="ta_ops",
            owner_name="TA Ops",
            action_type="REENGAGEMENT_PLAN",
            title="Plan pipeline re-engagement for the end of the freeze",
            priority="P2",
            due_in_days=max(1, params.freeze_weeks * 7 - 7),
            as_of=as_of,
            evidence=ActionEvidence(
                kpi_key="forecast.expected_hires_after",
                short_reason=f"{released} candidates released during the freeze",
            ),
            recommended_steps=["Rank paused candidates by stage", "Schedule restart interviews in the first week"],
        )
    )
    return actions
