"""Recruiter departs: redistribute the departing recruiter's open requisitions."""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from ..actions import ActionEvidence, ActionItem, RecruiterAnonymizer, make_action
from ..core.confidence import SampleSize, assess_confidence, weakest_link
from ..core.rebalancer import ReassignmentSuggestion, suggest_reassignments
from ..core.utilization import (
    compute_utilization,
    peak_utilization,
    requisition_demand,
    stage_utilization,
)
from ..schemas import EngineConfig, RecruiterDepartsParams
from .context import ScenarioContext
from .impact import resource_impact, utilization_feasibility
from .outputs import (
    Bottleneck,
    Citation,
    MissingDataItem,
    ScenarioDeltas,
    ScenarioFindings,
    rank_bottlenecks,
    worst_feasibility,
)

logger = structlog.get_logger(__name__)

REQUIRED_FOR = "Recruiter departs scenario"


@dataclass(slots=True)
class Assignment:
    req_id: str
    target_recruiter_id: str | None
    projected_load: float | None
    fit_score: float | None


def remaining_recruiters(params: RecruiterDepartsParams, context: ScenarioContext) -> int:
    recruiters = context.recruiter_ids
    return len(recruiters) - (1 if params.recruiter_id in recruiters else 0)


def gate(params: RecruiterDepartsParams, context: ScenarioContext, config: EngineConfig) -> list[MissingDataItem]:
    if params.recruiter_id not in context.recruiter_ids:
        return [
            MissingDataItem(
                field="recruiter",
                description=f"Recruiter {params.recruiter_id!r} was not found in the dataset",
                required_for=REQUIRED_FOR,
            )
        ]
    if not context.open_reqs_of(params.recruiter_id):
        return [
            MissingDataItem(
                field="recruiter_reqs",
                description="The departing recruiter has no open requisitions to reassign",
                required_for=REQUIRED_FOR,
            )
        ]
    if remaining_recruiters(params, context) < config.scenarios.min_recruiters:
        return [
            MissingDataItem(
                field="remaining_recruiters",
                description=f"At least {config.scenarios.min_recruiters} other recruiters must remain",
                required_for=REQUIRED_FOR,
            )
        ]
    return []


def plan_reassignments(
    params: RecruiterDepartsParams,
    context: ScenarioContext,
    config: EngineConfig,
) -> list[Assignment]:
    """Greedy placement, heaviest requisitions first."""
    settings = config.scenarios
    dataset = context.dataset
    per_req = requisition_demand(dataset)
    targets = [recruiter_id for recruiter_id in context.recruiter_ids if recruiter_id != params.recruiter_id]
    loads: dict[str, dict[str, int]] = {}
    for recruiter_id in targets:
        row = context.utilization.row(recruiter_id)
        loads[recruiter_id] = dict(row.demand) if row is not None else {}

    def projected(recruiter_id: str, req_id: str) -> float:
        demand = dict(loads[recruiter_id])
        for stage, count in per_req.get(req_id, {}).items():
            demand[stage] = demand.get(stage, 0) + count
        rates = context.capacities[recruiter_id].as_rates()
        return peak_utilization(stage_utilization(demand, rates, config))

    req_ids = sorted(
        context.open_reqs_of(params.recruiter_id),
        key=lambda req_id: (-sum(per_req.get(req_id, {}).values()), req_id),
    )
    family_of = {req.req_id: (req.job_family or "") for req in dataset.requisitions}
    plan: list[Assignment] = []
    for req_id in req_ids:
        choice: str | None = None
        manual = params.manual_assignments.get(req_id)
        if params.reassignment_strategy == "MANUAL" and manual in loads:
            choice = manual
        else:
            best_key: tuple[float, str] | None = None
            for recruiter_id in targets:
                load = projected(recruiter_id, req_id)
                if load > settings.unassignable_ceiling:
                    continue
                if params.reassignment_strategy == "OPTIMIZE_FIT":
                    fit = _fit(context, recruiter_id, family_of.get(req_id, ""), config)
                    key = (-(fit - settings.fit_load_penalty * load), recruiter_id)
                else:
                    key = (load, recruiter_id)
                if best_key is None or key < best_key:
                    best_key, choice = key, recruiter_id

        if choice is None:
            plan.append(Assignment(req_id, None, None, None))
            continue
        load = projected(choice, req_id)
        for stage, count in per_req.get(req_id, {}).items():
            loads[choice][stage] = loads[choice].get(stage, 0) + count
        plan.append(Assignment(req_id, choice, load, _fit(context, choice, family_of.get(req_id, ""), config)))
    return plan


def evaluate(
    params: RecruiterDepartsParams,
    context: ScenarioContext,
    config: EngineConfig,
    *,
    anonymizer: RecruiterAnonymizer,
) -> ScenarioFindings:
    dataset = context.dataset
    departing = context.utilization.row(params.recruiter_id)
    plan = plan_reassignments(params, context, config)
    assigned = [item for item in plan if item.target_recruiter_id is not None]
    unassigned = [item for item in plan if item.target_recruiter_id is None]

    hypothetical = dataset.with_assignments(
        {item.req_id: item.target_recruiter_id for item in plan}
    ).without_user(params.recruiter_id)
    after = compute_utilization(hypothetical, config, capacities=context.capacities)
    remaining = [recruiter_id for recruiter_id in context.recruiter_ids if recruiter_id != params.recruiter_id]
    impact = resource_impact(context.utilization, after, config, anonymizer, recruiter_ids=remaining)
    verdict, bottlenecks = utilization_feasibility(impact, config)

    if unassigned:
        verdict = worst_feasibility(verdict, "IMPOSSIBLE")
        bottlenecks.append(
            Bottleneck(
                constraint_type="CAPACITY_GAP",
                severity="CRITICAL",
                description=f"{len(unassigned)} requisition(s) cannot be placed without exceeding capacity",
                evidence={"unassigned_req_ids": [item.req_id for item in unassigned]},
                mitigation="Backfill the role or pause the lowest-priority requisitions",
            )
        )

    samples = [SampleSize("remaining_recruiters", len(remaining), config.scenarios.min_recruiters)]
    if params.reassignment_strategy == "OPTIMIZE_FIT":
        observations = sum(len(context.fit_scores.get(recruiter_id, {})) for recruiter_id in remaining)
        samples.append(SampleSize("fit_observations", observations, config.scenarios.min_fit_observations))
        if observations < config.scenarios.min_fit_observations:
            bottlenecks.append(
                Bottleneck(
                    constraint_type="FORECAST_CONFIDENCE",
                    severity="MEDIUM",
                    description="Too few fit observations to rank recruiters by fit",
                    evidence={"fit_observations": observations},
                    mitigation="Treat the fit-based plan as a starting point and review it manually",
                )
            )
    confidence = assess_confidence(samples)
    confidence = confidence.capped(weakest_link([after.confidence.level, context.utilization.confidence.level]))

    follow_up = suggest_reassignments(hypothetical, config, capacities=context.capacities)
    per_req = requisition_demand(dataset)
    departing_demand = sum(departing.demand.values()) if departing is not None else 0
    lost_candidates = sum(sum(per_req.get(item.req_id, {}).values()) for item in unassigned)
    fits = [item.fit_score for item in assigned if item.fit_score is not None]
    avg_fit = sum(fits) / len(fits) if fits else config.scenarios.default_fit

    deltas = ScenarioDeltas(
        expected_hires_delta=-float(len(unassigned)),
        offers_delta=0.0,
        pipeline_gap_delta=float(lost_candidates),
        time_to_offer_delta=float(max(1, round(8 - 7 * avg_fit))) if assigned else 0.0,
    )

    remaining_capacity = sum(
        sum(context.capacities[recruiter_id].as_rates().values()) for recruiter_id in remaining
    )
    citations = [
        Citation("departing_recruiter.current_demand", "Departing recruiter demand", departing_demand, "utilization"),
        Citation("departing_recruiter.req_count", "Open requisitions to reassign", len(plan), "utilization"),
        Citation("capacity.remaining_capacity", "Remaining weekly capacity", round(remaining_capacity, 2), "capacity"),
        Citation("capacity.remaining_demand", "Remaining team demand", after.summary.total_demand, "utilization"),
        Citation(
            "capacity.new_team_utilization",
            "Projected team utilization",
            round(impact.team_utilization_after, 4),
            "utilization",
        ),
        Citation("reassignment_plan.total_reqs", "Requisitions placed", len(assigned), "scenario"),
        Citation("reassignment_plan.unassigned_reqs", "Requisitions left unplaced", len(unassigned), "scenario"),
        Citation(
            "rebalancer.follow_up_moves",
            "Follow-up rebalancing moves",
            len(follow_up.suggestions),
            "rebalancer",
        ),
    ]

    actions = _actions(params, context, plan, follow_up.suggestions, anonymizer, departing_demand)
    logger.info(
        "scenario.recruiter_departs",
        recruiter_id=params.recruiter_id,
        reqs=len(plan),
        unassigned=len(unassigned),
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


def _fit(context: ScenarioContext, recruiter_id: str, job_family: str, config: EngineConfig) -> float:
    return context.fit_scores.get(recruiter_id, {}).get(job_family, config.scenarios.default_fit)


def _actions(
    params: RecruiterDepartsParams,
    context: ScenarioContext,
    plan: list[Assignment],
    follow_up: list[ReassignmentSuggestion],
    anonymizer: RecruiterAnonymizer,
    departing_demand: int,
) -> list[ActionItem]:
    dataset = context.dataset
    as_of = context.as_of
    departing_name = anonymizer.display(params.recruiter_id, dataset.display_name(params.recruiter_id))
    actions = [
        make_action(
            owner_type="RECRUITER",
            owner_id=params.recruiter_id,
            owner_name=departing_name,
            action_type="KNOWLEDGE_TRANSFER",
            title="Hand over candidate context for every open requisition",
            priority="P0",
            due_in_days=3,
            as_of=as_of,
            evidence=ActionEvidence(
                kpi_key="departing_recruiter.current_demand",
                short_reason=f"{departing_demand} active candidates in flight",
            ),
            recommended_steps=[
                "Record status and next step for each active candidate",
                "Introduce the receiving recruiter to each hiring manager",
            ],
        )
    ]
    managers: dict[str, list[str]] = {}
    for item in plan:
        req = dataset.requisition(item.req_id)
        if req is not None and req.hiring_manager_id:
            managers.setdefault(req.hiring_manager_id, []).append(item.req_id)
        if item.target_recruiter_id is None:
            actions.append(
                make_action(
                    owner_type="TA_OPS",
                    owner_id="ta_ops",
                    owner_name="TA Ops",
                    action_type="ESCALATE_UNASSIGNED",
                    title=f"Find an owner for {item.req_id}",
                    priority="P0",
                    due_in_days=2,
                    as_of=as_of,
                    req_id=item.req_id,
                    req_title=req.title if req is not None else None,
                    evidence=ActionEvidence(
                        kpi_key="reassignment_plan.unassigned_reqs",
                        short_reason="Every remaining recruiter would exceed capacity",
                    ),
                    recommended_steps=["Approve a backfill or contractor", "Pause the requisition if lower priority"],
                )
            )
            continue
        target_name = anonymizer.display(item.target_recruiter_id, dataset.display_name(item.target_recruiter_id))
        actions.append(
            make_action(
                owner_type="RECRUITER",
                owner_id=item.target_recruiter_id,
                owner_name=target_name,
                action_type="REASSIGN_REQ",
                title=f"Take over {item.req_id}",
                priority="P0" if (item.projected_load or 0.0) <= 1.0 else "P1",
                due_in_days=5,
                as_of=as_of,
                req_id=item.req_id,
                req_title=req.title if req is not None else None,
                evidence=ActionEvidence(
                    kpi_key="capacity.new_team_utilization",
                    short_reason=f"Projected peak stage load {(item.projected_load or 0.0) * 100:.0f}%",
                ),
                recommended_steps=["Review the candidate slate", "Confirm next steps with the hiring manager"],
            )
        )

    for manager_id, req_ids in sorted(managers.items()):
        actions.append(
            make_action(
                owner_type="HIRING_MANAGER",
                owner_id=manager_id,
                owner_name=dataset.display_name(manager_id),
                action_type="NOTIFY_HM",
                title=f"Brief on recruiter change for {len(req_ids)} requisition(s)",
                priority="P1",
                due_in_days=5,
                as_of=as_of,
                evidence=ActionEvidence(
                    kpi_key="departing_recruiter.req_count",
                    short_reason=", ".join(sorted(req_ids)),
                ),
                recommended_steps=["Confirm the new recruiter owner", "Re-confirm interview availability"],
            )
        )

    for suggestion in follow_up:
        target_name = anonymizer.display(suggestion.target_recruiter_id, suggestion.target_recruiter_name)
        actions.append(
            make_action(
                owner_type="TA_OPS",
                owner_id="ta_ops",
                owner_name="TA Ops",
                action_type="REBALANCE",
                title=f"Consider moving {suggestion.req_id} to {target_name}",
                priority="P2",
                due_in_days=14,
                as_of=as_of,
                req_id=suggestion.req_id,
                req_title=suggestion.req_title,
                evidence=ActionEvidence(
                    kpi_key="rebalancer.follow_up_moves",
                    short_reason=(
                        f"Expected ~{suggestion.estimated_impact.delay_reduction_days:.1f}d faster time-to-hire"
                    ),
                ),
            )
        )
    return actions
