"""Scenario gating, dispatch and output assembly."""

from __future__ import annotations

from typing import Iterable

import structlog

from ..actions import (
    ActionEvidence,
    ActionItem,
    RecruiterAnonymizer,
    deduplicate_actions,
    make_action,
    sort_action_plan,
)
from ..core.confidence import ConfidenceAssessment, ConfidenceReason
from ..schemas import (
    EngineConfig,
    HiringFreezeParams,
    RecruiterDepartsParams,
    ScenarioInput,
    SpinUpTeamParams,
)
from ..schemas.scenario import SCENARIO_NAMES, ScenarioParams
from . import hiring_freeze, recruiter_departs, spin_up_team
from .context import ScenarioContext
from .outputs import (
    BlockedReason,
    Bottleneck,
    Citation,
    DeepLink,
    MissingDataItem,
    ScenarioDeltas,
    ScenarioOutput,
)

logger = structlog.get_logger(__name__)

_FIX_INSTRUCTIONS: dict[str, str] = {
    "remaining_recruiters": "Add recruiters to the user list or choose a larger team",
    "open_reqs": "Import the full set of open requisitions",
    "recruiter_id_coverage": "Populate recruiter_id on open requisitions",
    "events": "Import stage-change history for the pipeline",
    "recruiter": "Check the recruiter identifier against the imported users",
    "recruiter_reqs": "Pick a recruiter who owns open requisitions",
    "freeze_scope": "Widen the freeze scope or fix the filter value",
    "active_pipeline": "Import active candidates for the requisitions in scope",
    "decay_data": "Import offer and hire history to anchor the decay curve",
    "historical_hires": "Import closed requisitions with open and close dates for this function",
    "velocity_data": "Import stage-change events so funnel conversion can be measured",
    "assigned_recruiters": "Assign recruiters who exist in the imported users",
}


def parse_params(scenario_input: ScenarioInput) -> ScenarioParams:
    """Validate the payload for the requested variant; unknown ids fail fast."""
    scenario_id = scenario_input.scenario_id
    if scenario_id == "RECRUITER_DEPARTS":
        return RecruiterDepartsParams.model_validate(scenario_input.params)
    if scenario_id == "HIRING_FREEZE":
        return HiringFreezeParams.model_validate(scenario_input.params)
    if scenario_id == "SPIN_UP_TEAM":
        return SpinUpTeamParams.model_validate(scenario_input.params)
    raise ValueError(f"Unsupported scenario: {scenario_id!r}")


def global_gates(
    params: ScenarioParams,
    context: ScenarioContext,
    config: EngineConfig,
) -> list[MissingDataItem]:
    """Shared sufficiency checks in fixed order; the first failure wins."""
    settings = config.scenarios
    required_for = "All scenarios"

    if isinstance(params, RecruiterDepartsParams):
        remaining = recruiter_departs.remaining_recruiters(params, context)
    else:
        remaining = len(context.recruiter_ids)
    if remaining < settings.min_recruiters:
        return [
            MissingDataItem(
                field="remaining_recruiters",
                description=(
                    f"{remaining} recruiter(s) would remain; at least {settings.min_recruiters} are required"
                ),
                required_for=required_for,
            )
        ]

    quality = context.utilization.data_quality
    if quality.total_open_reqs < settings.min_open_reqs:
        return [
            MissingDataItem(
                field="open_reqs",
                description=(
                    f"{quality.total_open_reqs} open requisition(s); at least {settings.min_open_reqs} are required"
                ),
                required_for=required_for,
            )
        ]

    if quality.recruiter_id_coverage < settings.min_recruiter_id_coverage:
        return [
            MissingDataItem(
                field="recruiter_id_coverage",
                description=(
                    f"Only {quality.recruiter_id_coverage * 100:.0f}% of open requisitions have recruiter_id; "
                    f"at least {settings.min_recruiter_id_coverage * 100:.0f}% is required"
                ),
                required_for=required_for,
            )
        ]

    if not any(event.is_stage_change for event in context.dataset.events):
        return [
            MissingDataItem(
                field="events",
                description="No stage-change events were found",
                required_for=required_for,
            )
        ]
    return []


def scenario_gates(
    params: ScenarioParams,
    context: ScenarioContext,
    config: EngineConfig,
) -> list[MissingDataItem]:
    if isinstance(params, RecruiterDepartsParams):
        return recruiter_departs.gate(params, context, config)
    if isinstance(params, HiringFreezeParams):
        return hiring_freeze.gate(params, context, config)
    return spin_up_team.gate(params, context, config)


def run_scenario(
    scenario_input: ScenarioInput,
    context: ScenarioContext,
    config: EngineConfig,
) -> ScenarioOutput:
    """Gate, then evaluate one scenario against the shared context.

    Insufficient data yields a blocked output; only an unknown scenario id or
    an invalid parameter payload raises.
    """
    params = parse_params(scenario_input)
    scenario_id = scenario_input.scenario_id
    generated_at = context.as_of.isoformat()

    missing = global_gates(params, context, config) or scenario_gates(params, context, config)
    if missing:
        logger.info("scenario.blocked", scenario_id=scenario_id, fields=[item.field for item in missing])
        return blocked_output(scenario_id, generated_at, missing)

    anonymizer = RecruiterAnonymizer(context.recruiter_ids, enabled=config.privacy_mode == "anonymized")
    if isinstance(params, RecruiterDepartsParams):
        findings = recruiter_departs.evaluate(params, context, config, anonymizer=anonymizer)
    elif isinstance(params, HiringFreezeParams):
        findings = hiring_freeze.evaluate(params, context, config, anonymizer=anonymizer)
    else:
        findings = spin_up_team.evaluate(params, context, config, anonymizer=anonymizer)

    plan = sort_action_plan(
        deduplicate_actions([*findings.actions, *actions_from_bottlenecks(findings.bottlenecks, context)])
    )
    output = ScenarioOutput(
        scenario_id=scenario_id,
        scenario_name=SCENARIO_NAMES[scenario_id],
        generated_at=generated_at,
        feasibility=findings.feasibility,
        deltas=findings.deltas,
        bottlenecks=findings.bottlenecks,
        resource_impact=findings.resource_impact,
        action_plan=plan,
        confidence=findings.confidence,
        citations=dedupe_citations(findings.citations),
        deep_links=deep_links(params),
    )
    logger.info(
        "scenario.result",
        scenario_id=scenario_id,
        feasibility=output.feasibility,
        actions=len(output.action_plan),
        confidence=output.confidence.level,
    )
    return output


def blocked_output(scenario_id: str, generated_at: str, missing: list[MissingDataItem]) -> ScenarioOutput:
    fixes = [_FIX_INSTRUCTIONS[item.field] for item in missing if item.field in _FIX_INSTRUCTIONS]
    return ScenarioOutput(
        scenario_id=scenario_id,
        scenario_name=SCENARIO_NAMES[scenario_id],
        generated_at=generated_at,
        feasibility="NOT_ENOUGH_DATA",
        deltas=ScenarioDeltas(),
        bottlenecks=[],
        resource_impact=None,
        action_plan=[],
        confidence=ConfidenceAssessment(
            level="LOW",
            reasons=[ConfidenceReason("missing_data", item.description, "negative") for item in missing],
        ),
        citations=[],
        deep_links=[],
        blocked=BlockedReason(
            reason="Not enough data to evaluate this scenario",
            missing_data=missing,
            fix_instructions=fixes,
        ),
    )


def dedupe_citations(citations: Iterable[Citation]) -> list[Citation]:
    seen: dict[str, Citation] = {}
    for citation in citations:
        seen.setdefault(citation.key_path, citation)
    return list(seen.values())


def actions_from_bottlenecks(bottlenecks: Iterable[Bottleneck], context: ScenarioContext) -> list[ActionItem]:
    """One TA Ops follow-up per critical or high bottleneck."""
    actions: list[ActionItem] = []
    for bottleneck in bottlenecks:
        if bottleneck.severity == "MEDIUM":
            continue
        actions.append(
            make_action(
                owner_type="TA_OPS",
                owner_id="ta_ops",
                owner_name="TA Ops",
                action_type=f"MITIGATE_{bottleneck.constraint_type}",
                title=bottleneck.mitigation,
                priority="P0" if bottleneck.severity == "CRITICAL" else "P1",
                due_in_days=3 if bottleneck.severity == "CRITICAL" else 7,
                as_of=context.as_of,
                evidence=ActionEvidence(
                    kpi_key=f"bottleneck.{bottleneck.constraint_type.lower()}",
                    short_reason=bottleneck.description,
                ),
            )
        )
    return actions


def deep_links(params: ScenarioParams) -> list[DeepLink]:
    if isinstance(params, RecruiterDepartsParams):
        return [
            DeepLink(
                label="Recruiter workload",
                tab="capacity",
                params={"recruiter_id": params.recruiter_id},
                rationale="Review the departing recruiter's requisitions and candidates",
            ),
            DeepLink(
                label="Rebalancing suggestions",
                tab="capacity-rebalancer",
                params={},
                rationale="Check follow-up moves after the reassignment",
            ),
        ]
    if isinstance(params, HiringFreezeParams):
        links = {"scope": params.scope}
        if params.filter_value:
            links["filter"] = params.filter_value
        return [
            DeepLink(
                label="Forecast",
                tab="forecasting",
                params=links,
                rationale="Compare expected hires with and without the freeze",
            ),
            DeepLink(
                label="Pipeline velocity",
                tab="velocity",
                params={},
                rationale="See how time in process affects offer acceptance",
            ),
        ]
    links = {"function": params.role_profile.function}
    if params.hiring_manager_id:
        links["hiring_manager_id"] = params.hiring_manager_id
    return [
        DeepLink(
            label="Capacity",
            tab="capacity",
            params={},
            rationale="Check recruiter headroom before opening new requisitions",
        ),
        DeepLink(
            label="Hiring manager friction",
            tab="hm-friction",
            params=links,
            rationale="Review feedback latency for the hiring manager",
        ),
    ]

