"""Resource impact and the utilization side of the feasibility verdict."""

from __future__ import annotations

from typing import Iterable

from ..actions import RecruiterAnonymizer
from ..core.utilization import UtilizationResult
from ..schemas import EngineConfig
from .outputs import Bottleneck, Feasibility, RecruiterImpact, ResourceImpact


def resource_impact(
    before: UtilizationResult,
    after: UtilizationResult,
    config: EngineConfig,
    anonymizer: RecruiterAnonymizer,
    *,
    recruiter_ids: Iterable[str],
) -> ResourceImpact:
    """Compare current and projected utilization for ``recruiter_ids``.

    Status changes follow the peak stage load, the same figure that drives a
    row's load band.
    """
    ceiling = config.scenarios.overload_ceiling
    impacts: list[RecruiterImpact] = []
    for recruiter_id in sorted(recruiter_ids):
        current_row = before.row(recruiter_id)
        projected_row = after.row(recruiter_id)
        current_peak = current_row.peak_utilization if current_row is not None else 0.0
        projected_peak = projected_row.peak_utilization if projected_row is not None else 0.0
        if current_peak <= ceiling < projected_peak:
            change = "BECOMES_OVERLOADED"
        elif projected_peak <= ceiling < current_peak:
            change = "BECOMES_AVAILABLE"
        else:
            change = "NO_CHANGE"
        name = current_row.recruiter_name if current_row is not None else recruiter_id
        impacts.append(
            RecruiterImpact(
                recruiter_id=recruiter_id,
                recruiter_name_anon=anonymizer.display(recruiter_id, name),
                current_utilization=current_row.utilization if current_row is not None else 0.0,
                projected_utilization=projected_row.utilization if projected_row is not None else 0.0,
                current_peak_utilization=current_peak,
                projected_peak_utilization=projected_peak,
                status_change=change,
            )
        )

    team_before = _mean(item.current_utilization for item in impacts)
    team_after = _mean(item.projected_utilization for item in impacts)
    return ResourceImpact(
        team_utilization_before=team_before,
        team_utilization_after=team_after,
        team_utilization_delta=team_after - team_before,
        team_peak_before=_mean(item.current_peak_utilization for item in impacts),
        team_peak_after=_mean(item.projected_peak_utilization for item in impacts),
        recruiter_impacts=impacts,
    )


def utilization_feasibility(
    impact: ResourceImpact,
    config: EngineConfig,
) -> tuple[Feasibility, list[Bottleneck]]:
    """Verdict from projected stage loads alone.

    IMPOSSIBLE when the team's mean peak load exceeds the hard ceiling, when two
    or more recruiters newly enter the critical band, or when every recruiter
    breaches the overload ceiling. AT_RISK when only some of them breach it.
    """
    settings = config.scenarios
    critical = config.utilization.load_thresholds.critical
    impacts = impact.recruiter_impacts
    newly_critical = [
        item for item in impacts if item.projected_peak_utilization > critical >= item.current_peak_utilization
    ]
    breaching = [item for item in impacts if item.projected_peak_utilization > settings.overload_ceiling]
    bottlenecks: list[Bottleneck] = []

    verdict: Feasibility = "ON_TRACK"
    if (
        impact.team_peak_after > settings.team_utilization_impossible
        or len(newly_critical) >= 2
        or (impacts and len(breaching) == len(impacts))
    ):
        verdict = "IMPOSSIBLE"
    elif breaching or impact.team_peak_after > settings.team_utilization_at_risk:
        verdict = "AT_RISK"

    if breaching:
        bottlenecks.append(
            Bottleneck(
                constraint_type="CAPACITY_GAP",
                severity="CRITICAL" if verdict == "IMPOSSIBLE" else "HIGH",
                description=(
                    f"{len(breaching)} of {len(impacts)} recruiters projected above "
                    f"{settings.overload_ceiling * 100:.0f}% load at their busiest stage"
                ),
                evidence={
                    "team_peak_after": round(impact.team_peak_after, 4),
                    "overloaded_recruiters": [item.recruiter_name_anon for item in breaching],
                },
                mitigation="Rebalance requisitions or add recruiting capacity before committing",
            )
        )
    return verdict, bottlenecks


def _mean(values: Iterable[float]) -> float:
    collected = list(values)
    return sum(collected) / len(collected) if collected else 0.0
