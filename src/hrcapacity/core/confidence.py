"""Shared confidence grading and hedge text.

Every component reduces its sample-size signals through :func:`assess_confidence`
and combines upstream grades with :func:`weakest_link`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Literal

ConfidenceLevel = Literal["INSUFFICIENT", "LOW", "MED", "HIGH"]
ReasonType = Literal["sample_size", "missing_data", "shrinkage", "data_quality"]
ReasonImpact = Literal["positive", "neutral", "negative"]

HIGH_MULTIPLIER = 2.0
MED_MULTIPLIER = 1.5

_ORDER: dict[str, int] = {"INSUFFICIENT": 0, "LOW": 1, "MED": 2, "HIGH": 3}

_HEDGES: dict[str, str] = {
    "HIGH": "Based on observed patterns",
    "MED": "Based on similar cohorts",
    "LOW": "Estimated (limited data)",
    "INSUFFICIENT": "Estimated (limited data)",
}


@dataclass(slots=True, frozen=True)
class SampleSize:
    """Named sample count checked against its own minimum."""

    metric_key: str
    n: int
    threshold: int

    @property
    def sufficient(self) -> bool:
        return self.n >= self.threshold


@dataclass(slots=True, frozen=True)
class ConfidenceReason:
    type: ReasonType
    message: str
    impact: ReasonImpact


@dataclass(slots=True)
class ConfidenceAssessment:
    level: ConfidenceLevel
    reasons: list[ConfidenceReason] = field(default_factory=list)
    sample_sizes: list[SampleSize] = field(default_factory=list)

    @property
    def hedge(self) -> str:
        return hedge_message(self.level)

    def capped(self, level: ConfidenceLevel, reason: ConfidenceReason | None = None) -> "ConfidenceAssessment":
        """Return a copy whose level never exceeds ``level``."""
        reasons = list(self.reasons)
        if reason is not None:
            reasons.append(reason)
        return ConfidenceAssessment(
            level=weakest_link([self.level, level]),
            reasons=reasons,
            sample_sizes=list(self.sample_sizes),
        )


def level_rank(level: str) -> int:
    return _ORDER[level]


def weakest_link(levels: Iterable[ConfidenceLevel]) -> ConfidenceLevel:
    """Lowest grade among ``levels``; LOW when nothing contributes."""
    collected = list(levels)
    if not collected:
        return "LOW"
    return min(collected, key=level_rank)


def hedge_message(level: str) -> str:
    return _HEDGES.get(level, _HEDGES["LOW"])


def assess_confidence(samples: Iterable[SampleSize]) -> ConfidenceAssessment:
    """Grade a set of sample sizes.

    Any sample below its threshold yields LOW. Otherwise every sample at twice
    its threshold yields HIGH, every sample at one and a half times yields MED,
    and anything in between stays LOW.
    """
    collected = list(samples)
    if not collected:
        return ConfidenceAssessment(
            level="LOW",
            reasons=[ConfidenceReason("missing_data", "No sample sizes available", "negative")],
        )

    reasons: list[ConfidenceReason] = []
    short = [sample for sample in collected if not sample.sufficient]
    for sample in short:
        reasons.append(
            ConfidenceReason(
                "sample_size",
                f"{sample.metric_key}: n={sample.n} is below the minimum of {sample.threshold}",
                "negative",
            )
        )

    if short:
        level: ConfidenceLevel = "LOW"
    elif all(sample.n >= sample.threshold * HIGH_MULTIPLIER for sample in collected):
        level = "HIGH"
        reasons.append(ConfidenceReason("sample_size", "All sample sizes are well above minimums", "positive"))
    elif all(sample.n >= sample.threshold * MED_MULTIPLIER for sample in collected):
        level = "MED"
        reasons.append(ConfidenceReason("sample_size", "Sample sizes are adequate", "neutral"))
    else:
        level = "LOW"
        reasons.append(ConfidenceReason("sample_size", "Sample sizes are near their minimums", "negative"))

    return ConfidenceAssessment(level=level, reasons=reasons, sample_sizes=collected)
