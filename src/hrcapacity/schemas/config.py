"""Pydantic configuration schema for engine tunables and CLI YAML input."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class LoadThresholds(_Section):
    """Lower bounds (exclusive) of each load band; must strictly decrease."""

    critical: float = 1.5
    overloaded: float = 1.1
    balanced: float = 0.9
    available: float = 0.4

    @model_validator(mode="after")
    def _strictly_decreasing(self) -> "LoadThresholds":
        bounds = [self.critical, self.overloaded, self.balanced, self.available]
        if any(upper <= lower for upper, lower in zip(bounds, bounds[1:])):
            raise ValueError("load thresholds must strictly decrease from critical to available")
        if self.available < 0:
            raise ValueError("load thresholds must be non-negative")
        return self


class CapacityConfig(_Section):
    default_capacity: dict[str, float] = Field(
        default_factory=lambda: {"SCREEN": 8.0, "HM_SCREEN": 4.0, "ONSITE": 3.0, "OFFER": 1.5}
    )
    min_transitions: int = 5
    min_weeks: int = 4
    shrinkage_weight: float = 4.0
    min_throughput: float = 0.1

    @field_validator("default_capacity")
    @classmethod
    def _positive(cls, value: dict[str, float]) -> dict[str, float]:
        if any(rate <= 0 for rate in value.values()):
            raise ValueError("default capacity rates must be positive")
        return value


class UtilizationConfig(_Section):
    stage_weights: dict[str, float] = Field(
        default_factory=lambda: {"SCREEN": 0.35, "HM_SCREEN": 0.25, "ONSITE": 0.25, "OFFER": 0.15}
    )
    load_thresholds: LoadThresholds = Field(default_factory=LoadThresholds)
    epsilon: float = 0.1
    min_recruiter_id_coverage: float = 0.5

    @field_validator("stage_weights")
    @classmethod
    def _weights_sum_to_one(cls, value: dict[str, float]) -> dict[str, float]:
        if any(weight < 0 for weight in value.values()):
            raise ValueError("stage weights must be non-negative")
        if abs(sum(value.values()) - 1.0) > 1e-6:
            raise ValueError("stage weights must sum to 1")
        return value


class QueueDelayConfig(_Section):
    """Delay curve: ``base_days * u + surge_days * max(0, u - 1) ** 2``."""

    base_days: float = 2.0
    surge_days: float = 14.0


class RebalancerConfig(_Section):
    transfer_cost_days: float = 2.0
    max_suggestions: int = Field(default=5, ge=0)


class FreezeConfig(_Section):
    default_accept_rate: float = 0.85
    decay_curve: list[tuple[int, float]] = Field(
        default_factory=lambda: [
            (0, 1.0),
            (14, 0.95),
            (28, 0.85),
            (42, 0.75),
            (56, 0.65),
            (70, 0.55),
            (84, 0.45),
        ]
    )
    default_days_in_process: int = 14
    stale_days: int = 56
    min_active_pipeline: int = 10
    active_candidates_threshold: int = 20
    hires_drop_impossible: float = -0.5
    hires_drop_at_risk: float = -0.1
    accept_rate_drop_at_risk: float = -0.2
    hire_probability: dict[str, float] = Field(
        default_factory=lambda: {
            "OFFER": 0.9,
            "FINAL": 0.5,
            "ONSITE": 0.25,
            "HM_SCREEN": 0.1,
            "SCREEN": 0.05,
            "APPLIED": 0.02,
        }
    )
    default_hire_probability: float = 0.01


class SpinUpConfig(_Section):
    function_match_threshold: float = 80.0
    default_funnel_rate: float = 0.5
    pipeline_concurrency: float = 0.5
    baseline_hm_feedback_days: float = 2.0
    hm_latency_penalty: float = 2.0
    capacity_gap_at_risk: float = 0.3
    ttf_impossible_multiplier: float = 1.5
    ttf_at_risk_multiplier: float = 1.2


class ScenarioConfig(_Section):
    min_recruiters: int = 2
    min_open_reqs: int = 5
    min_recruiter_id_coverage: float = 0.3
    min_hires_for_ttf: int = 3
    min_offers_for_decay: int = 3
    min_fit_observations: int = 3
    overload_ceiling: float = 1.1
    team_utilization_at_risk: float = 1.1
    team_utilization_impossible: float = 1.3
    unassignable_ceiling: float = 1.3
    fit_load_penalty: float = 0.5
    default_fit: float = 0.5
    freeze: FreezeConfig = Field(default_factory=FreezeConfig)
    spin_up: SpinUpConfig = Field(default_factory=SpinUpConfig)


class EngineConfig(_Section):
    """Every tunable constant; passed explicitly into each engine call."""

    capacity: CapacityConfig = Field(default_factory=CapacityConfig)
    utilization: UtilizationConfig = Field(default_factory=UtilizationConfig)
    queue_delay: QueueDelayConfig = Field(default_factory=QueueDelayConfig)
    rebalancer: RebalancerConfig = Field(default_factory=RebalancerConfig)
    scenarios: ScenarioConfig = Field(default_factory=ScenarioConfig)
    privacy_mode: Literal["full", "anonymized"] = "full"


class OutputConfig(BaseModel):
    indent: int = 2


class AppConfig(BaseModel):
    engine: EngineConfig = Field(default_factory=EngineConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    log_level: str | None = None

    def to_settings(self) -> dict[str, Any]:
        settings: dict[str, Any] = {"engine": self.engine.model_dump()}
        settings["output"] = self.output.model_dump()
        if self.log_level:
            settings["log_level"] = self.log_level
        return settings


def load_config(raw: Any) -> AppConfig:
    if not isinstance(raw, dict):
        raise ValidationError.from_exception_data(
            "AppConfig",
            [{"type": "dict_type", "loc": ("config",), "input": raw}],
        )
    return AppConfig.model_validate(raw)
