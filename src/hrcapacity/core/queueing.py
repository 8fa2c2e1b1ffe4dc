"""Queue-delay curve applied to utilization ratios."""

from __future__ import annotations

from typing import Mapping

from ..schemas.config import EngineConfig, QueueDelayConfig


def queue_delay_days(utilization: float, config: QueueDelayConfig) -> float:
    """Expected waiting time in days at the given utilization.

    Zero at idle, linear below saturation and quadratic in the overload above
    100%, so the curve is monotonic and convex.
    """
    load = max(0.0, utilization)
    overload = max(0.0, load - 1.0)
    return config.base_days * load + config.surge_days * overload * overload


def recruiter_queue_delay(stage_utilization: Mapping[str, float], config: EngineConfig) -> float:
    """Effort-weighted delay across the capacity-limited stages."""
    weights = config.utilization.stage_weights
    return sum(
        weight * queue_delay_days(stage_utilization.get(stage, 0.0), config.queue_delay)
        for stage, weight in weights.items()
    )
