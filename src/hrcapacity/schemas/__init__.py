"""Pydantic schema definitions for engine inputs and configuration."""

from __future__ import annotations

from .config import AppConfig, EngineConfig, load_config
from .records import (
    CANONICAL_STAGES,
    CAPACITY_STAGES,
    Candidate,
    Dataset,
    DateRange,
    Event,
    Requisition,
    User,
    normalize_stage,
)
from .scenario import (
    HiringFreezeParams,
    RecruiterDepartsParams,
    RoleProfile,
    ScenarioInput,
    SpinUpTeamParams,
)

__all__ = [
    "AppConfig",
    "CANONICAL_STAGES",
    "CAPACITY_STAGES",
    "Candidate",
    "Dataset",
    "DateRange",
    "EngineConfig",
    "Event",
    "HiringFreezeParams",
    "RecruiterDepartsParams",
    "Requisition",
    "RoleProfile",
    "ScenarioInput",
    "SpinUpTeamParams",
    "User",
    "load_config",
    "normalize_stage",
]
