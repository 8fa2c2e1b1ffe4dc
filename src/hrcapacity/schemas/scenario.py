"""Scenario request models."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

ScenarioId = Literal["RECRUITER_DEPARTS", "HIRING_FREEZE", "SPIN_UP_TEAM"]

SCENARIO_NAMES: dict[str, str] = {
    "RECRUITER_DEPARTS": "Recruiter departs",
    "HIRING_FREEZE": "Hiring freeze",
    "SPIN_UP_TEAM": "Spin up team",
}


class _Params(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class RecruiterDepartsParams(_Params):
    recruiter_id: str
    reassignment_strategy: Literal["OPTIMIZE_FIT", "BALANCE_LOAD", "MANUAL"] = "BALANCE_LOAD"
    manual_assignments: dict[str, str] = Field(default_factory=dict)


class HiringFreezeParams(_Params):
    freeze_weeks: int = Field(ge=1, le=52)
    candidate_action: Literal["HOLD", "REJECT_SOFT", "WITHDRAW"] = "HOLD"
    scope: Literal["ALL", "FUNCTION", "LEVEL", "SPECIFIC_REQS"] = "ALL"
    filter_value: str | None = None
    req_ids: list[str] = Field(default_factory=list)


class RoleProfile(_Params):
    function: str
    level: str | None = None
    location_type: str | None = None


class SpinUpTeamParams(_Params):
    headcount: int = Field(ge=1, le=100)
    role_profile: RoleProfile
    hiring_manager_id: str | None = None
    assigned_recruiter_ids: list[str] = Field(default_factory=list)
    target_days: int = Field(default=60, ge=1)


ScenarioParams = RecruiterDepartsParams | HiringFreezeParams | SpinUpTeamParams


class ScenarioInput(BaseModel):
    """Scenario identifier plus its untyped parameter payload.

    The payload is validated against the variant selected by ``scenario_id``
    when the scenario runs.
    """

    scenario_id: str
    params: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid", frozen=True)
