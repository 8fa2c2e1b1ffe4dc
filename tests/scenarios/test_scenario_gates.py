from __future__ import annotations

import pytest

from hrcapacity.scenarios import build_context, global_gates, parse_params, run_scenario
from hrcapacity.schemas import Dataset, EngineConfig, ScenarioInput

STAGE_CHANGE = {
    "event_id": "E-1",
    "candidate_id": "C-1-0",
    "req_id": "R-1",
    "event_type": "STAGE_CHANGE",
    "from_stage": "APPLIED",
    "to_stage": "SCREEN",
    "event_at": "2025-02-01T10:00:00Z",
}


def build_dataset(
    owners: list[str | None],
    *,
    recruiter_users: tuple[str, ...] = (),
    with_events: bool = True,
) -> Dataset:
    """One open req per entry of ``owners``, each with two SCREEN candidates."""
    requisitions = []
    candidates = []
    for index, owner in enumerate(owners, start=1):
        req_id = f"R-{index}"
        requisitions.append({"req_id": req_id, "status": "Open", "recruiter_id": owner})
        candidates.extend(
            {"candidate_id": f"C-{index}-{slot}", "req_id": req_id, "current_stage": "SCREEN"} for slot in range(2)
        )
    return Dataset.model_validate(
        {
            "requisitions": requisitions,
            "candidates": candidates,
            "events": [STAGE_CHANGE] if with_events else [],
            "users": [{"user_id": user_id, "role": "Recruiter"} for user_id in recruiter_users],
            "date_range": {"start": "2025-01-01", "end": "2025-03-01"},
        }
    )


def run(dataset: Dataset, scenario_id: str, params: dict):
    config = EngineConfig()
    return run_scenario(
        ScenarioInput(scenario_id=scenario_id, params=params),
        build_context(dataset, config),
        config,
    )


def missing_fields(dataset: Dataset, scenario_id: str, params: dict) -> list[str]:
    config = EngineConfig()
    typed = parse_params(ScenarioInput(scenario_id=scenario_id, params=params))
    return [item.field for item in global_gates(typed, build_context(dataset, config), config)]


def test_departure_from_two_person_team_is_blocked():
    dataset = build_dataset(["rec_a", "rec_a", "rec_a", "rec_b", "rec_b", "rec_b"])
    output = run(dataset, "RECRUITER_DEPARTS", {"recruiter_id": "rec_a"})

    assert output.feasibility == "NOT_ENOUGH_DATA"
    assert output.blocked is not None
    assert [item.field for item in output.blocked.missing_data] == ["remaining_recruiters"]
    assert output.blocked.fix_instructions
    assert output.action_plan == []
    assert output.resource_impact is None
    assert output.confidence.level == "LOW"


def test_first_failing_global_gate_wins():
    # Single recruiter and too few reqs: the recruiter gate is checked first.
    assert missing_fields(build_dataset(["rec_a"] * 3), "HIRING_FREEZE", {"freeze_weeks": 2}) == [
        "remaining_recruiters"
    ]


def test_open_req_gate():
    dataset = build_dataset(["rec_a", "rec_b", "rec_c"])
    assert missing_fields(dataset, "HIRING_FREEZE", {"freeze_weeks": 2}) == ["open_reqs"]


def test_recruiter_coverage_gate():
    dataset = build_dataset(["rec_a", None, None, None, None, None], recruiter_users=("rec_b", "rec_c"))
    assert missing_fields(dataset, "HIRING_FREEZE", {"freeze_weeks": 2}) == ["recruiter_id_coverage"]


def test_stage_change_events_gate():
    dataset = build_dataset(["rec_a", "rec_a", "rec_b", "rec_b", "rec_c", "rec_c"], with_events=False)
    assert missing_fields(dataset, "HIRING_FREEZE", {"freeze_weeks": 2}) == ["events"]


def test_unknown_departing_recruiter_is_blocked():
    dataset = build_dataset(["rec_a", "rec_a", "rec_b", "rec_b", "rec_c", "rec_c"])
    output = run(dataset, "RECRUITER_DEPARTS", {"recruiter_id": "rec_z"})

    assert output.feasibility == "NOT_ENOUGH_DATA"
    assert output.blocked.missing_data[0].field == "recruiter"


def test_blocked_output_carries_request_identity():
    dataset = build_dataset(["rec_a", "rec_b", "rec_c"])
    output = run(dataset, "HIRING_FREEZE", {"freeze_weeks": 2})

    assert output.scenario_id == "HIRING_FREEZE"
    assert output.scenario_name == "Hiring freeze"
    assert output.generated_at.startswith("2025-03-01")


def test_unknown_scenario_id_raises():
    dataset = build_dataset(["rec_a", "rec_a", "rec_b", "rec_b", "rec_c", "rec_c"])
    with pytest.raises(ValueError):
        run(dataset, "MERGE_TEAMS", {})


def test_invalid_params_raise():
    with pytest.raises(ValueError):
        parse_params(ScenarioInput(scenario_id="HIRING_FREEZE", params={"freeze_weeks": 0}))
    with pytest.raises(ValueError):
        parse_params(ScenarioInput(scenario_id="RECRUITER_DEPARTS", params={}))
