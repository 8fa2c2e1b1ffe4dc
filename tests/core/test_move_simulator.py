from __future__ import annotations

import pytest

from hrcapacity.core.simulator import ReassignmentCandidate, simulate_move
from hrcapacity.core.utilization import compute_utilization
from hrcapacity.schemas import Dataset, EngineConfig


def build_dataset() -> Dataset:
    candidates = [
        {"candidate_id": f"C-1-{idx}", "req_id": "R-1", "current_stage": "SCREEN"} for idx in range(9)
    ]
    candidates += [
        {"candidate_id": f"C-2-{idx}", "req_id": "R-2", "current_stage": "ONSITE"} for idx in range(3)
    ]
    candidates += [{"candidate_id": "C-3-0", "req_id": "R-3", "current_stage": "SCREEN"}]
    return Dataset.model_validate(
        {
            "requisitions": [
                {"req_id": "R-1", "status": "Open", "recruiter_id": "rec_a"},
                {"req_id": "R-2", "status": "Open", "recruiter_id": "rec_a"},
                {"req_id": "R-3", "status": "Open", "recruiter_id": "rec_b"},
            ],
            "candidates": candidates,
        }
    )


def test_net_impact_equals_source_relief_minus_target_cost():
    impact = simulate_move(ReassignmentCandidate("R-2", "rec_a", "rec_b"), build_dataset(), EngineConfig())

    expected = (impact.before_source.queue_delay_days - impact.after_source.queue_delay_days) - (
        impact.after_target.queue_delay_days - impact.before_target.queue_delay_days
    )
    assert impact.net_impact.delay_reduction_days == expected


def test_after_state_matches_full_recomputation():
    dataset = build_dataset()
    config = EngineConfig()
    impact = simulate_move(ReassignmentCandidate("R-2", "rec_a", "rec_b"), dataset, config)

    recomputed = compute_utilization(dataset.with_assignments({"R-2": "rec_b"}), config)
    assert impact.after_target.utilization == pytest.approx(recomputed.row("rec_b").utilization)
    assert impact.after_source.utilization == pytest.approx(recomputed.row("rec_a").utilization)
    assert impact.after_target.demand_by_stage["ONSITE"] == 3
    assert impact.after_source.demand_by_stage["ONSITE"] == 0


def test_simulation_does_not_mutate_dataset():
    dataset = build_dataset()
    snapshot = dataset.model_dump()

    simulate_move(ReassignmentCandidate("R-1", "rec_a", "rec_b"), dataset, EngineConfig())

    assert dataset.model_dump() == snapshot
    assert dataset.requisition("R-1").recruiter_id == "rec_a"


def test_relief_percentages_reported():
    impact = simulate_move(ReassignmentCandidate("R-1", "rec_a", "rec_b"), build_dataset(), EngineConfig())

    assert impact.net_impact.source_relief_percent > 0
    assert impact.net_impact.target_impact_percent > 0
    assert impact.hedge


def test_moving_a_late_stage_req_relieves_the_source():
    impact = simulate_move(ReassignmentCandidate("R-2", "rec_a", "rec_b"), build_dataset(), EngineConfig())

    assert impact.after_source.utilization < impact.before_source.utilization
    assert impact.after_source.peak_utilization <= impact.before_source.peak_utilization
    assert impact.net_impact.source_relief_percent > 0


def test_self_move_is_rejected():
    with pytest.raises(ValueError):
        ReassignmentCandidate("R-1", "rec_a", "rec_a")


def test_move_of_foreign_req_is_rejected():
    with pytest.raises(ValueError):
        simulate_move(ReassignmentCandidate("R-3", "rec_a", "rec_b"), build_dataset(), EngineConfig())
