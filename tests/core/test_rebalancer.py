from __future__ import annotations

import pytest

from hrcapacity.core.rebalancer import generate_move_candidates, suggest_reassignments
from hrcapacity.core.utilization import compute_utilization
from hrcapacity.schemas import Dataset, EngineConfig


def build_dataset(reqs: dict[str, tuple[str | None, int]]) -> Dataset:
    """``reqs`` maps req_id to (recruiter_id, active SCREEN candidates)."""
    requisitions = []
    candidates = []
    for req_id, (recruiter_id, count) in reqs.items():
        requisitions.append({"req_id": req_id, "title": f"Role {req_id}", "status": "Open", "recruiter_id": recruiter_id})
        candidates.extend(
            {"candidate_id": f"{req_id}-{idx}", "req_id": req_id, "current_stage": "SCREEN"}
            for idx in range(count)
        )
    return Dataset.model_validate({"requisitions": requisitions, "candidates": candidates})


def imbalanced_team() -> Dataset:
    return build_dataset(
        {
            "R-4": ("rec_a", 5),
            "R-2": ("rec_a", 5),
            "R-3": ("rec_a", 5),
            "R-1": ("rec_a", 5),
            "R-9": ("rec_b", 1),
        }
    )


def test_imbalanced_team_is_not_balanced_and_targets_stay_below_critical():
    config = EngineConfig()
    result = suggest_reassignments(imbalanced_team(), config)

    assert result.is_balanced is False
    assert result.suggestions
    for suggestion in result.suggestions:
        assert suggestion.target_recruiter_id == "rec_b"
        assert suggestion.estimated_impact.target_status_after != "critical"
        assert suggestion.score > 0


def test_equal_scores_break_ties_on_req_id():
    result = suggest_reassignments(imbalanced_team(), EngineConfig())

    assert [s.req_id for s in result.suggestions] == ["R-1", "R-2", "R-3", "R-4"]
    assert [s.rank for s in result.suggestions] == [1, 2, 3, 4]


def test_suggestions_are_capped():
    result = suggest_reassignments(imbalanced_team(), EngineConfig(), max_suggestions=2)
    assert [s.rank for s in result.suggestions] == [1, 2]

    config = EngineConfig.model_validate({"rebalancer": {"max_suggestions": 1}})
    assert len(suggest_reassignments(imbalanced_team(), config).suggestions) == 1


def test_score_is_net_delay_minus_transfer_cost():
    result = suggest_reassignments(imbalanced_team(), EngineConfig())

    top = result.suggestions[0]
    assert top.score == pytest.approx(top.estimated_impact.delay_reduction_days - 2.0)
    assert top.req_demand == {"SCREEN": 5, "HM_SCREEN": 0, "ONSITE": 0, "OFFER": 0}
    assert "faster time-to-hire" in top.rationale


def test_move_that_makes_target_critical_is_discarded():
    dataset = build_dataset({"R-1": ("rec_a", 20), "R-2": ("rec_b", 1)})
    result = suggest_reassignments(dataset, EngineConfig())

    assert result.is_balanced is False
    assert result.suggestions == []
    assert result.moves_evaluated == 1


def test_balanced_team_returns_no_suggestions():
    dataset = build_dataset({"R-1": ("rec_a", 7), "R-2": ("rec_b", 6)})
    result = suggest_reassignments(dataset, EngineConfig())

    assert result.is_balanced is True
    assert result.suggestions == []
    assert "within capacity" in result.notes[0]


def test_low_recruiter_coverage_blocks_suggestions():
    dataset = build_dataset(
        {
            "R-1": ("rec_a", 20),
            "R-2": ("rec_b", 1),
            "R-3": (None, 1),
            "R-4": (None, 1),
            "R-5": (None, 1),
        }
    )
    result = suggest_reassignments(dataset, EngineConfig())

    assert result.suggestions == []
    assert result.confidence == "LOW"
    assert "recruiter_id" in result.hedge


def test_move_candidates_never_target_the_source():
    dataset = build_dataset(
        {"R-1": ("rec_a", 10), "R-2": ("rec_a", 4), "R-3": ("rec_b", 12), "R-4": ("rec_c", 1)}
    )
    utilization = compute_utilization(dataset, EngineConfig())
    moves = generate_move_candidates(dataset, utilization)

    assert moves
    assert all(move.source_recruiter_id != move.target_recruiter_id for move in moves)


def test_identical_runs_produce_identical_rankings():
    first = suggest_reassignments(imbalanced_team(), EngineConfig())
    second = suggest_reassignments(imbalanced_team(), EngineConfig())

    assert [(s.rank, s.req_id, s.target_recruiter_id, s.score) for s in first.suggestions] == [
        (s.rank, s.req_id, s.target_recruiter_id, s.score) for s in second.suggestions
    ]


def test_suggestion_confidence_is_weakest_link():
    result = suggest_reassignments(imbalanced_team(), EngineConfig())

    # No stage history, so every capacity profile is defaulted.
    assert all(s.confidence == "LOW" for s in result.suggestions)
    assert result.confidence == "LOW"
