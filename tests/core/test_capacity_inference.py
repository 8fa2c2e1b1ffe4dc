from __future__ import annotations

import pytest

from hrcapacity.core.capacity import infer_capacity, infer_team_capacity, shrink_rate
from hrcapacity.schemas import Dataset, EngineConfig


def build_dataset(screen_events: int, *, stages: tuple[str, ...] = ("SCREEN",)) -> Dataset:
    events = []
    for stage in stages:
        for idx in range(screen_events):
            events.append(
                {
                    "event_id": f"E-{stage}-{idx}",
                    "candidate_id": f"C-{stage}-{idx}",
                    "req_id": "R-1",
                    "to_stage": stage,
                    "event_at": f"2025-01-{(idx % 28) + 1:02d}T10:00:00",
                }
            )
    return Dataset.model_validate(
        {
            "requisitions": [
                {"req_id": "R-1", "status": "Open", "recruiter_id": "rec_a"},
                {"req_id": "R-2", "status": "Open", "recruiter_id": "rec_b"},
            ],
            "events": events,
            "date_range": {"start": "2025-01-01", "end": "2025-02-26"},
        }
    )


def test_shrink_rate_blends_toward_prior():
    assert shrink_rate(2.5, 8.0, 20, 4.0) == pytest.approx((20 * 2.5 + 4 * 8.0) / 24)
    assert shrink_rate(5.0, 8.0, 0, 4.0) == pytest.approx(8.0)


def test_observed_stage_is_shrunk_and_profile_partially_inferred():
    config = EngineConfig()
    profile = infer_capacity(build_dataset(20), "rec_a", config)

    screen = profile.stages["SCREEN"]
    assert profile.window_weeks == 8
    assert screen.defaulted is False
    assert screen.observed_rate == pytest.approx(2.5)
    assert screen.throughput == pytest.approx((20 * 2.5 + 4 * 8.0) / 24)
    assert screen.confidence == "HIGH"
    assert profile.stages["ONSITE"].defaulted is True
    assert profile.confidence == "MED"
    assert profile.used_cohort_fallback is False


def test_fully_observed_profile_uses_weakest_stage():
    config = EngineConfig()
    profile = infer_capacity(
        build_dataset(20, stages=("SCREEN", "HM_SCREEN", "ONSITE", "OFFER")), "rec_a", config
    )

    assert all(not stage.defaulted for stage in profile.stages.values())
    assert profile.confidence == "HIGH"


def test_recruiter_without_history_uses_defaults_with_low_confidence():
    config = EngineConfig()
    profile = infer_capacity(build_dataset(20), "rec_b", config)

    assert profile.used_cohort_fallback is True
    assert profile.confidence == "LOW"
    assert profile.as_rates() == {"SCREEN": 8.0, "HM_SCREEN": 4.0, "ONSITE": 3.0, "OFFER": 1.5}


def test_few_transitions_fall_back_to_default():
    config = EngineConfig()
    profile = infer_capacity(build_dataset(3), "rec_a", config)

    assert profile.stages["SCREEN"].defaulted is True
    assert profile.stages["SCREEN"].throughput == pytest.approx(8.0)
    assert profile.confidence == "LOW"
    assert any(reason.type == "sample_size" for reason in profile.reasons)


def test_events_outside_window_are_ignored():
    dataset = build_dataset(20)
    narrowed = dataset.model_copy(
        update={"date_range": dataset.date_range.model_copy(update={"start": dataset.date_range.end})}
    )
    profile = infer_capacity(narrowed, "rec_a", EngineConfig())

    assert profile.used_cohort_fallback is True


def test_team_capacity_covers_every_recruiter():
    profiles = infer_team_capacity(build_dataset(20), EngineConfig())

    assert sorted(profiles) == ["rec_a", "rec_b"]


def test_custom_default_capacity_is_respected():
    config = EngineConfig.model_validate(
        {"capacity": {"default_capacity": {"SCREEN": 10, "HM_SCREEN": 5, "ONSITE": 4, "OFFER": 2}}}
    )
    profile = infer_capacity(build_dataset(0), "rec_a", config)

    assert profile.throughput("SCREEN") == pytest.approx(10.0)
