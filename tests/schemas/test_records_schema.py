from __future__ import annotations

import pendulum
import pytest
from pydantic import ValidationError

from hrcapacity.schemas import Candidate, Dataset, DateRange, Event, Requisition, User
from hrcapacity.schemas.records import normalize_stage


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Phone Screen", "SCREEN"),
        ("hm", "HM_SCREEN"),
        ("on-site", "ONSITE"),
        ("Offer Extended", "OFFER"),
        ("SCREEN", "SCREEN"),
        ("  ", None),
    ],
)
def test_stage_labels_normalize(raw, expected):
    assert normalize_stage(raw) == expected


def test_candidate_disposition_defaults_and_validates():
    assert Candidate(candidate_id="C-1", req_id="R-1").is_active
    assert Candidate(candidate_id="C-1", req_id="R-1", disposition=" Hired ").disposition == "hired"
    with pytest.raises(ValidationError):
        Candidate(candidate_id="C-1", req_id="R-1", disposition="ghosted")


def test_requisition_open_status():
    assert Requisition(req_id="R-1", status="Open").is_open
    assert Requisition(req_id="R-1", status="Reopened").is_open
    assert not Requisition(req_id="R-1", status="Filled").is_open
    assert not Requisition(req_id="R-1", closed_at="2025-01-10").is_open
    assert Requisition(req_id="R-1").is_open


def test_blank_recruiter_id_is_unassigned():
    assert Requisition(req_id="R-1", recruiter_id="  ").recruiter_id is None


def test_extra_source_fields_are_kept():
    req = Requisition.model_validate({"req_id": "R-1", "cost_center": "CC-9"})
    assert req.model_dump()["cost_center"] == "CC-9"


def test_event_fields_normalize():
    event = Event(event_id="E-1", candidate_id="C-1", req_id="R-1", to_stage="Phone Screen", event_at="2025-02-01T10:00:00Z")

    assert event.event_at == pendulum.datetime(2025, 2, 1, 10)
    assert event.to_stage == "SCREEN"
    assert event.is_stage_change
    assert not Event(event_id="E-2", candidate_id="C-1", req_id="R-1", event_type="note", event_at="2025-02-01").is_stage_change


def test_date_range_rejects_reversed_bounds():
    with pytest.raises(ValidationError):
        DateRange(start="2025-03-01", end="2025-01-01")
    assert DateRange(start="2025-01-01", end="2025-01-03").weeks() == 1
    assert DateRange(start="2025-01-01", end="2025-02-26").weeks() == 8


def test_reference_date_comes_from_data():
    events = (
        Event(event_id="E-1", candidate_id="C-1", req_id="R-1", to_stage="SCREEN", event_at="2025-02-01"),
        Event(event_id="E-2", candidate_id="C-1", req_id="R-1", to_stage="ONSITE", event_at="2025-02-10"),
    )

    assert Dataset(events=events).as_of() == pendulum.datetime(2025, 2, 10)
    assert Dataset().as_of() == pendulum.datetime(1970, 1, 1)


def test_recruiter_ids_include_recruiter_users():
    dataset = Dataset(
        requisitions=(
            Requisition(req_id="R-1", status="Open", recruiter_id="rec_b"),
            Requisition(req_id="R-2", status="Closed", recruiter_id="rec_z"),
        ),
        users=(
            User(user_id="rec_a", name="Ada Archer", role="Senior Recruiter"),
            User(user_id="hm_1", name="Hana Moss", role="Hiring Manager"),
        ),
    )

    assert dataset.recruiter_ids() == ["rec_a", "rec_b"]
    assert dataset.display_name("rec_a") == "Ada Archer"
    assert dataset.display_name("rec_b") == "Rec B"


def test_with_assignments_returns_new_snapshot():
    dataset = Dataset(requisitions=(Requisition(req_id="R-1", status="Open", recruiter_id="rec_a"),))
    moved = dataset.with_assignments({"R-1": "rec_b"})

    assert moved.requisition("R-1").recruiter_id == "rec_b"
    assert dataset.requisition("R-1").recruiter_id == "rec_a"
    with pytest.raises(ValidationError):
        dataset.requisitions[0].recruiter_id = "rec_c"
