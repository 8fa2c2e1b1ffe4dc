"""Input records supplied by the import layer.

Records are read-only snapshots. Nothing in the engine mutates them; hypothetical
states are produced through :meth:`Dataset.with_assignments`, which returns a new
snapshot.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, Any, Iterable, Mapping

import pendulum
from pydantic import BaseModel, BeforeValidator, ConfigDict, ValidationInfo, field_validator

CANONICAL_STAGES: tuple[str, ...] = (
    "LEAD",
    "APPLIED",
    "SCREEN",
    "HM_SCREEN",
    "ONSITE",
    "FINAL",
    "OFFER",
    "HIRED",
    "REJECTED",
    "WITHDRAWN",
)

CAPACITY_STAGES: tuple[str, ...] = ("SCREEN", "HM_SCREEN", "ONSITE", "OFFER")

_STAGE_ALIASES: dict[str, str] = {
    "SOURCED": "LEAD",
    "NEW": "APPLIED",
    "APPLICATION": "APPLIED",
    "PHONE_SCREEN": "SCREEN",
    "RECRUITER_SCREEN": "SCREEN",
    "HIRING_MANAGER_SCREEN": "HM_SCREEN",
    "HM": "HM_SCREEN",
    "INTERVIEW": "ONSITE",
    "ON_SITE": "ONSITE",
    "FINAL_ROUND": "FINAL",
    "OFFER_EXTENDED": "OFFER",
    "HIRE": "HIRED",
    "REJECT": "REJECTED",
    "WITHDRAW": "WITHDRAWN",
}

_DISPOSITIONS: frozenset[str] = frozenset({"active", "hired", "rejected", "withdrawn"})
_CLOSED_STATUSES: frozenset[str] = frozenset({"closed", "filled", "cancelled", "canceled"})


def normalize_stage(value: str | None) -> str | None:
    """Map a source-system stage label onto a canonical stage name."""
    if value is None:
        return None
    key = value.strip().upper().replace("-", "_").replace(" ", "_")
    if not key:
        return None
    return _STAGE_ALIASES.get(key, key)


def parse_timestamp(value: Any) -> Any:
    """Coerce ISO strings, dates and naive datetimes to pendulum (UTC) instances."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return pendulum.instance(value)
    if isinstance(value, date):
        return pendulum.datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        return pendulum.parse(value)
    return value


Timestamp = Annotated[datetime, BeforeValidator(parse_timestamp)]
OptionalTimestamp = Annotated[datetime | None, BeforeValidator(parse_timestamp)]


class _Record(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)


class Requisition(_Record):
    """Open or closed position owned by at most one recruiter."""

    req_id: str
    title: str = ""
    status: str | None = None
    recruiter_id: str | None = None
    hiring_manager_id: str | None = None
    job_family: str | None = None
    level: str | None = None
    location_type: str | None = None
    opened_at: OptionalTimestamp = None
    closed_at: OptionalTimestamp = None

    @field_validator("recruiter_id", "hiring_manager_id", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def is_open(self) -> bool:
        if self.status:
            status = self.status.strip().lower()
            if status in _CLOSED_STATUSES:
                return False
            if status == "active" or "open" in status:
                return True
        return self.closed_at is None


class Candidate(_Record):
    """Applicant on exactly one requisition."""

    candidate_id: str
    req_id: str
    current_stage: str | None = None
    disposition: str = "active"
    applied_at: OptionalTimestamp = None
    current_stage_entered_at: OptionalTimestamp = None

    @field_validator("current_stage", mode="before")
    @classmethod
    def _canonical_stage(cls, value: Any) -> Any:
        return normalize_stage(value) if isinstance(value, str) else value

    @field_validator("disposition", mode="before")
    @classmethod
    def _normalize_disposition(cls, value: Any) -> str:
        if value is None or (isinstance(value, str) and not value.strip()):
            return "active"
        normalized = str(value).strip().lower()
        if normalized not in _DISPOSITIONS:
            raise ValueError(f"Unknown disposition: {value!r}")
        return normalized

    @property
    def is_active(self) -> bool:
        return self.disposition == "active"


class Event(_Record):
    """Pipeline event; only stage changes feed capacity inference."""

    event_id: str
    candidate_id: str
    req_id: str
    event_type: str = "STAGE_CHANGE"
    from_stage: str | None = None
    to_stage: str | None = None
    event_at: Timestamp
    actor_user_id: str | None = None

    @field_validator("from_stage", "to_stage", mode="before")
    @classmethod
    def _canonical_stage(cls, value: Any) -> Any:
        return normalize_stage(value) if isinstance(value, str) else value

    @field_validator("event_type", mode="before")
    @classmethod
    def _upper_type(cls, value: Any) -> Any:
        return value.strip().upper() if isinstance(value, str) else value

    @property
    def is_stage_change(self) -> bool:
        return self.event_type == "STAGE_CHANGE" and self.to_stage is not None


class User(_Record):
    """Recruiter, hiring manager or other operator."""

    user_id: str
    name: str = ""
    role: str | None = None

    @property
    def is_recruiter(self) -> bool:
        return bool(self.role) and "recruit" in self.role.lower()


class DateRange(BaseModel):
    """Trailing event window used for throughput inference."""

    start: Timestamp
    end: Timestamp

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("end")
    @classmethod
    def _ordered(cls, value: datetime, info: ValidationInfo) -> datetime:
        start = info.data.get("start")
        if start is not None and value < start:
            raise ValueError("date_range.end must not precede date_range.start")
        return value

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end

    def weeks(self) -> int:
        """Whole weeks covered by the window, never less than one."""
        interval = pendulum.instance(self.end) - pendulum.instance(self.start)
        return max(1, interval.in_weeks())


class Dataset(BaseModel):
    """Immutable snapshot bundle handed to every engine call."""

    requisitions: tuple[Requisition, ...] = ()
    candidates: tuple[Candidate, ...] = ()
    events: tuple[Event, ...] = ()
    users: tuple[User, ...] = ()
    date_range: DateRange | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    def requisition(self, req_id: str) -> Requisition | None:
        for req in self.requisitions:
            if req.req_id == req_id:
                return req
        return None

    def open_requisitions(self) -> list[Requisition]:
        return [req for req in self.requisitions if req.is_open]

    def active_candidates(self) -> list[Candidate]:
        return [candidate for candidate in self.candidates if candidate.is_active]

    def recruiter_ids(self) -> list[str]:
        """Recruiters owning open reqs plus users whose role names them recruiters."""
        ids = {req.recruiter_id for req in self.open_requisitions() if req.recruiter_id}
        ids.update(user.user_id for user in self.users if user.is_recruiter)
        return sorted(ids)

    def display_name(self, user_id: str) -> str:
        for user in self.users:
            if user.user_id == user_id and user.name:
                return user.name
        return user_id.replace("_", " ").replace("-", " ").title()

    def window(self) -> DateRange | None:
        """Explicit date range, or the span of the recorded events."""
        if self.date_range is not None:
            return self.date_range
        if not self.events:
            return None
        moments = [event.event_at for event in self.events]
        return DateRange(start=min(moments), end=max(moments))

    def as_of(self) -> pendulum.DateTime:
        """Reference instant for ages and due dates; never the wall clock."""
        window = self.window()
        if window is not None:
            return pendulum.instance(window.end)
        return pendulum.datetime(1970, 1, 1)

    def with_assignments(self, assignments: Mapping[str, str | None]) -> "Dataset":
        """Return a new snapshot with requisition owners replaced."""
        requisitions = tuple(
            req.model_copy(update={"recruiter_id": assignments[req.req_id]})
            if req.req_id in assignments
            else req
            for req in self.requisitions
        )
        return self.model_copy(update={"requisitions": requisitions})

    def without_user(self, user_id: str) -> "Dataset":
        users = tuple(user for user in self.users if user.user_id != user_id)
        return self.model_copy(update={"users": users})

    def extended(
        self,
        *,
        requisitions: Iterable[Requisition] = (),
        candidates: Iterable[Candidate] = (),
    ) -> "Dataset":
        return self.model_copy(
            update={
                "requisitions": self.requisitions + tuple(requisitions),
                "candidates": self.candidates + tuple(candidates),
            }
        )

