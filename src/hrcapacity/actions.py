"""Action plan items, stable identifiers and recruiter anonymization."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Iterable, Literal, Sequence

import pendulum

OwnerType = Literal["TA_OPS", "HIRING_MANAGER", "RECRUITER"]
Priority = Literal["P0", "P1", "P2"]

_PRIORITY_RANK: dict[str, int] = {"P0": 0, "P1": 1, "P2": 2}


def stable_hash(payload: str) -> str:
    """First 16 hex characters of the SHA-256 digest of ``payload``."""
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:16]


def action_key(owner_type: str, owner_id: str, req_id: str | None, action_type: str) -> str:
    return "|".join([owner_type, owner_id, req_id or "", action_type])


def action_id(owner_type: str, owner_id: str, req_id: str | None, action_type: str) -> str:
    return stable_hash(action_key(owner_type, owner_id, req_id, action_type))


@dataclass(slots=True)
class ActionEvidence:
    kpi_key: str
    short_reason: str
    explain_provider_key: str | None = None


@dataclass(slots=True)
class ActionItem:
    action_id: str
    owner_type: OwnerType
    owner_id: str
    owner_name: str
    req_id: str | None
    req_title: str | None
    action_type: str
    title: str
    priority: Priority
    due_in_days: int
    due_date: str
    evidence: ActionEvidence
    recommended_steps: list[str] = field(default_factory=list)
    status: str = "OPEN"

    @property
    def key(self) -> str:
        return action_key(self.owner_type, self.owner_id, self.req_id, self.action_type)


def make_action(
    *,
    owner_type: OwnerType,
    owner_id: str,
    owner_name: str,
    action_type: str,
    title: str,
    priority: Priority,
    due_in_days: int,
    as_of: pendulum.DateTime,
    evidence: ActionEvidence,
    req_id: str | None = None,
    req_title: str | None = None,
    recommended_steps: Sequence[str] = (),
) -> ActionItem:
    return ActionItem(
        action_id=action_id(owner_type, owner_id, req_id, action_type),
        owner_type=owner_type,
        owner_id=owner_id,
        owner_name=owner_name,
        req_id=req_id,
        req_title=req_title,
        action_type=action_type,
        title=title,
        priority=priority,
        due_in_days=due_in_days,
        due_date=as_of.add(days=due_in_days).to_date_string(),
        evidence=evidence,
        recommended_steps=list(recommended_steps),
    )


def priority_rank(priority: str) -> int:
    return _PRIORITY_RANK[priority]


def deduplicate_actions(items: Iterable[ActionItem]) -> list[ActionItem]:
    """Keep the highest-priority item per logical key, in first-seen order."""
    kept: dict[str, ActionItem] = {}
    for item in items:
        current = kept.get(item.key)
        if current is None or priority_rank(item.priority) < priority_rank(current.priority):
            kept[item.key] = item
    return list(kept.values())


def sort_action_plan(items: Iterable[ActionItem]) -> list[ActionItem]:
    return sorted(items, key=lambda item: (priority_rank(item.priority), item.due_in_days, item.action_id))


class RecruiterAnonymizer:
    """Stable recruiter labels for one run.

    The index map is fixed at construction. Recruiters outside it get a
    hash-derived label so repeated calls agree.
    """

    def __init__(self, recruiter_ids: Iterable[str], *, enabled: bool = True) -> None:
        self._enabled = enabled
        self._labels = {
            recruiter_id: f"Recruiter {index}"
            for index, recruiter_id in enumerate(sorted(set(recruiter_ids)), start=1)
        }

    @property
    def enabled(self) -> bool:
        return self._enabled

    def label(self, recruiter_id: str) -> str:
        known = self._labels.get(recruiter_id)
        if known is not None:
            return known
        return f"Recruiter {int(stable_hash(recruiter_id), 16) % 100 + 1}"

    def display(self, recruiter_id: str, name: str) -> str:
        return self.label(recruiter_id) if self._enabled else name
