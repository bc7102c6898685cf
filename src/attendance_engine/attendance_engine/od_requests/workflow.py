"""Dual-approval state machine for on-duty requests.

The approval state is a tagged variant derived from the two flags and the optional
rejecting role, so "both approved but still pending" cannot be represented::

    PendingBoth --X approves--> PendingOther(waiting_on=Y) --Y approves--> Approved
    Pending*    --either rejects-------------------------------------> Rejected(by)

Approved and Rejected are terminal.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from ..core.enums import ApproverRole, Decision, RequestStatus


@dataclass(frozen=True)
class PendingBoth:
    pass


@dataclass(frozen=True)
class PendingOther:
    waiting_on: ApproverRole


@dataclass(frozen=True)
class Approved:
    pass


@dataclass(frozen=True)
class Rejected:
    by: ApproverRole


ApprovalState = Union[PendingBoth, PendingOther, Approved, Rejected]


def derive_state(*, teacher_approved: bool, admin_approved: bool, rejected_by: Optional[ApproverRole]) -> ApprovalState:
    if rejected_by is not None:
        return Rejected(by=rejected_by)
    if teacher_approved and admin_approved:
        return Approved()
    if teacher_approved:
        return PendingOther(waiting_on=ApproverRole.ADMIN)
    if admin_approved:
        return PendingOther(waiting_on=ApproverRole.TEACHER)
    return PendingBoth()


def is_terminal(state: ApprovalState) -> bool:
    return isinstance(state, (Approved, Rejected))


def status_of(state: ApprovalState) -> RequestStatus:
    if isinstance(state, Approved):
        return RequestStatus.APPROVED
    if isinstance(state, Rejected):
        return RequestStatus.REJECTED
    return RequestStatus.PENDING


def has_approved(state: ApprovalState, role: ApproverRole) -> bool:
    if isinstance(state, Approved):
        return True
    return isinstance(state, PendingOther) and state.waiting_on is not role


def transition(state: ApprovalState, role: ApproverRole, decision: Decision) -> ApprovalState:
    """Apply one approver's decision. Terminal states are returned unchanged."""

    if is_terminal(state):
        return state
    if decision is Decision.REJECT:
        return Rejected(by=role)
    if isinstance(state, PendingBoth):
        return PendingOther(waiting_on=role.other)
    if isinstance(state, PendingOther):
        if state.waiting_on is role:
            return Approved()
        # Same approver approving again: nothing changes.
        return state
    raise TypeError(f"Unknown approval state: {state!r}")


def describe(state: ApprovalState) -> str:
    if isinstance(state, PendingBoth):
        return "waiting for teacher and admin"
    if isinstance(state, PendingOther):
        return f"waiting for {state.waiting_on.value}"
    if isinstance(state, Rejected):
        return f"rejected by {state.by.value}"
    return "approved"
