from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import ApproverRole, RequestStatus
from .model import ODRequest


class ODRequestRepository(Protocol):
    def create(
        self,
        *,
        claimant_id: int,
        class_id: int,
        subject_id: int,
        teacher_id: int,
        admin_id: int,
        od_date: date,
        reason: str,
        created_at: datetime,
    ) -> ODRequest:
        raise NotImplementedError

    def get(self, request_id: int) -> Optional[ODRequest]:
        raise NotImplementedError

    def find_pending_for_claimant_on(self, *, claimant_id: int, od_date: date) -> Optional[ODRequest]:
        raise NotImplementedError

    def save_decision(self, request: ODRequest, *, expected_version: int) -> bool:
        """Persist flags/notes of ``request`` if the stored version still matches.

        Returns False when another writer got there first; the caller re-reads and retries.
        """

        raise NotImplementedError

    def mark_reconciled(self, *, request_id: int, reconciled_at: datetime) -> bool:
        raise NotImplementedError

    def list_unreconciled_approved(self, *, limit: int = 50) -> Sequence[ODRequest]:
        raise NotImplementedError

    def list_for_approver(
        self,
        *,
        role: ApproverRole,
        approver_id: int,
        status: Optional[RequestStatus] = None,
        limit: int = 200,
    ) -> Sequence[ODRequest]:
        raise NotImplementedError

    def list_for_claimant(self, *, claimant_id: int, limit: int = 200) -> Sequence[ODRequest]:
        raise NotImplementedError
