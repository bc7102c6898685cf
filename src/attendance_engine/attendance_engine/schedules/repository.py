from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import RecurringBinding


class BindingRepository(Protocol):
    def list_auto_enabled_for_day(self, *, day_of_week: str, owner_id: Optional[int] = None) -> Sequence[RecurringBinding]:
        """Auto-session bindings scheduled on ``day_of_week`` ("Monday" ...), by start time."""

        raise NotImplementedError
