from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional


@dataclass(frozen=True)
class RecurringBinding:
    """A teacher's weekly slot for a class/subject (read-only input to the trigger)."""

    binding_id: int
    owner_id: int
    class_id: int
    subject_id: int
    day_of_week: str
    start_time: time
    end_time: Optional[time] = None
    auto_enabled: bool = False

    def starts_on(self, day: date) -> datetime:
        return datetime.combine(day, self.start_time)

    def to_dict(self) -> dict:
        return {
            "binding_id": self.binding_id,
            "teacher_id": self.owner_id,
            "class_id": self.class_id,
            "subject_id": self.subject_id,
            "day_of_week": self.day_of_week,
            "start_time": self.start_time.strftime("%H:%M"),
            "end_time": self.end_time.strftime("%H:%M") if self.end_time else None,
            "auto_session_enabled": self.auto_enabled,
        }
