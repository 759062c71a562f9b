from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class Attendance:
    """A student's response to one stored schedule row."""

    attendance_id: int
    schedule_id: int
    student_id: int
    status: AttendanceStatus
    comment: Optional[str] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class StatusCounts:
    """Read-model: number of responses per status for one schedule."""

    schedule_id: Optional[int]
    confirmed: int = 0
    tentative: int = 0
    declined: int = 0

    @property
    def total(self) -> int:
        return self.confirmed + self.tentative + self.declined
