from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Role of the caller, supplied by the upstream identity provider."""

    COACH = "coach"
    STUDENT = "student"


class AttendanceStatus(str, Enum):
    """Response of a student to one schedule instance."""

    CONFIRMED = "confirmed"
    TENTATIVE = "tentative"
    DECLINED = "declined"

    @classmethod
    def parse(cls, value: str) -> "AttendanceStatus":
        """Accept the canonical value or the legacy symbols ○ / △ / ×."""
        v = (value or "").strip()
        legacy = {"○": cls.CONFIRMED, "△": cls.TENTATIVE, "×": cls.DECLINED}
        if v in legacy:
            return legacy[v]
        return cls(v.lower())


class PlayerType(str, Enum):
    TEAM = "team"
    SCHOOL = "school"
    INACTIVE = "inactive"
    UNSET = "unset"

    @property
    def is_billable(self) -> bool:
        return self in (PlayerType.TEAM, PlayerType.SCHOOL)


class RecurrenceRule(str, Enum):
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class DeleteScope(str, Enum):
    """How far a schedule edit/delete reaches inside a series."""

    SINGLE = "single"
    FORWARD = "forward"
    SERIES = "series"


class SiblingLinkStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
