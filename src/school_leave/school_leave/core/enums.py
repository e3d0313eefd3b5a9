from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Roles known to the leave ledger."""

    ADMIN = "admin"
    STUDENT = "student"
    TEACHER = "teacher"

    @property
    def is_applicant(self) -> bool:
        return self in (Role.STUDENT, Role.TEACHER)


class LeaveType(str, Enum):
    CASUAL = "casual"
    MEDICAL = "medical"
    EMERGENCY = "emergency"
    PERSONAL = "personal"


class LeaveStatus(str, Enum):
    """Review state of a leave application."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ProcessOutcome(str, Enum):
    PROCESSED = "processed"
    SKIPPED_ALREADY_PROCESSED = "skipped_already_processed"
    SKIPPED_MISSING = "skipped_missing"
    SKIPPED_INSUFFICIENT = "skipped_insufficient"
    SKIPPED_NOT_APPROVED = "skipped_not_approved"
