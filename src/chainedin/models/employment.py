"""Employment data models — experiences and company membership status."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class MembershipStatus(str, enum.Enum):
    """Where an employee stands with a company.

    Exactly one status per (company, employee) pair, so the three
    membership views can never overlap.
    """
    NONE = "none"
    UNVERIFIED = "unverified"  # Proposed experience awaiting approval
    CURRENT = "current"
    PREVIOUS = "previous"


@dataclass
class Experience:
    """A claimed employment period.

    start and end are free-form labels ("2020", "Q3 2021"); no date
    arithmetic is performed on them. active carries no meaning until
    approved is True — read is_current instead of active.
    """
    experience_id: int
    employee_id: int
    company_id: int
    start: str
    end: str
    role: str
    approved: bool = False
    active: bool = False

    @property
    def is_current(self) -> bool:
        return self.approved and self.active
