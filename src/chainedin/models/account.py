"""Account data models — employees and companies.

Both account kinds share one email namespace and are bound to a
controlling principal (a wallet address). Ids are assigned per kind,
starting at 1; "no account" is represented as None, never as 0.

Immutable after signup: id, email, kind. Mutable: principal (ownership
transfer), and for employees the company affiliation, manager flag,
active experience pointer and the ordered experience/skill lists.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional, Union


class AccountKind(str, enum.Enum):
    """Which account table a signup targets."""
    EMPLOYEE = "employee"
    COMPANY = "company"


@dataclass
class Employee:
    """An individual professional.

    company_id is None until set_company is called. current_experience_id
    must reference an experience in experience_ids (enforced by the
    employment ledger).
    """
    employee_id: int
    name: str
    email: str
    principal: str
    company_id: Optional[int] = None
    is_manager: bool = False
    current_experience_id: Optional[int] = None
    experience_ids: list[int] = field(default_factory=list)
    skill_ids: list[int] = field(default_factory=list)

    @property
    def account_id(self) -> int:
        return self.employee_id

    @property
    def kind(self) -> AccountKind:
        return AccountKind.EMPLOYEE


@dataclass
class Company:
    """An organisation that approves employment history.

    STRUCTURAL NOTE: no membership lists live here. The employment ledger
    keeps one status per (company, employee) pair and derives the
    unverified/current/previous views from it.
    """
    company_id: int
    name: str
    email: str
    principal: str

    @property
    def account_id(self) -> int:
        return self.company_id

    @property
    def kind(self) -> AccountKind:
        return AccountKind.COMPANY


Account = Union[Employee, Company]
