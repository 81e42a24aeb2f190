"""Skill data models — declarations, certifications and endorsements.

A Skill is declared by the employee who owns it. Certifications carry
opaque provenance (url, issuer, validity labels) and are never
interpreted. Endorsements are a third party's attestation and may,
depending on the verification policy, flip Skill.verified.

Certifications and endorsements are append-only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class Skill:
    """A skill owned by one employee.

    verified only ever moves from False to True.
    """
    skill_id: int
    employee_id: int
    name: str
    verified: bool = False
    certification_ids: list[int] = field(default_factory=list)
    endorsement_ids: list[int] = field(default_factory=list)


@dataclass(frozen=True)
class Certification:
    certification_id: int
    skill_id: int
    url: str
    issued_on: str
    valid_till: str
    name: str
    issuer: str


@dataclass(frozen=True)
class Endorsement:
    """An attestation by endorser_id (an employee) toward a skill."""
    endorsement_id: int
    skill_id: int
    endorser_id: int
    endorsed_utc: datetime
