"""Core data models for the ChainedIn registry."""

from chainedin.models.account import Account, AccountKind, Company, Employee
from chainedin.models.employment import Experience, MembershipStatus
from chainedin.models.skill import Certification, Endorsement, Skill

__all__ = [
    "Account",
    "AccountKind",
    "Company",
    "Employee",
    "Experience",
    "MembershipStatus",
    "Certification",
    "Endorsement",
    "Skill",
]
