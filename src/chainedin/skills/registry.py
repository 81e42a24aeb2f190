"""Skill registry — skill declarations, certifications and endorsements.

Rules:
- A skill is declared by (and owned by) one employee.
- Certifications are attached by the skill's owner and stored verbatim.
- Endorsements are given by a *different* employee, acting through their
  own principal, at most once per skill.
- After each certification or endorsement the verification policy is
  consulted; a skill that reaches the policy threshold becomes verified.

All checks run before the first write.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

import structlog

from chainedin.authorization.guard import AuthorizationGuard
from chainedin.errors import (
    AuthenticationFailedError,
    InvalidEndorsementError,
    UnknownReferenceError,
)
from chainedin.identity.registry import IdentityRegistry
from chainedin.models.account import AccountKind
from chainedin.models.skill import Certification, Endorsement, Skill
from chainedin.skills.verification import SkillVerificationPolicy
from chainedin.validation import is_record_id, require_text

logger = structlog.get_logger()


class SkillRegistry:
    """Skills owned by employees, with attached provenance.

    Usage:
        skills = SkillRegistry(identity, guard, SkillVerificationPolicy(config))
        skill = skills.add_skill(1, "Python", owner_principal)
        skills.add_certification(skill.skill_id, url, "2021", "2024",
                                 "PCAP", "Python Institute", owner_principal)
        skills.add_endorsement(skill.skill_id, 2, colleague_principal)
    """

    def __init__(
        self,
        identity: IdentityRegistry,
        guard: AuthorizationGuard,
        policy: Optional[SkillVerificationPolicy] = None,
        config: Optional[dict[str, Any]] = None,
    ) -> None:
        self._identity = identity
        self._guard = guard
        self._config = config or {}
        self._policy = policy or SkillVerificationPolicy(self._config)
        self._skills: dict[int, Skill] = {}
        self._certifications: dict[int, Certification] = {}
        self._endorsements: dict[int, Endorsement] = {}

    @property
    def policy(self) -> SkillVerificationPolicy:
        return self._policy

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_skill(self, employee_id: int, name: str, caller: str) -> Skill:
        """Declare a skill for an employee.

        Raises:
            UnknownReferenceError: employee_id names no employee.
            AuthenticationFailedError: Caller does not control the employee.
            InvalidInputError: Blank skill name or name not valid UTF-8.
        """
        employee = self._guard.require_owner(employee_id, caller)
        require_text(name, "Skill name", allow_blank=False)

        skill = Skill(
            skill_id=len(self._skills) + 1,
            employee_id=employee.employee_id,
            name=name.strip(),
        )
        self._skills[skill.skill_id] = skill
        employee.skill_ids.append(skill.skill_id)

        logger.info(
            "skill_added",
            skill_id=skill.skill_id,
            employee_id=employee.employee_id,
        )
        return skill

    def add_certification(
        self,
        skill_id: int,
        url: str,
        issued_on: str,
        valid_till: str,
        name: str,
        issuer: str,
        caller: str,
    ) -> Certification:
        """Attach a certification to a skill.

        Fields are opaque and stored exactly as supplied.

        Raises:
            UnknownReferenceError: skill_id names no skill.
            AuthenticationFailedError: Caller does not control the skill's owner.
            InvalidInputError: A field is not a string or not valid UTF-8.
        """
        skill = self._require_skill(skill_id)
        self._guard.require_owner(skill.employee_id, caller)
        fields = {
            "url": url,
            "issued_on": issued_on,
            "valid_till": valid_till,
            "name": name,
            "issuer": issuer,
        }
        for field_name, value in fields.items():
            require_text(value, f"Certification {field_name}")

        certification = Certification(
            certification_id=len(self._certifications) + 1,
            skill_id=skill.skill_id,
            url=url,
            issued_on=issued_on,
            valid_till=valid_till,
            name=name,
            issuer=issuer,
        )
        self._certifications[certification.certification_id] = certification
        skill.certification_ids.append(certification.certification_id)
        self._apply_policy(skill)

        logger.info(
            "certification_added",
            certification_id=certification.certification_id,
            skill_id=skill.skill_id,
        )
        return certification

    def add_endorsement(
        self,
        skill_id: int,
        endorser_id: int,
        caller: str,
        now: Optional[datetime] = None,
    ) -> Endorsement:
        """Record a third party's endorsement of a skill.

        The caller acts as the endorser, not as the skill's owner.

        Raises:
            UnknownReferenceError: Skill or endorsing employee missing.
            AuthenticationFailedError: Caller does not control the endorser.
            InvalidEndorsementError: Self-endorsement, or the endorser has
                already endorsed this skill.
        """
        skill = self._require_skill(skill_id)
        endorser = self._identity.require_employee(endorser_id)
        if not self._guard.caller_controls(
            AccountKind.EMPLOYEE, endorser.employee_id, caller,
        ):
            raise AuthenticationFailedError(
                f"Caller does not control employee {endorser.employee_id}"
            )
        if endorser.employee_id == skill.employee_id:
            raise InvalidEndorsementError("Self-endorsement is not allowed")
        for existing in self.endorsements_for(skill.skill_id):
            if existing.endorser_id == endorser.employee_id:
                raise InvalidEndorsementError(
                    f"Employee {endorser.employee_id} has already endorsed "
                    f"skill {skill.skill_id}"
                )

        endorsement = Endorsement(
            endorsement_id=len(self._endorsements) + 1,
            skill_id=skill.skill_id,
            endorser_id=endorser.employee_id,
            endorsed_utc=now or datetime.now(timezone.utc),
        )
        self._endorsements[endorsement.endorsement_id] = endorsement
        skill.endorsement_ids.append(endorsement.endorsement_id)
        self._apply_policy(skill)

        logger.info(
            "skill_endorsed",
            endorsement_id=endorsement.endorsement_id,
            skill_id=skill.skill_id,
            endorser_id=endorser.employee_id,
            verified=skill.verified,
        )
        return endorsement

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_skill(self, skill_id: Optional[int]) -> Optional[Skill]:
        if not is_record_id(skill_id):
            return None
        return self._skills.get(skill_id)

    def get_certification(self, certification_id: Optional[int]) -> Optional[Certification]:
        if not is_record_id(certification_id):
            return None
        return self._certifications.get(certification_id)

    def get_endorsement(self, endorsement_id: Optional[int]) -> Optional[Endorsement]:
        if not is_record_id(endorsement_id):
            return None
        return self._endorsements.get(endorsement_id)

    def employee_skills(self, employee_id: int) -> list[int]:
        employee = self._identity.get_employee(employee_id)
        if employee is None:
            return []
        return list(employee.skill_ids)

    def skill_certifications(self, skill_id: int) -> list[int]:
        skill = self.get_skill(skill_id)
        return list(skill.certification_ids) if skill else []

    def skill_endorsements(self, skill_id: int) -> list[int]:
        skill = self.get_skill(skill_id)
        return list(skill.endorsement_ids) if skill else []

    def endorsements_for(self, skill_id: int) -> list[Endorsement]:
        return [
            self._endorsements[eid] for eid in self.skill_endorsements(skill_id)
        ]

    def skills(self) -> list[Skill]:
        return list(self._skills.values())

    @property
    def skill_count(self) -> int:
        return len(self._skills)

    @property
    def certification_count(self) -> int:
        return len(self._certifications)

    @property
    def endorsement_count(self) -> int:
        return len(self._endorsements)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_skill(self, skill_id: int) -> Skill:
        skill = self.get_skill(skill_id)
        if skill is None:
            raise UnknownReferenceError(f"Skill not found: {skill_id}")
        return skill

    def _apply_policy(self, skill: Skill) -> None:
        result = self._policy.evaluate(skill, self.endorsements_for(skill.skill_id))
        if result.newly_verified:
            skill.verified = True
            logger.info("skill_verified", skill_id=skill.skill_id, reason=result.reason)
