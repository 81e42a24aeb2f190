"""ChainedIn service — unified facade for the professional-record registry.

This is the primary interface for programmatic access to the registry.
It orchestrates all subsystems:
- Identity (sign up, authenticate, transfer control)
- Employment (affiliation, manager approval, experience approval)
- Skills (declarations, certifications, endorsements, verification)
- Audit trail (one chained event per successful mutation)

Execution model: every public method runs under a single re-entrant lock,
so operations apply one at a time in a total order and queries never see
a half-applied mutation. Components check every precondition before their
first write, so a refused operation leaves no trace, audit event included.

All mutations produce a ServiceResult. Refusals carry the specific error
kind (error_kind) so callers can tell "not found" from "not authorized"
from "conflict".
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union

import structlog

from chainedin.authorization.guard import AuthorizationGuard
from chainedin.config import DEFAULT_CONFIG
from chainedin.employment.ledger import EmploymentLedger
from chainedin.errors import RegistryError
from chainedin.identity.principal import try_normalize_principal
from chainedin.identity.registry import IdentityRegistry
from chainedin.models.account import Account, AccountKind, Company, Employee
from chainedin.models.employment import Experience, MembershipStatus
from chainedin.models.skill import Certification, Endorsement, Skill
from chainedin.persistence.event_log import EventKind, EventLog, EventRecord
from chainedin.skills.registry import SkillRegistry
from chainedin.skills.verification import SkillVerificationPolicy

logger = structlog.get_logger()


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation."""
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)
    error_kind: Optional[str] = None


class RegistryService:
    """Unified registry facade.

    Usage:
        service = RegistryService(load_config())

        result = service.sign_up("e@c.com", "E", AccountKind.EMPLOYEE, alice)
        employee_id = result.data["account_id"]
        result = service.sign_up("hr@c.com", "Co", AccountKind.COMPANY, acme)
        company_id = result.data["account_id"]

        result = service.add_experience(
            employee_id, "2020", "2022", "Tester", company_id, alice,
        )
        service.approve_experience(
            employee_id, result.data["experience_id"], True, acme,
        )
        service.get_company_current_employees(company_id)  # [employee_id]

    Audit trail (optional):
        service = RegistryService(config, event_log=log)
        # The log is shared; event ids continue from its length.
    """

    def __init__(
        self,
        config: Optional[dict[str, Any]] = None,
        event_log: Optional[EventLog] = None,
    ) -> None:
        self._config = dict(DEFAULT_CONFIG)
        self._config.update(config or {})
        self._lock = threading.RLock()

        self._identity = IdentityRegistry(self._config)
        self._guard = AuthorizationGuard(self._identity, self._config)
        self._ledger = EmploymentLedger(self._identity, self._guard, self._config)
        self._skills = SkillRegistry(
            self._identity,
            self._guard,
            SkillVerificationPolicy(self._config),
            self._config,
        )

        self._event_log = event_log if event_log is not None else EventLog()

    @property
    def event_log(self) -> EventLog:
        return self._event_log

    @property
    def guard(self) -> AuthorizationGuard:
        return self._guard

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def sign_up(
        self,
        email: str,
        name: str,
        kind: Union[AccountKind, str],
        caller: str,
    ) -> ServiceResult:
        """Create an employee or company account controlled by caller."""
        def _apply() -> ServiceResult:
            account = self._identity.sign_up(email, name, kind, caller)
            data = {"kind": account.kind.value, "account_id": account.account_id}
            self._record(EventKind.ACCOUNT_CREATED, account.principal, {
                **data, "email": account.email,
            })
            return ServiceResult(success=True, data=data)

        return self._run("sign_up", _apply)

    def authenticate(self, email: str, caller: str) -> ServiceResult:
        """Resolve an email to (kind, account_id) if caller controls it."""
        def _apply() -> ServiceResult:
            kind, account_id = self._identity.authenticate(email, caller)
            return ServiceResult(
                success=True,
                data={"kind": kind.value, "account_id": account_id},
            )

        return self._run("authenticate", _apply)

    def update_controlling_principal(
        self,
        kind: Union[AccountKind, str],
        email: str,
        new_principal: str,
        caller: str,
    ) -> ServiceResult:
        """Transfer control of an account; only its current controller may."""
        def _apply() -> ServiceResult:
            account = self._identity.update_controlling_principal(
                kind, email, new_principal, caller,
            )
            data = {
                "kind": account.kind.value,
                "account_id": account.account_id,
                "principal": account.principal,
            }
            self._record(EventKind.PRINCIPAL_UPDATED, self._actor(caller), data)
            return ServiceResult(success=True, data=data)

        return self._run("update_controlling_principal", _apply)

    # ------------------------------------------------------------------
    # Employment
    # ------------------------------------------------------------------

    def set_company(
        self, employee_id: int, company_id: Optional[int], caller: str,
    ) -> ServiceResult:
        """Affiliate an employee with a company (no membership change)."""
        def _apply() -> ServiceResult:
            employee = self._ledger.set_company(employee_id, company_id, caller)
            data = {
                "employee_id": employee.employee_id,
                "company_id": employee.company_id,
            }
            self._record(EventKind.COMPANY_SET, self._actor(caller), data)
            return ServiceResult(success=True, data=data)

        return self._run("set_company", _apply)

    def approve_manager(self, employee_id: int, caller: str) -> ServiceResult:
        """Promote an employee to manager; caller must be their company."""
        def _apply() -> ServiceResult:
            employee = self._ledger.approve_manager(employee_id, caller)
            data = {
                "employee_id": employee.employee_id,
                "company_id": employee.company_id,
            }
            self._record(EventKind.MANAGER_APPROVED, self._actor(caller), data)
            return ServiceResult(success=True, data=data)

        return self._run("approve_manager", _apply)

    def add_experience(
        self,
        employee_id: int,
        start: str,
        end: str,
        role: str,
        company_id: Optional[int],
        caller: str,
    ) -> ServiceResult:
        """Propose an experience; the employee becomes unverified at the company."""
        def _apply() -> ServiceResult:
            experience = self._ledger.add_experience(
                employee_id, start, end, role, company_id, caller,
            )
            self._record(EventKind.EXPERIENCE_ADDED, self._actor(caller), {
                "experience_id": experience.experience_id,
                "employee_id": experience.employee_id,
                "company_id": experience.company_id,
                "start": experience.start,
                "end": experience.end,
                "role": experience.role,
            })
            return ServiceResult(
                success=True,
                data={"experience_id": experience.experience_id},
            )

        return self._run("add_experience", _apply)

    def approve_experience(
        self,
        employee_id: int,
        experience_id: int,
        active: bool,
        caller: str,
    ) -> ServiceResult:
        """Approve an experience as its company; reclassifies membership."""
        def _apply() -> ServiceResult:
            experience = self._ledger.approve_experience(
                employee_id, experience_id, active, caller,
            )
            status = self._ledger.membership_status(
                experience.company_id, experience.employee_id,
            )
            data = {
                "experience_id": experience.experience_id,
                "employee_id": experience.employee_id,
                "company_id": experience.company_id,
                "active": experience.active,
                "status": status.value,
            }
            self._record(EventKind.EXPERIENCE_APPROVED, self._actor(caller), data)
            return ServiceResult(success=True, data=data)

        return self._run("approve_experience", _apply)

    def set_current_active_experience(
        self, employee_id: int, experience_id: int, caller: str,
    ) -> ServiceResult:
        """Point an employee at one of their own experiences."""
        def _apply() -> ServiceResult:
            employee = self._ledger.set_current_active_experience(
                employee_id, experience_id, caller,
            )
            data = {
                "employee_id": employee.employee_id,
                "experience_id": employee.current_experience_id,
            }
            self._record(EventKind.ACTIVE_EXPERIENCE_SET, self._actor(caller), data)
            return ServiceResult(success=True, data=data)

        return self._run("set_current_active_experience", _apply)

    # ------------------------------------------------------------------
    # Skills
    # ------------------------------------------------------------------

    def add_skill(self, employee_id: int, name: str, caller: str) -> ServiceResult:
        """Declare a skill owned by an employee."""
        def _apply() -> ServiceResult:
            skill = self._skills.add_skill(employee_id, name, caller)
            self._record(EventKind.SKILL_ADDED, self._actor(caller), {
                "skill_id": skill.skill_id,
                "employee_id": skill.employee_id,
                "name": skill.name,
            })
            return ServiceResult(success=True, data={"skill_id": skill.skill_id})

        return self._run("add_skill", _apply)

    def add_certification(
        self,
        skill_id: int,
        url: str,
        issued_on: str,
        valid_till: str,
        name: str,
        issuer: str,
        caller: str,
    ) -> ServiceResult:
        """Attach a certification to a skill."""
        def _apply() -> ServiceResult:
            was_verified = self._skill_verified(skill_id)
            cert = self._skills.add_certification(
                skill_id, url, issued_on, valid_till, name, issuer, caller,
            )
            self._record(EventKind.CERTIFICATION_ADDED, self._actor(caller), {
                "certification_id": cert.certification_id,
                "skill_id": cert.skill_id,
                "url": cert.url,
                "issued_on": cert.issued_on,
                "valid_till": cert.valid_till,
                "name": cert.name,
                "issuer": cert.issuer,
            })
            verified = self._record_verification(skill_id, was_verified, caller)
            return ServiceResult(
                success=True,
                data={"certification_id": cert.certification_id, "verified": verified},
            )

        return self._run("add_certification", _apply)

    def add_endorsement(
        self, skill_id: int, endorser_id: int, caller: str,
    ) -> ServiceResult:
        """Endorse another employee's skill, acting as endorser_id."""
        def _apply() -> ServiceResult:
            was_verified = self._skill_verified(skill_id)
            endorsement = self._skills.add_endorsement(skill_id, endorser_id, caller)
            self._record(EventKind.SKILL_ENDORSED, self._actor(caller), {
                "endorsement_id": endorsement.endorsement_id,
                "skill_id": endorsement.skill_id,
                "endorser_id": endorsement.endorser_id,
            })
            verified = self._record_verification(skill_id, was_verified, caller)
            return ServiceResult(
                success=True,
                data={
                    "endorsement_id": endorsement.endorsement_id,
                    "verified": verified,
                },
            )

        return self._run("add_endorsement", _apply)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_company_unverified_employees(self, company_id: int) -> list[int]:
        with self._lock:
            return self._ledger.unverified_employees(company_id)

    def get_company_current_employees(self, company_id: int) -> list[int]:
        with self._lock:
            return self._ledger.current_employees(company_id)

    def get_company_previous_employees(self, company_id: int) -> list[int]:
        with self._lock:
            return self._ledger.previous_employees(company_id)

    def get_membership_status(
        self, company_id: int, employee_id: int,
    ) -> MembershipStatus:
        with self._lock:
            return self._ledger.membership_status(company_id, employee_id)

    def get_employee_experiences(self, employee_id: int) -> list[int]:
        with self._lock:
            return self._ledger.employee_experiences(employee_id)

    def get_employee_skills(self, employee_id: int) -> list[int]:
        with self._lock:
            return self._skills.employee_skills(employee_id)

    def get_skill_certifications(self, skill_id: int) -> list[int]:
        with self._lock:
            return self._skills.skill_certifications(skill_id)

    def get_skill_endorsements(self, skill_id: int) -> list[int]:
        with self._lock:
            return self._skills.skill_endorsements(skill_id)

    def get_employee(self, employee_id: Optional[int]) -> Optional[Employee]:
        with self._lock:
            return self._identity.get_employee(employee_id)

    def get_company(self, company_id: Optional[int]) -> Optional[Company]:
        with self._lock:
            return self._identity.get_company(company_id)

    def get_experience(self, experience_id: Optional[int]) -> Optional[Experience]:
        with self._lock:
            return self._ledger.get_experience(experience_id)

    def get_skill(self, skill_id: Optional[int]) -> Optional[Skill]:
        with self._lock:
            return self._skills.get_skill(skill_id)

    def get_certification(self, certification_id: Optional[int]) -> Optional[Certification]:
        with self._lock:
            return self._skills.get_certification(certification_id)

    def get_endorsement(self, endorsement_id: Optional[int]) -> Optional[Endorsement]:
        with self._lock:
            return self._skills.get_endorsement(endorsement_id)

    def accounts_controlled_by(self, principal: str) -> list[Account]:
        with self._lock:
            return self._identity.accounts_controlled_by(principal)

    # ------------------------------------------------------------------
    # Status and invariants
    # ------------------------------------------------------------------

    def status(self) -> dict[str, Any]:
        """Return a registry-wide summary."""
        with self._lock:
            return {
                "accounts": {
                    "employees": self._identity.employee_count,
                    "companies": self._identity.company_count,
                },
                "experiences": {
                    "total": self._ledger.experience_count,
                    "approved": sum(
                        1 for e in self._ledger.experiences() if e.approved
                    ),
                },
                "skills": {
                    "total": self._skills.skill_count,
                    "verified": sum(1 for s in self._skills.skills() if s.verified),
                    "certifications": self._skills.certification_count,
                    "endorsements": self._skills.endorsement_count,
                },
                "audit": {
                    "events": self._event_log.count,
                    "head_hash": self._event_log.head_hash,
                },
            }

    def check_invariants(self) -> list[str]:
        """Check the registry's structural invariants.

        Returns a list of violations. Empty list means consistent.
        """
        with self._lock:
            errors: list[str] = []
            employees = {e.employee_id: e for e in self._identity.employees()}
            companies = {c.company_id: c for c in self._identity.companies()}

            # Email uniqueness across both kinds
            seen: dict[str, str] = {}
            for account in [*employees.values(), *companies.values()]:
                label = f"{account.kind.value}:{account.account_id}"
                if account.email in seen:
                    errors.append(
                        f"Email {account.email} used by {seen[account.email]} and {label}"
                    )
                seen[account.email] = label
            index = self._identity.email_index()
            if len(index) != len(employees) + len(companies):
                errors.append(
                    f"Email index has {len(index)} entries for "
                    f"{len(employees) + len(companies)} accounts"
                )

            # Sentinel: id 0 is never live
            if 0 in employees or 0 in companies:
                errors.append("Id 0 is a live account")

            # Referential integrity
            for employee in employees.values():
                if employee.company_id is not None and employee.company_id not in companies:
                    errors.append(
                        f"Employee {employee.employee_id} references missing "
                        f"company {employee.company_id}"
                    )
                if employee.current_experience_id is not None:
                    exp = self._ledger.get_experience(employee.current_experience_id)
                    if exp is None or exp.employee_id != employee.employee_id:
                        errors.append(
                            f"Employee {employee.employee_id} active experience "
                            f"{employee.current_experience_id} is not theirs"
                        )
            for exp in self._ledger.experiences():
                if exp.employee_id not in employees:
                    errors.append(
                        f"Experience {exp.experience_id} references missing "
                        f"employee {exp.employee_id}"
                    )
                if exp.company_id not in companies:
                    errors.append(
                        f"Experience {exp.experience_id} references missing "
                        f"company {exp.company_id}"
                    )
            for company_id, entries in self._ledger.membership().items():
                if company_id not in companies:
                    errors.append(f"Membership for missing company {company_id}")
                for employee_id in entries:
                    if employee_id not in employees:
                        errors.append(
                            f"Company {company_id} membership references "
                            f"missing employee {employee_id}"
                        )
            for skill in self._skills.skills():
                if skill.employee_id not in employees:
                    errors.append(
                        f"Skill {skill.skill_id} references missing "
                        f"employee {skill.employee_id}"
                    )

            # Disjoint membership views
            for company_id in companies:
                views = [
                    set(self._ledger.unverified_employees(company_id)),
                    set(self._ledger.current_employees(company_id)),
                    set(self._ledger.previous_employees(company_id)),
                ]
                for i in range(len(views)):
                    for j in range(i + 1, len(views)):
                        overlap = views[i] & views[j]
                        if overlap:
                            errors.append(
                                f"Company {company_id} membership views overlap: "
                                f"{sorted(overlap)}"
                            )

            errors.extend(self._event_log.verify_chain())

            for error in errors:
                logger.warning("invariant_violated", detail=error)
            return errors

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _run(self, operation: str, apply: Callable[[], ServiceResult]) -> ServiceResult:
        """Serialise an operation and translate refusals into results."""
        with self._lock:
            try:
                return apply()
            except RegistryError as e:
                logger.info(
                    "operation_refused",
                    operation=operation,
                    error_kind=e.kind,
                    reason=str(e),
                )
                return ServiceResult(success=False, errors=[str(e)], error_kind=e.kind)

    def _next_event_id(self) -> str:
        """First unused event ID after the log's current length.

        Read from the log each time, so services sharing one log never
        collide.
        """
        number = self._event_log.count + 1
        while self._event_log.has_event(f"EVT-{number:08d}"):
            number += 1
        return f"EVT-{number:08d}"

    def _record(self, kind: EventKind, principal: str, payload: dict[str, Any]) -> EventRecord:
        """Append an audit event chained onto the current head.

        Called only after the component has applied its change. Hashing
        accepts any str, and the id and head are read under the log's lock,
        so append() cannot refuse the record.
        """
        with self._event_log.lock:
            event = EventRecord.create(
                event_id=self._next_event_id(),
                event_kind=kind,
                principal=principal,
                payload=payload,
                previous_hash=self._event_log.head_hash,
            )
            self._event_log.append(event)
        return event

    @staticmethod
    def _actor(caller: str) -> str:
        return try_normalize_principal(caller) or str(caller)

    def _skill_verified(self, skill_id: int) -> bool:
        skill = self._skills.get_skill(skill_id)
        return bool(skill and skill.verified)

    def _record_verification(self, skill_id: int, was_verified: bool, caller: str) -> bool:
        skill = self._skills.get_skill(skill_id)
        verified = bool(skill and skill.verified)
        if verified and not was_verified:
            self._record(EventKind.SKILL_VERIFIED, self._actor(caller), {
                "skill_id": skill_id,
            })
        return verified
