"""Employment ledger — experience proposals, company approval, membership.

An employee proposes an experience against a company; the company (and
only the company) approves it, deciding whether the employment is current
or in the past. Each approval reclassifies the employee within that
company's membership.

Membership model:
- One MembershipStatus per (company, employee) pair, held in a per-company
  dict. Moving between statuses overwrites the single entry, so the
  unverified/current/previous views are disjoint by construction.
- Each move re-inserts the key, so dict order is the order in which
  employees entered their current status. The list queries filter on
  status and keep that order.

Transitions:
- add_experience         : any status  → UNVERIFIED
- approve_experience(T)  : UNVERIFIED  → CURRENT
- approve_experience(F)  : UNVERIFIED  → PREVIOUS
An experience is approved at most once.

Every precondition (references, then authorization, then state rules) is
checked before the first write.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog

from chainedin.authorization.guard import AuthorizationGuard
from chainedin.errors import InvalidTransitionError, UnknownReferenceError
from chainedin.identity.registry import IdentityRegistry
from chainedin.models.account import Company, Employee
from chainedin.models.employment import Experience, MembershipStatus
from chainedin.validation import is_record_id, require_text

logger = structlog.get_logger()


class EmploymentLedger:
    """Experience lifecycle and company membership classification.

    Usage:
        ledger = EmploymentLedger(identity, guard)
        exp = ledger.add_experience(1, "2020", "2022", "Tester", 1, employee_principal)
        ledger.approve_experience(1, exp.experience_id, True, company_principal)
        ledger.current_employees(1)  # [1]
    """

    def __init__(
        self,
        identity: IdentityRegistry,
        guard: AuthorizationGuard,
        config: Optional[dict[str, Any]] = None,
    ) -> None:
        self._identity = identity
        self._guard = guard
        self._config = config or {}
        self._experiences: dict[int, Experience] = {}
        # company_id -> {employee_id: status}
        self._membership: dict[int, dict[int, MembershipStatus]] = {}

    # ------------------------------------------------------------------
    # Affiliation
    # ------------------------------------------------------------------

    def set_company(
        self, employee_id: int, company_id: Optional[int], caller: str,
    ) -> Employee:
        """Affiliate an employee with a company.

        Membership is untouched; only approved experiences place an
        employee in a company's current or previous view.

        Raises:
            UnknownCompanyError: company_id names no company.
            UnknownReferenceError: employee_id names no employee.
            AuthenticationFailedError: Caller does not control the employee.
        """
        company = self._identity.require_company(company_id)
        employee = self._guard.require_owner(employee_id, caller)

        employee.company_id = company.company_id
        logger.info(
            "company_set",
            employee_id=employee.employee_id,
            company_id=company.company_id,
        )
        return employee

    def approve_manager(self, employee_id: int, caller: str) -> Employee:
        """Promote an employee to manager of their company.

        Raises:
            UnknownReferenceError: employee_id names no employee.
            MustBeCompanyError: Caller controls no company.
            EmployeeNotInCompanyError: Employee is not affiliated with the
                caller's company.
        """
        company = self._guard.require_company_of(employee_id, caller)
        employee = self._identity.require_employee(employee_id)

        employee.is_manager = True
        logger.info(
            "manager_approved",
            employee_id=employee.employee_id,
            company_id=company.company_id,
        )
        return employee

    # ------------------------------------------------------------------
    # Experience lifecycle
    # ------------------------------------------------------------------

    def add_experience(
        self,
        employee_id: int,
        start: str,
        end: str,
        role: str,
        company_id: Optional[int],
        caller: str,
    ) -> Experience:
        """Propose an employment record for company approval.

        The company is checked first: an unknown company is always reported
        as UnknownCompany.

        Membership follows the most recent proposal. The employee moves to
        UNVERIFIED at this company even if an earlier experience there is
        approved and still active; approving the new proposal then decides
        CURRENT or PREVIOUS, regardless of the earlier one.

        Raises:
            UnknownCompanyError: company_id names no company.
            UnknownReferenceError: employee_id names no employee.
            AuthenticationFailedError: Caller does not control the employee.
            InvalidInputError: A label is not a string or not valid UTF-8.
        """
        company = self._identity.require_company(company_id)
        employee = self._guard.require_owner(employee_id, caller)
        for label_name, label in (("start", start), ("end", end), ("role", role)):
            require_text(label, f"Experience {label_name}")

        experience = Experience(
            experience_id=len(self._experiences) + 1,
            employee_id=employee.employee_id,
            company_id=company.company_id,
            start=start,
            end=end,
            role=role,
        )
        self._experiences[experience.experience_id] = experience
        employee.experience_ids.append(experience.experience_id)
        self._set_status(company, employee.employee_id, MembershipStatus.UNVERIFIED)

        logger.info(
            "experience_added",
            experience_id=experience.experience_id,
            employee_id=employee.employee_id,
            company_id=company.company_id,
        )
        return experience

    def approve_experience(
        self,
        employee_id: int,
        experience_id: int,
        active: bool,
        caller: str,
    ) -> Experience:
        """Approve a proposed experience on behalf of its company.

        Args:
            employee_id: Owner of the experience.
            experience_id: The experience to approve.
            active: True if the employee still works there (→ CURRENT),
                False for past employment (→ PREVIOUS).
            caller: Must control the experience's company.

        Raises:
            UnknownReferenceError: Experience missing or not owned by
                employee_id.
            UnauthorizedApproverError: Caller does not control the company.
            InvalidTransitionError: Experience already approved.
        """
        experience = self._require_owned_experience(employee_id, experience_id)
        company = self._guard.require_company_controller(
            experience.company_id, caller,
        )
        if experience.approved:
            raise InvalidTransitionError(
                f"Experience {experience_id} is already approved"
            )

        experience.approved = True
        experience.active = bool(active)
        target = MembershipStatus.CURRENT if active else MembershipStatus.PREVIOUS
        self._set_status(company, experience.employee_id, target)

        logger.info(
            "experience_approved",
            experience_id=experience.experience_id,
            employee_id=experience.employee_id,
            company_id=company.company_id,
            status=target.value,
        )
        return experience

    def set_current_active_experience(
        self, employee_id: int, experience_id: int, caller: str,
    ) -> Employee:
        """Point an employee at one of their own experiences.

        No approval state is required.

        Raises:
            UnknownReferenceError: Employee or experience missing, or the
                experience belongs to someone else.
            AuthenticationFailedError: Caller does not control the employee.
        """
        self._identity.require_employee(employee_id)
        experience = self._require_owned_experience(employee_id, experience_id)
        employee = self._guard.require_owner(employee_id, caller)

        employee.current_experience_id = experience.experience_id
        logger.info(
            "active_experience_set",
            employee_id=employee.employee_id,
            experience_id=experience.experience_id,
        )
        return employee

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_experience(self, experience_id: Optional[int]) -> Optional[Experience]:
        if not is_record_id(experience_id):
            return None
        return self._experiences.get(experience_id)

    def employee_experiences(self, employee_id: int) -> list[int]:
        employee = self._identity.get_employee(employee_id)
        if employee is None:
            return []
        return list(employee.experience_ids)

    def membership_status(self, company_id: int, employee_id: int) -> MembershipStatus:
        if not (is_record_id(company_id) and is_record_id(employee_id)):
            return MembershipStatus.NONE
        return self._membership.get(company_id, {}).get(
            employee_id, MembershipStatus.NONE,
        )

    def unverified_employees(self, company_id: int) -> list[int]:
        return self._employees_with(company_id, MembershipStatus.UNVERIFIED)

    def current_employees(self, company_id: int) -> list[int]:
        return self._employees_with(company_id, MembershipStatus.CURRENT)

    def previous_employees(self, company_id: int) -> list[int]:
        return self._employees_with(company_id, MembershipStatus.PREVIOUS)

    def experiences(self) -> list[Experience]:
        return list(self._experiences.values())

    def membership(self) -> dict[int, dict[int, MembershipStatus]]:
        """Copy of the membership index (used by invariant checks)."""
        return {cid: dict(entries) for cid, entries in self._membership.items()}

    @property
    def experience_count(self) -> int:
        return len(self._experiences)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_owned_experience(
        self, employee_id: int, experience_id: int,
    ) -> Experience:
        experience = self.get_experience(experience_id)
        if experience is None:
            raise UnknownReferenceError(f"Experience not found: {experience_id}")
        if not is_record_id(employee_id) or experience.employee_id != employee_id:
            raise UnknownReferenceError(
                f"Experience {experience_id} does not belong to "
                f"employee {employee_id}"
            )
        return experience

    def _set_status(
        self, company: Company, employee_id: int, status: MembershipStatus,
    ) -> None:
        entries = self._membership.setdefault(company.company_id, {})
        entries.pop(employee_id, None)
        entries[employee_id] = status

    def _employees_with(self, company_id: int, status: MembershipStatus) -> list[int]:
        if not is_record_id(company_id):
            return []
        entries = self._membership.get(company_id, {})
        return [eid for eid, s in entries.items() if s == status]
