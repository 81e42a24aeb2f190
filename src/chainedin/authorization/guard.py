"""Authorization guard — the checks every caller-restricted mutation runs first.

Predicates answer a yes/no question and never raise. The require_* forms
raise the specific error kind the caller should see and return the record
they resolved, so components do not look it up twice.

The guard holds no state of its own; it reads the identity registry at the
moment of the check.
"""

from __future__ import annotations

from typing import Any, Optional, Union

from chainedin.errors import (
    AuthenticationFailedError,
    EmployeeNotInCompanyError,
    MustBeCompanyError,
    UnauthorizedApproverError,
)
from chainedin.identity.principal import try_normalize_principal
from chainedin.identity.registry import IdentityRegistry
from chainedin.models.account import AccountKind, Company, Employee


class AuthorizationGuard:
    """Caller-vs-account checks over an IdentityRegistry.

    Parameters (via *config* dict):
        enforce_owner_actions : bool — gate employee-owned actions on the
            employee's principal (default True)
    """

    def __init__(
        self,
        identity: IdentityRegistry,
        config: Optional[dict[str, Any]] = None,
    ) -> None:
        self._identity = identity
        self._enforce_owner = bool(
            (config or {}).get("enforce_owner_actions", True)
        )

    @property
    def enforces_owner_actions(self) -> bool:
        return self._enforce_owner

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------

    def caller_controls(
        self,
        kind: Union[AccountKind, str],
        account_id: Optional[int],
        caller: str,
    ) -> bool:
        """True if caller is the current principal of the account."""
        account = self._identity.get_account(kind, account_id)
        if account is None:
            return False
        return try_normalize_principal(caller) == account.principal

    def caller_is_company(self, caller: str) -> bool:
        """True if caller controls at least one company account."""
        return bool(self._identity.companies_controlled_by(caller))

    def caller_controls_company(
        self, company_id: Optional[int], caller: str,
    ) -> bool:
        return self.caller_controls(AccountKind.COMPANY, company_id, caller)

    def caller_is_company_of(self, employee_id: Optional[int], caller: str) -> bool:
        """True if caller controls the company the employee is affiliated with."""
        employee = self._identity.get_employee(employee_id)
        if employee is None or employee.company_id is None:
            return False
        return self.caller_controls_company(employee.company_id, caller)

    # ------------------------------------------------------------------
    # Raising checks
    # ------------------------------------------------------------------

    def require_owner(self, employee_id: Optional[int], caller: str) -> Employee:
        """Resolve an employee and, if enforced, require the caller to control it.

        Raises:
            UnknownReferenceError: Employee does not exist.
            AuthenticationFailedError: Caller does not control the employee.
        """
        employee = self._identity.require_employee(employee_id)
        if self._enforce_owner and not self.caller_controls(
            AccountKind.EMPLOYEE, employee.employee_id, caller,
        ):
            raise AuthenticationFailedError(
                f"Caller does not control employee {employee.employee_id}"
            )
        return employee

    def require_company_of(self, employee_id: Optional[int], caller: str) -> Company:
        """Require the caller to act as the employee's company.

        Raises:
            UnknownReferenceError: Employee does not exist.
            MustBeCompanyError: Caller controls no company at all.
            EmployeeNotInCompanyError: Employee's company (possibly none)
                is not one the caller controls.
        """
        employee = self._identity.require_employee(employee_id)
        if not self.caller_is_company(caller):
            raise MustBeCompanyError("Caller is not a company account")
        if not self.caller_is_company_of(employee.employee_id, caller):
            raise EmployeeNotInCompanyError(
                f"Employee {employee.employee_id} is not in the caller's company"
            )
        company = self._identity.get_company(employee.company_id)
        assert company is not None
        return company

    def require_company_controller(
        self, company_id: Optional[int], caller: str,
    ) -> Company:
        """Require the caller to control a specific company.

        Raises:
            UnknownCompanyError: Company does not exist.
            UnauthorizedApproverError: Caller does not control it.
        """
        company = self._identity.require_company(company_id)
        if not self.caller_controls_company(company.company_id, caller):
            raise UnauthorizedApproverError(
                f"Caller does not control company {company.company_id}"
            )
        return company
