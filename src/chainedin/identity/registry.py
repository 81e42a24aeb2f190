"""Identity registry — account creation, authentication and control transfer.

Maps email ↔ account id ↔ controlling principal for both account kinds.

Architecture:
- IdentityRegistry owns the employee and company tables and the shared
  email index. It has no dependency on the employment or skill layers.
- Validation happens before any write: a refused signup leaves the tables,
  the email index and the id counters exactly as they were.
- The registry never decides who is *allowed* to act on another record;
  that is the AuthorizationGuard's job. It only answers "who controls what".

Invariants:
- An email names at most one account across both kinds.
- Ids are positive, per-kind, and assigned in signup order.
- Control transfer is itself an authenticated action, never an override.
"""

from __future__ import annotations

from typing import Any, Optional, Union

import structlog

from chainedin.errors import (
    AuthenticationFailedError,
    DuplicateEmailError,
    InvalidInputError,
    UnknownCompanyError,
    UnknownReferenceError,
)
from chainedin.identity.principal import normalize_principal, try_normalize_principal
from chainedin.models.account import Account, AccountKind, Company, Employee
from chainedin.validation import is_record_id, require_text

logger = structlog.get_logger()


def coerce_kind(kind: Union[AccountKind, str]) -> AccountKind:
    """Accept an AccountKind or its string value."""
    try:
        return AccountKind(kind)
    except ValueError:
        raise InvalidInputError(f"Unknown account kind: {kind!r}") from None


class IdentityRegistry:
    """Employee and company accounts bound to wallet principals.

    Usage:
        identity = IdentityRegistry({})
        employee = identity.sign_up("e@c.com", "E", AccountKind.EMPLOYEE, caller)
        kind, account_id = identity.authenticate("e@c.com", caller)
    """

    def __init__(self, config: Optional[dict[str, Any]] = None) -> None:
        self._config = config or {}
        self._employees: dict[int, Employee] = {}
        self._companies: dict[int, Company] = {}
        self._emails: dict[str, tuple[AccountKind, int]] = {}

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def sign_up(
        self,
        email: str,
        name: str,
        kind: Union[AccountKind, str],
        caller: str,
    ) -> Account:
        """Create an account controlled by the calling principal.

        Args:
            email: Unique across employees and companies.
            name: Display name.
            kind: Which table to create the account in.
            caller: Principal that will control the new account.

        Returns:
            The new Employee or Company.

        Raises:
            InvalidInputError: Blank email/name, text that is not valid
                UTF-8, or unknown kind.
            InvalidPrincipalError: caller is not a usable address.
            DuplicateEmailError: Email already taken by either kind.
        """
        account_kind = coerce_kind(kind)
        clean_email = self._clean_email(email)
        require_text(name, "Account name", allow_blank=False)
        principal = normalize_principal(caller)

        if clean_email in self._emails:
            raise DuplicateEmailError(f"Email already registered: {clean_email!r}")

        account: Account
        if account_kind == AccountKind.EMPLOYEE:
            account = Employee(
                employee_id=len(self._employees) + 1,
                name=name.strip(),
                email=clean_email,
                principal=principal,
            )
            self._employees[account.employee_id] = account
        else:
            account = Company(
                company_id=len(self._companies) + 1,
                name=name.strip(),
                email=clean_email,
                principal=principal,
            )
            self._companies[account.company_id] = account

        self._emails[clean_email] = (account_kind, account.account_id)
        logger.info(
            "account_created",
            kind=account_kind.value,
            account_id=account.account_id,
            principal=principal,
        )
        return account

    def authenticate(self, email: str, caller: str) -> tuple[AccountKind, int]:
        """Resolve an email to (kind, id) if the caller controls it.

        Raises:
            AuthenticationFailedError: Unknown email or caller mismatch.
        """
        account = self._authenticated_account(email, caller)
        return account.kind, account.account_id

    def update_controlling_principal(
        self,
        kind: Union[AccountKind, str],
        email: str,
        new_principal: str,
        caller: str,
    ) -> Account:
        """Hand control of an account to a new principal.

        The caller must pass the same check as authenticate, and kind must
        match the account's kind. The previous principal loses access
        immediately.

        Raises:
            AuthenticationFailedError: Caller does not control the account.
            InvalidPrincipalError: new_principal is not a usable address.
        """
        account_kind = coerce_kind(kind)
        account = self._authenticated_account(email, caller)
        if account.kind != account_kind:
            raise AuthenticationFailedError(
                f"No {account_kind.value} account for {account.email!r}"
            )
        principal = normalize_principal(new_principal)

        previous = account.principal
        account.principal = principal
        logger.info(
            "principal_updated",
            kind=account_kind.value,
            account_id=account.account_id,
            previous=previous,
            principal=principal,
        )
        return account

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_employee(self, employee_id: Optional[int]) -> Optional[Employee]:
        if not is_record_id(employee_id):
            return None
        return self._employees.get(employee_id)

    def get_company(self, company_id: Optional[int]) -> Optional[Company]:
        if not is_record_id(company_id):
            return None
        return self._companies.get(company_id)

    def require_employee(self, employee_id: Optional[int]) -> Employee:
        employee = self.get_employee(employee_id)
        if employee is None:
            raise UnknownReferenceError(f"Employee not found: {employee_id}")
        return employee

    def require_company(self, company_id: Optional[int]) -> Company:
        company = self.get_company(company_id)
        if company is None:
            raise UnknownCompanyError(f"Company not found: {company_id}")
        return company

    def get_account(
        self, kind: Union[AccountKind, str], account_id: Optional[int],
    ) -> Optional[Account]:
        if coerce_kind(kind) == AccountKind.EMPLOYEE:
            return self.get_employee(account_id)
        return self.get_company(account_id)

    def find_by_email(self, email: str) -> Optional[Account]:
        """Look up an account by email without any control check."""
        if not isinstance(email, str):
            return None
        entry = self._emails.get(email.strip())
        if entry is None:
            return None
        kind, account_id = entry
        return self.get_account(kind, account_id)

    def companies_controlled_by(self, principal: str) -> list[Company]:
        """Companies whose current principal is principal, in id order."""
        canonical = try_normalize_principal(principal)
        if canonical is None:
            return []
        return [c for c in self._companies.values() if c.principal == canonical]

    def accounts_controlled_by(self, principal: str) -> list[Account]:
        """Every account (employees first) controlled by principal."""
        canonical = try_normalize_principal(principal)
        if canonical is None:
            return []
        accounts: list[Account] = [
            e for e in self._employees.values() if e.principal == canonical
        ]
        accounts.extend(
            c for c in self._companies.values() if c.principal == canonical
        )
        return accounts

    def employees(self) -> list[Employee]:
        return list(self._employees.values())

    def companies(self) -> list[Company]:
        return list(self._companies.values())

    def email_index(self) -> dict[str, tuple[AccountKind, int]]:
        """Copy of the email index (used by invariant checks)."""
        return dict(self._emails)

    @property
    def employee_count(self) -> int:
        return len(self._employees)

    @property
    def company_count(self) -> int:
        return len(self._companies)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _clean_email(email: str) -> str:
        return require_text(email, "Email", allow_blank=False).strip()

    def _authenticated_account(self, email: str, caller: str) -> Account:
        account = self.find_by_email(email)
        if account is None:
            raise AuthenticationFailedError(f"Unknown account: {email!r}")
        if try_normalize_principal(caller) != account.principal:
            raise AuthenticationFailedError(
                f"Caller does not control account: {account.email!r}"
            )
        return account
