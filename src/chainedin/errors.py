"""Registry error kinds.

Every rejected operation raises exactly one of these. The ``kind`` attribute
is the stable name callers switch on; the message is for humans.

All errors derive from ValueError so callers that only care about
"the request was refused" can catch that and move on.
"""

from __future__ import annotations


class RegistryError(ValueError):
    """Base class for every refused registry operation."""
    kind = "RegistryError"


class DuplicateEmailError(RegistryError):
    """Email already belongs to an employee or company account."""
    kind = "DuplicateEmail"


class AuthenticationFailedError(RegistryError):
    """Unknown email, or the caller does not control the account."""
    kind = "AuthenticationFailed"


class UnknownReferenceError(RegistryError):
    """An id does not name a live record."""
    kind = "UnknownReference"


class UnknownCompanyError(UnknownReferenceError):
    kind = "UnknownCompany"


class MustBeCompanyError(RegistryError):
    """Caller controls no company account."""
    kind = "MustBeCompany"


class EmployeeNotInCompanyError(RegistryError):
    """Employee is not affiliated with a company the caller controls."""
    kind = "EmployeeNotInCompany"


class UnauthorizedApproverError(RegistryError):
    """Caller does not control the company an experience names."""
    kind = "UnauthorizedApprover"


class InvalidPrincipalError(RegistryError):
    """Principal is not a usable wallet address."""
    kind = "InvalidPrincipal"


class InvalidInputError(RegistryError):
    kind = "InvalidInput"


class InvalidTransitionError(RegistryError):
    """Record is not in a state that allows the requested change."""
    kind = "InvalidTransition"


class InvalidEndorsementError(RegistryError):
    """Self-endorsement or a repeated endorsement."""
    kind = "InvalidEndorsement"
