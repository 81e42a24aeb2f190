"""Identity subsystem — accounts, emails and controlling principals."""

from chainedin.identity.principal import normalize_principal, try_normalize_principal
from chainedin.identity.registry import IdentityRegistry

__all__ = [
    "IdentityRegistry",
    "normalize_principal",
    "try_normalize_principal",
]
