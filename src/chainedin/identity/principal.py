"""Principal normalisation — wallet addresses as caller identities.

The hosting environment authenticates callers and hands the registry an
address. The registry never verifies signatures; it only needs a single
canonical spelling so that comparisons are exact. Canonical form is the
EIP-55 checksum address.
"""

from __future__ import annotations

from typing import Optional

from web3 import Web3

from chainedin.errors import InvalidPrincipalError

ZERO_ADDRESS = "0x" + "0" * 40


def try_normalize_principal(value: object) -> Optional[str]:
    """Return the checksum form of value, or None if it is not an address.

    All-lowercase and all-uppercase hex are accepted; mixed case must carry
    a valid checksum.
    """
    if not isinstance(value, str):
        return None
    candidate = value.strip()
    if not Web3.is_address(candidate):
        return None
    return Web3.to_checksum_address(candidate)


def normalize_principal(value: object) -> str:
    """Checksum-normalise a principal that is about to control an account.

    Raises:
        InvalidPrincipalError: If value is not an address or is the zero
            address (which no one can act as).
    """
    principal = try_normalize_principal(value)
    if principal is None:
        raise InvalidPrincipalError(f"Not a valid address: {value!r}")
    if principal == ZERO_ADDRESS:
        raise InvalidPrincipalError("The zero address cannot control an account")
    return principal
