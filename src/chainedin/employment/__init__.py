"""Employment subsystem — experience approval and company membership."""

from chainedin.employment.ledger import EmploymentLedger

__all__ = ["EmploymentLedger"]
