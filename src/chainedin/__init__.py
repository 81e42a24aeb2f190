"""ChainedIn — verified professional-record registry.

Employees and companies bind accounts to wallet principals; employment
history and skills become trusted facts through company approval and
peer endorsement.
"""

from chainedin.models.account import AccountKind
from chainedin.service import RegistryService, ServiceResult

__version__ = "0.1.0"

__all__ = ["AccountKind", "RegistryService", "ServiceResult", "__version__"]
