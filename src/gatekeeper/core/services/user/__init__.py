from .administration import UserAdministrationService
from .reconciliation import IdentityReconciliationService

__all__ = ["IdentityReconciliationService", "UserAdministrationService"]
