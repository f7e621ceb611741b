from .login_audit import LoginAuditLog

__all__ = ["LoginAuditLog"]
