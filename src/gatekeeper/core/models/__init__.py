from .identity import (
    BearerCredentials,
    Identity,
    PasswordCredentials,
    Role,
    VerificationResult,
)

__all__ = [
    "BearerCredentials",
    "Identity",
    "PasswordCredentials",
    "Role",
    "VerificationResult",
]
