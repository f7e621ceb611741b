"""Authentication error taxonomy.

Each error carries a stable ``reason`` code. The code is what the login audit
log stores; ``detail`` is for internal logs. Only ``BadInput`` details are
shown to callers.
"""


class AuthenticationError(Exception):
    """Base class for every failure of an authentication attempt."""

    reason: str = "AuthenticationError"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.reason
        super().__init__(self.detail)


class BadInput(AuthenticationError):
    """Missing or malformed request fields. Rejected before verification."""

    reason = "BadInput"


class InvalidCredentials(AuthenticationError):
    """The directory rejected the username/password pair."""

    reason = "InvalidCredentials"


class TokenInvalid(AuthenticationError):
    """A bearer token failed signature, issuer, audience or expiry checks."""

    reason = "TokenInvalid"


class IdentitySourceUnavailable(AuthenticationError):
    """The external directory or token issuer could not be reached."""

    reason = "IdentitySourceUnavailable"


class IdentityIncomplete(AuthenticationError):
    """Claims could not be normalized into an identity with a username."""

    reason = "IdentityIncomplete"


class PersistenceError(AuthenticationError):
    """User or audit storage failed; the flow aborts before a token is issued."""

    reason = "PersistenceError"
