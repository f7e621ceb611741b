"""Claims normalization.

Turns a directory lookup result or a decoded token claim set into the
canonical ``Identity``. Each identity field is resolved by an ordered list of
named extractors tried in sequence; the first non-empty value wins.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from loguru import logger
from pydantic import BaseModel, ValidationError, field_validator

from src.gatekeeper.core.errors import IdentityIncomplete
from src.gatekeeper.core.models.identity import Identity

Claims = Mapping[str, Any]
ClaimExtractor = Callable[[Claims], str | None]


# ---------------------------- extractors ---------------------------------
def claim(name: str) -> ClaimExtractor:
    """Extractor returning claim ``name`` when it is a non-blank string."""

    def extract(claims: Claims) -> str | None:
        value = claims.get(name)
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None

    extract.__name__ = f"claim_{name}"
    return extract


def first_present(*extractors: ClaimExtractor) -> ClaimExtractor:
    """Compose extractors so that the first one yielding a value wins."""

    def extract(claims: Claims) -> str | None:
        for extractor in extractors:
            value = extractor(claims)
            if value is not None:
                return value
        return None

    return extract


USERNAME = first_present(claim("preferred_username"), claim("name"), claim("sub"))
DISPLAY_NAME = first_present(
    claim("name"), claim("display_name"), claim("preferred_username")
)
EMAIL = first_present(claim("email"), claim("upn"))

FLAT_GROUP_CLAIMS: tuple[str, ...] = ("groups", "roles", "role")


# ---------------------------- nested roles ---------------------------------
class RoleContainer(BaseModel):
    """A nested claim document carrying a ``roles`` list.

    Keycloak's ``realm_access`` and each ``resource_access.<client>`` entry
    have this shape; some brokers serialize it as a JSON string.
    """

    roles: list[str] = []

    @field_validator("roles", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return [] if value is None else value


def parse_role_container(value: Any) -> list[str]:
    """Parse a nested role document, degrading to no roles when malformed."""
    if value is None:
        return []
    try:
        if isinstance(value, str | bytes):
            container = RoleContainer.model_validate_json(value)
        else:
            container = RoleContainer.model_validate(value)
    except ValidationError as exc:
        logger.debug("Ignoring malformed nested role claim: {}", exc.errors()[0]["msg"])
        return []
    return [r for r in container.roles if r]


def _flat_values(value: Any) -> list[str]:
    if isinstance(value, str):
        return value.split()
    if isinstance(value, list | tuple | set | frozenset):
        return [v for v in value if isinstance(v, str) and v]
    return []


def _resource_roles(value: Any) -> list[str]:
    if isinstance(value, str | bytes):
        try:
            value = json.loads(value)
        except ValueError:
            logger.debug("Ignoring malformed resource_access claim")
            return []
    if not isinstance(value, Mapping):
        return []
    roles: list[str] = []
    for client_access in value.values():
        roles.extend(parse_role_container(client_access))
    return roles


def flatten_role_claims(claims: Claims) -> list[str]:
    """Collect group and role names from flat and nested claims.

    Order is preserved and duplicates are dropped, first occurrence wins.
    """
    collected: list[str] = []
    for name in FLAT_GROUP_CLAIMS:
        collected.extend(_flat_values(claims.get(name)))
    collected.extend(parse_role_container(claims.get("realm_access")))
    collected.extend(_resource_roles(claims.get("resource_access")))
    return list(dict.fromkeys(collected))


# ---------------------------- normalizer ---------------------------------
def normalize_claims(claims: Claims) -> Identity:
    """Build an ``Identity`` from a claim set.

    Raises:
        IdentityIncomplete: if no username can be resolved.
    """
    username = USERNAME(claims)
    if username is None:
        raise IdentityIncomplete("no usable username claim")

    return Identity(
        external_username=username,
        display_name=DISPLAY_NAME(claims) or username,
        email=EMAIL(claims) or "",
        groups=frozenset(flatten_role_claims(claims)),
    )


def identity_claims(
    username: str,
    display_name: str,
    email: str = "",
    groups: Iterable[str] = (),
) -> dict[str, Any]:
    """Claim set describing a directory account, in the normalizer's vocabulary."""
    return {
        "preferred_username": username,
        "name": display_name,
        "email": email,
        "groups": list(groups),
    }
