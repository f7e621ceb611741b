"""Unit tests for claims normalization."""

import json

import pytest

from src.gatekeeper.core.errors import IdentityIncomplete
from src.gatekeeper.core.services.claims import (
    claim,
    first_present,
    flatten_role_claims,
    normalize_claims,
    parse_role_container,
)


class TestExtractors:
    def test_first_present_returns_first_non_empty(self):
        extractor = first_present(claim("a"), claim("b"), claim("c"))
        assert extractor({"a": "", "b": "  ", "c": "third"}) == "third"
        assert extractor({"a": "first", "c": "third"}) == "first"
        assert extractor({}) is None

    def test_claim_ignores_non_strings(self):
        assert claim("a")({"a": 42}) is None
        assert claim("a")({"a": [" x "]}) is None
        assert claim("a")({"a": " x "}) == "x"


class TestNormalizeClaims:
    def test_username_precedence(self):
        identity = normalize_claims(
            {"preferred_username": "jdoe", "name": "John Doe", "sub": "abc"}
        )
        assert identity.external_username == "jdoe"
        assert identity.display_name == "John Doe"

    def test_username_falls_back_to_name_then_sub(self):
        assert normalize_claims({"name": "John Doe", "sub": "abc"}).external_username == (
            "John Doe"
        )
        assert normalize_claims({"sub": "abc"}).external_username == "abc"

    def test_display_name_falls_back_to_username(self):
        identity = normalize_claims({"sub": "abc"})
        assert identity.display_name == "abc"

    def test_display_name_claim(self):
        identity = normalize_claims({"preferred_username": "jdoe", "display_name": "J. Doe"})
        assert identity.display_name == "J. Doe"

    def test_email_falls_back_to_upn_then_empty(self):
        assert normalize_claims({"sub": "a", "upn": "a@corp.test"}).email == "a@corp.test"
        assert normalize_claims({"sub": "a"}).email == ""

    @pytest.mark.parametrize(
        "claims",
        [{}, {"email": "x@corp.test"}, {"preferred_username": "", "name": "  ", "sub": ""}],
    )
    def test_missing_username_is_incomplete(self, claims):
        with pytest.raises(IdentityIncomplete):
            normalize_claims(claims)

    def test_groups_are_collected_from_every_source(self):
        identity = normalize_claims(
            {
                "preferred_username": "jdoe",
                "groups": ["/Administrators", "Staff"],
                "roles": "reader writer",
                "realm_access": {"roles": ["offline_access"]},
                "resource_access": {"gatekeeper": {"roles": ["editor"]}},
            }
        )
        assert identity.groups == frozenset(
            {"/Administrators", "Staff", "reader", "writer", "offline_access", "editor"}
        )

    def test_group_paths_kept_verbatim(self):
        identity = normalize_claims({"sub": "a", "groups": ["/Corp/Editors"]})
        assert "/Corp/Editors" in identity.groups


class TestNestedRoles:
    def test_json_string_document(self):
        assert parse_role_container(json.dumps({"roles": ["admin"]})) == ["admin"]

    @pytest.mark.parametrize(
        "value",
        ["{not json", {"roles": "admin"}, {"roles": [1, 2]}, 17, ["admin"]],
    )
    def test_malformed_document_yields_no_roles(self, value):
        assert parse_role_container(value) == []

    def test_none_roles_is_empty(self):
        assert parse_role_container({"roles": None}) == []

    def test_malformed_resource_access_is_ignored(self):
        claims = {
            "sub": "a",
            "groups": ["Staff"],
            "resource_access": "{broken",
            "realm_access": "[]",
        }
        assert normalize_claims(claims).groups == frozenset({"Staff"})

    def test_flatten_preserves_order_and_dedups(self):
        claims = {
            "groups": ["b", "a"],
            "roles": ["a", "c"],
            "realm_access": {"roles": ["c", "d"]},
            "resource_access": {
                "app1": {"roles": ["e"]},
                "app2": json.dumps({"roles": ["b", "f"]}),
            },
        }
        assert flatten_role_claims(claims) == ["b", "a", "c", "d", "e", "f"]
