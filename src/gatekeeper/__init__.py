"""Gatekeeper: directory-backed authentication, role derivation and access tokens."""

__version__ = "0.1.0"
