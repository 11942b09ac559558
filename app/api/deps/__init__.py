"""API dependencies - re-exports from submodules."""

from .internal import DbSession, verify_internal_secret

__all__ = [
    "DbSession",
    "verify_internal_secret",
]
