"""Authorization — cross-cutting caller checks."""

from chainedin.authorization.guard import AuthorizationGuard

__all__ = ["AuthorizationGuard"]
