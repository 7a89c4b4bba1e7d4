"""
Repository layer initialization module.

This module exports the repository and the partial-update builder it uses.
The repository pattern keeps every SQL statement (and every raw driver error)
below this package; callers only ever see `UserRecord` values and taxonomy errors.

Usage:
    from user_registry.repositories import UserRepository
"""

from .query_builder import MUTABLE_FIELDS, PartialUpdate, build_partial_update
from .user_repository import UserRepository

__all__ = [
    "MUTABLE_FIELDS",
    "PartialUpdate",
    "build_partial_update",
    "UserRepository",
]
