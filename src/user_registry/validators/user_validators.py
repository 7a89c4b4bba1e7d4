"""
Normalization and business-rule validation for user fields.

Normalizers are total and idempotent: `f(f(x)) == f(x)` for every string.
Validators raise `InvalidInputError` and never touch storage.
"""

import re

from user_registry.exceptions.base import InvalidInputError
from .config_validators import to_lowercase

# ASCII letters, whitespace, hyphens and apostrophes only
FULL_NAME_PATTERN = re.compile(r"[A-Za-z\s\-']+", re.ASCII)


def normalize_username(value: str) -> str:
    """Trim surrounding whitespace and lower-case."""
    return to_lowercase(value.strip())


def normalize_email(value: str) -> str:
    """Trim surrounding whitespace and lower-case."""
    return to_lowercase(value.strip())


def normalize_full_name(value: str) -> str:
    """Trim surrounding whitespace; case is preserved."""
    return value.strip()


def validate_full_name(value: str) -> str:
    """
    Check the full name against FULL_NAME_PATTERN.

    Args:
        value: an already normalized full name

    Returns:
        str: the value unchanged, so the call can be used inline.

    Raises:
        InvalidInputError: if the name contains digits, symbols or non-ASCII letters.
    """
    if not FULL_NAME_PATTERN.fullmatch(value):
        raise InvalidInputError(
            "Full name can only contain letters, spaces, hyphens, and apostrophes",
            fields=["full_name"],
        )
    return value
