from .user_validators import (
    FULL_NAME_PATTERN,
    normalize_email,
    normalize_full_name,
    normalize_username,
    validate_full_name,
)

__all__ = [
    "FULL_NAME_PATTERN",
    "normalize_email",
    "normalize_full_name",
    "normalize_username",
    "validate_full_name",
]
