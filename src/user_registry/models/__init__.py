"""
Centralized access to the database models.

    from user_registry.models import User, UserRecord

Importing this package also registers every table on `Base.metadata`, which
`create_all` (tests, local bootstrap) depends on.
"""

from .user import User, UserRecord

__all__ = [
    "User",
    "UserRecord",
]
