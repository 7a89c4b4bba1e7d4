from .user_service import UserService, UserStore, normalize_changes

__all__ = [
    "UserService",
    "UserStore",
    "normalize_changes",
]
