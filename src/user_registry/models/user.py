from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping
import uuid

from sqlalchemy import String, DateTime, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from user_registry.database.base import Base
from user_registry.database.functions import gen_random_uuid


class User(Base):
    """
    SQLAlchemy model for the `users` table.

    Column order matters: `username`, `email`, `full_name` is also the fixed
    order in which partial updates assign columns.
    """
    __tablename__ = "users"

    # Generated by storage at creation, never updated
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        server_default=gen_random_uuid(),
    )

    # Stored lower-cased; unique constraint is named uq_users_username
    username: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False
    )

    # Stored lower-cased; unique constraint is named uq_users_email
    email: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False
    )

    full_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False
    )

    # Storage time. updated_at never drops below created_at (see query_builder).
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id!r}, username={self.username!r}, email={self.email!r})>"


@dataclass(frozen=True)
class UserRecord:
    """
    Immutable snapshot of one `users` row.

    Repositories return this instead of live ORM instances so that nothing
    above the repository depends on session state.
    """
    id: uuid.UUID
    username: str
    email: str
    full_name: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "UserRecord":
        return cls(
            id=row["id"],
            username=row["username"],
            email=row["email"],
            full_name=row["full_name"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
