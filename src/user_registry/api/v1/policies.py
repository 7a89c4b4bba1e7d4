"""
HTTP-level policies applied on top of service results.

Delete is idempotent: a client that deletes a user twice (or deletes an id that
never existed) gets the same 204 both times. The repository still reports the
missing row as `NotFoundError`; it is absorbed here and nowhere else.
"""

import logging
from enum import Enum
from uuid import UUID

from user_registry.exceptions.base import NotFoundError
from user_registry.services.user_service import UserService

logger = logging.getLogger(__name__)


class DeleteOutcome(str, Enum):
    DELETED = "deleted"
    ALREADY_ABSENT = "already_absent"


async def delete_idempotently(service: UserService, user_id: UUID) -> DeleteOutcome:
    """
    Delete a user, treating "no such user" as success.

    Returns:
        DeleteOutcome.DELETED if a row was removed, DeleteOutcome.ALREADY_ABSENT otherwise.

    Raises:
        Every error other than NotFoundError (e.g. StorageError) propagates unchanged.
    """
    try:
        await service.delete_user(user_id)
    except NotFoundError:
        logger.info("api.user.delete.already_absent", extra={"user_id": str(user_id)})
        return DeleteOutcome.ALREADY_ABSENT

    return DeleteOutcome.DELETED
