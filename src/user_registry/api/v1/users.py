"""
Users routes (mounted under settings.API_PREFIX, e.g. /api/v1/users).

| Method | Path                          | Success            |
| ------ | ----------------------------- | ------------------ |
| GET    | /users                        | 200 list           |
| GET    | /users/username/{username}    | 200                |
| GET    | /users/id/{user_id}           | 200                |
| POST   | /users                        | 201                |
| PATCH  | /users/id/{user_id}           | 200                |
| DELETE | /users/id/{user_id}           | 204 (idempotent)   |

Errors are not handled here; they propagate to the handlers in `error_handlers.py`.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from user_registry.api.dependencies import get_user_service
from user_registry.exceptions.base import InvalidInputError
from user_registry.schemas.user import UserCreate, UserRead, UserUpdate
from user_registry.services.user_service import UserService
from .policies import delete_idempotently

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


def parse_user_id(raw: str) -> UUID:
    """Path ids are parsed here so a malformed id is a 400 (not FastAPI's 422)."""
    try:
        return UUID(raw)
    except ValueError as exc:
        raise InvalidInputError("Invalid user ID format", fields=["id"]) from exc


@router.get("", response_model=list[UserRead])
async def list_users(service: UserService = Depends(get_user_service)):
    return await service.list_users()


@router.get("/username/{username}", response_model=UserRead)
async def get_user_by_username(username: str, service: UserService = Depends(get_user_service)):
    return await service.get_by_username(username)


@router.get("/id/{user_id}", response_model=UserRead)
async def get_user_by_id(user_id: str, service: UserService = Depends(get_user_service)):
    return await service.get_by_id(parse_user_id(user_id))


@router.post("", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def create_user(payload: UserCreate, service: UserService = Depends(get_user_service)):
    return await service.create_user(
        username=payload.username,
        email=payload.email,
        full_name=payload.full_name,
    )


@router.patch("/id/{user_id}", response_model=UserRead)
async def update_user(user_id: str, payload: UserUpdate, service: UserService = Depends(get_user_service)):
    return await service.update_user(parse_user_id(user_id), payload.to_changes())


@router.delete("/id/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(user_id: str, service: UserService = Depends(get_user_service)):
    outcome = await delete_idempotently(service, parse_user_id(user_id))
    logger.debug("api.user.delete.outcome", extra={"user_id": user_id, "outcome": outcome.value})
    return Response(status_code=status.HTTP_204_NO_CONTENT)
