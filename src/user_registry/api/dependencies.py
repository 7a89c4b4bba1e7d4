from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from user_registry.database.session import get_async_session
from user_registry.repositories.user_repository import UserRepository
from user_registry.services.user_service import UserService


async def get_user_repository(db: AsyncSession = Depends(get_async_session)) -> UserRepository:
    # One repository per request, bound to the request's session
    return UserRepository(db)


async def get_user_service(repository: UserRepository = Depends(get_user_repository)) -> UserService:
    return UserService(repository)
