"""
Liveness and readiness probes (mounted at the root, outside API_PREFIX).

- GET /health: the process is up. Never touches the database.
- GET /ready:  the database answers a round trip; 503 otherwise.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from user_registry.api.dependencies import get_user_repository
from user_registry.exceptions.base import DomainError
from user_registry.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/health")
async def health():
    return {"status": "ok", "timestamp": _timestamp()}


@router.get("/ready")
async def ready(repository: UserRepository = Depends(get_user_repository)):
    try:
        await repository.ping()
    except DomainError as exc:
        logger.warning("health.ready.database_unavailable", extra={"code": exc.kind.value})
        return JSONResponse(
            status_code=503,
            content={
                "status": "not_ready",
                "timestamp": _timestamp(),
                "checks": {"database": "unhealthy"},
            },
        )

    return {"status": "ready", "timestamp": _timestamp(), "checks": {"database": "healthy"}}
