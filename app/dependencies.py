"""FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.permissions import Actor
from app.core.redis_client import get_redis_client
from app.core.security import actor_from_claims, decode_access_token
from app.database import get_db
from app.repositories.appointments import AppointmentRepository
from app.repositories.directory import DirectoryRepository
from app.services.appointment_service import AppointmentService
from app.services.notification_service import RedisNotificationDispatcher

# Security
security = HTTPBearer()


def _credentials_error(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_actor(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> Actor:
    """
    Build the calling actor from the JWT bearer token.

    The token carries the actor ID in ``sub``, the role in ``role`` and, for
    clinic staff, the clinic IDs they belong to in ``clinics``.

    Args:
        credentials: Bearer token credentials

    Returns:
        Authenticated actor

    Raises:
        HTTPException: If token is invalid, expired or malformed
    """
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise _credentials_error()

    try:
        return actor_from_claims(payload)
    except (ValueError, TypeError, AttributeError):
        raise _credentials_error("Invalid token claims")


async def get_appointment_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AppointmentService:
    """Wire the appointment service to the database and the notification queue."""
    return AppointmentService(
        appointments=AppointmentRepository(db),
        directory=DirectoryRepository(db),
        dispatcher=RedisNotificationDispatcher(
            get_redis_client(), settings.notification_queue_key
        ),
        notice_hours=settings.cancellation_notice_hours,
    )


# Type aliases for dependency injection
CurrentActor = Annotated[Actor, Depends(get_current_actor)]
AppointmentServiceDep = Annotated[AppointmentService, Depends(get_appointment_service)]
