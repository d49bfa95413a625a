"""JWT access tokens and the actor claims they carry."""

from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from jose import JWTError, jwt

from app.config import settings
from app.core.permissions import Actor, Role


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a JWT access token.

    Args:
        data: Payload data to encode (``sub``, ``role``, ``clinics``)
        expires_delta: Optional expiration time delta

    Returns:
        Encoded JWT token
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(UTC) + expires_delta
    else:
        expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)

    to_encode.update(
        {
            "exp": expire,
            "iat": datetime.now(UTC),
            "type": "access",
        }
    )

    return jwt.encode(
        to_encode,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


def decode_access_token(token: str) -> dict[str, Any] | None:
    """
    Decode and validate a JWT access token.

    Args:
        token: JWT token to decode

    Returns:
        Decoded payload or None if invalid
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        return None

    if payload.get("type") != "access":
        return None
    return payload


def create_actor_token(actor: Actor, expires_delta: timedelta | None = None) -> str:
    """
    Issue an access token carrying the actor's identity, role and clinics.

    Args:
        actor: Actor the token is issued for
        expires_delta: Optional expiration time delta

    Returns:
        Encoded JWT token
    """
    claims = {
        "sub": str(actor.id),
        "role": actor.role.value,
        "clinics": sorted(str(clinic_id) for clinic_id in actor.clinic_ids),
    }
    return create_access_token(claims, expires_delta)


def actor_from_claims(payload: dict[str, Any]) -> Actor:
    """
    Build an actor from decoded token claims.

    ``role`` defaults to patient; ``clinics`` is only present for clinic staff.

    Raises:
        ValueError: If the subject, role or a clinic ID is malformed
    """
    subject = payload.get("sub")
    if not isinstance(subject, str):
        raise ValueError("Token has no subject")
    clinics = payload.get("clinics") or ()
    if isinstance(clinics, str):
        raise ValueError("Clinics claim must be a list")
    return Actor(
        id=UUID(subject),
        role=Role(payload.get("role", Role.PATIENT.value)),
        clinic_ids=frozenset(UUID(clinic_id) for clinic_id in clinics),
    )
