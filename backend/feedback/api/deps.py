"""Shared dependencies for API endpoints.

Local mode uses DEFAULT_USER_ID; hosted mode validates a JWT from the
session cookie. Verification services are built per request from the
request's database session, with configuration passed in explicitly.
"""

import uuid
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from feedback.core.config import settings
from feedback.core.database import get_db
from feedback.core.email import MailTransport, get_mail_transport
from feedback.services.identity_directory import DatabaseIdentityDirectory
from feedback.services.link_issuer import LinkIssuer
from feedback.services.notifier import Notifier
from feedback.services.verification_store import DatabaseVerificationStore

# Generic 401 detail; never say why auth failed.
_UNAUTHORIZED_DETAIL = {
    "code": "UNAUTHORIZED",
    "message": "Authentication required",
}


def get_current_user_id(request: Request) -> uuid.UUID:
    """Get current user ID from auth context.

    Validation steps (hosted mode):
    1. Read JWT from cookie
    2. Decode + verify signature (HS256)
    3. Verify exp, aud, iss claims
    4. Extract sub as UUID

    Args:
        request: HTTP request (injected by FastAPI).

    Returns:
        UUID of the current authenticated user.

    Raises:
        HTTPException: 401 for any auth failure.
    """
    if not settings.auth_enabled:
        if settings.default_user_id is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=_UNAUTHORIZED_DETAIL,
            )
        return settings.default_user_id

    token = request.cookies.get(settings.auth_cookie_name)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=_UNAUTHORIZED_DETAIL,
        )

    try:
        payload = jwt.decode(
            token,
            settings.auth_secret.get_secret_value(),
            algorithms=["HS256"],
            audience=settings.auth_audience,
            issuer=settings.auth_issuer,
            options={"require": ["exp", "sub"]},
        )
        return uuid.UUID(payload["sub"])
    except (jwt.InvalidTokenError, KeyError, ValueError, TypeError) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=_UNAUTHORIZED_DETAIL,
        ) from exc


CurrentUserId = Annotated[uuid.UUID, Depends(get_current_user_id)]
DbSession = Annotated[AsyncSession, Depends(get_db)]


def get_link_issuer(db: DbSession) -> LinkIssuer:
    """Build a LinkIssuer over the request's session.

    Args:
        db: Database session (injected).

    Returns:
        LinkIssuer writing to the verification_tokens table.
    """
    return LinkIssuer(DatabaseVerificationStore(db), host=settings.link_host)


def get_notifier(
    db: DbSession,
    transport: Annotated[MailTransport, Depends(get_mail_transport)],
) -> Notifier:
    """Build a Notifier over the request's session and the mail transport.

    Args:
        db: Database session (injected).
        transport: Process-wide mail transport (injected).

    Returns:
        Notifier configured with the link host and system name.
    """
    return Notifier(
        DatabaseIdentityDirectory(db),
        transport,
        host=settings.link_host,
        system_name=settings.system_name,
    )


Issuer = Annotated[LinkIssuer, Depends(get_link_issuer)]
VerificationNotifier = Annotated[Notifier, Depends(get_notifier)]
