"""Verification link endpoint.

Issues a link for the current user and emails it to their registered
address. The link itself is never returned over HTTP.
"""

from fastapi import APIRouter, Request
from pydantic import BaseModel, ConfigDict

from feedback.api.deps import CurrentUserId, DbSession, Issuer, VerificationNotifier
from feedback.core.actions import ACTION_TEMPLATES, ActionType
from feedback.core.config import settings
from feedback.core.errors import UnauthorizedError
from feedback.core.rate_limiting import limiter
from feedback.core.responses import DataResponse
from feedback.repositories.user_repository import UserRepository

router = APIRouter()


class VerificationLinkRequest(BaseModel):
    """Request body for POST /verification-links.

    Attributes:
        action_type: Action the link confirms.
        replace: Supersede an outstanding link instead of refusing.
    """

    model_config = ConfigDict(extra="forbid")

    action_type: ActionType
    replace: bool = False


class VerificationLinkSent(BaseModel):
    """Response data for a dispatched link."""

    action_type: ActionType
    sent: bool


@router.post("")
@limiter.limit(settings.rate_limit_verification)
async def request_verification_link(
    request: Request,  # noqa: ARG001
    body: VerificationLinkRequest,
    user_id: CurrentUserId,
    db: DbSession,
    issuer: Issuer,
    notifier: VerificationNotifier,
) -> DataResponse[VerificationLinkSent]:
    """Issue a verification link and email it to the current user.

    A failure after the token is stored propagates, so the request's
    transaction is rolled back and no token outlives an unsent email.

    Raises:
        UnauthorizedError: The authenticated user no longer exists.
        TokenConflictError: Strict issuance found an outstanding token.
        IdentityResolutionError: The user cannot be greeted by name.
        StoreError: Token storage failed.
        TransportError: The email could not be sent.
    """
    user = await UserRepository.get_by_id(db, user_id)
    if user is None:
        raise UnauthorizedError()

    if body.replace:
        link = await issuer.issue_or_replace(body.action_type, user_id)
    else:
        link = await issuer.issue_strict(body.action_type, user_id)

    template = ACTION_TEMPLATES[body.action_type]
    await notifier.notify(user.email, link, template.subject, template.message)

    return DataResponse(
        data=VerificationLinkSent(action_type=body.action_type, sent=True)
    )
