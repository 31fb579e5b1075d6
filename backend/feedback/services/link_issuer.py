"""Verification link issuance.

Two policies share one link format:

- issue_strict: refuses when a token is already outstanding for the key.
  Used for first-time flows where clobbering a link the user may already be
  clicking would be wrong.
- issue_or_replace: always succeeds (barring storage failure) and makes the
  new token the only valid one for the key.

Link format (consumed by the confirmation handlers, must not change):
    http://<host>/<action>?id=<user_id>&t=<token>
"""

import hmac
import uuid
from collections.abc import Callable
from urllib.parse import quote

import structlog

from feedback.core.actions import ActionType
from feedback.core.errors import TokenConflictError, TokenMissingError
from feedback.core.tokens import generate_token
from feedback.services.verification_store import VerificationStore

logger = structlog.get_logger()


def build_verification_link(
    host: str,
    action_type: ActionType | str,
    user_id: uuid.UUID | int | str,
    token: str,
) -> str:
    """Build the confirmation URL for a token.

    Args:
        host: Configured host name (optionally with port), no scheme.
        action_type: Action tag; becomes the path.
        user_id: Subject user; becomes the ``id`` query value.
        token: Token value; becomes the ``t`` query value.

    Returns:
        Link such as ``http://example.com/verify?id=42&t=abc123``.
    """
    action = ActionType.parse(action_type).value
    user_part = quote(str(user_id), safe="")
    token_part = quote(token, safe="")
    return f"http://{host}/{action}?id={user_part}&t={token_part}"


class LinkIssuer:
    """Issues verification links backed by a VerificationStore.

    Holds no mutable state of its own; every call reads then writes the
    store, and the store's insert is the only mutual exclusion.
    """

    def __init__(
        self,
        store: VerificationStore,
        *,
        host: str,
        token_factory: Callable[[], str] = generate_token,
    ) -> None:
        """Initialize the issuer.

        Args:
            store: Verification store (database or in-memory).
            host: Host name placed in every link.
            token_factory: Token source. Tests may inject a deterministic one.
        """
        self._store = store
        self._host = host
        self._token_factory = token_factory

    def build_link(
        self, action_type: ActionType, user_id: uuid.UUID, token: str
    ) -> str:
        """Build a link on this issuer's host."""
        return build_verification_link(self._host, action_type, user_id, token)

    async def issue_strict(
        self, action_type: ActionType | str, user_id: uuid.UUID
    ) -> str:
        """Issue a link only if no token is outstanding for the key.

        Not safe to retry blindly: a retry after a timed-out first attempt
        may legitimately see the token that attempt stored.

        Args:
            action_type: Action to verify.
            user_id: Subject user.

        Returns:
            The new link.

        Raises:
            ValidationError: Unknown action tag.
            TokenConflictError: A token already exists (found by the read,
                or by the store when a concurrent request inserted first).
            StoreError: Storage failed; nothing was stored.
        """
        action = ActionType.parse(action_type)

        existing = await self._store.find(user_id, action)
        if existing is not None:
            logger.info(
                "verification_token_conflict",
                action_type=action.value,
                user_id=str(user_id),
            )
            raise TokenConflictError(action.value)

        token = self._token_factory()
        await self._store.insert(user_id, action, token)

        logger.info(
            "verification_link_issued",
            policy="strict",
            action_type=action.value,
            user_id=str(user_id),
        )
        return self.build_link(action, user_id, token)

    async def issue_or_replace(
        self, action_type: ActionType | str, user_id: uuid.UUID
    ) -> str:
        """Issue a link, superseding any outstanding token for the key.

        The token and link are computed before storage is touched; on
        failure they are dropped and the stored record is left as it was.
        Safe for callers to retry.

        Args:
            action_type: Action to verify.
            user_id: Subject user.

        Returns:
            Link for the token now stored for the key.

        Raises:
            ValidationError: Unknown action tag.
            StoreError: Storage failed; the previous record is unchanged.
        """
        action = ActionType.parse(action_type)

        existing = await self._store.find(user_id, action)
        token = self._token_factory()
        link = self.build_link(action, user_id, token)

        if existing is not None:
            try:
                await self._store.update(user_id, action, token)
                replaced = True
            except TokenMissingError:
                # The old token was consumed between our read and write
                await self._store.insert(user_id, action, token)
                replaced = False
        else:
            try:
                await self._store.insert(user_id, action, token)
                replaced = False
            except TokenConflictError:
                # Another request inserted between our read and write
                await self._store.update(user_id, action, token)
                replaced = True

        logger.info(
            "verification_link_issued",
            policy="replace",
            replaced=replaced,
            action_type=action.value,
            user_id=str(user_id),
        )
        return link

    async def matches_current(
        self, action_type: ActionType | str, user_id: uuid.UUID, token: str
    ) -> bool:
        """Check a presented token against the stored one.

        Args:
            action_type: Action named by the link.
            user_id: User named by the link.
            token: Token from the link.

        Returns:
            True only if the token is the current one for the key.
        """
        action = ActionType.parse(action_type)
        record = await self._store.find(user_id, action)
        if record is None:
            return False
        return hmac.compare_digest(record.token.encode(), token.encode())
