"""Verification store: (user, action) -> current token.

Defines the contract the link issuer relies on and two implementations:

- DatabaseVerificationStore: the verification_tokens table. Each write runs
  in a SAVEPOINT so a failed insert/update leaves nothing behind and the
  caller's session stays usable.
- InMemoryVerificationStore: process-local dict guarded by an asyncio.Lock.
  A test double for the issuer and HTTP layers; nothing in the app wires it.

Both enforce key uniqueness inside insert(). That check, not the issuer's
preceding find(), is what keeps concurrent issuance from creating two live
tokens for one key.
"""

import asyncio
import uuid
from dataclasses import dataclass
from typing import Protocol

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from feedback.core.actions import ActionType
from feedback.core.errors import StoreError, TokenConflictError, TokenMissingError
from feedback.models.verification_token import PRIMARY_KEY_NAME
from feedback.repositories.verification_token_repository import (
    VerificationTokenRepository,
)

logger = structlog.get_logger()


def _violated_constraint(exc: IntegrityError) -> str | None:
    """Name of the constraint behind an IntegrityError, if the driver says.

    asyncpg exposes ``constraint_name`` on the error SQLAlchemy wraps
    (``exc.orig.__cause__``); psycopg exposes it on ``orig.diag``. Drivers
    that report neither fall back to a match on the message text.
    """
    orig = exc.orig
    sources = (orig, getattr(orig, "__cause__", None), getattr(orig, "diag", None))
    for source in sources:
        name = getattr(source, "constraint_name", None)
        if isinstance(name, str) and name:
            return name
    if PRIMARY_KEY_NAME in str(orig):
        return PRIMARY_KEY_NAME
    return None


@dataclass(frozen=True)
class VerificationRecord:
    """Snapshot of one stored token.

    Attributes:
        user_id: Subject user.
        action_type: Action being verified.
        token: Current token value.
    """

    user_id: uuid.UUID
    action_type: ActionType
    token: str


class VerificationStore(Protocol):
    """Per-key atomic storage for verification tokens."""

    async def find(
        self, user_id: uuid.UUID, action_type: ActionType
    ) -> VerificationRecord | None:
        """Return the live record for the key, or None."""
        ...

    async def insert(
        self, user_id: uuid.UUID, action_type: ActionType, token: str
    ) -> VerificationRecord:
        """Create the record for a key that has none.

        Raises:
            TokenConflictError: A record already exists for the key.
            StoreError: Any other storage failure.
        """
        ...

    async def update(
        self, user_id: uuid.UUID, action_type: ActionType, token: str
    ) -> VerificationRecord:
        """Replace the token of an existing record.

        Raises:
            TokenMissingError: No record exists for the key.
            StoreError: Any other storage failure.
        """
        ...


class DatabaseVerificationStore:
    """VerificationStore over the verification_tokens table.

    Does not commit; the request's session dependency owns the transaction.
    """

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def find(
        self, user_id: uuid.UUID, action_type: ActionType
    ) -> VerificationRecord | None:
        try:
            row = await VerificationTokenRepository.get(
                self._db, user_id=user_id, action_type=action_type.value
            )
        except SQLAlchemyError as exc:
            logger.error(
                "verification_store_error",
                operation="find",
                action_type=action_type.value,
                error_type=type(exc).__name__,
            )
            raise StoreError("Failed to read verification token", cause=exc) from exc

        if row is None:
            return None
        return VerificationRecord(
            user_id=row.user_id, action_type=action_type, token=row.token
        )

    async def insert(
        self, user_id: uuid.UUID, action_type: ActionType, token: str
    ) -> VerificationRecord:
        try:
            async with self._db.begin_nested():
                await VerificationTokenRepository.create(
                    self._db,
                    user_id=user_id,
                    action_type=action_type.value,
                    token=token,
                )
        except IntegrityError as exc:
            if _violated_constraint(exc) == PRIMARY_KEY_NAME:
                raise TokenConflictError(action_type.value) from exc
            logger.error(
                "verification_store_error",
                operation="insert",
                action_type=action_type.value,
                error_type=type(exc).__name__,
            )
            raise StoreError("Failed to store verification token", cause=exc) from exc
        except SQLAlchemyError as exc:
            logger.error(
                "verification_store_error",
                operation="insert",
                action_type=action_type.value,
                error_type=type(exc).__name__,
            )
            raise StoreError("Failed to store verification token", cause=exc) from exc

        return VerificationRecord(user_id=user_id, action_type=action_type, token=token)

    async def update(
        self, user_id: uuid.UUID, action_type: ActionType, token: str
    ) -> VerificationRecord:
        try:
            async with self._db.begin_nested():
                updated = await VerificationTokenRepository.update_token(
                    self._db,
                    user_id=user_id,
                    action_type=action_type.value,
                    token=token,
                )
        except SQLAlchemyError as exc:
            logger.error(
                "verification_store_error",
                operation="update",
                action_type=action_type.value,
                error_type=type(exc).__name__,
            )
            raise StoreError("Failed to update verification token", cause=exc) from exc

        if updated == 0:
            raise TokenMissingError(action_type.value)
        return VerificationRecord(user_id=user_id, action_type=action_type, token=token)


class InMemoryVerificationStore:
    """Process-local VerificationStore.

    Safe for concurrent coroutines on one event loop, not across threads
    or processes. Enforces the same rules as the table: one record per key
    and no token value shared by two records.
    """

    def __init__(self) -> None:
        self._records: dict[tuple[uuid.UUID, ActionType], str] = {}
        self._lock = asyncio.Lock()

    async def find(
        self, user_id: uuid.UUID, action_type: ActionType
    ) -> VerificationRecord | None:
        # Yield like a real round trip so concurrent callers interleave
        await asyncio.sleep(0)
        async with self._lock:
            token = self._records.get((user_id, action_type))
        if token is None:
            return None
        return VerificationRecord(user_id=user_id, action_type=action_type, token=token)

    async def insert(
        self, user_id: uuid.UUID, action_type: ActionType, token: str
    ) -> VerificationRecord:
        await asyncio.sleep(0)
        async with self._lock:
            key = (user_id, action_type)
            if key in self._records:
                raise TokenConflictError(action_type.value)
            if token in self._records.values():
                raise StoreError("Token value already in use")
            self._records[key] = token
        return VerificationRecord(user_id=user_id, action_type=action_type, token=token)

    async def update(
        self, user_id: uuid.UUID, action_type: ActionType, token: str
    ) -> VerificationRecord:
        await asyncio.sleep(0)
        async with self._lock:
            key = (user_id, action_type)
            if key not in self._records:
                raise TokenMissingError(action_type.value)
            if token in self._records.values():
                raise StoreError("Token value already in use")
            self._records[key] = token
        return VerificationRecord(user_id=user_id, action_type=action_type, token=token)

    def records(self) -> list[VerificationRecord]:
        """Snapshot of every stored record (for inspection and tests)."""
        return [
            VerificationRecord(user_id=user_id, action_type=action_type, token=token)
            for (user_id, action_type), token in self._records.items()
        ]

    def clear(self) -> None:
        """Remove all records (for testing)."""
        self._records.clear()
