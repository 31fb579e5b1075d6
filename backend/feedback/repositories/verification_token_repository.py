"""Repository for VerificationToken rows.

One row per (user_id, action_type). Inserts rely on the composite primary
key to reject a second live token for the same key.
"""

import uuid

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from feedback.models.verification_token import VerificationToken


class VerificationTokenRepository:
    """Stateless repository for VerificationToken table operations.

    All methods are static — no instance state.
    """

    @staticmethod
    async def get(
        db: AsyncSession,
        *,
        user_id: uuid.UUID,
        action_type: str,
    ) -> VerificationToken | None:
        """Look up the live token for a key.

        Args:
            db: Async database session.
            user_id: Subject user.
            action_type: Action tag.

        Returns:
            VerificationToken if found, None otherwise.
        """
        stmt = select(VerificationToken).where(
            VerificationToken.user_id == user_id,
            VerificationToken.action_type == action_type,
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        user_id: uuid.UUID,
        action_type: str,
        token: str,
    ) -> None:
        """Store a new token.

        Issued as a plain INSERT so the database, not the session identity
        map, decides whether the key is taken.

        Args:
            db: Async database session.
            user_id: Subject user.
            action_type: Action tag.
            token: Freshly generated token.

        Raises:
            sqlalchemy.exc.IntegrityError: If a token already exists for
                (user_id, action_type).
        """
        stmt = insert(VerificationToken).values(
            user_id=user_id,
            action_type=action_type,
            token=token,
        )
        await db.execute(stmt)

    @staticmethod
    async def update_token(
        db: AsyncSession,
        *,
        user_id: uuid.UUID,
        action_type: str,
        token: str,
    ) -> int:
        """Replace the token of an existing row in place.

        Args:
            db: Async database session.
            user_id: Subject user.
            action_type: Action tag.
            token: Replacement token.

        Returns:
            Number of rows updated (0 if the key has no row).
        """
        stmt = (
            update(VerificationToken)
            .where(
                VerificationToken.user_id == user_id,
                VerificationToken.action_type == action_type,
            )
            .values(token=token)
            .execution_options(synchronize_session="fetch")
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count
