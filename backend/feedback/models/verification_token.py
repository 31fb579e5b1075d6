"""Verification token model - one live token per (user, action).

No surrogate id. The composite primary key (user_id, action_type) is what
enforces the single-active-token rule under concurrent inserts.
"""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, PrimaryKeyConstraint, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from feedback.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from feedback.models.user import User

# Named so the store can tell a duplicate key apart from other violations
PRIMARY_KEY_NAME = "pk_verification_tokens"


class VerificationToken(Base, TimestampMixin):
    """Outstanding verification token for one user action.

    Replacing issuance overwrites ``token`` in place; confirmation handlers
    delete the row once the link is used.

    Attributes:
        user_id: Subject user.
        action_type: Action tag (``verify``, ``reset-password``, ...).
        token: Current token value. Unique across all rows.
    """

    __tablename__ = "verification_tokens"
    __table_args__ = (
        PrimaryKeyConstraint("user_id", "action_type", name=PRIMARY_KEY_NAME),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    action_type: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
    )
    token: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="verification_tokens")
