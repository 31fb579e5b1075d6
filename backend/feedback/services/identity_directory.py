"""Resolves email recipients to users and display names."""

import uuid
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from feedback.core.errors import IdentityResolutionError, StoreError
from feedback.repositories.student_repository import StudentRepository
from feedback.repositories.user_repository import UserRepository


class IdentityDirectory(Protocol):
    """Lookups the notifier needs before it can greet a recipient."""

    async def lookup_user_id_by_email(self, email: str) -> uuid.UUID:
        """Return the user registered with this email.

        Raises:
            IdentityResolutionError: No such user.
        """
        ...

    async def lookup_display_name(self, user_id: uuid.UUID) -> str:
        """Return the name used to greet this user.

        Raises:
            IdentityResolutionError: The user has no display name.
        """
        ...


class DatabaseIdentityDirectory:
    """IdentityDirectory over the users and students tables."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def lookup_user_id_by_email(self, email: str) -> uuid.UUID:
        try:
            user = await UserRepository.get_by_email(self._db, email)
        except SQLAlchemyError as exc:
            raise StoreError("Failed to look up user", cause=exc) from exc
        if user is None:
            raise IdentityResolutionError("No user is registered with this email")
        return user.id

    async def lookup_display_name(self, user_id: uuid.UUID) -> str:
        try:
            student = await StudentRepository.get_by_user_id(self._db, user_id)
        except SQLAlchemyError as exc:
            raise StoreError("Failed to look up student profile", cause=exc) from exc
        if student is None or not student.name.strip():
            raise IdentityResolutionError("No display name is recorded for this user")
        return student.name.strip()
