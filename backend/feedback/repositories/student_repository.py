"""Repository for Student profiles and their skill ratings."""

import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from feedback.models.classroom import ClassSkill, Enrollment
from feedback.models.student import Student, StudentSkill


class StudentRepository:
    """Stateless repository for students, enrollments and skill ratings."""

    @staticmethod
    async def get_by_user_id(db: AsyncSession, user_id: uuid.UUID) -> Student | None:
        """Fetch the student profile for a user.

        Args:
            db: Async database session.
            user_id: Owning user's UUID.

        Returns:
            Student if the user has a profile, None otherwise.
        """
        stmt = select(Student).where(Student.user_id == user_id)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_rated_skills(
        db: AsyncSession, student_id: uuid.UUID
    ) -> list[tuple[StudentSkill, ClassSkill]]:
        """List the student's existing ratings with the rated skill.

        Args:
            db: Async database session.
            student_id: Student UUID.

        Returns:
            (rating, skill) pairs ordered by skill name.
        """
        stmt = (
            select(StudentSkill, ClassSkill)
            .join(ClassSkill, StudentSkill.class_skill_id == ClassSkill.id)
            .where(StudentSkill.student_id == student_id)
            .order_by(ClassSkill.skill_name)
        )
        result = await db.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]

    @staticmethod
    async def list_class_skills(
        db: AsyncSession, student_id: uuid.UUID
    ) -> list[ClassSkill]:
        """List skills of every class the student is enrolled in.

        Args:
            db: Async database session.
            student_id: Student UUID.

        Returns:
            ClassSkill rows ordered by skill name.
        """
        stmt = (
            select(ClassSkill)
            .join(Enrollment, Enrollment.class_id == ClassSkill.class_id)
            .where(Enrollment.student_id == student_id)
            .order_by(ClassSkill.skill_name)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def add_skill_rating(
        db: AsyncSession,
        *,
        student_id: uuid.UUID,
        class_skill_id: int,
        value: float,
    ) -> StudentSkill:
        """Insert a first rating for a class skill.

        Raises:
            sqlalchemy.exc.IntegrityError: If the skill is already rated or
                does not exist.
        """
        rating = StudentSkill(
            student_id=student_id,
            class_skill_id=class_skill_id,
            value=value,
        )
        db.add(rating)
        await db.flush()
        return rating

    @staticmethod
    async def set_skill_rating(
        db: AsyncSession,
        *,
        student_id: uuid.UUID,
        class_skill_id: int,
        value: float,
    ) -> int:
        """Overwrite an existing rating.

        Returns:
            Number of rows updated (0 if the student never rated the skill).
        """
        stmt = (
            update(StudentSkill)
            .where(
                StudentSkill.student_id == student_id,
                StudentSkill.class_skill_id == class_skill_id,
            )
            .values(value=value)
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count
