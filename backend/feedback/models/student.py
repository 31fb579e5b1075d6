"""Student profile and per-student skill ratings."""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Float, ForeignKey, String, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from feedback.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from feedback.models.classroom import ClassSkill, Enrollment
    from feedback.models.user import User


class Student(Base, TimestampMixin):
    """Student profile attached to a user account.

    Attributes:
        id: UUID primary key.
        user_id: Owning user (one profile per user).
        name: Display name used in greetings.
    """

    __tablename__ = "students"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="student")
    enrollments: Mapped[list["Enrollment"]] = relationship(
        "Enrollment",
        back_populates="student",
        cascade="all, delete-orphan",
    )
    skills: Mapped[list["StudentSkill"]] = relationship(
        "StudentSkill",
        back_populates="student",
        cascade="all, delete-orphan",
    )


class StudentSkill(Base, TimestampMixin):
    """A student's self-rating of one class skill.

    Attributes:
        id: UUID primary key.
        student_id: Rating owner.
        class_skill_id: Skill being rated.
        value: Rating in [0, 1] (the form submits 0-100).
    """

    __tablename__ = "student_skills"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    student_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
    )
    class_skill_id: Mapped[int] = mapped_column(
        ForeignKey("class_skills.id", ondelete="CASCADE"),
        nullable=False,
    )
    value: Mapped[float] = mapped_column(
        Float,
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint(
            "student_id", "class_skill_id", name="uq_student_skill_student_skill"
        ),
        CheckConstraint("value >= 0 AND value <= 1", name="ck_student_skill_value"),
    )

    # Relationships
    student: Mapped["Student"] = relationship("Student", back_populates="skills")
    class_skill: Mapped["ClassSkill"] = relationship("ClassSkill")
