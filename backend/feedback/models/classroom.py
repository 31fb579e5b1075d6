"""Classes, enrollments and the skills each class teaches."""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from feedback.models.base import Base

if TYPE_CHECKING:
    from feedback.models.student import Student


class Classroom(Base):
    """A class students can enroll in."""

    __tablename__ = "classes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Relationships
    skills: Mapped[list["ClassSkill"]] = relationship(
        "ClassSkill",
        back_populates="classroom",
        cascade="all, delete-orphan",
    )


class Enrollment(Base):
    """Student membership in a class (composite primary key)."""

    __tablename__ = "enrollments"

    student_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("students.id", ondelete="CASCADE"),
        primary_key=True,
    )
    class_id: Mapped[int] = mapped_column(
        ForeignKey("classes.id", ondelete="CASCADE"),
        primary_key=True,
    )

    # Relationships
    student: Mapped["Student"] = relationship("Student", back_populates="enrollments")
    classroom: Mapped["Classroom"] = relationship("Classroom")


class ClassSkill(Base):
    """A skill taught in a class. Integer IDs appear in rating form keys."""

    __tablename__ = "class_skills"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    class_id: Mapped[int] = mapped_column(
        ForeignKey("classes.id", ondelete="CASCADE"),
        nullable=False,
    )
    skill_name: Mapped[str] = mapped_column(String(100), nullable=False)

    # Relationships
    classroom: Mapped["Classroom"] = relationship("Classroom", back_populates="skills")
