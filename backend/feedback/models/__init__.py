"""SQLAlchemy ORM models for the Immediate Feedback backend.

All models are exported from this module for convenient imports:
    from feedback.models import User, Student, VerificationToken, ...

Models are organized by domain:
- user.py: User
- student.py: Student, StudentSkill
- classroom.py: Classroom, Enrollment, ClassSkill
- verification_token.py: VerificationToken (composite PK)
"""

from feedback.models.base import Base, TimestampMixin
from feedback.models.classroom import ClassSkill, Classroom, Enrollment
from feedback.models.student import Student, StudentSkill
from feedback.models.user import User
from feedback.models.verification_token import VerificationToken

__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    # Identity
    "User",
    "Student",
    # Skills
    "Classroom",
    "Enrollment",
    "ClassSkill",
    "StudentSkill",
    # Verification
    "VerificationToken",
]
