"""Pydantic request/response schemas for API endpoints."""

from feedback.schemas.student_skill import (
    ClassSkillOut,
    RatedSkillOut,
    SkillRatingResult,
    SkillRatingsRequest,
    StudentSkillsOut,
)

__all__ = [
    "ClassSkillOut",
    "RatedSkillOut",
    "SkillRatingResult",
    "SkillRatingsRequest",
    "StudentSkillsOut",
]
