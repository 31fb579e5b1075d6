"""Student skill rating request/response schemas."""

import uuid

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# Response schemas
# =============================================================================


class RatedSkillOut(BaseModel):
    """A skill the student has already rated.

    Attributes:
        id: Rating UUID.
        class_skill_id: Rated class skill.
        skill_name: Display name of the skill.
        value: Stored rating in [0, 1].
    """

    model_config = ConfigDict(extra="forbid")

    id: uuid.UUID
    class_skill_id: int
    skill_name: str
    value: float


class ClassSkillOut(BaseModel):
    """A skill from one of the student's classes, not yet rated."""

    model_config = ConfigDict(extra="forbid")

    class_skill_id: int
    class_id: int
    skill_name: str


class StudentSkillsOut(BaseModel):
    """Response for GET /api/v1/student-skills."""

    model_config = ConfigDict(extra="forbid")

    user_rated_skills: list[RatedSkillOut]
    class_skills: list[ClassSkillOut]


class SkillRatingResult(BaseModel):
    """Response for POST /api/v1/student-skills."""

    model_config = ConfigDict(extra="forbid")

    inserted: int
    updated: int


# =============================================================================
# Request schemas
# =============================================================================


class SkillRatingsRequest(BaseModel):
    """Submitted rating form.

    Each key names a skill (``userRatedSkills<id>`` or ``classSkills<id>``);
    each value is ``[rating, flag]`` where rating is 0-100 and only a
    ``"yes"`` flag applies the entry.
    """

    model_config = ConfigDict(extra="forbid")

    ratings: dict[str, list[str | int]] = Field(default_factory=dict, max_length=500)
