"""Student skill ratings API router."""

from fastapi import APIRouter

from feedback.api.deps import CurrentUserId, DbSession
from feedback.core.responses import DataResponse
from feedback.schemas.student_skill import (
    ClassSkillOut,
    RatedSkillOut,
    SkillRatingResult,
    SkillRatingsRequest,
    StudentSkillsOut,
)
from feedback.services.student_skill_service import (
    apply_skill_ratings,
    get_student_skills,
    parse_skill_ratings,
)

router = APIRouter()


@router.get("")
async def list_student_skills(
    user_id: CurrentUserId,
    db: DbSession,
) -> DataResponse[StudentSkillsOut]:
    """List the current student's ratings and the class skills left to rate."""
    view = await get_student_skills(db, user_id)
    return DataResponse(
        data=StudentSkillsOut(
            user_rated_skills=[
                RatedSkillOut(
                    id=rating.id,
                    class_skill_id=skill.id,
                    skill_name=skill.skill_name,
                    value=rating.value,
                )
                for rating, skill in view.rated
            ],
            class_skills=[
                ClassSkillOut(
                    class_skill_id=skill.id,
                    class_id=skill.class_id,
                    skill_name=skill.skill_name,
                )
                for skill in view.unrated
            ],
        )
    )


@router.post("")
async def submit_student_skills(
    body: SkillRatingsRequest,
    user_id: CurrentUserId,
    db: DbSession,
) -> DataResponse[SkillRatingResult]:
    """Apply a submitted rating form.

    Raises:
        ValidationError: An applied entry has an invalid rating.
        NotFoundError: The user has no student profile.
    """
    changes = parse_skill_ratings(body.ratings)
    inserted, updated = await apply_skill_ratings(db, user_id, changes)
    return DataResponse(data=SkillRatingResult(inserted=inserted, updated=updated))
