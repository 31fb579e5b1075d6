"""Student skill self-ratings.

The rating form posts one entry per skill. Keys carry the skill's origin
and ID: ``userRatedSkills<class_skill_id>`` for a skill the student already
rated, ``classSkills<class_skill_id>`` for a skill from one of their classes
that has no rating yet. Values are ``[rating, flag]``; only entries whose
flag is ``"yes"`` are applied, and ratings arrive as 0-100 and are stored
as fractions.
"""

import logging
import re
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from feedback.core.errors import NotFoundError, ValidationError
from feedback.models.classroom import ClassSkill
from feedback.models.student import Student, StudentSkill
from feedback.repositories.student_repository import StudentRepository

logger = logging.getLogger(__name__)

RATED_PREFIX = "userRatedSkills"
UNRATED_PREFIX = "classSkills"

_KEY_PATTERN = re.compile(r"^([a-zA-Z]*)(\d+)$")
_APPLY_FLAG = "yes"
_MAX_RATING = 100


@dataclass
class SkillRatingChanges:
    """Ratings to write, keyed by class skill ID.

    Attributes:
        inserts: New ratings for skills the student has not rated.
        updates: Replacement values for existing ratings.
    """

    inserts: dict[int, float] = field(default_factory=dict)
    updates: dict[int, float] = field(default_factory=dict)


@dataclass
class StudentSkillView:
    """What the rating page shows for one student."""

    rated: list[tuple[StudentSkill, ClassSkill]]
    unrated: list[ClassSkill]


def _parse_rating(key: str, raw: object) -> float:
    try:
        rating = int(str(raw).strip())
    except ValueError as exc:
        raise ValidationError(
            f"Rating for '{key}' must be a whole number",
            details=[{"field": key}],
        ) from exc
    if not 0 <= rating <= _MAX_RATING:
        raise ValidationError(
            f"Rating for '{key}' must be between 0 and {_MAX_RATING}",
            details=[{"field": key}],
        )
    return rating / _MAX_RATING


def parse_skill_ratings(form: Mapping[str, Sequence[object]]) -> SkillRatingChanges:
    """Split a submitted rating form into inserts and updates.

    Keys with an unknown prefix or no numeric suffix are ignored, as are
    entries not flagged ``"yes"``.

    Args:
        form: Mapping of skill key to ``[rating, flag]``.

    Returns:
        SkillRatingChanges with values already scaled to [0, 1].

    Raises:
        ValidationError: An applied entry has a malformed or out-of-range
            rating.
    """
    changes = SkillRatingChanges()
    for key, entry in form.items():
        match = _KEY_PATTERN.match(key)
        if match is None:
            continue
        prefix, skill_id = match.group(1), int(match.group(2))
        if prefix == RATED_PREFIX:
            target = changes.updates
        elif prefix == UNRATED_PREFIX:
            target = changes.inserts
        else:
            continue

        if len(entry) < 2 or str(entry[1]).strip().lower() != _APPLY_FLAG:
            continue
        target[skill_id] = _parse_rating(key, entry[0])
    return changes


async def _require_student(db: AsyncSession, user_id: uuid.UUID) -> Student:
    student = await StudentRepository.get_by_user_id(db, user_id)
    if student is None:
        raise NotFoundError("Student", str(user_id))
    return student


async def get_student_skills(db: AsyncSession, user_id: uuid.UUID) -> StudentSkillView:
    """Load a student's rated skills and the class skills left to rate.

    Args:
        db: Async database session.
        user_id: Current user's UUID.

    Returns:
        StudentSkillView. Unrated skills exclude any class skill the
        student already rated.

    Raises:
        NotFoundError: The user has no student profile.
    """
    student = await _require_student(db, user_id)
    rated = await StudentRepository.list_rated_skills(db, student.id)
    class_skills = await StudentRepository.list_class_skills(db, student.id)

    rated_ids = {skill.id for _, skill in rated}
    unrated: list[ClassSkill] = []
    seen: set[int] = set()
    for skill in class_skills:
        if skill.id in rated_ids or skill.id in seen:
            continue
        seen.add(skill.id)
        unrated.append(skill)
    return StudentSkillView(rated=rated, unrated=unrated)


async def apply_skill_ratings(
    db: AsyncSession, user_id: uuid.UUID, changes: SkillRatingChanges
) -> tuple[int, int]:
    """Write parsed ratings for the current user's student profile.

    Inserts are limited to skills from the student's classes that have no
    rating yet; updates for skills the student never rated are skipped.

    Args:
        db: Async database session.
        user_id: Current user's UUID.
        changes: Output of parse_skill_ratings().

    Returns:
        (inserted, updated) counts.

    Raises:
        NotFoundError: The user has no student profile.
    """
    student = await _require_student(db, user_id)

    rateable: set[int] = set()
    if changes.inserts:
        rated = await StudentRepository.list_rated_skills(db, student.id)
        rated_ids = {skill.id for _, skill in rated}
        rateable = {
            skill.id
            for skill in await StudentRepository.list_class_skills(db, student.id)
            if skill.id not in rated_ids
        }

    inserted = 0
    for class_skill_id, value in changes.inserts.items():
        if class_skill_id not in rateable:
            continue
        await StudentRepository.add_skill_rating(
            db, student_id=student.id, class_skill_id=class_skill_id, value=value
        )
        inserted += 1

    updated = 0
    for class_skill_id, value in changes.updates.items():
        updated += await StudentRepository.set_skill_rating(
            db, student_id=student.id, class_skill_id=class_skill_id, value=value
        )

    logger.info(
        "Applied skill ratings for student %s: %d inserted, %d updated",
        student.id,
        inserted,
        updated,
    )
    return inserted, updated
