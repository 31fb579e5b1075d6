"""API v1 router aggregator.

All v1 endpoint routers are included here.
"""

from fastapi import APIRouter

from feedback.api.v1 import student_skills, verification_links

router = APIRouter()

router.include_router(
    verification_links.router,
    prefix="/verification-links",
    tags=["verification-links"],
)
router.include_router(
    student_skills.router, prefix="/student-skills", tags=["student-skills"]
)
