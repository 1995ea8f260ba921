from fastapi import APIRouter

from . import admin, auth, planner, vacation_days

router = APIRouter(prefix="/v1")
# account API backing the remote tier
router.include_router(vacation_days.router)
router.include_router(planner.router)
router.include_router(auth.router)
router.include_router(admin.router)
