from fastapi import APIRouter

from voice_agent.api.routers import health_router, turn_router

router = APIRouter(prefix="/v1")
router.include_router(health_router)
router.include_router(turn_router)
