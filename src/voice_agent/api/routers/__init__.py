from voice_agent.api.routers.health import router as health_router
from voice_agent.api.routers.turn import router as turn_router

__all__ = ["health_router", "turn_router"]
