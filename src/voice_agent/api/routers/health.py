from fastapi import APIRouter, Depends

from voice_agent.api.deps import get_llm_client, get_tool_registry
from voice_agent.api.schemas import HealthResponse
from voice_agent.tools.registry import ToolRegistry

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(
    registry: ToolRegistry = Depends(get_tool_registry),
    llm=Depends(get_llm_client),
) -> HealthResponse:
    return HealthResponse(llm_enabled=llm is not None, tools=registry.list())
