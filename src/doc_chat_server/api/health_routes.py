from typing import Annotated

from fastapi import APIRouter, Depends

from .dependencies import get_workspace
from .models import HealthResponse
from ..runtime.workspace import Workspace

router = APIRouter(tags=["health"])


def _health(workspace: Workspace) -> HealthResponse:
    caps = workspace.capabilities
    return HealthResponse(
        llm_status=caps.status.value,
        rehydration=workspace.rehydration.state.value,
        knowledge_present=workspace.coordinator.knowledge_present,
        documents=len(workspace.store),
        error=caps.error,
    )


@router.get("/health", response_model=HealthResponse)
def health(workspace: Annotated[Workspace, Depends(get_workspace)]) -> HealthResponse:
    return _health(workspace)


@router.post("/health/reload", response_model=HealthResponse)
async def reload_models(
    workspace: Annotated[Workspace, Depends(get_workspace)],
) -> HealthResponse:
    """
    Retry loading the models after a failed start. Rehydration still runs
    only once per process.
    """
    await workspace.initialize_capabilities()
    return _health(workspace)
