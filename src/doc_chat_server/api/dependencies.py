from fastapi import Request

from ..runtime.workspace import Workspace


def get_workspace(request: Request) -> Workspace:
    """Return the Workspace created by the application lifespan."""
    return request.app.state.workspace
