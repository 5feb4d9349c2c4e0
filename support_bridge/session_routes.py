from __future__ import annotations

from fastapi import APIRouter, Depends

from support_bridge.auth import require_admin_token
from support_bridge.deps import get_registry
from support_bridge.errors import not_found
from support_bridge.models import SessionSnapshot
from support_bridge.routing.registry import IdentifierRegistry


router = APIRouter(
    tags=["sessions"],
    dependencies=[Depends(require_admin_token)],
)


@router.get("/sessions/{session_id}", response_model=SessionSnapshot)
async def get_session_endpoint(
    session_id: str,
    registry: IdentifierRegistry = Depends(get_registry),
) -> SessionSnapshot:
    """
    Return what the registry knows about a session.
    """
    snapshot = registry.snapshot(session_id)
    if snapshot is None:
        raise not_found(f"Session '{session_id}' not found")
    return snapshot


__all__ = ["router"]
