"""
Wiring of the routing core.

One SupportBridge per process: a single registry shared by the lifecycle
manager and the router, all driven from the event loop that serves the
WebSocket endpoint and the Telegram update delivery.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union

from support_bridge.channel.hub import ConnectionHub
from support_bridge.routing.lifecycle import SessionLifecycleManager
from support_bridge.routing.registry import IdentifierRegistry
from support_bridge.routing.router import MessageRouter, mint_session_id
from support_bridge.workspace.client import TelegramWorkspace
from support_bridge.workspace.updates import parse_update


@dataclass
class SupportBridge:
    registry: IdentifierRegistry
    hub: ConnectionHub
    workspace: TelegramWorkspace
    lifecycle: SessionLifecycleManager
    router: MessageRouter

    async def handle_update(self, raw: Dict[str, Any]) -> None:
        await self.router.dispatch(parse_update(raw))


def build_bridge(
    workspace: TelegramWorkspace,
    *,
    group_id: Union[int, str],
    requests_thread_id: int,
    logs_thread_id: int,
    hub: Optional[ConnectionHub] = None,
    session_id_factory: Callable[[], str] = mint_session_id,
) -> SupportBridge:
    registry = IdentifierRegistry()
    hub = hub or ConnectionHub()
    lifecycle = SessionLifecycleManager(
        registry,
        workspace,
        hub,
        group_id=group_id,
        requests_thread_id=requests_thread_id,
        logs_thread_id=logs_thread_id,
    )
    router = MessageRouter(
        registry,
        lifecycle,
        hub,
        workspace,
        session_id_factory=session_id_factory,
    )
    return SupportBridge(
        registry=registry,
        hub=hub,
        workspace=workspace,
        lifecycle=lifecycle,
        router=router,
    )


__all__ = ["SupportBridge", "build_bridge"]
