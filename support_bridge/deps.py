from fastapi import Request

from .bridge import SupportBridge
from .errors import http_error
from .routing.registry import IdentifierRegistry


def get_bridge(request: Request) -> SupportBridge:
    """
    FastAPI dependency returning the process-wide bridge built at startup.
    """
    bridge = getattr(request.app.state, "bridge", None)
    if bridge is None:
        raise http_error(
            503, error="service_unavailable", message="Bridge is not started"
        )
    return bridge


def get_registry(request: Request) -> IdentifierRegistry:
    return get_bridge(request).registry
