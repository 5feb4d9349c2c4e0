import hmac

from fastapi import Header

from support_bridge.errors import not_found, unauthorized
from support_bridge.settings import settings


async def require_admin_token(
    authorization: str | None = Header(default=None),
) -> str:
    """
    Guard for the operator-facing inspection API.

    Expects `Authorization: Bearer <ADMIN_API_TOKEN>`. When no token is
    configured the API is switched off and every call answers 404.
    """
    expected = settings.admin_api_token
    if not expected:
        raise not_found("Not Found")

    if not authorization:
        raise unauthorized("Missing Authorization header")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise unauthorized("Invalid Authorization header, expected 'Bearer <token>'")

    if not hmac.compare_digest(token.strip().encode("utf-8"), expected.encode("utf-8")):
        raise unauthorized("Invalid admin token")

    return token
