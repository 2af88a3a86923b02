import hmac

from fastapi import Header

from backend.app.core.config import settings
from backend.app.services.errors import Unauthorized


async def require_admin(x_admin_token: str | None = Header(default=None)) -> None:
    """Reject the request unless the x-admin-token header matches ADMIN_TOKEN."""
    expected = settings.ADMIN_TOKEN
    if not expected or not x_admin_token:
        raise Unauthorized()
    if not hmac.compare_digest(x_admin_token.encode(), expected.encode()):
        raise Unauthorized()
