"""Optional shared-key guard for the /dashboard routes."""

import logging
import secrets

from fastapi import HTTPException, Header

from ecoar.config import settings

_LOGGER = logging.getLogger(__name__)


def _presented_key(x_api_key: str | None, authorization: str | None) -> str | None:
    if x_api_key is not None:
        return x_api_key
    if authorization and authorization.startswith("Bearer "):
        return authorization[len("Bearer "):].strip()
    return None


async def verify_api_key(
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
    authorization: str | None = Header(default=None),
) -> str:
    """Accept the dashboard key from X-API-Key or an Authorization bearer token.

    With DASHBOARD_API_KEY unset the dashboard is open and every request passes.
    """
    expected = settings.dashboard_api_key
    if expected is None:
        return ""

    presented = _presented_key(x_api_key, authorization)
    if presented is None or not secrets.compare_digest(presented.encode(), expected.encode()):
        _LOGGER.warning("Rejected dashboard request: %s API key", "missing" if presented is None else "wrong")
        raise HTTPException(status_code=401, detail="Invalid or missing API key")

    return presented
