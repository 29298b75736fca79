"""FastAPI authentication dependencies: sender identity and capability resolution."""

from __future__ import annotations

import time
from collections.abc import Callable

import jwt
from fastapi import Depends, Header, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from questhub.auth.capabilities import resolve_capability
from questhub.auth.jwt import verify_token
from questhub.database import get_session
from questhub.db.models import Capability, CapabilityKind

_bearer = HTTPBearer()


async def get_sender(
    credentials: HTTPAuthorizationCredentials = Security(_bearer),
) -> str:
    """Extract and verify the caller JWT, return the sender address."""
    try:
        payload = verify_token(credentials.credentials, expected_type="access")
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    return str(payload["sub"])


def _capability_dependency(kind: CapabilityKind) -> Callable[..., object]:
    async def dependency(
        x_capability_token: str | None = Header(default=None),
        db: AsyncSession = Depends(get_session),
    ) -> Capability:
        if not x_capability_token:
            raise HTTPException(status_code=401, detail="X-Capability-Token header required")
        return await resolve_capability(db, x_capability_token, kind)

    return dependency


get_hub_admin_cap = _capability_dependency(CapabilityKind.HUB_ADMIN)
get_space_admin_cap = _capability_dependency(CapabilityKind.SPACE_ADMIN)
get_verifier_cap = _capability_dependency(CapabilityKind.VERIFIER)


def now_ms() -> int:
    return int(time.time() * 1000)


def get_clock() -> Callable[[], int]:
    """Wall clock in epoch milliseconds (overridden in tests)."""
    return now_ms
