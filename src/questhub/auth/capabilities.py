"""Capability tokens: minting, argon2id-hashed storage, resolution and scope checks.

A capability is an unforgeable secret shown to its holder exactly once.
Possession of the secret is the only authorization mechanism; the database
keeps a lookup prefix plus an argon2id hash, never the secret itself.
"""

from __future__ import annotations

import logging
import secrets

import argon2
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from questhub.db.models import Capability, CapabilityKind, Space
from questhub.errors import NotAuthorizedError

logger = logging.getLogger(__name__)

TOKEN_PREFIX = "qhcap_"
_LOOKUP_PREFIX_LEN = 18  # "qhcap_" + 12 hex chars

_hasher = argon2.PasswordHasher(
    time_cost=2,
    memory_cost=65536,
    parallelism=1,
    hash_len=32,
    salt_len=16,
    type=argon2.Type.ID,
)


def generate_capability_token() -> tuple[str, str, str]:
    """
    Generate a new capability secret.

    Returns:
        (full_token, lookup_prefix, argon2_hash).
        The full token is handed to the holder once, never stored.
    """
    full_token = f"{TOKEN_PREFIX}{secrets.token_hex(32)}"
    prefix = full_token[:_LOOKUP_PREFIX_LEN]
    token_hash = _hasher.hash(full_token)
    return full_token, prefix, token_hash


def verify_capability_token(full_token: str, stored_hash: str) -> bool:
    """Verify a presented capability secret against its stored argon2 hash."""
    try:
        return _hasher.verify(stored_hash, full_token)
    except argon2.exceptions.VerifyMismatchError:
        return False
    except argon2.exceptions.InvalidHashError:
        return False


async def mint_capability(
    db: AsyncSession,
    kind: CapabilityKind,
    holder: str,
    space: Space | None = None,
) -> tuple[Capability, str]:
    """Create a capability row and return it with its one-time secret."""
    token, prefix, token_hash = generate_capability_token()
    cap = Capability(
        kind=kind.value,
        space_id=space.id if space is not None else None,
        space_name=space.name if space is not None else None,
        holder=holder,
        token_prefix=prefix,
        token_hash=token_hash,
    )
    db.add(cap)
    await db.flush()
    logger.info("Minted %s capability %s for %s", kind.value, cap.id, holder)
    return cap, token


async def resolve_capability(db: AsyncSession, token: str, kind: CapabilityKind) -> Capability:
    """Look up the capability matching a presented secret and expected kind.

    Raises NotAuthorizedError when no capability of that kind matches.
    """
    if not token.startswith(TOKEN_PREFIX):
        raise NotAuthorizedError("Malformed capability token")

    result = await db.execute(
        select(Capability).where(
            Capability.token_prefix == token[:_LOOKUP_PREFIX_LEN],
            Capability.kind == kind.value,
        )
    )
    for cap in result.scalars():
        if verify_capability_token(token, cap.token_hash):
            return cap
    raise NotAuthorizedError(f"No {kind.value} capability matches the presented token")


# ---------------------------------------------------------------------------
# Scope checks
# ---------------------------------------------------------------------------


def require_hub_admin(cap: Capability) -> None:
    if cap.kind != CapabilityKind.HUB_ADMIN.value:
        raise NotAuthorizedError("Hub admin capability required")


def require_verifier(cap: Capability) -> None:
    if cap.kind != CapabilityKind.VERIFIER.value:
        raise NotAuthorizedError("Verifier capability required")


def require_space_admin(cap: Capability, space: Space) -> None:
    """The capability must be a space-admin cap bound to exactly this space."""
    if cap.kind != CapabilityKind.SPACE_ADMIN.value:
        raise NotAuthorizedError("Space admin capability required")
    if cap.space_id != space.id:
        raise NotAuthorizedError(f"Capability {cap.id} is not bound to space {space.id}")
