"""Version gate for hub and space objects.

Every mutating operation checks that the stamped ``version`` of the hub or
space it touches equals ``CURRENT_VERSION``. After a deploy that bumps
``CURRENT_VERSION`` the objects are frozen until an explicit migration
advances them.
"""

from __future__ import annotations

import logging
from typing import Protocol

from questhub.errors import NotUpgradeError, WrongVersionError

logger = logging.getLogger(__name__)

CURRENT_VERSION = 1


class Versioned(Protocol):
    id: str
    version: int


def check_version(obj: Versioned) -> None:
    """Raise WrongVersionError unless ``obj`` is stamped with the running version."""
    if obj.version != CURRENT_VERSION:
        raise WrongVersionError(
            f"{type(obj).__name__} {obj.id} is at version {obj.version}, expected {CURRENT_VERSION}"
        )


def advance_version(obj: Versioned) -> int:
    """Move ``obj`` forward to CURRENT_VERSION. Returns the previous version.

    Raises NotUpgradeError when the object is already current (or ahead of
    this build), so a second migration fails deterministically.
    """
    if obj.version >= CURRENT_VERSION:
        raise NotUpgradeError(
            f"{type(obj).__name__} {obj.id} is at version {obj.version}; nothing to migrate to"
        )
    old = obj.version
    obj.version = CURRENT_VERSION
    logger.info("Migrated %s %s: v%d -> v%d", type(obj).__name__, obj.id, old, CURRENT_VERSION)
    return old
