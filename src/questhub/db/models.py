"""ORM models for the quest campaign ledger.

Hierarchy: hub -> spaces -> journeys -> quests. Each child row carries its
parent's id as a foreign key; per-user side tables hang off the entity they
track and are unique per (entity, user).
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from questhub.db.base import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Enums (stored as strings)
# ---------------------------------------------------------------------------


class CapabilityKind(str, enum.Enum):
    HUB_ADMIN = "hub_admin"
    SPACE_ADMIN = "space_admin"
    VERIFIER = "verifier"


class RewardType(str, enum.Enum):
    TRANSFERABLE = "Transferable"
    NON_TRANSFERABLE = "NonTransferable"


class QuestState(str, enum.Enum):
    """Per-user quest lifecycle. ``NOT_STARTED`` is never stored; it is the absence of a row."""

    NOT_STARTED = "not_started"
    STARTED = "started"
    COMPLETED = "completed"


class FeeKind(str, enum.Enum):
    JOURNEY_CREATION = "journey_creation"
    QUEST_START = "quest_start"


class TransferKind(str, enum.Enum):
    FEE_IN = "fee_in"
    PAYOUT = "payout"
    WITHDRAWAL = "withdrawal"


# ---------------------------------------------------------------------------
# Hub registry
# ---------------------------------------------------------------------------


class Hub(Base):
    """Protocol-wide singleton: version, fee schedule, treasury, verifier payout address."""

    __tablename__ = "hubs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    treasury_balance: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    fee_journey_creation: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    fee_quest_start: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    verifier_address: Mapped[str] = mapped_column(String(128), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)


class CreationCredit(Base):
    """Remaining space-creation credit per creator address."""

    __tablename__ = "creation_credits"

    hub_id: Mapped[str] = mapped_column(String(36), ForeignKey("hubs.id", ondelete="CASCADE"), primary_key=True)
    address: Mapped[str] = mapped_column(String(128), primary_key=True)
    remaining: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)


class HubSpace(Base):
    """Append-only ordered list of space ids registered with the hub."""

    __tablename__ = "hub_spaces"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    hub_id: Mapped[str] = mapped_column(String(36), ForeignKey("hubs.id", ondelete="CASCADE"), nullable=False)
    space_id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False)


# ---------------------------------------------------------------------------
# Capabilities
# ---------------------------------------------------------------------------


class Capability(Base):
    """Unforgeable authorization object. Only the argon2 hash of its secret is stored."""

    __tablename__ = "capabilities"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    space_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("spaces.id", ondelete="CASCADE"), nullable=True, index=True
    )
    space_name: Mapped[str | None] = mapped_column(String(256), nullable=True)
    holder: Mapped[str] = mapped_column(String(128), nullable=False)
    token_prefix: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    token_hash: Mapped[str] = mapped_column(String(256), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)


# ---------------------------------------------------------------------------
# Spaces
# ---------------------------------------------------------------------------


class Space(Base):
    """Tenant container for journeys."""

    __tablename__ = "spaces"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    image_url: Mapped[str] = mapped_column(Text, nullable=False, default="")
    website_url: Mapped[str] = mapped_column(Text, nullable=False, default="")
    twitter_url: Mapped[str] = mapped_column(Text, nullable=False, default="")
    creator: Mapped[str] = mapped_column(String(128), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)


class SpacePoints(Base):
    """Space-scoped leaderboard: points per user across all journeys of the space."""

    __tablename__ = "space_points"
    __table_args__ = (UniqueConstraint("space_id", "user_address"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    space_id: Mapped[str] = mapped_column(String(36), ForeignKey("spaces.id", ondelete="CASCADE"), nullable=False)
    user_address: Mapped[str] = mapped_column(String(128), nullable=False)
    points: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)


# ---------------------------------------------------------------------------
# Journeys
# ---------------------------------------------------------------------------


class Journey(Base):
    """Time-boxed campaign with a points threshold and a reward configuration."""

    __tablename__ = "journeys"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    space_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("spaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    reward_type: Mapped[str] = mapped_column(String(16), nullable=False)
    reward_required_points: Mapped[int] = mapped_column(BigInteger, nullable=False)
    reward_image_url: Mapped[str] = mapped_column(Text, nullable=False, default="")
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    start_time: Mapped[int] = mapped_column(BigInteger, nullable=False)
    end_time: Mapped[int] = mapped_column(BigInteger, nullable=False)
    total_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)


class JourneyProgress(Base):
    """Per-user accumulated points and completed-quest count inside one journey."""

    __tablename__ = "journey_progress"
    __table_args__ = (UniqueConstraint("journey_id", "user_address"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    journey_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("journeys.id", ondelete="CASCADE"), nullable=False
    )
    user_address: Mapped[str] = mapped_column(String(128), nullable=False)
    points: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    completed_quests: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class JourneyCompletion(Base):
    """Presence means the user already claimed the journey reward. UNIQUE(journey_id, user_address)."""

    __tablename__ = "journey_completions"
    __table_args__ = (UniqueConstraint("journey_id", "user_address"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    journey_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("journeys.id", ondelete="CASCADE"), nullable=False
    )
    user_address: Mapped[str] = mapped_column(String(128), nullable=False)
    reward_id: Mapped[str] = mapped_column(String(36), nullable=False)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)


# ---------------------------------------------------------------------------
# Quests
# ---------------------------------------------------------------------------


class Quest(Base):
    """Atomic task worth a fixed number of points, with an opaque external-action descriptor."""

    __tablename__ = "quests"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    journey_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("journeys.id", ondelete="CASCADE"), nullable=False, index=True
    )
    points_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    call_to_action_url: Mapped[str] = mapped_column(Text, nullable=False, default="")
    target_program_id: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    module_name: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    function_name: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    arguments: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    requires_start: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    total_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)


class QuestProgress(Base):
    """Per-user quest state. UNIQUE(quest_id, user_address) prevents double attestation."""

    __tablename__ = "quest_progress"
    __table_args__ = (UniqueConstraint("quest_id", "user_address"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    quest_id: Mapped[str] = mapped_column(String(36), ForeignKey("quests.id", ondelete="CASCADE"), nullable=False)
    user_address: Mapped[str] = mapped_column(String(128), nullable=False)
    state: Mapped[str] = mapped_column(String(16), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)


# ---------------------------------------------------------------------------
# Rewards
# ---------------------------------------------------------------------------


class Reward(Base):
    """Minted journey reward. Display fields are a snapshot taken at mint time."""

    __tablename__ = "rewards"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    variant: Mapped[str] = mapped_column(String(16), nullable=False)
    owner: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    claimer: Mapped[str] = mapped_column(String(128), nullable=False)
    space_id: Mapped[str] = mapped_column(String(36), nullable=False)
    journey_id: Mapped[str] = mapped_column(String(36), nullable=False)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    image_url: Mapped[str] = mapped_column(Text, nullable=False, default="")
    minted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)


# ---------------------------------------------------------------------------
# Events & treasury ledger
# ---------------------------------------------------------------------------


class LedgerEvent(Base):
    """Append-only event log consumed by off-chain indexers."""

    __tablename__ = "ledger_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_type: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    space_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    journey_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    quest_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    user_address: Mapped[str | None] = mapped_column(String(128), nullable=True)
    reward_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)


class ValueTransfer(Base):
    """Value movements through the treasury collaborator (fees in, payouts, withdrawals)."""

    __tablename__ = "value_transfers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    recipient: Mapped[str | None] = mapped_column(String(128), nullable=True)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    memo: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)
