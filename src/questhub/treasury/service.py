"""Treasury collaborator — exact-amount fee collection, payouts and withdrawal.

The ledger treats value transfer as an external primitive: a payment is an
integer amount that must equal the configured fee exactly. Every movement is
recorded in ``value_transfers`` so the collaborator's view stays auditable.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from questhub.db.models import Hub, TransferKind, ValueTransfer
from questhub.errors import IncorrectPaymentError

logger = logging.getLogger(__name__)


def _check_exact(payment: int, fee: int) -> None:
    if payment != fee:
        raise IncorrectPaymentError(f"Payment of {payment} does not match fee of {fee}")


async def collect_fee(db: AsyncSession, hub: Hub, payment: int, fee: int, memo: str) -> None:
    """Move an exact-fee payment into the hub treasury."""
    _check_exact(payment, fee)
    hub.treasury_balance = Hub.treasury_balance + fee
    db.add(ValueTransfer(kind=TransferKind.FEE_IN.value, recipient=None, amount=fee, memo=memo))
    await db.flush()
    await db.refresh(hub, attribute_names=["treasury_balance"])


async def pay(db: AsyncSession, recipient: str, payment: int, fee: int, memo: str) -> None:
    """Forward an exact-fee payment straight to ``recipient``."""
    _check_exact(payment, fee)
    db.add(ValueTransfer(kind=TransferKind.PAYOUT.value, recipient=recipient, amount=fee, memo=memo))
    await db.flush()


async def withdraw_all(db: AsyncSession, hub: Hub, recipient: str) -> int:
    """Transfer the whole treasury balance to ``recipient`` and zero it. Zero is a valid amount."""
    amount = hub.treasury_balance
    hub.treasury_balance = 0
    db.add(ValueTransfer(kind=TransferKind.WITHDRAWAL.value, recipient=recipient, amount=amount, memo="withdraw"))
    await db.flush()
    logger.info("Treasury withdrawal: %d to %s", amount, recipient)
    return amount


async def list_transfers(
    db: AsyncSession,
    page: int = 1,
    per_page: int = 50,
) -> tuple[list[ValueTransfer], int]:
    """Paginated transfer history, newest first."""
    total = (await db.execute(select(func.count()).select_from(ValueTransfer))).scalar_one()
    result = await db.execute(
        select(ValueTransfer)
        .order_by(ValueTransfer.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return list(result.scalars().all()), total


async def total_paid_to(db: AsyncSession, recipient: str) -> int:
    """Sum of payouts and withdrawals received by ``recipient``."""
    result = await db.execute(
        select(func.coalesce(func.sum(ValueTransfer.amount), 0)).where(
            ValueTransfer.recipient == recipient,
            ValueTransfer.kind.in_([TransferKind.PAYOUT.value, TransferKind.WITHDRAWAL.value]),
        )
    )
    return int(result.scalar_one())
