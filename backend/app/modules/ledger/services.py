"""
Ledger engine.

Keeps wallet balances, transaction rows and savings goal amounts
consistent. Every operation here:

1. validates ownership and inputs before touching anything,
2. locks the hot rows it will change (SELECT ... FOR UPDATE; wallets in
   ascending id order, a goal before its wallet),
3. writes all rows of the mutation through the caller's session.

Nothing in this module commits. Routers wrap each call in
app.core.errors.atomic so that the whole mutation commits or rolls back
as one database transaction.

Invariant: for every wallet,
    balance == initial_balance + sum(signed_amount(t) for t in its transactions)
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.errors import ConflictError, InsufficientFundsError, NotFoundError, ValidationError
from app.core.timezone import to_naive_utc, utcnow
from app.modules.categories.services import get_or_create_category, get_owned_category
from app.modules.savings.models import SavingsGoal
from app.modules.savings.services import get_owned_goal
from app.modules.transactions.models import (
    SAVINGS_CONTRIBUTION_NAME,
    SAVINGS_WITHDRAWAL_NAME,
    Transaction,
)
from app.modules.wallets.models import Wallet
from app.modules.wallets.services import get_owned_wallet, lock_wallets

logger = logging.getLogger(__name__)

TRANSFER_OUT_CATEGORY = "Chuyển khoản (Ra)"
TRANSFER_IN_CATEGORY = "Chuyển khoản (Vào)"
CENT = Decimal("0.01")


@dataclass
class TransferResult:
    transfer_id: str
    from_wallet: Wallet
    to_wallet: Wallet
    out_transaction: Transaction
    in_transaction: Transaction


@dataclass
class SavingsMovement:
    goal: SavingsGoal
    wallet: Wallet
    transaction: Transaction
    previous_percentage: int


@dataclass
class DeletedTransaction:
    """What the caller needs after a delete to refresh derived state."""
    id: int
    category_id: Optional[int]
    transaction_date: datetime
    wallet_id: int


def _money(amount) -> Decimal:
    value = Decimal(str(amount))
    if value <= 0:
        raise ValidationError("Amount must be greater than 0")
    # Stored with two decimals; anything finer would be rounded on write
    if value != value.quantize(CENT):
        raise ValidationError("Amount cannot have more than 2 decimal places")
    return value


def transaction_direction(tx: Transaction) -> str:
    """'in' when the row adds money to its wallet, 'out' otherwise."""
    if tx.kind == "transfer_out":
        return "out"
    if tx.kind == "transfer_in":
        return "in"
    if tx.category is not None:
        return tx.category.type
    if tx.category_name == SAVINGS_WITHDRAWAL_NAME:
        return "in"
    return "out"


def signed_amount(tx: Transaction) -> Decimal:
    """Effect of a stored transaction on its wallet's balance."""
    amount = Decimal(tx.amount)
    return amount if transaction_direction(tx) == "in" else -amount


def _apply_delta(wallet: Wallet, delta: Decimal):
    wallet.balance = Decimal(wallet.balance or 0) + delta


# -----------------------------------------------------------------------------
# Normal transactions
# -----------------------------------------------------------------------------

def create_transaction(
    db: Session,
    owner_id: int,
    category_id: int,
    wallet_id: int,
    amount,
    transaction_date: datetime,
    note: Optional[str] = None,
) -> Transaction:
    """
    Record an income or expense against a wallet.

    The sign comes from the category type. Wallets may go negative here
    (credit wallets), unlike transfers and savings contributions.
    """
    amount = _money(amount)
    category = get_owned_category(db, owner_id, category_id)
    wallet = get_owned_wallet(db, owner_id, wallet_id, lock=True)

    tx = Transaction(
        owner_id=owner_id,
        category_id=category.id,
        wallet_id=wallet.id,
        amount=amount,
        note=note,
        transaction_date=to_naive_utc(transaction_date),
        kind="normal",
    )
    tx.category = category
    db.add(tx)

    _apply_delta(wallet, signed_amount(tx))
    db.flush()

    logger.info(
        f"User {owner_id}: {category.type} {amount} on wallet {wallet.id} "
        f"(category {category.id}), balance now {wallet.balance}"
    )
    return tx


def delete_transaction(db: Session, owner_id: int, transaction_id: int) -> List[DeletedTransaction]:
    """
    Delete a transaction and reverse its balance effect exactly.

    Deleting either leg of a transfer removes both legs. Savings rows are
    refused because the goal amounts would no longer match.
    """
    tx = db.query(Transaction).filter(
        Transaction.id == transaction_id,
        Transaction.owner_id == owner_id,
    ).first()
    if tx is None:
        raise NotFoundError("Transaction not found")

    if tx.savings_goal_id is not None or tx.category_name in (SAVINGS_CONTRIBUTION_NAME, SAVINGS_WITHDRAWAL_NAME):
        raise ConflictError("Savings transactions cannot be deleted; withdraw from or contribute to the goal instead")

    rows = [tx]
    if tx.kind in ("transfer_out", "transfer_in") and tx.transfer_id:
        rows = db.query(Transaction).filter(
            Transaction.owner_id == owner_id,
            Transaction.transfer_id == tx.transfer_id,
        ).all()

    # Inactive wallets still get their history reversed
    wallet_ids = sorted({row.wallet_id for row in rows})
    wallets = {
        w.id: w
        for w in db.query(Wallet)
        .filter(Wallet.id.in_(wallet_ids), Wallet.owner_id == owner_id)
        .order_by(Wallet.id)
        .with_for_update()
        .populate_existing()
        .all()
    }

    deleted = []
    for row in rows:
        wallet = wallets.get(row.wallet_id)
        if wallet is None:
            raise NotFoundError("Wallet not found")
        _apply_delta(wallet, -signed_amount(row))
        deleted.append(DeletedTransaction(
            id=row.id,
            category_id=row.category_id,
            transaction_date=row.transaction_date,
            wallet_id=row.wallet_id,
        ))
        db.delete(row)

    db.flush()
    logger.info(f"User {owner_id}: deleted transaction(s) {[d.id for d in deleted]}")
    return deleted


# -----------------------------------------------------------------------------
# Transfers
# -----------------------------------------------------------------------------

def transfer(
    db: Session,
    owner_id: int,
    from_wallet_id: int,
    to_wallet_id: int,
    amount,
    note: Optional[str] = None,
) -> TransferResult:
    """
    Move money between two wallets of the same owner.

    Writes one transfer_out and one transfer_in row sharing a transfer id
    and adjusts both balances. No overdraft is allowed.
    """
    amount = _money(amount)
    if from_wallet_id == to_wallet_id:
        raise ValidationError("Cannot transfer to the same wallet")

    wallets = lock_wallets(db, owner_id, [from_wallet_id, to_wallet_id])
    from_wallet = wallets.get(from_wallet_id)
    to_wallet = wallets.get(to_wallet_id)
    if from_wallet is None:
        raise NotFoundError("Source wallet not found")
    if to_wallet is None:
        raise NotFoundError("Destination wallet not found")

    if Decimal(from_wallet.balance) < amount:
        raise InsufficientFundsError(
            f"Insufficient balance in source wallet. Current balance: {from_wallet.balance}",
            available=Decimal(from_wallet.balance),
            requested=amount,
        )

    out_category = get_or_create_category(db, owner_id, TRANSFER_OUT_CATEGORY, "out")
    in_category = get_or_create_category(db, owner_id, TRANSFER_IN_CATEGORY, "in")

    transfer_id = str(uuid.uuid4())
    now = utcnow()
    base_note = note or f"Chuyển từ {from_wallet.name} sang {to_wallet.name}"

    out_tx = Transaction(
        owner_id=owner_id,
        category_id=out_category.id,
        wallet_id=from_wallet.id,
        amount=amount,
        note=f"{base_note} (Chuyển ra)",
        transaction_date=now,
        kind="transfer_out",
        transfer_id=transfer_id,
        related_wallet_id=to_wallet.id,
    )
    in_tx = Transaction(
        owner_id=owner_id,
        category_id=in_category.id,
        wallet_id=to_wallet.id,
        amount=amount,
        note=f"{base_note} (Nhận vào)",
        transaction_date=now,
        kind="transfer_in",
        transfer_id=transfer_id,
        related_wallet_id=from_wallet.id,
    )
    db.add_all([out_tx, in_tx])

    _apply_delta(from_wallet, -amount)
    _apply_delta(to_wallet, amount)
    db.flush()

    logger.info(
        f"User {owner_id}: transfer {transfer_id} of {amount} "
        f"from wallet {from_wallet.id} to wallet {to_wallet.id}"
    )
    return TransferResult(
        transfer_id=transfer_id,
        from_wallet=from_wallet,
        to_wallet=to_wallet,
        out_transaction=out_tx,
        in_transaction=in_tx,
    )


# -----------------------------------------------------------------------------
# Savings goals
# -----------------------------------------------------------------------------

def contribute(
    db: Session,
    owner_id: int,
    goal_id: int,
    wallet_id: int,
    amount,
    note: Optional[str] = None,
) -> SavingsMovement:
    """
    Move money from a wallet into an active savings goal.

    Reaching the target completes the goal and stamps completed_at.
    """
    amount = _money(amount)
    goal = get_owned_goal(db, owner_id, goal_id, lock=True)
    if goal.status != "active":
        raise ValidationError("This savings goal is no longer active")

    wallet = get_owned_wallet(db, owner_id, wallet_id, lock=True)
    if Decimal(wallet.balance) < amount:
        raise InsufficientFundsError(
            f"Insufficient wallet balance. Current balance: {wallet.balance}, required: {amount}",
            available=Decimal(wallet.balance),
            requested=amount,
        )

    previous_percentage = goal.percentage

    tx = Transaction(
        owner_id=owner_id,
        wallet_id=wallet.id,
        amount=amount,
        category_name=SAVINGS_CONTRIBUTION_NAME,
        note=note or f"Đóng góp vào mục tiêu: {goal.name}",
        transaction_date=utcnow(),
        kind="normal",
        savings_goal_id=goal.id,
    )
    db.add(tx)

    _apply_delta(wallet, -amount)
    goal.current_amount = Decimal(goal.current_amount or 0) + amount

    if goal.current_amount >= Decimal(goal.target_amount):
        goal.status = "completed"
        goal.completed_at = utcnow()
        logger.info(f"User {owner_id}: savings goal {goal.id} completed")

    db.flush()
    logger.info(f"User {owner_id}: contributed {amount} from wallet {wallet.id} to goal {goal.id}")
    return SavingsMovement(goal=goal, wallet=wallet, transaction=tx, previous_percentage=previous_percentage)


def withdraw(
    db: Session,
    owner_id: int,
    goal_id: int,
    wallet_id: int,
    amount,
    note: Optional[str] = None,
) -> SavingsMovement:
    """
    Move money from a savings goal back into a wallet.

    A completed goal that drops below its target is reopened.
    """
    amount = _money(amount)
    goal = get_owned_goal(db, owner_id, goal_id, lock=True)
    if Decimal(goal.current_amount or 0) < amount:
        raise InsufficientFundsError(
            f"Insufficient savings balance. Current balance: {goal.current_amount}",
            available=Decimal(goal.current_amount or 0),
            requested=amount,
        )

    wallet = get_owned_wallet(db, owner_id, wallet_id, lock=True)

    previous_percentage = goal.percentage

    tx = Transaction(
        owner_id=owner_id,
        wallet_id=wallet.id,
        amount=amount,
        category_name=SAVINGS_WITHDRAWAL_NAME,
        note=note or f"Rút từ mục tiêu: {goal.name}",
        transaction_date=utcnow(),
        kind="normal",
        savings_goal_id=goal.id,
    )
    db.add(tx)

    _apply_delta(wallet, amount)
    goal.withdrawn_amount = Decimal(goal.withdrawn_amount or 0) + amount
    goal.current_amount = Decimal(goal.current_amount) - amount

    if goal.status == "completed" and goal.current_amount < Decimal(goal.target_amount):
        goal.status = "active"
        goal.completed_at = None
        logger.info(f"User {owner_id}: savings goal {goal.id} reopened after withdrawal")

    db.flush()
    logger.info(f"User {owner_id}: withdrew {amount} from goal {goal.id} to wallet {wallet.id}")
    return SavingsMovement(goal=goal, wallet=wallet, transaction=tx, previous_percentage=previous_percentage)


# -----------------------------------------------------------------------------
# Audit
# -----------------------------------------------------------------------------

def balance_from_log(db: Session, wallet: Wallet) -> Decimal:
    """Fold the wallet's transaction log onto its opening balance."""
    rows = db.query(Transaction).filter(Transaction.wallet_id == wallet.id).all()
    return Decimal(wallet.initial_balance or 0) + sum((signed_amount(t) for t in rows), Decimal("0"))


def reconcile_wallet(db: Session, owner_id: int, wallet_id: int) -> Dict[str, Any]:
    """Compare the stored running balance with the one derived from history."""
    wallet = get_owned_wallet(db, owner_id, wallet_id, active_only=False)
    derived = balance_from_log(db, wallet)
    stored = Decimal(wallet.balance or 0)
    if stored != derived:
        logger.warning(f"Wallet {wallet.id} drift: stored {stored}, derived {derived}")
    return {
        "wallet_id": wallet.id,
        "stored_balance": float(stored),
        "derived_balance": float(derived),
        "difference": float(stored - derived),
        "consistent": stored == derived,
    }
