"""
Wallet management service.

Balances are never edited here: the opening balance is set once at
creation and every later change goes through app.modules.ledger.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import NotFoundError, ValidationError
from app.core.timezone import format_datetime_for_api
from app.modules.wallets.models import WALLET_TYPES, Wallet

logger = logging.getLogger(__name__)

# Fields a client may change after creation
EDITABLE_FIELDS = ("name", "type", "currency", "icon", "color", "description", "is_active")


def serialize_wallet(wallet: Wallet) -> Dict[str, Any]:
    return {
        "id": wallet.id,
        "name": wallet.name,
        "type": wallet.type,
        "balance": float(wallet.balance or 0),
        "initial_balance": float(wallet.initial_balance or 0),
        "currency": wallet.currency,
        "icon": wallet.icon,
        "color": wallet.color,
        "description": wallet.description,
        "is_active": wallet.is_active,
        "created_at": format_datetime_for_api(wallet.created_at),
    }


def get_owned_wallet(
    db: Session,
    owner_id: int,
    wallet_id: int,
    active_only: bool = True,
    lock: bool = False,
) -> Wallet:
    """
    Load a wallet of this owner or raise 404.

    With lock=True the row is read with SELECT ... FOR UPDATE and any
    stale copy in the identity map is overwritten.
    """
    query = db.query(Wallet).filter(Wallet.id == wallet_id, Wallet.owner_id == owner_id)
    if active_only:
        query = query.filter(Wallet.is_active.is_(True))
    if lock:
        query = query.with_for_update().populate_existing()

    wallet = query.first()
    if wallet is None:
        raise NotFoundError("Wallet not found")
    return wallet


def lock_wallets(db: Session, owner_id: int, wallet_ids: Iterable[int]) -> Dict[int, Wallet]:
    """
    Lock several active wallets of one owner in ascending id order.

    A fixed lock order keeps two opposite transfers from deadlocking.
    Missing ids are simply absent from the result.
    """
    ids = sorted(set(wallet_ids))
    wallets = (
        db.query(Wallet)
        .filter(Wallet.id.in_(ids), Wallet.owner_id == owner_id, Wallet.is_active.is_(True))
        .order_by(Wallet.id)
        .with_for_update()
        .populate_existing()
        .all()
    )
    return {w.id: w for w in wallets}


def list_wallets(db: Session, owner_id: int, include_inactive: bool = False) -> List[Wallet]:
    query = db.query(Wallet).filter(Wallet.owner_id == owner_id)
    if not include_inactive:
        query = query.filter(Wallet.is_active.is_(True))
    return query.order_by(Wallet.created_at.desc(), Wallet.id.desc()).all()


def create_wallet(
    db: Session,
    owner_id: int,
    name: str,
    type_: str,
    initial_balance: Decimal = Decimal("0"),
    currency: Optional[str] = None,
    icon: Optional[str] = None,
    color: Optional[str] = None,
    description: Optional[str] = None,
) -> Wallet:
    """Create a wallet with an opening balance."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("Wallet name is required")
    if type_ not in WALLET_TYPES:
        raise ValidationError(f"Wallet type must be one of {', '.join(WALLET_TYPES)}")

    wallet = Wallet(
        owner_id=owner_id,
        name=name,
        type=type_,
        balance=initial_balance,
        initial_balance=initial_balance,
        currency=currency or settings.DEFAULT_CURRENCY,
        icon=icon or "💰",
        color=color or "#6366f1",
        description=description,
        is_active=True,
    )
    db.add(wallet)
    db.flush()
    logger.info(f"Created wallet {wallet.id} for user {owner_id} with opening balance {initial_balance}")
    return wallet


def update_wallet(db: Session, owner_id: int, wallet_id: int, changes: Dict[str, Any]) -> Wallet:
    """Apply metadata changes. Balance is not editable."""
    wallet = get_owned_wallet(db, owner_id, wallet_id, active_only=False)

    if changes.get("balance") is not None or changes.get("initial_balance") is not None:
        raise ValidationError("Wallet balance can only change through transactions")

    if changes.get("type") is not None and changes["type"] not in WALLET_TYPES:
        raise ValidationError(f"Wallet type must be one of {', '.join(WALLET_TYPES)}")
    if changes.get("name") is not None:
        changes["name"] = (changes["name"] or "").strip()
        if not changes["name"]:
            raise ValidationError("Wallet name is required")

    for field in EDITABLE_FIELDS:
        if field in changes and changes[field] is not None:
            setattr(wallet, field, changes[field])
    return wallet


def deactivate_wallet(db: Session, owner_id: int, wallet_id: int) -> Wallet:
    """Soft delete. History and balance stay intact."""
    wallet = get_owned_wallet(db, owner_id, wallet_id, active_only=False)
    wallet.is_active = False
    return wallet


def get_wallet_summary(db: Session, owner_id: int) -> Dict[str, Any]:
    """Total balance across active wallets, grouped by wallet type."""
    wallets = list_wallets(db, owner_id)

    total = Decimal("0")
    by_type: Dict[str, Dict[str, Any]] = {}
    for wallet in wallets:
        balance = Decimal(wallet.balance or 0)
        total += balance
        if wallet.type not in by_type:
            by_type[wallet.type] = {"count": 0, "balance": Decimal("0")}
        by_type[wallet.type]["count"] += 1
        by_type[wallet.type]["balance"] += balance

    return {
        "total_balance": float(total),
        "total_wallets": len(wallets),
        "wallets_by_type": {
            t: {"count": v["count"], "balance": float(v["balance"])}
            for t, v in by_type.items()
        },
    }
