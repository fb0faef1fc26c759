"""
Transaction read models: serialization and filtered listing.

Writes go through app.modules.ledger.
"""

from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.timezone import format_datetime_for_api, local_day_start
from app.modules.categories.models import Category
from app.modules.ledger.services import transaction_direction
from app.modules.transactions.models import TRANSACTION_KINDS, Transaction


def serialize_transaction(tx: Transaction) -> Dict[str, Any]:
    category = None
    if tx.category is not None:
        category = {"id": tx.category.id, "name": tx.category.name, "type": tx.category.type}

    wallet = None
    if tx.wallet is not None:
        wallet = {"id": tx.wallet.id, "name": tx.wallet.name, "type": tx.wallet.type, "icon": tx.wallet.icon}

    return {
        "id": tx.id,
        "amount": float(tx.amount),
        "direction": transaction_direction(tx),
        "note": tx.note,
        "transaction_date": format_datetime_for_api(tx.transaction_date),
        "kind": tx.kind,
        "category": category,
        "category_name": tx.category.name if tx.category is not None else tx.category_name,
        "wallet": wallet,
        "transfer_id": tx.transfer_id,
        "related_wallet_id": tx.related_wallet_id,
        "savings_goal_id": tx.savings_goal_id,
        "created_at": format_datetime_for_api(tx.created_at),
    }


def day_bounds(start: Optional[date], end: Optional[date]) -> Tuple[Optional[datetime], Optional[datetime]]:
    """Inclusive local calendar dates to a half-open naive UTC range."""
    start_dt = local_day_start(start) if start else None
    end_dt = local_day_start(end + timedelta(days=1)) if end else None
    return start_dt, end_dt


def list_transactions(
    db: Session,
    owner_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    category_id: Optional[int] = None,
    wallet_id: Optional[int] = None,
    type_: Optional[str] = None,
    kind: Optional[str] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
) -> Dict[str, Any]:
    """
    Filtered, newest-first page of the owner's transactions.

    type_ filters by category type ('in' / 'out'); uncategorized savings
    rows never match a type filter.
    """
    query = db.query(Transaction).filter(Transaction.owner_id == owner_id)

    start_dt, end_dt = day_bounds(start_date, end_date)
    if start_dt:
        query = query.filter(Transaction.transaction_date >= start_dt)
    if end_dt:
        query = query.filter(Transaction.transaction_date < end_dt)
    if category_id:
        query = query.filter(Transaction.category_id == category_id)
    if wallet_id:
        query = query.filter(Transaction.wallet_id == wallet_id)
    if kind in TRANSACTION_KINDS:
        query = query.filter(Transaction.kind == kind)
    if type_ in ("in", "out"):
        query = query.join(Category, Transaction.category_id == Category.id).filter(Category.type == type_)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            Transaction.note.ilike(pattern),
            Transaction.category_name.ilike(pattern),
        ))

    page = max(page, 1)
    limit = max(min(limit, 100), 1)
    total = query.count()
    rows: List[Transaction] = (
        query.order_by(Transaction.transaction_date.desc(), Transaction.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return {
        "transactions": [serialize_transaction(t) for t in rows],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        },
    }
