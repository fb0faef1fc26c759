"""
Transaction API routes.

Transactions are created and deleted only; there is no update path.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.auth import get_current_user_id
from app.core.database import get_db
from app.core.errors import atomic
from app.core.timezone import to_local_date, utcnow
from app.modules.ledger.services import create_transaction, delete_transaction
from app.modules.notifications.services import refresh_budget_notifications
from app.modules.transactions.services import list_transactions, serialize_transaction

router = APIRouter()


class TransactionCreate(BaseModel):
    category_id: int
    wallet_id: int
    amount: Decimal = Field(gt=0, decimal_places=2)
    transaction_date: Optional[datetime] = None
    note: Optional[str] = None


@router.get("/")
async def get_transactions(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    category_id: Optional[int] = None,
    wallet_id: Optional[int] = None,
    type: Optional[Literal["in", "out"]] = None,
    kind: Optional[Literal["normal", "transfer_out", "transfer_in"]] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    List transactions newest first.

    Dates are inclusive calendar days. `type` filters on the category
    type, `kind` on normal vs transfer legs.
    """
    return list_transactions(
        db,
        owner_id,
        start_date=start_date,
        end_date=end_date,
        category_id=category_id,
        wallet_id=wallet_id,
        type_=type,
        kind=kind,
        search=search,
        page=page,
        limit=limit,
    )


@router.post("/", status_code=status.HTTP_201_CREATED)
async def add_transaction(
    body: TransactionCreate,
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Record income or expense and update the wallet balance."""
    with atomic(db, "create transaction"):
        tx = create_transaction(
            db,
            owner_id,
            category_id=body.category_id,
            wallet_id=body.wallet_id,
            amount=body.amount,
            transaction_date=body.transaction_date or utcnow(),
            note=body.note,
        )

    refresh_budget_notifications(db, owner_id, tx.category_id, to_local_date(tx.transaction_date))

    result = serialize_transaction(tx)
    result["wallet_balance"] = float(tx.wallet.balance)
    return result


@router.delete("/{transaction_id}")
async def remove_transaction(
    transaction_id: int,
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Delete a transaction (both legs for a transfer) and reverse its balance effect."""
    with atomic(db, "delete transaction"):
        deleted = delete_transaction(db, owner_id, transaction_id)

    for row in deleted:
        refresh_budget_notifications(db, owner_id, row.category_id, to_local_date(row.transaction_date))

    return {
        "message": "Transaction deleted",
        "deleted_ids": [row.id for row in deleted],
    }
