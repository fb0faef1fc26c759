"""
Wallet API routes.
"""

from decimal import Decimal
from typing import Literal, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.auth import get_current_user_id
from app.core.database import get_db
from app.core.errors import atomic
from app.core.timezone import to_local_date
from app.modules.ledger.services import reconcile_wallet, transfer
from app.modules.notifications.services import refresh_budget_notifications
from app.modules.transactions.services import serialize_transaction
from app.modules.wallets.services import (
    create_wallet,
    deactivate_wallet,
    get_owned_wallet,
    get_wallet_summary,
    list_wallets,
    serialize_wallet,
    update_wallet,
)

router = APIRouter()

WalletType = Literal["cash", "bank", "credit", "ewallet"]


class WalletCreate(BaseModel):
    name: str
    type: WalletType = "cash"
    initial_balance: Decimal = Field(default=Decimal("0"), decimal_places=2)
    currency: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    description: Optional[str] = None


class WalletUpdate(BaseModel):
    name: Optional[str] = None
    type: Optional[WalletType] = None
    currency: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None
    balance: Optional[Decimal] = None


class TransferRequest(BaseModel):
    from_wallet_id: int
    to_wallet_id: int
    amount: Decimal = Field(gt=0, decimal_places=2)
    note: Optional[str] = None


@router.get("/")
async def get_wallets(
    include_inactive: bool = False,
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    wallets = list_wallets(db, owner_id, include_inactive=include_inactive)
    return [serialize_wallet(w) for w in wallets]


@router.get("/summary/total")
async def get_total_balance(
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Total balance of active wallets, broken down by wallet type."""
    return get_wallet_summary(db, owner_id)


@router.get("/{wallet_id}")
async def get_wallet(
    wallet_id: int,
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return serialize_wallet(get_owned_wallet(db, owner_id, wallet_id, active_only=False))


@router.get("/{wallet_id}/reconcile")
async def reconcile(
    wallet_id: int,
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Compare the stored balance with the balance rebuilt from history."""
    return reconcile_wallet(db, owner_id, wallet_id)


@router.post("/", status_code=status.HTTP_201_CREATED)
async def add_wallet(
    body: WalletCreate,
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    with atomic(db, "create wallet"):
        wallet = create_wallet(
            db,
            owner_id,
            name=body.name,
            type_=body.type,
            initial_balance=body.initial_balance,
            currency=body.currency,
            icon=body.icon,
            color=body.color,
            description=body.description,
        )
    return serialize_wallet(wallet)


@router.put("/{wallet_id}")
async def edit_wallet(
    wallet_id: int,
    body: WalletUpdate,
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Update wallet details. The balance is rejected; use transactions."""
    with atomic(db, "update wallet"):
        wallet = update_wallet(db, owner_id, wallet_id, body.model_dump(exclude_unset=True))
    return serialize_wallet(wallet)


@router.delete("/{wallet_id}")
async def delete_wallet(
    wallet_id: int,
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    with atomic(db, "deactivate wallet"):
        deactivate_wallet(db, owner_id, wallet_id)
    return {"message": "Wallet deleted"}


@router.post("/transfer")
async def transfer_money(
    body: TransferRequest,
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Move money between two of the caller's wallets."""
    with atomic(db, "transfer"):
        result = transfer(db, owner_id, body.from_wallet_id, body.to_wallet_id, body.amount, body.note)

    for leg in (result.out_transaction, result.in_transaction):
        refresh_budget_notifications(db, owner_id, leg.category_id, to_local_date(leg.transaction_date))

    return {
        "message": "Transfer completed",
        "transfer_id": result.transfer_id,
        "from_wallet": serialize_wallet(result.from_wallet),
        "to_wallet": serialize_wallet(result.to_wallet),
        "transactions": [
            serialize_transaction(result.out_transaction),
            serialize_transaction(result.in_transaction),
        ],
    }
