"""
Dashboard API routes.
Aggregates everything the home page needs in one request: profile, a
filtered page of transactions, categories, budget alerts and wallets.
All data is read fresh from the database for the calling user.
"""

from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.auth import get_current_user_id
from app.core.database import get_db
from app.modules.budgets.services import budget_alerts
from app.modules.categories.services import list_categories, serialize_category
from app.modules.transactions.services import list_transactions
from app.modules.users.services import get_user, serialize_user
from app.modules.wallets.services import list_wallets, serialize_wallet

router = APIRouter()


@router.get("/")
async def get_dashboard(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    category_id: Optional[int] = None,
    wallet_id: Optional[int] = None,
    type: Optional[Literal["in", "out"]] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Home page payload.
    Transaction filters behave exactly like GET /transactions.
    """
    page_data = list_transactions(
        db,
        owner_id,
        start_date=start_date,
        end_date=end_date,
        category_id=category_id,
        wallet_id=wallet_id,
        type_=type,
        search=search,
        page=page,
        limit=limit,
    )

    return {
        "user": serialize_user(get_user(db, owner_id)),
        "transactions": page_data["transactions"],
        "pagination": page_data["pagination"],
        "categories": [serialize_category(c) for c in list_categories(db, owner_id, include_inactive=True)],
        "budget_alerts": budget_alerts(db, owner_id),
        "wallets": [serialize_wallet(w) for w in list_wallets(db, owner_id)],
    }
