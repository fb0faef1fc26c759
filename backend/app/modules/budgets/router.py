"""
Budget API routes.
"""

from datetime import date
from decimal import Decimal
from typing import Literal, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.auth import get_current_user_id
from app.core.database import get_db
from app.core.errors import atomic
from app.core.timezone import local_today
from app.modules.budgets.services import (
    compute_budget_progress,
    create_budget,
    delete_budget,
    list_budgets,
    serialize_budget,
    update_budget,
)
from app.modules.notifications.models import (
    BUDGET_EXCEEDED,
    BUDGET_WARNING,
    DEADLINE_REMINDER,
    RELATED_BUDGET,
)
from app.modules.notifications.services import refresh_budget, remove_notifications

router = APIRouter()


class BudgetCreate(BaseModel):
    category_id: int
    amount: Decimal = Field(gt=0, decimal_places=2)
    period: Literal["monthly", "weekly"] = "monthly"
    start_date: date
    end_date: Optional[date] = None
    warning_threshold: Optional[int] = Field(default=None, ge=0, le=100)


class BudgetUpdate(BaseModel):
    amount: Optional[Decimal] = Field(default=None, gt=0, decimal_places=2)
    period: Optional[Literal["monthly", "weekly"]] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    warning_threshold: Optional[int] = Field(default=None, ge=0, le=100)


@router.get("/")
async def get_budgets(
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """All budgets with spend computed from transactions."""
    return [serialize_budget(b, compute_budget_progress(db, b)) for b in list_budgets(db, owner_id)]


@router.get("/active")
async def get_active_budgets(
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Budgets whose period contains today."""
    budgets = list_budgets(db, owner_id, active_on=local_today())
    return [serialize_budget(b, compute_budget_progress(db, b)) for b in budgets]


@router.post("/", status_code=status.HTTP_201_CREATED)
async def add_budget(
    body: BudgetCreate,
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    with atomic(db, "create budget"):
        budget = create_budget(
            db,
            owner_id,
            category_id=body.category_id,
            amount=body.amount,
            start_date=body.start_date,
            end_date=body.end_date,
            period=body.period,
            warning_threshold=body.warning_threshold,
        )

    refresh_budget(db, budget)
    return serialize_budget(budget, compute_budget_progress(db, budget))


@router.put("/{budget_id}")
async def edit_budget(
    budget_id: int,
    body: BudgetUpdate,
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    with atomic(db, "update budget"):
        budget = update_budget(db, owner_id, budget_id, body.model_dump(exclude_unset=True))

    refresh_budget(db, budget)
    return serialize_budget(budget, compute_budget_progress(db, budget))


@router.delete("/{budget_id}")
async def remove_budget(
    budget_id: int,
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Delete a budget together with its notifications."""
    with atomic(db, "delete budget"):
        delete_budget(db, owner_id, budget_id)
        remove_notifications(
            db, owner_id, (BUDGET_WARNING, BUDGET_EXCEEDED, DEADLINE_REMINDER), budget_id, RELATED_BUDGET
        )
    return {"message": "Budget deleted"}
