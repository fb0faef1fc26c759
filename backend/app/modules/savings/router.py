"""
Savings goal API routes.
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
from app.modules.ledger.services import contribute, withdraw
from app.modules.notifications.models import (
    NOTIFICATION_TYPES,
    RELATED_SAVINGS_GOAL,
)
from app.modules.notifications.services import refresh_savings_notifications, remove_notifications
from app.modules.savings.services import (
    create_goal,
    delete_goal,
    get_owned_goal,
    list_goal_transactions,
    list_goals,
    serialize_goal,
    update_goal,
)
from app.modules.transactions.services import serialize_transaction
from app.modules.wallets.services import serialize_wallet

router = APIRouter()


class GoalCreate(BaseModel):
    name: str
    target_amount: Decimal = Field(gt=0, decimal_places=2)
    description: Optional[str] = None
    deadline: Optional[date] = None
    icon: Optional[str] = None
    color: Optional[str] = None


class GoalUpdate(BaseModel):
    name: Optional[str] = None
    target_amount: Optional[Decimal] = Field(default=None, gt=0, decimal_places=2)
    description: Optional[str] = None
    deadline: Optional[date] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    status: Optional[Literal["active", "completed", "cancelled"]] = None


class MoneyMovement(BaseModel):
    wallet_id: int
    amount: Decimal = Field(gt=0, decimal_places=2)
    note: Optional[str] = None


@router.get("/")
async def get_goals(
    status: Optional[Literal["active", "completed", "cancelled"]] = None,
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return [serialize_goal(g) for g in list_goals(db, owner_id, status=status)]


@router.get("/{goal_id}")
async def get_goal(
    goal_id: int,
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return serialize_goal(get_owned_goal(db, owner_id, goal_id))


@router.post("/", status_code=status.HTTP_201_CREATED)
async def add_goal(
    body: GoalCreate,
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    with atomic(db, "create savings goal"):
        goal = create_goal(
            db,
            owner_id,
            name=body.name,
            target_amount=body.target_amount,
            description=body.description,
            deadline=body.deadline,
            icon=body.icon,
            color=body.color,
        )
    return serialize_goal(goal)


@router.put("/{goal_id}")
async def edit_goal(
    goal_id: int,
    body: GoalUpdate,
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Edit a goal. Changing the target can complete or reopen it."""
    with atomic(db, "update savings goal"):
        goal = update_goal(db, owner_id, goal_id, body.model_dump(exclude_unset=True))

    refresh_savings_notifications(db, goal)
    return serialize_goal(goal)


@router.post("/{goal_id}/contribute")
async def contribute_to_goal(
    goal_id: int,
    body: MoneyMovement,
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Move money from a wallet into the goal."""
    with atomic(db, "savings contribution"):
        movement = contribute(db, owner_id, goal_id, body.wallet_id, body.amount, body.note)

    refresh_savings_notifications(db, movement.goal)
    return {
        "goal": serialize_goal(movement.goal),
        "wallet": serialize_wallet(movement.wallet),
        "transaction": serialize_transaction(movement.transaction),
    }


@router.post("/{goal_id}/withdraw")
async def withdraw_from_goal(
    goal_id: int,
    body: MoneyMovement,
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Move money from the goal back into a wallet."""
    with atomic(db, "savings withdrawal"):
        movement = withdraw(db, owner_id, goal_id, body.wallet_id, body.amount, body.note)

    refresh_savings_notifications(db, movement.goal)
    return {
        "goal": serialize_goal(movement.goal),
        "wallet": serialize_wallet(movement.wallet),
        "transaction": serialize_transaction(movement.transaction),
        "previous_percentage": movement.previous_percentage,
    }


@router.delete("/{goal_id}")
async def remove_goal(
    goal_id: int,
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Delete a goal that no longer holds money."""
    with atomic(db, "delete savings goal"):
        delete_goal(db, owner_id, goal_id)
        remove_notifications(db, owner_id, NOTIFICATION_TYPES, goal_id, RELATED_SAVINGS_GOAL)
    return {"message": "Savings goal deleted"}


@router.get("/{goal_id}/transactions")
async def get_goal_transactions(
    goal_id: int,
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Contribution and withdrawal history of one goal."""
    return [serialize_transaction(t) for t in list_goal_transactions(db, owner_id, goal_id)]
