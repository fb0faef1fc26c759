"""
Savings goal service.

Goal CRUD and read models. Money movement in and out of a goal lives in
app.modules.ledger (contribute / withdraw) since it touches wallets too.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.core.timezone import format_date_for_api, format_datetime_for_api, local_today, utcnow
from app.modules.savings.models import GOAL_STATUSES, SavingsGoal
from app.modules.transactions.models import Transaction

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("name", "description", "target_amount", "deadline", "icon", "color", "status")


def serialize_goal(goal: SavingsGoal, today: Optional[date] = None) -> Dict[str, Any]:
    today = today or local_today()
    days_left = (goal.deadline - today).days if goal.deadline else None
    return {
        "id": goal.id,
        "name": goal.name,
        "description": goal.description,
        "target_amount": float(goal.target_amount),
        "current_amount": float(goal.current_amount or 0),
        "withdrawn_amount": float(goal.withdrawn_amount or 0),
        "total_contributed": float(goal.total_contributed),
        "remaining": float(goal.remaining),
        "percentage": goal.percentage,
        "deadline": format_date_for_api(goal.deadline),
        "days_left": days_left,
        "icon": goal.icon,
        "color": goal.color,
        "status": goal.status,
        "completed_at": format_datetime_for_api(goal.completed_at),
        "created_at": format_datetime_for_api(goal.created_at),
    }


def get_owned_goal(db: Session, owner_id: int, goal_id: int, lock: bool = False) -> SavingsGoal:
    """Load a goal of this owner or raise 404. lock=True reads FOR UPDATE."""
    query = db.query(SavingsGoal).filter(
        SavingsGoal.id == goal_id,
        SavingsGoal.owner_id == owner_id,
    )
    if lock:
        query = query.with_for_update().populate_existing()
    goal = query.first()
    if goal is None:
        raise NotFoundError("Savings goal not found")
    return goal


def list_goals(db: Session, owner_id: int, status: Optional[str] = None) -> List[SavingsGoal]:
    query = db.query(SavingsGoal).filter(SavingsGoal.owner_id == owner_id)
    if status in GOAL_STATUSES:
        query = query.filter(SavingsGoal.status == status)
    return query.order_by(SavingsGoal.created_at.desc(), SavingsGoal.id.desc()).all()


def create_goal(
    db: Session,
    owner_id: int,
    name: str,
    target_amount: Decimal,
    description: Optional[str] = None,
    deadline: Optional[date] = None,
    icon: Optional[str] = None,
    color: Optional[str] = None,
) -> SavingsGoal:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Goal name is required")
    if Decimal(target_amount) <= 0:
        raise ValidationError("Target amount must be greater than 0")

    goal = SavingsGoal(
        owner_id=owner_id,
        name=name,
        description=description,
        target_amount=Decimal(target_amount),
        current_amount=Decimal("0"),
        withdrawn_amount=Decimal("0"),
        deadline=deadline,
        icon=icon or "🎯",
        color=color or "#10b981",
        status="active",
    )
    db.add(goal)
    db.flush()
    logger.info(f"Created savings goal {goal.id} for user {owner_id}, target {target_amount}")
    return goal


def update_goal(db: Session, owner_id: int, goal_id: int, changes: Dict[str, Any]) -> SavingsGoal:
    """
    Edit goal metadata or target.

    current_amount is not editable. Raising the target above the saved
    amount reopens a completed goal; lowering it to or below the saved
    amount completes an active one.
    """
    goal = get_owned_goal(db, owner_id, goal_id, lock=True)

    if "current_amount" in changes or "withdrawn_amount" in changes:
        raise ValidationError("Goal balance can only change through contributions and withdrawals")
    if changes.get("target_amount") is not None and Decimal(changes["target_amount"]) <= 0:
        raise ValidationError("Target amount must be greater than 0")
    if changes.get("status") is not None and changes["status"] not in GOAL_STATUSES:
        raise ValidationError(f"Status must be one of {', '.join(GOAL_STATUSES)}")
    if "name" in changes and changes["name"] is not None:
        changes["name"] = changes["name"].strip()
        if not changes["name"]:
            raise ValidationError("Goal name is required")

    for field in EDITABLE_FIELDS:
        if field in changes and (changes[field] is not None or field in ("deadline", "description")):
            setattr(goal, field, changes[field])

    reached = Decimal(goal.current_amount or 0) >= Decimal(goal.target_amount)
    if goal.status == "completed" and not reached:
        goal.status = "active"
        goal.completed_at = None
    elif goal.status == "active" and reached:
        goal.status = "completed"
        goal.completed_at = utcnow()
    return goal


def delete_goal(db: Session, owner_id: int, goal_id: int):
    """Delete an empty goal. Money must be withdrawn first."""
    goal = get_owned_goal(db, owner_id, goal_id, lock=True)
    if Decimal(goal.current_amount or 0) > 0:
        raise ConflictError(
            f"Cannot delete a goal that still holds {goal.current_amount}. Withdraw the money first."
        )
    db.delete(goal)
    db.flush()
    logger.info(f"Deleted savings goal {goal_id} for user {owner_id}")


def list_goal_transactions(db: Session, owner_id: int, goal_id: int) -> List[Transaction]:
    get_owned_goal(db, owner_id, goal_id)
    return db.query(Transaction).filter(
        Transaction.owner_id == owner_id,
        Transaction.savings_goal_id == goal_id,
    ).order_by(Transaction.transaction_date.desc(), Transaction.id.desc()).all()
