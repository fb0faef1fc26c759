"""
Budget service.

A budget stores only its cap and period. Spending is summed from the
transactions table every time it is read.
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.core.timezone import format_date_for_api, format_datetime_for_api, local_today
from app.modules.budgets.models import BUDGET_PERIODS, DEFAULT_WARNING_THRESHOLD, Budget
from app.modules.categories.services import get_owned_category
from app.modules.transactions.models import Transaction
from app.modules.transactions.services import day_bounds

logger = logging.getLogger(__name__)


@dataclass
class BudgetProgress:
    spent: Decimal
    percentage: float
    remaining: Decimal
    is_warning: bool
    is_exceeded: bool


def default_end_date(start: date, period: str) -> date:
    """Last inclusive day of a period starting on `start`."""
    if period == "weekly":
        return start + timedelta(days=6)
    return start + relativedelta(months=1) - timedelta(days=1)


def budget_spent(db: Session, budget: Budget) -> Decimal:
    start_dt, end_dt = day_bounds(budget.start_date, budget.end_date)
    total = db.query(func.coalesce(func.sum(Transaction.amount), 0)).filter(
        Transaction.owner_id == budget.owner_id,
        Transaction.category_id == budget.category_id,
        Transaction.transaction_date >= start_dt,
        Transaction.transaction_date < end_dt,
    ).scalar()
    return Decimal(str(total or 0))


def compute_budget_progress(db: Session, budget: Budget) -> BudgetProgress:
    """Derive spent / percentage / remaining and the alert flags."""
    spent = budget_spent(db, budget)
    cap = Decimal(budget.amount or 0)

    if cap > 0:
        ratio = spent / cap * 100
    else:
        ratio = Decimal("0")
    percentage = float(ratio.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))

    return BudgetProgress(
        spent=spent,
        percentage=percentage,
        remaining=cap - spent,
        is_warning=ratio >= budget.warning_threshold,
        is_exceeded=ratio >= 100,
    )


def serialize_budget(budget: Budget, progress: Optional[BudgetProgress] = None) -> Dict[str, Any]:
    result = {
        "id": budget.id,
        "category": {
            "id": budget.category.id,
            "name": budget.category.name,
            "type": budget.category.type,
        } if budget.category is not None else None,
        "amount": float(budget.amount),
        "period": budget.period,
        "start_date": format_date_for_api(budget.start_date),
        "end_date": format_date_for_api(budget.end_date),
        "warning_threshold": budget.warning_threshold,
        "created_at": format_datetime_for_api(budget.created_at),
    }
    if progress is not None:
        result.update({
            "spent": float(progress.spent),
            "percentage": progress.percentage,
            "remaining": float(progress.remaining),
            "is_warning": progress.is_warning,
            "is_exceeded": progress.is_exceeded,
        })
    return result


def get_owned_budget(db: Session, owner_id: int, budget_id: int) -> Budget:
    budget = db.query(Budget).filter(Budget.id == budget_id, Budget.owner_id == owner_id).first()
    if budget is None:
        raise NotFoundError("Budget not found")
    return budget


def list_budgets(db: Session, owner_id: int, active_on: Optional[date] = None) -> List[Budget]:
    """All budgets newest period first, or only those covering `active_on`."""
    query = db.query(Budget).filter(Budget.owner_id == owner_id)
    if active_on is not None:
        query = query.filter(Budget.start_date <= active_on, Budget.end_date >= active_on)
    return query.order_by(Budget.start_date.desc(), Budget.id.desc()).all()


def budgets_covering(db: Session, owner_id: int, category_id: int, on_date: date) -> List[Budget]:
    return db.query(Budget).filter(
        Budget.owner_id == owner_id,
        Budget.category_id == category_id,
        Budget.start_date <= on_date,
        Budget.end_date >= on_date,
    ).all()


def _check_overlap(db: Session, owner_id: int, category_id: int, start: date, end: date,
                   exclude_id: Optional[int] = None):
    query = db.query(Budget.id).filter(
        Budget.owner_id == owner_id,
        Budget.category_id == category_id,
        Budget.start_date <= end,
        Budget.end_date >= start,
    )
    if exclude_id is not None:
        query = query.filter(Budget.id != exclude_id)
    if query.first() is not None:
        raise ConflictError("A budget for this category already exists in this period")


def _check_values(amount: Decimal, start: date, end: date, threshold: int):
    if Decimal(amount) <= 0:
        raise ValidationError("Budget amount must be greater than 0")
    if end < start:
        raise ValidationError("End date must not be before start date")
    if not 0 <= threshold <= 100:
        raise ValidationError("Warning threshold must be between 0 and 100")


def create_budget(
    db: Session,
    owner_id: int,
    category_id: int,
    amount: Decimal,
    start_date: date,
    end_date: Optional[date] = None,
    period: str = "monthly",
    warning_threshold: Optional[int] = None,
) -> Budget:
    if period not in BUDGET_PERIODS:
        raise ValidationError(f"Period must be one of {', '.join(BUDGET_PERIODS)}")
    category = get_owned_category(db, owner_id, category_id)

    end_date = end_date or default_end_date(start_date, period)
    threshold = DEFAULT_WARNING_THRESHOLD if warning_threshold is None else warning_threshold
    _check_values(amount, start_date, end_date, threshold)
    _check_overlap(db, owner_id, category.id, start_date, end_date)

    budget = Budget(
        owner_id=owner_id,
        category_id=category.id,
        amount=Decimal(amount),
        period=period,
        start_date=start_date,
        end_date=end_date,
        warning_threshold=threshold,
    )
    budget.category = category
    db.add(budget)
    db.flush()
    logger.info(f"Created budget {budget.id} for user {owner_id}: category {category.id}, "
                f"{start_date}..{end_date}, cap {amount}")
    return budget


def update_budget(db: Session, owner_id: int, budget_id: int, changes: Dict[str, Any]) -> Budget:
    """Change cap, dates or threshold. The category is fixed."""
    budget = get_owned_budget(db, owner_id, budget_id)

    amount = changes.get("amount") if changes.get("amount") is not None else budget.amount
    start = changes.get("start_date") or budget.start_date
    end = changes.get("end_date") or budget.end_date
    threshold = changes.get("warning_threshold")
    if threshold is None:
        threshold = budget.warning_threshold
    period = changes.get("period") or budget.period
    if period not in BUDGET_PERIODS:
        raise ValidationError(f"Period must be one of {', '.join(BUDGET_PERIODS)}")

    _check_values(amount, start, end, threshold)
    if start != budget.start_date or end != budget.end_date:
        _check_overlap(db, owner_id, budget.category_id, start, end, exclude_id=budget.id)

    budget.amount = Decimal(amount)
    budget.start_date = start
    budget.end_date = end
    budget.warning_threshold = threshold
    budget.period = period
    db.flush()
    return budget


def delete_budget(db: Session, owner_id: int, budget_id: int):
    budget = get_owned_budget(db, owner_id, budget_id)
    db.delete(budget)
    db.flush()
    logger.info(f"Deleted budget {budget_id} for user {owner_id}")


def budget_alerts(db: Session, owner_id: int, today: Optional[date] = None) -> List[Dict[str, Any]]:
    """Active budgets currently in warning or exceeded state."""
    alerts = []
    for budget in list_budgets(db, owner_id, active_on=today or local_today()):
        progress = compute_budget_progress(db, budget)
        if progress.is_warning or progress.is_exceeded:
            alerts.append(serialize_budget(budget, progress))
    return alerts
