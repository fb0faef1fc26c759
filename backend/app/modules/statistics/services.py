"""
Yearly income / expense statistics.

Everything is computed on read from the transactions of one year.
"""

import math
from collections import OrderedDict
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.timezone import local_day_start, to_local_date
from app.modules.ledger.services import transaction_direction
from app.modules.transactions.models import Transaction

MONTH_LABELS = [f"Tháng {m}" for m in range(1, 13)]
WEEKS_PER_YEAR = 52


def week_of_year(d: date) -> Optional[int]:
    """
    Week number with weeks starting on Sunday and week 1 holding Jan 1.

    Days that fall into a 53rd (or later) week return None.
    """
    jan1 = date(d.year, 1, 1)
    day_index = (d - jan1).days
    jan1_weekday = (jan1.weekday() + 1) % 7  # Sunday = 0
    week = math.ceil((day_index + jan1_weekday + 1) / 7)
    if 1 <= week <= WEEKS_PER_YEAR:
        return week
    return None


def _series(period: str) -> "OrderedDict[int, Dict[str, Decimal]]":
    count = WEEKS_PER_YEAR if period == "week" else 12
    return OrderedDict((i, {"income": Decimal("0"), "expense": Decimal("0")}) for i in range(1, count + 1))


def yearly_statistics(
    db: Session,
    owner_id: int,
    year: int,
    period: str = "month",
    wallet_id: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Income and expense per month (or week), per category, and totals.

    Hidden categories still appear in the breakdowns because their
    transactions still count.
    """
    query = db.query(Transaction).filter(
        Transaction.owner_id == owner_id,
        Transaction.transaction_date >= local_day_start(date(year, 1, 1)),
        Transaction.transaction_date < local_day_start(date(year + 1, 1, 1)),
    )
    if wallet_id:
        query = query.filter(Transaction.wallet_id == wallet_id)
    transactions: List[Transaction] = query.all()

    buckets = _series(period)
    income_by_category: Dict[int, Dict[str, Any]] = {}
    expense_by_category: Dict[int, Dict[str, Any]] = {}
    total_income = Decimal("0")
    total_expense = Decimal("0")

    for tx in transactions:
        amount = Decimal(tx.amount)
        day = to_local_date(tx.transaction_date)
        direction = transaction_direction(tx)
        key = "income" if direction == "in" else "expense"

        if direction == "in":
            total_income += amount
        else:
            total_expense += amount

        if period == "week":
            bucket = week_of_year(day)
        else:
            bucket = day.month
        if bucket is not None:
            buckets[bucket][key] += amount

        if tx.category is not None:
            target = income_by_category if tx.category.type == "in" else expense_by_category
            entry = target.setdefault(tx.category.id, {"id": tx.category.id, "name": tx.category.name, "value": Decimal("0")})
            entry["value"] += amount

    if period == "week":
        labels = [f"Tuần {w}" for w in buckets]
    else:
        labels = MONTH_LABELS

    return {
        "year": year,
        "period": period,
        "time_series": [
            {"label": label, "income": float(v["income"]), "expense": float(v["expense"])}
            for label, v in zip(labels, buckets.values())
        ],
        "category_income": [
            {**c, "value": float(c["value"])} for c in income_by_category.values() if c["value"] > 0
        ],
        "category_expense": [
            {**c, "value": float(c["value"])} for c in expense_by_category.values() if c["value"] > 0
        ],
        "summary": {
            "total_income": float(total_income),
            "total_expense": float(total_expense),
            "balance": float(total_income - total_expense),
        },
    }
