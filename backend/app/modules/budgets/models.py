"""
Budget models.

Only the cap and the period are stored. Spent/percentage/remaining are
computed on read from the transactions table (see services.py).
"""

from decimal import Decimal

from sqlalchemy import Column, Integer, String, Numeric, Date, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import relationship

from app.shared.models.base import BaseModel, OwnedMixin


BUDGET_PERIODS = ("monthly", "weekly")
DEFAULT_WARNING_THRESHOLD = 80


class Budget(BaseModel, OwnedMixin):
    """Spending cap for a category over an inclusive date range."""

    __tablename__ = "budgets"

    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    amount = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    period = Column(String(10), nullable=False, default="monthly")  # 'monthly', 'weekly'

    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)  # inclusive

    warning_threshold = Column(Integer, nullable=False, default=DEFAULT_WARNING_THRESHOLD)  # percent

    category = relationship("Category", lazy="joined")

    __table_args__ = (
        CheckConstraint('warning_threshold >= 0 AND warning_threshold <= 100', name='ck_budget_threshold'),
        CheckConstraint('end_date >= start_date', name='ck_budget_dates'),
        Index('idx_budget_owner_category_start', 'owner_id', 'category_id', 'start_date'),
    )
