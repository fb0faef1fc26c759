"""
Savings goal models.

current_amount is the money currently held by the goal; withdrawn_amount
accumulates everything taken back out. Progress figures are derived.
"""

from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import Column, String, Numeric, Date, DateTime, Text, Index

from app.shared.models.base import BaseModel, OwnedMixin


GOAL_STATUSES = ("active", "completed", "cancelled")


class SavingsGoal(BaseModel, OwnedMixin):
    """Target amount funded by wallet contributions."""

    __tablename__ = "savings_goals"

    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    target_amount = Column(Numeric(18, 2), nullable=False)
    current_amount = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    withdrawn_amount = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))

    deadline = Column(Date, nullable=True)
    icon = Column(String(20), nullable=True, default="🎯")
    color = Column(String(20), nullable=True, default="#10b981")

    status = Column(String(20), nullable=False, default="active")  # 'active', 'completed', 'cancelled'
    completed_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index('idx_savings_goal_owner_status', 'owner_id', 'status'),
    )

    @property
    def percentage(self) -> int:
        """Whole-number progress, pinned at 100 once completed."""
        if self.status == "completed":
            return 100
        return progress_percentage(self.current_amount, self.target_amount)

    @property
    def remaining(self) -> Decimal:
        return max(Decimal(self.target_amount) - Decimal(self.current_amount or 0), Decimal("0"))

    @property
    def total_contributed(self) -> Decimal:
        return Decimal(self.current_amount or 0) + Decimal(self.withdrawn_amount or 0)


def progress_percentage(current, target) -> int:
    """round(current / target * 100), half-up, capped to [0, 100]."""
    target = Decimal(target or 0)
    if target <= 0:
        return 0
    ratio = (Decimal(current or 0) / target * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(min(max(ratio, Decimal("0")), Decimal("100")))
