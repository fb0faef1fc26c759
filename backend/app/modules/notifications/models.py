"""
Notification models.

In-app alerts derived from ledger state. Rows expire after
NOTIFICATION_TTL_DAYS and are purged by the scheduler.
"""

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, JSON, Index

from app.shared.models.base import BaseModel, OwnedMixin


BUDGET_WARNING = "BUDGET_WARNING"
BUDGET_EXCEEDED = "BUDGET_EXCEEDED"
SAVINGS_MILESTONE = "SAVINGS_MILESTONE"
SAVINGS_COMPLETED = "SAVINGS_COMPLETED"
DEADLINE_REMINDER = "DEADLINE_REMINDER"

NOTIFICATION_TYPES = (
    BUDGET_WARNING,
    BUDGET_EXCEEDED,
    SAVINGS_MILESTONE,
    SAVINGS_COMPLETED,
    DEADLINE_REMINDER,
)

RELATED_BUDGET = "budget"
RELATED_SAVINGS_GOAL = "savingsGoal"


class Notification(BaseModel, OwnedMixin):
    """One in-app alert about a budget or a savings goal."""

    __tablename__ = "notifications"

    type = Column(String(30), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)

    related_id = Column(Integer, nullable=False)
    related_type = Column(String(20), nullable=False)  # 'budget', 'savingsGoal'
    data = Column(JSON, nullable=False, default=dict)

    is_read = Column(Boolean, nullable=False, default=False)
    expires_at = Column(DateTime, nullable=False)

    __table_args__ = (
        Index('idx_notification_owner_read_created', 'owner_id', 'is_read', 'created_at'),
        Index('idx_notification_related', 'owner_id', 'type', 'related_type', 'related_id'),
        Index('idx_notification_expires', 'expires_at'),
    )
