"""
Transaction models.

Amounts are stored as positive magnitudes. The direction of a row is
derived from its category type or its kind (see app.modules.ledger).
"""

from sqlalchemy import Column, Integer, String, Numeric, DateTime, Text, ForeignKey, Index
from sqlalchemy.orm import relationship

from app.shared.models.base import BaseModel, OwnedMixin


TRANSACTION_KINDS = ("normal", "transfer_out", "transfer_in")

# Names used on uncategorized system rows
SAVINGS_CONTRIBUTION_NAME = "Tiết kiệm"
SAVINGS_WITHDRAWAL_NAME = "Rút tiết kiệm"


class Transaction(BaseModel, OwnedMixin):
    """A single ledger row. Immutable once written, except for deletion."""

    __tablename__ = "transactions"

    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)  # NULL for savings rows
    category_name = Column(String(100), nullable=True)
    wallet_id = Column(Integer, ForeignKey("wallets.id"), nullable=False)

    amount = Column(Numeric(18, 2), nullable=False)  # always > 0
    note = Column(Text, nullable=True)
    transaction_date = Column(DateTime, nullable=False)

    kind = Column(String(20), nullable=False, default="normal")  # 'normal', 'transfer_out', 'transfer_in'

    # Transfers
    transfer_id = Column(String(36), nullable=True, index=True)
    related_wallet_id = Column(Integer, ForeignKey("wallets.id"), nullable=True)

    # Savings
    savings_goal_id = Column(Integer, ForeignKey("savings_goals.id", ondelete="SET NULL"), nullable=True)

    category = relationship("Category", lazy="joined")
    wallet = relationship("Wallet", foreign_keys=[wallet_id], lazy="joined")
    related_wallet = relationship("Wallet", foreign_keys=[related_wallet_id])

    __table_args__ = (
        Index('idx_transaction_owner_date', 'owner_id', 'transaction_date'),
        Index('idx_transaction_category_date', 'category_id', 'transaction_date'),
        Index('idx_transaction_wallet', 'wallet_id'),
        Index('idx_transaction_goal', 'savings_goal_id'),
    )
