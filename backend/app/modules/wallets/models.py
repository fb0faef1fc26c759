"""
Wallet models.

A wallet is a named money container (cash, bank account, credit card,
e-wallet) with a running balance maintained by the ledger.
"""

from decimal import Decimal

from sqlalchemy import Column, String, Numeric, Text, Boolean, Index

from app.shared.models.base import BaseModel, OwnedMixin


WALLET_TYPES = ("cash", "bank", "credit", "ewallet")


class Wallet(BaseModel, OwnedMixin):
    """Money container with a running balance."""

    __tablename__ = "wallets"

    name = Column(String(100), nullable=False)
    type = Column(String(20), nullable=False)  # 'cash', 'bank', 'credit', 'ewallet'

    # balance == initial_balance + sum of signed transaction amounts
    balance = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    initial_balance = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    currency = Column(String(10), nullable=False, default="VND")

    icon = Column(String(20), nullable=True, default="💰")
    color = Column(String(20), nullable=True, default="#6366f1")
    description = Column(Text, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)

    __table_args__ = (
        Index('idx_wallet_owner_active', 'owner_id', 'is_active'),
    )
