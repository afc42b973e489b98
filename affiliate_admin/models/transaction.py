"""Deposit / withdrawal transaction model."""

from decimal import Decimal
from enum import Enum

from sqlalchemy import Enum as SQLEnum, ForeignKey, Index, Numeric, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from affiliate_admin.models.base import Base, TimestampMixin, UUIDMixin


class TransactionType(str, Enum):
    """Transaction type."""

    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"


class TransactionStatus(str, Enum):
    """Transaction approval status."""

    PENDING = "pending"
    PROCESSING = "processing"
    APPROVED = "approved"
    COMPLETED = "completed"
    REJECTED = "rejected"
    FAILED = "failed"


# 정산에 포함되는 출금 상태
SETTLED_WITHDRAWAL_STATUSES = (TransactionStatus.APPROVED, TransactionStatus.COMPLETED)


class Transaction(Base, UUIDMixin, TimestampMixin):
    """Deposit or withdrawal request."""

    __tablename__ = "transactions"
    __table_args__ = (
        Index("ix_transactions_user_type_status", "user_id", "transaction_type", "status"),
    )

    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    transaction_type: Mapped[TransactionType] = mapped_column(
        SQLEnum(
            TransactionType,
            values_callable=lambda obj: [e.value for e in obj],
        ),
        nullable=False,
    )
    status: Mapped[TransactionStatus] = mapped_column(
        SQLEnum(
            TransactionStatus,
            values_callable=lambda obj: [e.value for e in obj],
        ),
        default=TransactionStatus.PENDING,
        nullable=False,
    )
    amount: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    memo: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<Transaction {self.id[:8]}... "
            f"{self.transaction_type.value} {self.status.value} amount={self.amount}>"
        )
