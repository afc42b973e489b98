"""End-user account model.

유저는 항상 트리의 리프이며 referrer_id로 정확히 하나의 파트너에 소속됩니다.
"""

from decimal import Decimal
from enum import Enum

from sqlalchemy import Enum as SQLEnum, ForeignKey, Numeric, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from affiliate_admin.models.base import Base, TimestampMixin, UUIDMixin


class UserStatus(str, Enum):
    """User account status."""

    ACTIVE = "active"
    SUSPENDED = "suspended"
    BLOCKED = "blocked"


class User(Base, UUIDMixin, TimestampMixin):
    """User account."""

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        index=True,
    )
    nickname: Mapped[str] = mapped_column(String(50), nullable=False)

    referrer_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("partners.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    balance: Mapped[Decimal] = mapped_column(
        Numeric(18, 2),
        nullable=False,
        default=Decimal("0"),
    )
    status: Mapped[UserStatus] = mapped_column(
        SQLEnum(
            UserStatus,
            values_callable=lambda obj: [e.value for e in obj],
        ),
        default=UserStatus.ACTIVE,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<User {self.username}>"
