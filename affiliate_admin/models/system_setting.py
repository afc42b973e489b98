"""Key/value system settings."""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from affiliate_admin.models.base import Base, TimestampMixin, UUIDMixin

SETTLEMENT_METHOD_KEY = "settlement_method"


class SystemSetting(Base, UUIDMixin, TimestampMixin):
    """One system setting row."""

    __tablename__ = "system_settings"

    setting_key: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
        index=True,
    )
    setting_value: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<SystemSetting {self.setting_key}={self.setting_value}>"
