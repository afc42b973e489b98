"""Database models."""

from affiliate_admin.models.base import Base, TimestampMixin, UUIDMixin
from affiliate_admin.models.game_record import GameRecord
from affiliate_admin.models.partner import Partner, PartnerStatus, PartnerType
from affiliate_admin.models.settlement import SettlementRecord, SettlementStatus
from affiliate_admin.models.system_setting import SETTLEMENT_METHOD_KEY, SystemSetting
from affiliate_admin.models.transaction import (
    SETTLED_WITHDRAWAL_STATUSES,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from affiliate_admin.models.user import User, UserStatus

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    # Partner (총판)
    "Partner",
    "PartnerStatus",
    "PartnerType",
    # User
    "User",
    "UserStatus",
    # Activity
    "GameRecord",
    "Transaction",
    "TransactionStatus",
    "TransactionType",
    "SETTLED_WITHDRAWAL_STATUSES",
    # Settlement (정산)
    "SettlementRecord",
    "SettlementStatus",
    # Settings
    "SystemSetting",
    "SETTLEMENT_METHOD_KEY",
]
