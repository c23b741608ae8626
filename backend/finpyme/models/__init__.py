"""SQLAlchemy models."""

from finpyme.models.base import Base
from finpyme.models.category import TransactionCategory
from finpyme.models.inflation import InflationData
from finpyme.models.insight import AiInsight
from finpyme.models.notification import Notification
from finpyme.models.projection import CashFlowProjection
from finpyme.models.transaction import Transaction
from finpyme.models.user import User

__all__ = [
    "Base",
    "User",
    "TransactionCategory",
    "Transaction",
    "AiInsight",
    "CashFlowProjection",
    "Notification",
    "InflationData",
]
