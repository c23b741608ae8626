"""Transaction category model."""

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from finpyme.models.base import Base


class TransactionCategory(Base):
    """Global category list shared by every user (no per-user ownership)."""

    __tablename__ = "transaction_categories"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[str] = mapped_column(String(10), nullable=False)  # income, expense
    is_default: Mapped[bool] = mapped_column(Boolean, default=False)
    color: Mapped[str] = mapped_column(String(7), default="#6B7280")

    transactions = relationship("Transaction", back_populates="category")
