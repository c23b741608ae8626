"""Saved cash-flow projection rows."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Numeric
from sqlalchemy.orm import Mapped, mapped_column, relationship

from finpyme.models.base import Base, TimestampMixin


class CashFlowProjection(Base, TimestampMixin):
    __tablename__ = "cash_flow_projections"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    projected_income: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    projected_expenses: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    net_flow: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    user = relationship("User", back_populates="cash_flow_projections")
