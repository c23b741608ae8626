"""User model."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from finpyme.models.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    tax_id: Mapped[str | None] = mapped_column(String(20), nullable=True)  # CUIT
    preferred_currency: Mapped[str] = mapped_column(String(3), default="ARS")
    preferred_dollar_type: Mapped[str] = mapped_column(String(10), default="oficial")

    # Relationships
    transactions = relationship("Transaction", back_populates="user", lazy="select")
    ai_insights = relationship("AiInsight", back_populates="user", lazy="select")
    cash_flow_projections = relationship("CashFlowProjection", back_populates="user", lazy="select")
    notifications = relationship("Notification", back_populates="user", lazy="select")
