import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from stockroom.database import Base


class TransactionType(str, PyEnum):
    PURCHASE = "purchase"
    SALE = "sale"


class Transaction(Base):
    """A purchase or sale. Written once, together with its stock change."""

    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_transactions_quantity_positive"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    product_id: Mapped[str] = mapped_column(String, ForeignKey("products.id"), nullable=False, index=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[str] = mapped_column(String, nullable=False)  # purchase, sale
    customer_id: Mapped[str | None] = mapped_column(String, nullable=True, default=None)

    # Price of the product when the transaction was recorded
    product_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), index=True)

    __mapper_args__ = {"eager_defaults": True}
