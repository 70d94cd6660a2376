from datetime import datetime

from pydantic import BaseModel


class TransactionCreate(BaseModel):
    id: str | None = None
    productId: str | None = None
    quantity: int
    type: str  # purchase / sale (pengadaan / penjualan)
    customerId: str | None = None


class TransactionResult(BaseModel):
    txId: str
    transactionId: str
    productId: str
    quantity: int
    type: str
    total: float


class TransactionOut(BaseModel):
    id: str
    product_id: str
    quantity: int
    type: str
    customer_id: str | None = None
    product_price: float
    total: float
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class ProductHistory(BaseModel):
    productId: str
    rows: list[TransactionOut]
