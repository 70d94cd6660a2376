from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel


# Range checks live in catalog_service so that every caller gets them,
# not only the HTTP boundary.

class ProductCreate(BaseModel):
    id: str | None = None
    name: str = ""
    price: Decimal = Decimal("0")
    stock: int = 0
    category: str = ""


class ProductUpdate(BaseModel):
    name: str | None = None
    price: Decimal | None = None
    stock: int | None = None
    category: str | None = None


class ProductOut(BaseModel):
    id: str
    name: str
    price: float
    stock: int
    category: str
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class ProductPage(BaseModel):
    page: int
    limit: int
    data: list[ProductOut]


class StockAdjust(BaseModel):
    quantity: int
    direction: str  # increase / decrease (tambah / kurang)


class StockAdjustOut(BaseModel):
    productId: str
    newStock: int
