import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from stockroom.config import settings
from stockroom.database import get_db
from stockroom.schemas.product import (
    ProductCreate,
    ProductOut,
    ProductPage,
    ProductUpdate,
    StockAdjust,
    StockAdjustOut,
)
from stockroom.schemas.transaction import ProductHistory
from stockroom.services import catalog_service, report_service, stock_service

router = APIRouter(prefix="/products", tags=["Products"])


def _parse_positive(raw: str | None, default: int) -> int:
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise HTTPException(400, "Invalid page/limit parameter")
    return max(1, value)


@router.post("", response_model=ProductOut, status_code=201)
def create_product(data: ProductCreate, db: Session = Depends(get_db)):
    if data.id is None:
        data.id = str(uuid.uuid4())
    return catalog_service.add_product(db, data)


@router.get("", response_model=ProductPage)
def list_products(
    page: str | None = None,
    limit: str | None = None,
    category: str | None = None,
    q: str | None = None,
    db: Session = Depends(get_db),
):
    page_num = _parse_positive(page, 1)
    limit_num = _parse_positive(limit, settings.DEFAULT_PAGE_SIZE)
    rows = catalog_service.list_products(db, page=page_num, limit=limit_num, category=category, q=q)
    return {"page": page_num, "limit": limit_num, "data": rows}


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: str, db: Session = Depends(get_db)):
    return catalog_service.get_product(db, product_id)


@router.put("/{product_id}", response_model=ProductOut)
def update_product(product_id: str, data: ProductUpdate, db: Session = Depends(get_db)):
    if not data.model_dump(exclude_unset=True, exclude_none=True):
        raise HTTPException(400, "No fields to update")
    return catalog_service.update_product(db, product_id, data)


@router.post("/{product_id}/stock", response_model=StockAdjustOut)
def adjust_stock(product_id: str, data: StockAdjust, db: Session = Depends(get_db)):
    new_stock = stock_service.adjust_stock(db, product_id, data.quantity, data.direction)
    return {"productId": product_id, "newStock": new_stock}


@router.get("/{product_id}/history", response_model=ProductHistory)
def product_history(product_id: str, db: Session = Depends(get_db)):
    catalog_service.get_product(db, product_id)
    return {"productId": product_id, "rows": report_service.product_history(db, product_id)}
