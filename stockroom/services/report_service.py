from datetime import datetime

from sqlalchemy import extract, func
from sqlalchemy.orm import Session

from stockroom.config import settings
from stockroom.models.product import Product
from stockroom.models.transaction import Transaction, TransactionType


def _money(value) -> float:
    return round(float(value or 0), 2)


def inventory_value(db: Session) -> dict:
    total = db.query(func.sum(Product.price * Product.stock)).scalar()
    return {"totalValue": _money(total)}


def product_history(db: Session, product_id: str) -> list[Transaction]:
    return (
        db.query(Transaction)
        .filter(Transaction.product_id == product_id)
        .order_by(Transaction.created_at.desc())
        .all()
    )


def sales_per_month(db: Session, year: int | None = None) -> list[dict]:
    year = year or datetime.now().year
    month = extract("month", Transaction.created_at)
    results = (
        db.query(month.label("month"), func.sum(Transaction.total).label("total_sales"))
        .filter(
            Transaction.type == TransactionType.SALE.value,
            extract("year", Transaction.created_at) == year,
        )
        .group_by(month)
        .order_by(month)
        .all()
    )
    return [{"month": int(r.month), "total_sales": _money(r.total_sales)} for r in results]


def sales_per_category(db: Session, start: datetime | None = None, end: datetime | None = None) -> list[dict]:
    q = (
        db.query(Product.category, func.sum(Transaction.total).label("total_sales"))
        .select_from(Transaction)
        .join(Product, Transaction.product_id == Product.id)
        .filter(Transaction.type == TransactionType.SALE.value)
    )
    if start:
        q = q.filter(Transaction.created_at >= start)
    if end:
        q = q.filter(Transaction.created_at <= end)

    results = q.group_by(Product.category).order_by(Product.category).all()
    return [{"category": r.category, "total_sales": _money(r.total_sales)} for r in results]


def low_stock(db: Session, threshold: int | None = None) -> list[dict]:
    if threshold is None:
        threshold = settings.LOW_STOCK_THRESHOLD
    results = (
        db.query(Product.id, Product.name, Product.stock)
        .filter(Product.stock <= threshold)
        .all()
    )
    return [
        {"id": r.id, "name": r.name, "stock": r.stock, "low_stock_threshold": threshold}
        for r in results
    ]


def top_products(db: Session, limit: int | None = None) -> list[dict]:
    limit = settings.TOP_PRODUCTS_LIMIT if limit is None else max(0, limit)
    total_sales = func.sum(Transaction.total)
    results = (
        db.query(Product.id, Product.name, total_sales.label("total_sales"))
        .select_from(Transaction)
        .join(Product, Transaction.product_id == Product.id)
        .filter(Transaction.type == TransactionType.SALE.value)
        .group_by(Product.id, Product.name)
        .order_by(total_sales.desc())
        .limit(limit)
        .all()
    )
    return [{"id": r.id, "name": r.name, "total_sales": _money(r.total_sales)} for r in results]
