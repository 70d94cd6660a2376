from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from stockroom.database import get_db
from stockroom.services import report_service

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("/inventory")
def inventory_report(db: Session = Depends(get_db)):
    return report_service.inventory_value(db)


@router.get("/sales-per-month")
def sales_per_month_report(year: int | None = None, db: Session = Depends(get_db)):
    year = year or datetime.now().year
    return {"year": year, "rows": report_service.sales_per_month(db, year)}


@router.get("/sales-per-category")
def sales_per_category_report(
    start: datetime | None = Query(None, alias="from"),
    end: datetime | None = Query(None, alias="to"),
    db: Session = Depends(get_db),
):
    return {"rows": report_service.sales_per_category(db, start=start, end=end)}


@router.get("/top-products")
def top_products_report(limit: int | None = None, db: Session = Depends(get_db)):
    return {"rows": report_service.top_products(db, limit=limit)}


@router.get("/low-stock")
def low_stock_report(threshold: int | None = None, db: Session = Depends(get_db)):
    return {"items": report_service.low_stock(db, threshold)}
