from datetime import datetime
from decimal import Decimal

import pytest

from stockroom.models.transaction import Transaction
from stockroom.services import report_service


@pytest.fixture
def ledger(db, make_product):
    make_product("hammer", name="Hammer", price="10.00", stock=3, category="tools")
    make_product("saw", name="Saw", price="25.00", stock=12, category="tools")
    make_product("glue", name="Glue", price="2.50", stock=0, category="supplies")

    def tx(tx_id, product_id, quantity, price, tx_type, when):
        price = Decimal(price)
        db.add(Transaction(
            id=tx_id, product_id=product_id, quantity=quantity, type=tx_type,
            product_price=price, total=price * quantity, created_at=when,
        ))

    tx("t1", "hammer", 2, "10.00", "sale", datetime(2024, 1, 15))
    tx("t2", "saw", 1, "25.00", "sale", datetime(2024, 1, 20))
    tx("t3", "glue", 4, "2.50", "sale", datetime(2024, 3, 1))
    tx("t4", "hammer", 10, "8.00", "purchase", datetime(2024, 3, 2))
    tx("t5", "saw", 2, "25.00", "sale", datetime(2023, 12, 31))
    db.commit()
    return db


def test_inventory_value_empty(db):
    assert report_service.inventory_value(db) == {"totalValue": 0}


def test_inventory_value(ledger):
    # 3 x 10 + 12 x 25 + 0 x 2.5
    assert report_service.inventory_value(ledger) == {"totalValue": 330.0}


def test_product_history_newest_first(ledger):
    rows = report_service.product_history(ledger, "hammer")
    assert [r.id for r in rows] == ["t4", "t1"]


def test_product_history_unknown_product(ledger):
    assert report_service.product_history(ledger, "ghost") == []


def test_sales_per_month_ignores_purchases_and_other_years(ledger):
    assert report_service.sales_per_month(ledger, 2024) == [
        {"month": 1, "total_sales": 45.0},
        {"month": 3, "total_sales": 10.0},
    ]
    assert report_service.sales_per_month(ledger, 2023) == [{"month": 12, "total_sales": 50.0}]


def test_sales_per_category(ledger):
    assert report_service.sales_per_category(ledger) == [
        {"category": "supplies", "total_sales": 10.0},
        {"category": "tools", "total_sales": 95.0},
    ]


def test_sales_per_category_range_is_inclusive(ledger):
    rows = report_service.sales_per_category(
        ledger, start=datetime(2024, 1, 20), end=datetime(2024, 3, 1)
    )
    assert rows == [
        {"category": "supplies", "total_sales": 10.0},
        {"category": "tools", "total_sales": 25.0},
    ]


def test_low_stock(ledger):
    rows = report_service.low_stock(ledger, 3)
    assert sorted(rows, key=lambda r: r["id"]) == [
        {"id": "glue", "name": "Glue", "stock": 0, "low_stock_threshold": 3},
        {"id": "hammer", "name": "Hammer", "stock": 3, "low_stock_threshold": 3},
    ]


def test_low_stock_default_threshold(ledger):
    assert {r["id"] for r in report_service.low_stock(ledger)} == {"hammer", "glue"}


def test_top_products(ledger):
    assert report_service.top_products(ledger, 2) == [
        {"id": "saw", "name": "Saw", "total_sales": 75.0},
        {"id": "hammer", "name": "Hammer", "total_sales": 20.0},
    ]


def test_top_products_zero_limit_returns_nothing(ledger):
    assert report_service.top_products(ledger, 0) == []


def test_top_products_default_limit(ledger):
    assert len(report_service.top_products(ledger)) == 3


def test_reports_are_repeatable(ledger):
    first = (report_service.top_products(ledger), report_service.sales_per_category(ledger))
    second = (report_service.top_products(ledger), report_service.sales_per_category(ledger))
    assert first == second
