"""Concurrent sales against one product must never oversell it."""

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from threading import Barrier

import pytest

from stockroom.config import settings
from stockroom.database import build_engine, build_session_factory, init_db
from stockroom.errors import InsufficientStock, LockTimeout
from stockroom.models.product import Product
from stockroom.models.transaction import Transaction
from stockroom.services import stock_service


def _race(session_factory, calls):
    """Run ``calls`` (session -> result) on separate threads released together."""
    barrier = Barrier(len(calls))

    def run(call):
        barrier.wait()
        with session_factory() as session:
            try:
                return call(session)
            except InsufficientStock as e:
                return e

    with ThreadPoolExecutor(max_workers=len(calls)) as pool:
        return list(pool.map(run, calls))


class TestConcurrentSales:

    @pytest.mark.parametrize("stock, quantity, workers", [(7, 2, 10), (5, 1, 8), (3, 5, 4)])
    def test_at_most_floor_stock_over_quantity_succeed(
        self, session_factory, make_product, stock_of, stock, quantity, workers
    ):
        make_product(stock=stock)
        calls = [
            (lambda s, i=i: stock_service.record_transaction(s, f"t{i}", "p1", quantity, "sale"))
            for i in range(workers)
        ]
        results = _race(session_factory, calls)

        succeeded = [r for r in results if isinstance(r, dict)]
        rejected = [r for r in results if isinstance(r, InsufficientStock)]
        expected = min(workers, stock // quantity)

        assert len(succeeded) == expected
        assert len(rejected) == workers - expected
        assert stock_of("p1") == stock - expected * quantity
        with session_factory() as session:
            assert session.query(Transaction).count() == expected

    def test_mixed_purchases_and_sales_keep_ledger_consistent(self, session_factory, make_product, stock_of):
        make_product(stock=2)
        calls = []
        for i in range(6):
            tx_type = "purchase" if i % 2 else "sale"
            calls.append(lambda s, i=i, t=tx_type: stock_service.record_transaction(s, f"t{i}", "p1", 1, t))
        results = _race(session_factory, calls)

        with session_factory() as session:
            rows = session.query(Transaction).all()
        bought = sum(r.quantity for r in rows if r.type == "purchase")
        sold = sum(r.quantity for r in rows if r.type == "sale")

        assert bought == 3
        assert len(rows) == sum(1 for r in results if isinstance(r, dict))
        assert stock_of("p1") == 2 + bought - sold
        assert stock_of("p1") >= 0

    def test_concurrent_adjustments_never_go_negative(self, session_factory, make_product, stock_of):
        make_product(stock=4)
        calls = [(lambda s: stock_service.adjust_stock(s, "p1", 1, "decrease")) for _ in range(9)]
        results = _race(session_factory, calls)

        assert sorted(r for r in results if isinstance(r, int)) == [0, 1, 2, 3]
        assert stock_of("p1") == 0


class TestLockTimeout:

    def test_waiting_too_long_for_the_lock_times_out(self, tmp_path, monkeypatch):
        monkeypatch.setattr(settings, "LOCK_TIMEOUT_MS", 100)
        engine = build_engine(f"sqlite:///{tmp_path / 'slow.db'}")
        init_db(engine)
        factory = build_session_factory(engine)
        with factory() as setup:
            setup.add(Product(id="p1", name="Widget", price=Decimal("1"), stock=5))
            setup.commit()

        holder = factory()
        try:
            holder.get(Product, "p1")  # opens a unit and takes the write lock
            with factory() as waiter:
                with pytest.raises(LockTimeout):
                    stock_service.record_transaction(waiter, "t1", "p1", 1, "sale")
        finally:
            holder.close()

        with factory() as check:
            assert check.get(Product, "p1").stock == 5
            assert check.query(Transaction).count() == 0
        engine.dispose()
