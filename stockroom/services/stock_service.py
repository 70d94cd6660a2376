"""Stock mutations: manual adjustments and purchase/sale transactions.

Every mutation runs in one atomic unit that starts with a locking read of
the product row (``SELECT ... FOR UPDATE``). Two mutations of the same
product therefore run one after the other, while mutations of different
products proceed in parallel. Stock is never read from a previous unit.
"""

import logging
from decimal import Decimal

from sqlalchemy import text, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stockroom.config import settings
from stockroom.database import transaction_scope
from stockroom.errors import InsufficientStock, InvalidArgument, NotFound
from stockroom.models.product import Product
from stockroom.models.transaction import Transaction, TransactionType
from stockroom.services.audit_service import write_audit

logger = logging.getLogger(__name__)

INCREASE = "increase"
DECREASE = "decrease"

DIRECTION_ALIASES = {
    "increase": INCREASE,
    "tambah": INCREASE,
    "decrease": DECREASE,
    "kurang": DECREASE,
}

TYPE_ALIASES = {
    "purchase": TransactionType.PURCHASE,
    "pengadaan": TransactionType.PURCHASE,
    "sale": TransactionType.SALE,
    "penjualan": TransactionType.SALE,
}


def _require_id(value, label: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgument(f"{label} is required")
    return value


def _require_quantity(quantity) -> int:
    # bool is an int subclass
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidArgument("Quantity must be an integer")
    if quantity <= 0:
        raise InvalidArgument("Quantity must be > 0")
    return quantity


def normalize_direction(direction) -> str:
    key = direction.strip().lower() if isinstance(direction, str) else None
    if key not in DIRECTION_ALIASES:
        raise InvalidArgument(f"Unknown stock direction: {direction!r}")
    return DIRECTION_ALIASES[key]


def normalize_type(tx_type) -> TransactionType:
    key = tx_type.strip().lower() if isinstance(tx_type, str) else None
    if key not in TYPE_ALIASES:
        raise InvalidArgument(f"Unknown transaction type: {tx_type!r}")
    return TYPE_ALIASES[key]


def _apply_lock_timeout(db: Session) -> None:
    """Bound the wait for a row lock. SQLite uses the connection busy timeout."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        db.execute(text(f"SET LOCAL lock_timeout = {int(settings.LOCK_TIMEOUT_MS)}"))
    elif dialect == "mysql":
        seconds = max(1, settings.LOCK_TIMEOUT_MS // 1000)
        db.execute(text(f"SET SESSION innodb_lock_wait_timeout = {seconds}"))


def _lock_product(db: Session, product_id: str) -> Product:
    product = (
        db.query(Product)
        .filter(Product.id == product_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if product is None:
        raise NotFound(f"Product {product_id} not found")
    return product


def _change_stock(db: Session, product_id: str, delta: int) -> None:
    db.execute(
        update(Product).where(Product.id == product_id).values(stock=Product.stock + delta)
    )


def _insert_transaction(db: Session, **fields) -> Transaction:
    tx = Transaction(**fields)
    db.add(tx)
    db.flush()
    return tx


def adjust_stock(db: Session, product_id: str, quantity: int, direction: str) -> int:
    """Move stock up or down by ``quantity`` and return the new level."""
    _require_id(product_id, "Product id")
    _require_quantity(quantity)
    direction = normalize_direction(direction)

    with transaction_scope(db):
        _apply_lock_timeout(db)
        product = _lock_product(db, product_id)
        current = product.stock

        if direction == DECREASE:
            if quantity > current:
                logger.warning(
                    "Rejected stock decrease on %s: requested %d, available %d",
                    product_id, quantity, current,
                )
                raise InsufficientStock(
                    f"Insufficient stock for {product_id}. Available: {current}, requested: {quantity}"
                )
            new_stock = current - quantity
        else:
            new_stock = current + quantity

        product.stock = new_stock

    logger.info("Stock of %s moved %s by %d to %d", product_id, direction, quantity, new_stock)
    write_audit(f"UPDATE stock {product_id} quantity:{quantity} => {new_stock} type:{direction}")
    return new_stock


def record_transaction(
    db: Session,
    transaction_id: str,
    product_id: str,
    quantity: int,
    tx_type: str,
    customer_id: str | None = None,
) -> dict:
    """Record a purchase or sale and apply its stock change atomically.

    The product row is locked before stock is checked, so concurrent sales
    of the same product cannot both pass the check. Any failure rolls back
    the stock change together with the transaction row.
    """
    _require_id(transaction_id, "Transaction id")
    _require_id(product_id, "Product id")
    _require_quantity(quantity)
    tx_type = normalize_type(tx_type)

    try:
        with transaction_scope(db):
            _apply_lock_timeout(db)
            if db.get(Transaction, transaction_id) is not None:
                raise InvalidArgument(f"Transaction {transaction_id} already exists")

            product = _lock_product(db, product_id)
            price = Decimal(product.price)
            total = price * quantity

            if tx_type == TransactionType.SALE:
                if product.stock < quantity:
                    logger.warning(
                        "Rejected sale %s of %s: requested %d, available %d",
                        transaction_id, product_id, quantity, product.stock,
                    )
                    raise InsufficientStock(
                        f"Insufficient stock for {product_id}. Available: {product.stock}, requested: {quantity}"
                    )
                _change_stock(db, product_id, -quantity)
            else:
                _change_stock(db, product_id, quantity)

            _insert_transaction(
                db,
                id=transaction_id,
                product_id=product_id,
                quantity=quantity,
                type=tx_type.value,
                customer_id=customer_id,
                product_price=price,
                total=total,
            )
    except IntegrityError as e:
        # Lost a race with another insert of the same transaction id
        raise InvalidArgument(f"Transaction {transaction_id} could not be recorded: {e.orig}") from e

    logger.info("Recorded %s %s: %d x %s = %s", tx_type.value, transaction_id, quantity, product_id, total)
    write_audit(f"TX {transaction_id} {tx_type.value} {product_id} {quantity} total:{total}")
    return {
        "transactionId": transaction_id,
        "productId": product_id,
        "quantity": quantity,
        "type": tx_type.value,
        "total": total,
    }
