import logging
from decimal import Decimal, InvalidOperation

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stockroom.config import settings
from stockroom.database import transaction_scope
from stockroom.errors import InvalidArgument, NotFound
from stockroom.models.product import Product
from stockroom.schemas.product import ProductCreate, ProductUpdate
from stockroom.services.audit_service import write_audit

logger = logging.getLogger(__name__)


def _validate_name(name) -> str:
    if not isinstance(name, str) or not name.strip():
        raise InvalidArgument("Product name is required")
    return name


def _validate_price(price) -> Decimal:
    try:
        value = Decimal(str(price))
    except InvalidOperation:
        raise InvalidArgument(f"Invalid price: {price!r}")
    if not value.is_finite() or value < 0:
        raise InvalidArgument("Price must not be negative")
    return value


def _validate_stock(stock) -> int:
    if isinstance(stock, bool) or not isinstance(stock, int):
        raise InvalidArgument("Stock must be an integer")
    if stock < 0:
        raise InvalidArgument("Stock must not be negative")
    return stock


def add_product(db: Session, data: ProductCreate) -> Product:
    if not data.id or not data.id.strip():
        raise InvalidArgument("Product id is required")
    name = _validate_name(data.name)
    price = _validate_price(data.price)
    stock = _validate_stock(data.stock)

    product = Product(id=data.id, name=name, price=price, stock=stock, category=data.category or "")
    try:
        with transaction_scope(db):
            if db.get(Product, data.id) is not None:
                raise InvalidArgument(f"Product {data.id} already exists")
            db.add(product)
    except IntegrityError as e:
        raise InvalidArgument(f"Product {data.id} already exists") from e

    logger.info("Added product %s (%s)", product.id, product.name)
    write_audit(f"ADD PRODUCT {product.id} {product.name} price:{price} stock:{stock}")
    return product


def get_product(db: Session, product_id: str) -> Product:
    product = db.get(Product, product_id, populate_existing=True)
    if product is None:
        raise NotFound(f"Product {product_id} not found")
    return product


def list_products(
    db: Session,
    page: int = 1,
    limit: int | None = None,
    category: str | None = None,
    q: str | None = None,
) -> list[Product]:
    page = max(1, page)
    limit = settings.DEFAULT_PAGE_SIZE if limit is None else max(1, limit)

    query = db.query(Product)
    if category:
        query = query.filter(Product.category == category)
    if q:
        query = query.filter(Product.name.contains(q, autoescape=True))
    return query.offset((page - 1) * limit).limit(limit).all()


def get_products_by_category(db: Session, category: str, page: int = 1, limit: int | None = None) -> list[Product]:
    return list_products(db, page=page, limit=limit, category=category)


def update_product(db: Session, product_id: str, data: ProductUpdate) -> Product:
    """Apply the supplied fields. Values are checked as strictly as on creation."""
    update_data = data.model_dump(exclude_unset=True, exclude_none=True)
    if not update_data:
        raise InvalidArgument("No fields to update")
    if "name" in update_data:
        _validate_name(update_data["name"])
    if "price" in update_data:
        update_data["price"] = _validate_price(update_data["price"])
    if "stock" in update_data:
        _validate_stock(update_data["stock"])

    with transaction_scope(db):
        product = (
            db.query(Product)
            .filter(Product.id == product_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if product is None:
            raise NotFound(f"Product {product_id} not found")
        for field, value in update_data.items():
            setattr(product, field, value)

    changes = " ".join(f"{k}:{v}" for k, v in update_data.items())
    logger.info("Updated product %s: %s", product_id, changes)
    write_audit(f"UPDATE PRODUCT {product_id} {changes}")
    return product
