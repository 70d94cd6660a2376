from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import Request
from sqlalchemy import Engine, create_engine, event
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from stockroom.config import settings
from stockroom.errors import LockTimeout, StoreError


class Base(DeclarativeBase):
    pass


def build_engine(database_url: str | None = None) -> Engine:
    url = database_url or settings.DATABASE_URL

    if not url.startswith("sqlite"):
        return create_engine(
            url,
            pool_pre_ping=True,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
        )

    engine = create_engine(
        url,
        connect_args={
            "check_same_thread": False,
            "timeout": settings.LOCK_TIMEOUT_MS / 1000,
        },
    )

    # SQLite has no SELECT ... FOR UPDATE. Taking the write lock when the
    # transaction opens gives every unit exclusive access until it ends.
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def init_db(engine: Engine) -> None:
    # Import all models so Base.metadata knows about them
    import stockroom.models.product  # noqa: F401
    import stockroom.models.transaction  # noqa: F401

    Base.metadata.create_all(bind=engine)


def _is_lock_timeout(exc: OperationalError) -> bool:
    # sqlite: "database is locked"; postgresql: "canceling statement due to
    # lock timeout"; mysql: "Lock wait timeout exceeded"
    return "lock" in str(exc.orig).lower()


@contextmanager
def transaction_scope(db: Session) -> Iterator[Session]:
    """Commit everything done inside the block, or nothing.

    Any exception rolls the session back before propagating. Store
    failures are translated to LockTimeout / StoreError.
    """
    try:
        yield db
        db.commit()
    except OperationalError as e:
        db.rollback()
        if _is_lock_timeout(e):
            raise LockTimeout("Timed out waiting for a locked product row") from e
        raise StoreError(f"Ledger store failure: {e.orig}") from e
    except Exception:
        db.rollback()
        raise


def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
