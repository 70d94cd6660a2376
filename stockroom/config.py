from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "Stockroom"
    DATABASE_URL: str = "sqlite:///./stockroom.db"

    # Connection pool sizing (ignored by SQLite)
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10

    # Longest wait for a product row lock inside a stock mutation
    LOCK_TIMEOUT_MS: int = 5000

    # Append-only, human-readable audit trail
    AUDIT_LOG_PATH: str = "./transactions.log"

    DEFAULT_PAGE_SIZE: int = 20
    LOW_STOCK_THRESHOLD: int = 10
    TOP_PRODUCTS_LIMIT: int = 10

    LOG_LEVEL: str = "INFO"

    model_config = {"env_file": ".env"}


settings = Settings()
