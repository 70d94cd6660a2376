import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from stockroom.api import products, reports, transactions
from stockroom.config import settings
from stockroom.database import build_engine, build_session_factory, init_db
from stockroom.errors import InventoryError

logger = logging.getLogger(__name__)

CORS_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]


def create_app(database_url: str | None = None) -> FastAPI:
    """Build the API. Each app owns its engine, created at startup and disposed at shutdown."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logging.basicConfig(level=settings.LOG_LEVEL)
        engine = build_engine(database_url)
        init_db(engine)
        app.state.engine = engine
        app.state.session_factory = build_session_factory(engine)
        logger.info("Ledger store ready at %s", engine.url.render_as_string(hide_password=True))
        yield
        engine.dispose()

    app = FastAPI(
        title=f"{settings.APP_NAME} API",
        description="Products, stock-affecting transactions and sales reporting",
        version="1.0.0",
        lifespan=lifespan,
    )

    @app.exception_handler(InventoryError)
    async def inventory_error_handler(request: Request, exc: InventoryError):
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        # A known path with an unsupported method is just an unmatched route
        if exc.status_code == 405:
            return JSONResponse(status_code=404, content={"message": "Not Found"})
        return JSONResponse(status_code=exc.status_code, content={"message": exc.detail}, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = "; ".join(
            f"{'.'.join(str(p) for p in e['loc'] if p != 'body')}: {e['msg']}" for e in errors
        )
        return JSONResponse(status_code=422, content={"message": message or "Invalid request"})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Return JSON for unhandled exceptions so clients can parse the error."""
        logger.error("Unhandled error: %s\n%s", exc, traceback.format_exc())
        return JSONResponse(status_code=500, content={"message": str(exc) or "internal error"})

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=CORS_METHODS,
        allow_headers=["*"],
    )

    # Added after CORS so it is the outer layer and sees every OPTIONS first
    @app.middleware("http")
    async def preflight_middleware(request: Request, call_next):
        """Answer any OPTIONS request, browser preflights included, with an empty body."""
        if request.method == "OPTIONS":
            headers = {
                "Access-Control-Allow-Origin": "*",
                "Access-Control-Allow-Methods": ", ".join(CORS_METHODS),
                "Access-Control-Allow-Headers": request.headers.get("access-control-request-headers", "Content-Type"),
            }
            return JSONResponse(status_code=200, content={}, headers=headers)
        return await call_next(request)

    app.include_router(products.router)
    app.include_router(transactions.router)
    app.include_router(reports.router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()
