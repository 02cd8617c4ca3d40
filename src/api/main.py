"""
FastAPI application factory.
Creates the app with CORS, the page gate, rate limiting, error handlers and
router registration. Swagger UI available at /docs, ReDoc at /redoc.
"""
import sys
from pathlib import Path
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Ensure src/ is on the path
_src_dir = str(Path(__file__).parent.parent)
if _src_dir not in sys.path:
    sys.path.insert(0, _src_dir)

DUPLICATE_MESSAGES = {
    ("customers", "document"): "Já existe um cliente com esse documento.",
    ("customers", "email"): "Já existe um cliente com esse e-mail.",
    ("products", "sku"): "Já existe um produto com esse SKU.",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown logic for the FastAPI app."""
    import config
    from api.auth.jwt_handler import JWTHandler
    from api.auth.user_db import UserDB
    from api.auth.dependencies import init_auth, init_store
    from database.order_db import OrderDB
    from utils.logger import get_logger

    logger = get_logger()
    logger.info(f"Initializing {config.APP_NAME} API on port {config.API_PORT}", "API")

    jwt_handler = JWTHandler(
        secret=config.AUTH_SECRET,
        algorithm=config.AUTH_ALGORITHM,
        session_expiry_days=config.AUTH_COOKIE_MAX_AGE_DAYS,
    )
    user_db = UserDB(db_path=config.DATABASE_PATH)
    order_db = OrderDB(db_path=config.DATABASE_PATH)

    # Seed the initial account
    if config.AUTH_EMAIL and config.AUTH_PASSWORD:
        user_db.ensure_user(config.AUTH_EMAIL, config.AUTH_PASSWORD, config.AUTH_NAME)
        logger.info(f"Initial user ready: {config.AUTH_EMAIL}", "API")
    else:
        logger.warning("AUTH_EMAIL / AUTH_PASSWORD not set - no login account seeded", "API")

    init_auth(jwt_handler, user_db)
    init_store(order_db)

    # Store on app state for route access
    app.state.jwt_handler = jwt_handler
    app.state.user_db = user_db
    app.state.order_db = order_db

    logger.info(f"Database: {config.DATABASE_PATH}", "API")
    logger.info(f"Swagger UI: http://localhost:{config.API_PORT}/docs", "API")

    yield

    logger.info("Shutting down API server", "API")


def _register_exception_handlers(app: FastAPI):
    """Translate domain and store errors into ``{"error": ...}`` JSON responses."""
    from database.order_db import DuplicateRecordError, RecordNotFoundError
    from order_normalization.errors import OrderDocumentError
    from utils.logger import get_logger

    logger = get_logger()

    @app.exception_handler(OrderDocumentError)
    async def order_document_error_handler(request: Request, exc: OrderDocumentError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path}: {exc.message} ({exc.detail})", "API")
        content = {"error": exc.message}
        if exc.detail:
            content["detail"] = exc.detail
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(DuplicateRecordError)
    async def duplicate_record_handler(request: Request, exc: DuplicateRecordError):
        message = DUPLICATE_MESSAGES.get((exc.table, exc.field), "Registro duplicado.")
        return JSONResponse(status_code=409, content={"error": message})

    @app.exception_handler(RecordNotFoundError)
    async def record_not_found_handler(request: Request, exc: RecordNotFoundError):
        return JSONResponse(status_code=404, content={"error": "Registro não encontrado.", "detail": str(exc)})

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": "Requisição inválida", "detail": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(f"{request.method} {request.url.path}: {type(exc).__name__}: {exc}", "API", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Erro interno"})


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    import config

    app = FastAPI(
        title=f"{config.APP_NAME} API",
        description=(
            "Order desk: customers, products, special prices, orders, and order "
            "documents (preview, print, PDF, email).\n\n"
            "**Authentication**: `POST /api/login` sets an httpOnly `auth_token` "
            "cookie that every other `/api` endpoint requires."
        ),
        version=config.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    _register_exception_handlers(app)

    # Register routers
    from api.routes.auth_routes import router as auth_router
    from api.routes.customer_routes import router as customer_router
    from api.routes.product_routes import router as product_router
    from api.routes.customer_price_routes import router as customer_price_router
    from api.routes.order_routes import router as order_router
    from api.routes.health_routes import router as health_router
    from api.routes.page_routes import router as page_router

    app.include_router(auth_router, prefix="/api", tags=["Authentication"])
    app.include_router(customer_router, prefix="/api/customers", tags=["Customers"])
    app.include_router(product_router, prefix="/api/products", tags=["Products"])
    app.include_router(customer_price_router, prefix="/api/customer-prices", tags=["Customer prices"])
    app.include_router(order_router, prefix="/api/orders", tags=["Orders"])
    app.include_router(health_router, prefix="/health", tags=["Health"])
    app.include_router(page_router)

    # Middleware: the last one added runs first
    from api.auth.dependencies import session_from_request
    from api.middleware.auth_gate import AuthGateMiddleware
    from api.middleware.rate_limiter import RateLimitMiddleware

    app.add_middleware(RateLimitMiddleware, requests_per_minute=config.API_RATE_LIMIT_PER_MINUTE)
    app.add_middleware(AuthGateMiddleware, session_resolver=session_from_request)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.API_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
    )

    return app
