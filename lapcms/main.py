import logging
import time
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from lapcms.core.config import Settings, settings as default_settings
from lapcms.core.errors import CMSError
from lapcms.core.log import configure_logging
from lapcms.core.rate_limit import NoopRateLimiter
from lapcms.db.session import Database
from lapcms.routers import api, auth, dashboard, posts, sdk, taxonomy, upload, users
from lapcms.services.storage import ObjectStorage

logger = logging.getLogger(__name__)

SDK_PREFIX = "/api/sdk"


class AdminCORSMiddleware(CORSMiddleware):
    """CORS for the admin panel. SDK routes set their own headers per site."""

    async def __call__(self, scope, receive, send):
        if scope["type"] == "http" and scope["path"].startswith(SDK_PREFIX):
            await self.app(scope, receive, send)
            return
        await super().__call__(scope, receive, send)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    app.state.db.create_db_and_tables()
    if settings.STORAGE_INIT_ON_STARTUP:
        app.state.storage.initialize_bucket()
    if isinstance(app.state.rate_limiter, NoopRateLimiter):
        logger.warning("Rate limiting is disabled")
    logger.info("%s started (environment=%s)", settings.PROJECT_NAME, settings.ENVIRONMENT)
    yield
    app.state.db.dispose()


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    @app.exception_handler(CMSError)
    async def cms_error_handler(request: Request, exc: CMSError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_body())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        details = [
            {"field": ".".join(str(part) for part in error["loc"][1:]), "message": error["msg"]}
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={"error": "Validation failed", "code": "VALIDATION_ERROR", "details": details},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            content = {"error": "Route not found", "code": "NOT_FOUND"}
        elif exc.status_code == 405:
            content = {"error": "Method not allowed", "code": "METHOD_NOT_ALLOWED"}
        else:
            content = {"error": str(exc.detail), "code": "HTTP_ERROR"}
        return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError):
        logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
        return JSONResponse(status_code=409, content={"error": "Resource already exists", "code": "CONFLICT"})

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error("Database error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={"error": "Database error", "code": "DATABASE_ERROR"})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled error: url=%s method=%s ip=%s user_id=%s",
            request.url,
            request.method,
            request.client.host if request.client else None,
            getattr(request.state, "user_id", None),
            exc_info=exc,
        )
        message = str(exc) if settings.is_development else "Internal server error"
        return JSONResponse(status_code=500, content={"error": message, "code": "SERVER_ERROR"})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version="1.0.0",
        lifespan=lifespan,
        description="Headless CMS API with a JavaScript SDK for embedding content",
    )
    app.state.settings = settings
    app.state.db = Database(settings.DATABASE_URL)
    app.state.storage = ObjectStorage(settings)
    app.state.rate_limiter = NoopRateLimiter()

    register_exception_handlers(app, settings)

    @app.get("/")
    def read_root():
        return {"message": f"Welcome to {settings.PROJECT_NAME}. Visit /docs for Swagger UI."}

    @app.get("/health")
    def health():
        return api.health_payload(settings)

    app.include_router(auth.router, prefix="/auth", tags=["auth"])
    # Mounted twice: the admin panel uses /posts, older clients /api/posts
    app.include_router(posts.router, prefix="/posts", tags=["posts"])
    app.include_router(posts.router, prefix="/api/posts", tags=["posts"], include_in_schema=False)
    app.include_router(taxonomy.categories_router, prefix="/api/categories", tags=["categories"])
    app.include_router(taxonomy.categories_router, prefix="/categories", tags=["categories"], include_in_schema=False)
    app.include_router(taxonomy.tags_router, prefix="/api/tags", tags=["tags"])
    app.include_router(taxonomy.tags_router, prefix="/tags", tags=["tags"], include_in_schema=False)
    app.include_router(users.router, prefix="/users", tags=["users"])
    app.include_router(users.router, prefix="/api/users", tags=["users"], include_in_schema=False)
    app.include_router(dashboard.router, prefix="/api/dashboard", tags=["dashboard"])
    app.include_router(upload.router, prefix="/api/upload", tags=["upload"])
    app.include_router(sdk.router, prefix=SDK_PREFIX, tags=["sdk"])
    app.include_router(api.router, prefix="/api", tags=["api"])

    if not settings.is_production:
        @app.middleware("http")
        async def log_requests(request: Request, call_next):
            started = time.perf_counter()
            response = await call_next(request)
            logger.info(
                "%s %s %s %.1fms",
                request.method,
                request.url.path,
                response.status_code,
                (time.perf_counter() - started) * 1000,
            )
            return response

    app.add_middleware(
        AdminCORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    return app


app = create_app()
