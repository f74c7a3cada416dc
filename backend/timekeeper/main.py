import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from timekeeper.core.config import settings
from timekeeper.api import attendances as attendances_api
from timekeeper.api import employees as employees_api
from timekeeper.api import schedules as schedules_api
from timekeeper.api import uploads as uploads_api

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def init_database():
    """Create tables on startup. Alembic owns schema changes after the first deploy."""
    from timekeeper.core.database import engine, Base
    import timekeeper.models  # noqa: F401  register every table

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ensured")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_database()
    yield


# Disable API docs in production
docs_url = "/docs" if settings.ENVIRONMENT != "production" else None
redoc_url = "/redoc" if settings.ENVIRONMENT != "production" else None

app = FastAPI(
    title=settings.APP_NAME,
    description="Timekeeper - attendance import and schedule reconciliation API",
    version="1.0.0",
    lifespan=lifespan,
    docs_url=docs_url,
    redoc_url=redoc_url,
)


# Global exception handler - always return JSON (never plain text)
@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"success": False, "detail": f"Internal error: {str(exc)[:200]}"},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request, exc):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "detail": exc.detail},
    )


# CORS - local dev plus the configured dashboard URL
allowed_origins = [
    "http://localhost:3000",
    "http://frontend:3000",
]
frontend_url = settings.FRONTEND_URL or ""
if frontend_url and frontend_url not in allowed_origins:
    allowed_origins.append(frontend_url)
    if not frontend_url.startswith("https"):
        allowed_origins.append(frontend_url.replace("http://", "https://"))

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health_check():
    return {"status": "healthy", "service": "timekeeper-api", "version": "1.0.0"}


app.include_router(uploads_api.router)
app.include_router(attendances_api.router)
app.include_router(schedules_api.router)
app.include_router(employees_api.router)
