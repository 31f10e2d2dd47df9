import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

import disease_report.models  # noqa: F401  registers every table on Base.metadata
from disease_report.config import get_settings
from disease_report.database import Base, async_session, engine
from disease_report.exceptions import AppError, ErrorKind
from disease_report.logging_config import configure_logging
from disease_report.routers import auth as auth_router
from disease_report.routers import patient_visits, users
from disease_report.seed import seed_defaults

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: create tables then seed default grants and the bootstrap account
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with async_session() as session:
        await seed_defaults(session, settings)
    logger.info("Disease report backend started (%s)", settings.environment)
    yield
    # Shutdown
    await engine.dispose()


app = FastAPI(
    title="Disease Report System",
    description="Authentication and hospital-scoped authorization for disease reporting",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class NoCacheMiddleware(BaseHTTPMiddleware):
    """Middleware to add no-cache headers to prevent browser caching."""
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, proxy-revalidate, max-age=0"
        response.headers["Expires"] = "0"
        response.headers["Pragma"] = "no-cache"
        return response


app.add_middleware(NoCacheMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        {"loc": ".".join(str(part) for part in err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    error = AppError(ErrorKind.VALIDATION_FAILED, "Request validation failed", details={"errors": details})
    return JSONResponse(status_code=error.status_code, content=error.to_body())


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": str(exc.detail), "error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Internal server error", "error": "Internal server error"},
    )


app.include_router(auth_router.router, prefix="/api/auth", tags=["Auth"])
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(patient_visits.router, prefix="/api/patient-visits", tags=["Patient Visits"])


@app.get("/api/health")
async def health_check():
    return {"status": "healthy", "service": "disease-report-backend"}
