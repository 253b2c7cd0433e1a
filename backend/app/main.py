import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from app.core.config import settings
from app.core.database import init_db
from app.core.errors import AppError, InternalError
from app.core.logging import setup_logging
from app.core.scheduler import start_scheduler, stop_scheduler
from app.api.routes import auth, users
from app.storage.local_storage import storage

logger = logging.getLogger(__name__)

APP_TITLE = "Student Freelancer Workplace API"
APP_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: configure logging, create missing tables, start the scheduler
    Shutdown: stop the scheduler
    """
    setup_logging()
    init_db()
    start_scheduler()
    logger.info(f"{APP_TITLE} started ({settings.ENVIRONMENT})")
    yield
    stop_scheduler()


app = FastAPI(
    title=APP_TITLE,
    description="Directory of student freelancers",
    version=APP_VERSION,
    lifespan=lifespan
)

# CORS middleware - allows the frontend to call the API from the browser
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(expose_detail=not settings.is_production),
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg", "Invalid value"),
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": "Validation failed", "errors": errors},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = "Route not found" if exc.status_code == 404 else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": message},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    error = InternalError("Something went wrong!", detail=str(exc))
    return JSONResponse(status_code=500, content=error.to_dict(expose_detail=not settings.is_production))


# Register API route modules under /api
app.include_router(users.router, prefix="/api")
app.include_router(auth.router, prefix="/api")

# Uploaded pictures are served straight from the upload directory
app.mount(settings.UPLOAD_URL_PREFIX, StaticFiles(directory=storage.upload_dir), name="uploads")


@app.get("/")
async def root():
    """Root endpoint - API information"""
    return {"message": APP_TITLE, "version": APP_VERSION}


@app.get("/health")
async def health():
    """Health check endpoint - used by monitoring/deployment tools"""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=settings.PORT)
