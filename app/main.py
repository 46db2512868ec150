import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.core.config import settings
from app.core.errors import AppError
from app.api import analyze, reports
from app.database import init_db
from app.services.ai_service import AnalysisService
from app.services.storage import EphemeralFileStore

from contextlib import asynccontextmanager

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting up %s...", settings.app_name)
    init_db()

    file_store = EphemeralFileStore(
        base_path=settings.upload_dir,
        ttl_seconds=settings.file_ttl_seconds,
        sweep_interval=settings.sweep_interval_seconds,
    )
    file_store.start()
    app.state.file_store = file_store

    app.state.analysis_service = AnalysisService.from_settings(settings)
    if not app.state.analysis_service.configured:
        logger.warning("OPENAI_API_KEY is not set; resume analysis requests will fail")

    yield

    logger.info("Shutting down %s...", settings.app_name)
    await file_store.stop()
    removed = file_store.purge()
    if removed:
        logger.info("Removed %d leftover upload(s)", removed)

app = FastAPI(
    title=settings.app_name,
    description="Compare resumes with job descriptions and download the feedback as a PDF",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS: Allow frontend to connect
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    fields = sorted({str(err["loc"][-1]) for err in exc.errors() if err.get("loc")})
    message = "Invalid request"
    if fields:
        message += f": check {', '.join(fields)}"
    return JSONResponse(status_code=400, content={"message": message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unexpected error on %s", request.url.path)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


# Include API routers
app.include_router(analyze.router, prefix="/api", tags=["analyze"])
app.include_router(reports.router, prefix="/api", tags=["reports"])

#Root
@app.get("/")
def root():
    return {
        "message": f"Welcome to the {settings.app_name}!",
        "version": "0.1.0",
        "status": "running",
    }

#Health check
@app.get("/health")
def health(request: Request):
    file_store = getattr(request.app.state, "file_store", None)
    analysis_service = getattr(request.app.state, "analysis_service", None)
    return {
        "status": "healthy",
        "sweeper_running": file_store is not None and file_store.running,
        "stored_files": len(file_store) if file_store is not None else 0,
        "openai_configured": bool(analysis_service and analysis_service.configured),
    }
