"""
Exam Guard Service - FastAPI Application
"""
import time
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .proctor.api import router as proctor_router
from .utils.logging_config import setup_logging

setup_logging(
    service_name="examguard",
    level=settings.LOG_LEVEL,
    log_to_file=settings.LOG_TO_FILE,
    log_dir=settings.LOG_DIR
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    description="Exam integrity monitoring from webcam face detections",
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming requests with timing."""
    start = time.time()
    path = request.url.path

    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"Request {request.method} {path} failed: {e}")
        raise

    # Frame uploads arrive twice a second; keep them out of INFO
    duration_ms = int((time.time() - start) * 1000)
    level = logging.DEBUG if path in ("/health", "/api/proctor/frame") else logging.INFO
    logger.log(level, f"{request.method} {path} -> {response.status_code} in {duration_ms}ms")

    return response


# Note: When using allow_origins=["*"], credentials must be False
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(proctor_router)


@app.get("/health")
async def health():
    return {"status": "healthy", "service": settings.APP_NAME}
