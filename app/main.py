# app/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1.routes_scan import router as scan_router
from app.core.config import get_settings
from app.core.errors import ForensicsError

SERVICE_NAME = "media-forensics-backend"
VERSION = "0.1.0"

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)
logger.info("[MediaForensics] Starting %s v%s (%s)", SERVICE_NAME, VERSION, settings.ENV)

app = FastAPI(
    title="Media Forensics Backend",
    version=VERSION,
    description="FastAPI backend that samples uploaded media and asks a multimodal model for an AI-generation verdict.",
)

# CORS – allow the web client + local dev domains
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # you can tighten this later
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ForensicsError)
async def forensics_error_handler(request: Request, exc: ForensicsError):
    logger.info("[MediaForensics] %s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.get("/health")
async def health_check():
    return {"status": "ok", "service": SERVICE_NAME, "version": VERSION}


# Mount v1 API routes
app.include_router(scan_router, prefix="/api/v1")
