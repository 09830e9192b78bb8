"""
FastAPI application entry point for Clipper.

Clipper cuts clips out of online videos and serves subtitle tracks:
1. Clip jobs (yt-dlp download, FFmpeg cut) with polling and WebSocket progress
2. Subtitle listing and download (srt, vtt, plain text)
"""

import asyncio
import logging
import os
import shutil
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import get_settings
from app.routers import clips, health, progress_ws, subtitles
from app.services.file_sweeper import run_periodic_sweep

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for startup and shutdown events.
    Prepares the download directory and runs the cleanup sweep.
    """
    settings = get_settings()
    logger.info("Starting Clipper...")

    os.makedirs(settings.download_directory, exist_ok=True)
    logger.info(f"Downloads directory: {settings.download_directory}")
    logger.info(f"Static directory: {settings.static_directory}")

    if settings.has_cookies():
        logger.info(f"Cookies enabled: {settings.cookies_file}")
    else:
        logger.info(f"Cookies not found at: {settings.cookies_file}")

    extra_args = settings.get_ytdlp_extra_args()
    if extra_args:
        logger.info(f"Extra yt-dlp args: {' '.join(extra_args)}")

    # Verify external tools
    _verify_external_tools()

    sweeper = asyncio.create_task(run_periodic_sweep(settings))
    app.state.sweeper = sweeper

    logger.info("Clipper ready to accept requests.")

    yield

    logger.info("Shutting down Clipper...")
    sweeper.cancel()
    try:
        await sweeper
    except asyncio.CancelledError:
        pass
    logger.info("Shutdown complete")


def _verify_external_tools():
    """Verify that required external tools are available."""
    tools = {
        "ffmpeg": "FFmpeg for clip cutting",
        "yt-dlp": "yt-dlp for downloads and subtitles",
    }

    for tool, description in tools.items():
        if shutil.which(tool):
            logger.info(f"✓ {description} available")
        else:
            logger.warning(f"✗ {description} NOT FOUND - some features may not work")


# Create FastAPI application
app = FastAPI(
    title="Clipper",
    description="""
Clip a time range out of an online video, or fetch its subtitles.

## Usage

1. Submit a clip: `POST /api/download`
2. Follow progress: `GET /api/progress/{download_id}` or `WS /ws/progress?id={download_id}`
3. Fetch the clip from `download_url` once the status is `completed`
    """,
    version=health.VERSION,
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Render HTTP errors as {"error": ...}."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Reject malformed bodies with 400 and the validation details."""
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "details": jsonable_encoder(exc.errors())},
    )


# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(clips.router)
app.include_router(subtitles.router)
app.include_router(progress_ws.router, tags=["Progress"])

if os.path.isdir(settings.static_directory):
    app.mount("/static", StaticFiles(directory=settings.static_directory), name="static")


@app.get("/", include_in_schema=False)
async def root():
    """Serve the web UI."""
    index_path = os.path.join(get_settings().static_directory, "index.html")
    if not os.path.isfile(index_path):
        raise HTTPException(status_code=404, detail="Not found")
    return FileResponse(index_path)


def run() -> None:
    """Run the server with the configured host and port."""
    uvicorn.run("app.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
