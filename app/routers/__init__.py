"""
FastAPI routers for the clipper service.
"""

from app.routers import clips, health, progress_ws, subtitles

__all__ = ["health", "clips", "subtitles", "progress_ws"]
