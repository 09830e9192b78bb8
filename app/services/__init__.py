"""
Services for the clipper.

Includes:
- Process runner for external tools (yt-dlp, ffmpeg)
- Progress store and broadcaster
- Clip and subtitle pipelines

Import from the submodules directly (app.schemas imports some of them).
"""
