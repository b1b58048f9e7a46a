"""Local storage for generated video files."""
import os
import re
from datetime import datetime, timezone
from typing import Optional

from config import Config
from utils.logger import get_logger

logger = get_logger("videos.storage")

_SAFE_FILE_NAME = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


def format_video_filename(prompt: str, video_id: str, prefix: Optional[str] = None) -> str:
    """Readable file name: <prefix>-<prompt-slug>-<date>-<id8>.mp4"""
    slug = re.sub(r"[^a-z0-9\s]", "", prompt.lower())
    slug = re.sub(r"\s+", "-", slug)[:30].strip("-")
    date = datetime.now(timezone.utc).strftime("%Y-%m-%d")
    parts = [prefix or Config.VIDEO_FILENAME_PREFIX]
    if slug:
        parts.append(slug)
    parts.extend([date, video_id[:8]])
    return "-".join(parts) + ".mp4"


class VideoStore:
    """Writes video bytes to a directory served under a URL prefix."""

    def __init__(self, directory: Optional[str] = None, url_prefix: Optional[str] = None):
        self.directory = directory or Config.VIDEOS_DIR
        self.url_prefix = (url_prefix or Config.VIDEOS_URL_PREFIX).rstrip("/")
        os.makedirs(self.directory, exist_ok=True)

    def save(self, file_name: str, data: bytes) -> str:
        """Save video file and return its URL."""
        path = self.path_for(file_name)
        with open(path, "wb") as f:
            f.write(data)
        logger.info(f"Saved video to: {path} ({len(data)} bytes)")
        return f"{self.url_prefix}/{file_name}"

    def path_for(self, file_name: str) -> str:
        if not _SAFE_FILE_NAME.match(file_name):
            raise ValueError(f"Invalid video file name: {file_name!r}")
        return os.path.join(self.directory, file_name)

    def exists(self, file_name: str) -> bool:
        try:
            return os.path.isfile(self.path_for(file_name))
        except ValueError:
            return False
