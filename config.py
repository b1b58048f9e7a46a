"""
Configuration module - loads all settings from environment variables.
"""
import os
from typing import List
from dotenv import load_dotenv

# Load environment variables from .env file
try:
    load_dotenv()
except Exception as e:
    print(f"Warning: Failed to load .env file: {e}")
    print("Continuing with environment variables or defaults...")


class Config:
    """Application configuration loaded from environment variables."""

    @staticmethod
    def _get_int(key: str, default: int) -> int:
        """Safely parse integer environment variable."""
        try:
            return int(os.getenv(key, str(default)))
        except (ValueError, TypeError) as e:
            print(f"Warning: Invalid integer for {key}, using default {default}: {e}")
            return default

    @staticmethod
    def _get_float(key: str, default: float) -> float:
        """Safely parse float environment variable."""
        try:
            return float(os.getenv(key, str(default)))
        except (ValueError, TypeError) as e:
            print(f"Warning: Invalid float for {key}, using default {default}: {e}")
            return default

    @staticmethod
    def _get_bool(key: str, default: bool) -> bool:
        """Safely parse boolean environment variable."""
        value = os.getenv(key)
        if value is None:
            return default
        return value.strip().lower() in ("true", "1", "yes", "on")

    @staticmethod
    def _get_list(key: str, default: str) -> List[str]:
        """Parse a comma-separated environment variable, dropping blanks."""
        raw = os.getenv(key, default)
        return [item.strip() for item in raw.split(",") if item.strip()]

    # Gemini API
    GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")

    # Video generation job
    VIDEO_POLL_INTERVAL_SECONDS: float = _get_float.__func__("VIDEO_POLL_INTERVAL_SECONDS", 10.0)
    VIDEO_RETRY_BACKOFF_SECONDS: float = _get_float.__func__("VIDEO_RETRY_BACKOFF_SECONDS", 2.0)
    VIDEO_MAX_ATTEMPTS: int = _get_int.__func__("VIDEO_MAX_ATTEMPTS", 2)
    VIDEO_FETCH_TIMEOUT_SECONDS: float = _get_float.__func__("VIDEO_FETCH_TIMEOUT_SECONDS", 300.0)

    # Provider error taxonomy treated as transient (resubmit the whole job).
    # 13 is the gRPC INTERNAL code the Veo operation reports when the backend is busy.
    VIDEO_TRANSIENT_ERROR_CODES: List[str] = _get_list.__func__("VIDEO_TRANSIENT_ERROR_CODES", "13")
    VIDEO_TRANSIENT_HTTP_STATUSES: List[str] = _get_list.__func__("VIDEO_TRANSIENT_HTTP_STATUSES", "500,503")
    VIDEO_TRANSIENT_ERROR_MARKERS: List[str] = _get_list.__func__(
        "VIDEO_TRANSIENT_ERROR_MARKERS", "internal server error,internal error"
    )

    # File Storage
    ASSETS_DIR: str = os.getenv("ASSETS_DIR", "assets")
    VIDEOS_DIR: str = os.getenv("VIDEOS_DIR", "assets/generated/videos")
    VIDEOS_URL_PREFIX: str = os.getenv("VIDEOS_URL_PREFIX", "/assets/generated/videos")
    VIDEO_FILENAME_PREFIX: str = os.getenv("VIDEO_FILENAME_PREFIX", "veo")

    # Server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = _get_int.__func__("PORT", 8000)
    RELOAD: bool = _get_bool.__func__("RELOAD", False)

    @classmethod
    def validate(cls) -> None:
        """Validate required configuration."""
        if not os.getenv("GEMINI_API_KEY", cls.GEMINI_API_KEY):
            raise ValueError("GEMINI_API_KEY environment variable is required")

    @classmethod
    def get_gemini_api_key(cls) -> str:
        """
        Get the active GEMINI_API_KEY, raise error if not set.

        The environment is re-read on every call so a key swapped while the
        server is running is picked up by the next generation attempt.
        """
        api_key = os.getenv("GEMINI_API_KEY") or cls.GEMINI_API_KEY
        if not api_key:
            raise ValueError("GEMINI_API_KEY must be set in environment variables")
        return api_key


# Initialize directories
try:
    os.makedirs(Config.ASSETS_DIR, exist_ok=True)
    os.makedirs(Config.VIDEOS_DIR, exist_ok=True)
except Exception as e:
    print(f"Warning: Failed to create directories: {e}")
    print("Some features may not work correctly without these directories.")
