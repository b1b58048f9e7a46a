import os
import time

import pytest

from config import Config
from utils.logger import LOG_FILE, cleanup_old_logs
from videos.errors import TransientErrorPolicy
from videos.storage import VideoStore, format_video_filename


def test_api_key_is_reread_from_environment(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "first-key")
    assert Config.get_gemini_api_key() == "first-key"

    monkeypatch.setenv("GEMINI_API_KEY", "swapped-key")
    assert Config.get_gemini_api_key() == "swapped-key"


def test_missing_api_key_raises(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setattr(Config, "GEMINI_API_KEY", "")

    with pytest.raises(ValueError):
        Config.get_gemini_api_key()


def test_transient_policy_from_config(monkeypatch):
    monkeypatch.setattr(Config, "VIDEO_TRANSIENT_ERROR_CODES", ["13", "14"])
    monkeypatch.setattr(Config, "VIDEO_TRANSIENT_HTTP_STATUSES", ["503"])
    monkeypatch.setattr(Config, "VIDEO_TRANSIENT_ERROR_MARKERS", ["Backend Busy"])

    policy = TransientErrorPolicy.from_config()

    assert policy.operation_codes == {13, 14}
    assert policy.http_statuses == {503}
    assert policy.matches_message("backend busy, retry later")


def test_video_filename_slug():
    name = format_video_filename("A Man, Hiking!  at dawn", "1234567890abcdef", prefix="veo")

    assert name.startswith("veo-a-man-hiking-at-dawn-")
    assert name.endswith("-12345678.mp4")


def test_video_filename_without_prompt():
    name = format_video_filename("", "abcdef0123456789", prefix="veo")

    assert name.startswith("veo-2")
    assert name.endswith("-abcdef01.mp4")


def test_store_rejects_path_traversal(tmp_path):
    store = VideoStore(directory=str(tmp_path))

    with pytest.raises(ValueError):
        store.path_for("../escape.mp4")
    assert not store.exists("../escape.mp4")


def test_cleanup_old_logs(tmp_path):
    base = os.path.basename(LOG_FILE)
    old = tmp_path / f"{base}.2000-01-01"
    recent = tmp_path / f"{base}.{time.strftime('%Y-%m-%d')}"
    old.write_text("old")
    recent.write_text("recent")

    assert cleanup_old_logs(str(tmp_path), retention_days=10) == 1
    assert not old.exists()
    assert recent.exists()
