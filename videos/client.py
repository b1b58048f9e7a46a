"""Remote operation client for the Gemini Veo API."""
from typing import Any, Dict, Optional, Protocol

import httpx
from google import genai

from config import Config
from utils.logger import get_logger
from videos.models import (
    GeneratedVideo,
    Operation,
    OperationError,
    OperationResult,
    RemoteVideoHandle,
)

logger = get_logger("videos.client")


class OperationClient(Protocol):
    """What the generator needs from a video generation provider."""

    async def submit(self, request: Dict[str, Any]) -> Operation:
        ...

    async def poll(self, operation: Operation) -> Operation:
        ...

    async def fetch(self, uri: str) -> bytes:
        ...

    async def __aenter__(self) -> "OperationClient":
        ...

    async def __aexit__(self, exc_type, exc, tb) -> None:
        ...


def _field(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _video_reference(video: Any) -> Dict[str, Any]:
    if isinstance(video, dict):
        return dict(video)
    return video.model_dump(exclude_none=True)


def to_operation(raw: Any) -> Operation:
    """Convert a google-genai GenerateVideosOperation into an Operation snapshot."""
    error = None
    raw_error = _field(raw, "error")
    if raw_error:
        error = OperationError(
            code=_field(raw_error, "code"),
            message=_field(raw_error, "message") or "",
        )

    result = None
    response = _field(raw, "response") or _field(raw, "result")
    if response is not None:
        generated_videos = []
        for generated in _field(response, "generated_videos") or []:
            video = _field(generated, "video")
            # Items without a video are kept so the first-item rule sees them
            generated_videos.append(GeneratedVideo(
                uri=_field(video, "uri"),
                handle=RemoteVideoHandle(reference=_video_reference(video)) if video is not None else None,
            ))
        result = OperationResult(
            generated_videos=generated_videos,
            filtered_reasons=list(_field(response, "rai_media_filtered_reasons") or []),
        )

    return Operation(
        name=_field(raw, "name"),
        done=bool(_field(raw, "done")),
        error=error,
        result=result,
        raw=raw,
    )


class GeminiOperationClient:
    """
    Submit, poll and download Veo jobs with one API key.

    A new client is built for every generation attempt so that the key in
    effect at that moment is the one used. Use it as an async context
    manager so the SDK connection pool is closed when the attempt ends.
    """

    def __init__(self, api_key: str, fetch_timeout: Optional[float] = None):
        self._api_key = api_key
        self._client = genai.Client(api_key=api_key)
        self._fetch_timeout = fetch_timeout or Config.VIDEO_FETCH_TIMEOUT_SECONDS

    async def submit(self, request: Dict[str, Any]) -> Operation:
        logger.info(f"Submitting video generation request (model: {request.get('model')})")
        raw = await self._client.aio.models.generate_videos(**request)
        operation = to_operation(raw)
        logger.info(f"Video generation operation started: {operation.name or 'unknown'}")
        return operation

    async def poll(self, operation: Operation) -> Operation:
        raw = await self._client.aio.operations.get(operation.raw)
        return to_operation(raw)

    async def fetch(self, uri: str) -> bytes:
        async with httpx.AsyncClient(timeout=self._fetch_timeout, follow_redirects=True) as http_client:
            response = await http_client.get(uri, params={"key": self._api_key})
            response.raise_for_status()
            return response.content

    async def aclose(self) -> None:
        await self._client.aio.aclose()

    async def __aenter__(self) -> "GeminiOperationClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


def default_client_factory(api_key: str) -> OperationClient:
    return GeminiOperationClient(api_key=api_key)
