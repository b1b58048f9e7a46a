import base64
from typing import Any, Dict, List, Optional

import pytest

from videos.models import (
    GeneratedVideo,
    Operation,
    OperationError,
    OperationResult,
    RemoteVideoHandle,
)
from videos.services import VideoGenerator
from videos.storage import VideoStore

VIDEO_BYTES = b"\x00\x00\x00\x18ftypmp42fake-video"


def pending(name: str = "operations/job-1") -> Operation:
    return Operation(name=name, done=False)


def completed(
    name: str = "operations/job-1",
    uri: Optional[str] = "https://generativelanguage.googleapis.com/v1beta/files/abc:download?alt=media",
) -> Operation:
    reference = {"uri": uri, "mime_type": "video/mp4"} if uri else {"mime_type": "video/mp4"}
    return Operation(
        name=name,
        done=True,
        result=OperationResult(generated_videos=[
            GeneratedVideo(uri=uri, handle=RemoteVideoHandle(reference=reference)),
        ]),
    )


def rejected(name: str = "operations/job-1", reasons: Optional[List[str]] = None) -> Operation:
    return Operation(name=name, done=True, result=OperationResult(filtered_reasons=reasons or []))


def failed(code: Optional[int] = 13, message: str = "Internal error encountered.", name: str = "operations/job-1") -> Operation:
    return Operation(name=name, done=True, error=OperationError(code=code, message=message))


class FakeProvider:
    """
    Scripted provider shared by every client the generator builds.

    ``attempts`` holds one script per submission: the first step is what
    submit returns, the following steps are returned by successive polls.
    A step that is an exception is raised instead.
    """

    def __init__(self, attempts, video_bytes: bytes = VIDEO_BYTES, fetch_error: Optional[Exception] = None):
        self.attempts = [list(script) for script in attempts]
        self.video_bytes = video_bytes
        self.fetch_error = fetch_error
        self.api_keys: List[str] = []
        self.submitted: List[Dict[str, Any]] = []
        self.polled: List[Operation] = []
        self.fetched: List[str] = []
        self.closed = 0

    def factory(self, api_key: str) -> "FakeClient":
        self.api_keys.append(api_key)
        return FakeClient(self)


class FakeClient:
    def __init__(self, provider: FakeProvider):
        self.provider = provider
        self.steps: List[Any] = []

    def _next(self):
        step = self.steps.pop(0)
        if isinstance(step, Exception):
            raise step
        return step

    async def submit(self, request):
        self.provider.submitted.append(request)
        self.steps = self.provider.attempts.pop(0)
        return self._next()

    async def poll(self, operation):
        self.provider.polled.append(operation)
        return self._next()

    async def fetch(self, uri):
        self.provider.fetched.append(uri)
        if self.provider.fetch_error is not None:
            raise self.provider.fetch_error
        return self.provider.video_bytes

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.provider.closed += 1


class FakeClock:
    """Records waits instead of sleeping."""

    def __init__(self):
        self.waits: List[float] = []

    async def sleep(self, seconds: float) -> None:
        self.waits.append(seconds)


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("utf-8")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(tmp_path):
    return VideoStore(directory=str(tmp_path / "videos"), url_prefix="/assets/generated/videos")


@pytest.fixture
def make_generator(clock, store):
    def _make(provider: FakeProvider, credential_provider=None, **kwargs) -> VideoGenerator:
        return VideoGenerator(
            client_factory=provider.factory,
            credential_provider=credential_provider or (lambda: "test-api-key"),
            store=store,
            poll_interval=10,
            retry_backoff=2,
            max_attempts=2,
            sleep=clock.sleep,
            **kwargs,
        )
    return _make
