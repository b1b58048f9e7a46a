"""Video generation services - submit, poll, retry and materialize Veo jobs."""
import asyncio
from typing import Awaitable, Callable, Optional

from config import Config
from utils.logger import get_logger
from videos.artifacts import materialize_artifact
from videos.client import OperationClient, default_client_factory
from videos.errors import (
    ErrorKind,
    GenerationError,
    TransientErrorPolicy,
    classify_exception,
    classify_operation_error,
)
from videos.models import Artifact, Failure, GenerationOutcome, GenerationParams, Success
from videos.payloads import build_payload
from videos.storage import VideoStore

logger = get_logger("videos.services")

ClientFactory = Callable[[str], OperationClient]
CredentialProvider = Callable[[], str]
Sleep = Callable[[float], Awaitable[None]]


class VideoGenerator:
    """
    Runs one generation job per ``generate`` call.

    Holds only configuration and collaborators; all per-job state lives in
    the call, so one generator can serve concurrent requests.
    """

    def __init__(
        self,
        client_factory: Optional[ClientFactory] = None,
        credential_provider: Optional[CredentialProvider] = None,
        store: Optional[VideoStore] = None,
        policy: Optional[TransientErrorPolicy] = None,
        poll_interval: Optional[float] = None,
        retry_backoff: Optional[float] = None,
        max_attempts: Optional[int] = None,
        sleep: Optional[Sleep] = None,
    ):
        self.client_factory = client_factory or default_client_factory
        self.credential_provider = credential_provider or Config.get_gemini_api_key
        self.store = store or VideoStore()
        self.policy = policy or TransientErrorPolicy.from_config()
        self.poll_interval = Config.VIDEO_POLL_INTERVAL_SECONDS if poll_interval is None else poll_interval
        self.retry_backoff = Config.VIDEO_RETRY_BACKOFF_SECONDS if retry_backoff is None else retry_backoff
        self.max_attempts = max(1, max_attempts or Config.VIDEO_MAX_ATTEMPTS)
        self.sleep = sleep or asyncio.sleep

    async def generate(self, params: GenerationParams, cancel_event: Optional[asyncio.Event] = None) -> GenerationOutcome:
        """
        Generate a video and return Success(artifact) or Failure(kind, message).

        Transient service errors restart the whole job (new payload, credential,
        client and submission) up to ``max_attempts`` times in total.
        """
        attempt = 0
        while True:
            attempt += 1
            logger.info(
                f"Starting video generation (attempt {attempt}/{self.max_attempts}) "
                f"with mode: {params.mode.value}, model: {params.model.value}"
            )
            try:
                artifact = await self._run_attempt(params, cancel_event)
                logger.info(f"Video generated successfully: {artifact.local_url}")
                return Success(artifact=artifact, attempts=attempt)
            except Exception as e:
                error = classify_exception(e, self.policy)

            if error.retryable and attempt < self.max_attempts:
                logger.warning(
                    f"Attempt {attempt} failed with transient service error ({error.message}). "
                    f"Retrying in {self.retry_backoff} seconds..."
                )
                try:
                    await self._wait(self.retry_backoff, cancel_event)
                except GenerationError as cancelled:
                    error = cancelled
                else:
                    continue

            return self._failure(error, attempt)

    async def _run_attempt(self, params, cancel_event: Optional[asyncio.Event]) -> Artifact:
        payload = build_payload(params)

        try:
            api_key = self.credential_provider()
        except ValueError as e:
            raise GenerationError(ErrorKind.AUTH_FAILURE, str(e)) from e
        async with self.client_factory(api_key) as client:
            operation = await client.submit(payload)

            poll_count = 0
            while not operation.done and operation.error is None:
                await self._wait(self.poll_interval, cancel_event)
                poll_count += 1
                logger.info(f"...Generating... (poll #{poll_count})")
                operation = await client.poll(operation)

            if operation.error is not None:
                logger.warning(f"Operation {operation.name} returned error: {operation.error.model_dump()}")
                raise classify_operation_error(operation.error, self.policy)

            logger.info(f"Video generation completed after {poll_count} polls")
            return await materialize_artifact(operation, client, self.store, prompt=params.prompt)

    async def _wait(self, seconds: float, cancel_event: Optional[asyncio.Event]) -> None:
        if cancel_event is None:
            await self.sleep(seconds)
            return

        if cancel_event.is_set():
            raise GenerationError(ErrorKind.CANCELLED, "Video generation was cancelled")

        sleeper = asyncio.ensure_future(self.sleep(seconds))
        waiter = asyncio.ensure_future(cancel_event.wait())
        try:
            await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sleeper, waiter):
                if not task.done():
                    task.cancel()

        if cancel_event.is_set():
            raise GenerationError(ErrorKind.CANCELLED, "Video generation was cancelled")

    @staticmethod
    def _failure(error: GenerationError, attempts: int) -> Failure:
        if error.kind in (ErrorKind.CONTENT_REJECTED, ErrorKind.PRECONDITION_FAILED, ErrorKind.CANCELLED):
            logger.warning(f"Video generation stopped ({error.kind.value}): {error.message}")
        else:
            logger.error(f"Video generation failed ({error.kind.value}) after {attempts} attempt(s): {error.message}")
        return Failure(
            kind=error.kind,
            message=error.message,
            status_code=error.status_code,
            attempts=attempts,
        )


_default_generator: Optional[VideoGenerator] = None


def get_default_generator() -> VideoGenerator:
    """Return the process-wide generator wired to Gemini, creating it on first call."""
    global _default_generator
    if _default_generator is None:
        _default_generator = VideoGenerator()
    return _default_generator


async def generate_video(params: GenerationParams, cancel_event: Optional[asyncio.Event] = None) -> GenerationOutcome:
    """Generate a video with the default Gemini-backed generator."""
    return await get_default_generator().generate(params, cancel_event=cancel_event)
