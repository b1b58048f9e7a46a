"""Turn a completed remote operation into a locally stored Artifact."""
import asyncio
from uuid import uuid4

import httpx

from utils.logger import get_logger
from videos.client import OperationClient
from videos.errors import ErrorKind, GenerationError
from videos.models import Artifact, Operation
from videos.storage import VideoStore, format_video_filename

logger = get_logger("videos.artifacts")

CONTENT_REJECTED_MESSAGE = (
    "Video generation failed. The content was likely blocked by safety filters. "
    "Please try adjusting your prompt or reference images."
)


async def materialize_artifact(
    operation: Operation,
    client: OperationClient,
    store: VideoStore,
    prompt: str = "",
) -> Artifact:
    """
    Fetch the first generated video of a completed operation and store it.

    Raises:
        GenerationError: CONTENT_REJECTED when nothing was generated,
            MALFORMED_RESPONSE when the result lacks a video URI,
            FETCH_FAILED when downloading the video fails.
    """
    if operation.result is None:
        raise GenerationError(
            ErrorKind.MALFORMED_RESPONSE,
            "No videos generated. Operation completed without response.",
        )

    videos = operation.result.generated_videos
    if not videos:
        message = CONTENT_REJECTED_MESSAGE
        if operation.result.filtered_reasons:
            message += " Reason: " + "; ".join(operation.result.filtered_reasons)
        logger.warning(f"Operation {operation.name} completed with no generated videos")
        raise GenerationError(ErrorKind.CONTENT_REJECTED, message)

    first_video = videos[0]
    if first_video.handle is None or not first_video.uri:
        raise GenerationError(ErrorKind.MALFORMED_RESPONSE, "Generated video is missing a URI.")

    logger.info(f"Fetching video from: {first_video.uri}")
    try:
        video_bytes = await client.fetch(first_video.uri)
    except httpx.HTTPStatusError as e:
        status = e.response.status_code
        raise GenerationError(
            ErrorKind.FETCH_FAILED,
            f"Failed to fetch video: {status} {e.response.reason_phrase}",
            status,
        ) from e
    except httpx.RequestError as e:
        raise GenerationError(ErrorKind.FETCH_FAILED, f"Failed to fetch video: {e}") from e

    logger.info(f"Fetched video: {len(video_bytes)} bytes")

    file_name = format_video_filename(prompt, str(uuid4()))
    local_url = await asyncio.to_thread(store.save, file_name, video_bytes)

    return Artifact(
        data=video_bytes,
        local_url=local_url,
        file_name=file_name,
        remote_uri=first_video.uri,
        mime_type=first_video.handle.reference.get("mime_type") or "video/mp4",
        handle=first_video.handle,
    )
