"""Video generation routes."""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse

from common.error_messages import ERROR_STATUS_CODES, format_error_detail
from utils.logger import get_logger
from videos.errors import ErrorKind
from videos.models import (
    Failure,
    GenerateVideoRequest,
    GenerateVideoResponse,
    GenerationMode,
    Resolution,
)
from videos.services import VideoGenerator, get_default_generator
from videos.storage import VideoStore

logger = get_logger("videos")
router = APIRouter(tags=["videos"])


def get_video_generator() -> VideoGenerator:
    return get_default_generator()


def get_video_store() -> VideoStore:
    return get_default_generator().store


def _validate_request(req: GenerateVideoRequest) -> None:
    """Reject requests the form would never send. Raises HTTPException(400)."""
    if req.mode == GenerationMode.FRAMES_TO_VIDEO and not req.start_frame:
        raise HTTPException(status_code=400, detail="Start frame is required for frames-to-video mode")

    if req.mode == GenerationMode.REFERENCES_TO_VIDEO and not req.reference_images and not req.style_image:
        raise HTTPException(
            status_code=400,
            detail="At least one reference image or style image is required for references-to-video mode",
        )

    if req.mode in (GenerationMode.FRAMES_TO_VIDEO, GenerationMode.REFERENCES_TO_VIDEO) \
            and not req.model.supports_image_inputs:
        raise HTTPException(
            status_code=400,
            detail=(
                f"{req.mode.value} mode is only supported with Veo 3.1 models. "
                f"Please use 'veo-3.1-fast-generate-preview' or 'veo-3.1-generate-preview'. "
                f"(Current model: {req.model.value})"
            ),
        )


def _failure_exception(failure: Failure) -> HTTPException:
    status_code = ERROR_STATUS_CODES.get(failure.kind, 500)
    return HTTPException(
        status_code=status_code,
        detail={
            "error": failure.kind.value,
            "message": format_error_detail(failure.kind, failure.message),
            "reselect_credential": failure.kind == ErrorKind.AUTH_FAILURE,
        },
    )


@router.post("/api/videos/generate", response_model=GenerateVideoResponse)
async def generate_video_endpoint(
    req: GenerateVideoRequest,
    generator: VideoGenerator = Depends(get_video_generator),
):
    """
    Generate video from prompt and mode-specific inputs using Gemini Veo.

    Behavior:
      - Validate the request for the selected mode
      - Submit, poll and retry through the video generator
      - Save the video file and return its URL plus the handle for extending
    """
    logger.info(f"Video generation request - mode: {req.mode.value}, model: {req.model.value}")
    _validate_request(req)

    if req.mode == GenerationMode.EXTEND_VIDEO and req.resolution != Resolution.P720:
        # Extension only accepts 720p
        logger.warning(f"Forcing resolution to 720p for extend mode (was {req.resolution.value})")
        req.resolution = Resolution.P720

    try:
        params = req.to_params()
    except ValueError as e:
        logger.warning(f"Invalid image data in video request: {e}")
        raise HTTPException(status_code=400, detail="Image data must be valid base64")

    outcome = await generator.generate(params)
    if isinstance(outcome, Failure):
        raise _failure_exception(outcome)

    artifact = outcome.artifact
    message = f"Video generated successfully using {req.mode.value} mode"
    if params.prompt:
        message += f" with prompt: '{params.prompt[:50]}'"

    return GenerateVideoResponse(
        video_url=artifact.local_url,
        video_uri=artifact.remote_uri,
        file_name=artifact.file_name,
        handle=artifact.handle,
        attempts=outcome.attempts,
        message=message,
    )


@router.get("/api/videos/{file_name}/download")
def download_video(file_name: str, store: VideoStore = Depends(get_video_store)):
    """Download a stored video as an attachment."""
    if not store.exists(file_name):
        raise HTTPException(status_code=404, detail="Video not found")
    return FileResponse(store.path_for(file_name), media_type="video/mp4", filename=file_name)
