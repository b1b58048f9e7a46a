"""Build Veo ``generate_videos`` request payloads from generation parameters."""
from functools import singledispatch
from typing import Any, Dict, List

from utils.logger import get_logger
from videos.errors import ErrorKind, GenerationError
from videos.models import (
    ExtendVideoParams,
    FramesToVideoParams,
    ImageData,
    ReferenceRole,
    ReferencesToVideoParams,
)

logger = get_logger("videos.payloads")


def image_payload(image: ImageData) -> Dict[str, Any]:
    return {
        "imageBytes": image.data,
        "mimeType": image.mime_type,
    }


def _base_payload(params, include_aspect_ratio: bool = True) -> Dict[str, Any]:
    config: Dict[str, Any] = {
        "numberOfVideos": 1,
        "resolution": params.resolution.value,
    }
    # The provider infers aspect ratio from the source clip when extending
    if include_aspect_ratio:
        config["aspectRatio"] = params.aspect_ratio.value

    payload: Dict[str, Any] = {
        "model": params.model.value,
        "config": config,
    }

    prompt = params.prompt.strip()
    if prompt:
        payload["prompt"] = prompt
    return payload


@singledispatch
def build_payload(params) -> Dict[str, Any]:
    """
    Build the keyword arguments for the provider's generate_videos call.

    Pure: no I/O. Fields that belong to other generation modes are not part of
    a params variant, so only what the active mode needs is ever sent.
    """
    raise TypeError(f"Unsupported generation params: {type(params).__name__}")


@build_payload.register
def _(params: FramesToVideoParams) -> Dict[str, Any]:
    payload = _base_payload(params)

    if params.start_frame:
        payload["image"] = image_payload(params.start_frame)
        logger.info(f"Added start frame with mime type: {params.start_frame.mime_type}")

    final_end_frame = params.start_frame if params.is_looping else params.end_frame
    if final_end_frame:
        payload["config"]["lastFrame"] = image_payload(final_end_frame)
        if params.is_looping:
            logger.info("Generating looping video using start frame as end frame")
        else:
            logger.info(f"Added end frame with mime type: {final_end_frame.mime_type}")

    return payload


@build_payload.register
def _(params: ReferencesToVideoParams) -> Dict[str, Any]:
    payload = _base_payload(params)

    reference_images_payload: List[Dict[str, Any]] = [
        {"image": image_payload(img), "referenceType": "ASSET"}
        for img in params.reference_images
        if img.role == ReferenceRole.ASSET
    ]

    style_images = [img for img in params.reference_images if img.role == ReferenceRole.STYLE]
    if style_images:
        reference_images_payload.append({"image": image_payload(style_images[0]), "referenceType": "STYLE"})
        if len(style_images) > 1:
            logger.warning(f"Only one style image is supported; ignoring {len(style_images) - 1} extra")

    if reference_images_payload:
        payload["config"]["referenceImages"] = reference_images_payload
        logger.info(f"Added {len(reference_images_payload)} reference image(s)")

    return payload


@build_payload.register
def _(params: ExtendVideoParams) -> Dict[str, Any]:
    if params.handle is None:
        raise GenerationError(ErrorKind.PRECONDITION_FAILED, "handle required to extend")

    payload = _base_payload(params, include_aspect_ratio=False)
    payload["video"] = params.handle.reference
    logger.info(f"Extending video from URI: {params.handle.uri}")
    return payload
