"""Video generation module."""
from videos.errors import ErrorKind, GenerationError, TransientErrorPolicy
from videos.models import (
    Artifact,
    ExtendVideoParams,
    Failure,
    FramesToVideoParams,
    GenerationMode,
    GenerationOutcome,
    ReferenceImage,
    ReferencesToVideoParams,
    RemoteVideoHandle,
    Success,
)
from videos.payloads import build_payload
from videos.services import VideoGenerator, generate_video

__all__ = [
    "ErrorKind",
    "GenerationError",
    "TransientErrorPolicy",
    "Artifact",
    "ExtendVideoParams",
    "Failure",
    "FramesToVideoParams",
    "GenerationMode",
    "GenerationOutcome",
    "ReferenceImage",
    "ReferencesToVideoParams",
    "RemoteVideoHandle",
    "Success",
    "build_payload",
    "VideoGenerator",
    "generate_video",
]
