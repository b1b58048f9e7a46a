"""Video generation Pydantic models."""
import base64
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from videos.errors import ErrorKind


class VeoModel(str, Enum):
    """Veo model variants."""
    # Veo 3.0 models (text and extend only)
    VEO_3_0_001 = "veo-3.0-generate-001"
    VEO_3_0_FAST = "veo-3.0-fast-generate-001"

    # Veo 3.1 models (full features: all modes supported)
    VEO_FAST = "veo-3.1-fast-generate-preview"
    VEO = "veo-3.1-generate-preview"

    @property
    def supports_image_inputs(self) -> bool:
        return "veo-3.1" in self.value


class AspectRatio(str, Enum):
    """Video aspect ratios."""
    LANDSCAPE = "16:9"
    PORTRAIT = "9:16"


class Resolution(str, Enum):
    """Video resolutions."""
    P720 = "720p"
    P1080 = "1080p"


class GenerationMode(str, Enum):
    """Video generation modes."""
    REFERENCES_TO_VIDEO = "references_to_video"
    FRAMES_TO_VIDEO = "frames_to_video"
    EXTEND_VIDEO = "extend_video"


class ReferenceRole(str, Enum):
    """How the provider should use a reference image."""
    ASSET = "asset"
    STYLE = "style"


class ImageData(BaseModel):
    """Raw image bytes plus MIME type."""
    data: bytes = Field(..., repr=False)
    mime_type: str = "image/png"


class ReferenceImage(ImageData):
    """Reference image for references-to-video generation."""
    role: ReferenceRole = ReferenceRole.ASSET


class RemoteVideoHandle(BaseModel):
    """
    Opaque provider reference to a previously generated video.

    ``reference`` holds the provider's video object exactly as it was
    returned and is sent back unchanged when extending that video.
    """
    model_config = ConfigDict(frozen=True)

    reference: Dict[str, Any]

    @property
    def uri(self) -> Optional[str]:
        return self.reference.get("uri")


class _BaseParams(BaseModel):
    prompt: str = ""
    model: VeoModel = VeoModel.VEO
    aspect_ratio: AspectRatio = AspectRatio.LANDSCAPE
    resolution: Resolution = Resolution.P720


class ReferencesToVideoParams(_BaseParams):
    """Generate from asset and style reference images."""
    mode: Literal[GenerationMode.REFERENCES_TO_VIDEO] = GenerationMode.REFERENCES_TO_VIDEO
    reference_images: List[ReferenceImage] = Field(default_factory=list)


class FramesToVideoParams(_BaseParams):
    """Generate between a start frame and an optional end frame."""
    mode: Literal[GenerationMode.FRAMES_TO_VIDEO] = GenerationMode.FRAMES_TO_VIDEO
    start_frame: Optional[ImageData] = None
    end_frame: Optional[ImageData] = None
    is_looping: bool = False


class ExtendVideoParams(_BaseParams):
    """Extend a video produced by an earlier generation."""
    mode: Literal[GenerationMode.EXTEND_VIDEO] = GenerationMode.EXTEND_VIDEO
    handle: Optional[RemoteVideoHandle] = None


GenerationParams = Annotated[
    Union[ReferencesToVideoParams, FramesToVideoParams, ExtendVideoParams],
    Field(discriminator="mode"),
]


class OperationError(BaseModel):
    """Error reported on a remote operation."""
    code: Optional[int] = None
    message: str = ""


class GeneratedVideo(BaseModel):
    uri: Optional[str] = None
    handle: Optional[RemoteVideoHandle] = None


class OperationResult(BaseModel):
    generated_videos: List[GeneratedVideo] = Field(default_factory=list)
    filtered_reasons: List[str] = Field(default_factory=list)


class Operation(BaseModel):
    """
    Snapshot of one remote generation job.

    Every poll produces a new snapshot; ``raw`` keeps the provider object the
    client needs to poll again.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: Optional[str] = None
    done: bool = False
    error: Optional[OperationError] = None
    result: Optional[OperationResult] = None
    raw: Any = Field(None, exclude=True, repr=False)


class Artifact(BaseModel):
    """A fetched, locally stored generated video."""
    data: bytes = Field(..., repr=False)
    local_url: str
    file_name: str
    remote_uri: str
    mime_type: str = "video/mp4"
    handle: RemoteVideoHandle


class Success(BaseModel):
    ok: Literal[True] = True
    artifact: Artifact
    attempts: int = 1


class Failure(BaseModel):
    ok: Literal[False] = False
    kind: ErrorKind
    message: str
    status_code: Optional[int] = None
    attempts: int = 1


GenerationOutcome = Union[Success, Failure]


# API request/response models

class ImageInput(BaseModel):
    """Image data for frame-based or reference-based generation."""
    mime_type: str = Field(..., description="Image MIME type (e.g., image/png, image/jpeg)")
    data: str = Field(..., description="Base64-encoded image data")

    def to_image_data(self) -> ImageData:
        return ImageData(data=base64.b64decode(self.data), mime_type=self.mime_type)


class GenerateVideoRequest(BaseModel):
    """Request model for video generation."""
    prompt: str = Field("", description="Text prompt for video generation")
    model: VeoModel = Field(VeoModel.VEO, description="Veo model to use")
    aspect_ratio: AspectRatio = Field(AspectRatio.LANDSCAPE, description="Video aspect ratio (not used for extend mode)")
    resolution: Resolution = Field(Resolution.P720, description="Video resolution")
    mode: GenerationMode = Field(GenerationMode.REFERENCES_TO_VIDEO, description="Generation mode")

    # Frames to video mode
    start_frame: Optional[ImageInput] = Field(None, description="Starting frame image")
    end_frame: Optional[ImageInput] = Field(None, description="Ending frame image")
    is_looping: bool = Field(False, description="Use start frame as end frame for looping")

    # References to video mode
    reference_images: Optional[List[ImageInput]] = Field(None, description="Asset reference images")
    style_image: Optional[ImageInput] = Field(None, description="Style reference image")

    # Extend video mode
    input_video: Optional[RemoteVideoHandle] = Field(None, description="Handle returned by a previous generation")

    def to_params(self) -> Union[ReferencesToVideoParams, FramesToVideoParams, ExtendVideoParams]:
        """Convert the flat request into the mode-specific parameter variant."""
        common = {
            "prompt": self.prompt,
            "model": self.model,
            "aspect_ratio": self.aspect_ratio,
            "resolution": self.resolution,
        }
        if self.mode == GenerationMode.FRAMES_TO_VIDEO:
            return FramesToVideoParams(
                **common,
                start_frame=self.start_frame.to_image_data() if self.start_frame else None,
                end_frame=self.end_frame.to_image_data() if self.end_frame else None,
                is_looping=self.is_looping,
            )
        if self.mode == GenerationMode.EXTEND_VIDEO:
            return ExtendVideoParams(**common, handle=self.input_video)

        references = [
            ReferenceImage(data=base64.b64decode(img.data), mime_type=img.mime_type, role=ReferenceRole.ASSET)
            for img in self.reference_images or []
        ]
        if self.style_image:
            references.append(ReferenceImage(
                data=base64.b64decode(self.style_image.data),
                mime_type=self.style_image.mime_type,
                role=ReferenceRole.STYLE,
            ))
        return ReferencesToVideoParams(**common, reference_images=references)


class GenerateVideoResponse(BaseModel):
    """Response model for video generation."""
    video_url: str = Field(..., description="URL to access the generated video")
    video_uri: str = Field(..., description="Provider URI of the generated video")
    file_name: str = Field(..., description="Stored file name, usable with the download endpoint")
    handle: RemoteVideoHandle = Field(..., description="Pass back as input_video to extend this video")
    attempts: int = Field(1, description="Number of submissions it took")
    message: str = Field(..., description="Status message")
