"""
Generation request types.

Requests are immutable once built. ``build_video_request`` decides the
video request shape from the number of reference images, before anything
is submitted.
"""

import base64
from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

from config.settings import MODELS, VIDEO_CONFIG, DEFAULT_VOICE


@dataclass(frozen=True)
class ReferenceImage:
    data: bytes
    mime_type: str = "image/jpeg"

    @classmethod
    def from_base64(cls, data: str, mime_type: str = "image/jpeg") -> "ReferenceImage":
        return cls(data=base64.b64decode(data), mime_type=mime_type)

    @classmethod
    def from_data_uri(cls, uri: str) -> "ReferenceImage":
        """Parse ``data:image/png;base64,....``"""
        header, _, payload = uri.partition(",")
        mime_type = header.split(":", 1)[-1].split(";", 1)[0] or "image/jpeg"
        return cls.from_base64(payload, mime_type)


@dataclass(frozen=True)
class TextPrompt:
    prompt: str
    model: str = MODELS["fast_text"]
    max_output_tokens: Optional[int] = None
    temperature: Optional[float] = None


@dataclass(frozen=True)
class StructuredTextPrompt:
    prompt: str
    schema: Optional[dict] = None
    model: str = MODELS["script"]
    max_output_tokens: Optional[int] = None
    thinking_budget: Optional[int] = None


@dataclass(frozen=True)
class ImagePrompt:
    prompt: str
    aspect_ratio: str = "16:9"
    count: int = 1


@dataclass(frozen=True)
class SpeechPrompt:
    text: str
    voice_id: str = DEFAULT_VOICE


@dataclass(frozen=True)
class VideoPrompt:
    prompt: str
    reference_images: Tuple[ReferenceImage, ...] = ()
    resolution: Optional[str] = None
    aspect_ratio: Optional[str] = None
    fps: Optional[int] = None


GenerationRequest = Union[TextPrompt, StructuredTextPrompt, ImagePrompt, SpeechPrompt, VideoPrompt]


@dataclass(frozen=True)
class VideoRequest:
    """The concrete submit payload for one video job."""
    model: str
    prompt: str
    resolution: str
    aspect_ratio: str
    image: Optional[ReferenceImage] = None
    asset_images: Tuple[ReferenceImage, ...] = field(default_factory=tuple)

    @property
    def high_fidelity(self) -> bool:
        return self.model == MODELS["video_hq"]


def build_video_request(request: VideoPrompt) -> VideoRequest:
    """
    Shape a video request from its prompt.

    One reference image rides along directly on the fast model. Two or
    more switch to the HQ model at a fixed 720p/16:9 and are attached as
    asset references.
    """
    images = tuple(request.reference_images)
    prompt = request.prompt
    if request.fps:
        prompt += f" (frame rate: {request.fps} fps)"

    if len(images) > 1:
        return VideoRequest(
            model=MODELS["video_hq"],
            prompt=prompt,
            resolution=VIDEO_CONFIG["hq_resolution"],
            aspect_ratio=VIDEO_CONFIG["hq_aspect_ratio"],
            asset_images=images,
        )

    return VideoRequest(
        model=MODELS["video_fast"],
        prompt=prompt,
        resolution=request.resolution or VIDEO_CONFIG["resolution"],
        aspect_ratio=request.aspect_ratio or VIDEO_CONFIG["aspect_ratio"],
        image=images[0] if images else None,
    )
