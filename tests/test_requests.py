"""
Tests for generation request shaping.
"""

import base64

from config.settings import MODELS
from studio.services.requests import (
    ReferenceImage, VideoPrompt, build_video_request,
)

IMG_A = ReferenceImage(b"a", "image/png")
IMG_B = ReferenceImage(b"b", "image/jpeg")
IMG_C = ReferenceImage(b"c", "image/jpeg")


class TestReferenceImage:
    def test_from_data_uri(self):
        uri = "data:image/png;base64," + base64.b64encode(b"\x89PNG").decode()
        image = ReferenceImage.from_data_uri(uri)
        assert image.data == b"\x89PNG"
        assert image.mime_type == "image/png"

    def test_from_base64_default_mime(self):
        image = ReferenceImage.from_base64(base64.b64encode(b"jpg").decode())
        assert image.mime_type == "image/jpeg"


class TestBuildVideoRequest:
    def test_text_only_uses_fast_model_and_caller_settings(self):
        req = build_video_request(VideoPrompt("a cat", resolution="1080p", aspect_ratio="9:16"))
        assert req.model == MODELS["video_fast"]
        assert req.resolution == "1080p"
        assert req.aspect_ratio == "9:16"
        assert req.image is None
        assert req.asset_images == ()
        assert not req.high_fidelity

    def test_defaults(self):
        req = build_video_request(VideoPrompt("a cat"))
        assert req.resolution == "720p"
        assert req.aspect_ratio == "16:9"

    def test_single_image_attached_directly(self):
        req = build_video_request(VideoPrompt("a cat", reference_images=(IMG_A,), aspect_ratio="9:16"))
        assert req.model == MODELS["video_fast"]
        assert req.image is IMG_A
        assert req.asset_images == ()
        assert req.aspect_ratio == "9:16"

    def test_two_images_force_hq_settings(self):
        req = build_video_request(VideoPrompt(
            "a cat", reference_images=(IMG_A, IMG_B), resolution="1080p", aspect_ratio="9:16",
        ))
        assert req.model == MODELS["video_hq"]
        assert req.high_fidelity
        assert req.resolution == "720p"
        assert req.aspect_ratio == "16:9"
        assert req.image is None
        assert req.asset_images == (IMG_A, IMG_B)

    def test_three_images_keep_order(self):
        req = build_video_request(VideoPrompt("x", reference_images=(IMG_C, IMG_A, IMG_B)))
        assert req.asset_images == (IMG_C, IMG_A, IMG_B)

    def test_fps_appended_to_prompt(self):
        req = build_video_request(VideoPrompt("a cat", fps=24))
        assert req.prompt == "a cat (frame rate: 24 fps)"

    def test_no_fps_leaves_prompt(self):
        assert build_video_request(VideoPrompt("a cat")).prompt == "a cat"
