"""
Generative client for the studio.

Wraps google-genai for text, structured JSON, images, speech and video.
Every remote call runs in a worker thread and goes through with_retry.
"""

import asyncio
import base64
import logging
import os
from typing import Awaitable, Callable, Iterable, List, Optional

from config.settings import (
    API_KEY, AUDIO_CONFIG, CREDENTIALS_PATH, LOCATION, MODELS, PROJECT_ID, SCOPES,
    DEFAULT_VOICE, get_voice,
)
from studio.audio.wav import AudioBuffer, decode_pcm16
from studio.production.clips import ViralClip
from studio.services import prompts
from studio.services.chat import ChatSession
from studio.services.errors import ErrorKind, StudioError
from studio.services.requests import (
    GenerationRequest, ImagePrompt, ReferenceImage, SpeechPrompt,
    StructuredTextPrompt, TextPrompt, VideoPrompt, build_video_request,
)
from studio.services.retry import with_retry
from studio.services.video import VideoPoller
from studio.utils.sanitizer import parse_json_response

logger = logging.getLogger("ai_service")

StatusCallback = Optional[Callable[[str], None]]


def _data_uri(image_bytes, mime_type: str = "image/jpeg") -> str:
    if isinstance(image_bytes, str):
        payload = image_bytes
    else:
        payload = base64.b64encode(image_bytes).decode("ascii")
    return f"data:{mime_type};base64,{payload}"


def _first_part_data(response):
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return None
    content = getattr(candidates[0], "content", None)
    parts = getattr(content, "parts", None) or []
    if not parts:
        return None
    inline = getattr(parts[0], "inline_data", None)
    return getattr(inline, "data", None)


def _grounding_chunks(response) -> list:
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    metadata = getattr(candidates[0], "grounding_metadata", None)
    return list(getattr(metadata, "grounding_chunks", None) or [])


def _text(response) -> str:
    return (getattr(response, "text", None) or "") if response is not None else ""


def _expect_object(result, what: str) -> dict:
    if not isinstance(result, dict):
        raise StudioError(ErrorKind.MALFORMED_RESPONSE, f"{what} is not a JSON object")
    return result


class GenerativeClient:
    """
    Studio façade over a google-genai client.

    With an API key the Gemini Developer API is used and video URIs are
    signed with it. Without one, a Vertex AI client is built from the
    service account file. With neither, every call raises
    StudioError(INVALID_CREDENTIAL).
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        client=None,
        credentials_path: Optional[str] = None,
        project_id: Optional[str] = None,
        location: Optional[str] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.api_key = API_KEY if api_key is None else api_key
        self.credentials_path = credentials_path or CREDENTIALS_PATH
        self.project_id = project_id or PROJECT_ID
        self.location = location or LOCATION
        self.sleep = sleep
        self.client = client if client is not None else self._build_client()

    def _build_client(self):
        from google import genai

        if self.api_key:
            logger.info("GenerativeClient initialized with API key")
            return genai.Client(api_key=self.api_key)

        if os.path.exists(self.credentials_path):
            from google.oauth2 import service_account

            credentials = service_account.Credentials.from_service_account_file(
                self.credentials_path, scopes=SCOPES
            )
            logger.info(f"GenerativeClient initialized with Vertex AI: {self.credentials_path}")
            return genai.Client(
                vertexai=True,
                project=self.project_id,
                location=self.location,
                credentials=credentials,
            )

        logger.warning(f"No API key and no credentials at {self.credentials_path}")
        return None

    # ---- Plumbing ----

    def _require_client(self):
        if not self.client:
            raise StudioError(ErrorKind.INVALID_CREDENTIAL, "No generative client configured")

    async def _call(self, func, label: str, **kwargs):
        self._require_client()

        async def _run():
            return await asyncio.to_thread(func, **kwargs)

        return await with_retry(_run, sleep=self.sleep, label=label)

    async def _generate_content(self, model: str, contents, config=None, label: str = "generate_content"):
        self._require_client()
        return await self._call(
            self.client.models.generate_content,
            label,
            model=model,
            contents=contents,
            config=config,
        )

    def _authorize_uri(self, uri: str) -> str:
        if not self.api_key:
            return uri
        separator = "&" if "?" in uri else "?"
        return f"{uri}{separator}key={self.api_key}"

    @staticmethod
    def _image_part(image: ReferenceImage):
        from google.genai import types

        return types.Part.from_bytes(data=image.data, mime_type=image.mime_type)

    # ---- Dispatch ----

    async def generate(self, request: GenerationRequest, on_progress: StatusCallback = None):
        """Run any GenerationRequest through the matching call."""
        if isinstance(request, StructuredTextPrompt):
            return await self.generate_json(
                request.prompt,
                schema=request.schema,
                model=request.model,
                max_output_tokens=request.max_output_tokens,
                thinking_budget=request.thinking_budget,
            )
        if isinstance(request, TextPrompt):
            return await self.generate_text(
                request.prompt,
                model=request.model,
                max_output_tokens=request.max_output_tokens,
                temperature=request.temperature,
            )
        if isinstance(request, ImagePrompt):
            return await self.generate_image(request.prompt, request.aspect_ratio, request.count)
        if isinstance(request, SpeechPrompt):
            return await self.generate_speech(request.text, request.voice_id)
        if isinstance(request, VideoPrompt):
            return await self.generate_video_request(request, on_progress)
        raise TypeError(f"Unsupported request type: {type(request).__name__}")

    # ---- Text ----

    async def generate_text(
        self,
        prompt,
        model: str = MODELS["fast_text"],
        max_output_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        tools: Optional[list] = None,
    ) -> str:
        from google.genai import types

        config = types.GenerateContentConfig(
            max_output_tokens=max_output_tokens,
            temperature=temperature,
            tools=tools,
        )
        response = await self._generate_content(model, prompt, config, label="generate_text")
        return _text(response)

    async def generate_json(
        self,
        prompt,
        schema: Optional[dict] = None,
        model: str = MODELS["script"],
        max_output_tokens: Optional[int] = None,
        thinking_budget: Optional[int] = None,
        default=None,
    ):
        """Structured response, sanitized and parsed. Bad JSON raises MALFORMED_RESPONSE."""
        from google.genai import types

        thinking = (
            types.ThinkingConfig(thinking_budget=thinking_budget)
            if thinking_budget is not None else None
        )
        config = types.GenerateContentConfig(
            max_output_tokens=max_output_tokens,
            response_mime_type="application/json",
            response_schema=schema,
            thinking_config=thinking,
        )
        response = await self._generate_content(model, prompt, config, label="generate_json")
        return parse_json_response(_text(response), default=default)

    # ---- Images ----

    async def generate_image(self, prompt: str, aspect_ratio: str = "16:9", count: int = 1) -> List[str]:
        """Imagen call; returns ``data:image/jpeg;base64,...`` URIs."""
        from google.genai import types

        self._require_client()
        logger.info(f"🎨 Generating {count} image(s) ({aspect_ratio})")
        response = await self._call(
            self.client.models.generate_images,
            "generate_images",
            model=MODELS["image"],
            prompt=prompt,
            config=types.GenerateImagesConfig(
                number_of_images=count,
                aspect_ratio=aspect_ratio,
                output_mime_type="image/jpeg",
            ),
        )
        images = getattr(response, "generated_images", None) or []
        uris = []
        for generated in images:
            image_bytes = getattr(getattr(generated, "image", None), "image_bytes", None)
            if image_bytes:
                uris.append(_data_uri(image_bytes))
        if not uris:
            raise StudioError(ErrorKind.MALFORMED_RESPONSE, "No image generated")
        return uris

    async def generate_scene_image(self, prompt: str, aspect_ratio: str = "16:9") -> str:
        return (await self.generate_image(prompt, aspect_ratio, 1))[0]

    # ---- Speech ----

    async def generate_speech(self, text: str, voice: str = DEFAULT_VOICE) -> AudioBuffer:
        """Gemini TTS; raw PCM comes back and is decoded at 24kHz mono."""
        from google.genai import types

        get_voice(voice)
        config = types.GenerateContentConfig(
            response_modalities=["AUDIO"],
            speech_config=types.SpeechConfig(
                voice_config=types.VoiceConfig(
                    prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=voice),
                ),
            ),
        )
        logger.info(f"🎙️ Generating speech ({voice}, {len(text)} chars)")
        response = await self._generate_content(
            MODELS["tts"],
            [types.Content(parts=[types.Part(text=text)])],
            config,
            label="generate_speech",
        )

        data = _first_part_data(response)
        if not data:
            raise StudioError(ErrorKind.MALFORMED_RESPONSE, "No audio data returned")
        if isinstance(data, str):
            data = base64.b64decode(data)

        return decode_pcm16(
            data,
            AUDIO_CONFIG["speech_sample_rate"],
            AUDIO_CONFIG["speech_channels"],
        )

    async def generate_sound_effect(self, description: str) -> AudioBuffer:
        return await self.generate_speech(description, AUDIO_CONFIG["sound_effect_voice"])

    async def generate_music(self, description: str) -> AudioBuffer:
        return await self.generate_sound_effect(prompts.get_music_prompt(description))

    # ---- Video ----

    async def generate_video(
        self,
        prompt: str,
        on_progress: StatusCallback = None,
        reference_images: Iterable[ReferenceImage] = (),
        resolution: Optional[str] = None,
        aspect_ratio: Optional[str] = None,
        fps: Optional[int] = None,
    ) -> str:
        request = VideoPrompt(
            prompt=prompt,
            reference_images=tuple(reference_images),
            resolution=resolution,
            aspect_ratio=aspect_ratio,
            fps=fps,
        )
        return await self.generate_video_request(request, on_progress)

    async def generate_video_request(self, request: VideoPrompt, on_progress: StatusCallback = None) -> str:
        """Submit a Veo job, poll it to completion and return a playable URI."""
        from google.genai import types

        self._require_client()
        video = build_video_request(request)

        references = None
        if video.asset_images:
            references = [
                types.VideoGenerationReferenceImage(
                    image=types.Image(image_bytes=img.data, mime_type=img.mime_type),
                    reference_type="ASSET",
                )
                for img in video.asset_images
            ]
        config = types.GenerateVideosConfig(
            number_of_videos=1,
            resolution=video.resolution,
            aspect_ratio=video.aspect_ratio,
            reference_images=references,
        )
        kwargs = {"model": video.model, "prompt": video.prompt, "config": config}
        if video.image is not None:
            kwargs["image"] = types.Image(image_bytes=video.image.data, mime_type=video.image.mime_type)

        async def submit():
            return await asyncio.to_thread(self.client.models.generate_videos, **kwargs)

        async def poll(name: str):
            return await asyncio.to_thread(
                self.client.operations.get, types.GenerateVideosOperation(name=name)
            )

        logger.info(
            f"🎬 Video job: {video.model} {video.resolution} {video.aspect_ratio}"
            f"{' (' + str(len(video.asset_images)) + ' asset refs)' if video.asset_images else ''}"
        )
        poller = VideoPoller(submit, poll, on_progress=on_progress, sleep=self.sleep)
        uri = await poller.run()
        return self._authorize_uri(uri)

    # ---- Scripts & planning ----

    async def generate_script(
        self,
        topic: str,
        style: str,
        duration: str,
        platform: str = "YouTube",
        target_audience: str = "General Audience",
        language: str = "vi",
    ) -> dict:
        logger.info(f"📝 Script: {topic} ({platform}, {duration})")
        script = await self.generate_json(
            prompts.get_script_prompt(topic, style, duration, platform, target_audience, language),
            schema=prompts.SCRIPT_SCHEMA,
            max_output_tokens=8192,
            thinking_budget=2048,
            default={},
        )
        return _expect_object(script, "Script")

    async def generate_news_script(self, headline: str, category: str, language: str) -> dict:
        script = await self.generate_json(
            prompts.get_news_prompt(headline, category, language),
            schema=prompts.NEWS_SCHEMA,
            default={},
        )
        return _expect_object(script, "News script")

    async def refine_script_text(self, original_text: str, instruction: str, language: str = "vi") -> str:
        self._require_client()
        try:
            text = await self.generate_text(
                prompts.get_refine_prompt(original_text, instruction, language),
                max_output_tokens=1024,
            )
            return text.strip() or original_text
        except Exception as e:
            logger.warning(f"⚠️ Refine failed, keeping original text: {e}")
            return original_text

    async def analyze_viral_potential(self, script_content, language: str = "vi") -> dict:
        result = await self.generate_json(
            prompts.get_viral_analysis_prompt(script_content, language),
            schema=prompts.VIRAL_ANALYSIS_SCHEMA,
            max_output_tokens=4096,
            default={},
        )
        result = _expect_object(result, "Viral analysis")
        result.setdefault("suggestions", [])
        result.setdefault("hashtags", [])
        return result

    async def generate_storyboard(
        self,
        topic: str,
        language: str = "vi",
        scene_count: int = 5,
        mode: str = "cinematic",
    ) -> dict:
        result = await self.generate_json(
            prompts.get_storyboard_prompt(topic, language, scene_count, mode),
            schema=prompts.STORYBOARD_SCHEMA,
            max_output_tokens=8192,
            thinking_budget=4096,
            default={},
        )
        result = _expect_object(result, "Storyboard")
        scenes = result.get("scenes")
        if isinstance(scenes, list):
            result["scenes"] = [
                {**scene, "status": "pending"} for scene in scenes if isinstance(scene, dict)
            ]
        else:
            result["scenes"] = []
        return result

    async def enhance_video_prompt(self, user_prompt: str, language: str = "en") -> str:
        self._require_client()
        try:
            text = await self.generate_text(
                prompts.get_enhance_video_prompt(user_prompt), max_output_tokens=1024
            )
            return text or user_prompt
        except Exception as e:
            logger.warning(f"⚠️ Prompt enhancement failed: {e}")
            return user_prompt

    async def transform_text_to_video_plan(self, input_text: str, language: str) -> dict:
        result = await self.generate_json(
            prompts.get_video_plan_prompt(input_text, language),
            thinking_budget=1024,
            default={},
        )
        result = _expect_object(result, "Video plan")
        result.setdefault("scenes", [])
        return result

    async def generate_creative_matrix(self, product_name: str, target_audience: str, language: str) -> dict:
        result = await self.generate_json(
            prompts.get_creative_matrix_prompt(product_name, target_audience, language),
            max_output_tokens=8192,
            default={},
        )
        result = _expect_object(result, "Creative matrix")
        result.setdefault("items", [])
        return result

    async def generate_interactive_story_structure(self, premise: str, language: str) -> List[dict]:
        """Story nodes laid out on a diagonal, 350px right and 150px down per node."""
        nodes = await self.generate_json(
            prompts.get_interactive_story_prompt(premise, language),
            max_output_tokens=8192,
            thinking_budget=4096,
            default=[],
        )
        if not isinstance(nodes, list):
            raise StudioError(ErrorKind.MALFORMED_RESPONSE, "Story structure is not a list")

        laid_out = []
        x, y = 0, 0
        for node in nodes:
            laid_out.append({**node, "x": x, "y": y})
            x += 350
            y += 150
        return laid_out

    # ---- Ideas & trends ----

    async def generate_random_idea(self, category: str, language: str) -> str:
        self._require_client()
        try:
            text = await self.generate_text(
                prompts.get_random_idea_prompt(category, language),
                max_output_tokens=100,
                temperature=1.2,
            )
            return text.strip()
        except Exception as e:
            logger.warning(f"⚠️ Random idea failed: {e}")
            return ""

    async def generate_viral_shorts_metadata(self, context: str, language: str = "vi") -> List[ViralClip]:
        self._require_client()
        try:
            result = await self.generate_json(prompts.get_viral_shorts_prompt(context), default=[])
        except Exception as e:
            logger.warning(f"⚠️ Viral clip metadata failed: {e}")
            return []
        if not isinstance(result, list):
            return []
        return [ViralClip.from_dict(item) for item in result if isinstance(item, dict)]

    async def get_trending_topics(self, niche: str, language: str) -> List[dict]:
        """Search-grounded trends; the i-th grounding source is attached to the i-th trend."""
        from google.genai import types

        config = types.GenerateContentConfig(
            tools=[types.Tool(google_search=types.GoogleSearch())],
        )
        response = await self._generate_content(
            MODELS["fast_text"],
            prompts.get_trending_prompt(niche, language),
            config,
            label="trending_topics",
        )
        try:
            trends = parse_json_response(_text(response), default=[])
        except StudioError:
            return []
        if not isinstance(trends, list):
            return []

        chunks = _grounding_chunks(response)
        for trend, chunk in zip(trends, chunks):
            web = getattr(chunk, "web", None)
            uri = getattr(web, "uri", None)
            if uri and isinstance(trend, dict):
                trend["sourceUrl"] = uri
                trend["sourceTitle"] = getattr(web, "title", None)
        return trends

    async def generate_color_grade(self, description: str) -> dict:
        self._require_client()
        try:
            grade = await self.generate_json(
                prompts.get_color_grade_prompt(description),
                model=MODELS["fast_text"],
                default={},
            )
            if isinstance(grade, dict) and grade:
                return grade
        except Exception as e:
            logger.warning(f"⚠️ Color grade failed: {e}")
        return dict(prompts.NEUTRAL_COLOR_GRADE)

    async def generate_real_estate_script(self, features: List[str], agent_name: str, vibe: str) -> str:
        self._require_client()
        try:
            return await self.generate_text(
                prompts.get_real_estate_prompt(features, agent_name, vibe),
                model=MODELS["script"],
                max_output_tokens=2048,
            )
        except Exception as e:
            logger.warning(f"⚠️ Real estate script failed: {e}")
            return ""

    # ---- Chat ----

    def start_chat(self, language: str = "vi", model: str = MODELS["script"]) -> ChatSession:
        """Open a multi-turn assistant conversation."""
        from google.genai import types

        self._require_client()
        chat = self.client.chats.create(
            model=model,
            config=types.GenerateContentConfig(
                system_instruction=prompts.get_chat_system_prompt(language),
            ),
        )
        logger.info(f"💬 Chat started ({model})")
        return ChatSession(chat, sleep=self.sleep)

    # ---- Images in, text/images out ----

    async def create_character_from_image(
        self, image: ReferenceImage, style: str, on_status: StatusCallback = None
    ) -> str:
        """Describe a face, then render a portrait of it in ``style``."""
        if on_status:
            on_status("analyzing")
        description = await self.generate_text(
            [self._image_part(image), prompts.get_character_analysis_prompt()]
        )
        if on_status:
            on_status("generating")
        uris = await self.generate_image(
            prompts.get_character_portrait_prompt(style, description), aspect_ratio="1:1"
        )
        return uris[0]

    async def edit_character_style(
        self, image: ReferenceImage, instruction: str, on_status: StatusCallback = None
    ) -> str:
        if on_status:
            on_status("analyzing")
        edit_prompt = await self.generate_text(
            [self._image_part(image), prompts.get_style_edit_prompt(instruction)]
        )
        if on_status:
            on_status("rendering")
        uris = await self.generate_image(
            f"Photorealistic. {edit_prompt or instruction}. High quality.", aspect_ratio="1:1"
        )
        return uris[0]

    async def analyze_image_tags(self, image: ReferenceImage) -> List[str]:
        self._require_client()
        try:
            tags = await self.generate_json(
                [self._image_part(image), prompts.IMAGE_TAGS_PROMPT],
                model=MODELS["fast_text"],
                default=[],
            )
            if isinstance(tags, list):
                return [str(tag) for tag in tags]
        except Exception as e:
            logger.warning(f"⚠️ Image tagging failed: {e}")
        return ["image", "asset"]

    async def suggest_makeup_style(self, image: ReferenceImage) -> str:
        self._require_client()
        try:
            text = await self.generate_text([self._image_part(image), prompts.MAKEUP_PROMPT])
            return text or "Natural makeup style"
        except Exception as e:
            logger.warning(f"⚠️ Makeup suggestion failed: {e}")
            return "Natural makeup style"
