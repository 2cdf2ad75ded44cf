"""
Audio-reactive visualizers.

Every frame is redrawn from scratch out of the current magnitude array
plus static parameters (mode, caption, background). Nothing accumulates
between frames.
"""

import asyncio
import colorsys
import logging
import math
from enum import Enum
from typing import Callable, List, Optional, Tuple

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from config.settings import VISUALIZER_CONFIG

logger = logging.getLogger("visualizer")

BACKGROUND = (0, 0, 0)
CENTER_LINE = (31, 41, 55)  # gray-800


class VisualizerMode(str, Enum):
    TTS = "tts"
    SFX = "sfx"
    MUSIC = "music"


def _channel(value: float) -> int:
    return int(min(255, max(0, round(value))))


def bar_color(mode: VisualizerMode, magnitude: int) -> Tuple[int, int, int]:
    """Bar colour for one bin, driven only by the mode and its magnitude."""
    mode = VisualizerMode(mode)
    if mode is VisualizerMode.TTS:
        r, g, b = 50 + magnitude, 100, 255
    elif mode is VisualizerMode.SFX:
        r, g, b = 255, 100 + magnitude / 2, 50
    else:
        r, g, b = 200 + magnitude / 2, 50, 255
    return _channel(r), _channel(g), _channel(b)


def spectrum_color(index: int) -> Tuple[int, int, int]:
    """hsl(index * 2, 100%, 50%) as RGB."""
    hue = ((index * 2) % 360) / 360.0
    r, g, b = colorsys.hls_to_rgb(hue, 0.5, 1.0)
    return _channel(r * 255), _channel(g * 255), _channel(b * 255)


def load_font(size: int):
    try:
        return ImageFont.truetype("DejaVuSans-Bold.ttf", size)
    except OSError:
        return ImageFont.load_default(size=size)


class BarSpectrumRenderer:
    """Mirrored bar spectrum around a horizontal centre line."""

    def __init__(self, mode: VisualizerMode = VisualizerMode.TTS,
                 size: Tuple[int, int] = VISUALIZER_CONFIG["bar_size"]):
        self.mode = VisualizerMode(mode)
        self.size = size

    def render(self, frame: np.ndarray) -> Image.Image:
        width, height = self.size
        image = Image.new("RGB", self.size, BACKGROUND)
        draw = ImageDraw.Draw(image)

        center_y = height / 2
        draw.line([(0, center_y), (width, center_y)], fill=CENTER_LINE, width=1)

        count = len(frame)
        if not count:
            return image
        bar_width = (width / count) * 2.5
        x = 0.0
        for magnitude in frame:
            if x >= width:
                break
            bar_height = (int(magnitude) / 255) * (height * 0.8)
            if bar_height > 0:
                top = center_y - bar_height / 2
                draw.rectangle(
                    [x, top, x + max(bar_width - 1, 1) - 1, top + bar_height],
                    fill=bar_color(self.mode, int(magnitude)),
                )
            x += bar_width
        return image


class RadialSpectrumRenderer:
    """Podcast layout: dimmed background, caption, radial spectrum ring."""

    def __init__(
        self,
        size: Tuple[int, int] = VISUALIZER_CONFIG["radial_size"],
        caption: str = "",
        background: Optional[Image.Image] = None,
        radius: int = VISUALIZER_CONFIG["radius"],
        max_bar_height: int = VISUALIZER_CONFIG["max_bar_height"],
    ):
        self.size = size
        self.caption = caption
        self.radius = radius
        self.max_bar_height = max_bar_height
        self.font = load_font(VISUALIZER_CONFIG["caption_font_size"])

        # 50% black overlay is static, so it is baked into the backdrop once
        base = Image.new("RGB", size, BACKGROUND)
        if background is not None:
            base = background.convert("RGB").resize(size)
            base = Image.blend(base, Image.new("RGB", size, BACKGROUND), 0.5)
        self._backdrop = base

    def render(self, frame: np.ndarray) -> Image.Image:
        width, height = self.size
        image = self._backdrop.copy()
        draw = ImageDraw.Draw(image)

        if self.caption:
            draw.text((width / 2, height / 2 - 50), self.caption,
                      fill=(255, 255, 255), font=self.font, anchor="mm")

        cx, cy = width / 2, height / 2 + 50
        r = self.radius
        draw.ellipse([cx - r, cy - r, cx + r, cy + r], fill=BACKGROUND)

        count = len(frame)
        step = 2 * math.pi / count if count else 0
        for i, magnitude in enumerate(frame):
            bar = (int(magnitude) / 255) * self.max_bar_height
            angle = i * step
            x1 = cx + math.cos(angle) * r
            y1 = cy + math.sin(angle) * r
            x2 = cx + math.cos(angle) * (r + bar)
            y2 = cy + math.sin(angle) * (r + bar)
            draw.line([(x1, y1), (x2, y2)], fill=spectrum_color(i), width=3)
        return image


class AnimationLoop:
    """
    A cancellable per-frame callback on the running event loop.

    The next frame is scheduled before the current one is drawn, the same
    order a requestAnimationFrame loop uses.
    """

    def __init__(self, callback: Callable[[float], None], fps: int = VISUALIZER_CONFIG["fps"]):
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")
        self.callback = callback
        self.interval = 1.0 / fps
        self.frames = 0
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def running(self) -> bool:
        return self._handle is not None

    def start(self):
        if self.running:
            return
        self._loop = asyncio.get_running_loop()
        self._handle = self._loop.call_soon(self._tick)

    def _tick(self):
        self._handle = self._loop.call_later(self.interval, self._tick)
        self.frames += 1
        try:
            self.callback(self._loop.time())
        except Exception as e:
            logger.error(f"Animation frame failed, stopping loop: {e}")
            self.cancel()

    def cancel(self):
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


FrameSubscriber = Callable[[Image.Image, float], None]


class AudioVisualizer:
    """Binds an AudioSession to a renderer through an AnimationLoop."""

    def __init__(self, session, renderer, fps: int = VISUALIZER_CONFIG["fps"]):
        self.session = session
        self.renderer = renderer
        self.fps = fps
        self.loop = AnimationLoop(self._on_frame, fps)
        self.last_frame: Optional[Image.Image] = None
        self._subscribers: List[FrameSubscriber] = []

    def subscribe(self, subscriber: FrameSubscriber):
        if subscriber not in self._subscribers:
            self._subscribers.append(subscriber)

    def unsubscribe(self, subscriber: FrameSubscriber):
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)

    def start(self):
        self.session.animation = self.loop
        self.loop.start()

    def stop(self):
        self.loop.cancel()

    def draw(self) -> Image.Image:
        """Render one frame from the session's current magnitudes."""
        image = self.renderer.render(self.session.frequency_frame())
        self.last_frame = image
        position = self.session.position
        for subscriber in list(self._subscribers):
            subscriber(image, position)
        return image

    def _on_frame(self, timestamp: float):
        self.session.tick()
        if not self.loop.running:
            # playback ended on this tick
            return
        self.draw()
