"""
Viral clip preview.

A clip is a [start, start + duration) window on a source video. The
preview player loops inside the active clip: once the cursor reaches the
clip end it jumps back to the clip start and keeps playing.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger("clips")


@dataclass(frozen=True)
class ViralClip:
    id: str
    start_time: float
    duration: float
    viral_score: float = 0.0
    reason: str = ""
    caption: str = ""

    @property
    def end_time(self) -> float:
        return self.start_time + self.duration

    @classmethod
    def from_dict(cls, data: dict) -> "ViralClip":
        """Accepts the model's camelCase keys as well as snake_case."""
        def pick(*keys, default=None):
            for key in keys:
                if data.get(key) is not None:
                    return data[key]
            return default

        return cls(
            id=str(pick("id", default="")),
            start_time=float(pick("start_time", "startTime", default=0)),
            duration=float(pick("duration", default=0)),
            viral_score=float(pick("viral_score", "viralScore", default=0)),
            reason=pick("reason", default=""),
            caption=pick("caption", default=""),
        )


class ClipPlayer:
    """
    Tracks the preview cursor for the active clip.

    ``seek`` is called whenever the cursor is moved by the player itself
    (clip selection or looping), so a real media element can follow.
    """

    def __init__(self, seek: Optional[Callable[[float], None]] = None):
        self.seek = seek
        self.active_clip: Optional[ViralClip] = None
        self.current_time = 0.0
        self.is_playing = False

    def _move(self, position: float):
        self.current_time = position
        if self.seek:
            self.seek(position)

    def select(self, clip: ViralClip):
        self.active_clip = clip
        self._move(clip.start_time)

    def play(self):
        self.is_playing = True

    def pause(self):
        self.is_playing = False

    def toggle(self):
        self.is_playing = not self.is_playing

    def time_update(self, position: float) -> float:
        """Feed the media clock; returns the (possibly reset) cursor."""
        self.current_time = position
        clip = self.active_clip
        if clip is not None and position >= clip.end_time:
            logger.debug(f"Clip {clip.id}: looping back to {clip.start_time}s")
            self._move(clip.start_time)
        return self.current_time
