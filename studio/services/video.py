"""
Long-running video operation poller.

Submit once, then poll the operation handle on a fixed interval until it
finishes, fails or runs out of cycles:

    SUBMITTED -> POLLING -> DONE | FAILED | TIMED_OUT
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from config.settings import VIDEO_CONFIG
from studio.services.errors import (
    ErrorKind, StudioError, classify_error, to_studio_error,
)
from studio.services.retry import with_retry

logger = logging.getLogger("video_poller")

PROGRESS_INIT = "init"
PROGRESS_RENDERING = "rendering"
PROGRESS_STILL_RENDERING = "still_rendering"


class VideoState(str, Enum):
    SUBMITTED = "submitted"
    POLLING = "polling"
    DONE = "done"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


def _get(obj, *names):
    """First present attribute/key among ``names`` (snake and camel case)."""
    if obj is None:
        return None
    for name in names:
        value = obj.get(name) if isinstance(obj, dict) else getattr(obj, name, None)
        if value is not None:
            return value
    return None


def _video_uri(response) -> Optional[str]:
    if response is None:
        return None
    uri = _get(response, "uri")
    if uri:
        return uri
    videos = _get(response, "generated_videos", "generatedVideos")
    if videos:
        video = _get(videos[0], "video")
        return _get(video, "uri")
    return None


@dataclass
class VideoOperation:
    name: Optional[str] = None
    done: bool = False
    error: Optional[str] = None
    result_uri: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return bool(self.name) or self.done

    @classmethod
    def from_response(cls, obj: Any) -> Optional["VideoOperation"]:
        """Snapshot an SDK operation object or a plain dict."""
        if obj is None:
            return None
        if isinstance(obj, VideoOperation):
            return obj

        error = _get(obj, "error")
        if isinstance(error, dict):
            error = error.get("message") or str(error)
        elif error is not None and not isinstance(error, str):
            error = getattr(error, "message", None) or str(error)

        response = _get(obj, "response", "result")
        return cls(
            name=_get(obj, "name"),
            done=bool(_get(obj, "done")),
            error=error or None,
            result_uri=_video_uri(response),
        )


class VideoPoller:
    """
    Drives one video job from submit to a result URI.

    ``submit()`` returns the initial operation, ``poll(name)`` the latest
    snapshot. Both may be sync or async; each is wrapped in its own retry
    budget. ``on_progress`` receives "init", "rendering" and
    "still_rendering" and is never awaited.
    """

    def __init__(
        self,
        submit: Callable[[], Any],
        poll: Callable[[str], Any],
        on_progress: Optional[Callable[[str], Any]] = None,
        interval: float = VIDEO_CONFIG["poll_interval"],
        max_cycles: int = VIDEO_CONFIG["max_poll_cycles"],
        submit_retries: int = VIDEO_CONFIG["submit_retries"],
        submit_delay: float = VIDEO_CONFIG["submit_delay"],
        poll_retries: int = VIDEO_CONFIG["poll_retries"],
        poll_delay: float = VIDEO_CONFIG["poll_delay"],
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.submit = submit
        self.poll = poll
        self.on_progress = on_progress
        self.interval = interval
        self.max_cycles = max_cycles
        self.submit_retries = submit_retries
        self.submit_delay = submit_delay
        self.poll_retries = poll_retries
        self.poll_delay = poll_delay
        self.sleep = sleep

        self.state = VideoState.SUBMITTED
        self.operation: Optional[VideoOperation] = None
        self.poll_count = 0
        self.cycles = 0
        self._pending = set()

    # ---- Progress ----

    def _notify(self, event: str):
        if not self.on_progress:
            return
        try:
            result = self.on_progress(event)
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._pending.add(task)
                task.add_done_callback(self._progress_done)
        except Exception as e:
            logger.warning(f"Progress callback failed on '{event}': {e}")

    def _progress_done(self, task):
        self._pending.discard(task)
        if not task.cancelled() and task.exception():
            logger.warning(f"Progress callback failed: {task.exception()}")

    # ---- Lifecycle ----

    def _fail(self, kind: ErrorKind, message: str):
        self.state = VideoState.FAILED
        logger.error(f"❌ Video job failed ({kind.value}): {message}")
        raise StudioError(kind, message)

    async def _poll_once(self, name: str):
        def _call():
            self.poll_count += 1
            return self.poll(name)

        return await with_retry(
            _call,
            self.poll_retries,
            self.poll_delay,
            sleep=self.sleep,
            label="video_poll",
        )

    async def run(self) -> str:
        """Run the job to completion and return the result URI."""
        self._notify(PROGRESS_INIT)

        raw = await with_retry(
            self.submit,
            self.submit_retries,
            self.submit_delay,
            sleep=self.sleep,
            label="video_submit",
        )
        operation = VideoOperation.from_response(raw)
        if not operation or not operation.name:
            self._fail(ErrorKind.UNKNOWN, "Operation failed to start")

        self.operation = operation
        self.state = VideoState.POLLING
        logger.info(f"⏳ Video job submitted: {operation.name}")
        self._notify(PROGRESS_RENDERING)

        while not self.operation.done and self.cycles < self.max_cycles:
            await self.sleep(self.interval)
            self.cycles += 1
            try:
                raw = await self._poll_once(self.operation.name)
            except Exception as e:
                error = to_studio_error(e)
                logger.warning(
                    f"Polling hiccup on cycle {self.cycles} ({error.kind.value}): "
                    f"{error.message}"
                )
                # The held handle must stay usable to survive a failed poll
                if not self.operation.is_valid:
                    self._fail(error.kind, "Lost track of the video operation")
                continue

            snapshot = VideoOperation.from_response(raw)
            if snapshot and snapshot.is_valid:
                if not snapshot.name:
                    snapshot.name = self.operation.name
                self.operation = snapshot
            else:
                logger.warning("Ignoring operation update without id or done flag")

            self._notify(PROGRESS_STILL_RENDERING)

        return self._finish()

    def _finish(self) -> str:
        operation = self.operation
        if not operation.done:
            self.state = VideoState.TIMED_OUT
            logger.error(f"⌛ Video job timed out after {self.cycles} cycles")
            raise StudioError(ErrorKind.OPERATION_TIMED_OUT, "Video generation timed out")

        if operation.error:
            kind = classify_error(Exception(operation.error))
            self._fail(kind, operation.error)

        if not operation.result_uri:
            self._fail(ErrorKind.MALFORMED_RESPONSE, "No video URI in response")

        self.state = VideoState.DONE
        logger.info(f"✅ Video ready after {self.poll_count} polls")
        return operation.result_uri
