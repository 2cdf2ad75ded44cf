"""
Audio processing context and playback session.

One AudioContext is created lazily per session and reused across
generate/play cycles. Each playback builds a fresh
source -> analyser -> destination path instead of stacking connections.
``AudioSession.dispose`` releases everything and is safe to call twice.
"""

import logging
import time
from typing import Callable, List, Optional

import numpy as np

from config.settings import AUDIO_CONFIG
from studio.audio.analyser import FrequencyAnalyser
from studio.audio.wav import AudioBuffer

logger = logging.getLogger("audio_session")

STATE_RUNNING = "running"
STATE_SUSPENDED = "suspended"
STATE_CLOSED = "closed"


# ---- Output sinks ----

class NullOutput:
    """Discards audio. Used headless and in tests."""

    def play(self, buffer: AudioBuffer, offset: float):
        pass

    def stop(self):
        pass

    def close(self):
        pass


class DeviceOutput:
    """Plays through the default sound device with sounddevice."""

    def __init__(self, device=None):
        self.device = device
        self._sd = None

    def _backend(self):
        if self._sd is None:
            import sounddevice as sd
            self._sd = sd
        return self._sd

    def play(self, buffer: AudioBuffer, offset: float):
        sd = self._backend()
        first = int(offset * buffer.sample_rate)
        sd.play(np.ascontiguousarray(buffer.data[:, first:].T), buffer.sample_rate, device=self.device)

    def stop(self):
        if self._sd is not None:
            self._sd.stop()

    def close(self):
        self.stop()


# ---- Node graph ----

class AudioNode:
    def __init__(self, context: "AudioContext"):
        self.context = context
        self.inputs: List["AudioNode"] = []
        self.outputs: List["AudioNode"] = []

    def connect(self, node: "AudioNode") -> "AudioNode":
        if node not in self.outputs:
            self.outputs.append(node)
            node.inputs.append(self)
        return node

    def disconnect(self):
        for node in self.outputs:
            if self in node.inputs:
                node.inputs.remove(self)
        self.outputs = []

    def reaches(self, target: "AudioNode") -> bool:
        if self is target:
            return True
        return any(node.reaches(target) for node in self.outputs)


class AudioDestinationNode(AudioNode):
    def __init__(self, context: "AudioContext", output):
        super().__init__(context)
        self.output = output


class AnalyserNode(AudioNode):
    def __init__(self, context: "AudioContext", fft_size: int, smoothing: float):
        super().__init__(context)
        self.analyser = FrequencyAnalyser(
            fft_size=fft_size,
            smoothing=smoothing,
            min_decibels=AUDIO_CONFIG["min_decibels"],
            max_decibels=AUDIO_CONFIG["max_decibels"],
        )

    @property
    def frequency_bin_count(self) -> int:
        return self.analyser.frequency_bin_count

    def get_byte_frequency_data(self) -> np.ndarray:
        """Magnitudes for whatever source is currently playing into this node."""
        for node in self.inputs:
            if isinstance(node, BufferSourceNode) and node.playing:
                return self.analyser.get_byte_frequency_data(node.buffer, node.position)
        return self.analyser.get_byte_frequency_data(None, 0.0)


class BufferSourceNode(AudioNode):
    def __init__(self, context: "AudioContext"):
        super().__init__(context)
        self.buffer: Optional[AudioBuffer] = None
        self.on_ended: Optional[Callable[[], None]] = None
        self.playing = False
        self._started_at = 0.0
        self._offset = 0.0
        self._stopped_position = 0.0
        self._ended_fired = False

    @property
    def position(self) -> float:
        if not self.playing:
            return self._stopped_position
        elapsed = self.context.current_time - self._started_at
        return min(self._offset + elapsed, self.buffer.duration)

    def start(self, offset: float = 0.0):
        if self.buffer is None:
            raise ValueError("Buffer source has no buffer")
        if self.playing:
            raise RuntimeError("Buffer source already started")
        self._offset = min(max(offset, 0.0), self.buffer.duration)
        self._started_at = self.context.current_time
        self.playing = True
        if self.reaches(self.context.destination):
            self.context.destination.output.play(self.buffer, self._offset)

    def stop(self):
        if not self.playing:
            return
        self._stopped_position = self.position
        self.playing = False
        if self.reaches(self.context.destination):
            self.context.destination.output.stop()

    def check_ended(self) -> bool:
        """Fire ``on_ended`` once the play cursor passes the buffer end."""
        if self.playing and self.position >= self.buffer.duration:
            self.stop()
            if not self._ended_fired:
                self._ended_fired = True
                if self.on_ended:
                    self.on_ended()
            return True
        return False


class AudioContext:
    def __init__(self, sample_rate: Optional[int] = None, output=None,
                 clock: Callable[[], float] = time.monotonic):
        self.sample_rate = sample_rate
        self.state = STATE_RUNNING
        self._clock = clock
        self._origin = clock()
        self.destination = AudioDestinationNode(self, output or NullOutput())

    @property
    def current_time(self) -> float:
        return self._clock() - self._origin

    def create_analyser(self, fft_size: int = AUDIO_CONFIG["fft_size"],
                        smoothing: float = AUDIO_CONFIG["smoothing"]) -> AnalyserNode:
        self._check_open()
        return AnalyserNode(self, fft_size, smoothing)

    def create_buffer_source(self) -> BufferSourceNode:
        self._check_open()
        return BufferSourceNode(self)

    def resume(self):
        if self.state == STATE_SUSPENDED:
            self.state = STATE_RUNNING

    def suspend(self):
        if self.state == STATE_RUNNING:
            self.state = STATE_SUSPENDED

    def close(self):
        if self.state == STATE_CLOSED:
            return
        self.destination.output.close()
        self.state = STATE_CLOSED

    def _check_open(self):
        if self.state == STATE_CLOSED:
            raise RuntimeError("AudioContext is closed")


# ---- Session ----

class AudioSession:
    """
    Page-lifetime audio state: one lazily created context, one analyser,
    at most one active source, and an optional animation loop to cancel on
    teardown.
    """

    def __init__(
        self,
        sample_rate: Optional[int] = None,
        fft_size: int = AUDIO_CONFIG["fft_size"],
        smoothing: float = AUDIO_CONFIG["smoothing"],
        output_factory: Callable[[], object] = NullOutput,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.sample_rate = sample_rate
        self.fft_size = fft_size
        self.smoothing = smoothing
        self.output_factory = output_factory
        self.clock = clock

        self.context: Optional[AudioContext] = None
        self.analyser: Optional[AnalyserNode] = None
        self.source: Optional[BufferSourceNode] = None
        self.buffer: Optional[AudioBuffer] = None
        self.animation = None
        self.on_ended: Optional[Callable[[], None]] = None
        self.contexts_created = 0
        self._paused_at = 0.0

    def ensure_context(self) -> AudioContext:
        """Create the context on first use; reuse it while it is live."""
        if self.context is None or self.context.state == STATE_CLOSED:
            self.context = AudioContext(self.sample_rate, self.output_factory(), self.clock)
            self.analyser = self.context.create_analyser(self.fft_size, self.smoothing)
            self.contexts_created += 1
            logger.info(f"🔊 Audio context created (fft={self.fft_size})")
        if self.context.state == STATE_SUSPENDED:
            self.context.resume()
        return self.context

    @property
    def is_playing(self) -> bool:
        return self.source is not None and self.source.playing

    @property
    def position(self) -> float:
        if self.is_playing:
            return self.source.position
        return self._paused_at

    def load(self, buffer: AudioBuffer):
        self._stop_source()
        self.buffer = buffer
        self._paused_at = 0.0

    def play(self, buffer: Optional[AudioBuffer] = None, offset: float = 0.0):
        """Start ``buffer`` (or the loaded one) from ``offset`` seconds."""
        if buffer is not None:
            self.buffer = buffer
        if self.buffer is None:
            raise ValueError("Nothing to play")

        context = self.ensure_context()
        self._stop_source()

        source = context.create_buffer_source()
        source.buffer = self.buffer
        source.connect(self.analyser)
        self.analyser.connect(context.destination)
        source.on_ended = self._handle_ended
        source.start(offset)
        self.source = source

    def pause(self):
        if self.is_playing:
            self._paused_at = self.source.position
        self._stop_source()

    def resume(self):
        if not self.is_playing:
            self.play(offset=self._paused_at)

    def toggle(self):
        if self.is_playing:
            self.pause()
        else:
            self.resume()

    def seek(self, position: float):
        if self.is_playing:
            self.play(offset=position)
        else:
            self._paused_at = position

    def tick(self):
        """Per-frame housekeeping: detect the end of playback."""
        if self.source is not None:
            self.source.check_ended()

    def frequency_frame(self) -> np.ndarray:
        if self.analyser is None:
            return np.zeros(self.fft_size // 2, dtype=np.uint8)
        return self.analyser.get_byte_frequency_data()

    def _handle_ended(self):
        self._paused_at = 0.0
        if self.animation is not None:
            self.animation.cancel()
        if self.on_ended:
            self.on_ended()

    def _stop_source(self):
        if self.source is not None:
            self.source.stop()
            self.source.disconnect()
            self.source = None

    def dispose(self):
        """Stop playback, cancel the animation frame and close the context."""
        self._stop_source()
        if self.animation is not None:
            self.animation.cancel()
            self.animation = None
        if self.context is not None:
            self.context.close()
            logger.info("🔇 Audio context closed")
        self.context = None
        self.analyser = None
