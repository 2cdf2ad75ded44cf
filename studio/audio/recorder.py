"""
Record a running visualizer together with the audio it is reacting to.

Frames are captured with the playback position they were drawn at, then
laid onto a fixed-fps timeline so the video and the audio slice cover
exactly the same span. ffmpeg muxes the two.
"""

import logging
import os
import subprocess
import tempfile
from typing import Iterable, List, Optional, Tuple

from PIL import Image

from config.settings import AUDIO_CONFIG, VISUALIZER_CONFIG
from studio.audio.analyser import FrequencyAnalyser
from studio.audio.wav import AudioBuffer, encode_wav

logger = logging.getLogger("recorder")


def align_frames(
    captured: List[Tuple[float, Image.Image]],
    start: float,
    end: float,
    fps: int,
) -> List[Image.Image]:
    """
    One frame per 1/fps slot between ``start`` and ``end``.

    Each slot takes the latest frame drawn at or before it; dropped ticks
    repeat the previous frame, extra ticks are skipped.
    """
    if not captured:
        return []
    ordered = sorted(captured, key=lambda item: item[0])
    slots = max(1, int(round((end - start) * fps)))

    frames = []
    idx = 0
    for k in range(slots):
        t = start + k / fps
        while idx + 1 < len(ordered) and ordered[idx + 1][0] <= t + 1e-9:
            idx += 1
        frames.append(ordered[idx][1])
    return frames


def write_video(
    frames: Iterable[Image.Image],
    size: Tuple[int, int],
    audio: AudioBuffer,
    output_path: str,
    fps: int = VISUALIZER_CONFIG["fps"],
    video_codec: str = VISUALIZER_CONFIG["video_codec"],
    audio_codec: str = VISUALIZER_CONFIG["audio_codec"],
) -> bool:
    """Pipe raw RGB frames plus a WAV track through ffmpeg."""
    out_dir = os.path.dirname(output_path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)

    with tempfile.TemporaryDirectory() as tmp:
        wav_path = os.path.join(tmp, "audio.wav")
        with open(wav_path, "wb") as f:
            f.write(encode_wav(audio))

        width, height = size
        cmd = [
            "ffmpeg", "-y", "-loglevel", "error",
            "-f", "rawvideo", "-pix_fmt", "rgb24",
            "-s", f"{width}x{height}", "-r", str(fps), "-i", "-",
            "-i", wav_path,
            "-c:v", video_codec, "-c:a", audio_codec,
            "-shortest", output_path,
        ]
        try:
            proc = subprocess.Popen(
                cmd, stdin=subprocess.PIPE,
                stdout=subprocess.DEVNULL, stderr=subprocess.PIPE,
            )
        except FileNotFoundError:
            logger.error("ffmpeg not found on PATH")
            return False

        count = 0
        try:
            for frame in frames:
                proc.stdin.write(frame.convert("RGB").resize(size).tobytes())
                count += 1
        except BrokenPipeError:
            pass
        except BaseException:
            proc.kill()
            proc.wait()
            raise
        _, stderr = proc.communicate()

        if proc.returncode != 0:
            logger.error(f"ffmpeg failed: {stderr.decode(errors='replace')}")
            return False

    logger.info(f"🎞️ Wrote {count} frames → {output_path}")
    return True


def render_offline(
    buffer: AudioBuffer,
    renderer,
    output_path: str,
    fps: int = VISUALIZER_CONFIG["fps"],
    analyser: Optional[FrequencyAnalyser] = None,
) -> bool:
    """Render a whole buffer frame by frame, without real-time playback."""
    analyser = analyser or FrequencyAnalyser(
        fft_size=AUDIO_CONFIG["podcast_fft_size"],
        smoothing=AUDIO_CONFIG["smoothing"],
    )
    total = max(1, int(round(buffer.duration * fps)))

    def frames():
        for k in range(total):
            yield renderer.render(analyser.get_byte_frequency_data(buffer, k / fps))

    return write_video(frames(), renderer.size, buffer, output_path, fps)


class VisualizerRecorder:
    """
    Captures an AudioVisualizer while it runs.

    Starting a recording starts playback if needed; stopping it pauses
    playback.
    """

    def __init__(self, visualizer, fps: Optional[int] = None):
        self.visualizer = visualizer
        self.fps = fps or visualizer.fps
        self.recording = False
        self.start_position = 0.0
        self.end_position = 0.0
        self._frames: List[Tuple[float, Image.Image]] = []

    @property
    def session(self):
        return self.visualizer.session

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    def _capture(self, image: Image.Image, position: float):
        self._frames.append((position, image.copy()))

    def start(self):
        if self.recording:
            return
        if not self.session.is_playing:
            self.session.resume()
        if not self.visualizer.loop.running:
            self.visualizer.start()

        self._frames = []
        self.start_position = self.session.position
        self.visualizer.subscribe(self._capture)
        self.recording = True
        logger.info(f"⏺️ Recording from {self.start_position:.2f}s")

    def stop(self):
        if not self.recording:
            return
        self.visualizer.unsubscribe(self._capture)
        # Playback that ran to the end has already rewound to 0
        last_drawn = max((p for p, _ in self._frames), default=self.start_position)
        self.end_position = max(self.session.position, last_drawn)
        self.session.pause()
        self.visualizer.stop()
        self.recording = False
        logger.info(f"⏹️ Recording stopped at {self.end_position:.2f}s ({self.frame_count} frames)")

    def frames(self) -> List[Image.Image]:
        return align_frames(self._frames, self.start_position, self.end_position, self.fps)

    def export(self, output_path: str) -> bool:
        if self.recording:
            raise RuntimeError("Stop the recording before exporting")
        frames = self.frames()
        if not frames or self.session.buffer is None:
            logger.warning("Nothing recorded")
            return False
        audio = self.session.buffer.slice(self.start_position, self.end_position)
        return write_video(frames, frames[0].size, audio, output_path, self.fps)
