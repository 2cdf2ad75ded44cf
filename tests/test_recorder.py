"""
Tests for visualizer recording and frame alignment.
"""

import asyncio
import io

import numpy as np
import pytest
from PIL import Image

import studio.audio.recorder as recorder_module
from studio.audio.recorder import VisualizerRecorder, align_frames, render_offline
from studio.audio.session import AudioSession
from studio.audio.visualizer import AudioVisualizer, BarSpectrumRenderer
from studio.audio.wav import AudioBuffer


def solid(value):
    return Image.new("RGB", (4, 4), (value, value, value))


def tone(seconds=2.0, sample_rate=24000):
    t = np.arange(int(seconds * sample_rate)) / sample_rate
    return AudioBuffer(sample_rate, 0.5 * np.sin(2 * np.pi * 440.0 * t))


class TestAlignFrames:
    def test_one_frame_per_slot(self):
        captured = [(0.0, solid(0)), (0.1, solid(1)), (0.2, solid(2))]
        frames = align_frames(captured, 0.0, 0.3, fps=10)
        assert [f.getpixel((0, 0))[0] for f in frames] == [0, 1, 2]

    def test_dropped_ticks_repeat_previous_frame(self):
        captured = [(0.0, solid(0)), (0.25, solid(5))]
        frames = align_frames(captured, 0.0, 0.4, fps=10)
        assert [f.getpixel((0, 0))[0] for f in frames] == [0, 0, 0, 5]

    def test_extra_ticks_are_skipped(self):
        captured = [(i * 0.05, solid(i)) for i in range(8)]
        frames = align_frames(captured, 0.0, 0.4, fps=10)
        assert [f.getpixel((0, 0))[0] for f in frames] == [0, 2, 4, 6]

    def test_empty(self):
        assert align_frames([], 0.0, 1.0, fps=30) == []


class TestVisualizerRecorder:
    def make(self, clock):
        session = AudioSession(clock=clock)
        session.load(tone())
        visualizer = AudioVisualizer(session, BarSpectrumRenderer(size=(32, 16)), fps=10)
        return session, visualizer, VisualizerRecorder(visualizer)

    def test_start_forces_playback_and_stop_pauses(self, clock):
        session, visualizer, recorder = self.make(clock)

        async def main():
            recorder.start()
            assert session.is_playing
            assert visualizer.loop.running
            for _ in range(5):
                visualizer.draw()
                clock.advance(0.1)
            recorder.stop()

        asyncio.run(main())

        assert not session.is_playing
        assert not visualizer.loop.running
        assert recorder.frame_count == 5
        assert recorder.end_position == pytest.approx(0.5)
        assert len(recorder.frames()) == 5

    def test_export_muxes_matching_audio(self, clock, monkeypatch, tmp_path):
        session, visualizer, recorder = self.make(clock)
        calls = []

        def fake_write_video(frames, size, audio, output_path, fps):
            calls.append((len(list(frames)), size, audio.duration, output_path, fps))
            return True

        monkeypatch.setattr(recorder_module, "write_video", fake_write_video)

        async def main():
            recorder.start()
            for _ in range(5):
                visualizer.draw()
                clock.advance(0.1)
            recorder.stop()

        asyncio.run(main())
        out = str(tmp_path / "viz.webm")

        assert recorder.export(out)
        frames, size, duration, path, fps = calls[0]
        assert frames == 5
        assert size == (32, 16)
        assert duration == pytest.approx(0.5)
        assert path == out
        assert fps == 10

    def test_export_while_recording_raises(self, clock):
        session, visualizer, recorder = self.make(clock)

        async def main():
            recorder.start()
            with pytest.raises(RuntimeError):
                recorder.export("x.webm")
            recorder.stop()

        asyncio.run(main())

    def test_nothing_recorded(self, clock):
        _, _, recorder = self.make(clock)
        assert not recorder.export("x.webm")


class TestRenderOffline:
    def test_frame_count_matches_duration(self, monkeypatch):
        seen = {}

        def fake_write_video(frames, size, audio, output_path, fps):
            seen["frames"] = sum(1 for _ in frames)
            seen["size"] = size
            return True

        monkeypatch.setattr(recorder_module, "write_video", fake_write_video)

        ok = render_offline(tone(seconds=1.0), BarSpectrumRenderer(size=(16, 8)), "out.webm", fps=12)
        assert ok
        assert seen == {"frames": 12, "size": (16, 8)}

    def test_failing_renderer_kills_ffmpeg(self, monkeypatch, tmp_path):
        class FakeProcess:
            def __init__(self, *args, **kwargs):
                self.stdin = io.BytesIO()
                self.returncode = None
                self.killed = False
                processes.append(self)

            def kill(self):
                self.killed = True

            def wait(self):
                self.returncode = -9
                return self.returncode

            def communicate(self):
                raise AssertionError("communicate after a failed feed")

        class ExplodingRenderer(BarSpectrumRenderer):
            def __init__(self):
                super().__init__(size=(16, 8))
                self.calls = 0

            def render(self, frame):
                self.calls += 1
                if self.calls == 3:
                    raise RuntimeError("render failed")
                return super().render(frame)

        processes = []
        monkeypatch.setattr(recorder_module.subprocess, "Popen", FakeProcess)

        with pytest.raises(RuntimeError):
            render_offline(tone(seconds=1.0), ExplodingRenderer(), str(tmp_path / "x.webm"), fps=12)

        proc = processes[0]
        assert proc.killed
        assert proc.returncode == -9
        assert len(proc.stdin.getvalue()) == 2 * 16 * 8 * 3

    def test_missing_ffmpeg(self, monkeypatch, tmp_path):
        def no_ffmpeg(*args, **kwargs):
            raise FileNotFoundError("ffmpeg")

        monkeypatch.setattr(recorder_module.subprocess, "Popen", no_ffmpeg)
        ok = recorder_module.write_video(
            [solid(0)], (4, 4), tone(seconds=0.1), str(tmp_path / "x.webm"), fps=10,
        )
        assert not ok
