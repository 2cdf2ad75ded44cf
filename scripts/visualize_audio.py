"""
Render an audio-reactive visualizer video (webm) for a WAV file.

Offline mode renders frame by frame. --live plays through the sound
device and records the visualizer while it runs.
"""
import asyncio
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv
load_dotenv()

from PIL import Image

from config.settings import AUDIO_CONFIG
from studio.audio.analyser import FrequencyAnalyser
from studio.audio.recorder import VisualizerRecorder, render_offline
from studio.audio.session import AudioSession, DeviceOutput
from studio.audio.visualizer import (
    AudioVisualizer, BarSpectrumRenderer, RadialSpectrumRenderer, VisualizerMode,
)
from studio.audio.wav import decode_wav
from studio.utils.paths import StudioPaths

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("visualize_audio")


def build_renderer(args):
    if args.style == "radial":
        background = Image.open(args.background) if args.background else None
        return RadialSpectrumRenderer(caption=args.caption, background=background), AUDIO_CONFIG["podcast_fft_size"]
    return BarSpectrumRenderer(VisualizerMode(args.style)), AUDIO_CONFIG["fft_size"]


async def record_live(buffer, renderer, fft_size: int, output_path: str) -> bool:
    session = AudioSession(fft_size=fft_size, output_factory=DeviceOutput)
    visualizer = AudioVisualizer(session, renderer)
    recorder = VisualizerRecorder(visualizer)

    finished = asyncio.Event()
    session.on_ended = finished.set
    session.load(buffer)
    try:
        recorder.start()
        await finished.wait()
        recorder.stop()
        return recorder.export(output_path)
    finally:
        session.dispose()


async def main():
    import argparse

    parser = argparse.ArgumentParser(description="Audio visualizer renderer")
    parser.add_argument("input", help="16-bit PCM WAV file")
    parser.add_argument("--style", choices=["tts", "sfx", "music", "radial"], default="tts",
                        help="Bar colour mode, or radial podcast layout")
    parser.add_argument("--caption", type=str, default="", help="Caption (radial only)")
    parser.add_argument("--background", type=str, default=None, help="Background image (radial only)")
    parser.add_argument("--live", action="store_true", help="Play and record in real time")
    parser.add_argument("--output", type=str, default=None, help="Output .webm path")
    args = parser.parse_args()

    with open(args.input, "rb") as f:
        buffer = decode_wav(f.read())

    renderer, fft_size = build_renderer(args)
    label = os.path.splitext(os.path.basename(args.input))[0]
    output_path = args.output or StudioPaths().visualizer_path(label)

    if args.live:
        ok = await record_live(buffer, renderer, fft_size, output_path)
    else:
        analyser = FrequencyAnalyser(fft_size=fft_size, smoothing=AUDIO_CONFIG["smoothing"])
        ok = render_offline(buffer, renderer, output_path, analyser=analyser)

    if not ok:
        print("❌ Render failed")
        sys.exit(1)
    print(f"✅ Visualizer → {output_path}")


if __name__ == "__main__":
    asyncio.run(main())
