"""Generate speech, a sound effect or a music bed and write it out as WAV."""
import asyncio
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv
load_dotenv()

from config.settings import DEFAULT_VOICE, VOICES
from studio.audio.wav import encode_wav
from studio.services.ai import GenerativeClient
from studio.services.errors import StudioError, user_message
from studio.utils.paths import StudioPaths

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("generate_speech")


async def main():
    import argparse

    parser = argparse.ArgumentParser(description="Generate audio with Gemini TTS")
    parser.add_argument("text", help="Text to speak, or a description for sfx/music")
    parser.add_argument("--mode", choices=["tts", "sfx", "music"], default="tts")
    parser.add_argument("--voice", type=str, default=DEFAULT_VOICE, choices=list(VOICES.keys()),
                        help=f"Voice for tts mode (default: {DEFAULT_VOICE})")
    parser.add_argument("--output", type=str, default=None, help="Output .wav path")
    args = parser.parse_args()

    client = GenerativeClient()

    try:
        if args.mode == "sfx":
            buffer = await client.generate_sound_effect(args.text)
        elif args.mode == "music":
            buffer = await client.generate_music(args.text)
        else:
            buffer = await client.generate_speech(args.text, args.voice)
    except StudioError as e:
        logger.error(f"❌ {e.kind.value}: {e.message}")
        print(user_message(e.kind))
        sys.exit(1)

    output_path = args.output or StudioPaths().audio_path(f"{args.mode}_{args.text}")
    out_dir = os.path.dirname(output_path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    with open(output_path, "wb") as f:
        f.write(encode_wav(buffer))

    print(f"✅ {buffer.duration:.2f}s @ {buffer.sample_rate}Hz → {output_path}")


if __name__ == "__main__":
    asyncio.run(main())
