"""Generate a Veo video from a prompt and optional reference images, then download it."""
import asyncio
import logging
import mimetypes
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv
load_dotenv()

import httpx

from studio.production.store import JsonStore
from studio.services.ai import GenerativeClient
from studio.services.errors import StudioError, user_message
from studio.services.requests import ReferenceImage
from studio.utils.paths import StudioPaths

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("generate_video")

PROGRESS_TEXT = {
    "init": "🚀 Submitting job...",
    "rendering": "🎬 Rendering...",
    "still_rendering": "⏳ Still rendering...",
}


def load_reference(path: str) -> ReferenceImage:
    mime_type = mimetypes.guess_type(path)[0] or "image/jpeg"
    with open(path, "rb") as f:
        return ReferenceImage(data=f.read(), mime_type=mime_type)


async def download(uri: str, output_path: str) -> bool:
    os.makedirs(os.path.dirname(output_path), exist_ok=True)
    try:
        async with httpx.AsyncClient(follow_redirects=True, timeout=120) as http:
            async with http.stream("GET", uri) as response:
                response.raise_for_status()
                with open(output_path, "wb") as f:
                    async for chunk in response.aiter_bytes():
                        f.write(chunk)
    except httpx.HTTPError as e:
        logger.error(f"❌ Download failed: {e}")
        return False
    logger.info(f"💾 Saved → {output_path}")
    return True


async def main():
    import argparse

    parser = argparse.ArgumentParser(description="Generate a video with Veo")
    parser.add_argument("prompt", help="Video prompt")
    parser.add_argument("--image", action="append", default=[], metavar="PATH",
                        help="Reference image (repeat for asset references)")
    parser.add_argument("--resolution", type=str, default=None, help="720p or 1080p")
    parser.add_argument("--aspect-ratio", type=str, default=None, help="16:9 or 9:16")
    parser.add_argument("--fps", type=int, default=None, help="Requested frame rate")
    parser.add_argument("--enhance", action="store_true",
                        help="Rewrite the prompt into a cinematic prompt first")
    parser.add_argument("--no-download", action="store_true", help="Only print the result URI")
    args = parser.parse_args()

    client = GenerativeClient()
    paths = StudioPaths()
    prompt = args.prompt

    try:
        if args.enhance:
            prompt = await client.enhance_video_prompt(prompt)
            print(f"✨ Enhanced prompt: {prompt}")

        uri = await client.generate_video(
            prompt,
            on_progress=lambda code: print(PROGRESS_TEXT.get(code, code)),
            reference_images=[load_reference(p) for p in args.image],
            resolution=args.resolution,
            aspect_ratio=args.aspect_ratio,
            fps=args.fps,
        )
    except StudioError as e:
        logger.error(f"❌ {e.kind.value}: {e.message}")
        print(user_message(e.kind))
        sys.exit(1)

    print(f"✅ Video ready: {uri}")

    record = {"type": "video", "title": args.prompt[:60], "prompt": prompt, "uri": uri}
    if not args.no_download:
        output_path = paths.video_path(args.prompt)
        if await download(uri, output_path):
            record["path"] = output_path
    JsonStore(paths.projects_file).save(record)


if __name__ == "__main__":
    asyncio.run(main())
