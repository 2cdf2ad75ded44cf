"""Generate a video script (or storyboard) for a topic and save it as JSON."""
import asyncio
import json
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv
load_dotenv()

from studio.production.store import JsonStore
from studio.services.ai import GenerativeClient
from studio.services.errors import StudioError, user_message
from studio.utils.paths import StudioPaths

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("generate_script")


async def main():
    import argparse

    parser = argparse.ArgumentParser(description="Video script generator")
    parser.add_argument("topic", help="What the video is about")
    parser.add_argument("--style", type=str, default="Cinematic")
    parser.add_argument("--duration", type=str, default="60s")
    parser.add_argument("--platform", type=str, default="YouTube")
    parser.add_argument("--audience", type=str, default="General Audience")
    parser.add_argument("--language", type=str, default="vi", help="vi or en (default: vi)")
    parser.add_argument("--storyboard", action="store_true",
                        help="Generate a scene storyboard with Veo prompts instead")
    parser.add_argument("--scenes", type=int, default=5, help="Storyboard scene count")
    parser.add_argument("--analyze", action="store_true",
                        help="Score the script's viral potential afterwards")
    args = parser.parse_args()

    client = GenerativeClient()
    paths = StudioPaths()
    paths.ensure_dirs()

    try:
        if args.storyboard:
            script = await client.generate_storyboard(args.topic, args.language, args.scenes)
        else:
            script = await client.generate_script(
                args.topic, args.style, args.duration,
                platform=args.platform,
                target_audience=args.audience,
                language=args.language,
            )
        analysis = await client.analyze_viral_potential(script, args.language) if args.analyze else None
    except StudioError as e:
        logger.error(f"❌ {e.kind.value}: {e.message}")
        print(user_message(e.kind))
        sys.exit(1)

    output_path = paths.script_path(args.topic)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(script, f, ensure_ascii=False, indent=2)

    print(f"✅ {script.get('title', args.topic)} → {output_path}")
    print(f"   Scenes: {len(script.get('scenes', []))}")
    if analysis:
        print(f"   Viral score: {analysis.get('totalScore')} | {analysis.get('viralTitle')}")

    JsonStore(paths.projects_file).save({
        "type": "storyboard" if args.storyboard else "script",
        "title": script.get("title", args.topic),
        "path": output_path,
        "analysis": analysis,
    })


if __name__ == "__main__":
    asyncio.run(main())
