"""
Output layout for the studio.
Structure:
  data/
    ├── projects.json     (JsonStore of saved projects)
    ├── characters.json   (JsonStore of saved characters)
    ├── scripts/          (generated script JSON)
    ├── audio/            (speech / sfx / music WAV)
    ├── videos/           (downloaded Veo results)
    └── visualizer/       (rendered visualizer webm)
"""

import os
import re
import time

from config.settings import DATA_DIR


def slugify(text: str) -> str:
    """Convert a title to a filesystem-safe slug."""
    text = text.lower().strip()
    text = re.sub(r"[^\w\s-]", "", text)
    text = re.sub(r"[\s-]+", "_", text)
    return text.strip("_") or "untitled"


def timestamped(name: str, ext: str) -> str:
    return f"{slugify(name)[:40]}_{int(time.time())}.{ext}"


class StudioPaths:
    def __init__(self, base_dir: str = str(DATA_DIR)):
        self.root = os.path.abspath(base_dir)

        self.scripts = os.path.join(self.root, "scripts")
        self.audio = os.path.join(self.root, "audio")
        self.videos = os.path.join(self.root, "videos")
        self.visualizer = os.path.join(self.root, "visualizer")

    # --- Stores ---

    @property
    def projects_file(self):
        return os.path.join(self.root, "projects.json")

    @property
    def characters_file(self):
        return os.path.join(self.root, "characters.json")

    # --- Outputs ---

    def script_path(self, topic: str) -> str:
        return os.path.join(self.scripts, timestamped(topic, "json"))

    def audio_path(self, label: str) -> str:
        return os.path.join(self.audio, timestamped(label, "wav"))

    def video_path(self, prompt: str) -> str:
        return os.path.join(self.videos, timestamped(prompt, "mp4"))

    def visualizer_path(self, label: str) -> str:
        """Visualizer recordings are webm (VP8 + Opus)."""
        return os.path.join(self.visualizer, timestamped(label, "webm"))

    # --- Directory management ---

    def ensure_dirs(self):
        """Create the entire directory tree."""
        for d in [self.scripts, self.audio, self.videos, self.visualizer]:
            os.makedirs(d, exist_ok=True)
        return self.root
