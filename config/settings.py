import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = Path(os.getenv("STUDIO_DATA_DIR", str(BASE_DIR / "data")))

# Gemini / Vertex AI Settings
API_KEY = os.getenv("GEMINI_API_KEY", os.getenv("API_KEY", ""))
PROJECT_ID = os.getenv("PROJECT_ID", "")
LOCATION = os.getenv("LOCATION", "us-central1")
CREDENTIALS_PATH = os.getenv(
    "GOOGLE_APPLICATION_CREDENTIALS",
    str(BASE_DIR / "credentials.json")
)
SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]

MODELS = {
    "script": "gemini-3-pro-preview",
    "fast_text": "gemini-2.5-flash",
    "video_fast": "veo-3.1-fast-generate-preview",
    "video_hq": "veo-3.1-generate-preview",
    "tts": "gemini-2.5-flash-preview-tts",
    "image": "imagen-4.0-generate-001",
}

# Retry Config (delays in seconds)
RETRY_CONFIG = {
    "max_retries": 5,
    "initial_delay": 2.0,
}

# Long-running video jobs
VIDEO_CONFIG = {
    "poll_interval": 10.0,
    "max_poll_cycles": 120,  # ~20 minutes at 10s
    "submit_retries": 5,
    "submit_delay": 5.0,
    "poll_retries": 3,
    "poll_delay": 2.0,
    "resolution": "720p",
    "aspect_ratio": "16:9",
    "hq_resolution": "720p",
    "hq_aspect_ratio": "16:9",
}

# Speech comes back as raw 16-bit PCM, 24kHz mono
AUDIO_CONFIG = {
    "speech_sample_rate": 24000,
    "speech_channels": 1,
    "fft_size": 512,
    "podcast_fft_size": 256,
    "smoothing": 0.8,
    "min_decibels": -100.0,
    "max_decibels": -30.0,
    "sound_effect_voice": "Fenrir",
}

VISUALIZER_CONFIG = {
    "fps": 30,
    "bar_size": (800, 300),
    "radial_size": (720, 1280),
    "radius": 80,
    "max_bar_height": 100,
    "caption_font_size": 30,
    "video_codec": "libvpx",
    "audio_codec": "libopus",
}

VOICES = {
    "Puck": {"name": "Puck (Male, Deep)", "gender": "Male"},
    "Kore": {"name": "Kore (Female, Calm)", "gender": "Female"},
    "Fenrir": {"name": "Fenrir (Male, Intense)", "gender": "Male"},
    "Charon": {"name": "Charon (Male, Deep)", "gender": "Male"},
    "Zephyr": {"name": "Zephyr (Female, Soft)", "gender": "Female"},
}

DEFAULT_VOICE = "Kore"


def get_voice(voice_id: str) -> dict:
    """Get a prebuilt voice by id."""
    voice = VOICES.get(voice_id)
    if not voice:
        available = ", ".join(VOICES.keys())
        raise ValueError(f"Unknown voice: '{voice_id}'. Available: {available}")
    return voice
