"""
Frequency analysis for the audio-reactive visualizers.

Produces the same byte-magnitude frames a Web Audio AnalyserNode exposes
through getByteFrequencyData: Blackman window, FFT magnitude, time
smoothing against the previous frame, then dB scaled into 0..255.
"""

from typing import Optional

import numpy as np

from config.settings import AUDIO_CONFIG
from studio.audio.wav import AudioBuffer


def blackman_window(size: int) -> np.ndarray:
    alpha = 0.16
    a0 = 0.5 * (1 - alpha)
    a1 = 0.5
    a2 = 0.5 * alpha
    n = np.arange(size)
    return a0 - a1 * np.cos(2 * np.pi * n / size) + a2 * np.cos(4 * np.pi * n / size)


class FrequencyAnalyser:
    def __init__(
        self,
        fft_size: int = AUDIO_CONFIG["fft_size"],
        smoothing: float = AUDIO_CONFIG["smoothing"],
        min_decibels: float = AUDIO_CONFIG["min_decibels"],
        max_decibels: float = AUDIO_CONFIG["max_decibels"],
    ):
        if fft_size < 32 or fft_size & (fft_size - 1):
            raise ValueError(f"fft_size must be a power of two >= 32, got {fft_size}")
        if not 0 <= smoothing < 1:
            raise ValueError(f"smoothing must be in [0, 1), got {smoothing}")
        if min_decibels >= max_decibels:
            raise ValueError("min_decibels must be below max_decibels")

        self.fft_size = fft_size
        self.smoothing = smoothing
        self.min_decibels = min_decibels
        self.max_decibels = max_decibels
        self._window = blackman_window(fft_size)
        self._smoothed = np.zeros(self.frequency_bin_count)

    @property
    def frequency_bin_count(self) -> int:
        return self.fft_size // 2

    def reset(self):
        self._smoothed = np.zeros(self.frequency_bin_count)

    def _time_window(self, buffer: Optional[AudioBuffer], position: float) -> np.ndarray:
        """The fft_size mono samples ending at ``position`` (zero padded)."""
        block = np.zeros(self.fft_size)
        if buffer is None or buffer.length == 0:
            return block
        end = int(round(position * buffer.sample_rate))
        end = min(max(end, 0), buffer.length)
        start = max(0, end - self.fft_size)
        # Average only the window, not the whole buffer
        samples = buffer.data[:, start:end].mean(axis=0)
        if len(samples):
            block[self.fft_size - len(samples):] = samples
        return block

    def get_float_frequency_data(self, buffer: Optional[AudioBuffer], position: float) -> np.ndarray:
        """Smoothed magnitude per bin in dB."""
        block = self._time_window(buffer, position) * self._window
        spectrum = np.abs(np.fft.rfft(block))[:self.frequency_bin_count] / self.fft_size
        self._smoothed = self.smoothing * self._smoothed + (1 - self.smoothing) * spectrum
        with np.errstate(divide="ignore"):
            return 20 * np.log10(self._smoothed)

    def get_byte_frequency_data(self, buffer: Optional[AudioBuffer], position: float) -> np.ndarray:
        """One FrequencyFrame: uint8 magnitude per bin."""
        db = self.get_float_frequency_data(buffer, position)
        span = self.max_decibels - self.min_decibels
        scaled = 255.0 / span * (db - self.min_decibels)
        return np.clip(np.nan_to_num(scaled, neginf=0.0), 0, 255).astype(np.uint8)
