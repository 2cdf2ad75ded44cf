"""
PCM / WAV codec.

Speech and sound effects come back from the backend as raw little-endian
16-bit PCM. ``decode_pcm16`` turns that into an AudioBuffer; ``encode_wav``
writes an AudioBuffer out as a canonical 44-byte-header WAV file.
"""

import logging
import struct
from dataclasses import dataclass

import numpy as np

logger = logging.getLogger("wav")

WAV_HEADER_SIZE = 44
BITS_PER_SAMPLE = 16
BYTES_PER_SAMPLE = 2


@dataclass(frozen=True, eq=False)
class AudioBuffer:
    """
    Fixed-rate multi-channel float audio, shape (channels, frames).

    Samples are float32, conceptually in [-1, 1]. The array is read-only.
    """
    sample_rate: int
    data: np.ndarray

    def __post_init__(self):
        data = np.array(self.data, dtype=np.float32, copy=True)
        if data.ndim == 1:
            data = data[np.newaxis, :]
        if data.ndim != 2 or data.shape[0] < 1:
            raise ValueError(f"Audio data must be (channels, frames), got {data.shape}")
        if self.sample_rate <= 0:
            raise ValueError(f"Invalid sample rate: {self.sample_rate}")
        data.setflags(write=False)
        object.__setattr__(self, "data", data)

    @classmethod
    def silence(cls, sample_rate: int, channels: int, frames: int) -> "AudioBuffer":
        return cls(sample_rate, np.zeros((channels, frames), dtype=np.float32))

    @property
    def number_of_channels(self) -> int:
        return self.data.shape[0]

    @property
    def length(self) -> int:
        return self.data.shape[1]

    @property
    def duration(self) -> float:
        return self.length / self.sample_rate

    def get_channel_data(self, channel: int) -> np.ndarray:
        return self.data[channel]

    def mixdown(self) -> np.ndarray:
        """Average all channels into one mono track."""
        return self.data.mean(axis=0)

    def slice(self, start: float, end: float) -> "AudioBuffer":
        """Sub-buffer between two positions in seconds."""
        first = max(0, int(round(start * self.sample_rate)))
        last = min(self.length, int(round(end * self.sample_rate)))
        return AudioBuffer(self.sample_rate, self.data[:, first:max(first, last)])


def encode_wav(buffer: AudioBuffer) -> bytes:
    """
    Encode as 16-bit PCM WAV with interleaved channels.

    Samples are clamped to [-1, 1]; negatives scale by 32768, the rest by
    32767, truncated toward zero.
    """
    channels = buffer.number_of_channels
    payload_size = buffer.length * channels * BYTES_PER_SAMPLE
    total_size = WAV_HEADER_SIZE + payload_size

    header = struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        b"RIFF",
        total_size - 8,
        b"WAVE",
        b"fmt ",
        16,                                   # fmt chunk length
        1,                                    # PCM
        channels,
        buffer.sample_rate,
        buffer.sample_rate * BYTES_PER_SAMPLE * channels,  # byte rate
        channels * BYTES_PER_SAMPLE,          # block align
        BITS_PER_SAMPLE,
        b"data",
        payload_size,
    )

    samples = np.clip(np.nan_to_num(buffer.data.astype(np.float64)), -1.0, 1.0)
    scaled = np.where(samples < 0, samples * 32768.0, samples * 32767.0)
    pcm = np.trunc(scaled).astype("<i2")
    # (channels, frames) -> frame-major interleave
    payload = pcm.T.reshape(-1).tobytes()

    return header + payload


def decode_pcm16(data: bytes, sample_rate: int, channel_count: int) -> AudioBuffer:
    """
    Interpret raw signed little-endian 16-bit PCM as an AudioBuffer.

    Sample ``i * channel_count + c`` belongs to frame i, channel c. A partial
    trailing frame is dropped. No normalisation or resampling.
    """
    if channel_count < 1:
        raise ValueError(f"Invalid channel count: {channel_count}")

    frame_size = channel_count * BYTES_PER_SAMPLE
    remainder = len(data) % frame_size
    if remainder:
        logger.warning(f"Dropping {remainder} trailing bytes of a partial PCM frame")
        data = data[:len(data) - remainder]

    samples = np.frombuffer(data, dtype="<i2")
    frames = samples.reshape(-1, channel_count).T
    return AudioBuffer(sample_rate, frames.astype(np.float32) / 32768.0)


def decode_wav(data: bytes) -> AudioBuffer:
    """Read a 16-bit PCM RIFF/WAVE file."""
    if len(data) < 12 or data[:4] != b"RIFF" or data[8:12] != b"WAVE":
        raise ValueError("Not a RIFF/WAVE file")

    fmt = None
    pos = 12
    while pos + 8 <= len(data):
        chunk_id, chunk_size = struct.unpack_from("<4sI", data, pos)
        body = data[pos + 8:pos + 8 + chunk_size]
        if chunk_id == b"fmt ":
            fmt = struct.unpack_from("<HHIIHH", body, 0)
        elif chunk_id == b"data":
            if fmt is None:
                raise ValueError("WAV data chunk before fmt chunk")
            audio_format, channels, sample_rate, _, _, bits = fmt
            if audio_format != 1 or bits != BITS_PER_SAMPLE:
                raise ValueError(f"Unsupported WAV encoding (format={audio_format}, bits={bits})")
            return decode_pcm16(body, sample_rate, channels)
        # chunks are word aligned
        pos += 8 + chunk_size + (chunk_size & 1)

    raise ValueError("WAV file has no data chunk")
