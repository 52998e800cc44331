"""
Shared dataclasses for the encoding pipeline.

These dataclasses capture the structures exchanged between pipeline
stages: the raw asset a caller hands in, the normalised PCM buffer and
the JSON-safe payload sent to the remote service.
"""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Union

import numpy as np

from .errors import DecodeError

# Fixed PCM profile the model was exported for.
TARGET_SAMPLE_RATE = 24000
TARGET_CHANNELS = 1
TARGET_BIT_DEPTH = 16

# Largest integer magnitude a JSON number carries without precision loss.
MAX_SAFE_INTEGER = 2 ** 53 - 1

Number = Union[int, float]

# Output name -> array, in the model's declared output order.
InferenceOutput = Dict[str, np.ndarray]


@dataclass(frozen=True)
class AudioAsset:
    """Raw audio supplied by the triggering surface.

    Attributes
    ----------
    data : bytes
        The file content, in whatever container/codec the user picked.
    content_type : str
        Declared MIME type or container hint (e.g. ``audio/mpeg``).
    filename : Optional[str]
        Original file name, if known. Only used to pick a suffix for the
        temporary decode input.
    """

    data: bytes
    content_type: str = "application/octet-stream"
    filename: Optional[str] = None

    @classmethod
    def from_path(cls, path: Path, *, max_bytes: Optional[int] = None) -> "AudioAsset":
        path = Path(path)
        size = path.stat().st_size
        if max_bytes is not None and size > max_bytes:
            raise DecodeError(f"'{path.name}' is {size} bytes, above the {max_bytes} byte limit")
        content_type, _ = mimetypes.guess_type(path.name)
        return cls(
            data=path.read_bytes(),
            content_type=content_type or "application/octet-stream",
            filename=path.name,
        )

    @property
    def suffix(self) -> str:
        if self.filename and Path(self.filename).suffix:
            return Path(self.filename).suffix.lower()
        guessed = mimetypes.guess_extension(self.content_type or "")
        return guessed or ".bin"


@dataclass(frozen=True)
class PCMBuffer:
    """Decoded mono 24 kHz signed 16-bit audio.

    The profile fields exist so consumers can assert on them; building a
    buffer with any other profile raises ``ValueError``.
    """

    samples: np.ndarray
    sample_rate: int = TARGET_SAMPLE_RATE
    channels: int = TARGET_CHANNELS
    bit_depth: int = TARGET_BIT_DEPTH

    def __post_init__(self) -> None:
        if (self.sample_rate, self.channels, self.bit_depth) != (
            TARGET_SAMPLE_RATE,
            TARGET_CHANNELS,
            TARGET_BIT_DEPTH,
        ):
            raise ValueError(
                f"PCM profile {self.sample_rate} Hz/{self.channels} ch/{self.bit_depth} bit "
                f"does not match {TARGET_SAMPLE_RATE} Hz/{TARGET_CHANNELS} ch/{TARGET_BIT_DEPTH} bit"
            )
        if self.samples.dtype != np.int16 or self.samples.ndim != 1:
            raise ValueError(f"PCM samples must be a 1-D int16 array, got {self.samples.dtype} {self.samples.shape}")

    @property
    def sample_count(self) -> int:
        return int(self.samples.shape[0])

    @property
    def duration_seconds(self) -> float:
        return self.sample_count / float(self.sample_rate)


@dataclass(frozen=True)
class SafePayload:
    """Request body for ``POST /encode``; every number is JSON safe."""

    encoded_data: List[Number]
    audio_scales: List[Number]

    def to_json(self) -> Dict[str, List[Number]]:
        return {"encoded_data": list(self.encoded_data), "audio_scales": list(self.audio_scales)}
