"""
Audio normalisation stage.

This stage converts the caller's audio file, whatever its container or
codec, into the fixed PCM profile the model was exported for: mono,
24 kHz, signed 16-bit. The conversion is done by ``ffmpeg``; the
result is read back with ``soundfile`` and its profile is checked
before it is handed on. The decoded samples are recorded in the
context's data under the ``"pcm"`` key.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import tempfile
from pathlib import Path
from typing import List, Optional

import numpy as np
import soundfile as sf

from ..base import BaseStage, StageContext, StageResult
from ...errors import DecodeError, PipelineError, ToolUnavailableError
from ...types import (
    AudioAsset,
    PCMBuffer,
    TARGET_BIT_DEPTH,
    TARGET_CHANNELS,
    TARGET_SAMPLE_RATE,
)

logger = logging.getLogger(__name__)

_SUBTYPE_BITS = {"PCM_16": 16, "PCM_24": 24, "PCM_32": 32, "PCM_U8": 8, "PCM_S8": 8}


class AudioNormalizer:
    """Decode any audio file to mono 24 kHz s16 PCM with ffmpeg."""

    def __init__(self, ffmpeg_binary: str = "ffmpeg") -> None:
        self.ffmpeg_binary = ffmpeg_binary

    def _ffmpeg_cmd(self, ffmpeg_path: str, source: Path, target: Path) -> List[str]:
        return [
            ffmpeg_path,
            "-y",  # overwrite
            "-hide_banner",
            "-loglevel", "error",
            "-i", str(source),
            "-vn",
            "-ar", str(TARGET_SAMPLE_RATE),
            "-ac", str(TARGET_CHANNELS),
            "-sample_fmt", "s16",
            "-c:a", "pcm_s16le",
            "-f", "wav",
            str(target),
        ]

    async def _run_ffmpeg(self, cmd: List[str]) -> None:
        """Run ffmpeg as a child process; kill it if the caller is cancelled."""
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise ToolUnavailableError(f"could not start ffmpeg ({cmd[0]}): {exc}") from exc
        try:
            _, stderr = await proc.communicate()
        except asyncio.CancelledError:
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
            raise
        if proc.returncode != 0:
            detail = stderr.decode("utf-8", errors="replace").strip() or f"exit code {proc.returncode}"
            raise DecodeError(f"ffmpeg could not decode the input: {detail}")

    def _read_pcm(self, path: Path) -> PCMBuffer:
        try:
            info = sf.info(str(path))
        except RuntimeError as exc:
            raise DecodeError(f"normalised output is not readable: {exc}") from exc
        bits = _SUBTYPE_BITS.get(info.subtype)
        if (info.samplerate, info.channels, bits) != (TARGET_SAMPLE_RATE, TARGET_CHANNELS, TARGET_BIT_DEPTH):
            raise DecodeError(
                f"normalised output has profile {info.samplerate} Hz/{info.channels} ch/{info.subtype}, "
                f"expected {TARGET_SAMPLE_RATE} Hz/{TARGET_CHANNELS} ch/PCM_16"
            )
        samples, _ = sf.read(str(path), dtype="int16", always_2d=False)
        return PCMBuffer(samples=np.ascontiguousarray(samples, dtype=np.int16))

    async def normalize(self, asset: AudioAsset, work_dir: Optional[Path] = None) -> PCMBuffer:
        """Return ``asset`` decoded to the fixed PCM profile.

        Temporary files are written to ``work_dir`` when given, otherwise
        to a private directory removed before returning.
        """
        if not asset.data:
            raise DecodeError("audio file is empty")
        ffmpeg_path = shutil.which(self.ffmpeg_binary)
        if ffmpeg_path is None:
            raise ToolUnavailableError(f"'{self.ffmpeg_binary}' was not found on PATH")

        with tempfile.TemporaryDirectory(prefix="normalize-", dir=work_dir) as tmp:
            source = Path(tmp) / f"input{asset.suffix}"
            target = Path(tmp) / "output_24khz.wav"
            source.write_bytes(asset.data)
            await self._run_ffmpeg(self._ffmpeg_cmd(ffmpeg_path, source, target))
            return await asyncio.to_thread(self._read_pcm, target)


class NormalizeStage(BaseStage):
    """Convert the input asset to mono 24 kHz s16 PCM."""

    name = "normalize"

    def __init__(self, normalizer: Optional[AudioNormalizer] = None) -> None:
        self.normalizer = normalizer

    async def run(self, context: StageContext) -> StageResult:
        normalizer = self.normalizer or AudioNormalizer(context.config.settings.ffmpeg_binary)
        logger.info("[NormalizeStage] Normalising %d byte(s) of %s.", len(context.asset.data), context.asset.content_type)
        try:
            pcm = await normalizer.normalize(context.asset, context.work_dir)
        except PipelineError as exc:
            logger.warning("[NormalizeStage] Normalisation failed: %s", exc)
            return self.failed(exc)
        logger.info("[NormalizeStage] Produced %d sample(s) (%.2fs).", pcm.sample_count, pcm.duration_seconds)
        context.data["pcm"] = pcm
        return self.succeeded({"samples": pcm.sample_count, "sample_rate": pcm.sample_rate})
