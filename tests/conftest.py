from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import httpx
import numpy as np
import pytest
import soundfile as sf

from apps.encoder.config import Config
from apps.encoder.io.client import ResultSubmitter
from apps.encoder.pipeline.base import BaseStage, StageContext, StageResult
from apps.encoder.pipeline.stages.infer import ModelSession
from apps.encoder.resources import Resources
from apps.encoder.settings import Settings
from apps.encoder.types import PCMBuffer


@dataclass
class FakeNode:
    name: str
    shape: Optional[List[Any]] = None
    type: str = "tensor(float)"


class FakeOrtSession:
    """Stands in for onnxruntime.InferenceSession."""

    def __init__(
        self,
        outputs: Dict[str, Any],
        *,
        input_name: str = "input_values",
        input_shape: Optional[List[Any]] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self.outputs = outputs
        self.input_name = input_name
        self.input_shape = input_shape if input_shape is not None else [1, 1, "samples"]
        self.error = error
        self.calls: List[Dict[str, np.ndarray]] = []

    def get_inputs(self):
        return [FakeNode(self.input_name, self.input_shape)]

    def get_outputs(self):
        return [FakeNode(name) for name in self.outputs]

    def run(self, output_names, feeds, run_options=None):
        self.calls.append(feeds)
        if self.error is not None:
            raise self.error
        return [np.asarray(self.outputs[name]) for name in output_names]


class StaticPCMStage(BaseStage):
    """Replaces the ffmpeg normaliser with a fixed buffer."""

    name = "normalize"

    def __init__(self, samples: int = 2400) -> None:
        self.samples = samples

    async def run(self, context: StageContext) -> StageResult:
        context.data["pcm"] = PCMBuffer(samples=np.zeros(self.samples, dtype=np.int16))
        return self.succeeded({"samples": self.samples})


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, service_url="http://decoder.test")


@pytest.fixture
def config(tmp_path: Path, settings: Settings) -> Config:
    payload = {
        "hardware": {"providers": ["CPUExecutionProvider"]},
        "selected": {
            "providers": ["CPUExecutionProvider"],
            "intra_op_threads": 1,
            "model_path": str(tmp_path / "encodec_model.onnx"),
        },
    }
    config_path = tmp_path / "encoder.config.json"
    config_path.write_text(json.dumps(payload), encoding="utf-8")
    return Config.load(settings, config_path=config_path)


@pytest.fixture
def make_session() -> Callable[..., ModelSession]:
    def _make(tokens: Any = ((1, 2, 3),), scales: Any = (0.5,), **kwargs: Any) -> ModelSession:
        fake = FakeOrtSession(
            {
                "encoded_frames": np.asarray(tokens, dtype=np.int64),
                "encoded_scales": np.asarray(scales, dtype=np.float32),
            },
            **kwargs,
        )
        return ModelSession.from_session(fake)

    return _make


@pytest.fixture
def service():
    """A recording stub of the decode service built on httpx.MockTransport."""

    class _Service:
        def __init__(self) -> None:
            self.requests: List[httpx.Request] = []
            self.status_code = 200
            self.body: Any = {"file_path": "out/1.wav"}

        def handler(self, request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            if isinstance(self.body, (dict, list)):
                return httpx.Response(self.status_code, json=self.body)
            return httpx.Response(self.status_code, content=self.body)

        def submitter(self) -> ResultSubmitter:
            return ResultSubmitter(
                base_url="http://decoder.test",
                transport=httpx.MockTransport(self.handler),
            )

        @property
        def payloads(self) -> List[Any]:
            return [json.loads(r.content) for r in self.requests]

    return _Service()


@pytest.fixture
def resources_for(config: Config):
    def _build(session: ModelSession, submitter: ResultSubmitter) -> Resources:
        return Resources(config, session=session, submitter=submitter)

    return _build


def write_sine(path: Path, *, seconds: float, sample_rate: int, channels: int = 1, fmt: str = "WAV") -> Path:
    t = np.arange(int(round(seconds * sample_rate))) / sample_rate
    tone = 0.3 * np.sin(2 * np.pi * 440.0 * t)
    data = np.stack([tone] * channels, axis=1) if channels > 1 else tone
    sf.write(str(path), data, sample_rate, format=fmt, subtype="PCM_16")
    return path


@pytest.fixture
def sine_file() -> Callable[..., Path]:
    return write_sine


@pytest.fixture
def fake_ort_session() -> type:
    return FakeOrtSession


@pytest.fixture
def static_pcm_stage() -> type:
    return StaticPCMStage
