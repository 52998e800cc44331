"""
Neural inference stage.

Loads the pretrained EnCodec ONNX model through ONNX Runtime and runs a
forward pass on the prepared tensor. The model is treated as an opaque
function: the stage only relies on its first declared input name and on
two ordered outputs (encoded tokens, audio scales). The loaded session
is cached by :class:`apps.encoder.resources.Resources` and reused by
later runs; a per-session lock keeps two inference calls from ever
overlapping.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple

import numpy as np
import onnxruntime as ort

from ..base import BaseStage, StageContext, StageResult
from .tensor import from_outputs
from ...errors import InferenceError, ModelLoadError, PipelineError
from ...types import InferenceOutput

logger = logging.getLogger(__name__)


@dataclass
class ModelSession:
    """A loaded model plus the signature facts the pipeline depends on."""

    session: Any
    input_name: str
    input_shape: Sequence[Any]
    output_names: List[str]
    expected_outputs: Optional[Tuple[str, str]] = None
    model_path: Optional[Path] = None
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @classmethod
    def from_session(
        cls,
        session: Any,
        *,
        expected_outputs: Optional[Tuple[str, str]] = None,
        model_path: Optional[Path] = None,
    ) -> "ModelSession":
        """Read and validate the declared signature of an ONNX Runtime session."""
        inputs = session.get_inputs()
        if not inputs:
            raise ModelLoadError("model declares no inputs")
        output_names = [o.name for o in session.get_outputs()]
        if len(output_names) < 2:
            raise ModelLoadError(
                f"model declares {len(output_names)} output(s); tokens and scales are required"
            )
        if expected_outputs is not None:
            missing = [name for name in expected_outputs if name not in output_names]
            if missing:
                raise ModelLoadError(
                    f"model outputs {output_names} do not include configured {missing}"
                )
        shape = list(inputs[0].shape or [])
        if shape and len(shape) != 3:
            raise ModelLoadError(f"model input '{inputs[0].name}' has rank {len(shape)}, expected 3")
        return cls(
            session=session,
            input_name=inputs[0].name,
            input_shape=shape,
            output_names=output_names,
            expected_outputs=expected_outputs,
            model_path=model_path,
        )


def load(
    model_path: Path,
    *,
    providers: Optional[Sequence[str]] = None,
    intra_op_threads: Optional[int] = None,
    expected_outputs: Optional[Tuple[str, str]] = None,
) -> ModelSession:
    """Load and validate the ONNX model at ``model_path``."""
    model_path = Path(model_path)
    if not model_path.is_file():
        raise ModelLoadError(f"model file '{model_path}' not found")

    options = ort.SessionOptions()
    options.use_deterministic_compute = True
    if intra_op_threads:
        options.intra_op_num_threads = intra_op_threads
    available = set(ort.get_available_providers())
    chosen = [p for p in (providers or ["CPUExecutionProvider"]) if p in available] or ["CPUExecutionProvider"]

    try:
        session = ort.InferenceSession(str(model_path), sess_options=options, providers=chosen)
    except Exception as exc:
        raise ModelLoadError(f"could not load model '{model_path}': {exc}") from exc
    model = ModelSession.from_session(session, expected_outputs=expected_outputs, model_path=model_path)
    logger.info(
        "[InferStage] Loaded model '%s' (input=%s, outputs=%s) on %s.",
        model_path.name, model.input_name, model.output_names, session.get_providers(),
    )
    return model


def _check_shape(model: ModelSession, tensor: np.ndarray) -> None:
    if not model.input_shape:
        return
    if tensor.ndim != len(model.input_shape):
        raise InferenceError(f"tensor rank {tensor.ndim} does not match model input rank {len(model.input_shape)}")
    for axis, (declared, actual) in enumerate(zip(model.input_shape, tensor.shape)):
        # Symbolic or unknown dims are dynamic.
        if isinstance(declared, int) and declared > 0 and declared != actual:
            raise InferenceError(f"tensor shape {tensor.shape} does not match model input {model.input_shape} on axis {axis}")


def run(model: ModelSession, tensor: np.ndarray, run_options: Optional[Any] = None) -> InferenceOutput:
    """Run a forward pass; returns every declared output by name, in order."""
    _check_shape(model, tensor)
    feeds = {model.input_name: tensor}
    with model.lock:
        try:
            results = model.session.run(model.output_names, feeds, run_options)
        except Exception as exc:
            raise InferenceError(f"inference failed: {exc}") from exc
    if len(results) != len(model.output_names):
        raise InferenceError(f"model returned {len(results)} result(s) for {len(model.output_names)} declared output(s)")
    return {name: np.asarray(value) for name, value in zip(model.output_names, results)}


async def run_async(model: ModelSession, tensor: np.ndarray) -> InferenceOutput:
    """Run inference in a worker thread; ask the runtime to stop if cancelled."""
    run_options = ort.RunOptions()
    try:
        return await asyncio.to_thread(run, model, tensor, run_options)
    except asyncio.CancelledError:
        run_options.terminate = True
        raise


class InferStage(BaseStage):
    """Encode the input tensor into codec tokens and scales."""

    name = "infer"

    async def run(self, context: StageContext) -> StageResult:
        tensor: np.ndarray = context.require("input_tensor")
        try:
            model = await context.resources.load_session()
            logger.info("[InferStage] Running inference on tensor %s.", tensor.shape)
            outputs = await run_async(model, tensor)
            tokens, scales = from_outputs(outputs, model.expected_outputs)
        except PipelineError as exc:
            logger.warning("[InferStage] Inference failed: %s", exc)
            return self.failed(exc)
        finally:
            context.data.pop("input_tensor", None)
        context.data["tokens"] = tokens
        context.data["scales"] = scales
        logger.info("[InferStage] Produced %d token(s) and %d scale(s).", tokens.size, scales.size)
        return self.succeeded({"tokens_shape": list(tokens.shape), "scales_shape": list(scales.shape)})
