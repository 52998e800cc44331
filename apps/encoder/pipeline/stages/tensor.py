"""
Tensor preparation stage.

Turns the normalised PCM buffer into the ``(batch, channel, samples)``
float32 tensor the model takes, and provides the inverse helper used
after inference to pick the token and scale outputs out of the model's
named results.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence, Tuple

import numpy as np

from ..base import BaseStage, StageContext, StageResult
from ...errors import MissingOutputError, ShapeError
from ...types import InferenceOutput, PCMBuffer

logger = logging.getLogger(__name__)


def to_input_tensor(buf: PCMBuffer) -> np.ndarray:
    """Cast the samples to float32 (no rescaling) and shape them as (1, 1, N)."""
    if buf.sample_count == 0:
        raise ShapeError("PCM buffer has no samples")
    return buf.samples.astype(np.float32).reshape(1, 1, buf.sample_count)


def from_outputs(
    raw: InferenceOutput,
    names: Optional[Sequence[str]] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """Return ``(tokens, scales)`` from the model outputs.

    Without ``names`` the first two outputs, in the model's declared
    order, are tokens and scales. With ``names`` both are looked up by
    name.
    """
    if names is not None:
        tokens_name, scales_name = names
        missing = [name for name in (tokens_name, scales_name) if name not in raw]
        if missing:
            raise MissingOutputError(
                f"model outputs {sorted(raw)} lack {', '.join(repr(m) for m in missing)}"
            )
        return raw[tokens_name], raw[scales_name]

    values = list(raw.values())
    if len(values) < 2:
        labels = ("tokens", "scales")
        raise MissingOutputError(f"model returned {len(values)} output(s); {labels[len(values)]} output is absent")
    return values[0], values[1]


class PrepareStage(BaseStage):
    """Wrap the PCM buffer into the model's input tensor."""

    name = "prepare"

    async def run(self, context: StageContext) -> StageResult:
        pcm: PCMBuffer = context.require("pcm")
        try:
            tensor = to_input_tensor(pcm)
        except ShapeError as exc:
            logger.warning("[PrepareStage] %s", exc)
            return self.failed(exc)
        # The buffer is consumed once.
        del context.data["pcm"]
        context.data["input_tensor"] = tensor
        logger.debug("[PrepareStage] Input tensor shape %s.", tensor.shape)
        return self.succeeded({"shape": list(tensor.shape)})
