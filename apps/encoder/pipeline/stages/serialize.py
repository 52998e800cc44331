"""
JSON-safe serialisation stage.

Codec tokens come out of the model as 64-bit integers. JSON numbers are
IEEE doubles on the receiving end, so any integer whose magnitude is
above ``2**53 - 1`` would silently lose precision in transit. This stage
converts the model outputs to plain Python numbers and refuses, rather
than clamps, any value outside that range.
"""

from __future__ import annotations

import logging
import math
import numbers
from typing import Any, List, Optional

import numpy as np

from ..base import BaseStage, StageContext, StageResult
from ...errors import RangeOverflowError
from ...types import MAX_SAFE_INTEGER, Number, SafePayload

logger = logging.getLogger(__name__)


def _check(value: Number, index: int, field: Optional[str]) -> Number:
    if isinstance(value, float) and not math.isfinite(value):
        raise RangeOverflowError(value, index, field)
    if value > MAX_SAFE_INTEGER or value < -MAX_SAFE_INTEGER:
        raise RangeOverflowError(value, index, field)
    return value


def _to_python(value: Any) -> Number:
    if isinstance(value, (bool, np.bool_)):
        return int(value)
    if isinstance(value, numbers.Integral):
        return int(value)
    if isinstance(value, numbers.Real):
        return float(value)
    raise TypeError(f"cannot serialise {type(value).__name__} value {value!r} as a number")


def to_safe_numbers(values: Any, field: Optional[str] = None) -> List[Number]:
    """Return ``values`` flattened into JSON-safe Python ints/floats.

    Integer input stays integral and is compared exactly, before any
    conversion to float can round it. Raises :class:`RangeOverflowError`
    naming the first offending value and its index.
    """
    flat = np.asarray(values).ravel(order="C")
    if flat.dtype.kind in "iub":
        items = [int(v) for v in flat.tolist()]
    elif flat.dtype.kind == "f":
        items = [float(v) for v in flat.tolist()]
    else:
        items = [_to_python(v) for v in flat.tolist()]
    return [_check(value, index, field) for index, value in enumerate(items)]


def build_payload(tokens: Any, scales: Any) -> SafePayload:
    return SafePayload(
        encoded_data=to_safe_numbers(tokens, "encoded_data"),
        audio_scales=to_safe_numbers(scales, "audio_scales"),
    )


class SerializeStage(BaseStage):
    """Convert tokens and scales into the request payload."""

    name = "serialize"

    async def run(self, context: StageContext) -> StageResult:
        tokens = context.require("tokens")
        scales = context.require("scales")
        try:
            payload = build_payload(tokens, scales)
        except RangeOverflowError as exc:
            logger.error("[SerializeStage] %s", exc)
            return self.failed(exc)
        context.data["payload"] = payload
        logger.info(
            "[SerializeStage] Payload ready: %d encoded value(s), %d scale(s).",
            len(payload.encoded_data), len(payload.audio_scales),
        )
        return self.succeeded({"encoded_data": len(payload.encoded_data), "audio_scales": len(payload.audio_scales)})
