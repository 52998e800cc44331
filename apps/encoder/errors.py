"""
Error taxonomy for the encoding pipeline.

Every stage fails fast by raising one of the errors below. The
orchestrator catches :class:`PipelineError` subclasses, records the
stage that raised them and surfaces them unchanged to the caller. The
``category`` attribute groups the errors into the handful of failure
kinds a user needs to tell apart (bad file, model unavailable, service
failure, invariant violated).
"""

from __future__ import annotations

import math
from typing import Any, Optional


class PipelineError(Exception):
    """Base class for all expected pipeline failures."""

    category: str = "pipeline"

    @property
    def kind(self) -> str:
        return type(self).__name__

    def describe(self) -> str:
        return f"{self.kind}: {self}"


class DecodeError(PipelineError):
    """The input could not be parsed as audio."""

    category = "bad_file"


class ToolUnavailableError(PipelineError):
    """The decode/resample engine (ffmpeg) could not be found or started."""

    category = "tool_unavailable"


class ShapeError(PipelineError):
    """A buffer cannot be turned into the tensor layout the model expects."""

    category = "bad_file"


class MissingOutputError(PipelineError):
    """The model did not return one of the two required outputs."""

    category = "model_unavailable"


class ModelLoadError(PipelineError):
    """The model file is missing, corrupt or declares an unexpected signature."""

    category = "model_unavailable"


class InferenceError(PipelineError):
    """Forward inference failed (shape mismatch or runtime failure)."""

    category = "model_unavailable"


class RangeOverflowError(PipelineError):
    """A model output value cannot be carried by JSON without precision loss."""

    category = "invariant_violation"

    def __init__(self, value: Any, index: int, field: Optional[str] = None) -> None:
        self.value = value
        self.index = index
        self.field = field
        where = f"{field}[{index}]" if field else f"index {index}"
        if isinstance(value, float) and not math.isfinite(value):
            reason = "is not a finite number and has no JSON representation"
        else:
            reason = "exceeds the JSON safe integer range"
        super().__init__(f"value {value} at {where} {reason}")


class RemoteError(PipelineError):
    """The remote encode service rejected the payload or could not be reached."""

    category = "service_failure"

    def __init__(self, detail: str, status_code: Optional[int] = None) -> None:
        self.detail = detail
        self.status_code = status_code
        super().__init__(detail)


class BusyError(PipelineError):
    """A run was triggered while another one is still in progress."""

    category = "busy"


__all__ = [
    "PipelineError",
    "DecodeError",
    "ToolUnavailableError",
    "ShapeError",
    "MissingOutputError",
    "ModelLoadError",
    "InferenceError",
    "RangeOverflowError",
    "RemoteError",
    "BusyError",
]
