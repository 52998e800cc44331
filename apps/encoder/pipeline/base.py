"""
Abstract base classes for pipeline stages.

Stages are small units of computation that perform a single well
defined task (e.g. normalisation, inference, submission). Each stage
receives a :class:`StageContext` which holds run specific information
and a mutable data dictionary. Stages read their inputs from
``context.data`` and write their outputs back into it under agreed
keys. This design keeps the stages loosely coupled and lets each stage
be exercised on its own.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from ..config import Config
from ..errors import PipelineError
from ..resources import Resources
from ..types import AudioAsset


@dataclass
class StageResult:
    """Represents the outcome of a stage.

    A stage sets ``success`` to ``True`` when it completes. The ``data``
    attribute carries the primary output of the stage. On failure
    ``error`` holds the typed error that stopped the stage and
    ``message`` its text.
    """
    name: str
    success: bool
    data: Any = None
    message: Optional[str] = None
    error: Optional[PipelineError] = None


@dataclass
class StageContext:
    """Holds contextual information passed to each stage.

    Attributes
    ----------
    run_id : str
        Identifier for the current pipeline run.
    config : Config
        Loaded configuration.
    resources : Resources
        Lazily loaded model session and service client shared across runs.
    work_dir : Path
        Temporary directory owned by this run. It is removed when the run
        ends, whatever the outcome.
    asset : AudioAsset
        The audio handed in by the caller.
    data : Dict[str, Any]
        Mutable mapping storing intermediate results. Keys are agreed
        by convention between stages.
    """
    run_id: str
    config: Config
    resources: Resources
    work_dir: Path
    asset: AudioAsset
    data: Dict[str, Any] = field(default_factory=dict)

    def require(self, key: str) -> Any:
        """Return ``data[key]`` or fail loudly when an earlier stage did not set it."""
        try:
            return self.data[key]
        except KeyError:
            raise RuntimeError(f"pipeline context is missing '{key}'; stage order is wrong") from None


class BaseStage:
    """Base class for all pipeline stages.

    Subclasses implement the :meth:`run` coroutine. They may access or
    modify the ``context.data`` dictionary to pass information between
    stages. If a stage fails it returns a :class:`StageResult` built with
    :meth:`failed` instead of raising.
    """

    name: str = "base"

    async def run(self, context: StageContext) -> StageResult:
        raise NotImplementedError

    def succeeded(self, data: Any = None, message: Optional[str] = None) -> StageResult:
        return StageResult(name=self.name, success=True, data=data, message=message)

    def failed(self, error: PipelineError) -> StageResult:
        return StageResult(name=self.name, success=False, message=str(error), error=error)
