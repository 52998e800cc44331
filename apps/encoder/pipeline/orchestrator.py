"""
Pipeline orchestrator.

This module coordinates the execution of a sequence of stages for one
audio asset and owns the run state machine::

    IDLE --run()--> RUNNING --all stages ok--> SUCCEEDED(locator)
                            --any stage fails--> FAILED(stage, error)
    SUCCEEDED / FAILED --acknowledge() or next run()--> IDLE

Only one run may be in progress; a ``run`` call while ``RUNNING`` raises
:class:`~apps.encoder.errors.BusyError`. Each run gets its own
temporary directory, removed on every exit path including cancellation.

Example
-------
>>> orchestrator = PipelineOrchestrator(default_stages(), config, resources)
>>> outcome = await orchestrator.run(AudioAsset.from_path(Path("song.mp3")))
>>> outcome.locator
'out/1.wav'
"""

from __future__ import annotations

import asyncio
import enum
import logging
import tempfile
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from .base import BaseStage, StageContext, StageResult
from ..config import Config
from ..errors import BusyError, PipelineError
from ..resources import Resources
from ..types import AudioAsset

logger = logging.getLogger(__name__)


class PipelineState(str, enum.Enum):
    IDLE = "IDLE"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


@dataclass
class RunOutcome:
    """Terminal result of one run: a locator or the failing stage and error."""

    run_id: str
    state: PipelineState
    locator: Optional[str] = None
    stage: Optional[str] = None
    error: Optional[PipelineError] = None
    results: List[StageResult] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.state is PipelineState.SUCCEEDED

    @property
    def message(self) -> str:
        if self.succeeded:
            return f"Encoded audio stored at '{self.locator}'."
        assert self.error is not None
        return f"{self.stage} failed ({self.error.category}): {self.error.describe()}"


Listener = Callable[[PipelineState, Optional[RunOutcome]], None]


class PipelineOrchestrator:
    """Execute a series of stages on one asset at a time."""

    def __init__(
        self,
        stages: Iterable[BaseStage],
        config: Config,
        resources: Resources,
        *,
        work_root: Optional[Path] = None,
    ) -> None:
        self.stages: List[BaseStage] = list(stages)
        self.config = config
        self.resources = resources
        self.work_root = work_root
        self._state = PipelineState.IDLE
        self._outcome: Optional[RunOutcome] = None
        self._listeners: List[Listener] = []

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def outcome(self) -> Optional[RunOutcome]:
        """The last terminal outcome, until it is acknowledged."""
        return self._outcome

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _transition(self, state: PipelineState, outcome: Optional[RunOutcome] = None) -> None:
        logger.debug("[Pipeline] %s -> %s", self._state.value, state.value)
        self._state = state
        self._outcome = outcome
        for listener in list(self._listeners):
            try:
                listener(state, outcome)
            except Exception:
                logger.exception("[Pipeline] Listener %r failed on %s.", listener, state.value)

    def acknowledge(self) -> None:
        """Dismiss a terminal outcome and return to IDLE."""
        if self._state is PipelineState.RUNNING:
            raise BusyError("cannot acknowledge a run that is still in progress")
        if self._state is not PipelineState.IDLE:
            self._transition(PipelineState.IDLE)

    async def run(self, asset: AudioAsset) -> RunOutcome:
        """Run all stages sequentially on ``asset``.

        Returns
        -------
        RunOutcome
            ``SUCCEEDED`` with the locator from the last stage, or
            ``FAILED`` with the first failing stage and its error. Stages
            after a failure are skipped.
        """
        if self._state is PipelineState.RUNNING:
            raise BusyError("a pipeline run is already in progress")
        self.acknowledge()
        run_id = uuid.uuid4().hex[:12]
        results: List[StageResult] = []
        outcome: Optional[RunOutcome] = None
        try:
            self._transition(PipelineState.RUNNING)
            with tempfile.TemporaryDirectory(prefix=f"encode-{run_id}-", dir=self.work_root) as tmp:
                context = StageContext(
                    run_id=run_id,
                    config=self.config,
                    resources=self.resources,
                    work_dir=Path(tmp),
                    asset=asset,
                )
                for stage in self.stages:
                    logger.info("[Pipeline] Starting stage '%s'.", stage.name)
                    result = await stage.run(context)
                    results.append(result)
                    status = "success" if result.success else "failure"
                    logger.info("[Pipeline] Stage '%s' finished with %s.", stage.name, status)
                    if not result.success:
                        logger.warning("[Pipeline] Halting pipeline due to failure in stage '%s'.", stage.name)
                        outcome = RunOutcome(
                            run_id=run_id,
                            state=PipelineState.FAILED,
                            stage=stage.name,
                            error=result.error,
                            results=results,
                        )
                        break
                else:
                    outcome = RunOutcome(
                        run_id=run_id,
                        state=PipelineState.SUCCEEDED,
                        locator=context.data.get("locator"),
                        results=results,
                    )
                # Partial outputs never outlive the run.
                context.data.clear()
        except asyncio.CancelledError:
            logger.warning("[Pipeline] Run %s cancelled.", run_id)
            self._transition(PipelineState.IDLE)
            raise
        except Exception as exc:
            stage = self.stages[len(results)].name if len(results) < len(self.stages) else None
            logger.exception("[Pipeline] Unexpected error in stage '%s'.", stage)
            error = PipelineError(f"unexpected {type(exc).__name__}: {exc}")
            self._transition(
                PipelineState.FAILED,
                RunOutcome(run_id=run_id, state=PipelineState.FAILED, stage=stage, error=error, results=results),
            )
            raise
        self._transition(outcome.state, outcome)
        logger.info("[Pipeline] Run %s complete: %s", run_id, outcome.message)
        return outcome
