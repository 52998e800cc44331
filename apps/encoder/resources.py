"""
Resource manager for the encoding pipeline.

This module provides a small helper class that lazily builds the
heavy collaborators of the pipeline on first use: the ONNX Runtime
model session and the HTTP client for the remote service. Both are
cached and reused by later runs. Unlike optional models, the codec
model is mandatory, so a load failure is raised as
:class:`~apps.encoder.errors.ModelLoadError` instead of being hidden.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Optional

from .config import Config
from .io.client import ResultSubmitter

if TYPE_CHECKING:
    from .pipeline.stages.infer import ModelSession


class Resources:
    """Lazily load and expose the model session and the service client.

    Parameters
    ----------
    config : Config
        Loaded configuration. Model location, execution providers and
        service address are read from it.
    session : Optional[ModelSession]
        Pre-built session, e.g. a stub in tests. Skips loading.
    submitter : Optional[ResultSubmitter]
        Pre-built service client.
    """

    def __init__(
        self,
        config: Config,
        *,
        session: Optional["ModelSession"] = None,
        submitter: Optional[ResultSubmitter] = None,
    ) -> None:
        self.config: Config = config
        self._session: Optional["ModelSession"] = session
        self._submitter: Optional[ResultSubmitter] = submitter
        self._load_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # EnCodec model session
    # ------------------------------------------------------------------
    async def load_session(self) -> "ModelSession":
        """Return the cached model session, loading it in a worker thread once."""
        if self._session is not None:
            return self._session
        async with self._load_lock:
            if self._session is None:
                from .pipeline.stages import infer

                self._session = await asyncio.to_thread(
                    infer.load,
                    self.config.model_path,
                    providers=self.config.providers,
                    intra_op_threads=self.config.intra_op_threads,
                    expected_outputs=self.config.settings.output_names,
                )
        return self._session

    @property
    def session_loaded(self) -> bool:
        return self._session is not None

    # ------------------------------------------------------------------
    # Remote service client
    # ------------------------------------------------------------------
    @property
    def submitter(self) -> ResultSubmitter:
        if self._submitter is None:
            settings = self.config.settings
            self._submitter = ResultSubmitter(
                base_url=settings.service_url,
                encode_path=settings.encode_path,
                timeout=settings.request_timeout,
            )
        return self._submitter
