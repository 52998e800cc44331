"""
Submission stage.

Posts the JSON-safe payload to the remote encode service and records
the returned resource locator in ``context.data["locator"]``.
"""

from __future__ import annotations

import logging

from ..base import BaseStage, StageContext, StageResult
from ...errors import RemoteError
from ...types import SafePayload

logger = logging.getLogger(__name__)


class SubmitStage(BaseStage):
    name = "submit"

    async def run(self, context: StageContext) -> StageResult:
        payload: SafePayload = context.require("payload")
        submitter = context.resources.submitter
        logger.info("[SubmitStage] Posting payload to %s.", submitter.endpoint)
        try:
            locator = await submitter.submit(payload)
        except RemoteError as exc:
            logger.warning("[SubmitStage] Service rejected the payload: %s", exc)
            return self.failed(exc)
        context.data["locator"] = locator
        return self.succeeded(locator)
