"""
Client for the remote encode/decode service.

The service accepts the codec payload on ``POST /encode`` and answers
with the relative path of the decoded audio it stored. Only that
contract is relied on here:

- ``200`` with ``{"file_path": str}`` on success;
- any non-2xx status with ``{"detail": str}`` on failure.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from .schemas import EncodeRequest, EncodeResponse, ErrorResponse
from ..errors import RemoteError
from ..types import SafePayload

logger = logging.getLogger(__name__)


class ResultSubmitter:
    def __init__(
        self,
        *,
        base_url: str,
        encode_path: str = "/encode",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._path = "/" + (encode_path or "/encode").lstrip("/")
        self._timeout = timeout
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"{self._base_url}{self._path}"

    def resource_url(self, locator: str) -> str:
        """Join a returned locator with the service base address."""
        return f"{self._base_url}/{locator.lstrip('/')}"

    async def submit(self, payload: SafePayload) -> str:
        """POST the payload once and return the stored file's locator."""
        body = EncodeRequest(**payload.to_json()).model_dump()
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self.endpoint, json=body)
        except httpx.HTTPError as exc:
            raise RemoteError(f"request to {self.endpoint} failed: {exc!r}") from exc

        if not response.is_success:
            logger.warning("[Submitter] %s answered %d.", self.endpoint, response.status_code)
            try:
                error = ErrorResponse.model_validate(response.json())
            except (ValueError, ValidationError):
                raise RemoteError("malformed error response", status_code=response.status_code) from None
            raise RemoteError(error.detail, status_code=response.status_code)

        try:
            result = EncodeResponse.model_validate(response.json())
        except (ValueError, ValidationError):
            raise RemoteError("malformed success response", status_code=response.status_code) from None
        logger.info("[Submitter] Stored as '%s'.", result.file_path)
        return result.file_path


__all__ = ["ResultSubmitter"]
