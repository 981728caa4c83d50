"""
Client for the external export service.

The service takes raw DSL text plus a target format and answers with the
rendered file. Rendering itself happens outside this project.
"""

import logging
from enum import Enum
from typing import Optional

import httpx
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ExportFormat(str, Enum):
    PNG = "png"
    SVG = "svg"
    PDF = "pdf"


MEDIA_TYPES = {
    ExportFormat.PNG: "image/png",
    ExportFormat.SVG: "image/svg+xml",
    ExportFormat.PDF: "application/pdf",
}


class ExportRequest(BaseModel):
    """Request to export DSL text; without `code` the current text is used."""
    format: ExportFormat = ExportFormat.PNG
    code: Optional[str] = None


class ExportError(Exception):
    """The export service could not be reached or refused the request."""


class ExportClient:
    """Posts DSL text to the export service and returns the artifact bytes."""

    def __init__(self, url: str, timeout: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._url = url
        self._timeout = timeout
        self._transport = transport

    async def export(self, code: str, fmt: ExportFormat) -> bytes:
        """
        Render `code` in the given format.

        Raises:
            ValueError: if there is no code to render
            ExportError: on transport failure or an error response
        """
        if not code or not code.strip():
            raise ValueError("No code provided")
        fmt = ExportFormat(fmt)

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self._url, json={"code": code, "format": fmt.value})
        except httpx.HTTPError as e:
            logger.warning("Export service unreachable at %s: %s", self._url, e)
            raise ExportError(f"Export service unreachable: {e}") from e

        if response.status_code >= 400:
            try:
                detail = response.json().get("error", "Unknown error")
            except ValueError:
                detail = response.text or f"HTTP {response.status_code}"
            raise ExportError(f"Export failed: {detail}")

        return response.content
