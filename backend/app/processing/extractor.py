"""
Text Extraction — Apache Tika client
════════════════════════════════════

Turns uploaded PDF / DOCX / PPTX / text files into plain text so they can be
found by full-text search.

Protocol:
  PUT {TIKA_URL}/tika
      Content-Type: <document mime type>
      Accept:       text/plain
      body:         raw file bytes
  → 200 text/plain (leading/trailing whitespace trimmed)

Every call is bounded by EXTRACTION_TIMEOUT_SECONDS end to end. Callers treat
extraction as best effort: ExtractionError means "store the document without
text", never "reject the upload".
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass

import httpx

from app.core.config import Settings, settings as default_settings
from app.schemas.documents import is_text_extractable

logger = logging.getLogger(__name__)


class ExtractionError(Exception):
    """Tika was unreachable, slow, or answered with an error."""


@dataclass
class ExtractionResult:
    """
    text        : extracted plain text ("" when nothing was extracted)
    method      : "tika" | "skipped"
    duration_ms : wall time spent waiting for the extraction service
    """
    text:        str
    method:      str
    duration_ms: float = 0.0


class TikaTextExtractor:
    """
    Thin async client for a Tika server.

    One instance (and one pooled httpx client) is created at startup and
    closed on shutdown.
    """

    def __init__(
        self,
        config: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        cfg = config or default_settings
        self._timeout = cfg.extraction_timeout_seconds
        self._client = httpx.AsyncClient(
            base_url=cfg.tika_url.rstrip("/"),
            timeout=httpx.Timeout(self._timeout),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    @staticmethod
    def supports(mime_type: str) -> bool:
        return is_text_extractable(mime_type)

    async def extract(self, data: bytes, mime_type: str) -> ExtractionResult:
        """
        Extract plain text from a file.

        Unsupported types return an empty "skipped" result without a network
        call. Raises ExtractionError on timeout, transport or HTTP errors.
        """
        if not self.supports(mime_type):
            return ExtractionResult(text="", method="skipped")

        start = time.perf_counter()
        try:
            resp = await asyncio.wait_for(
                self._client.put(
                    "/tika",
                    content=data,
                    headers={"Content-Type": mime_type, "Accept": "text/plain"},
                ),
                timeout=self._timeout,
            )
            resp.raise_for_status()
        except asyncio.TimeoutError as exc:
            raise ExtractionError(f"extraction timed out after {self._timeout}s") from exc
        except httpx.HTTPStatusError as exc:
            raise ExtractionError(f"tika returned status {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise ExtractionError(f"tika request failed: {exc}") from exc

        duration_ms = (time.perf_counter() - start) * 1000
        text = resp.text.strip()
        logger.debug(
            "Extraction ok | mime=%s bytes=%d chars=%d %.1fms",
            mime_type, len(data), len(text), duration_ms,
        )
        return ExtractionResult(text=text, method="tika", duration_ms=duration_ms)
