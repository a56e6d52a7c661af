from __future__ import annotations

import asyncio
import logging
from typing import Iterable

import httpx

from taxcheck.settings import OcrProviderConfig
from taxcheck.uploads import DocumentUpload

logger = logging.getLogger(__name__)

DOCUMENT_SEPARATOR = "\n\n---\n\n"


def result_id_from_operation_location(operation_location: str | None) -> str | None:
    """Take the job id from an ``Operation-Location`` URL.

    ``https://host/.../analyzeResults/<id>?api-version=...`` -> ``<id>``
    """

    if not operation_location:
        return None
    last_segment = operation_location.rstrip("/").rsplit("/", 1)[-1]
    result_id = last_segment.split("?", 1)[0].strip()
    return result_id or None


class DocumentTextExtractor:
    """Best-effort text extraction through Azure Document Intelligence.

    Every failure degrades to an empty string; nothing here raises to callers.
    """

    def __init__(
        self,
        config: OcrProviderConfig | None,
        *,
        poll_interval: float = 1.0,
        max_poll_attempts: int = 10,
        submit_timeout: float = 30.0,
        poll_timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self.poll_interval = poll_interval
        self.max_poll_attempts = max_poll_attempts
        self.submit_timeout = submit_timeout
        self.poll_timeout = poll_timeout
        self._transport = transport
        self._configured = config is not None

    @property
    def is_configured(self) -> bool:
        return self._configured

    def _analyze_url(self) -> str:
        config = self.config
        return (
            f"{config.endpoint}/formrecognizer/documentModels/{config.model_id}:analyze"
            f"?api-version={config.api_version}"
        )

    def _result_url(self, result_id: str) -> str:
        config = self.config
        return (
            f"{config.endpoint}/formrecognizer/documentModels/{config.model_id}"
            f"/analyzeResults/{result_id}?api-version={config.api_version}"
        )

    async def extract_text(self, content: bytes, mime_type: str) -> str:
        if not self._configured:
            return ""

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                return await self._submit_and_poll(client, content, mime_type)
        except Exception as exc:
            logger.warning("OCR extraction failed: %s", exc)
            return ""

    async def _submit_and_poll(self, client: httpx.AsyncClient, content: bytes, mime_type: str) -> str:
        headers = {"Ocp-Apim-Subscription-Key": self.config.api_key}
        submit_response = await client.post(
            self._analyze_url(),
            content=content,
            headers={**headers, "Content-Type": mime_type},
            timeout=self.submit_timeout,
        )
        submit_response.raise_for_status()

        result_id = result_id_from_operation_location(submit_response.headers.get("operation-location"))
        if result_id is None:
            logger.warning("OCR submit response had no usable Operation-Location header.")
            return ""

        result_url = self._result_url(result_id)
        for attempt in range(1, self.max_poll_attempts + 1):
            await asyncio.sleep(self.poll_interval)
            try:
                poll_response = await client.get(result_url, headers=headers, timeout=self.poll_timeout)
                poll_response.raise_for_status()
                payload = poll_response.json()
            except (httpx.HTTPError, ValueError) as exc:
                logger.warning("OCR poll attempt %s failed: %s", attempt, exc)
                continue

            status = payload.get("status") if isinstance(payload, dict) else None
            if status == "succeeded":
                analyze_result = payload.get("analyzeResult") or {}
                text = analyze_result.get("content") if isinstance(analyze_result, dict) else None
                return text if isinstance(text, str) else ""
            if status == "failed":
                logger.warning("OCR analysis failed: %s", payload.get("error"))
                return ""

        logger.warning("OCR analysis timed out after %s attempts.", self.max_poll_attempts)
        return ""

    async def extract_many(self, files: Iterable[DocumentUpload]) -> str:
        documents = list(files or [])
        if not self._configured or not documents:
            return ""

        texts = await asyncio.gather(
            *(self.extract_text(document.content, document.mime_type) for document in documents),
            return_exceptions=True,
        )
        extracted: list[str] = []
        for text in texts:
            if isinstance(text, BaseException):
                logger.warning("OCR extraction task ended with %r", text)
            elif text:
                extracted.append(text)
        return DOCUMENT_SEPARATOR.join(extracted)
