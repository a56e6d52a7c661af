from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Sequence

from taxcheck.analysis import TaxAnalysisClient
from taxcheck.answers import normalize_answers
from taxcheck.ocr_client import DocumentTextExtractor
from taxcheck.settings import Settings
from taxcheck.uploads import DocumentUpload

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisOutcome:
    status_code: int
    payload: dict


class AnalysisOrchestrator:
    """Runs normalize -> extract -> analyze for one request.

    Only answer normalization can fail the request (400). OCR problems degrade
    to no document text, and the analysis client always yields a valid result.
    """

    def __init__(self, extractor: DocumentTextExtractor, analysis_client: TaxAnalysisClient) -> None:
        self.extractor = extractor
        self.analysis_client = analysis_client

    async def run(self, body: Any, files: Sequence[DocumentUpload] = ()) -> AnalysisOutcome:
        parsed = normalize_answers(body)
        if parsed.status != "success":
            return AnalysisOutcome(status_code=400, payload={"error": parsed.message})

        logger.info(
            "Processing analysis request: answers=%s documents=%s",
            len(parsed.answers),
            [document.field_name for document in files],
        )

        extracted_text = await self._extract(files)
        result = await self.analysis_client.analyze(parsed.answers, extracted_text)
        return AnalysisOutcome(status_code=200, payload=result)

    async def _extract(self, files: Sequence[DocumentUpload]) -> str:
        if not files:
            return ""
        if not self.extractor.is_configured:
            logger.info("OCR provider not configured, skipping document text extraction.")
            return ""

        try:
            extracted_text = await self.extractor.extract_many(files)
        except Exception:
            logger.exception("OCR extraction failed, continuing without document text.")
            return ""

        logger.info("OCR extracted %s characters of text.", len(extracted_text))
        return extracted_text


def build_orchestrator(settings: Settings) -> AnalysisOrchestrator:
    return AnalysisOrchestrator(
        extractor=DocumentTextExtractor(settings.ocr),
        analysis_client=TaxAnalysisClient(settings.ai, force_mock=settings.force_mock),
    )
