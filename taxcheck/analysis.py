from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from taxcheck.fallback import get_fallback_result
from taxcheck.llm_provider import (
    DEFAULT_TIMEOUT_SECONDS,
    complete_chat_with_azure_openai,
    parse_json_content,
)
from taxcheck.schema_models import is_valid_analysis_result
from taxcheck.settings import AiProviderConfig

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a tax filing expert assistant. Always respond with valid JSON only, "
    "no markdown formatting or additional text."
)

PROMPT_INTRO = (
    "You are a tax filing expert assistant. Analyze the following tax filing information "
    "and identify potential mistakes, errors, or issues.\n\n"
    "User's Answers from Question Wizard:\n"
)

PROMPT_DOCUMENTS_HEADER = (
    "\n\nExtracted Text from Uploaded Documents (Salary Slip, Form 26AS, etc.):\n"
)

PROMPT_OUTPUT_CONTRACT = """

Please analyze this information and return a JSON response with the following structure:
{
  "riskLevel": "LOW" | "MEDIUM" | "HIGH" | "CRITICAL",
  "summary": "A brief summary of the overall risk assessment",
  "detectedIssues": [
    {
      "id": "unique-id",
      "title": "Issue title",
      "short": "Short description",
      "long": "Detailed explanation of the issue"
    }
  ]
}

Focus on:
1. Wrong ITR form selection
2. Missing or incorrect TDS information
3. HRA claim issues
4. Section 80C limit violations
5. Capital gains reporting errors
6. Any other tax filing mistakes

Return ONLY valid JSON, no additional text or markdown formatting."""


def build_prompt(answers: dict[str, Any], extracted_text: str) -> str:
    """Render the user prompt, or return "" if the answers cannot be serialized."""

    try:
        answers_text = json.dumps(answers, indent=2, ensure_ascii=False)
    except (TypeError, ValueError, RecursionError):
        logger.warning("Could not serialize answers for the analysis prompt.")
        return ""

    prompt = f"{PROMPT_INTRO}{answers_text}\n"
    if extracted_text and extracted_text.strip():
        prompt += f"{PROMPT_DOCUMENTS_HEADER}{extracted_text}\n"
    return prompt + PROMPT_OUTPUT_CONTRACT


class TaxAnalysisClient:
    def __init__(
        self,
        config: AiProviderConfig | None,
        *,
        force_mock: bool = False,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self.force_mock = force_mock
        self.timeout = timeout
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return self.config is not None and not self.force_mock

    def _fallback(self, reason: str) -> dict:
        logger.info("Using fallback analysis result: %s", reason)
        return get_fallback_result()

    async def analyze(self, answers: dict[str, Any], extracted_text: str = "") -> dict:
        """Classify the filing; always returns a schema-valid analysis result."""

        if not self.is_configured:
            return self._fallback("model provider not configured")

        try:
            return await self._analyze_with_provider(answers, extracted_text or "")
        except Exception:
            logger.exception("Unexpected failure while analyzing tax filing data.")
            return self._fallback("unexpected error")

    async def _analyze_with_provider(self, answers: dict[str, Any], extracted_text: str) -> dict:
        prompt = build_prompt(answers, extracted_text)
        if not prompt:
            return self._fallback("prompt could not be built")

        response = await complete_chat_with_azure_openai(
            self.config,
            system_prompt=SYSTEM_PROMPT,
            prompt=prompt,
            timeout=self.timeout,
            transport=self._transport,
        )
        if response.status != "success":
            for warning in response.warnings:
                logger.warning(warning)
            return self._fallback("model request failed")

        parsed = parse_json_content(response.raw_response)
        if parsed is None:
            logger.warning("Model response was not valid JSON.")
            return self._fallback("model response not decodable")

        if not is_valid_analysis_result(parsed):
            logger.warning("Model response did not match the analysis result schema.")
            return self._fallback("model response failed schema validation")

        return parsed
