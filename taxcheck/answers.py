from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import asdict, dataclass
from typing import Any

ANSWERS_FIELD = "answers"

MISSING_ANSWERS_MESSAGE = "Answers field is required"
INVALID_JSON_MESSAGE = "Invalid JSON format in answers field"
NOT_AN_OBJECT_MESSAGE = "Answers must be a valid JSON object"


@dataclass(frozen=True)
class AnswersParseResult:
    status: str
    message: str
    answers: dict[str, Any] | None

    def to_dict(self) -> dict:
        return asdict(self)


def _error(message: str) -> AnswersParseResult:
    return AnswersParseResult(status="error", message=message, answers=None)


def normalize_answers(body: Any) -> AnswersParseResult:
    """Pull the wizard answers out of a request body.

    ``body`` is the decoded JSON body or the submitted form fields. The answers
    always live under the top-level ``answers`` key, either as an object or as
    a JSON-encoded string.
    """

    if not isinstance(body, Mapping):
        return _error(MISSING_ANSWERS_MESSAGE)

    raw = body.get(ANSWERS_FIELD)
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return _error(MISSING_ANSWERS_MESSAGE)

    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except (json.JSONDecodeError, RecursionError):
            return _error(INVALID_JSON_MESSAGE)

    if not isinstance(raw, dict):
        return _error(NOT_AN_OBJECT_MESSAGE)

    return AnswersParseResult(
        status="success",
        message="Answers accepted.",
        answers=raw,
    )
