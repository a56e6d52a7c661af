from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

RISK_LEVELS = ("LOW", "MEDIUM", "HIGH", "CRITICAL")

RiskLevel = Literal["LOW", "MEDIUM", "HIGH", "CRITICAL"]


class DetectedIssueModel(BaseModel):
    model_config = ConfigDict(extra="allow", strict=True)

    id: str
    title: str
    short: str
    long: str


class AnalysisResultModel(BaseModel):
    """Shape every analysis response must have before it reaches a caller."""

    model_config = ConfigDict(extra="allow", strict=True)

    risk_level: RiskLevel = Field(alias="riskLevel")
    summary: str
    detected_issues: list[DetectedIssueModel] = Field(alias="detectedIssues")


def is_valid_analysis_result(value: Any) -> bool:
    """Return True when ``value`` is a decoded analysis result payload.

    Accepts any input shape and never raises; unknown extra keys are ignored.
    """

    if not isinstance(value, dict):
        return False
    try:
        AnalysisResultModel.model_validate(value)
    except (ValidationError, RecursionError):
        return False
    return True


def analysis_result_json_schema() -> dict[str, Any]:
    """Expose JSON schema for tests and tooling."""

    return AnalysisResultModel.model_json_schema(by_alias=True)
