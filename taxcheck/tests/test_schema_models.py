from __future__ import annotations

import pytest

from taxcheck.fallback import get_fallback_result
from taxcheck.schema_models import analysis_result_json_schema, is_valid_analysis_result


def _issue(**overrides):
    issue = {"id": "i1", "title": "Wrong form", "short": "Use ITR-2", "long": "Capital gains need ITR-2."}
    issue.update(overrides)
    return issue


def test_analysis_result_schema_exposes_wire_field_names():
    schema = analysis_result_json_schema()

    required = set(schema.get("required", []))
    assert {"riskLevel", "summary", "detectedIssues"}.issubset(required)


@pytest.mark.parametrize("risk_level", ["LOW", "MEDIUM", "HIGH", "CRITICAL"])
def test_accepts_every_risk_level(risk_level):
    payload = {"riskLevel": risk_level, "summary": "ok", "detectedIssues": [_issue()]}

    assert is_valid_analysis_result(payload) is True


def test_accepts_empty_issue_list_and_extra_fields():
    payload = {
        "riskLevel": "LOW",
        "summary": "Nothing to report.",
        "detectedIssues": [_issue(severity="minor")],
        "confidence": 0.8,
    }

    assert is_valid_analysis_result(payload) is True
    assert is_valid_analysis_result({"riskLevel": "LOW", "summary": "", "detectedIssues": []}) is True


def test_fallback_result_passes_validation():
    assert is_valid_analysis_result(get_fallback_result()) is True


@pytest.mark.parametrize(
    "value",
    [
        None,
        "LOW",
        42,
        True,
        [],
        [{"riskLevel": "LOW", "summary": "ok", "detectedIssues": []}],
        {},
        {"riskLevel": "low", "summary": "ok", "detectedIssues": []},
        {"riskLevel": "SEVERE", "summary": "ok", "detectedIssues": []},
        {"riskLevel": "LOW", "summary": 1, "detectedIssues": []},
        {"riskLevel": "LOW", "summary": "ok"},
        {"riskLevel": "LOW", "summary": "ok", "detectedIssues": {}},
        {"riskLevel": "LOW", "summary": "ok", "detectedIssues": [None]},
        {"riskLevel": "LOW", "summary": "ok", "detectedIssues": ["issue"]},
        {"riskLevel": "LOW", "summary": "ok", "detectedIssues": [_issue(id=7)]},
        {"riskLevel": "LOW", "summary": "ok", "detectedIssues": [_issue(long=None)]},
        {"risk_level": "LOW", "summary": "ok", "detected_issues": []},
    ],
)
def test_rejects_payloads_that_break_the_contract(value):
    assert is_valid_analysis_result(value) is False


def test_does_not_raise_on_deeply_nested_input():
    nested: dict = {}
    cursor = nested
    for _ in range(5000):
        cursor["summary"] = {}
        cursor = cursor["summary"]

    assert is_valid_analysis_result({"riskLevel": "LOW", **nested, "detectedIssues": []}) is False
