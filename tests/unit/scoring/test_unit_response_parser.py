# tests/unit/scoring/test_unit_response_parser.py — v1
"""Tests for scoring/response_parser.py — untrusted payload validation."""

from __future__ import annotations

import pytest

from scamguard.scoring.response_parser import (
    ParsedVerdict,
    ParseFailure,
    parse_scorer_response,
)

VALID = {
    "isSafe": False,
    "confidence": 87,
    "threats": ["Phishing"],
    "analysis": "Asks for credentials.",
}


class TestValidPayloads:
    def test_mapping(self):
        result = parse_scorer_response(VALID, category="Email")
        assert isinstance(result, ParsedVerdict)
        v = result.verdict
        assert v.is_safe is False
        assert v.confidence == 87
        assert v.threats == ("Phishing",)
        assert v.category == "Email"

    def test_default_category(self):
        assert parse_scorer_response(VALID).verdict.category == "General"

    def test_snake_case_keys(self):
        payload = {"is_safe": True, "confidence": 70, "analysis": "fine"}
        result = parse_scorer_response(payload)
        assert result.verdict.is_safe is True
        assert result.verdict.threats == ()

    def test_float_confidence_rounded(self):
        result = parse_scorer_response({**VALID, "confidence": 66.6})
        assert result.verdict.confidence == 67

    def test_null_threats_treated_as_empty(self):
        assert parse_scorer_response({**VALID, "threats": None}).verdict.threats == ()

    def test_json_text(self):
        text = '{"isSafe": true, "confidence": 90, "threats": [], "analysis": "ok"}'
        assert parse_scorer_response(text).verdict.confidence == 90

    def test_markdown_fenced_json(self):
        text = '```json\n{"isSafe": false, "confidence": 80, "analysis": "scam"}\n```'
        assert parse_scorer_response(text).verdict.is_safe is False

    def test_json_embedded_in_prose(self):
        text = 'Here is my answer: {"isSafe": true, "confidence": 75, "analysis": "ok"} Thanks.'
        assert isinstance(parse_scorer_response(text), ParsedVerdict)

    @pytest.mark.parametrize("confidence", [0, 100])
    def test_confidence_bounds_inclusive(self, confidence):
        assert isinstance(parse_scorer_response({**VALID, "confidence": confidence}), ParsedVerdict)


class TestInvalidPayloads:
    @pytest.mark.parametrize(
        "payload, reason",
        [
            ("not json at all", "response is not valid JSON"),
            ("[1, 2]", "expected a JSON object, got list"),
            ({**VALID, "isSafe": "no"}, "isSafe missing or not a boolean"),
            ({k: v for k, v in VALID.items() if k != "isSafe"}, "isSafe missing or not a boolean"),
            ({**VALID, "confidence": "high"}, "confidence missing or not a number"),
            ({**VALID, "confidence": True}, "confidence missing or not a number"),
            ({**VALID, "confidence": 140}, "confidence 140 outside 0-100"),
            ({**VALID, "confidence": -1}, "confidence -1 outside 0-100"),
            ({**VALID, "threats": "Phishing"}, "threats must be a list of strings"),
            ({**VALID, "threats": [1]}, "threats must be a list of strings"),
            ({**VALID, "analysis": None}, "analysis missing or not a string"),
        ],
    )
    def test_failure_reason(self, payload, reason):
        result = parse_scorer_response(payload)
        assert isinstance(result, ParseFailure)
        assert result.reason == reason

    def test_failure_keeps_raw(self):
        result = parse_scorer_response("garbage")
        assert result.raw == "garbage"

    def test_non_mapping_object(self):
        result = parse_scorer_response(42)
        assert isinstance(result, ParseFailure)
        assert result.reason == "expected a JSON object, got int"
