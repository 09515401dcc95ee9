# src/scoring/response_parser.py — v1
"""Validate raw scorer payloads into Verdicts.

Parsing returns a tagged result, ``ParsedVerdict`` or ``ParseFailure``,
instead of raising. The gateway turns a failure into
ScorerMalformedResponse, which the retry layer treats as transient.

Accepted shape (camelCase or snake_case keys)::

    {"isSafe": bool, "confidence": 0-100, "threats": [str, ...], "analysis": str}

``isSafe``, ``confidence`` and ``analysis`` are required; ``threats``
defaults to an empty list.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Mapping, Union

from scamguard.core.models import Verdict

logger = logging.getLogger(__name__)

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


@dataclass(frozen=True)
class ParsedVerdict:
    verdict: Verdict


@dataclass(frozen=True)
class ParseFailure:
    reason: str
    raw: Any = None


ParseResult = Union[ParsedVerdict, ParseFailure]


def parse_scorer_response(raw: Any, category: str | None = None) -> ParseResult:
    """Validate a scorer payload (mapping or JSON text) into a Verdict."""
    if isinstance(raw, str):
        decoded = _decode_json_text(raw)
        if decoded is None:
            return ParseFailure("response is not valid JSON", raw)
        raw_mapping: Any = decoded
    else:
        raw_mapping = raw

    if not isinstance(raw_mapping, Mapping):
        return ParseFailure(
            f"expected a JSON object, got {type(raw_mapping).__name__}", raw
        )

    is_safe = _first_present(raw_mapping, "isSafe", "is_safe")
    if not isinstance(is_safe, bool):
        return ParseFailure("isSafe missing or not a boolean", raw)

    confidence = raw_mapping.get("confidence")
    # bool is an int subclass; reject it explicitly
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        return ParseFailure("confidence missing or not a number", raw)
    if not 0 <= confidence <= 100:
        return ParseFailure(f"confidence {confidence} outside 0-100", raw)

    threats = raw_mapping.get("threats", [])
    if threats is None:
        threats = []
    if not isinstance(threats, list) or not all(isinstance(t, str) for t in threats):
        return ParseFailure("threats must be a list of strings", raw)

    analysis = raw_mapping.get("analysis")
    if not isinstance(analysis, str):
        return ParseFailure("analysis missing or not a string", raw)

    verdict = Verdict(
        is_safe=is_safe,
        confidence=int(round(confidence)),
        category=category or "General",
        threats=tuple(threats),
        analysis=analysis,
    )
    return ParsedVerdict(verdict)


def _first_present(mapping: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in mapping:
            return mapping[key]
    return None


def _decode_json_text(text: str) -> Any:
    """Decode JSON from LLM output, tolerating markdown fences and prose."""
    stripped = text.strip()
    if stripped.startswith("```"):
        lines = [l for l in stripped.split("\n") if not l.strip().startswith("```")]
        stripped = "\n".join(lines).strip()
    try:
        return json.loads(stripped)
    except json.JSONDecodeError:
        pass
    match = _JSON_OBJECT.search(stripped)
    if match is None:
        return None
    try:
        return json.loads(match.group(0))
    except json.JSONDecodeError:
        logger.debug("Embedded JSON object could not be decoded")
        return None
