# src/scoring/heuristic.py — v1
"""Deterministic keyword classifier.

Used as the configured scorer when no LLM key is available, and as the
gateway's fallback when the external scorer keeps failing. Same input
always yields the same verdict.
"""

from __future__ import annotations

from typing import Any

from scamguard.core.models import Verdict
from scamguard.scoring.base_scorer import BaseScorer

# keyword -> threat family label
SCAM_KEYWORDS: dict[str, str] = {
    "urgent": "Potential Phishing",
    "verify account": "Potential Phishing",
    "click here": "Potential Phishing",
    "suspended": "Potential Phishing",
    "act now": "Potential Phishing",
    "limited time": "Fake Offer",
    "congratulations": "Prize Scam",
    "winner": "Prize Scam",
    "prize": "Prize Scam",
    "bitcoin": "Crypto Scam",
    "cryptocurrency": "Crypto Scam",
    "investment opportunity": "Investment Fraud",
    "guaranteed returns": "Investment Fraud",
    "mpesa": "Mobile Money Fraud",
    "mobile money": "Mobile Money Fraud",
    "loan": "Loan Scam",
    "quick cash": "Loan Scam",
    "instant money": "Loan Scam",
}

SAFE_ANALYSIS = "Content appears legitimate with no obvious red flags detected."
SAFE_CONFIDENCE = 75
BASE_CONFIDENCE = 70
CONFIDENCE_PER_EXTRA_KEYWORD = 10
MAX_CONFIDENCE = 99


def find_keywords(content: str) -> list[str]:
    """Scam keywords present in content, in vocabulary order."""
    lowered = content.lower()
    return [kw for kw in SCAM_KEYWORDS if kw in lowered]


def heuristic_score(content: str) -> dict[str, Any]:
    """Classify content by keyword matches.

    Returns the raw scorer payload shape. Flagged content scores
    70 for one keyword plus 10 per extra keyword, capped at 99.
    """
    found = find_keywords(content)
    if not found:
        return {
            "isSafe": True,
            "confidence": SAFE_CONFIDENCE,
            "threats": [],
            "analysis": SAFE_ANALYSIS,
        }

    threats = ["Suspicious Keywords"]
    for kw in found:
        label = SCAM_KEYWORDS[kw]
        if label not in threats:
            threats.append(label)

    confidence = min(
        MAX_CONFIDENCE, BASE_CONFIDENCE + CONFIDENCE_PER_EXTRA_KEYWORD * (len(found) - 1)
    )
    return {
        "isSafe": False,
        "confidence": confidence,
        "threats": threats,
        "analysis": (
            "Suspicious content detected. Found concerning keywords: "
            + ", ".join(found)
        ),
    }


class HeuristicScorer(BaseScorer):
    """Keyword scorer conforming to the external scorer interface."""

    async def analyze(self, content: str, category: str | None = None) -> dict[str, Any]:
        return heuristic_score(content)

    @property
    def name(self) -> str:
        return "heuristic"


def heuristic_verdict(content: str, category: str | None = None) -> Verdict:
    """Heuristic classification as a Verdict (used for fallback)."""
    payload = heuristic_score(content)
    return Verdict(
        is_safe=payload["isSafe"],
        confidence=payload["confidence"],
        category=category or "General",
        threats=tuple(payload["threats"]),
        analysis=payload["analysis"],
    )
