# src/scoring/domain_scorer.py — v1
"""Deterministic domain scorer for link submissions.

Scores the domain of a submitted URL on a 0-100 trust scale. The domain
name itself is inspected locally (brand keywords used outside their own
label, long digit runs, very long names). Reputation lookups such as
blocklists, certificate or registration-age checks are optional
``BaseDomainCheck`` collaborators injected by the caller; each runs
under a timeout and a failing check is logged and skipped.

The result is the same raw ``{isSafe, confidence, threats, analysis}``
payload every other scorer returns.
"""

from __future__ import annotations

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from scamguard.scoring.base_scorer import BaseScorer
from scamguard.scoring.heuristic import heuristic_score

logger = logging.getLogger(__name__)

# Score for a domain with no findings either way
BASE_TRUST_SCORE = 65
PATTERN_PENALTY = 5
MAX_DOMAIN_LENGTH = 30
BRAND_KEYWORDS = ("secure", "login", "bank", "paypal", "amazon", "google", "facebook")

THREAT_LEVELS = ("low", "medium", "high", "critical")

_SCHEME = re.compile(r"^[a-z][a-z0-9+.-]*://")
_DIGIT_RUN = re.compile(r"\d{3,}")


def extract_domain(url: str) -> str | None:
    """Lowercased host of a URL or bare domain, without scheme, path or port."""
    host = _SCHEME.sub("", url.strip().lower())
    host = re.split(r"[/?#]", host, maxsplit=1)[0]
    host = host.rsplit("@", 1)[-1].split(":", 1)[0].rstrip(".")
    if "." not in host or not host.strip("."):
        return None
    return host


def suspicious_patterns(domain: str) -> list[str]:
    """Risk factors visible in the domain name alone."""
    labels = domain.split(".")
    found = [
        f"Contains suspicious keyword: {kw}"
        for kw in BRAND_KEYWORDS
        if kw in domain and kw not in labels
    ]
    if _DIGIT_RUN.search(domain):
        found.append("Contains many numbers")
    if len(domain) > MAX_DOMAIN_LENGTH:
        found.append("Very long domain name")
    return found


def threat_level_for(trust_score: int) -> str:
    if trust_score < 20:
        return "critical"
    if trust_score < 40:
        return "high"
    if trust_score < 60:
        return "medium"
    return "low"


def _max_level(a: str, b: str) -> str:
    return a if THREAT_LEVELS.index(a) >= THREAT_LEVELS.index(b) else b


@dataclass(frozen=True)
class DomainFinding:
    """What one check concluded about a domain.

    ``adjustment`` is added to the trust score (negative for penalties).
    ``threat_floor`` raises the final threat level to at least that value.
    """

    source: str
    adjustment: int = 0
    risk: str | None = None
    blacklisted: bool = False
    threat_floor: str | None = None


@dataclass(frozen=True)
class DomainAnalysis:
    domain: str
    trust_score: int
    threat_level: str
    risk_factors: tuple[str, ...] = ()
    blacklist_sources: tuple[str, ...] = ()

    @property
    def is_blacklisted(self) -> bool:
        return bool(self.blacklist_sources)


class BaseDomainCheck(ABC):
    """A reputation or metadata lookup contributing to the trust score."""

    @abstractmethod
    async def check(self, domain: str) -> DomainFinding | None:
        """Return a finding, or None when the check has nothing to report."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Check identifier used in logs and findings."""


@dataclass
class StaticBlocklist(BaseDomainCheck):
    """Known-bad domains; a listed domain also covers its subdomains."""

    domains: set[str] = field(default_factory=set)
    penalty: int = 50
    source: str = "blocklist"

    @classmethod
    def from_file(cls, path: Path, **kwargs: Any) -> StaticBlocklist:
        """One domain per line; blank lines and ``#`` comments are skipped."""
        entries = set()
        for line in path.read_text(encoding="utf-8").splitlines():
            line = line.split("#", 1)[0].strip().lower()
            if line:
                entries.add(line)
        logger.info("Loaded %d blocklisted domains from %s", len(entries), path)
        return cls(domains=entries, **kwargs)

    async def check(self, domain: str) -> DomainFinding | None:
        labels = domain.split(".")
        for i in range(len(labels) - 1):
            if ".".join(labels[i:]) in self.domains:
                return DomainFinding(
                    source=self.source,
                    adjustment=-self.penalty,
                    risk=f"Listed by {self.source}",
                    blacklisted=True,
                    threat_floor="high",
                )
        return None

    @property
    def name(self) -> str:
        return self.source


class DomainScorer(BaseScorer):
    """Trust-score scorer for URL content.

    Content without a recognizable domain is scored by the keyword
    heuristic instead.
    """

    def __init__(
        self,
        checks: Sequence[BaseDomainCheck] = (),
        check_timeout_s: float = 5.0,
    ) -> None:
        self._checks = tuple(checks)
        self._check_timeout_s = check_timeout_s

    async def analyze(self, content: str, category: str | None = None) -> dict[str, Any]:
        domain = extract_domain(content)
        if domain is None:
            return heuristic_score(content)
        return to_payload(await self.analyze_domain(domain))

    async def analyze_domain(self, domain: str) -> DomainAnalysis:
        findings = await asyncio.gather(*(self._run_check(c, domain) for c in self._checks))
        return score_domain(domain, [f for f in findings if f is not None])

    async def _run_check(self, check: BaseDomainCheck, domain: str) -> DomainFinding | None:
        try:
            return await asyncio.wait_for(check.check(domain), self._check_timeout_s)
        except asyncio.TimeoutError:
            logger.warning(
                "Domain check %s timed out after %.1fs for %s",
                check.name, self._check_timeout_s, domain,
            )
        except Exception as e:
            logger.warning("Domain check %s failed for %s: %s", check.name, domain, e)
        return None

    @property
    def name(self) -> str:
        return "domain"


def score_domain(domain: str, findings: Iterable[DomainFinding] = ()) -> DomainAnalysis:
    """Combine name patterns and check findings into a DomainAnalysis."""
    score = BASE_TRUST_SCORE
    risks: list[str] = []
    blacklisted: list[str] = []
    floor = "low"

    for finding in findings:
        score += finding.adjustment
        if finding.risk:
            risks.append(finding.risk)
        if finding.blacklisted:
            blacklisted.append(finding.source)
        if finding.threat_floor:
            floor = _max_level(floor, finding.threat_floor)

    patterns = suspicious_patterns(domain)
    score -= PATTERN_PENALTY * len(patterns)
    risks.extend(patterns)

    score = max(0, min(100, score))
    return DomainAnalysis(
        domain=domain,
        trust_score=score,
        threat_level=_max_level(threat_level_for(score), floor),
        risk_factors=tuple(risks),
        blacklist_sources=tuple(blacklisted),
    )


def to_payload(result: DomainAnalysis) -> dict[str, Any]:
    """Raw scorer payload for a DomainAnalysis."""
    is_safe = result.threat_level == "low"
    threats: list[str] = []
    if not is_safe:
        if result.is_blacklisted:
            threats.append("Blacklisted Domain")
        threats.append("Suspicious Domain")

    summary = (
        f"Domain {result.domain} has trust score {result.trust_score}/100 "
        f"(threat level {result.threat_level})."
    )
    if result.risk_factors:
        summary += " Risk factors: " + "; ".join(result.risk_factors) + "."
    return {
        "isSafe": is_safe,
        "confidence": result.trust_score if is_safe else 100 - result.trust_score,
        "threats": threats,
        "analysis": summary,
    }
