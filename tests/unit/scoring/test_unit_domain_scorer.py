# tests/unit/scoring/test_unit_domain_scorer.py — v1
"""Tests for scoring/domain_scorer.py — trust scoring of link domains."""

from __future__ import annotations

import asyncio
import logging

import pytest

from scamguard.scoring.domain_scorer import (
    BASE_TRUST_SCORE,
    BaseDomainCheck,
    DomainFinding,
    DomainScorer,
    StaticBlocklist,
    extract_domain,
    score_domain,
    suspicious_patterns,
    threat_level_for,
    to_payload,
)
from scamguard.scoring.heuristic import heuristic_score


class RaisingCheck(BaseDomainCheck):
    async def check(self, domain):
        raise RuntimeError("lookup service down")

    @property
    def name(self):
        return "raising"


class SlowCheck(BaseDomainCheck):
    async def check(self, domain):
        await asyncio.sleep(10)
        return DomainFinding(source="slow", adjustment=-60)

    @property
    def name(self):
        return "slow"


class FixedCheck(BaseDomainCheck):
    def __init__(self, finding):
        self.finding = finding
        self.domains = []

    async def check(self, domain):
        self.domains.append(domain)
        return self.finding

    @property
    def name(self):
        return self.finding.source


class TestExtractDomain:
    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://Sub.Example.COM:8443/path?q=1", "sub.example.com"),
            ("www.example.org", "www.example.org"),
            ("http://user:pw@host.example.com/", "host.example.com"),
            ("  example.co.ke/login#top ", "example.co.ke"),
        ],
    )
    def test_host(self, url, expected):
        assert extract_domain(url) == expected

    @pytest.mark.parametrize("url", ["", "hello", "https:///path"])
    def test_no_domain(self, url):
        assert extract_domain(url) is None


class TestSuspiciousPatterns:
    @pytest.mark.parametrize("domain", ["google.com", "www.google.com", "example.com"])
    def test_clean(self, domain):
        assert suspicious_patterns(domain) == []

    def test_brand_keyword_outside_its_label(self):
        assert suspicious_patterns("google-support.com") == [
            "Contains suspicious keyword: google"
        ]

    def test_keyword_and_digits(self):
        assert suspicious_patterns("bank12345.example") == [
            "Contains suspicious keyword: bank",
            "Contains many numbers",
        ]

    def test_long_name(self):
        assert suspicious_patterns("a" * 31 + ".com") == ["Very long domain name"]


class TestThreatLevel:
    @pytest.mark.parametrize(
        "score,level",
        [
            (0, "critical"),
            (19, "critical"),
            (20, "high"),
            (39, "high"),
            (40, "medium"),
            (59, "medium"),
            (60, "low"),
            (100, "low"),
        ],
    )
    def test_bands(self, score, level):
        assert threat_level_for(score) == level


class TestScoreDomain:
    def test_clean_domain(self):
        result = score_domain("example.com")
        assert result.trust_score == BASE_TRUST_SCORE
        assert result.threat_level == "low"
        assert result.risk_factors == ()
        assert result.is_blacklisted is False

    def test_pattern_penalties(self):
        result = score_domain("secure-login-paypal.example")
        assert result.trust_score == BASE_TRUST_SCORE - 15
        assert result.threat_level == "medium"
        assert len(result.risk_factors) == 3

    def test_findings_adjust_and_clamp(self):
        assert score_domain("example.com", [DomainFinding("ssl", adjustment=10)]).trust_score == 75
        assert score_domain("example.com", [DomainFinding("x", adjustment=100)]).trust_score == 100
        low = score_domain("example.com", [DomainFinding("x", adjustment=-200)])
        assert low.trust_score == 0
        assert low.threat_level == "critical"

    def test_threat_floor_raises_level(self):
        finding = DomainFinding(
            "reputation", adjustment=-5, risk="Reported", blacklisted=True, threat_floor="medium"
        )
        result = score_domain("example.com", [finding])
        assert result.trust_score == 60
        assert result.threat_level == "medium"
        assert result.blacklist_sources == ("reputation",)
        assert result.risk_factors == ("Reported",)


class TestToPayload:
    def test_safe(self):
        payload = to_payload(score_domain("example.com"))
        assert payload["isSafe"] is True
        assert payload["confidence"] == BASE_TRUST_SCORE
        assert payload["threats"] == []
        assert "trust score 65/100" in payload["analysis"]

    def test_unsafe(self):
        payload = to_payload(score_domain("secure-login-paypal.example"))
        assert payload["isSafe"] is False
        assert payload["confidence"] == 50
        assert payload["threats"] == ["Suspicious Domain"]
        assert "Contains suspicious keyword: paypal" in payload["analysis"]


class TestStaticBlocklist:
    @pytest.mark.asyncio
    async def test_matches_domain_and_subdomains(self):
        blocklist = StaticBlocklist({"evil.example"})
        assert (await blocklist.check("evil.example")).blacklisted is True
        assert (await blocklist.check("login.evil.example")).blacklisted is True
        assert await blocklist.check("notevil.example") is None
        assert await blocklist.check("other.example") is None

    def test_from_file(self, tmp_path):
        path = tmp_path / "list.txt"
        path.write_text("# feed\nBad.Example\n\nworse.example  # added later\n", encoding="utf-8")
        assert StaticBlocklist.from_file(path).domains == {"bad.example", "worse.example"}


class TestDomainScorer:
    @pytest.mark.asyncio
    async def test_clean_link(self):
        scorer = DomainScorer()
        assert scorer.name == "domain"
        payload = await scorer.analyze("https://example.com/about")
        assert payload["isSafe"] is True
        assert payload["confidence"] == BASE_TRUST_SCORE

    @pytest.mark.asyncio
    async def test_blocklisted_link(self):
        scorer = DomainScorer([StaticBlocklist({"evil.example"})])
        payload = await scorer.analyze("https://login.evil.example/x")
        assert payload["isSafe"] is False
        assert payload["confidence"] == 85
        assert payload["threats"] == ["Blacklisted Domain", "Suspicious Domain"]

    @pytest.mark.asyncio
    async def test_checks_receive_domain(self):
        check = FixedCheck(DomainFinding("ssl", adjustment=10))
        result = await DomainScorer([check]).analyze_domain("shop.example")
        assert check.domains == ["shop.example"]
        assert result.trust_score == 75

    @pytest.mark.asyncio
    async def test_failing_check_is_skipped(self, caplog):
        scorer = DomainScorer([RaisingCheck(), FixedCheck(DomainFinding("ok", adjustment=5))])
        with caplog.at_level(logging.WARNING):
            result = await scorer.analyze_domain("example.com")
        assert result.trust_score == 70
        assert "Domain check raising failed" in caplog.text

    @pytest.mark.asyncio
    async def test_slow_check_times_out(self, caplog):
        scorer = DomainScorer([SlowCheck()], check_timeout_s=0.01)
        with caplog.at_level(logging.WARNING):
            result = await scorer.analyze_domain("example.com")
        assert result.trust_score == BASE_TRUST_SCORE
        assert "timed out" in caplog.text

    @pytest.mark.asyncio
    async def test_content_without_domain_uses_keywords(self):
        text = "Congratulations winner"
        assert await DomainScorer().analyze(text) == heuristic_score(text)

    @pytest.mark.asyncio
    async def test_verdict_through_gateway(self, build_gateway, make_scorer):
        gateway = build_gateway(scorer=make_scorer(), url_scorer=DomainScorer())
        outcome = await gateway.analyze("https://google-support.com/reset")
        assert outcome.source == "api"
        assert outcome.is_safe is True
        assert outcome.confidence == 60
