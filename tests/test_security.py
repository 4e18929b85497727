"""Tests for the security category and the agent client."""

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from ui_code_audit.agent_client import AgentClient
from ui_code_audit.audits import SecurityAudit, parse_security_review
from ui_code_audit.config import AuditConfig
from ui_code_audit.errors import ExternalToolError
from ui_code_audit.models import Severity

REPO_URL = "https://github.com/acme/web"

REVIEW_RESULT = {
    "summary": "2 issues",
    "findings": {
        "secrets": [
            {"type": "aws_key", "severity": "critical", "file": "src/config.js", "line": 4,
             "preview": "AKIA...", "recommendation": "Rotate the key"},
            {"type": "generic", "severity": "low", "file": "test/fixture.js", "line": 1,
             "likely_false_positive": True},
        ],
        "dependencies": [
            {"package": "lodash", "version": "4.17.15", "severity": "moderate",
             "cve": "CVE-2020-8203", "title": "Prototype pollution"},
        ],
        "frontend_security": [
            {"pattern": "dangerouslySetInnerHTML", "severity": "high", "file": "src/App.jsx", "line": 12,
             "snippet": "<div dangerouslySetInnerHTML={{__html: html}} />"},
        ],
        "api_security": [],
        "logging": [],
    },
}


def review_agent(requests: list) -> httpx.MockTransport:
    """A security-review stand-in that rejects bodies without repo_url, as the agent does."""

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        requests.append(body)
        if "repo_url" not in body:
            return httpx.Response(422, json={"detail": [{"loc": ["body", "repo_url"], "msg": "Field required"}]})
        return httpx.Response(200, json=REVIEW_RESULT)

    return httpx.MockTransport(handler)


class TestParseSecurityReview:
    """Test reshaping security-review output into findings."""

    def test_groups(self):
        findings = parse_security_review(REVIEW_RESULT)
        assert [f.type for f in findings] == ["secret_aws_key", "vulnerable_dependency", "frontend_security"]
        secret, dep, pattern = findings
        assert secret.severity == Severity.high
        assert secret.file == "src/config.js" and secret.line == 4
        assert dep.severity == Severity.medium
        assert dep.rule_id == "CVE-2020-8203"
        assert dep.message == "lodash@4.17.15 is vulnerable: Prototype pollution"
        assert pattern.code.startswith("<div dangerously")
        assert all(f.source == "security-review" for f in findings)

    def test_long_snippets_are_truncated(self):
        result = {"findings": {
            "secrets": [{"type": "token", "file": "a.js", "line": 1, "preview": "k" * 500}],
            "frontend_security": [{"pattern": "eval", "file": "b.js", "line": 2, "snippet": "x" * 500}],
        }}
        findings = parse_security_review(result)
        assert len(findings) == 2
        for finding in findings:
            assert len(finding.code) <= 214
            assert finding.code.endswith("... (truncated)")

    def test_empty(self):
        assert parse_security_review(None) == []
        assert parse_security_review({"findings": {}}) == []


class TestAgentClient:
    """Test the HTTP agent client against a mocked transport."""

    async def test_posts_to_review_endpoint(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json=REVIEW_RESULT)

        client = AgentClient(base_url="http://agents.test", service_key="secret",
                             transport=httpx.MockTransport(handler))
        async with client:
            result = await client.call_security_review(REPO_URL)

        assert result == REVIEW_RESULT
        assert seen["path"] == "/security-review/v1/review/"
        assert seen["body"] == {"repo_url": REPO_URL, "scan_mode": "full"}
        assert seen["auth"] == "Bearer secret"

    async def test_error_status_raises(self):
        client = AgentClient(
            base_url="http://agents.test",
            transport=httpx.MockTransport(lambda request: httpx.Response(503)),
        )
        async with client:
            with pytest.raises(ExternalToolError):
                await client.call_security_review(REPO_URL)

    async def test_requires_context_manager(self):
        with pytest.raises(RuntimeError):
            await AgentClient().call_agent("security-review", "review", {})


class TestSecurityAudit:
    """Test the security category run."""

    async def test_run_with_agent(self, temp_dir):
        requests = []
        client = AgentClient(base_url="http://agents.test", transport=review_agent(requests))
        audit = SecurityAudit(temp_dir, AuditConfig(), repo_url=REPO_URL, client=client)
        result = await audit.run()
        assert result.total_issues == 3
        assert result.high_severity == 2
        assert audit.outcome.files_total == 0
        assert requests == [{"repo_url": REPO_URL, "scan_mode": "full"}]

    async def test_local_path_skips_agent(self, temp_dir, caplog):
        requests = []
        client = AgentClient(base_url="http://agents.test", transport=review_agent(requests))
        audit = SecurityAudit(temp_dir, AuditConfig(), client=client)
        with caplog.at_level("WARNING", logger="ui_code_audit.audits"):
            result = await audit.run()
        assert requests == []
        assert result.total_issues == 0
        assert "security-review skipped" in caplog.text

    async def test_agent_unavailable_yields_empty_result(self, temp_dir):
        client = AgentClient(
            base_url="http://agents.test",
            transport=httpx.MockTransport(lambda request: httpx.Response(500)),
        )
        audit = SecurityAudit(temp_dir, AuditConfig(), repo_url=REPO_URL, client=client)
        with patch("ui_code_audit.errors.asyncio.sleep", new=AsyncMock()):
            result = await audit.run()
        assert result.total_issues == 0
