"""Tests for running several categories and writing the combined outputs."""

import io
import json
from unittest.mock import patch

import pytest
from git.exc import GitCommandError

from ui_code_audit.ci import JUNIT_FILE, SARIF_FILE, SUMMARY_FILE
from ui_code_audit.models import AuditRequest
from ui_code_audit.orchestrator import audit_project, run_audit
from ui_code_audit.report import COMBINED_REPORT, HTML_REPORT


@pytest.fixture
def project(write_files):
    return write_files({
        "index.html": "<main><a href=\"#c\">Skip</a><img src=\"<script>.png\"></main>\n",
        "src/App.jsx": "<Modal isOpen={open}>\n",
    })


class TestAuditProject:
    """Test the orchestration of one local audit."""

    async def test_reports_written(self, project, tmp_path):
        report_dir = tmp_path / "out"
        request = AuditRequest(path=str(project), report_dir=str(report_dir))
        response = await audit_project(project, request, progress_stream=io.StringIO())

        names = sorted(p.split("/")[-1] for p in response.reports)
        assert names == ["accessibility-audit-report.json", HTML_REPORT, COMBINED_REPORT]
        combined = json.loads((report_dir / COMBINED_REPORT).read_text(encoding="utf-8"))
        assert combined["scanId"] == response.scan_id
        assert combined["summary"]["total"] == 2
        assert combined["categories"]["accessibility"]["totalIssues"] == 2

        page = (report_dir / HTML_REPORT).read_text(encoding="utf-8")
        assert "&lt;script&gt;" in page
        assert "<script>" not in page

    async def test_no_report_dir_writes_nothing(self, project):
        response = await audit_project(project, AuditRequest(path=str(project)), progress_stream=io.StringIO())
        assert response.reports == []
        assert not (project / COMBINED_REPORT).exists()

    async def test_ci_gate(self, project, tmp_path):
        (project / "ui-code-audit.config.json").write_text(
            json.dumps({"ci": {"thresholds": {"accessibility": 0}, "failOnHigh": True}}), encoding="utf-8",
        )
        report_dir = tmp_path / "ci"
        request = AuditRequest(path=str(project), report_dir=str(report_dir), ci=True)
        response = await audit_project(project, request, progress_stream=io.StringIO())

        assert response.ci is not None
        assert response.ci.passed is False
        assert response.ci.failures == ["accessibility"]
        assert response.ci.fail_on_high is True
        for name in (JUNIT_FILE, SARIF_FILE, SUMMARY_FILE):
            assert (report_dir / name).exists()

    async def test_ci_enabled_in_config_runs_on_ci_platform(self, project, monkeypatch):
        (project / "ui-code-audit.config.json").write_text('{"ci": {"enabled": true}}', encoding="utf-8")
        response = await audit_project(project, AuditRequest(path=str(project)), progress_stream=io.StringIO())
        assert response.ci is None

        monkeypatch.setenv("GITHUB_ACTIONS", "true")
        response = await audit_project(project, AuditRequest(path=str(project)), progress_stream=io.StringIO())
        assert response.ci is not None
        assert response.ci.platform == "github-actions"
        assert response.ci.passed is True

    async def test_request_batch_size_wins(self, project):
        request = AuditRequest(path=str(project), batch_size=1)
        response = await audit_project(project, request, progress_stream=io.StringIO())
        assert response.categories["accessibility"].total_issues == 2

    async def test_duplicate_categories_run_once(self, project):
        request = AuditRequest(path=str(project), categories=["accessibility", "accessibility"])
        response = await audit_project(project, request, progress_stream=io.StringIO())
        assert list(response.categories) == ["accessibility"]

    async def test_performance_category(self, project, tmp_path):
        (project / "src" / "poll.js").write_text("setInterval(tick, 1000);\n", encoding="utf-8")
        report_dir = tmp_path / "perf"
        request = AuditRequest(path=str(project), report_dir=str(report_dir), categories=["performance"])
        response = await audit_project(project, request, progress_stream=io.StringIO())

        assert list(response.categories) == ["performance"]
        assert response.categories["performance"].high_severity == 1
        assert (report_dir / "performance-audit-report.json").exists()

    async def test_file_path_rejected(self, project):
        with pytest.raises(ValueError):
            await audit_project(project / "index.html", AuditRequest(path="x"))


class TestRunAudit:
    """Test location handling."""

    async def test_requires_location(self):
        with pytest.raises(ValueError):
            await run_audit(AuditRequest())

    async def test_clone_failure(self):
        request = AuditRequest(repo_url="https://example.invalid/repo.git")
        with patch("ui_code_audit.orchestrator.cloned_repo", side_effect=GitCommandError("clone", 128)):
            with pytest.raises(RuntimeError):
                await run_audit(request)
