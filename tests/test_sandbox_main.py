"""Tests for the stdin/stdout entrypoint and its exit codes."""

import io
import json
import sys
from unittest.mock import AsyncMock

import pytest

import sandbox_main
from ui_code_audit.models import AuditResponse, CIReport


@pytest.fixture
def run_main(monkeypatch):
    """Feed ``payload`` on stdin and call ``main()`` with ``run_audit`` replaced."""

    def _run(payload, run_audit: AsyncMock):
        text = payload if isinstance(payload, str) else json.dumps(payload)
        monkeypatch.setattr(sys, "stdin", io.StringIO(text))
        monkeypatch.setattr(sandbox_main, "run_audit", run_audit)
        sandbox_main.main()

    return _run


def _response(ci: CIReport | None = None) -> AuditResponse:
    return AuditResponse(scan_id="scan-1", ci=ci)


class TestSandboxMain:
    """Test the exit codes of the sandbox entrypoint."""

    def test_success_exits_cleanly(self, run_main, capsys):
        run_audit = AsyncMock(return_value=_response())
        run_main({"directory": "."}, run_audit)

        result = json.loads(capsys.readouterr().out)
        assert result["scan_id"] == "scan-1"
        assert run_audit.call_args.args[0].path == "."

    def test_passing_gate_exits_cleanly(self, run_main, capsys):
        ci = CIReport(platform="local", passed=True, fail_on_high=True)
        run_main({"path": "."}, AsyncMock(return_value=_response(ci)))
        assert json.loads(capsys.readouterr().out)["ci"]["passed"] is True

    def test_failed_gate_exits_1(self, run_main, capsys):
        ci = CIReport(platform="github-actions", passed=False, failures=["accessibility"], fail_on_high=True)
        with pytest.raises(SystemExit) as exc:
            run_main({"path": ".", "ci": True}, AsyncMock(return_value=_response(ci)))
        assert exc.value.code == 1
        # The response is printed before exiting
        assert json.loads(capsys.readouterr().out)["ci"]["failures"] == ["accessibility"]

    def test_failed_gate_without_fail_on_high_exits_cleanly(self, run_main, capsys):
        ci = CIReport(platform="local", passed=False, failures=["eslint"], fail_on_high=False)
        run_main({"path": "."}, AsyncMock(return_value=_response(ci)))
        assert json.loads(capsys.readouterr().out)["ci"]["passed"] is False

    def test_audit_error_exits_1(self, run_main, capsys):
        with pytest.raises(SystemExit) as exc:
            run_main({"path": "."}, AsyncMock(side_effect=RuntimeError("clone failed")))
        assert exc.value.code == 1
        assert json.loads(capsys.readouterr().out) == {"error": "clone failed"}

    def test_missing_location_exits_1(self, run_main, capsys):
        run_audit = AsyncMock()
        with pytest.raises(SystemExit) as exc:
            run_main({"categories": ["accessibility"]}, run_audit)
        assert exc.value.code == 1
        assert "Missing required input" in json.loads(capsys.readouterr().out)["error"]
        run_audit.assert_not_called()

    def test_invalid_json_exits_1(self, run_main, capsys):
        with pytest.raises(SystemExit) as exc:
            run_main("{not json", AsyncMock())
        assert exc.value.code == 1
        assert json.loads(capsys.readouterr().out)["error"].startswith("Invalid JSON input")

    def test_invalid_request_exits_1(self, run_main, capsys):
        with pytest.raises(SystemExit) as exc:
            run_main({"path": ".", "categories": ["lighthouse"]}, AsyncMock())
        assert exc.value.code == 1
        assert json.loads(capsys.readouterr().out)["error"] == "Invalid input"
