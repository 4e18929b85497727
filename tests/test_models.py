"""Tests for the data models."""

import pytest
from pydantic import ValidationError

from ui_code_audit.models import Finding, ProjectType, Severity, normalize_severity


class TestFinding:
    """Test finding validation and serialization."""

    def test_requires_a_location(self):
        with pytest.raises(ValidationError):
            Finding(type="missing_alt", severity=Severity.high, message="m")

    def test_is_immutable(self):
        finding = Finding(type="missing_alt", severity=Severity.high, message="m", file="a.jsx")
        with pytest.raises(ValidationError):
            finding.line = 3

    def test_record_drops_unset_fields(self):
        finding = Finding(type="no-var", severity="medium", message="m", file="a.js", line=1,
                          source="eslint", ruleId="no-var")
        assert finding.to_record() == {
            "type": "no-var",
            "severity": "medium",
            "message": "m",
            "file": "a.js",
            "line": 1,
            "source": "eslint",
            "ruleId": "no-var",
        }

    def test_long_code_is_truncated(self):
        finding = Finding(type="eval", severity="high", message="m", file="a.js", code="x" * 500)
        assert len(finding.code) == 214
        assert finding.code.endswith("... (truncated)")

    def test_context_lines_are_truncated_one_by_one(self):
        context = "    1: ok\n>>> 2: " + "y" * 500
        finding = Finding(type="eval", severity="high", message="m", file="a.js", context=context)
        first, second = finding.context.split("\n")
        assert first == "    1: ok"
        assert len(second) == 214 and second.endswith("... (truncated)")

    def test_short_code_kept(self):
        finding = Finding(type="eval", severity="high", message="m", file="a.js", code="eval(x)")
        assert finding.code == "eval(x)"


class TestSeverity:
    """Test severity normalization."""

    @pytest.mark.parametrize("raw,expected", [
        ("critical", Severity.high),
        ("HIGH", Severity.high),
        ("moderate", Severity.medium),
        ("warning", Severity.medium),
        ("info", Severity.low),
        (None, Severity.medium),
        ("bogus", Severity.medium),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_severity(raw) == expected

    def test_rank_order(self):
        assert Severity.high.rank > Severity.medium.rank > Severity.low.rank


class TestProjectType:
    """Test project type parsing."""

    def test_parse(self):
        assert ProjectType.parse("React") == ProjectType.react
        assert ProjectType.parse("tsreact") == ProjectType.typescript_react
        assert ProjectType.parse("typescript + react") == ProjectType.typescript_react
        assert ProjectType.parse("") is None
        assert ProjectType.parse("cobol") is None
