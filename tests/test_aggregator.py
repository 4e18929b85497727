"""Tests for deduplication and severity summaries."""

from ui_code_audit.aggregator import (
    count_by_severity,
    dedupe,
    merge_summaries,
    summarize,
)
from ui_code_audit.models import Finding, Severity


def _finding(type="missing_alt", severity=Severity.high, line=1, message="Image missing alt attribute",
             file="a.jsx", **kwargs) -> Finding:
    return Finding(type=type, severity=severity, message=message, file=file, line=line, **kwargs)


class TestDedupe:
    """Test duplicate removal."""

    def test_first_occurrence_wins(self):
        first = _finding(code="<img a>")
        second = _finding(code="<img b>")
        assert dedupe([first, second]) == [first]

    def test_key_components_distinguish(self):
        findings = [
            _finding(),
            _finding(line=2),
            _finding(file="b.jsx"),
            _finding(type="empty_alt"),
            _finding(message="other"),
        ]
        assert dedupe(findings) == findings

    def test_url_location(self):
        a = Finding(type="missing_lang", severity=Severity.medium, message="m", url="https://example.com")
        assert dedupe([a, a]) == [a]

    def test_idempotent(self):
        findings = [_finding(), _finding(), _finding(line=3), _finding(line=3), _finding(line=1)]
        once = dedupe(findings)
        assert dedupe(once) == once
        assert len(once) == 2


class TestSummaries:
    """Test severity counts."""

    def test_buckets_sum_to_total(self):
        findings = [
            _finding(line=1),
            _finding(line=2, severity=Severity.medium),
            _finding(line=3, severity=Severity.medium),
            _finding(line=4, severity=Severity.low),
        ]
        counts = count_by_severity(findings)
        assert (counts.high, counts.medium, counts.low, counts.total) == (1, 2, 1, 4)

    def test_summarize_counts_after_dedupe(self):
        result = summarize([_finding(), _finding(), _finding(line=2, severity=Severity.low)], timestamp="t")
        assert result.timestamp == "t"
        assert result.total_issues == 2
        assert result.high_severity + result.medium_severity + result.low_severity == result.total_issues
        assert len(result.issues) == result.total_issues

    def test_empty(self):
        result = summarize([])
        assert result.total_issues == 0
        assert result.issues == []
        assert result.timestamp

    def test_record_uses_camel_case(self):
        record = summarize([_finding(rule_id="jsx-a11y/alt-text")], timestamp="t").to_record()
        assert list(record) == [
            "timestamp", "totalIssues", "highSeverity", "mediumSeverity", "lowSeverity", "issues",
        ]
        assert record["issues"][0]["ruleId"] == "jsx-a11y/alt-text"

    def test_merge_summaries(self):
        results = {
            "accessibility": summarize([_finding(), _finding(line=2, severity=Severity.low)], timestamp="t"),
            "eslint": summarize([_finding(severity=Severity.medium, source="eslint")], timestamp="t"),
        }
        total = merge_summaries(results)
        assert (total.high, total.medium, total.low, total.total) == (1, 1, 1, 3)
