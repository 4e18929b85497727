"""Deduplication and severity summaries."""

from datetime import datetime, timezone
from typing import Iterable, Optional

from .models import AuditResult, Finding, Severity, SeveritySummary


def dedupe(findings: Iterable[Finding]) -> list[Finding]:
    """Keep the first finding per ``(location, line, type, message)``, order preserved."""
    seen: set[tuple] = set()
    unique: list[Finding] = []
    for finding in findings:
        key = finding.dedup_key
        if key in seen:
            continue
        seen.add(key)
        unique.append(finding)
    return unique


def count_by_severity(findings: Iterable[Finding]) -> SeveritySummary:
    counts = {Severity.high: 0, Severity.medium: 0, Severity.low: 0}
    for finding in findings:
        counts[finding.severity] += 1
    return SeveritySummary(
        high=counts[Severity.high],
        medium=counts[Severity.medium],
        low=counts[Severity.low],
        total=sum(counts.values()),
    )


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def summarize(findings: Iterable[Finding], timestamp: Optional[str] = None) -> AuditResult:
    """Build the terminal ``AuditResult`` from raw findings."""
    issues = dedupe(findings)
    counts = count_by_severity(issues)
    return AuditResult(
        timestamp=timestamp or utc_timestamp(),
        total_issues=counts.total,
        high_severity=counts.high,
        medium_severity=counts.medium,
        low_severity=counts.low,
        issues=issues,
    )


def empty_result() -> AuditResult:
    return summarize([])


def severity_summary(result: AuditResult) -> SeveritySummary:
    return SeveritySummary(
        high=result.high_severity,
        medium=result.medium_severity,
        low=result.low_severity,
        total=result.total_issues,
    )


def merge_summaries(results: dict[str, AuditResult]) -> SeveritySummary:
    """Totals across categories for the combined report."""
    total = SeveritySummary()
    for result in results.values():
        total.high += result.high_severity
        total.medium += result.medium_severity
        total.low += result.low_severity
        total.total += result.total_issues
    return total
