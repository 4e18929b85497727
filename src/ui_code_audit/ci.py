"""CI quality gate and CI artifacts (JUnit XML, SARIF 2.1.0, ci-summary.json)."""

import logging
import os
from pathlib import Path
from typing import Any, Mapping, Optional
from xml.etree import ElementTree

from . import __version__
from .aggregator import severity_summary, utc_timestamp
from .config import CIConfig
from .models import AuditResult, CIReport, Severity, SeveritySummary
from .report import write_json

logger = logging.getLogger(__name__)

JUNIT_FILE = "ui-code-audit-junit.xml"
SARIF_FILE = "ui-code-audit.sarif"
SUMMARY_FILE = "ci-summary.json"

SARIF_SCHEMA = "https://json.schemastore.org/sarif-2.1.0.json"
SARIF_LEVELS = {Severity.high: "error", Severity.medium: "warning", Severity.low: "note"}


def detect_ci_platform(env: Optional[Mapping[str, str]] = None) -> str:
    env = os.environ if env is None else env
    if env.get("GITHUB_ACTIONS") == "true":
        return "github-actions"
    if env.get("GITLAB_CI") == "true":
        return "gitlab-ci"
    if env.get("JENKINS_URL"):
        return "jenkins"
    if env.get("CIRCLECI"):
        return "circleci"
    if env.get("TRAVIS"):
        return "travis"
    return "local"


def evaluate(
    results: Mapping[str, AuditResult],
    config: CIConfig,
    platform: Optional[str] = None,
) -> CIReport:
    """Compare high-severity counts against per-category thresholds."""
    summary: dict[str, SeveritySummary] = {
        category: severity_summary(result) for category, result in results.items()
    }
    failures: list[str] = []
    for category, threshold in config.thresholds.items():
        counts = summary.get(category)
        if counts is not None and counts.high > threshold:
            logger.warning(f"{category}: {counts.high} high issues (threshold: {threshold})")
            failures.append(category)

    return CIReport(
        platform=platform or detect_ci_platform(),
        passed=not failures,
        summary=summary,
        thresholds=dict(config.thresholds),
        failures=failures,
        fail_on_high=config.fail_on_high,
    )


def build_junit(results: Mapping[str, AuditResult], timestamp: Optional[str] = None) -> ElementTree.Element:
    """One testsuite per category; high findings become failures."""
    root = ElementTree.Element("testsuites", timestamp=timestamp or utc_timestamp())
    for category, result in results.items():
        suite = ElementTree.SubElement(
            root,
            "testsuite",
            name=category,
            tests=str(result.total_issues),
            failures=str(result.high_severity),
        )
        for issue in result.issues:
            location = issue.file or issue.url or ""
            if issue.line:
                location = f"{location}:{issue.line}"
            case = ElementTree.SubElement(
                suite,
                "testcase",
                name=f"{issue.type}: {issue.message}",
                classname=f"{category}.{location}" if location else category,
            )
            if issue.severity is Severity.high:
                failure = ElementTree.SubElement(
                    case, "failure", message=issue.message, type=issue.severity.value
                )
                failure.text = issue.code or ""
    return root


def _sarif_result(category: str, issue) -> dict[str, Any]:
    physical: dict[str, Any] = {"artifactLocation": {"uri": issue.file or issue.url or "unknown"}}
    if issue.line:
        physical["region"] = {"startLine": issue.line, "startColumn": 1}
    return {
        "ruleId": f"{category}-{issue.rule_id or issue.type}",
        "level": SARIF_LEVELS[issue.severity],
        "message": {"text": issue.message},
        "locations": [{"physicalLocation": physical}],
    }


def build_sarif(results: Mapping[str, AuditResult]) -> dict[str, Any]:
    sarif_results = [
        _sarif_result(category, issue)
        for category, result in results.items()
        for issue in result.issues
    ]
    return {
        "$schema": SARIF_SCHEMA,
        "version": "2.1.0",
        "runs": [{
            "tool": {"driver": {"name": "ui-code-audit", "version": __version__}},
            "results": sarif_results,
        }],
    }


def summary_record(report: CIReport) -> dict[str, Any]:
    return {
        "timestamp": utc_timestamp(),
        "ciPlatform": report.platform,
        "passed": report.passed,
        "summary": {category: counts.model_dump() for category, counts in report.summary.items()},
        "thresholds": report.thresholds,
        "failures": report.failures,
    }


def write_ci_artifacts(
    report_dir: str | Path,
    results: Mapping[str, AuditResult],
    report: CIReport,
) -> list[Path]:
    """Write JUnit, SARIF and summary files. Failures are logged, not raised."""
    report_dir = Path(report_dir)
    written: list[Path] = []

    junit_path = report_dir / JUNIT_FILE
    try:
        report_dir.mkdir(parents=True, exist_ok=True)
        tree = ElementTree.ElementTree(build_junit(results))
        ElementTree.indent(tree)
        tree.write(junit_path, encoding="UTF-8", xml_declaration=True)
        written.append(junit_path)
    except OSError as e:
        logger.error(f"Failed to write JUnit report {junit_path}: {e}")

    for path in (
        write_json(report_dir / SARIF_FILE, build_sarif(results)),
        write_json(report_dir / SUMMARY_FILE, summary_record(report)),
    ):
        if path is not None:
            written.append(path)
    return written
