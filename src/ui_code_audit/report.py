"""Report artifacts: per-category JSON, combined JSON and a static HTML summary.

Write failures are logged and swallowed; the in-memory results stay valid.
"""

import html
import json
import logging
from pathlib import Path
from typing import Any, Optional

from .models import AuditResponse, AuditResult

logger = logging.getLogger(__name__)

REPORT_FILES: dict[str, str] = {
    "accessibility": "accessibility-audit-report.json",
    "eslint": "eslint-report.json",
    "stylelint": "stylelint-report.json",
    "security": "security-audit-report.json",
    "performance": "performance-audit-report.json",
}

COMBINED_REPORT = "audit-report.json"
HTML_REPORT = "audit-report.html"

# Rows shown per category in the HTML table
HTML_ISSUE_LIMIT = 200


def dumps(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def write_json(path: Path, data: Any) -> Optional[Path]:
    """Write ``data`` as pretty JSON. Returns the path, or None on failure."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(dumps(data), encoding="utf-8")
    except (OSError, TypeError, ValueError) as e:
        logger.error(f"Failed to write report {path}: {e}")
        return None
    logger.info(f"Report written: {path}")
    return path


def report_path(report_dir: str | Path, category: str) -> Path:
    name = REPORT_FILES.get(category, f"{category}-report.json")
    return Path(report_dir) / name


def write_category_report(report_dir: str | Path, category: str, result: AuditResult) -> Optional[Path]:
    return write_json(report_path(report_dir, category), result.to_record())


def combined_record(response: AuditResponse) -> dict[str, Any]:
    record: dict[str, Any] = {
        "scanId": response.scan_id,
        "projectType": response.project_type,
        "summary": response.summary.model_dump(),
        "categories": {name: result.to_record() for name, result in response.categories.items()},
    }
    if response.ci is not None:
        record["ci"] = response.ci.model_dump()
    return record


def write_combined_report(report_dir: str | Path, response: AuditResponse) -> Optional[Path]:
    return write_json(Path(report_dir) / COMBINED_REPORT, combined_record(response))


_HTML_HEAD = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>UI Code Audit Report</title>
<style>
body { font-family: system-ui, sans-serif; margin: 2rem; color: #1f2328; }
table { border-collapse: collapse; width: 100%; margin-bottom: 2rem; }
th, td { border: 1px solid #d0d7de; padding: 0.4rem 0.6rem; text-align: left; vertical-align: top; }
th { background: #f6f8fa; }
.high { color: #b42318; font-weight: 600; }
.medium { color: #9a6700; }
.low { color: #57606a; }
pre { margin: 0; white-space: pre-wrap; font-size: 0.85em; }
</style>
</head>
<body>
<main>
"""

_HTML_TAIL = """</main>
</body>
</html>
"""


def _cell(value: Any) -> str:
    return html.escape("" if value is None else str(value))


def _location(issue: dict[str, Any]) -> str:
    where = issue.get("file") or issue.get("url") or ""
    if issue.get("line"):
        where = f"{where}:{issue['line']}"
    return where


def render_html(response: AuditResponse) -> str:
    """Static summary page, every dynamic value HTML-escaped."""
    parts = [_HTML_HEAD, "<h1>UI Code Audit Report</h1>\n"]
    parts.append(f"<p>Scan <code>{_cell(response.scan_id)}</code>")
    if response.project_type:
        parts.append(f", project type <strong>{_cell(response.project_type)}</strong>")
    parts.append("</p>\n")

    parts.append("<h2>Summary</h2>\n<table>\n")
    parts.append("<tr><th>Category</th><th>High</th><th>Medium</th><th>Low</th><th>Total</th></tr>\n")
    for name, result in response.categories.items():
        parts.append(
            f"<tr><td>{_cell(name)}</td><td>{result.high_severity}</td><td>{result.medium_severity}</td>"
            f"<td>{result.low_severity}</td><td>{result.total_issues}</td></tr>\n"
        )
    s = response.summary
    parts.append(
        f"<tr><th>All</th><th>{s.high}</th><th>{s.medium}</th><th>{s.low}</th><th>{s.total}</th></tr>\n"
    )
    parts.append("</table>\n")

    if response.ci is not None:
        status = "passed" if response.ci.passed else "failed"
        parts.append(f"<p>CI quality gate ({_cell(response.ci.platform)}): <strong>{status}</strong></p>\n")

    for name, result in response.categories.items():
        parts.append(f"<h2>{_cell(name)}</h2>\n")
        if not result.issues:
            parts.append("<p>No issues found.</p>\n")
            continue
        parts.append("<table>\n<tr><th>Severity</th><th>Type</th><th>Location</th><th>Message</th><th>Code</th></tr>\n")
        for finding in result.issues[:HTML_ISSUE_LIMIT]:
            issue = finding.to_record()
            severity = issue["severity"]
            parts.append(
                f"<tr><td class=\"{_cell(severity)}\">{_cell(severity)}</td>"
                f"<td>{_cell(issue.get('ruleId') or issue['type'])}</td>"
                f"<td>{_cell(_location(issue))}</td>"
                f"<td>{_cell(issue['message'])}</td>"
                f"<td><pre>{_cell(issue.get('code'))}</pre></td></tr>\n"
            )
        parts.append("</table>\n")
        if len(result.issues) > HTML_ISSUE_LIMIT:
            parts.append(
                f"<p>{len(result.issues) - HTML_ISSUE_LIMIT} more issues in "
                f"{_cell(REPORT_FILES.get(name, name))}.</p>\n"
            )

    parts.append(_HTML_TAIL)
    return "".join(parts)


def write_html_report(report_dir: str | Path, response: AuditResponse) -> Optional[Path]:
    path = Path(report_dir) / HTML_REPORT
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(render_html(response), encoding="utf-8")
    except OSError as e:
        logger.error(f"Failed to write report {path}: {e}")
        return None
    logger.info(f"Report written: {path}")
    return path
