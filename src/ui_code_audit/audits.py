"""Category audits: accessibility, ESLint, Stylelint, security and performance.

Every category run walks the same phases:
Idle -> Enumerating -> Scanning -> Closing -> Aggregating -> Emitting -> Done.
A run is single-use. Only a failure to open the issue stream is fatal; one
file's failure is logged and scanning carries on.
"""

import asyncio
import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Optional, TextIO

from .agent_client import AgentClient
from .aggregator import summarize
from .config import AuditConfig
from .errors import retry_async
from .file_walker import display_path, enumerate_files
from .linters import LinterRunner
from .live import check_urls
from .models import AuditResult, Finding, Severity, normalize_severity
from .report import write_category_report
from .rules.accessibility import scan_accessibility
from .rules.landmarks import project_findings, scan_corpus_signals
from .rules.performance import check_asset, is_image_asset, large_dependency_findings, scan_performance
from .scheduler import FileScan, ProgressReporter, ScanOutcome, scan_in_batches
from .sink import IssueLog

logger = logging.getLogger(__name__)


class AuditPhase(str, Enum):
    idle = "idle"
    enumerating = "enumerating"
    scanning = "scanning"
    closing = "closing"
    aggregating = "aggregating"
    emitting = "emitting"
    done = "done"


_PHASE_ORDER = list(AuditPhase)


class CategoryAudit:
    """Base class for one audit category run."""

    category = "audit"
    label = "Audit"

    def __init__(
        self,
        project_root: str | Path,
        config: AuditConfig,
        report_dir: str | Path | None = None,
        progress_stream: Optional[TextIO] = None,
    ):
        self.project_root = Path(project_root).resolve()
        self.config = config
        self.report_dir = Path(report_dir) if report_dir else None
        self.progress_stream = progress_stream
        self.phase = AuditPhase.idle
        self.outcome: Optional[ScanOutcome] = None
        self.report_path: Optional[Path] = None

    def _enter(self, phase: AuditPhase) -> None:
        if _PHASE_ORDER.index(phase) <= _PHASE_ORDER.index(self.phase):
            raise RuntimeError(f"{self.category} audit cannot move from {self.phase.value} to {phase.value}")
        logger.debug(f"[{self.category}] {self.phase.value} -> {phase.value}")
        self.phase = phase

    def enumerate(self) -> list[Path]:
        return enumerate_files(self.category, self.config, self.project_root)

    async def scan_file(self, path: Path) -> FileScan:
        raise NotImplementedError

    async def finalize(self, outcome: ScanOutcome) -> list[Finding]:
        """Findings that can only be produced once every file is scanned."""
        return []

    async def run(self) -> AuditResult:
        if self.phase is not AuditPhase.idle:
            raise RuntimeError(f"{self.category} audit has already run")

        self._enter(AuditPhase.enumerating)
        files = self.enumerate()
        logger.info(f"[{self.category}] {len(files)} files to check")

        stream_dir = self.report_dir if self.config.write_issue_stream else None
        log = IssueLog(self.category, stream_dir, max_issues=self.config.max_issues)
        await log.open()

        try:
            self._enter(AuditPhase.scanning)
            progress = ProgressReporter(self.label, len(files), self.progress_stream) if files else None
            self.outcome = await scan_in_batches(
                files,
                self.scan_file,
                log.record,
                batch_size=self.config.batch_size,
                progress=progress,
            )
            for finding in await self.finalize(self.outcome):
                log.record(finding)
        finally:
            self._enter(AuditPhase.closing)
            await log.aclose()

        self._enter(AuditPhase.aggregating)
        result = summarize(log.findings)
        logger.info(
            f"[{self.category}] {result.total_issues} issues "
            f"(high={result.high_severity}, medium={result.medium_severity}, low={result.low_severity})"
        )

        self._enter(AuditPhase.emitting)
        if self.report_dir is not None:
            self.report_path = write_category_report(self.report_dir, self.category, result)

        self._enter(AuditPhase.done)
        return result


class AccessibilityAudit(CategoryAudit):
    """Regex accessibility detectors over source files, plus optional live URLs."""

    category = "accessibility"
    label = "Accessibility"

    def __init__(self, project_root, config, report_dir=None, progress_stream=None, urls: list[str] | None = None):
        super().__init__(project_root, config, report_dir, progress_stream)
        self.urls = list(urls or [])

    async def scan_file(self, path: Path) -> FileScan:
        content = await asyncio.to_thread(path.read_text, encoding="utf-8", errors="ignore")
        findings = scan_accessibility(
            display_path(path, self.project_root),
            content,
            self.config.accessible_components,
        )
        return FileScan(findings=findings, signals=scan_corpus_signals(content))

    async def finalize(self, outcome: ScanOutcome) -> list[Finding]:
        findings: list[Finding] = []
        # An empty corpus says nothing about landmarks
        if outcome.files_scanned:
            findings.extend(project_findings(outcome.signals))
        if self.urls:
            findings.extend(await check_urls(self.urls))
        return findings


class LintAudit(CategoryAudit):
    """ESLint or Stylelint run file by file through the batch scheduler."""

    def __init__(self, project_root, config, runner: LinterRunner, report_dir=None, progress_stream=None):
        super().__init__(project_root, config, report_dir, progress_stream)
        self.runner = runner
        self.category = runner.name
        self.label = "ESLint" if runner.name == "eslint" else "Stylelint"

    async def scan_file(self, path: Path) -> FileScan:
        return await self.runner.lint_file(path)



class PerformanceAudit(CategoryAudit):
    """Regex performance detectors over JS/TS sources, plus image asset and dependency checks."""

    category = "performance"
    label = "Performance"

    async def scan_file(self, path: Path) -> FileScan:
        display = display_path(path, self.project_root)
        if is_image_asset(display):
            stat = await asyncio.to_thread(path.stat)
            return FileScan(findings=check_asset(display, stat.st_size))
        content = await asyncio.to_thread(path.read_text, encoding="utf-8", errors="ignore")
        return FileScan(findings=scan_performance(display, content))

    async def finalize(self, outcome: ScanOutcome) -> list[Finding]:
        package_json = self.project_root / "package.json"
        if not package_json.is_file():
            logger.info(f"[performance] no package.json in {self.project_root}; dependency check skipped")
            return []
        try:
            data = json.loads(await asyncio.to_thread(package_json.read_text, encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"[performance] could not read {package_json}: {e}")
            return []
        if not isinstance(data, dict):
            logger.warning(f"[performance] {package_json} is not a JSON object")
            return []
        return large_dependency_findings(data)


# security-review finding groups that carry file/line locations
_PATTERN_GROUPS = ("frontend_security", "api_security", "logging")


def parse_security_review(result: Optional[dict[str, Any]]) -> list[Finding]:
    """Reshape a security-review response into findings, skipping likely false positives."""
    if not result:
        return []

    groups = result.get("findings", {}) or {}
    findings: list[Finding] = []

    for secret in groups.get("secrets", []):
        if secret.get("likely_false_positive"):
            continue
        findings.append(Finding(
            type=f"secret_{secret.get('type', 'unknown')}",
            severity=normalize_severity(secret.get("severity"), default=Severity.high),
            message=f"Possible exposed secret: {secret.get('type', 'unknown')}",
            file=secret.get("file") or ".",
            line=secret.get("line") or None,
            code=secret.get("preview") or None,
            recommendation=secret.get("recommendation") or None,
            source="security-review",
        ))

    for dep in groups.get("dependencies", []):
        package = dep.get("package", "unknown")
        cve = dep.get("cve") or None
        message = f"{package}@{dep.get('version', '?')} is vulnerable"
        if dep.get("title"):
            message = f"{message}: {dep['title']}"
        findings.append(Finding(
            type="vulnerable_dependency",
            severity=normalize_severity(dep.get("severity")),
            message=message,
            file="package.json",
            recommendation=dep.get("recommendation") or None,
            source="security-review",
            rule_id=cve,
        ))

    for group in _PATTERN_GROUPS:
        for pattern in groups.get(group, []):
            if pattern.get("likely_false_positive"):
                continue
            findings.append(Finding(
                type=group,
                severity=normalize_severity(pattern.get("severity")),
                message=pattern.get("pattern", group),
                file=pattern.get("file") or ".",
                line=pattern.get("line") or None,
                code=pattern.get("snippet") or None,
                recommendation=pattern.get("recommendation") or None,
                source="security-review",
            ))

    return findings


class SecurityAudit(CategoryAudit):
    """Delegates to the security-review agent; no local file scanning."""

    category = "security"
    label = "Security"

    def __init__(self, project_root, config, report_dir=None, progress_stream=None,
                 repo_url: str | None = None, client: AgentClient | None = None):
        super().__init__(project_root, config, report_dir, progress_stream)
        self.repo_url = repo_url
        self.client = client

    def enumerate(self) -> list[Path]:
        return []

    async def _review(self) -> dict[str, Any]:
        client = self.client or AgentClient()
        async with client:
            return await client.call_security_review(self.repo_url)

    async def finalize(self, outcome: ScanOutcome) -> list[Finding]:
        # Remote agents cannot reach local paths
        if not self.repo_url:
            logger.warning(f"[security] no repo_url for {self.project_root}; security-review skipped")
            return []
        result = await retry_async(self._review, fallback=None, description="security-review agent")
        return parse_security_review(result)
