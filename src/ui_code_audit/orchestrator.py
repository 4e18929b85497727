"""Run the requested audit categories and assemble the combined output."""

import logging
import uuid
from pathlib import Path
from typing import Optional, TextIO

from git.exc import GitCommandError

from .agent_client import AgentClient
from .aggregator import merge_summaries
from .audits import AccessibilityAudit, CategoryAudit, LintAudit, PerformanceAudit, SecurityAudit
from .ci import detect_ci_platform, evaluate, write_ci_artifacts
from .config import AuditConfig, load_config
from .git_utils import cloned_repo
from .linters import (
    DEFAULT_ESLINT_EXCLUDE_RULES,
    DEFAULT_STYLELINT_EXCLUDE_RULES,
    EslintRunner,
    StylelintRunner,
    resolve_eslint_config,
    resolve_stylelint_config,
)
from .models import AuditRequest, AuditResponse, AuditResult, ProjectType
from .report import write_combined_report, write_html_report

logger = logging.getLogger(__name__)


def _parse_project_type(value: Optional[str]) -> Optional[ProjectType]:
    if not value:
        return None
    project_type = ProjectType.parse(value)
    if project_type is None:
        valid = ", ".join(t.value for t in ProjectType)
        raise ValueError(f"Invalid project_type '{value}'. Valid types: {valid}")
    return project_type


def build_audits(
    project_root: Path,
    request: AuditRequest,
    config: AuditConfig,
    project_type: Optional[ProjectType],
    progress_stream: Optional[TextIO] = None,
    agent_client: Optional[AgentClient] = None,
) -> list[CategoryAudit]:
    """Instantiate one audit per requested category.

    Linter configs are resolved here so a missing config aborts before any
    scanning starts.

    Raises:
        ConfigError: If a linter config cannot be found.
    """
    report_dir = request.report_dir
    audits: list[CategoryAudit] = []

    for category in dict.fromkeys(request.categories):
        if category == "accessibility":
            audits.append(AccessibilityAudit(
                project_root, config, report_dir, progress_stream, urls=request.urls,
            ))
        elif category == "eslint":
            config_path = resolve_eslint_config(project_root, project_type, request.recommended_rules)
            logger.info(f"ESLint config: {config_path}")
            runner = EslintRunner(
                project_root,
                config_path,
                config.exclude_rules_for("eslint", DEFAULT_ESLINT_EXCLUDE_RULES),
            )
            audits.append(LintAudit(project_root, config, runner, report_dir, progress_stream))
        elif category == "stylelint":
            config_path = resolve_stylelint_config(project_root, request.recommended_rules)
            logger.info(f"Stylelint config: {config_path}")
            runner = StylelintRunner(
                project_root,
                config_path,
                config.exclude_rules_for("stylelint", DEFAULT_STYLELINT_EXCLUDE_RULES),
            )
            audits.append(LintAudit(project_root, config, runner, report_dir, progress_stream))
        elif category == "security":
            audits.append(SecurityAudit(
                project_root, config, report_dir, progress_stream,
                repo_url=request.repo_url, client=agent_client,
            ))
        elif category == "performance":
            audits.append(PerformanceAudit(project_root, config, report_dir, progress_stream))
    return audits


async def audit_project(
    project_root: str | Path,
    request: AuditRequest,
    progress_stream: Optional[TextIO] = None,
    agent_client: Optional[AgentClient] = None,
) -> AuditResponse:
    """Audit a local directory.

    Raises:
        ValueError: If the path is not a directory or the project type is unknown.
        ConfigError: On an invalid config file or a missing linter config.
        SinkError: If an issue stream cannot be opened.
    """
    root = Path(project_root).resolve()
    if not root.exists():
        raise ValueError(f"Path does not exist: {project_root}")
    if not root.is_dir():
        raise ValueError(f"Path is not a directory: {project_root}")

    project_type = _parse_project_type(request.project_type)
    config = load_config(root)
    if request.batch_size:
        config = config.model_copy(update={"batch_size": request.batch_size})

    audits = build_audits(root, request, config, project_type, progress_stream, agent_client)

    results: dict[str, AuditResult] = {}
    reports: list[str] = []
    for audit in audits:
        logger.info(f"Running {audit.category} audit on {root}")
        results[audit.category] = await audit.run()
        if audit.report_path is not None:
            reports.append(str(audit.report_path))

    ci_report = None
    platform = detect_ci_platform()
    if request.ci or (config.ci.enabled and platform != "local"):
        ci_report = evaluate(results, config.ci, platform)
        logger.info(f"CI quality gate {'passed' if ci_report.passed else 'failed'} on {platform}")

    response = AuditResponse(
        scan_id=str(uuid.uuid4()),
        project_type=project_type.value if project_type else None,
        categories=results,
        summary=merge_summaries(results),
        ci=ci_report,
    )

    if request.report_dir:
        for path in (
            write_combined_report(request.report_dir, response),
            write_html_report(request.report_dir, response),
        ):
            if path is not None:
                reports.append(str(path))
        if ci_report is not None:
            reports.extend(str(p) for p in write_ci_artifacts(request.report_dir, results, ci_report))

    return response.model_copy(update={"reports": reports})


async def run_audit(
    request: AuditRequest,
    progress_stream: Optional[TextIO] = None,
    agent_client: Optional[AgentClient] = None,
) -> AuditResponse:
    """Audit ``request.path``, or a shallow clone of ``request.repo_url``.

    Raises:
        ValueError: If neither location is given.
        RuntimeError: If the repository cannot be cloned.
    """
    if request.path:
        return await audit_project(request.path, request, progress_stream, agent_client)
    if not request.repo_url:
        raise ValueError("Provide either 'path' or 'repo_url'")

    try:
        with cloned_repo(request.repo_url) as repo_path:
            return await audit_project(repo_path, request, progress_stream, agent_client)
    except GitCommandError as e:
        raise RuntimeError(f"Failed to clone repository: {e}") from e
