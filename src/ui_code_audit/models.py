"""Pydantic models for ui-code-audit."""

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

MAX_SNIPPET_LENGTH = 200
TRUNCATION_SUFFIX = "... (truncated)"


def truncate(text: str) -> str:
    """Bound a stored snippet to 214 characters, suffix included."""
    if len(text) <= MAX_SNIPPET_LENGTH:
        return text
    return text[: MAX_SNIPPET_LENGTH - 1] + TRUNCATION_SUFFIX


class Severity(str, Enum):
    """Severity buckets for findings, ordered high > medium > low."""

    high = "high"
    medium = "medium"
    low = "low"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.high: 3, Severity.medium: 2, Severity.low: 1}

# External tools report on wider scales; fold them into the three buckets
_SEVERITY_ALIASES = {
    "critical": Severity.high,
    "error": Severity.high,
    "high": Severity.high,
    "moderate": Severity.medium,
    "warning": Severity.medium,
    "medium": Severity.medium,
    "low": Severity.low,
    "info": Severity.low,
    "note": Severity.low,
}


def normalize_severity(value: str | None, default: Severity = Severity.medium) -> Severity:
    """Map a severity string from any source onto the three-value enum."""
    if not value:
        return default
    return _SEVERITY_ALIASES.get(str(value).strip().lower(), default)


class ProjectType(str, Enum):
    """Project flavours that select an ESLint ruleset."""

    react = "react"
    node = "node"
    vanilla = "vanilla"
    typescript = "typescript"
    typescript_react = "typescript+react"

    @classmethod
    def parse(cls, value: str | None) -> Optional["ProjectType"]:
        """Parse a user supplied project type, accepting the legacy spellings."""
        if not value:
            return None
        normalized = value.strip().lower().replace(" ", "")
        if normalized == "tsreact":
            normalized = cls.typescript_react.value
        try:
            return cls(normalized)
        except ValueError:
            return None


class Finding(BaseModel):
    """A single detected issue. Immutable once created."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: str = Field(description="Issue category tag, e.g. missing_alt")
    severity: Severity = Field(description="Severity bucket")
    message: str = Field(description="Human-readable description")
    file: Optional[str] = Field(default=None, description="Project-relative file path")
    line: Optional[int] = Field(default=None, description="1-indexed line number")
    url: Optional[str] = Field(default=None, description="Live URL the finding was observed on")
    code: Optional[str] = Field(default=None, description="Offending snippet, truncated")
    context: Optional[str] = Field(default=None, description="Surrounding lines with a gutter")
    recommendation: Optional[str] = Field(default=None, description="Suggested fix")
    source: str = Field(default="custom", description="custom for regex rules, else the tool name")
    wcag: Optional[str] = Field(default=None, description="WCAG success criterion")
    rule_id: Optional[str] = Field(default=None, alias="ruleId", description="Linter rule identifier")

    @field_validator("code")
    @classmethod
    def _bound_code(cls, value: Optional[str]) -> Optional[str]:
        return truncate(value) if value else value

    @field_validator("context")
    @classmethod
    def _bound_context(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return value
        return "\n".join(truncate(line) for line in value.split("\n"))

    @model_validator(mode="after")
    def _require_location(self) -> "Finding":
        if not self.file and not self.url:
            raise ValueError("Finding requires a file or url location")
        return self

    @property
    def dedup_key(self) -> tuple[str, Optional[int], str, str]:
        return (self.file or self.url or "", self.line, self.type, self.message)

    def to_record(self) -> dict:
        """JSON-ready dict with camelCase keys and unset fields dropped."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AuditResult(BaseModel):
    """Terminal aggregate for one audit category run."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    timestamp: str = Field(description="ISO 8601 time the aggregate was built")
    total_issues: int = Field(default=0, alias="totalIssues")
    high_severity: int = Field(default=0, alias="highSeverity")
    medium_severity: int = Field(default=0, alias="mediumSeverity")
    low_severity: int = Field(default=0, alias="lowSeverity")
    issues: list[Finding] = Field(default_factory=list, description="Deduplicated findings")

    def to_record(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "totalIssues": self.total_issues,
            "highSeverity": self.high_severity,
            "mediumSeverity": self.medium_severity,
            "lowSeverity": self.low_severity,
            "issues": [issue.to_record() for issue in self.issues],
        }


class SeveritySummary(BaseModel):
    """Counts by severity bucket."""

    high: int = Field(default=0, description="Number of high findings")
    medium: int = Field(default=0, description="Number of medium findings")
    low: int = Field(default=0, description="Number of low findings")
    total: int = Field(default=0, description="Total number of findings")


AuditCategory = Literal["accessibility", "eslint", "stylelint", "security", "performance"]


class AuditRequest(BaseModel):
    """Request body for running an audit."""

    path: Optional[str] = Field(default=None, description="Local project directory to audit")
    repo_url: Optional[str] = Field(default=None, description="Git repository to clone and audit")
    project_type: Optional[str] = Field(
        default=None,
        description="react, node, vanilla, typescript or typescript+react",
    )
    categories: list[AuditCategory] = Field(
        default_factory=lambda: ["accessibility"],
        description="Audit categories to run",
    )
    urls: list[str] = Field(default_factory=list, description="Live URLs for page-level accessibility checks")
    batch_size: Optional[int] = Field(default=None, ge=1, description="Files scanned concurrently per batch")
    report_dir: Optional[str] = Field(default=None, description="Directory for report artifacts")
    recommended_rules: bool = Field(default=False, description="Force the bundled linter rulesets")
    ci: bool = Field(default=False, description="Evaluate CI quality gates and emit CI artifacts")


class CIReport(BaseModel):
    """Outcome of the CI quality gate."""

    platform: str = Field(description="Detected CI platform or local")
    passed: bool = Field(description="Whether every category stayed within its threshold")
    summary: dict[str, SeveritySummary] = Field(default_factory=dict, description="Counts per category")
    thresholds: dict[str, int] = Field(default_factory=dict, description="Allowed high findings per category")
    failures: list[str] = Field(default_factory=list, description="Categories over threshold")
    fail_on_high: bool = Field(default=True, description="Whether a failed gate should fail the process")


class AuditResponse(BaseModel):
    """Combined output of an audit run."""

    scan_id: str = Field(description="Unique identifier for this run")
    project_type: Optional[str] = Field(default=None, description="Project type used for lint config selection")
    categories: dict[str, AuditResult] = Field(default_factory=dict, description="Result per audit category")
    summary: SeveritySummary = Field(default_factory=SeveritySummary, description="Counts across all categories")
    reports: list[str] = Field(default_factory=list, description="Report files written")
    ci: Optional[CIReport] = Field(default=None, description="CI gate outcome when requested")
