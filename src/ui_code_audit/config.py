"""Configuration loading for ui-code-audit.

Settings come from ``ui-code-audit.config.json``, searched in the project root
and then the current working directory. Missing files mean defaults; a file that
exists but cannot be parsed is a ``ConfigError``. A couple of numeric knobs can
be overridden through environment variables.
"""

import json
import logging
import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "ui-code-audit.config.json"
IGNORE_FILE_NAME = ".ui-code-audit-ignore"

DEFAULT_BATCH_SIZE = 5
DEFAULT_MAX_ISSUES = 50_000

ENV_BATCH_SIZE = "UI_AUDIT_BATCH_SIZE"
ENV_MAX_ISSUES = "UI_AUDIT_MAX_ISSUES"

DEFAULT_JS_PATTERNS = [
    "**/*.{js,ts,jsx,tsx}",
    "!**/node_modules/**",
    "!**/dist/**",
    "!**/build/**",
    "!**/coverage/**",
    "!**/report/**",
    "!**/*.min.js",
    "!**/tools/**",
]

DEFAULT_HTML_PATTERNS = [
    "**/*.{html,htm}",
    "!**/node_modules/**",
    "!**/dist/**",
    "!**/build/**",
    "!**/coverage/**",
    "!**/report/**",
    "!**/tools/**",
]

DEFAULT_SCSS_PATTERNS = [
    "**/*.{css,scss,sass,less}",
    "!**/node_modules/**",
    "!**/dist/**",
    "!**/build/**",
    "!**/coverage/**",
    "!**/report/**",
    "!**/reports/**",
    "!**/tools/**",
    "!**/*.min.css",
    "!**/*.bundle.css",
    "!**/vendor/**",
    "!**/bower_components/**",
]

DEFAULT_ASSET_PATTERNS = [
    "public/**/*.{png,jpg,jpeg,bmp,tiff,gif}",
    "assets/**/*.{png,jpg,jpeg,bmp,tiff,gif}",
    "static/**/*.{png,jpg,jpeg,bmp,tiff,gif}",
    "src/assets/**/*.{png,jpg,jpeg,bmp,tiff,gif}",
]

DEFAULT_ACCESSIBLE_COMPONENTS = [
    "ImageOnly",
    "AccessibleImage",
    "ImageWithAlt",
    "ResponsiveImage",
    "OptimizedImage",
    "AccessibleImg",
    "ImgWithAlt",
    "AccessibleFigure",
]

DEFAULT_CI_THRESHOLDS = {
    "security": 0,
    "accessibility": 5,
    "eslint": 10,
    "stylelint": 10,
    "performance": 10,
}


class _ConfigModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class IgnoreFileConfig(_ConfigModel):
    enabled: bool = Field(default=True, description="Merge .ui-code-audit-ignore into exclude globs")


class ExcludeRulesConfig(_ConfigModel):
    enabled: bool = Field(default=True, description="Apply rule exclusions at all")
    override_default: bool = Field(default=False, alias="overrideDefault")
    additional_rules: list[str] = Field(default_factory=list, alias="additionalRules")

    def merge(self, default_rules: list[str]) -> list[str]:
        """Combine the built-in exclusion list with the configured one."""
        if not self.enabled:
            return []
        if self.override_default:
            return list(self.additional_rules)
        return list(default_rules) + [r for r in self.additional_rules if r not in default_rules]


class CIConfig(_ConfigModel):
    enabled: bool = Field(default=False, description="Gate CI runs on thresholds")
    fail_on_high: bool = Field(default=True, alias="failOnHigh")
    thresholds: dict[str, int] = Field(default_factory=lambda: dict(DEFAULT_CI_THRESHOLDS))


class AuditConfig(_ConfigModel):
    """Project-level audit settings."""

    js_patterns: list[str] = Field(default_factory=lambda: list(DEFAULT_JS_PATTERNS), alias="jsFilePathPattern")
    html_patterns: list[str] = Field(default_factory=lambda: list(DEFAULT_HTML_PATTERNS), alias="htmlFilePathPattern")
    scss_patterns: list[str] = Field(default_factory=lambda: list(DEFAULT_SCSS_PATTERNS), alias="scssFilePathPattern")
    asset_patterns: list[str] = Field(default_factory=lambda: list(DEFAULT_ASSET_PATTERNS), alias="assetFilePathPattern")
    ignore_file: IgnoreFileConfig = Field(default_factory=IgnoreFileConfig, alias="ignoreFileConfig")
    batch_size: int = Field(default=DEFAULT_BATCH_SIZE, ge=1, alias="batchSize")
    max_issues: int = Field(default=DEFAULT_MAX_ISSUES, ge=1, alias="maxIssues")
    write_issue_stream: bool = Field(default=True, alias="writeIssueStream")
    exclude_rules: dict[str, ExcludeRulesConfig] = Field(default_factory=dict, alias="excludeRules")
    ci: CIConfig = Field(default_factory=CIConfig)
    accessible_components: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ACCESSIBLE_COMPONENTS), alias="accessibleComponents"
    )

    def exclude_rules_for(self, tool: str, default_rules: list[str]) -> list[str]:
        return self.exclude_rules.get(tool, ExcludeRulesConfig()).merge(default_rules)


def config_search_paths(project_root: str | Path) -> list[Path]:
    """Locations checked for the config file, in priority order."""
    candidates = [Path(project_root).resolve() / CONFIG_FILE_NAME, Path.cwd() / CONFIG_FILE_NAME]
    unique: list[Path] = []
    for candidate in candidates:
        if candidate not in unique:
            unique.append(candidate)
    return unique


def _env_int(name: str) -> int | None:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e
    if value < 1:
        raise ConfigError(f"{name} must be positive, got {value}")
    return value


def load_config(project_root: str | Path) -> AuditConfig:
    """Load the audit configuration for ``project_root``.

    Raises:
        ConfigError: If a config file exists but is not valid JSON or does not
            match the schema, or an environment override is malformed.
    """
    data: dict = {}
    for config_path in config_search_paths(project_root):
        if not config_path.is_file():
            continue
        try:
            data = json.loads(config_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Could not read {config_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"{config_path} must contain a JSON object")
        logger.info(f"Config loaded from: {config_path}")
        break
    else:
        logger.info(f"No {CONFIG_FILE_NAME} found, using default patterns and settings")

    try:
        config = AuditConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid {CONFIG_FILE_NAME}: {e}") from e

    overrides = {}
    batch_size = _env_int(ENV_BATCH_SIZE)
    if batch_size is not None:
        overrides["batch_size"] = batch_size
    max_issues = _env_int(ENV_MAX_ISSUES)
    if max_issues is not None:
        overrides["max_issues"] = max_issues
    if overrides:
        config = config.model_copy(update=overrides)
    return config
