"""ESLint and Stylelint delegation.

Each file is linted by invoking the project's locally installed linter via
``npx --no-install`` with JSON output, and the messages are reshaped into
``Finding`` objects. Config files are resolved before any linting starts; a
missing config is a ``ConfigError``.
"""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from .errors import ConfigError, ExternalToolError, retry_async
from .file_walker import display_path
from .models import Finding, ProjectType, Severity
from .rules.common import code_context, split_lines
from .scheduler import FileScan

logger = logging.getLogger(__name__)

BUNDLED_CONFIG_DIR = Path(__file__).parent / "configs"

ESLINT_DEFAULT_CONFIG = ".eslintrc.json"
ESLINT_TYPE_CONFIGS: dict[ProjectType, str] = {
    ProjectType.react: "eslintrc.react.json",
    ProjectType.node: "eslintrc.node.json",
    ProjectType.vanilla: "eslintrc.vanilla.json",
    ProjectType.typescript: "eslintrc.typescript.json",
    ProjectType.typescript_react: "eslintrc.tsreact.json",
}
ESLINT_SEARCH_NAMES = (".eslintrc", ".eslintrc.js", ".eslintrc.yml", ".eslintrc.json")

STYLELINT_DEFAULT_CONFIG = ".stylelintrc.json"
STYLELINT_SEARCH_NAMES = ("stylelint.config.js", ".stylelintrc.js", ".stylelintrc.yml", ".stylelintrc.json")

# Formatting and stylistic rules most teams disable or leave to a formatter
DEFAULT_ESLINT_EXCLUDE_RULES = [
    "indent", "quotes", "semi", "comma-dangle", "no-trailing-spaces", "eol-last",
    "no-multiple-empty-lines", "space-before-function-paren", "space-before-blocks",
    "keyword-spacing", "space-infix-ops", "object-curly-spacing", "array-bracket-spacing",
    "comma-spacing", "key-spacing", "brace-style", "camelcase", "new-cap",
    "no-underscore-dangle", "no-unused-vars", "no-console", "no-debugger",
    "prefer-const", "no-var", "arrow-spacing", "no-spaced-func", "func-call-spacing",
    "no-multi-spaces", "no-mixed-spaces-and-tabs", "no-tabs", "no-mixed-operators",
    "operator-linebreak", "nonblock-statement-body-position", "no-else-return",
    "no-nested-ternary", "no-unneeded-ternary", "object-shorthand", "prefer-template",
    "template-curly-spacing", "prefer-arrow-callback", "arrow-body-style",
    "no-duplicate-imports", "import/order", "import/no-unresolved", "import/extensions",
    "import/no-extraneous-dependencies", "import/prefer-default-export", "import/no-cycle",
    "react/jsx-indent", "react/jsx-indent-props", "react/jsx-closing-bracket-location",
    "react/jsx-closing-tag-location", "react/jsx-curly-spacing", "react/jsx-equals-spacing",
    "react/jsx-first-prop-new-line", "react/jsx-max-props-per-line",
    "react/jsx-one-expression-per-line", "react/jsx-props-no-multi-spaces",
    "react/jsx-tag-spacing", "react/jsx-wrap-multilines", "react/self-closing-comp",
    "react/jsx-boolean-value", "react/jsx-curly-brace-presence", "react/jsx-no-bind",
    "react/jsx-no-literals", "react/jsx-pascal-case", "react/jsx-sort-default-props",
    "react/jsx-sort-props", "react/no-array-index-key", "react/no-danger",
    "react/no-deprecated", "react/no-did-mount-set-state", "react/no-did-update-set-state",
    "react/no-direct-mutation-state", "react/no-find-dom-node", "react/no-is-mounted",
    "react/no-multi-comp", "react/no-render-return-value", "react/no-set-state",
    "react/no-string-refs", "react/no-unescaped-entities", "react/no-unknown-property",
    "react/no-unsafe", "react/no-unused-prop-types", "react/no-unused-state",
    "react/prefer-es6-class", "react/prefer-stateless-function", "react/prop-types",
    "react/react-in-jsx-scope", "react/require-default-props", "react/require-optimization",
    "react/require-render-return", "react/sort-comp", "react/sort-prop-types",
    "react/style-prop-object", "react/void-dom-elements-no-children", "react/jsx-key",
    "react/jsx-no-duplicate-props", "react/jsx-no-undef", "react/jsx-uses-react",
    "react/jsx-uses-vars", "max-len", "no-param-reassign",
]

DEFAULT_STYLELINT_EXCLUDE_RULES: list[str] = []


def resolve_eslint_config(
    project_root: str | Path,
    project_type: Optional[ProjectType] = None,
    recommended: bool = False,
    config_dir: Path = BUNDLED_CONFIG_DIR,
) -> Path:
    """Pick the ESLint config: project-type ruleset, then the project's own, then the bundled default.

    Raises:
        ConfigError: If no config file can be found anywhere.
    """
    root = Path(project_root)
    if project_type is not None:
        typed = config_dir / ESLINT_TYPE_CONFIGS[project_type]
        if typed.is_file():
            return typed
        logger.warning(f"No bundled ESLint ruleset for {project_type.value}, falling back")

    bundled = config_dir / ESLINT_DEFAULT_CONFIG
    if recommended and bundled.is_file():
        return bundled

    for name in ESLINT_SEARCH_NAMES:
        candidate = root / name
        if candidate.is_file():
            return candidate

    if bundled.is_file():
        return bundled
    raise ConfigError(".eslintrc file is missing")


def resolve_stylelint_config(
    project_root: str | Path,
    recommended: bool = False,
    config_dir: Path = BUNDLED_CONFIG_DIR,
) -> Path:
    """Pick the Stylelint config, preferring the bundled one when ``recommended``.

    Raises:
        ConfigError: If no config file can be found anywhere.
    """
    bundled = config_dir / STYLELINT_DEFAULT_CONFIG
    if recommended and bundled.is_file():
        return bundled

    root = Path(project_root)
    for name in STYLELINT_SEARCH_NAMES:
        candidate = root / name
        if candidate.is_file():
            return candidate

    if bundled.is_file():
        return bundled
    raise ConfigError(".stylelintrc.json file is missing")


async def run_command(
    args: list[str],
    cwd: Path,
    env: Optional[dict[str, str]] = None,
) -> tuple[int, str, str]:
    """Run a command and return ``(returncode, stdout, stderr)``.

    Raises:
        ExternalToolError: If the executable cannot be started.
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            *args,
            cwd=str(cwd),
            env=env,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise ExternalToolError(f"Could not start {args[0]}: {e}") from e
    stdout, stderr = await proc.communicate()
    return proc.returncode, stdout.decode("utf-8", errors="replace"), stderr.decode("utf-8", errors="replace")


class LinterRunner:
    """Lints single files with one external tool. Subclasses define the CLI shape."""

    name = "linter"
    ok_exit_codes: frozenset[int] = frozenset({0})

    def __init__(self, project_root: str | Path, config_path: Path, exclude_rules: list[str] | None = None):
        self.project_root = Path(project_root).resolve()
        self.config_path = config_path
        self.exclude_rules = set(exclude_rules or [])

    def command(self, file_path: Path) -> list[str]:
        raise NotImplementedError

    def env(self) -> Optional[dict[str, str]]:
        return None

    def parse(self, stdout: str, stderr: str) -> list[dict[str, Any]]:
        """Return normalized messages: ``{rule, severity, line, message}``."""
        raise NotImplementedError

    async def _invoke(self, file_path: Path) -> list[dict[str, Any]]:
        code, stdout, stderr = await run_command(self.command(file_path), self.project_root, self.env())
        if code not in self.ok_exit_codes:
            detail = (stderr or stdout).strip().splitlines()[:3]
            raise ExternalToolError(f"{self.name} exited with {code} on {file_path}: {' '.join(detail)}")
        try:
            return self.parse(stdout, stderr)
        except (json.JSONDecodeError, KeyError, TypeError, IndexError) as e:
            raise ExternalToolError(f"Unreadable {self.name} output for {file_path}: {e}") from e

    async def lint_file(self, file_path: Path) -> FileScan:
        """Lint one file; tool failures are retried, then yield no findings."""
        messages = await retry_async(
            lambda: self._invoke(file_path),
            fallback=[],
            description=f"{self.name} on {display_path(file_path, self.project_root)}",
        )
        if not messages:
            return FileScan()

        content = await asyncio.to_thread(file_path.read_text, encoding="utf-8", errors="ignore")
        return FileScan(findings=self.to_findings(file_path, messages, split_lines(content)))

    def to_findings(self, file_path: Path, messages: list[dict[str, Any]], lines: list[str]) -> list[Finding]:
        path = display_path(file_path, self.project_root)
        findings: list[Finding] = []
        for msg in messages:
            rule = msg.get("rule")
            if rule and rule in self.exclude_rules:
                continue
            line = msg.get("line") or None
            code, context = code_context(lines, line) if line else ("", "")
            findings.append(Finding(
                type=rule or f"{self.name}_error",
                severity=msg["severity"],
                message=msg["message"],
                file=path,
                line=line,
                code=code or None,
                context=context or None,
                source=self.name,
                rule_id=rule,
            ))
        return findings


class EslintRunner(LinterRunner):
    name = "eslint"
    # 1 means lint problems were found; 2 is a crash or config error
    ok_exit_codes = frozenset({0, 1})

    def command(self, file_path: Path) -> list[str]:
        return [
            "npx", "--no-install", "eslint",
            "--no-eslintrc",
            "--config", str(self.config_path),
            "--format", "json",
            str(file_path),
        ]

    def env(self) -> dict[str, str]:
        env = dict(os.environ)
        env["ESLINT_USE_FLAT_CONFIG"] = "false"
        return env

    def parse(self, stdout: str, stderr: str) -> list[dict[str, Any]]:
        if not stdout.strip():
            return []
        messages = []
        for result in json.loads(stdout):
            for msg in result.get("messages", []):
                messages.append({
                    "rule": msg.get("ruleId"),
                    "severity": eslint_severity(msg.get("severity"), msg.get("fatal", False)),
                    "line": msg.get("line"),
                    "message": msg.get("message", ""),
                })
        return messages


class StylelintRunner(LinterRunner):
    name = "stylelint"
    # 2 means lint problems were found
    ok_exit_codes = frozenset({0, 2})

    def command(self, file_path: Path) -> list[str]:
        return [
            "npx", "--no-install", "stylelint",
            str(file_path),
            "--config", str(self.config_path),
            "--formatter", "json",
        ]

    def parse(self, stdout: str, stderr: str) -> list[dict[str, Any]]:
        # Newer Stylelint releases print the JSON report on stderr
        raw = stdout if stdout.strip() else stderr
        if not raw.strip():
            return []
        messages = []
        for result in json.loads(raw):
            for warning in result.get("warnings", []):
                messages.append({
                    "rule": warning.get("rule"),
                    "severity": Severity.high if warning.get("severity") == "error" else Severity.medium,
                    "line": warning.get("line"),
                    "message": warning.get("text", ""),
                })
        return messages


def eslint_severity(value: Any, fatal: bool = False) -> Severity:
    if fatal or value == 2:
        return Severity.high
    if value == 1:
        return Severity.medium
    return Severity.low
