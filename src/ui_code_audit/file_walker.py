"""Resolve glob include/exclude patterns into concrete file lists."""

import logging
import os
import re
from functools import lru_cache
from pathlib import Path

from .config import IGNORE_FILE_NAME, AuditConfig

logger = logging.getLogger(__name__)

# Never descended into, whatever the patterns say
ALWAYS_SKIP_DIRS = frozenset({".git", "node_modules"})

_GLOB_CHARS = ("*", "?", "[", "{")
_BRACE = re.compile(r"\{([^{}]*)\}")


def expand_braces(pattern: str) -> list[str]:
    """Expand ``{a,b}`` alternatives: ``*.{js,ts}`` -> ``['*.js', '*.ts']``."""
    match = _BRACE.search(pattern)
    if not match:
        return [pattern]
    head, tail = pattern[: match.start()], pattern[match.end():]
    expanded: list[str] = []
    for option in match.group(1).split(","):
        expanded.extend(expand_braces(f"{head}{option}{tail}"))
    return expanded


@lru_cache(maxsize=512)
def glob_to_regex(pattern: str) -> re.Pattern:
    """Translate a single brace-free glob into an anchored regex over posix paths.

    ``**/`` spans zero or more directories, ``**`` anything, ``*`` and ``?``
    stay within one path segment.
    """
    if pattern.startswith("./"):
        pattern = pattern[2:]
    out: list[str] = []
    i = 0
    while i < len(pattern):
        if pattern.startswith("**/", i):
            out.append("(?:[^/]+/)*")
            i += 3
        elif pattern.startswith("**", i):
            out.append(".*")
            i += 2
        elif pattern[i] == "*":
            out.append("[^/]*")
            i += 1
        elif pattern[i] == "?":
            out.append("[^/]")
            i += 1
        elif pattern[i] == "[":
            end = pattern.find("]", i + 1)
            if end == -1:
                out.append(re.escape(pattern[i]))
                i += 1
            else:
                body = pattern[i + 1:end].replace("\\", "\\\\")
                if body.startswith("!"):
                    body = "^" + body[1:]
                out.append(f"[{body}]")
                i = end + 1
        else:
            out.append(re.escape(pattern[i]))
            i += 1
    return re.compile("^" + "".join(out) + "$")


class PatternSet:
    """Compiled globby-style pattern list: plain entries include, ``!`` entries exclude."""

    def __init__(self, patterns: list[str]):
        self.include: list[re.Pattern] = []
        self.exclude: list[re.Pattern] = []
        for raw in patterns:
            raw = raw.strip()
            if not raw:
                continue
            target = self.exclude if raw.startswith("!") else self.include
            for expanded in expand_braces(raw.lstrip("!")):
                target.append(glob_to_regex(expanded))

    def matches(self, relative_path: str) -> bool:
        if not any(rx.match(relative_path) for rx in self.include):
            return False
        return not any(rx.match(relative_path) for rx in self.exclude)

    def prunes(self, relative_dir: str) -> bool:
        """True when every path below ``relative_dir`` would be excluded."""
        probe = f"{relative_dir}/"
        return any(rx.match(probe) for rx in self.exclude)


def parse_ignore_file(content: str) -> list[str]:
    """Convert ``.ui-code-audit-ignore`` lines into exclude globs.

    Blank lines and ``#`` comments are skipped. Bare names match at any depth,
    as files or as directories. Re-include (``!``) lines are not supported.
    """
    patterns: list[str] = []
    for line in content.splitlines():
        entry = line.strip()
        if not entry or entry.startswith("#"):
            continue
        if entry.startswith("!"):
            logger.debug(f"Ignoring re-include entry in {IGNORE_FILE_NAME}: {entry}")
            continue
        entry = entry.lstrip("/")
        if any(ch in entry for ch in _GLOB_CHARS):
            globs = [entry if entry.startswith("**/") else f"**/{entry}"]
        elif entry.endswith("/"):
            globs = [f"**/{entry}**"]
        else:
            globs = [f"**/{entry}", f"**/{entry}/**"]
        patterns.extend(f"!{g}" for g in globs)
    return patterns


def load_ignore_patterns(project_root: str | Path) -> list[str]:
    """Read the project's ignore file, if any, as exclude globs."""
    ignore_path = Path(project_root) / IGNORE_FILE_NAME
    if not ignore_path.is_file():
        return []
    try:
        content = ignore_path.read_text(encoding="utf-8", errors="ignore")
    except OSError as e:
        logger.warning(f"Could not read {ignore_path}: {e}")
        return []
    patterns = parse_ignore_file(content)
    logger.info(f"Loaded {len(patterns)} ignore patterns from {IGNORE_FILE_NAME}")
    return patterns


def display_path(path: Path, project_root: Path) -> str:
    """Project-relative posix path used in findings and reports."""
    try:
        return path.relative_to(project_root).as_posix()
    except ValueError:
        return path.as_posix()


def resolve_files(project_root: str | Path, patterns: list[str]) -> list[Path]:
    """Walk ``project_root`` and return files matching ``patterns``, sorted by relative path."""
    root = Path(project_root).resolve()
    if not root.is_dir():
        return []

    pattern_set = PatternSet(patterns)
    matched: list[tuple[str, Path]] = []

    for current, dirs, files in os.walk(root):
        current_path = Path(current)
        rel_dir = display_path(current_path, root)
        rel_dir = "" if rel_dir == "." else rel_dir

        kept = []
        for d in dirs:
            if d in ALWAYS_SKIP_DIRS:
                continue
            rel = f"{rel_dir}/{d}" if rel_dir else d
            if not pattern_set.prunes(rel):
                kept.append(d)
        dirs[:] = sorted(kept)

        for name in files:
            rel = f"{rel_dir}/{name}" if rel_dir else name
            if pattern_set.matches(rel):
                matched.append((rel, current_path / name))

    matched.sort(key=lambda item: item[0])
    return [path for _, path in matched]


def pattern_groups(category: str, config: AuditConfig, project_root: str | Path) -> list[list[str]]:
    """Include/exclude glob lists for an audit category, ignore file merged into each."""
    if category == "eslint":
        groups = [config.js_patterns]
    elif category == "stylelint":
        groups = [config.scss_patterns]
    elif category == "accessibility":
        groups = [config.js_patterns, config.html_patterns, config.scss_patterns]
    elif category == "performance":
        groups = [config.js_patterns, config.asset_patterns]
    else:
        return []

    ignore = load_ignore_patterns(project_root) if config.ignore_file.enabled else []
    return [list(group) + ignore for group in groups]


def enumerate_files(category: str, config: AuditConfig, project_root: str | Path) -> list[Path]:
    """Concrete, sorted, de-duplicated file list for one audit category."""
    root = Path(project_root).resolve()
    found: dict[str, Path] = {}
    for group in pattern_groups(category, config, root):
        for path in resolve_files(root, group):
            found.setdefault(display_path(path, root), path)
    return [found[key] for key in sorted(found)]
