"""Performance detectors for JS/TS sources, image assets and package.json.

Detects:
- Chained array passes, deep clones through JSON, index loops over .length
- Listeners and timers the file never releases
- Busy loops and long timers inside async functions
- Oversized or non-web image formats
- Heavyweight dependencies
"""

import re
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any, Iterator

from ..models import Finding, Severity
from .common import DetectorRegistry, FileContext, split_lines

IMAGE_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg", ".bmp", ".tiff", ".gif"})
NON_WEB_FORMATS = frozenset({".bmp", ".tiff"})
LARGE_ASSET_BYTES = 500 * 1024

LARGE_PACKAGES = (
    "lodash",
    "moment",
    "date-fns",
    "ramda",
    "immutable",
    "bootstrap",
    "material-ui",
    "antd",
    "semantic-ui",
)

# (pattern, message, severity)
INEFFICIENT_OPERATIONS: list[tuple[re.Pattern, str, Severity]] = [
    (
        re.compile(r"for\s*\(\s*let\s+\w+\s*=\s*0;\s*\w+\s*<\s*[\w.]+\.length;\s*\w+\+\+\)"),
        "Consider using forEach or for...of instead of traditional for loop",
        Severity.low,
    ),
    (re.compile(r"\.map\(.*\)\.filter\(.*\)"), "Consider combining map and filter operations", Severity.low),
    (re.compile(r"\.filter\(.*\)\.map\(.*\)"), "Consider combining filter and map operations", Severity.low),
    (
        re.compile(r"JSON\.parse\(\s*JSON\.stringify\("),
        "Deep cloning with JSON.parse/stringify is inefficient",
        Severity.medium,
    ),
    (
        re.compile(r"""\.innerHTML\s*=\s*['"`][^'"`<]*['"`]"""),
        "Consider using textContent for text-only content",
        Severity.low,
    ),
]

# (acquire pattern, release call that clears it, message, severity)
LEAK_PATTERNS: list[tuple[re.Pattern, str, str, Severity]] = [
    (
        re.compile(r"\baddEventListener\s*\("),
        "removeEventListener",
        "Event listener added without removal - potential memory leak",
        Severity.medium,
    ),
    (
        re.compile(r"\bsetInterval\s*\("),
        "clearInterval",
        "setInterval used without clearInterval - potential memory leak",
        Severity.high,
    ),
    (
        re.compile(r"\bsetTimeout\s*\("),
        "clearTimeout",
        "setTimeout used without clearTimeout - potential memory leak",
        Severity.medium,
    ),
]

ASYNC_START = re.compile(r"async\s+function|async\s*\(")
BLOCKING_PATTERNS = [
    re.compile(r"while\s*\(\s*true\s*\)", re.IGNORECASE),
    re.compile(r"for\s*\(.*;.*;.*\)"),
    re.compile(r"setTimeout\s*\(.*,[^)]{5,}\)"),
    re.compile(r"setInterval\s*\(.*,[^)]{5,}\)"),
]

RECOMMENDATIONS = {
    "inefficient_operation": "Prefer a single pass or a cheaper built-in",
    "memory_leak": "Release the listener or timer when the owner is torn down",
    "blocking_code_in_async": "Move long-running work out of the event loop or break it up with await",
}


def async_region_lines(lines: list[str]) -> Iterator[int]:
    """Indexes of lines inside an async function body, tracked by brace depth."""
    inside = False
    opened = False
    depth = 0
    for index, line in enumerate(lines):
        if not inside and ASYNC_START.search(line):
            inside, opened, depth = True, False, 0
        if not inside:
            continue
        yield index
        depth += line.count("{") - line.count("}")
        opened = opened or "{" in line
        if opened and depth <= 0:
            inside = False


@dataclass
class PerformanceContext(FileContext):
    """File context with the async regions and released resources resolved up front."""

    async_lines: frozenset[int] = field(init=False, repr=False)
    released: frozenset[str] = field(init=False, repr=False)

    def __post_init__(self):
        super().__post_init__()
        self.async_lines = frozenset(async_region_lines(self.lines))
        text = "\n".join(self.lines)
        self.released = frozenset(release for _, release, _, _ in LEAK_PATTERNS if release in text)


performance_detectors = DetectorRegistry()


@performance_detectors.register("inefficient_operation")
def detect_inefficient_operation(line: str, line_index: int, context: PerformanceContext) -> list[Finding]:
    return [
        context.make_finding(
            "inefficient_operation", severity, line_index, message, RECOMMENDATIONS["inefficient_operation"],
        )
        for pattern, message, severity in INEFFICIENT_OPERATIONS
        if pattern.search(line)
    ]


@performance_detectors.register("memory_leak")
def detect_memory_leak(line: str, line_index: int, context: PerformanceContext) -> list[Finding]:
    return [
        context.make_finding("memory_leak", severity, line_index, message, RECOMMENDATIONS["memory_leak"])
        for pattern, release, message, severity in LEAK_PATTERNS
        if release not in context.released and pattern.search(line)
    ]


@performance_detectors.register("blocking_code_in_async")
def detect_blocking_code_in_async(line: str, line_index: int, context: PerformanceContext) -> list[Finding]:
    if line_index not in context.async_lines:
        return []
    if not any(pattern.search(line) for pattern in BLOCKING_PATTERNS):
        return []
    return [context.make_finding(
        "blocking_code_in_async",
        Severity.medium,
        line_index,
        "Potential blocking code in async context",
        RECOMMENDATIONS["blocking_code_in_async"],
    )]


def scan_performance(path: str, content: str) -> list[Finding]:
    """Run all performance detectors over one source file's content."""
    return performance_detectors.run(PerformanceContext(path=path, lines=split_lines(content)))


def is_image_asset(path: str) -> bool:
    return PurePosixPath(path).suffix.lower() in IMAGE_EXTENSIONS


def check_asset(path: str, size: int) -> list[Finding]:
    """Flag images that are too large or in a format browsers handle poorly."""
    findings = []
    if size > LARGE_ASSET_BYTES:
        findings.append(Finding(
            type="unoptimized_asset",
            severity=Severity.medium,
            message=f"Large image asset detected ({size / 1024:.0f} KB)",
            file=path,
            recommendation="Compress or optimize this image for web",
        ))
    if PurePosixPath(path).suffix.lower() in NON_WEB_FORMATS:
        findings.append(Finding(
            type="unoptimized_asset",
            severity=Severity.medium,
            message="Non-web-optimized image format detected",
            file=path,
            recommendation="Convert to PNG, JPEG, or WebP",
        ))
    return findings


def large_dependency_findings(package_json: dict[str, Any]) -> list[Finding]:
    """Heavy packages listed in dependencies or devDependencies."""
    declared = {**(package_json.get("dependencies") or {}), **(package_json.get("devDependencies") or {})}
    return [
        Finding(
            type="large_dependency",
            severity=Severity.low,
            message=f"Large dependency detected: {package}",
            file="package.json",
            recommendation="Consider using lighter alternatives or tree-shaking",
        )
        for package in LARGE_PACKAGES
        if package in declared
    ]
