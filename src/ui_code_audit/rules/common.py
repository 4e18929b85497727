"""Rule engine plumbing: file context, snippet handling and the detector registry."""

import re
from dataclasses import dataclass, field
from typing import Callable, Iterator, Optional

from ..models import Finding, Severity, truncate

CONTEXT_RADIUS = 2

HEADING_OPEN = re.compile(r"<h([1-6])\b[^>]*>", re.IGNORECASE)


def split_lines(content: str) -> list[str]:
    """Split on newlines only, so line numbers match what editors show."""
    return [line.rstrip("\r") for line in content.split("\n")]


def code_context(lines: list[str], line_number: int, radius: int = CONTEXT_RADIUS) -> tuple[str, str]:
    """Return ``(code, context)`` for a 1-indexed line.

    Context lines are trimmed, leading and trailing blanks dropped, runs of
    blank lines collapsed to one. Each line is rendered with its real line
    number, ``>>>`` marking the target.
    """
    if not 1 <= line_number <= len(lines):
        return "", ""

    code = truncate(lines[line_number - 1].strip())

    start = max(1, line_number - radius)
    end = min(len(lines), line_number + radius)
    window = [(n, lines[n - 1].strip()) for n in range(start, end + 1)]

    while window and not window[0][1] and window[0][0] != line_number:
        window.pop(0)
    while window and not window[-1][1] and window[-1][0] != line_number:
        window.pop()

    rendered: list[str] = []
    last_blank = False
    for n, text in window:
        if not text:
            if last_blank:
                continue
            last_blank = True
        else:
            last_blank = False
        marker = ">>>" if n == line_number else "   "
        rendered.append(truncate(f"{marker} {n}: {text}"))

    return code, "\n".join(rendered)


@dataclass
class FileContext:
    """Per-file state shared by detectors.

    Heading positions are indexed once up front so detectors can ask which
    levels appeared before a given line without mutating anything.
    """

    path: str
    lines: list[str]
    accessible_components: tuple[str, ...] = ()
    headings: list[tuple[int, int]] = field(init=False, repr=False)

    def __post_init__(self):
        self.headings = [
            (index, int(match.group(1)))
            for index, line in enumerate(self.lines)
            for match in HEADING_OPEN.finditer(line)
        ]

    def heading_levels_before(self, line_index: int) -> set[int]:
        return {level for index, level in self.headings if index < line_index}

    def heading_count_before(self, line_index: int, level: int) -> int:
        return sum(1 for index, lvl in self.headings if index < line_index and lvl == level)

    def make_finding(
        self,
        type: str,
        severity: Severity,
        line_index: int,
        message: str,
        recommendation: Optional[str] = None,
        wcag: Optional[str] = None,
    ) -> Finding:
        line_number = line_index + 1
        code, context = code_context(self.lines, line_number)
        return Finding(
            type=type,
            severity=severity,
            message=message,
            file=self.path,
            line=line_number,
            code=code or None,
            context=context or None,
            recommendation=recommendation,
            wcag=wcag,
            source="custom",
        )


Detector = Callable[[str, int, FileContext], list[Finding]]


class DetectorRegistry:
    """Ordered collection of per-line detectors."""

    def __init__(self):
        self._detectors: list[tuple[str, Detector]] = []

    def register(self, name: str) -> Callable[[Detector], Detector]:
        def decorator(func: Detector) -> Detector:
            if name in self.names:
                raise ValueError(f"Detector already registered: {name}")
            self._detectors.append((name, func))
            return func

        return decorator

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self._detectors]

    def __iter__(self) -> Iterator[tuple[str, Detector]]:
        return iter(self._detectors)

    def __len__(self) -> int:
        return len(self._detectors)

    def run(self, context: FileContext) -> list[Finding]:
        """Apply every detector to every line, in line order then registry order."""
        findings: list[Finding] = []
        for index, line in enumerate(context.lines):
            for _, detector in self._detectors:
                findings.extend(detector(line, index, context))
        return findings
