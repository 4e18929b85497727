"""Project-wide landmark and skip-link checks.

These cannot be decided per file: one layout component providing ``<main>``
satisfies the whole project. Each file contributes a ``CorpusSignals`` value
and the scheduler folds them together with logical OR.
"""

import re
from dataclasses import dataclass

from ..models import Finding
from .accessibility import SEVERITY_LEVELS, WCAG_MAPPING

PROJECT_WIDE_LOCATION = "."

LANDMARK_ELEMENT = re.compile(r"<(?:main|nav|aside|header|footer)\b[^>]*>", re.IGNORECASE)
LANDMARK_ROLE = re.compile(
    r"""\brole\s*=\s*["'](?:main|navigation|banner|contentinfo|complementary)["']""",
    re.IGNORECASE,
)
SKIP_LINK = re.compile(
    r"""<a\b[^>]*\bhref\s*=\s*["']#[\w-]+["'][^>]*>\s*skip\b""",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class CorpusSignals:
    """Accumulated evidence across every scanned file."""

    landmark: bool = False
    skip_link: bool = False

    def merge(self, other: "CorpusSignals") -> "CorpusSignals":
        return CorpusSignals(
            landmark=self.landmark or other.landmark,
            skip_link=self.skip_link or other.skip_link,
        )


def scan_corpus_signals(content: str) -> CorpusSignals:
    return CorpusSignals(
        landmark=bool(LANDMARK_ELEMENT.search(content) or LANDMARK_ROLE.search(content)),
        skip_link=bool(SKIP_LINK.search(content)),
    )


def project_findings(signals: CorpusSignals) -> list[Finding]:
    """Findings for whatever the whole corpus failed to provide."""
    findings: list[Finding] = []
    if not signals.landmark:
        findings.append(Finding(
            type="missing_landmark",
            severity=SEVERITY_LEVELS["missing_landmark"],
            message="No landmark roles (<main>, <nav>, <aside>, <header>, <footer>) found in project",
            file=PROJECT_WIDE_LOCATION,
            recommendation="Add semantic landmark elements for better accessibility",
            wcag=WCAG_MAPPING["missing_landmark"],
        ))
    if not signals.skip_link:
        findings.append(Finding(
            type="missing_skip_link",
            severity=SEVERITY_LEVELS["missing_skip_link"],
            message='No skip link found (e.g., <a href="#main-content">Skip to main content</a>)',
            file=PROJECT_WIDE_LOCATION,
            recommendation="Add a skip link for keyboard users",
            wcag=WCAG_MAPPING["missing_skip_link"],
        ))
    return findings
