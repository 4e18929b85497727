"""Line-oriented detectors for the accessibility and performance audits."""

from .accessibility import accessibility_detectors, scan_accessibility
from .common import DetectorRegistry, FileContext, code_context, truncate
from .landmarks import CorpusSignals, project_findings, scan_corpus_signals
from .performance import performance_detectors, scan_performance

__all__ = [
    "accessibility_detectors",
    "scan_accessibility",
    "DetectorRegistry",
    "FileContext",
    "code_context",
    "truncate",
    "CorpusSignals",
    "project_findings",
    "scan_corpus_signals",
    "performance_detectors",
    "scan_performance",
]
