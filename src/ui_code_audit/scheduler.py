"""Batched file scanning.

Files are processed in fixed-size batches: every file in a batch is scanned
concurrently, and the next batch only starts once the whole current batch has
resolved. At most ``batch_size`` file scans are ever in flight.
"""

import asyncio
import logging
import math
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, Optional, Sequence, TextIO

from .models import Finding
from .rules.landmarks import CorpusSignals

logger = logging.getLogger(__name__)


@dataclass
class FileScan:
    """What scanning one file produced."""

    findings: list[Finding] = field(default_factory=list)
    signals: CorpusSignals = field(default_factory=CorpusSignals)


@dataclass
class ScanOutcome:
    files_total: int = 0
    files_scanned: int = 0
    batches_run: int = 0
    failures: list[str] = field(default_factory=list)
    signals: CorpusSignals = field(default_factory=CorpusSignals)


ScanFile = Callable[[Path], Awaitable[FileScan]]


class ProgressReporter:
    """In-place ``n/N files checked`` status line."""

    def __init__(self, label: str, total: int, stream: Optional[TextIO] = None):
        self.label = label
        self.total = total
        self.done = 0
        self.stream = stream if stream is not None else sys.stderr

    def advance(self) -> None:
        self.done += 1
        self._write(f"\r[{self.label}] Progress: {self.done}/{self.total} files checked")

    def finish(self) -> None:
        self._write(f"\r[{self.label}] Progress: {self.done}/{self.total} files checked\n")

    def _write(self, text: str) -> None:
        self.stream.write(text)
        self.stream.flush()


def count_batches(total: int, batch_size: int) -> int:
    return math.ceil(total / batch_size) if total else 0


async def _scan_one(path: Path, scan_file: ScanFile, progress: Optional[ProgressReporter]) -> Optional[FileScan]:
    try:
        return await scan_file(path)
    except Exception as e:
        logger.warning(f"Could not scan {path}: {e}")
        return None
    finally:
        if progress:
            progress.advance()


async def _run_batch(
    batch: Sequence[Path],
    scan_file: ScanFile,
    record: Callable[[Finding], object],
    signals: CorpusSignals,
    outcome: ScanOutcome,
    progress: Optional[ProgressReporter],
) -> CorpusSignals:
    results = await asyncio.gather(*(_scan_one(path, scan_file, progress) for path in batch))

    # Input order, not completion order
    for path, result in zip(batch, results):
        if result is None:
            outcome.failures.append(str(path))
            continue
        outcome.files_scanned += 1
        for finding in result.findings:
            record(finding)
        signals = signals.merge(result.signals)
    return signals


async def scan_in_batches(
    files: Sequence[Path],
    scan_file: ScanFile,
    record: Callable[[Finding], object],
    *,
    batch_size: int,
    progress: Optional[ProgressReporter] = None,
    signals: Optional[CorpusSignals] = None,
) -> ScanOutcome:
    """Scan ``files`` in ``ceil(len(files) / batch_size)`` sequential steps.

    Args:
        files: Ordered file list.
        scan_file: Coroutine scanning a single file. Exceptions it raises are
            logged and count as zero findings for that file.
        record: Called once per finding, in input file order.
        batch_size: Files scanned concurrently per step.
        progress: Optional per-file progress reporter.
        signals: Starting corpus accumulator.

    Returns:
        ScanOutcome with counters and the merged corpus signals.
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be at least 1, got {batch_size}")

    outcome = ScanOutcome(files_total=len(files))
    accumulated = signals or CorpusSignals()

    for start in range(0, len(files), batch_size):
        batch = files[start:start + batch_size]
        accumulated = await _run_batch(batch, scan_file, record, accumulated, outcome, progress)
        outcome.batches_run += 1

    if progress:
        progress.finish()

    outcome.signals = accumulated
    if outcome.failures:
        logger.warning(f"{len(outcome.failures)} of {len(files)} files could not be scanned")
    return outcome
