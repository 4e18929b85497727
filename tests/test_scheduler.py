"""Tests for batched file scanning."""

import asyncio
import io
import math
from pathlib import Path

import pytest

from ui_code_audit.models import Finding, Severity
from ui_code_audit.rules import CorpusSignals
from ui_code_audit.scheduler import (
    FileScan,
    ProgressReporter,
    count_batches,
    scan_in_batches,
)


def _finding(path: Path, n: int = 1) -> Finding:
    return Finding(type="missing_alt", severity=Severity.high, message=f"m{n}", file=str(path), line=n)


def _paths(count: int) -> list[Path]:
    return [Path(f"src/file{i:03d}.jsx") for i in range(count)]


class TestBatching:
    """Test batch counts and concurrency bounds."""

    @pytest.mark.parametrize("total,batch_size", [(1, 5), (5, 5), (12, 5), (100, 7), (3, 1)])
    async def test_batches_run_is_ceiling(self, total, batch_size):
        async def scan(path):
            return FileScan()

        outcome = await scan_in_batches(_paths(total), scan, lambda f: None, batch_size=batch_size)
        assert outcome.batches_run == math.ceil(total / batch_size)
        assert outcome.files_total == total
        assert outcome.files_scanned == total

    async def test_no_files_no_batches(self):
        async def scan(path):
            raise AssertionError("should not be called")

        outcome = await scan_in_batches([], scan, lambda f: None, batch_size=5)
        assert outcome.batches_run == 0
        assert outcome.files_scanned == 0

    async def test_in_flight_never_exceeds_batch_size(self):
        in_flight = 0
        peak = 0

        async def scan(path):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0)
            await asyncio.sleep(0)
            in_flight -= 1
            return FileScan()

        await scan_in_batches(_paths(23), scan, lambda f: None, batch_size=4)
        assert peak == 4

    async def test_next_batch_waits_for_slowest(self):
        events = []

        async def scan(path):
            index = int(path.stem[-3:])
            events.append(("start", index))
            await asyncio.sleep(0.02 if index == 0 else 0)
            events.append(("end", index))
            return FileScan()

        await scan_in_batches(_paths(4), scan, lambda f: None, batch_size=2)
        assert events.index(("end", 0)) < events.index(("start", 2))

    async def test_zero_batch_size_rejected(self):
        async def scan(path):
            return FileScan()

        with pytest.raises(ValueError):
            await scan_in_batches(_paths(2), scan, lambda f: None, batch_size=0)

    def test_count_batches(self):
        assert count_batches(0, 5) == 0
        assert count_batches(10, 5) == 2
        assert count_batches(11, 5) == 3


class TestRecording:
    """Test ordering, failures and signal accumulation."""

    async def test_findings_recorded_in_input_order(self):
        recorded = []

        async def scan(path):
            index = int(path.stem[-3:])
            # Later files in a batch finish first
            await asyncio.sleep(0.001 * (10 - index))
            return FileScan(findings=[_finding(path, 1), _finding(path, 2)])

        files = _paths(10)
        await scan_in_batches(files, scan, recorded.append, batch_size=5)
        assert [f.file for f in recorded] == [str(p) for p in files for _ in range(2)]
        assert [f.line for f in recorded[:2]] == [1, 2]

    async def test_failed_file_counts_as_no_findings(self, caplog):
        recorded = []

        async def scan(path):
            if path.stem == "file001":
                raise UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")
            return FileScan(findings=[_finding(path)])

        files = _paths(3)
        outcome = await scan_in_batches(files, scan, recorded.append, batch_size=2)

        assert outcome.files_scanned == 2
        assert outcome.failures == [str(files[1])]
        assert [f.file for f in recorded] == [str(files[0]), str(files[2])]
        assert "Could not scan" in caplog.text

    async def test_signals_merged_with_or(self):
        async def scan(path):
            index = int(path.stem[-3:])
            return FileScan(signals=CorpusSignals(landmark=index == 3, skip_link=index == 7))

        outcome = await scan_in_batches(_paths(9), scan, lambda f: None, batch_size=2)
        assert outcome.signals == CorpusSignals(landmark=True, skip_link=True)

    async def test_signals_default_to_false(self):
        async def scan(path):
            return FileScan()

        outcome = await scan_in_batches(_paths(4), scan, lambda f: None, batch_size=3)
        assert outcome.signals == CorpusSignals()


class TestProgressReporter:
    """Test the status line."""

    async def test_reports_every_file(self):
        stream = io.StringIO()
        progress = ProgressReporter("Accessibility", 3, stream)

        async def scan(path):
            return FileScan()

        await scan_in_batches(_paths(3), scan, lambda f: None, batch_size=2, progress=progress)

        output = stream.getvalue()
        assert "[Accessibility] Progress: 1/3 files checked" in output
        assert output.endswith("[Accessibility] Progress: 3/3 files checked\n")
        assert progress.done == 3
