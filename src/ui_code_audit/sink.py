"""Append-only issue log for one audit category.

The in-memory list is authoritative. When a report directory is given, every
recorded finding is also queued for a background writer that appends it as one
JSON line to ``<category>-issues.jsonl``. Recording never waits on disk.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import IO, Optional

from .config import DEFAULT_MAX_ISSUES
from .errors import SinkError
from .models import Finding

logger = logging.getLogger(__name__)

_CLOSE = None


def stream_path(report_dir: str | Path, category: str) -> Path:
    return Path(report_dir) / f"{category}-issues.jsonl"


class IssueLog:
    """Authoritative finding log with an optional JSONL write-behind mirror.

    Usage:
        async with IssueLog("accessibility", report_dir) as log:
            log.record(finding)
        findings = log.findings
    """

    def __init__(
        self,
        category: str,
        report_dir: str | Path | None = None,
        max_issues: int = DEFAULT_MAX_ISSUES,
    ):
        self.category = category
        self.path: Optional[Path] = stream_path(report_dir, category) if report_dir else None
        self.max_issues = max_issues
        self._findings: list[Finding] = []
        self._queue: Optional[asyncio.Queue] = None
        self._writer: Optional[asyncio.Task] = None
        self._handle: Optional[IO[str]] = None
        self._opened = False
        self._closed = False
        self._dropped = 0

    @property
    def findings(self) -> list[Finding]:
        return list(self._findings)

    @property
    def dropped(self) -> int:
        return self._dropped

    def __len__(self) -> int:
        return len(self._findings)

    async def open(self) -> "IssueLog":
        """Delete any previous stream and start the writer.

        Raises:
            SinkError: If the stream file cannot be created.
        """
        if self._opened:
            raise RuntimeError(f"Issue log for {self.category} already opened")
        self._opened = True

        if self.path is not None:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self.path.unlink(missing_ok=True)
                self._handle = open(self.path, "a", encoding="utf-8")
            except OSError as e:
                raise SinkError(f"Cannot open issue stream {self.path}: {e}") from e
            self._queue = asyncio.Queue()
            self._writer = asyncio.create_task(self._drain())
        return self

    def record(self, finding: Finding) -> bool:
        """Append a finding. Returns False when the cap has been reached."""
        if not self._opened or self._closed:
            raise RuntimeError(f"Issue log for {self.category} is not open")

        if len(self._findings) >= self.max_issues:
            if self._dropped == 0:
                logger.warning(
                    f"[{self.category}] reached max_issues={self.max_issues}; further findings are dropped"
                )
            self._dropped += 1
            return False

        self._findings.append(finding)
        if self._queue is not None:
            self._queue.put_nowait(json.dumps(finding.to_record(), ensure_ascii=False) + "\n")
        return True

    async def _drain(self) -> None:
        while True:
            line = await self._queue.get()
            if line is _CLOSE:
                break
            if self._handle is None:
                continue
            try:
                await asyncio.to_thread(self._handle.write, line)
            except OSError as e:
                logger.error(f"Writing to {self.path} failed, mirror disabled: {e}")
                self._close_handle()
            except ValueError as e:
                # Unencodable text, e.g. a lone surrogate; the in-memory log still has it
                logger.warning(f"Skipped a finding in {self.path}: {e}")

    def _close_handle(self) -> None:
        if self._handle is not None:
            try:
                self._handle.close()
            except OSError as e:
                logger.error(f"Closing {self.path} failed: {e}")
            self._handle = None

    async def aclose(self) -> None:
        """Flush queued lines and close the stream. Idempotent."""
        if self._closed:
            return
        self._closed = True
        if self._writer is not None:
            self._queue.put_nowait(_CLOSE)
            await self._writer
            self._writer = None
        self._close_handle()
        if self._dropped:
            logger.warning(f"[{self.category}] {self._dropped} findings dropped past max_issues")

    async def __aenter__(self) -> "IssueLog":
        return await self.open()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
