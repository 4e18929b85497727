"""Shared fixtures for ui-code-audit tests."""

import tempfile
from pathlib import Path

import pytest


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def write_files(temp_dir):
    """Write ``{relative_path: content}`` under temp_dir and return the root."""

    def _write(files: dict[str, str]) -> Path:
        for rel, content in files.items():
            path = temp_dir / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return temp_dir

    return _write


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch, tmp_path):
    """Keep env overrides, CI detection and cwd config files out of tests."""
    for name in (
        "UI_AUDIT_BATCH_SIZE",
        "UI_AUDIT_MAX_ISSUES",
        "GITHUB_ACTIONS",
        "GITLAB_CI",
        "JENKINS_URL",
        "CIRCLECI",
        "TRAVIS",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
