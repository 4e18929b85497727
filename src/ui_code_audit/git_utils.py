"""Shallow-clone a repository for auditing."""

import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from git import Repo


@contextmanager
def cloned_repo(repo_url: str) -> Generator[Path, None, None]:
    """Clone ``repo_url`` (depth 1) into a temp directory, removed on exit."""
    repo_path = Path(tempfile.mkdtemp(prefix="ui_code_audit_"))
    try:
        Repo.clone_from(repo_url, repo_path, depth=1)
        yield repo_path
    finally:
        shutil.rmtree(repo_path, ignore_errors=True)
