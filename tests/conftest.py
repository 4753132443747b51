"""Shared fixtures."""

import os
import subprocess
import tempfile
from pathlib import Path

import pytest

GIT_ENV = {
    **os.environ,
    "GIT_AUTHOR_NAME": "Test",
    "GIT_AUTHOR_EMAIL": "test@test.com",
    "GIT_COMMITTER_NAME": "Test",
    "GIT_COMMITTER_EMAIL": "test@test.com",
}


def git(repo, *args):
    return subprocess.run(["git", *args], cwd=repo, capture_output=True, check=True, text=True, env=GIT_ENV)


@pytest.fixture
def git_repo():
    """Create a temporary git repo on ``main`` with an initial commit."""
    with tempfile.TemporaryDirectory() as tmp:
        repo = Path(tmp).resolve()
        git(repo, "init")
        git(repo, "checkout", "-b", "main")
        (repo / "README.md").write_text("# Test")
        git(repo, "add", ".")
        git(repo, "commit", "-m", "init")
        yield repo


@pytest.fixture
def quiet_config(git_repo):
    """Repo config that never opens a terminal or asks an LLM for names."""
    config_dir = git_repo / ".workbench"
    config_dir.mkdir()
    (config_dir / "config.json").write_text('{"terminal": "none", "useAiBranchNaming": false}')
    return git_repo
