# tests/conftest.py
import shutil
import subprocess

import pytest


def git(cwd, *args):
    """Runs git for test setup and returns its stdout."""
    result = subprocess.run(
        ["git", *args], cwd=str(cwd), check=True, capture_output=True, text=True,
    )
    return result.stdout


@pytest.fixture
def run_git():
    return git


@pytest.fixture
def git_env(tmp_path, monkeypatch):
    """An isolated git environment with a fixed identity."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Build Bot")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "bot@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Build Bot")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "bot@example.com")
    return home


@pytest.fixture
def remote_repo(tmp_path, git_env):
    """
    A bare repository at <tmp>/remotes/acme/site.git whose master branch holds
    an index.md and a site.json.
    """
    remote = tmp_path / "remotes" / "acme" / "site.git"
    remote.mkdir(parents=True)
    git(remote, "init", "-q", "--bare")
    git(remote, "symbolic-ref", "HEAD", "refs/heads/master")

    seed = tmp_path / "seed"
    seed.mkdir()
    git(seed, "init", "-q")
    (seed / "index.md").write_text("# Hello\n")
    (seed / "site.json").write_text('{"title": "Acme"}')
    git(seed, "add", "-A")
    git(seed, "commit", "-q", "-m", "Initial content")
    git(seed, "remote", "add", "origin", str(remote))
    git(seed, "push", "-q", "origin", "HEAD:refs/heads/master")
    return remote
