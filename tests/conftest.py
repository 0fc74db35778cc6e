"""
Pytest configuration and fixtures for blogdeploy tests.
"""

import os
import subprocess
import sys
from pathlib import Path

import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from blogdeploy.domain.models import DeployConfig
from tests._fixtures.blog_repo import init_blog

# Deterministic git identity, isolated from the user's global config
os.environ.setdefault("GIT_AUTHOR_NAME", "Blog Tester")
os.environ.setdefault("GIT_AUTHOR_EMAIL", "tester@example.com")
os.environ.setdefault("GIT_COMMITTER_NAME", "Blog Tester")
os.environ.setdefault("GIT_COMMITTER_EMAIL", "tester@example.com")
os.environ["GIT_CONFIG_GLOBAL"] = os.devnull
os.environ["GIT_CONFIG_NOSYSTEM"] = "1"


@pytest.fixture
def remote_repo(tmp_path):
    """A bare repository acting as the remote record store."""
    remote = tmp_path / "remote.git"
    subprocess.run(["git", "init", "-q", "--bare", str(remote)], check=True)
    return remote


@pytest.fixture
def blog_repo(tmp_path, remote_repo):
    """Blog working copy; the deploy branch keeps the site at its root."""
    return init_blog(tmp_path / "blog", remote_repo, ".")


@pytest.fixture
def blog_repo_site_dir(tmp_path, remote_repo):
    """Blog working copy; the deploy branch keeps the site under site/."""
    return init_blog(tmp_path / "blog", remote_repo, "site")


@pytest.fixture
def journal_dir(tmp_path):
    return tmp_path / "journal"


@pytest.fixture
def deploy_config(blog_repo, journal_dir):
    """DeployConfig wired to the fake generator and the local bare remote."""
    return DeployConfig(
        repo_path=blog_repo,
        build_command=[sys.executable, "build.py"],
        push_retry_delay=0,
        journal_dir=journal_dir,
    )
