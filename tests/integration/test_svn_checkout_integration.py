"""Integration tests for CheckoutUpdater against a real local Subversion repository.

These tests validate that the updater can:
1. Check out a repository URL into a cleaned workspace directory
2. Follow and report svn:externals
3. Honor a peg revision published by a running parameterized job
4. Surface client failures as CheckoutError
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

import pytest

from svn_updater import config as svn_config
from svn_updater.jobs.registry import JobRegistry, ParameterDefinition
from svn_updater.scm.interface import External, ModuleLocation
from svn_updater.scm.svn import SubversionClientManager
from svn_updater.updaters.checkout import CheckoutError, CheckoutUpdater
from svn_updater.updaters.logging import FileBuildLogSink, InMemoryLogSink

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

requires_svn = pytest.mark.skipif(
    shutil.which("svn") is None or shutil.which("svnadmin") is None,
    reason="Subversion command line tools not available",
)

pytestmark = requires_svn


def svn(*args, cwd=None):
    subprocess.run(["svn", "--non-interactive", *args], check=True, cwd=cwd, capture_output=True)


@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    svn_config.reset_config()
    for name in ("SVN_UPDATER_CONFIG", "SVN_UPDATER_PEG_PARAMETER", "SVN_UPDATER_SVN_COMMAND"):
        monkeypatch.delenv(name, raising=False)
    yield
    svn_config.reset_config()


@pytest.fixture(scope="module")
def repository(tmp_path_factory):
    """Repository with trunk (r1), lib (r2) and an externals definition on trunk (r3)."""
    base = tmp_path_factory.mktemp("svnrepo")
    repo = base / "repo"
    subprocess.run(["svnadmin", "create", str(repo)], check=True, capture_output=True)
    url = repo.as_uri()

    trunk_src = base / "trunk-src"
    trunk_src.mkdir()
    (trunk_src / "README").write_text("project\n")
    (trunk_src / "src").mkdir()
    (trunk_src / "src" / "main.c").write_text("int main(void) { return 0; }\n")
    svn("import", str(trunk_src), f"{url}/trunk", "-m", "import trunk")

    lib_src = base / "lib-src"
    lib_src.mkdir()
    (lib_src / "lib.h").write_text("#pragma once\n")
    svn("import", str(lib_src), f"{url}/lib", "-m", "import lib")

    wc = base / "wc"
    svn("checkout", f"{url}/trunk", str(wc))
    svn("propset", "svn:externals", "^/lib lib\n-r 2 ^/lib pinned/lib\n", str(wc))
    svn("commit", "-m", "add externals", str(wc))

    return url


@pytest.fixture
def workspace(tmp_path):
    ws = tmp_path / "workspace"
    (ws / "mod").mkdir(parents=True)
    (ws / "mod" / "leftover.o").write_text("stale")
    return ws


class TestSubversionCheckout:
    """Test fresh checkouts with the svn command line client."""

    def test_checkout_with_externals(self, repository, workspace):
        """Test a checkout populates the tree and reports externals."""
        sink = InMemoryLogSink()
        location = ModuleLocation(f"{repository}/trunk", local="mod")

        externals = CheckoutUpdater().perform(workspace, location, sink, SubversionClientManager())

        mod = workspace / "mod"
        assert not (mod / "leftover.o").exists()
        assert (mod / "README").read_text() == "project\n"
        assert (mod / "src" / "main.c").exists()
        assert (mod / "lib" / "lib.h").exists()
        assert (mod / "pinned" / "lib" / "lib.h").exists()
        assert externals == [
            External("mod/lib", f"{repository}/lib", None),
            External("mod/pinned/lib", f"{repository}/lib", 2),
        ]
        assert "Cleaning local Directory mod" in sink.text
        assert "Fetching external item into 'mod/lib'" in sink.text

    def test_checkout_is_repeatable(self, repository, workspace):
        """Test two checkouts of an unchanged repository report the same externals."""
        location = ModuleLocation(f"{repository}/trunk", local="mod")
        updater = CheckoutUpdater()

        first = updater.perform(workspace, location, InMemoryLogSink(), SubversionClientManager())
        second = updater.perform(workspace, location, InMemoryLogSink(), SubversionClientManager())

        assert first == second

    def test_peg_override_from_running_job(self, repository, workspace):
        """Test a running job's override revision is checked out."""
        registry = JobRegistry()
        registry.register_job("release", [ParameterDefinition("SVN_PEG_PARAMETER", "1")])
        registry.mark_building("release")
        location = ModuleLocation(f"{repository}/trunk", local="mod")
        sink = InMemoryLogSink()

        externals = CheckoutUpdater(registry).perform(workspace, location, sink, SubversionClientManager())

        # externals were added in r3
        assert externals == []
        assert (workspace / "mod" / "README").exists()
        assert not (workspace / "mod" / "lib").exists()
        assert "SVN_PEG_PARAMETER: 1 (from running job release)" in sink.text

    def test_ignore_externals(self, repository, workspace):
        """Test externals are neither fetched nor reported when ignored."""
        location = ModuleLocation(f"{repository}/trunk", local="mod", ignore_externals=True)

        externals = CheckoutUpdater().perform(workspace, location, InMemoryLogSink(), SubversionClientManager())

        assert externals == []
        assert not (workspace / "mod" / "lib").exists()

    def test_missing_path_fails(self, repository, workspace, tmp_path):
        """Test a nonexistent repository path raises CheckoutError and is logged."""
        location = ModuleLocation(f"{repository}/branches/missing", local="mod")
        log_path = tmp_path / "logs" / "checkout.log"

        with FileBuildLogSink(logger, log_path) as sink:
            with pytest.raises(CheckoutError):
                CheckoutUpdater().perform(workspace, location, sink, SubversionClientManager())

        log_text = log_path.read_text()
        assert f"Failed to check out {repository}/branches/missing" in log_text

    def test_missing_svn_binary(self, repository, workspace):
        """Test an unusable svn command raises CheckoutError."""
        location = ModuleLocation(f"{repository}/trunk", local="mod")
        manager = SubversionClientManager("/nonexistent/bin/svn")

        with pytest.raises(CheckoutError):
            CheckoutUpdater().perform(workspace, location, InMemoryLogSink(), manager)
