"""Workspace updaters bring a build workspace to a repository revision.

Boundary rules:
- Updaters depend only on the `svn_updater.scm.interface` protocols.
- Build log output goes through a `BuildListener` or the log relay, never
  straight to stdout.
"""

from .base import BuildLogSink, DefaultRevisionResolver, UpdateTask, WorkspaceUpdater, delete_contents_recursive
from .checkout import CheckoutError, CheckoutInterrupted, CheckoutTask, CheckoutUpdater
from .classifier import CheckoutOutcome, FailureClassification, classify_checkout_failure
from .events import ExternalsCollector
from .logging import BuildListener, FileBuildLogSink, InMemoryLogSink
from .peg import PegOverride, PegRevisionResolver
from .relay import LogRelay, RelayError, RelayWriter
from .revisions import LocationRevisionResolver

__all__ = [
    "BuildListener",
    "BuildLogSink",
    "CheckoutError",
    "CheckoutInterrupted",
    "CheckoutOutcome",
    "CheckoutTask",
    "CheckoutUpdater",
    "DefaultRevisionResolver",
    "ExternalsCollector",
    "FailureClassification",
    "FileBuildLogSink",
    "InMemoryLogSink",
    "LocationRevisionResolver",
    "LogRelay",
    "PegOverride",
    "PegRevisionResolver",
    "RelayError",
    "RelayWriter",
    "UpdateTask",
    "WorkspaceUpdater",
    "classify_checkout_failure",
    "delete_contents_recursive",
]
