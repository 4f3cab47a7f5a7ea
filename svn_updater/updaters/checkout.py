"""Workspace updater that performs a fresh checkout.

The destination directory is emptied, the revision is resolved (a peg
revision published by a running parameterized job wins over the location
default), and ``svn checkout`` runs with its progress relayed to the build
log through a drain thread, so the checkout never waits on log I/O.
"""

from __future__ import annotations

import logging
import traceback
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .. import config as svn_config
from ..jobs.registry import JobSnapshotProvider
from ..scm.interface import ClientManager, External, ModuleLocation, Revision, SVNClientError, UpdateClient
from .base import BuildLogSink, DefaultRevisionResolver, UpdateTask, WorkspaceUpdater, delete_contents_recursive
from .classifier import CheckoutOutcome, classify_checkout_failure
from .events import ExternalsCollector
from .logging import BuildListener
from .peg import PegRevisionResolver
from .relay import STDERR, LogRelay, RelayWriter
from .revisions import LocationRevisionResolver

logger = logging.getLogger(__name__)


class CheckoutError(IOError):
    """Raised when the checkout failed and the build should fail."""

    def __init__(self, message: str, *, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.__cause__ = cause


class CheckoutInterrupted(Exception):
    """Raised when the checkout was cancelled."""

    def __init__(self, message: str = "checkout interrupted", *, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.__cause__ = cause


@dataclass
class CheckoutTask(UpdateTask):
    """A single fresh checkout, bound to its client and build listener."""

    client: UpdateClient
    listener: BuildListener
    revision_resolver: DefaultRevisionResolver = field(default_factory=LocationRevisionResolver)
    peg_resolver: Optional[PegRevisionResolver] = None
    working_copy_format: Optional[str] = None
    join_timeout: Optional[float] = None

    def perform(self, workspace: Path, location: ModuleLocation) -> Optional[List[External]]:
        """Check `location` out into `workspace`.

        Returns:
            Externals traversed by the checkout, or None when authentication
            failed and the failure was written to the build log

        Raises:
            OSError: If the destination could not be cleaned
            CheckoutError: If the checkout failed
            CheckoutInterrupted: If the checkout was cancelled
            RelayError: If the build log could not be completely written
        """
        local = Path(workspace) / location.local_dir

        self.listener.println(f"Cleaning local Directory {location.local_dir}")
        try:
            delete_contents_recursive(local)
        except OSError as exc:
            logger.error("Failed to clean %s for %s: %s", local, location.remote, exc)
            self.listener.error(f"Failed to clean {location.local_dir} for {location.remote}")
            raise

        relay = LogRelay(self.listener.sink)
        out = relay.open()
        try:
            revision = self._resolve_revision(location, out)
            collector = ExternalsCollector(out, local, location.local_dir)
            if not self._checkout(local, location, revision, collector, out):
                return None
        finally:
            try:
                relay.close()
            finally:
                relay.join(self.join_timeout)

        externals = collector.externals
        logger.info("Checked out %s with %d externals", location.remote, len(externals))
        return externals

    def _resolve_revision(self, location: ModuleLocation, out: RelayWriter) -> Revision:
        if self.peg_resolver is not None:
            override = self.peg_resolver.find_override()
            if override is not None:
                out.println(
                    f"{override.parameter_name}: {override.value} (from running job {override.job_name})"
                )
                return override.revision
        return self.revision_resolver.resolve_default(location)

    def _checkout(
        self,
        local: Path,
        location: ModuleLocation,
        revision: Revision,
        collector: ExternalsCollector,
        out: RelayWriter,
    ) -> bool:
        """Run the checkout; False when the failure was reported instead of raised."""
        try:
            out.println(f"Checking out {location.url} at revision {revision}")
            self.client.set_event_handler(collector)
            self.client.set_externals_handler(collector)
            self.client.checkout(
                location.url,
                local,
                depth=location.depth,
                revision=revision,
                allow_unversioned_obstructions=True,
                ignore_externals=location.ignore_externals,
                event_handler=collector,
                externals_handler=collector,
                working_copy_format=self.working_copy_format,
            )
        except SVNClientError as exc:
            classification = classify_checkout_failure(exc)
            if classification.outcome is CheckoutOutcome.REPORTED_FAILURE:
                logger.error("Authentication failed checking out %s: %s", location.remote, exc)
                self._report(out, f"Failed to check out {location.remote}", exc)
                return False
            if classification.outcome is CheckoutOutcome.INTERRUPTED:
                logger.warning("Checkout of %s canceled: %s", location.remote, exc)
                out.error(f"Subversion checkout of {location.remote} has been canceled")
                raise CheckoutInterrupted(f"checkout of {location.remote} canceled", cause=exc)
            logger.error("Failed to check out %s: %s", location.remote, exc, exc_info=True)
            self._report(out, f"Failed to check out {location.remote}", exc)
            raise CheckoutError(f"Failed to check out {location.remote}", cause=exc)
        return True

    @staticmethod
    def _report(out: RelayWriter, message: str, exc: BaseException) -> None:
        out.error(message)
        out.write("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)), STDERR)


class CheckoutUpdater(WorkspaceUpdater):
    """WorkspaceUpdater that does a fresh checkout.

    Args:
        job_provider: Source of running parameterized jobs for peg overrides
        peg_parameter: Override parameter name (config default when None)
    """

    def __init__(
        self,
        job_provider: Optional[JobSnapshotProvider] = None,
        peg_parameter: Optional[str] = None,
    ) -> None:
        self.job_provider = job_provider
        self.peg_parameter = peg_parameter

    def create_task(
        self,
        client_manager: ClientManager,
        listener: BuildListener,
        revision_resolver: Optional[DefaultRevisionResolver] = None,
    ) -> CheckoutTask:
        return CheckoutTask(
            client=client_manager.get_update_client(),
            listener=listener,
            revision_resolver=revision_resolver or LocationRevisionResolver(),
            peg_resolver=PegRevisionResolver(self.job_provider, self.peg_parameter),
            working_copy_format=svn_config.working_copy_format(),
            join_timeout=svn_config.relay_join_timeout(),
        )

    def perform(
        self,
        workspace: Path,
        location: ModuleLocation,
        sink: BuildLogSink,
        client_manager: ClientManager,
        revision_resolver: Optional[DefaultRevisionResolver] = None,
    ) -> Optional[List[External]]:
        """Create a task for `sink` and run it once."""
        task = self.create_task(client_manager, BuildListener(sink), revision_resolver)
        return task.perform(workspace, location)
