"""Peg revision override taken from concurrently building parameterized jobs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from .. import config as svn_config
from ..jobs.registry import JobSnapshot, JobSnapshotProvider
from ..scm.interface import Revision

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PegOverride:
    """Where an override revision came from."""

    job_name: str
    parameter_name: str
    value: str
    revision: Revision


class PegRevisionResolver:
    """Finds a peg revision declared by a running parameterized job.

    Every building job that declares parameters is checked for the override
    parameter; the first one whose default value is a non-empty revision
    wins, in the order the provider lists the jobs. The view is a fresh
    snapshot per call and may race with jobs starting or finishing.
    """

    def __init__(
        self,
        provider: Optional[JobSnapshotProvider] = None,
        parameter_name: Optional[str] = None,
    ) -> None:
        self.provider = provider
        self.parameter_name = parameter_name or svn_config.peg_parameter()

    def _snapshot(self, jobs: Optional[Iterable[JobSnapshot]]) -> Iterable[JobSnapshot]:
        if jobs is not None:
            return jobs
        if self.provider is None:
            return ()
        return self.provider.list_building_parameterized_jobs()

    def find_override(self, jobs: Optional[Iterable[JobSnapshot]] = None) -> Optional[PegOverride]:
        """Return the first usable override, or None."""
        for job in self._snapshot(jobs):
            if not job.building or not job.parameters:
                continue
            definition = job.parameters.get(self.parameter_name)
            if definition is None:
                continue
            value = (definition.default or "").strip()
            if not value:
                logger.debug("Job %s declares %s without a default", job.name, self.parameter_name)
                continue
            try:
                revision = Revision.parse(value)
            except ValueError as exc:
                logger.warning(
                    "Ignoring %s=%r of job %s: %s", self.parameter_name, value, job.name, exc
                )
                continue
            logger.info(
                "Peg revision %s taken from %s of running job %s",
                revision,
                self.parameter_name,
                job.name,
            )
            return PegOverride(
                job_name=job.name,
                parameter_name=self.parameter_name,
                value=value,
                revision=revision,
            )
        return None

    def resolve(self, jobs: Optional[Iterable[JobSnapshot]] = None) -> Optional[Revision]:
        """Return the override revision, or None when the default applies."""
        override = self.find_override(jobs)
        return override.revision if override else None
