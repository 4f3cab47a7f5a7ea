"""Thread-safe registry of build jobs and their declared parameters."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParameterDefinition:
    """A job parameter declaration with an optional default value."""

    name: str
    default: Optional[str] = None
    description: str = ""


@dataclass
class JobInfo:
    """Job information stored in registry."""

    name: str
    parameters: Dict[str, ParameterDefinition] = field(default_factory=dict)
    building: bool = False
    build_number: int = 0

    @property
    def parameterized(self) -> bool:
        return bool(self.parameters)


@dataclass(frozen=True)
class JobSnapshot:
    """Read-only, point-in-time view of a building parameterized job."""

    name: str
    parameters: Mapping[str, ParameterDefinition]
    building: bool = True
    build_number: int = 0


class JobSnapshotProvider(Protocol):
    def list_building_parameterized_jobs(self) -> List[JobSnapshot]:  # pragma: no cover - protocol
        ...


class JobRegistry:
    """Thread-safe job registry.

    Uses RLock for thread-safe operations. Jobs keep their registration
    order, which is the order sibling jobs are listed in.
    """

    def __init__(self) -> None:
        self._jobs: Dict[str, JobInfo] = {}
        self._lock = threading.RLock()

    def register_job(
        self,
        name: str,
        parameters: Optional[Iterable[ParameterDefinition]] = None,
    ) -> JobInfo:
        """Register a job (replacing any job of the same name).

        Args:
            name: Job name
            parameters: Optional parameter declarations

        Returns:
            The registered JobInfo
        """
        with self._lock:
            info = JobInfo(
                name=name,
                parameters={p.name: p for p in parameters or ()},
            )
            self._jobs.pop(name, None)
            self._jobs[name] = info
            logger.debug("Registered job: %s (%d parameters)", name, len(info.parameters))
            return info

    def unregister_job(self, name: str) -> None:
        with self._lock:
            if self._jobs.pop(name, None) is not None:
                logger.debug("Unregistered job: %s", name)

    def mark_building(self, name: str) -> None:
        """Mark a job as building and start a new build number.

        Raises:
            KeyError: If the job is not registered
        """
        with self._lock:
            info = self._jobs[name]
            info.building = True
            info.build_number += 1
            logger.debug("Job %s build #%d started", name, info.build_number)

    def mark_finished(self, name: str) -> None:
        with self._lock:
            info = self._jobs.get(name)
            if info is not None and info.building:
                info.building = False
                logger.debug("Job %s build #%d finished", name, info.build_number)

    def get(self, name: str) -> Optional[JobInfo]:
        with self._lock:
            return self._jobs.get(name)

    def list_jobs(self, building_only: bool = False) -> List[JobInfo]:
        """List registered jobs in registration order.

        Args:
            building_only: If True, only return jobs with a build in progress
        """
        with self._lock:
            jobs = list(self._jobs.values())
            if building_only:
                jobs = [j for j in jobs if j.building]
            return jobs

    def list_building_parameterized_jobs(self) -> List[JobSnapshot]:
        """Snapshot every building job that declares parameters."""
        with self._lock:
            return [
                JobSnapshot(
                    name=info.name,
                    parameters=MappingProxyType(dict(info.parameters)),
                    building=True,
                    build_number=info.build_number,
                )
                for info in self._jobs.values()
                if info.building and info.parameterized
            ]

    def clear(self) -> None:
        """Clear all entries."""
        with self._lock:
            self._jobs.clear()
