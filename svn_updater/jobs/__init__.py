"""Registry of build jobs consulted for cross-job revision overrides."""

from .registry import JobInfo, JobRegistry, JobSnapshot, JobSnapshotProvider, ParameterDefinition

__all__ = [
    "JobInfo",
    "JobRegistry",
    "JobSnapshot",
    "JobSnapshotProvider",
    "ParameterDefinition",
]
