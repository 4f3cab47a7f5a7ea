"""Fresh Subversion checkouts for build workspaces."""

from .scm import ModuleLocation, Revision, SubversionClientManager
from .updaters import CheckoutError, CheckoutInterrupted, CheckoutUpdater, InMemoryLogSink

__all__ = [
    "CheckoutError",
    "CheckoutInterrupted",
    "CheckoutUpdater",
    "InMemoryLogSink",
    "ModuleLocation",
    "Revision",
    "SubversionClientManager",
]
