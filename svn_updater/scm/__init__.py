"""Subversion client integration for workspace checkouts.

Callers depend on the `UpdateClient`/`ClientManager` protocols; only
`svn.py` talks to the ``svn`` command line client.
"""

from .externals import ExternalDefinition, parse_definition, parse_externals, resolve_url
from .interface import (
    ClientManager,
    Depth,
    ErrorKind,
    EventAction,
    External,
    ExternalsHandler,
    ModuleLocation,
    Revision,
    RevisionKind,
    SVNClientError,
    SVNEvent,
    UpdateClient,
    UpdateEventHandler,
)
from .svn import SubversionClientManager, SubversionUpdateClient

__all__ = [
    "ClientManager",
    "Depth",
    "ErrorKind",
    "EventAction",
    "External",
    "ExternalDefinition",
    "ExternalsHandler",
    "ModuleLocation",
    "Revision",
    "RevisionKind",
    "SVNClientError",
    "SVNEvent",
    "SubversionClientManager",
    "SubversionUpdateClient",
    "UpdateClient",
    "UpdateEventHandler",
    "parse_definition",
    "parse_externals",
    "resolve_url",
]
