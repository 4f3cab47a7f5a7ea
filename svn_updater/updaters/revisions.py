from __future__ import annotations

from datetime import datetime
from typing import Mapping, Optional

from ..scm.interface import ModuleLocation, Revision


class LocationRevisionResolver:
    """Default revision for a module location.

    First of: the ``@REV`` peg of the location URL, the revision given for
    the URL in `revisions` (e.g. from a revision build parameter), the
    build `timestamp` as a date revision, HEAD.
    """

    def __init__(
        self,
        revisions: Optional[Mapping[str, Revision]] = None,
        timestamp: Optional[datetime] = None,
    ) -> None:
        self.revisions = dict(revisions or {})
        self.timestamp = timestamp

    def resolve_default(self, location: ModuleLocation) -> Revision:
        if location.revision is not None:
            return location.revision
        revision = self.revisions.get(location.url)
        if revision is not None:
            return revision
        if self.timestamp is not None:
            return Revision.at_date(self.timestamp)
        return Revision.HEAD
