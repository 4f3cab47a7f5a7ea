"""Event sink wired into the update client during a checkout."""

from __future__ import annotations

import logging
import posixpath
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .. import config as svn_config
from ..scm.interface import EventAction, External, Revision, SVNEvent
from .relay import RelayWriter

logger = logging.getLogger(__name__)

_LABELS = {
    EventAction.ADDED: "A",
    EventAction.DELETED: "D",
    EventAction.UPDATED: "U",
    EventAction.CONFLICTED: "C",
    EventAction.MERGED: "G",
    EventAction.EXISTED: "E",
    EventAction.REPLACED: "R",
}


def format_timestamp(moment: datetime) -> str:
    """Format as ``2024-01-31T12:00:00.000 +0000``."""
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}" + moment.strftime(" %z")


class ExternalsCollector:
    """Accumulates externals and relays progress events to the build log.

    Args:
        out: Relay writer the progress lines go to
        local: Checkout root on disk
        module_path: Location's local dir; prefixes every External path
    """

    def __init__(
        self,
        out: RelayWriter,
        local: Path,
        module_path: str,
        timestamps: Optional[bool] = None,
    ) -> None:
        self.out = out
        self.local = Path(local)
        self.module_path = module_path
        self.timestamps = svn_config.event_timestamps() if timestamps is None else timestamps
        self._externals: List[External] = []

    @property
    def externals(self) -> List[External]:
        return list(self._externals)

    def _relative(self, path: Path) -> str:
        path = Path(path)
        for root, candidate in ((self.local, path), (self.local.resolve(), path.resolve())):
            try:
                return candidate.relative_to(root).as_posix()
            except ValueError:
                continue
        return path.as_posix()

    def _module_relative(self, path: Path) -> str:
        return posixpath.normpath(posixpath.join(self.module_path, self._relative(path)))

    def handle_external(
        self,
        external_path: Path,
        url: str,
        revision: Optional[Revision],
        peg_revision: Optional[Revision],
        definition: str,
    ) -> None:
        pinned = None
        for rev in (revision, peg_revision):
            if rev is not None and rev.is_number:
                pinned = rev.number
                break
        external = External(path=self._module_relative(external_path), url=url, revision=pinned)
        logger.debug("Collected external %s", external)
        self._externals.append(external)

    def handle_event(self, event: SVNEvent) -> None:
        self.out.println(self._prefix() + self._describe(event))

    def _prefix(self) -> str:
        if not self.timestamps:
            return ""
        return "[%s] " % format_timestamp(datetime.now().astimezone())

    def _describe(self, event: SVNEvent) -> str:
        if event.action is EventAction.UPDATE_EXTERNAL:
            return "Fetching external item into '%s'" % self._module_relative(Path(event.path))
        if event.action is EventAction.COMPLETED:
            return event.message or "At revision %s" % event.revision
        label = _LABELS.get(event.action)
        if label and event.path:
            return "%s         %s" % (label, self._module_relative(Path(event.path)))
        return event.message
