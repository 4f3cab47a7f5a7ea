from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import ClassVar, Optional, Protocol
from urllib.parse import urlsplit


class Depth(Enum):
    """How much of a directory tree a checkout materializes."""

    EMPTY = "empty"
    FILES = "files"
    IMMEDIATES = "immediates"
    INFINITY = "infinity"
    UNKNOWN = "unknown"

    @classmethod
    def from_option(cls, option: Optional[str]) -> "Depth":
        """Map a configured depth option to a Depth.

        "as-it-is" and "unknown" keep whatever the working copy has; any
        unrecognized option means a full recursive checkout.
        """
        if option is None:
            return cls.INFINITY
        option = option.strip().lower()
        if option in ("as-it-is", "unknown"):
            return cls.UNKNOWN
        for depth in cls:
            if depth.value == option:
                return depth
        return cls.INFINITY


class RevisionKind(Enum):
    NUMBER = "number"
    HEAD = "HEAD"
    BASE = "BASE"
    COMMITTED = "COMMITTED"
    PREV = "PREV"
    DATE = "date"


_NUMBER_RE = re.compile(r"^[rR]?(\d+)$")
_DATE_RE = re.compile(r"^\{(.+)\}$")


@dataclass(frozen=True)
class Revision:
    """A revision specifier: a keyword, a number or a date."""

    kind: RevisionKind
    number: Optional[int] = None
    date: Optional[datetime] = None

    HEAD: ClassVar["Revision"]

    @classmethod
    def of(cls, number: int) -> "Revision":
        if number < 0:
            raise ValueError(f"invalid revision number: {number}")
        return cls(RevisionKind.NUMBER, number=number)

    @classmethod
    def at_date(cls, date: datetime) -> "Revision":
        return cls(RevisionKind.DATE, date=date)

    @classmethod
    def parse(cls, text: str) -> "Revision":
        """Parse a revision specifier.

        Examples:
            >>> Revision.parse("100").number
            100
            >>> Revision.parse("r42").number
            42
            >>> Revision.parse("head") == Revision.HEAD
            True
            >>> Revision.parse("{2024-01-31}").kind
            <RevisionKind.DATE: 'date'>

        Raises:
            ValueError: If text is not a revision specifier
        """
        value = (text or "").strip()
        match = _NUMBER_RE.match(value)
        if match:
            return cls.of(int(match.group(1)))

        keyword = value.upper()
        if keyword in ("HEAD", "BASE", "COMMITTED", "PREV"):
            return cls(RevisionKind(keyword))

        match = _DATE_RE.match(value)
        if match:
            try:
                return cls.at_date(datetime.fromisoformat(match.group(1).strip()))
            except ValueError as exc:
                raise ValueError(f"invalid revision date: {text!r}") from exc

        raise ValueError(f"invalid revision: {text!r}")

    @property
    def is_number(self) -> bool:
        return self.kind is RevisionKind.NUMBER

    def to_cli(self) -> str:
        """Render as an argument for ``svn -r``."""
        if self.kind is RevisionKind.NUMBER:
            return str(self.number)
        if self.kind is RevisionKind.DATE:
            return "{%s}" % self.date.isoformat()
        return self.kind.value

    def __str__(self) -> str:
        return self.to_cli()


Revision.HEAD = Revision(RevisionKind.HEAD)


@dataclass(frozen=True)
class ModuleLocation:
    """A repository location to check out into the workspace.

    - remote: repository URL, optionally with an ``@REV`` peg suffix
    - local: subdirectory of the workspace (defaults to the URL basename)
    - depth_option: empty, files, immediates, infinity or as-it-is
    - ignore_externals: do not follow svn:externals when True
    """

    remote: str
    local: Optional[str] = None
    depth_option: str = "infinity"
    ignore_externals: bool = False

    def _split_peg(self) -> tuple[str, Optional[Revision]]:
        base, sep, suffix = self.remote.rpartition("@")
        # an '@' in the authority (user@host) is not a peg
        if not sep or "/" in suffix or not urlsplit(base).scheme:
            return self.remote, None
        try:
            return base, Revision.parse(suffix)
        except ValueError:
            return self.remote, None

    @property
    def url(self) -> str:
        """Repository URL without peg suffix or trailing slash."""
        return self._split_peg()[0].rstrip("/")

    @property
    def revision(self) -> Optional[Revision]:
        """Peg revision embedded in the remote, if any."""
        return self._split_peg()[1]

    @property
    def local_dir(self) -> str:
        if self.local:
            return self.local
        path = urlsplit(self.url).path.rstrip("/")
        return posixpath.basename(path) or "."

    @property
    def depth(self) -> Depth:
        return Depth.from_option(self.depth_option)


@dataclass(frozen=True)
class External:
    """An svn:externals reference discovered during a checkout.

    - path: owning local path relative to the workspace
    - url: referenced repository URL
    - revision: pinned revision number, or None when floating
    """

    path: str
    url: str
    revision: Optional[int] = None

    @property
    def is_revision_fixed(self) -> bool:
        return self.revision is not None


class EventAction(Enum):
    ADDED = "added"
    DELETED = "deleted"
    UPDATED = "updated"
    CONFLICTED = "conflicted"
    MERGED = "merged"
    EXISTED = "existed"
    REPLACED = "replaced"
    UPDATE_EXTERNAL = "update_external"
    COMPLETED = "completed"
    STATUS = "status"


@dataclass(frozen=True)
class SVNEvent:
    """Progress notification emitted by an update client."""

    action: EventAction
    path: Optional[str] = None
    revision: Optional[int] = None
    message: str = ""


class ErrorKind(Enum):
    CANCELLED = "cancelled"
    AUTHENTICATION = "authentication"
    FAILURE = "failure"


class SVNClientError(RuntimeError):
    """Raised by update clients when a Subversion operation fails.

    `kind` tells cancellation apart from other failures; `cause_kind`
    records why a cancellation happened (e.g. AUTHENTICATION).
    """

    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind = ErrorKind.FAILURE,
        cause_kind: Optional[ErrorKind] = None,
        error_codes: tuple[str, ...] = (),
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.cause_kind = cause_kind
        self.error_codes = error_codes
        self.__cause__ = cause


class UpdateEventHandler(Protocol):
    def handle_event(self, event: SVNEvent) -> None:  # pragma: no cover - protocol
        ...


class ExternalsHandler(Protocol):
    def handle_external(
        self,
        external_path: Path,
        url: str,
        revision: Optional[Revision],
        peg_revision: Optional[Revision],
        definition: str,
    ) -> None:  # pragma: no cover - protocol
        ...


class UpdateClient(Protocol):
    """Subversion client capable of a fresh checkout."""

    def set_event_handler(self, handler: Optional[UpdateEventHandler]) -> None:  # pragma: no cover - protocol
        ...

    def set_externals_handler(self, handler: Optional[ExternalsHandler]) -> None:  # pragma: no cover - protocol
        ...

    def checkout(
        self,
        source: str,
        destination: Path,
        *,
        depth: Depth,
        revision: Revision,
        allow_unversioned_obstructions: bool = True,
        ignore_externals: bool = False,
        event_handler: Optional[UpdateEventHandler] = None,
        externals_handler: Optional[ExternalsHandler] = None,
        working_copy_format: Optional[str] = None,
    ) -> Optional[int]:  # pragma: no cover - protocol
        """Check out `source` at `revision` into `destination`.

        Returns:
            The checked out revision number, when the client reports it

        Raises:
            SVNClientError: If the checkout fails or is cancelled
        """
        ...


class ClientManager(Protocol):
    def get_update_client(self) -> UpdateClient:  # pragma: no cover - protocol
        ...
