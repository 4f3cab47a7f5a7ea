"""Parsing of svn:externals property values.

Both definition formats are understood:

- Subversion 1.5+: ``[-r REV] URL[@PEG] LOCALPATH``
- legacy: ``LOCALPATH [-r REV] URL``

Relative URLs (``../``, ``^/``, ``//``, ``/``) are resolved against the URL
of the directory carrying the property.
"""

from __future__ import annotations

import logging
import posixpath
import shlex
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import urlsplit, urlunsplit

from .interface import Revision

logger = logging.getLogger(__name__)

_RELATIVE_PREFIXES = ("../", "^/", "//", "/")


@dataclass(frozen=True)
class ExternalDefinition:
    """A single line of an svn:externals property."""

    local_path: str
    url: str
    revision: Optional[Revision] = None
    peg_revision: Optional[Revision] = None
    definition: str = ""

    @property
    def pinned_revision(self) -> Optional[int]:
        """Revision number the external is fixed at, if any."""
        for rev in (self.revision, self.peg_revision):
            if rev is not None and rev.is_number:
                return rev.number
        return None


def _looks_like_url(token: str) -> bool:
    return "://" in token or token.startswith(_RELATIVE_PREFIXES)


def _take_revision(tokens: List[str], index: int) -> tuple[Optional[Revision], int]:
    """Consume a ``-r REV`` / ``-rREV`` option at tokens[index]."""
    if index >= len(tokens):
        return None, index
    token = tokens[index]
    if token == "-r":
        if index + 1 >= len(tokens):
            raise ValueError("missing revision after -r")
        return Revision.parse(tokens[index + 1]), index + 2
    if token.startswith("-r"):
        return Revision.parse(token[2:]), index + 1
    return None, index


def _split_peg(url: str) -> tuple[str, Optional[Revision]]:
    base, sep, suffix = url.rpartition("@")
    if not sep or "/" in suffix:
        return url, None
    try:
        return base, Revision.parse(suffix)
    except ValueError:
        return url, None


def parse_definition(line: str) -> Optional[ExternalDefinition]:
    """Parse one svn:externals line.

    Returns:
        The definition, or None for blank lines and comments

    Raises:
        ValueError: If the line is malformed
    """
    text = line.strip()
    if not text or text.startswith("#"):
        return None

    tokens = shlex.split(text)
    revision: Optional[Revision] = None

    if _looks_like_url(tokens[0]) or tokens[0].startswith("-r"):
        # [-r REV] URL[@PEG] LOCALPATH
        revision, index = _take_revision(tokens, 0)
        rest = tokens[index:]
        if len(rest) != 2:
            raise ValueError(f"invalid externals definition: {line!r}")
        url, peg = _split_peg(rest[0])
        local_path = rest[1]
    else:
        # LOCALPATH [-r REV] URL
        local_path = tokens[0]
        revision, index = _take_revision(tokens, 1)
        rest = tokens[index:]
        if len(rest) != 1 or not _looks_like_url(rest[0]):
            raise ValueError(f"invalid externals definition: {line!r}")
        url, peg = rest[0], None

    return ExternalDefinition(
        local_path=local_path.strip("/"),
        url=url,
        revision=revision,
        peg_revision=peg,
        definition=text,
    )


def parse_externals(value: str) -> List[ExternalDefinition]:
    """Parse a whole svn:externals property value, skipping bad lines."""
    definitions = []
    for line in value.splitlines():
        try:
            definition = parse_definition(line)
        except ValueError as exc:
            logger.warning("Ignoring svn:externals line %r: %s", line, exc)
            continue
        if definition is not None:
            definitions.append(definition)
    return definitions


def resolve_url(url: str, parent_url: str, repos_root_url: Optional[str] = None) -> str:
    """Resolve an externals URL against the directory that defines it.

    Args:
        url: URL as written in the definition
        parent_url: URL of the directory carrying svn:externals
        repos_root_url: Repository root, needed for ``^/`` URLs

    Examples:
        >>> resolve_url("../lib", "http://h/repo/trunk/app")
        'http://h/repo/trunk/lib'
        >>> resolve_url("^/vendor/x", "http://h/repo/trunk", "http://h/repo")
        'http://h/repo/vendor/x'
    """
    parent = urlsplit(parent_url.rstrip("/"))

    if url.startswith("^/"):
        if not repos_root_url:
            raise ValueError(f"repository root unknown for {url!r}")
        return repos_root_url.rstrip("/") + "/" + url[2:].lstrip("/")

    if url.startswith("../"):
        path = posixpath.normpath(posixpath.join(parent.path, url))
        return urlunsplit((parent.scheme, parent.netloc, path, "", ""))

    if url.startswith("//"):
        return f"{parent.scheme}:{url}"

    if url.startswith("/"):
        return urlunsplit((parent.scheme, parent.netloc, url, "", ""))

    return url
