"""Subversion update client backed by the ``svn`` command line client."""

from __future__ import annotations

import logging
import os
import re
import subprocess
import threading
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence

from .. import config as svn_config
from .externals import parse_externals, resolve_url
from .interface import (
    Depth,
    ErrorKind,
    EventAction,
    ExternalsHandler,
    Revision,
    SVNClientError,
    SVNEvent,
    UpdateEventHandler,
)

logger = logging.getLogger(__name__)

# svn error codes
SVN_ERR_CANCELLED = "E200015"
SVN_ERR_AUTHN_FAILED = "E215004"
SVN_ERR_RA_NOT_AUTHORIZED = "E170001"

AUTHENTICATION_ERRORS = frozenset([SVN_ERR_AUTHN_FAILED, SVN_ERR_RA_NOT_AUTHORIZED])

_ERROR_RE = re.compile(r"^svn: (E\d{6}): ?(.*)$")
_ACTIONS = {
    "A": EventAction.ADDED,
    "D": EventAction.DELETED,
    "U": EventAction.UPDATED,
    "C": EventAction.CONFLICTED,
    "G": EventAction.MERGED,
    "E": EventAction.EXISTED,
    "R": EventAction.REPLACED,
}
_STATUS_RE = re.compile(r"^(?P<code>[ADUCGER ][ADUCGER ][B ][C ]?) +(?P<path>\S.*)$")
_COMPLETED_RE = re.compile(r"^Checked out (?:external at )?revision (?P<rev>\d+)\.$")
_EXTERNAL_RE = re.compile(r"^Fetching external item into '(?P<path>.+)':$")

_POLL_INTERVAL = 0.2


def parse_output_line(line: str) -> SVNEvent:
    """Translate one line of ``svn checkout`` output into an event.

    Examples:
        >>> parse_output_line("A    trunk/README").action
        <EventAction.ADDED: 'added'>
        >>> parse_output_line("Checked out revision 12.").revision
        12
    """
    match = _COMPLETED_RE.match(line)
    if match:
        return SVNEvent(EventAction.COMPLETED, revision=int(match.group("rev")), message=line)

    match = _EXTERNAL_RE.match(line)
    if match:
        return SVNEvent(EventAction.UPDATE_EXTERNAL, path=match.group("path"), message=line)

    match = _STATUS_RE.match(line)
    if match:
        code = match.group("code")
        letter = code[0] if code[0] != " " else code[1]
        action = _ACTIONS.get(letter, EventAction.UPDATED)
        return SVNEvent(action, path=match.group("path"), message=line)

    return SVNEvent(EventAction.STATUS, message=line)


def classify_error_output(lines: Sequence[str], returncode: int) -> SVNClientError:
    """Build the client error for a failed ``svn`` invocation."""
    codes = []
    messages = []
    for line in lines:
        match = _ERROR_RE.match(line)
        if match:
            codes.append(match.group(1))
            messages.append(f"{match.group(1)}: {match.group(2)}")
    detail = "; ".join(messages) or f"svn exited with status {returncode}"

    if AUTHENTICATION_ERRORS.intersection(codes):
        return SVNClientError(
            f"authentication failed: {detail}",
            kind=ErrorKind.CANCELLED,
            cause_kind=ErrorKind.AUTHENTICATION,
            error_codes=tuple(codes),
            cause=SVNClientError(detail, kind=ErrorKind.AUTHENTICATION, error_codes=tuple(codes)),
        )
    if SVN_ERR_CANCELLED in codes:
        return SVNClientError(
            f"operation cancelled: {detail}",
            kind=ErrorKind.CANCELLED,
            error_codes=tuple(codes),
        )
    return SVNClientError(detail, kind=ErrorKind.FAILURE, error_codes=tuple(codes))


class SubversionUpdateClient:
    """Update client running ``svn checkout`` in a subprocess.

    Progress lines are parsed into SVNEvent objects for the event handler.
    When externals are followed, the svn:externals definitions of the new
    working copy (and of each external working copy) are reported to the
    externals handler once the checkout completed.
    """

    def __init__(
        self,
        command: Optional[str] = None,
        *,
        username: Optional[str] = None,
        password: Optional[str] = None,
        non_interactive: Optional[bool] = None,
        cancel_event: Optional[threading.Event] = None,
        extra_args: Sequence[str] = (),
        environment: Optional[Dict[str, str]] = None,
    ) -> None:
        self.command = command or svn_config.svn_command()
        self.username = username
        self.password = password
        self.non_interactive = (
            svn_config.non_interactive() if non_interactive is None else non_interactive
        )
        self.cancel_event = cancel_event
        self.extra_args = list(extra_args)
        self.environment = environment
        self._event_handler: Optional[UpdateEventHandler] = None
        self._externals_handler: Optional[ExternalsHandler] = None

    def set_event_handler(self, handler: Optional[UpdateEventHandler]) -> None:
        self._event_handler = handler

    def set_externals_handler(self, handler: Optional[ExternalsHandler]) -> None:
        self._externals_handler = handler

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
    ) -> Optional[int]:
        """Check out `source` at `revision` into `destination`.

        Args:
            source: Repository URL (without peg revision)
            destination: Local working copy path
            depth: Checkout depth; UNKNOWN leaves the client default
            revision: Operative revision
            allow_unversioned_obstructions: Pass ``--force``
            ignore_externals: Pass ``--ignore-externals``
            event_handler: Receives progress events (overrides set_event_handler)
            externals_handler: Receives externals definitions
            working_copy_format: Passed as ``--compatible-version``

        Returns:
            Checked out revision number, if reported by svn

        Raises:
            SVNClientError: On failure, authentication failure or cancellation
        """
        events = event_handler or self._event_handler
        externals = externals_handler or self._externals_handler
        destination = Path(destination).resolve()

        cmd = self._base_command("checkout")
        if depth is not Depth.UNKNOWN:
            cmd.extend(["--depth", depth.value])
        cmd.extend(["-r", revision.to_cli()])
        if allow_unversioned_obstructions:
            cmd.append("--force")
        if ignore_externals:
            cmd.append("--ignore-externals")
        if working_copy_format:
            cmd.extend(["--compatible-version", working_copy_format])
        # peg HEAD; also guards URLs whose path contains '@'
        cmd.extend([f"{source}@HEAD", str(destination)])

        checked_out: Optional[int] = None
        try:
            for line in self._stream(cmd):
                event = parse_output_line(line)
                if event.action is EventAction.COMPLETED and checked_out is None:
                    checked_out = event.revision
                if events is not None:
                    events.handle_event(event)

            if not ignore_externals and externals is not None:
                self._report_externals(source, destination, externals)
        except KeyboardInterrupt as exc:
            raise SVNClientError("operation cancelled", kind=ErrorKind.CANCELLED, cause=exc)

        logger.info("Checked out %s at revision %s into %s", source, checked_out, destination)
        return checked_out

    # --- helpers ---

    def _base_command(self, subcommand: str) -> List[str]:
        cmd = [self.command, subcommand]
        if self.non_interactive:
            cmd.append("--non-interactive")
        if self.username:
            cmd.extend(["--username", self.username])
        if self.password:
            cmd.extend(["--password", self.password])
        cmd.extend(self.extra_args)
        return cmd

    def _env(self) -> Dict[str, str]:
        env = dict(os.environ)
        if self.environment:
            env.update(self.environment)
        # parseable, untranslated messages
        env["LC_MESSAGES"] = "C"
        return env

    def _redacted(self, cmd: Sequence[str]) -> List[str]:
        redacted = list(cmd)
        for i, arg in enumerate(redacted[:-1]):
            if arg == "--password":
                redacted[i + 1] = "XXXX"
        return redacted

    def _cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def _stream(self, cmd: Sequence[str]) -> Iterator[str]:
        """Run `cmd`, yielding output lines that are not error messages."""
        if self._cancelled():
            raise SVNClientError("operation cancelled", kind=ErrorKind.CANCELLED)

        logger.debug("Running: %s", self._redacted(cmd))
        try:
            proc = subprocess.Popen(
                list(cmd),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                env=self._env(),
                text=True,
                errors="replace",
            )
        except OSError as exc:
            raise SVNClientError(f"failed to run {self.command}: {exc}", cause=exc)

        watcher = None
        if self.cancel_event is not None:
            watcher = threading.Thread(
                target=self._watch_cancel,
                args=(proc,),
                name="svn cancel watcher",
                daemon=True,
            )
            watcher.start()

        error_lines: List[str] = []
        try:
            for raw in proc.stdout:
                line = raw.rstrip("\r\n")
                if line.startswith("svn: "):
                    logger.debug("svn error output: %s", line)
                    error_lines.append(line)
                    continue
                yield line
            returncode = proc.wait()
        except KeyboardInterrupt as exc:
            proc.kill()
            proc.wait()
            raise SVNClientError("operation cancelled", kind=ErrorKind.CANCELLED, cause=exc)
        finally:
            if proc.stdout is not None:
                proc.stdout.close()
            if proc.poll() is None:
                proc.kill()
                proc.wait()

        if returncode != 0:
            if self._cancelled():
                raise SVNClientError("operation cancelled", kind=ErrorKind.CANCELLED)
            raise classify_error_output(error_lines, returncode)

    def _watch_cancel(self, proc: subprocess.Popen) -> None:
        while proc.poll() is None:
            if self.cancel_event.wait(_POLL_INTERVAL):
                logger.info("Cancel requested, terminating svn (pid %d)", proc.pid)
                proc.terminate()
                return

    def _run(self, cmd: Sequence[str]) -> str:
        return "\n".join(self._stream(cmd))

    def _info(self, target: Path) -> Dict[str, str]:
        """Return url and repository root of a working copy."""
        output = self._run(self._base_command("info") + ["--xml", str(target)])
        try:
            root = ET.fromstring(output)
        except ET.ParseError as exc:
            raise SVNClientError(f"unparseable svn info output for {target}", cause=exc)
        entry = root.find("entry")
        if entry is None:
            raise SVNClientError(f"no svn info for {target}")
        return {
            "url": entry.findtext("url", default=""),
            "repos_root_url": entry.findtext("repository/root", default=""),
        }

    def _propget_externals(self, target: Path) -> Dict[str, str]:
        """Return svn:externals values keyed by working copy path."""
        output = self._run(
            self._base_command("propget") + ["svn:externals", "-R", "--xml", str(target)]
        )
        try:
            root = ET.fromstring(output)
        except ET.ParseError as exc:
            raise SVNClientError(f"unparseable svn propget output for {target}", cause=exc)
        values = {}
        for node in root.iter("target"):
            prop = node.find("property")
            if prop is not None and prop.text:
                values[node.get("path", "")] = prop.text
        return values

    def _report_externals(
        self,
        url: str,
        wc_root: Path,
        handler: ExternalsHandler,
    ) -> None:
        info = self._info(wc_root)
        wc_url = info["url"] or url
        repos_root = info["repos_root_url"] or None

        values = self._propget_externals(wc_root)
        for owner in sorted(values):
            owner_path = Path(owner)
            if not owner_path.is_absolute():
                owner_path = wc_root / owner_path
            rel = owner_path.relative_to(wc_root).as_posix()
            parent_url = wc_url if rel == "." else f"{wc_url}/{rel}"

            for definition in parse_externals(values[owner]):
                try:
                    ext_url = resolve_url(definition.url, parent_url, repos_root)
                except ValueError as exc:
                    logger.warning("Cannot resolve external %s: %s", definition.definition, exc)
                    ext_url = definition.url
                ext_path = owner_path / definition.local_path
                logger.debug("External %s -> %s", ext_path, ext_url)
                handler.handle_external(
                    ext_path,
                    ext_url,
                    definition.revision,
                    definition.peg_revision,
                    definition.definition,
                )
                if (ext_path / ".svn").is_dir():
                    self._report_externals(ext_url, ext_path, handler)


class SubversionClientManager:
    """Hands out configured SubversionUpdateClient instances."""

    def __init__(
        self,
        command: Optional[str] = None,
        *,
        username: Optional[str] = None,
        password: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        self.command = command
        self.username = username
        self.password = password
        self.cancel_event = cancel_event

    def get_update_client(self) -> SubversionUpdateClient:
        return SubversionUpdateClient(
            self.command,
            username=self.username,
            password=self.password,
            cancel_event=self.cancel_event,
        )
