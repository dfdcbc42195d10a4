"""
Synchronize Markdown files with HackMD notes.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import TypeVar

from .api import HackMDSessionCache
from .host import DocumentHost
from .options import SyncMode, SyncOptions
from .result import Err, Ok, Result
from .synchronizer import Confirmation, DocumentLocks, ImportOutcome, Synchronizer, SyncOutcome, utc_now

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

Notify = Callable[[str], None]


class Application:
    """
    Commands exposed to the user.

    Each command runs a single synchronization operation and reports its outcome with exactly one notification. This is
    the only place where errors are turned into messages for the user.
    """

    sessions: HackMDSessionCache
    host: DocumentHost
    options: SyncOptions

    _notify: Notify
    _clipboard: Notify
    _confirm: Confirmation
    _clock: Callable[[], datetime]
    _locks: DocumentLocks

    def __init__(
        self,
        sessions: HackMDSessionCache,
        host: DocumentHost,
        options: SyncOptions | None = None,
        *,
        notify: Notify,
        confirm: Confirmation,
        clipboard: Notify | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """
        Initializes the command layer.

        :param sessions: Supplies authenticated sessions to the HackMD API.
        :param host: Gives access to Markdown documents.
        :param options: Options that control synchronization.
        :param notify: Shows a message to the user.
        :param confirm: Asks the user to confirm deleting a note.
        :param clipboard: Receives the note URL when the user copies it. Defaults to a notification.
        :param clock: Returns the current time.
        """

        self.sessions = sessions
        self.host = host
        self.options = options or SyncOptions()
        self._notify = notify
        self._confirm = confirm
        self._clipboard = clipboard or notify
        self._clock = clock
        self._locks = DocumentLocks()

    def _synchronizer(self) -> Result[Synchronizer]:
        match self.sessions.get():
            case Ok(session):
                return Ok(Synchronizer(session, self.host, self.options, clock=self._clock, locks=self._locks))
            case Err() as err:
                return err

    def _run(self, operation: Callable[[Synchronizer], Result[T]], on_success: Callable[[T], None]) -> bool:
        result: Result[T]
        match self._synchronizer():
            case Ok(synchronizer):
                result = operation(synchronizer)
            case Err() as err:
                result = err

        match result:
            case Ok(value):
                on_success(value)
                return True
            case Err(error):
                if error.kind.is_auth_failure:
                    self.sessions.invalidate()
                LOGGER.debug("Command failed: %r", error)
                self._notify(f"Operation failed: {error.message}")
                return False

    def push(self, path: Path, mode: SyncMode = SyncMode.NORMAL) -> bool:
        "Uploads a Markdown document to HackMD."

        def _success(outcome: SyncOutcome) -> None:
            self._notify(f"Successfully pushed to HackMD: {outcome.url}")

        return self._run(lambda s: s.push(path, mode), _success)

    def pull(self, path: Path, mode: SyncMode = SyncMode.NORMAL) -> bool:
        "Downloads the linked HackMD note into a Markdown document."

        def _success(outcome: SyncOutcome) -> None:
            self._notify(f"Successfully pulled from HackMD: {outcome.url}")

        return self._run(lambda s: s.pull(path, mode), _success)

    def copy_url(self, path: Path) -> bool:
        "Hands the URL of the linked HackMD note to the clipboard."

        return self._run(lambda s: s.get_url(path), self._clipboard)

    def delete(self, path: Path) -> bool:
        "Deletes the linked HackMD note, after confirmation, and unlinks the Markdown document."

        def _success(deleted: bool) -> None:
            if deleted:
                self._notify("Successfully unlinked note from HackMD!")
            else:
                self._notify("Deletion cancelled.")

        return self._run(lambda s: s.delete(path, self._confirm), _success)

    def create_from_url(self, url: str, directory: Path | None = None) -> bool:
        "Creates a Markdown document from a HackMD note."

        def _success(outcome: ImportOutcome) -> None:
            if outcome.created:
                self._notify(f"Note created: {outcome.path}")
            else:
                self._notify(f'This note already exists at "{outcome.path}". Use the "pull" command to update its content.')

        return self._run(lambda s: s.create_from_url(url, directory), _success)
