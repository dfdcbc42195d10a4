"""
Synchronize Markdown files with HackMD notes.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import logging
import re
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path

from .api import HackMDSession
from .api_types import HackMDNote
from .environment import ErrorKind, HackMDError
from .frontmatter import TITLE_KEY, FrontMatter, Metadata, SyncMetadata, join, merge_metadata, split, strip_reserved
from .host import DocumentHost
from .options import SyncMode, SyncOptions
from .result import as_result
from .uri import id_from_url, url_from_id

LOGGER = logging.getLogger(__name__)

Confirmation = Callable[[str], bool]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def check_remote_conflict(remote_modified: datetime | None, last_sync: datetime | None, margin: timedelta) -> None:
    """
    Verifies that the remote note has not been edited since the document was last synchronized.

    :param remote_modified: Time when the remote note was last modified.
    :param last_sync: Time when the document was last synchronized, as recorded in its front-matter.
    :param margin: Tolerance for clock skew.
    :raises HackMDError: The remote note has been edited, or the time of last sync is unknown.
    """

    if last_sync is None:
        raise HackMDError(
            "Could not verify the last sync of the local note. Pull remote note or use force push to overwrite.",
            ErrorKind.SYNC_METADATA_MISSING,
        )

    if remote_modified is None:
        LOGGER.debug("Remote note has no modification time, assuming no remote changes")
        return

    if remote_modified - last_sync > margin:
        LOGGER.warning("Remote note modified at %s, after last sync at %s", remote_modified.isoformat(), last_sync.isoformat())
        raise HackMDError(
            "Remote note has been modified since last sync. Pull changes or use force push to overwrite.",
            ErrorKind.SYNC_CONFLICT_REMOTE,
        )


def check_local_conflict(local_modified: datetime, last_sync: datetime | None, margin: timedelta) -> None:
    """
    Verifies that the local document has not been edited since it was last synchronized.

    :param local_modified: Time when the local document was last modified.
    :param last_sync: Time when the document was last synchronized, as recorded in its front-matter.
    :param margin: Tolerance for clock skew.
    :raises HackMDError: The local document has been edited, or the time of last sync is unknown.
    """

    if last_sync is None:
        raise HackMDError(
            "Could not verify the last sync of the local note. Use force pull to overwrite.",
            ErrorKind.SYNC_METADATA_MISSING,
        )

    if local_modified - last_sync > margin:
        LOGGER.warning("Local note modified at %s, after last sync at %s", local_modified.isoformat(), last_sync.isoformat())
        raise HackMDError(
            "Local note has been modified since last sync. Push changes or use force pull to overwrite.",
            ErrorKind.SYNC_CONFLICT_LOCAL,
        )


_INVALID_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]')

# leaves room for a counter suffix and file extension within the usual limit of 255 bytes
_MAX_FILENAME_BYTES = 200


def title_to_filename(title: str) -> str:
    "Converts a note title into a string that is safe to use as a file name (without extension)."

    name = _INVALID_FILENAME_CHARS.sub("-", title)
    name = name.encode("utf-8")[:_MAX_FILENAME_BYTES].decode("utf-8", errors="ignore")
    name = name.strip().strip(".")
    return name or "Untitled"


class DocumentLocks:
    """
    Ensures that at most one synchronization operation modifies a document at any time.

    A lock is kept only while an operation holds it or waits for it.
    """

    _guard: threading.Lock
    _locks: dict[Path, threading.Lock]
    _users: dict[Path, int]

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks = {}
        self._users = {}

    def __len__(self) -> int:
        "Number of documents that have an operation in progress or waiting."

        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, path: Path) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(path, threading.Lock())
            self._users[path] = self._users.get(path, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                count = self._users[path] - 1
                if count > 0:
                    self._users[path] = count
                else:
                    del self._users[path]
                    del self._locks[path]


@dataclass(frozen=True)
class SyncOutcome:
    """
    Describes a document after a successful push or pull.

    :param path: Path to the Markdown document.
    :param note_id: HackMD note ID the document is linked to.
    :param url: Canonical URL of the HackMD note.
    :param title: Title of the HackMD note.
    :param last_sync: Time of synchronization, as recorded in front-matter.
    :param created: True if a new HackMD note has been created.
    """

    path: Path
    note_id: str
    url: str
    title: str
    last_sync: datetime
    created: bool = False


@dataclass(frozen=True)
class ImportOutcome:
    """
    Describes the document associated with a HackMD note imported by URL.

    :param path: Path to the Markdown document.
    :param note_id: HackMD note ID.
    :param created: True if a new document has been created; false if an existing document is already linked to the note.
    """

    path: Path
    note_id: str
    created: bool


class Synchronizer:
    """
    Keeps Markdown documents and HackMD notes in agreement.

    A document is *linked* to a note if its front-matter has a `url` that points to a note. Push and pull refuse to
    overwrite edits made on the other side since the time of last sync (as recorded in the `lastSync` front-matter
    key) unless forced.
    """

    api: HackMDSession
    host: DocumentHost
    options: SyncOptions

    _clock: Callable[[], datetime]
    _locks: DocumentLocks

    def __init__(
        self,
        api: HackMDSession,
        host: DocumentHost,
        options: SyncOptions | None = None,
        *,
        clock: Callable[[], datetime] = utc_now,
        locks: DocumentLocks | None = None,
    ) -> None:
        """
        Initializes a new synchronizer instance.

        :param api: Holds information about an open session to the HackMD API.
        :param host: Gives access to Markdown documents.
        :param options: Options that control synchronization.
        :param clock: Returns the current time, used to time-stamp synchronization.
        :param locks: Registry of per-document locks, shared between synchronizer instances.
        """

        self.api = api
        self.host = host
        self.options = options or SyncOptions()
        self._clock = clock
        self._locks = locks if locks is not None else DocumentLocks()

    def _note_id(self, metadata: SyncMetadata) -> str | None:
        "Resolves the note a document is linked to. Documents with an unrecognized URL are not linked."

        note_id = id_from_url(metadata.url, self.options.domain)
        if metadata.url is not None and note_id is None:
            LOGGER.warning("Ignoring unrecognized HackMD URL in front-matter: %s", metadata.url)
        return note_id

    def _read(self, path: Path) -> tuple[str, FrontMatter, SyncMetadata]:
        text = self.host.read_text(path)
        front_matter = split(text)
        return text, front_matter, SyncMetadata.from_metadata(front_matter.metadata)

    def _stamp(self, note: HackMDNote, title: str, extra: Metadata | None = None) -> SyncMetadata:
        "Creates fresh synchronization metadata for a note, with optional user-defined keys."

        return SyncMetadata(
            url=url_from_id(note.id, self.options.domain),
            title=note.title or title,
            last_sync=self._clock(),
            team_path=note.teamPath or None,
            extra=extra or {},
        )

    def _outcome(self, path: Path, note: HackMDNote, stamp: SyncMetadata, *, created: bool = False) -> SyncOutcome:
        assert stamp.url is not None and stamp.title is not None and stamp.last_sync is not None
        return SyncOutcome(path=path, note_id=note.id, url=stamp.url, title=stamp.title, last_sync=stamp.last_sync, created=created)

    @as_result
    def push(self, path: Path, mode: SyncMode = SyncMode.NORMAL) -> SyncOutcome:
        """
        Uploads the content of a Markdown document to HackMD.

        Creates a new note if the document is not linked to a note yet. Otherwise, updates the linked note, unless the
        note has been edited since the last sync and mode is not *force*. Records the note URL, title and time of sync
        in the front-matter of the document.

        :param path: Path to the Markdown document.
        :param mode: Whether to overwrite remote changes.
        :returns: Information about the document after synchronization.
        """

        with self._locks.hold(self.host.canonical_path(path)):
            text, front_matter, metadata = self._read(path)
            name = self.host.document_name(path)
            note_id = self._note_id(metadata)

            if note_id is not None:
                if mode is SyncMode.NORMAL:
                    remote = self.api.get_note(note_id).unwrap()
                    check_remote_conflict(remote.modified_at, metadata.last_sync, self.options.time_margin)

                LOGGER.info("Pushing %s to note %s", path, note_id)
                note = self.api.update_note(note_id, content=text).unwrap()
                created = False
            else:
                # make the note title match the document name
                content = join(merge_metadata(front_matter.metadata, {TITLE_KEY: name}), front_matter.body)

                LOGGER.info("Pushing %s to a new note", path)
                note = self.api.create_note(
                    title=name,
                    content=content,
                    read_permission=self.options.read_permission,
                    write_permission=self.options.write_permission,
                    comment_permission=self.options.comment_permission,
                ).unwrap()
                created = True

            stamp = self._stamp(note, name)
            try:
                self.host.write_text(path, join(merge_metadata(front_matter.metadata, stamp.sync_fields()), front_matter.body))
            except HackMDError as e:
                raise HackMDError(f"Pushed to {stamp.url} but could not record the link in the Markdown document. {e.message}", e.kind) from e
            return self._outcome(path, note, stamp, created=created)

    @as_result
    def pull(self, path: Path, mode: SyncMode = SyncMode.NORMAL) -> SyncOutcome:
        """
        Replaces the body of a Markdown document with the content of the linked HackMD note.

        Refuses to overwrite the document if it has been edited since the last sync, unless mode is *force*.
        Front-matter keys not used for synchronization are kept.

        :param path: Path to the Markdown document.
        :param mode: Whether to overwrite local changes.
        :returns: Information about the document after synchronization.
        """

        with self._locks.hold(self.host.canonical_path(path)):
            _, front_matter, metadata = self._read(path)
            note_id = self._note_id(metadata)
            if note_id is None:
                raise HackMDError("This file has not been pushed to HackMD yet.", ErrorKind.SYNC_NOT_LINKED)

            if mode is SyncMode.NORMAL:
                check_local_conflict(self.host.modified_time(path), metadata.last_sync, self.options.time_margin)

            LOGGER.info("Pulling note %s into %s", note_id, path)
            note = self.api.get_note(note_id).unwrap()
            remote = split(note.content or "")

            stamp = self._stamp(note, self.host.document_name(path))
            header = merge_metadata(front_matter.metadata, strip_reserved(remote.metadata))
            header = merge_metadata(header, stamp.sync_fields())
            self.host.write_text(path, join(header, remote.body))
            return self._outcome(path, note, stamp)

    @as_result
    def get_url(self, path: Path) -> str:
        """
        Returns the canonical URL of the HackMD note a Markdown document is linked to.

        :param path: Path to the Markdown document.
        """

        _, _, metadata = self._read(path)
        note_id = self._note_id(metadata)
        if note_id is None:
            raise HackMDError("This file has not been pushed to HackMD yet.", ErrorKind.SYNC_NOT_LINKED)
        return url_from_id(note_id, self.options.domain)

    @as_result
    def delete(self, path: Path, confirm: Confirmation) -> bool:
        """
        Deletes the HackMD note a Markdown document is linked to, and unlinks the document.

        Removes the keys used for synchronization from the front-matter; all other keys are kept.

        :param path: Path to the Markdown document.
        :param confirm: Asked with the document name before deletion; deletion goes ahead only if it returns true.
        :returns: True if the note has been deleted; false if deletion has been cancelled.
        """

        with self._locks.hold(self.host.canonical_path(path)):
            _, front_matter, metadata = self._read(path)
            note_id = self._note_id(metadata)
            if note_id is None:
                raise HackMDError("This file is not linked to a HackMD note.", ErrorKind.SYNC_NOT_LINKED)

            if not confirm(self.host.document_name(path)):
                LOGGER.info("Deletion of note %s cancelled", note_id)
                return False

            self.api.delete_note(note_id).unwrap()

            # re-read in case the document has changed while waiting for confirmation
            _, front_matter, _ = self._read(path)
            self.host.write_text(path, join(strip_reserved(front_matter.metadata), front_matter.body))
            return True

    def find_document(self, note_id: str) -> Path | None:
        "Finds the Markdown document that is linked to a HackMD note."

        for path in self.host.list_documents():
            try:
                _, _, metadata = self._read(path)
            except HackMDError as e:
                LOGGER.warning("Skipping unreadable Markdown document %s: %s", path, e.message)
                continue
            if id_from_url(metadata.url, self.options.domain) == note_id:
                return path
        return None

    def _create_document(self, directory: Path, title: str, text: str) -> Path:
        "Creates a new document, appending a counter to the file name if a document with the same name exists."

        base_name = title_to_filename(title)
        counter = 0
        while True:
            name = f"{base_name} ({counter}){self.options.extension}" if counter else f"{base_name}{self.options.extension}"
            path = directory / name
            if not self.host.exists(path):
                with self._locks.hold(self.host.canonical_path(path)):
                    try:
                        return self.host.create(path, text)
                    except FileExistsError:
                        pass
            counter += 1

    @as_result
    def create_from_url(self, url: str, directory: Path | None = None) -> ImportOutcome:
        """
        Creates a Markdown document from a HackMD note.

        If a document is already linked to the note, no new document is created.

        :param url: URL of the HackMD note.
        :param directory: Directory in which to create the document, relative to the document root.
        :returns: The document linked to the note.
        """

        note_id = id_from_url(url, self.options.domain)
        if note_id is None:
            raise HackMDError(f"Invalid HackMD URL: {url}", ErrorKind.INVALID_URL)

        existing = self.find_document(note_id)
        if existing is not None:
            LOGGER.info("Note %s is already linked to %s", note_id, existing)
            return ImportOutcome(path=existing, note_id=note_id, created=False)

        note = self.api.get_note(note_id).unwrap()
        title = note.title or "Untitled"
        remote = split(note.content or "")

        # the note may have been exported from another vault, discard its synchronization keys
        stamp = self._stamp(note, title, extra=strip_reserved(remote.metadata))
        path = self._create_document(directory or Path(), title, join(stamp.to_metadata(), remote.body))
        return ImportOutcome(path=path, note_id=note_id, created=True)
