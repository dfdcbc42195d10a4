"""
Synchronize Markdown files with HackMD notes.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import logging
import unittest
from datetime import datetime, timezone
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest.mock import MagicMock

from md2hmd.api import HackMDSession, HackMDSessionCache
from md2hmd.api_types import HackMDNote
from md2hmd.application import Application
from md2hmd.environment import ErrorKind, HackMDError
from md2hmd.frontmatter import join
from md2hmd.host import LocalDocumentHost
from md2hmd.options import SyncMode
from md2hmd.result import Err, Ok
from tests.utility import TypedTestCase, read_document, write_document

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(funcName)s [%(lineno)d] - %(message)s",
)

NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
LAST_SYNC = datetime(2024, 5, 1, 10, 0, 0, tzinfo=timezone.utc)


class TestApplication(TypedTestCase):
    tmp: TemporaryDirectory[str]
    root_dir: Path
    api: MagicMock
    sessions: MagicMock
    notify: MagicMock
    clipboard: MagicMock
    confirm: MagicMock
    app: Application

    def setUp(self) -> None:
        self.tmp = TemporaryDirectory()
        self.root_dir = Path(self.tmp.name)
        self.api = MagicMock(spec=HackMDSession)
        self.sessions = MagicMock(spec=HackMDSessionCache)
        self.sessions.get.return_value = Ok(self.api)
        self.notify = MagicMock()
        self.clipboard = MagicMock()
        self.confirm = MagicMock(return_value=True)
        self.app = Application(
            self.sessions,
            LocalDocumentHost(self.root_dir),
            notify=self.notify,
            confirm=self.confirm,
            clipboard=self.clipboard,
            clock=lambda: NOW,
        )

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def linked_document(self, body: str = "Body\n") -> Path:
        path = self.root_dir / "Notes.md"
        write_document(path, join({"url": "https://hackmd.io/abc", "lastSync": "2024-05-01T10:00:00.000Z"}, body), modified=LAST_SYNC)
        return path

    def test_push(self) -> None:
        path = self.root_dir / "Notes.md"
        write_document(path, "Body\n")
        self.api.create_note.return_value = Ok(HackMDNote(id="abc", title="Notes"))

        self.assertTrue(self.app.push(path))
        self.notify.assert_called_once_with("Successfully pushed to HackMD: https://hackmd.io/abc")

    def test_pull(self) -> None:
        path = self.linked_document()
        self.api.get_note.return_value = Ok(HackMDNote(id="abc", title="Notes", content="Remote\n"))

        self.assertTrue(self.app.pull(path, SyncMode.NORMAL))
        self.notify.assert_called_once_with("Successfully pulled from HackMD: https://hackmd.io/abc")
        self.assertTrue(read_document(path).endswith("---\nRemote\n"))

    def test_conflict(self) -> None:
        path = self.linked_document()
        self.api.get_note.return_value = Ok(HackMDNote(id="abc", lastChangedAt=NOW))

        self.assertFalse(self.app.push(path))
        self.notify.assert_called_once_with(
            "Operation failed: Remote note has been modified since last sync. Pull changes or use force push to overwrite."
        )
        self.sessions.invalidate.assert_not_called()

    def test_not_authenticated(self) -> None:
        self.sessions.get.return_value = Err(HackMDError("Authentication failed. Please check your access token.", ErrorKind.AUTH_INVALID, 401))
        path = self.linked_document()

        self.assertFalse(self.app.pull(path))
        self.notify.assert_called_once_with("Operation failed: Authentication failed. Please check your access token.")
        self.sessions.invalidate.assert_called_once()
        self.api.get_note.assert_not_called()

    def test_token_revoked(self) -> None:
        path = self.linked_document()
        self.api.get_note.return_value = Err(HackMDError("Authentication failed. Please check your access token.", ErrorKind.AUTH_INVALID, 401))

        self.assertFalse(self.app.push(path))
        self.sessions.invalidate.assert_called_once()
        self.notify.assert_called_once()

    def test_copy_url(self) -> None:
        path = self.linked_document()

        self.assertTrue(self.app.copy_url(path))
        self.clipboard.assert_called_once_with("https://hackmd.io/abc")
        self.notify.assert_not_called()

    def test_copy_url_not_linked(self) -> None:
        path = self.root_dir / "Notes.md"
        write_document(path, "Body\n")

        self.assertFalse(self.app.copy_url(path))
        self.clipboard.assert_not_called()
        self.notify.assert_called_once_with("Operation failed: This file has not been pushed to HackMD yet.")

    def test_delete(self) -> None:
        path = self.linked_document()
        self.api.delete_note.return_value = Ok(True)

        self.assertTrue(self.app.delete(path))
        self.confirm.assert_called_once_with("Notes")
        self.notify.assert_called_once_with("Successfully unlinked note from HackMD!")
        self.assertEqual(read_document(path), "Body\n")

    def test_delete_cancelled(self) -> None:
        path = self.linked_document()
        self.confirm.return_value = False

        self.assertTrue(self.app.delete(path))
        self.notify.assert_called_once_with("Deletion cancelled.")
        self.api.delete_note.assert_not_called()

    def test_create_from_url(self) -> None:
        self.api.get_note.return_value = Ok(HackMDNote(id="abc", title="Notes", content="Body\n"))

        self.assertTrue(self.app.create_from_url("https://hackmd.io/abc"))
        self.notify.assert_called_once_with(f"Note created: {self.root_dir.resolve() / 'Notes.md'}")

    def test_create_from_url_existing(self) -> None:
        path = self.linked_document()

        self.assertTrue(self.app.create_from_url("https://hackmd.io/abc"))
        self.notify.assert_called_once_with(
            f'This note already exists at "{path.resolve()}". Use the "pull" command to update its content.'
        )

    def test_create_from_url_invalid(self) -> None:
        self.assertFalse(self.app.create_from_url("https://example.com/abc"))
        self.notify.assert_called_once_with("Operation failed: Invalid HackMD URL: https://example.com/abc")


class TestDefaultClipboard(TypedTestCase):
    def test_notify(self) -> None:
        with TemporaryDirectory() as tmp:
            root_dir = Path(tmp)
            write_document(root_dir / "Notes.md", join({"url": "https://hackmd.io/abc"}, "Body\n"))
            sessions = MagicMock(spec=HackMDSessionCache)
            sessions.get.return_value = Ok(MagicMock(spec=HackMDSession))
            notify = MagicMock()

            app = Application(sessions, LocalDocumentHost(root_dir), notify=notify, confirm=lambda name: False)
            self.assertTrue(app.copy_url(root_dir / "Notes.md"))
            notify.assert_called_once_with("https://hackmd.io/abc")


if __name__ == "__main__":
    unittest.main()
