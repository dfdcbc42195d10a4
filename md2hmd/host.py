"""
Synchronize Markdown files with HackMD notes.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import logging
import os
from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path

from .environment import ErrorKind, HackMDError
from .extra import override

LOGGER = logging.getLogger(__name__)


class DocumentHost(ABC):
    """
    Gives access to the Markdown documents that are synchronized with HackMD.

    Documents are identified by their path. Synchronization reads and replaces the full text of a document exclusively
    through this interface.
    """

    @abstractmethod
    def exists(self, path: Path) -> bool:
        "True if a document exists at the given path."
        ...

    @abstractmethod
    def read_text(self, path: Path) -> str:
        """
        Returns the current text of a document.

        :raises HackMDError: The document does not exist.
        """
        ...

    @abstractmethod
    def write_text(self, path: Path, text: str) -> None:
        "Replaces the text of an existing document."
        ...

    @abstractmethod
    def create(self, path: Path, text: str) -> Path:
        """
        Creates a new document.

        :returns: Path of the newly created document.
        :raises FileExistsError: A document already exists at the given path.
        """
        ...

    @abstractmethod
    def modified_time(self, path: Path) -> datetime:
        "Time when the document was last modified, as a timezone-aware date and time."
        ...

    @abstractmethod
    def list_documents(self) -> Iterable[Path]:
        "Enumerates all Markdown documents."
        ...

    def document_name(self, path: Path) -> str:
        "Name of the document without directory and file extension."

        return path.stem

    def canonical_path(self, path: Path) -> Path:
        "A path that identifies the document uniquely, irrespective of how it has been referenced."

        return path


class LocalDocumentHost(DocumentHost):
    """
    Markdown documents stored as files in a directory tree on the local file system.

    :param root_dir: Directory that holds the Markdown documents, including documents in sub-directories.
    :param extension: File extension of Markdown documents.
    """

    root_dir: Path
    extension: str

    def __init__(self, root_dir: Path, extension: str = ".md") -> None:
        self.root_dir = root_dir.resolve()
        self.extension = extension

    def _resolve(self, path: Path) -> Path:
        if not path.is_absolute():
            path = self.root_dir / path
        return path.resolve()

    @override
    def canonical_path(self, path: Path) -> Path:
        return self._resolve(path)

    @override
    def exists(self, path: Path) -> bool:
        try:
            return self._resolve(path).is_file()
        except OSError:
            return False

    @override
    def read_text(self, path: Path) -> str:
        absolute_path = self._resolve(path)
        if not self.exists(absolute_path):
            raise HackMDError(f"Markdown document not found: {path}", ErrorKind.NO_ACTIVE_DOCUMENT)

        try:
            with open(absolute_path, "r", encoding="utf-8") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise HackMDError(f"Unable to read Markdown document {path}: {e}", ErrorKind.NO_ACTIVE_DOCUMENT) from e

    @override
    def write_text(self, path: Path, text: str) -> None:
        absolute_path = self._resolve(path)
        if not self.exists(absolute_path):
            raise HackMDError(f"Markdown document not found: {path}", ErrorKind.NO_ACTIVE_DOCUMENT)

        LOGGER.info("Updating Markdown document: %s", absolute_path)
        try:
            with open(absolute_path, "w", encoding="utf-8") as f:
                f.write(text)
        except OSError as e:
            raise HackMDError(f"Unable to write Markdown document {path}: {e}", ErrorKind.UNKNOWN) from e

    @override
    def create(self, path: Path, text: str) -> Path:
        absolute_path = self._resolve(path)

        try:
            os.makedirs(absolute_path.parent, exist_ok=True)
        except OSError as e:
            raise HackMDError(f"Unable to create directory for Markdown document {path}: {e}", ErrorKind.UNKNOWN) from e

        if os.path.lexists(absolute_path):
            # a directory or another entry with the same name
            raise FileExistsError(f"path already exists: {absolute_path}")

        LOGGER.info("Creating Markdown document: %s", absolute_path)
        try:
            with open(absolute_path, "x", encoding="utf-8") as f:
                f.write(text)
        except FileExistsError:
            raise
        except OSError as e:
            raise HackMDError(f"Unable to create Markdown document {path}: {e}", ErrorKind.UNKNOWN) from e
        return absolute_path

    @override
    def modified_time(self, path: Path) -> datetime:
        absolute_path = self._resolve(path)
        try:
            return datetime.fromtimestamp(absolute_path.stat().st_mtime, tz=timezone.utc)
        except OSError as e:
            raise HackMDError(f"Markdown document not found: {path}", ErrorKind.NO_ACTIVE_DOCUMENT) from e

    @override
    def list_documents(self) -> Iterable[Path]:
        for dirpath, dirnames, filenames in os.walk(self.root_dir):
            # skip hidden directories such as `.git` or `.obsidian`
            dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
            for filename in sorted(filenames):
                if filename.endswith(self.extension):
                    yield Path(dirpath) / filename
