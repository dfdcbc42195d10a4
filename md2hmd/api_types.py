"""
Synchronize Markdown files with HackMD notes.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import datetime
import enum
from dataclasses import dataclass


@enum.unique
class NotePermissionRole(enum.Enum):
    """
    Audience that is granted read or write access to a HackMD note.
    """

    OWNER = "owner"
    SIGNED_IN = "signed_in"
    GUEST = "guest"


@enum.unique
class CommentPermissionType(enum.Enum):
    """
    Audience that is allowed to comment on a HackMD note.
    """

    DISABLED = "disabled"
    FORBIDDEN = "forbidden"
    OWNERS = "owners"
    SIGNED_IN_USERS = "signed_in_users"
    EVERYONE = "everyone"


@dataclass(frozen=True)
class HackMDUser:
    """
    Holds information about the user the access token belongs to.

    :param id: Unique ID for the user.
    :param name: Display name of the user.
    :param userPath: Path component that identifies the user in note URLs (e.g. `@userPath/noteId`).
    :param email: E-mail address of the user.
    """

    id: str
    name: str
    userPath: str
    email: str | None = None


@dataclass(frozen=True)
class HackMDNote:
    """
    Holds HackMD note data used for note synchronization.

    :param id: HackMD note ID.
    :param title: Note title, typically inferred by HackMD from the note content.
    :param content: Note content as Markdown text, including front-matter.
    :param createdAt: Date and time when the note was created.
    :param lastChangedAt: Date and time when the note was last edited, or `None` if never edited after creation.
    :param teamPath: Path of the team that owns the note, or `None` for personal notes.
    :param userPath: Path of the user who owns the note.
    :param publishLink: Link to the published (read-only) version of the note.
    :param readPermission: Who can read the note.
    :param writePermission: Who can edit the note.
    :param commentPermission: Who can comment on the note.
    :param tags: Tags assigned to the note.
    """

    id: str
    title: str | None = None
    content: str | None = None
    createdAt: datetime.datetime | None = None
    lastChangedAt: datetime.datetime | None = None
    teamPath: str | None = None
    userPath: str | None = None
    publishLink: str | None = None
    readPermission: NotePermissionRole | None = None
    writePermission: NotePermissionRole | None = None
    commentPermission: CommentPermissionType | None = None
    tags: list[str] | None = None

    @property
    def modified_at(self) -> datetime.datetime | None:
        "Time of last modification. A note that has never been edited after creation was last modified when created."

        return self.lastChangedAt or self.createdAt


@dataclass(frozen=True)
class HackMDCreateNoteRequest:
    title: str | None = None
    content: str | None = None
    readPermission: NotePermissionRole | None = None
    writePermission: NotePermissionRole | None = None
    commentPermission: CommentPermissionType | None = None


@dataclass(frozen=True)
class HackMDUpdateNoteRequest:
    content: str | None = None
    readPermission: NotePermissionRole | None = None
    writePermission: NotePermissionRole | None = None
