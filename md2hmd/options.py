"""
Synchronize Markdown files with HackMD notes.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import enum
from dataclasses import dataclass, field
from datetime import timedelta

from .api_types import CommentPermissionType, NotePermissionRole
from .environment import DEFAULT_DOMAIN


@enum.unique
class SyncMode(enum.Enum):
    """
    Whether to check for conflicting edits before overwriting one side.

    In *force* mode, conflict detection is skipped, and the target unconditionally takes the content of the source.
    """

    NORMAL = "normal"
    FORCE = "force"


@dataclass
class SyncOptions:
    """
    Options that control how Markdown documents are synchronized with HackMD notes.

    :param domain: Host name of the HackMD site used in canonical note URLs.
    :param time_margin: Tolerance for clock skew when comparing modification times with the time of last sync.
    :param read_permission: Who can read notes created on HackMD.
    :param write_permission: Who can edit notes created on HackMD.
    :param comment_permission: Who can comment on notes created on HackMD.
    :param extension: File extension of Markdown documents.
    """

    domain: str = DEFAULT_DOMAIN
    time_margin: timedelta = field(default_factory=lambda: timedelta(seconds=4))
    read_permission: NotePermissionRole = NotePermissionRole.OWNER
    write_permission: NotePermissionRole = NotePermissionRole.OWNER
    comment_permission: CommentPermissionType = CommentPermissionType.DISABLED
    extension: str = ".md"
