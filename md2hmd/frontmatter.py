"""
Synchronize Markdown files with HackMD notes.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import logging
import re
import typing
from dataclasses import dataclass, field
from datetime import datetime

import yaml

from .serializer import JsonType, format_timestamp, parse_timestamp

LOGGER = logging.getLogger(__name__)

URL_KEY = "url"
TITLE_KEY = "title"
LAST_SYNC_KEY = "lastSync"
TEAM_PATH_KEY = "teamPath"

# keys that associate a Markdown document with a HackMD note
RESERVED_KEYS = (URL_KEY, TITLE_KEY, LAST_SYNC_KEY, TEAM_PATH_KEY)

Metadata = dict[str, typing.Any]


@dataclass(frozen=True)
class FrontMatter:
    """
    A Markdown document split into front-matter and body.

    :param metadata: Key-value pairs parsed from the front-matter, or `None` if the document has no (valid) front-matter.
    :param body: Text that follows the front-matter.
    :param header_length: Number of characters the front-matter block (including delimiters) occupies.
    """

    metadata: Metadata | None
    body: str
    header_length: int = 0


_FRONT_MATTER_REGEXP = re.compile(r"\A---[ \t]*\r?\n(.*?)^---[ \t]*(?:\r?\n|\Z)", flags=re.DOTALL | re.MULTILINE)


def split(text: str) -> FrontMatter:
    """
    Extracts the front-matter from a Markdown document.

    A front-matter block is recognized only at the very beginning of the text, enclosed in lines of `---` (triple
    dash), and only if the enclosed text is a YAML mapping. Otherwise, the entire text is returned as body.
    """

    match = _FRONT_MATTER_REGEXP.match(text)
    if match is None:
        return FrontMatter(None, text, 0)

    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError as e:
        LOGGER.warning("Ignoring front-matter that is not valid YAML: %s", e)
        return FrontMatter(None, text, 0)

    if not isinstance(data, dict):
        return FrontMatter(None, text, 0)

    header_length = match.end()
    return FrontMatter(typing.cast(Metadata, data), text[header_length:], header_length)


def join(metadata: Metadata | None, body: str) -> str:
    """
    Prepends front-matter to the body of a Markdown document.

    An empty mapping produces no front-matter block.
    """

    if not metadata:
        return body

    block = yaml.safe_dump(metadata, sort_keys=False, allow_unicode=True, default_flow_style=False)
    return f"---\n{block}---\n{body}"


def merge_metadata(target: Metadata | None, source: Metadata) -> Metadata:
    """
    Merges two front-matter mappings.

    Keys in the source mapping take precedence. Keys whose value is an empty mapping after the merge are removed.
    Neither input mapping is modified.
    """

    merged: Metadata = dict(target or {})
    merged.update(source)
    return {key: value for key, value in merged.items() if not (isinstance(value, dict) and not value)}


def strip_reserved(metadata: Metadata | None) -> Metadata:
    "Removes the keys that link a document to a HackMD note, keeping all other keys in their original order."

    return {key: value for key, value in (metadata or {}).items() if key not in RESERVED_KEYS}


@dataclass
class SyncMetadata:
    """
    Front-matter of a Markdown document, with keys used for synchronization separated from user-defined keys.

    :param url: Canonical URL of the HackMD note the document is linked to.
    :param title: Title of the HackMD note.
    :param last_sync: Time when the document and the note were last reconciled.
    :param team_path: Path of the team that owns the note, if any.
    :param extra: All other front-matter keys, preserved verbatim.
    """

    url: str | None = None
    title: str | None = None
    last_sync: datetime | None = None
    team_path: str | None = None
    extra: Metadata = field(default_factory=dict)

    @classmethod
    def from_metadata(cls, metadata: Metadata | None) -> "SyncMetadata":
        """
        Separates synchronization keys from user-defined keys.

        Values of unexpected type are treated as absent, e.g. a `lastSync` that is not a valid timestamp.
        """

        if not metadata:
            return cls()

        url = metadata.get(URL_KEY)
        title = metadata.get(TITLE_KEY)
        team_path = metadata.get(TEAM_PATH_KEY)

        last_sync: datetime | None = None
        value = metadata.get(LAST_SYNC_KEY)
        if isinstance(value, (str, datetime)):
            try:
                last_sync = parse_timestamp(value)
            except ValueError:
                LOGGER.warning("Ignoring invalid timestamp in front-matter: %s", value)

        return cls(
            url=url if isinstance(url, str) else None,
            title=str(title) if title is not None else None,
            last_sync=last_sync,
            team_path=team_path if isinstance(team_path, str) else None,
            extra=strip_reserved(metadata),
        )

    def sync_fields(self) -> dict[str, JsonType]:
        "Returns the synchronization keys that have a value."

        fields: dict[str, JsonType] = {}
        if self.url is not None:
            fields[URL_KEY] = self.url
        if self.title is not None:
            fields[TITLE_KEY] = self.title
        if self.last_sync is not None:
            fields[LAST_SYNC_KEY] = format_timestamp(self.last_sync)
        if self.team_path is not None:
            fields[TEAM_PATH_KEY] = self.team_path
        return fields

    def to_metadata(self) -> Metadata:
        "Recombines user-defined keys and synchronization keys into a single front-matter mapping."

        return merge_metadata(self.extra, self.sync_fields())
