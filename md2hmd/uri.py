"""
Synchronize Markdown files with HackMD notes.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import re
from urllib.parse import urlparse

from .environment import DEFAULT_DOMAIN

_NOTE_ID_REGEXP = re.compile(r"^[A-Za-z0-9_-]+$")
_OWNER_REGEXP = re.compile(r"^@[^/]+$")


def is_valid_note_id(note_id: str) -> bool:
    "True if the string consists only of characters permitted in a HackMD note ID."

    return _NOTE_ID_REGEXP.match(note_id) is not None


def _is_hosting_domain(host: str, domain: str) -> bool:
    return host == domain or host.endswith(f".{domain}")


def id_from_url(url: str | None, domain: str = DEFAULT_DOMAIN) -> str | None:
    """
    Extracts the note ID from a HackMD note URL.

    Accepts URLs in the form `https://hackmd.io/<id>`, `https://hackmd.io/@<owner>/<id>` and team sub-domains such as
    `https://team.hackmd.io/<id>`. Query string and fragment are ignored.

    :param url: Canonical URL of a note, e.g. as stored in front-matter.
    :param domain: Host name of the HackMD site.
    :returns: Note ID, or `None` if the URL does not point to a note on the HackMD site.
    """

    if not url or not isinstance(url, str):
        return None

    urlparts = urlparse(url.strip())
    if urlparts.scheme not in ("http", "https"):
        return None

    host = (urlparts.hostname or "").lower()
    if not _is_hosting_domain(host, domain.lower()):
        return None

    segments = [segment for segment in urlparts.path.split("/") if segment]
    if len(segments) == 2 and _OWNER_REGEXP.match(segments[0]):
        segments = segments[1:]
    if len(segments) != 1:
        return None

    note_id = segments[0]
    if not is_valid_note_id(note_id):
        return None
    return note_id


def url_from_id(note_id: str, domain: str = DEFAULT_DOMAIN) -> str:
    """
    Builds the canonical URL of a HackMD note.

    :param note_id: HackMD note ID.
    :param domain: Host name of the HackMD site.
    """

    if not is_valid_note_id(note_id):
        raise ValueError(f"expected: HackMD note ID; got: {note_id!r}")

    return f"https://{domain}/{note_id}"
