"""
Synchronize Markdown files with HackMD notes.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import enum
import os
from typing import TypeVar, overload
from urllib.parse import urlparse

from .api_types import CommentPermissionType, NotePermissionRole

E = TypeVar("E", bound=enum.Enum)

DEFAULT_API_URL = "https://api.hackmd.io/v1"
DEFAULT_DOMAIN = "hackmd.io"


class ArgumentError(ValueError):
    "Raised when wrong arguments are passed to a function call."


@enum.unique
class ErrorKind(enum.Enum):
    """
    Classification of failures reported by synchronization commands.

    Transport and HTTP failures are mapped to one of these kinds before they reach the synchronization logic.
    """

    AUTH_REQUIRED = "auth_required"
    AUTH_INVALID = "auth_invalid"
    PERMISSION_DENIED = "permission_denied"
    NOTE_NOT_FOUND = "note_not_found"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    CONNECTION_FAILED = "connection_failed"
    SYNC_CONFLICT_REMOTE = "sync_conflict_remote"
    SYNC_CONFLICT_LOCAL = "sync_conflict_local"
    SYNC_METADATA_MISSING = "sync_metadata_missing"
    SYNC_NOT_LINKED = "sync_not_linked"
    INVALID_URL = "invalid_url"
    NO_ACTIVE_DOCUMENT = "no_active_document"
    UNKNOWN = "unknown"

    @property
    def is_transient(self) -> bool:
        "True if a request that failed with this kind may succeed when repeated."

        return self in (ErrorKind.RATE_LIMITED, ErrorKind.SERVER_ERROR)

    @property
    def is_auth_failure(self) -> bool:
        return self in (ErrorKind.AUTH_REQUIRED, ErrorKind.AUTH_INVALID)


class HackMDError(RuntimeError):
    """
    Raised when a HackMD API call or a synchronization step fails.

    :param kind: Classification of the failure.
    :param status_code: HTTP status code, if the failure originates from an HTTP response.
    """

    kind: ErrorKind
    status_code: int | None

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.UNKNOWN, status_code: int | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code

    @property
    def message(self) -> str:
        return str(self)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, {self.kind}, status_code={self.status_code!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HackMDError):
            return NotImplemented
        return self.kind is other.kind and self.message == other.message and self.status_code == other.status_code

    def __hash__(self) -> int:
        return hash((self.kind, self.message, self.status_code))


@overload
def _validate_domain(domain: str) -> str: ...


@overload
def _validate_domain(domain: str | None) -> str | None: ...


def _validate_domain(domain: str | None) -> str | None:
    if domain is None:
        return None

    if domain.startswith(("http://", "https://")) or domain.endswith("/"):
        raise ArgumentError("HackMD domain looks like a URL; only host name required")

    return domain


def _validate_api_url(api_url: str) -> str:
    scheme, netloc, _, _, _, _ = urlparse(api_url)
    if scheme not in ("http", "https") or not netloc:
        raise ArgumentError(f"HackMD API URL must be an absolute URL: {api_url}")

    return api_url.rstrip("/")


def _parse_enum(enum_type: type[E], value: E | str, name: str) -> E:
    if isinstance(value, enum_type):
        return value

    try:
        return enum_type(value)
    except ValueError:
        choices = ", ".join(repr(e.value) for e in enum_type)
        raise ArgumentError(f"invalid {name} {value!r}; expected one of: {choices}") from None


class ConnectionProperties:
    """
    Properties related to connecting to HackMD.

    :param api_url: HackMD API base URL, e.g. `https://api.hackmd.io/v1`.
    :param domain: Domain name for HackMD notes, e.g. `hackmd.io`.
    :param access_token: HackMD API access token.
    :param timeout: Time to wait for the server to respond to a single request [s].
    :param max_retries: Number of times a rate-limited or failed request is repeated.
    :param retry_delay: Initial delay between retries, doubled with each attempt [s].
    :param max_retry_delay: Longest time to wait before repeating a request, even if the server asks for more [s].
    :param settle_delay: Time to wait before re-fetching a note whose update has been accepted but not yet applied [s].
    :param headers: Additional HTTP headers to pass to HackMD API calls.
    """

    api_url: str
    domain: str
    access_token: str | None
    timeout: float
    max_retries: int
    retry_delay: float
    max_retry_delay: float
    settle_delay: float
    headers: dict[str, str] | None

    def __init__(
        self,
        *,
        api_url: str | None = None,
        domain: str | None = None,
        access_token: str | None = None,
        timeout: float = 10.0,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        max_retry_delay: float = 30.0,
        settle_delay: float = 1.0,
        headers: dict[str, str] | None = None,
    ) -> None:
        opt_api_url = api_url or os.getenv("HACKMD_API_URL") or DEFAULT_API_URL
        opt_domain = domain or os.getenv("HACKMD_DOMAIN") or DEFAULT_DOMAIN
        opt_access_token = access_token or os.getenv("HACKMD_ACCESS_TOKEN")

        if timeout <= 0:
            raise ArgumentError("timeout must be positive")
        if max_retries < 0:
            raise ArgumentError("number of retries must not be negative")

        self.api_url = _validate_api_url(opt_api_url)
        self.domain = _validate_domain(opt_domain)
        self.access_token = opt_access_token or None
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.max_retry_delay = max_retry_delay
        self.settle_delay = settle_delay
        self.headers = headers


class PermissionProperties:
    """
    Default sharing permissions assigned to notes created on HackMD.

    :param read_permission: Who can read a new note.
    :param write_permission: Who can edit a new note.
    :param comment_permission: Who can comment on a new note.
    """

    read_permission: NotePermissionRole
    write_permission: NotePermissionRole
    comment_permission: CommentPermissionType

    def __init__(
        self,
        read_permission: NotePermissionRole | str | None = None,
        write_permission: NotePermissionRole | str | None = None,
        comment_permission: CommentPermissionType | str | None = None,
    ) -> None:
        opt_read = read_permission or os.getenv("HACKMD_READ_PERMISSION") or NotePermissionRole.OWNER
        opt_write = write_permission or os.getenv("HACKMD_WRITE_PERMISSION") or NotePermissionRole.OWNER
        opt_comment = comment_permission or os.getenv("HACKMD_COMMENT_PERMISSION") or CommentPermissionType.DISABLED

        self.read_permission = _parse_enum(NotePermissionRole, opt_read, "read permission")
        self.write_permission = _parse_enum(NotePermissionRole, opt_write, "write permission")
        self.comment_permission = _parse_enum(CommentPermissionType, opt_comment, "comment permission")
