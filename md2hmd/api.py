"""
Synchronize Markdown files with HackMD notes.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import logging
import random
import threading
import time
from typing import Any, TypeVar, overload
from urllib.parse import urlparse, urlunparse

import requests
from cattrs import BaseValidationError

from .api_types import CommentPermissionType, HackMDCreateNoteRequest, HackMDNote, HackMDUpdateNoteRequest, HackMDUser, NotePermissionRole
from .environment import ConnectionProperties, ErrorKind, HackMDError
from .result import as_result
from .serializer import json_to_object, object_to_json_payload
from .uri import is_valid_note_id

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


def build_url(base_url: str) -> str:
    "Builds a URL with scheme, host, port and path, rejecting URLs with parameters, query string or fragment."

    scheme, netloc, path, params, query_str, fragment = urlparse(base_url)

    if params:
        raise ValueError("expected: url with no parameters")
    if query_str:
        raise ValueError("expected: url with no query string")
    if fragment:
        raise ValueError("expected: url with no fragment")

    url_parts = (scheme, netloc, path, None, None, None)
    return urlunparse(url_parts)


def classify_status(status_code: int) -> ErrorKind:
    "Maps an HTTP error status code to a kind of failure."

    match status_code:
        case 401:
            return ErrorKind.AUTH_INVALID
        case 403:
            return ErrorKind.PERMISSION_DENIED
        case 404:
            return ErrorKind.NOTE_NOT_FOUND
        case 429:
            return ErrorKind.RATE_LIMITED
        case _ if 500 <= status_code < 600:
            return ErrorKind.SERVER_ERROR
        case _:
            return ErrorKind.UNKNOWN


_ERROR_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.AUTH_INVALID: "Authentication failed. Please check your access token.",
    ErrorKind.PERMISSION_DENIED: "Not authorized to perform this action.",
    ErrorKind.NOTE_NOT_FOUND: "Note not found.",
    ErrorKind.RATE_LIMITED: "Too many requests to HackMD. Please try again later.",
    ErrorKind.SERVER_ERROR: "HackMD server error.",
}


def error_from_response(response: requests.Response) -> HackMDError:
    "Converts an HTTP response with an error status code into an exception."

    kind = classify_status(response.status_code)
    message = _ERROR_MESSAGES.get(kind)
    if message is None:
        message = f"Request failed with HTTP status {response.status_code}: {response.reason}"
    elif kind is ErrorKind.SERVER_ERROR:
        message = f"{message} (HTTP status {response.status_code})"
    return HackMDError(message, kind, response.status_code)


def _retry_after(response: requests.Response) -> float | None:
    "Seconds to wait as requested by the server, if the server has sent a numeric `Retry-After` header."

    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


class HackMDSession:
    """
    Represents an active connection to the HackMD API, authenticated with a single access token.
    """

    _session: requests.Session
    _api_url: str
    _timeout: float
    _max_retries: int
    _retry_delay: float
    _max_retry_delay: float
    _settle_delay: float

    access_token: str
    user: HackMDUser | None

    def __init__(self, session: requests.Session, properties: ConnectionProperties) -> None:
        if not properties.access_token:
            raise HackMDError("HackMD access token not specified.", ErrorKind.AUTH_REQUIRED)

        self._session = session
        self._api_url = properties.api_url
        self._timeout = properties.timeout
        self._max_retries = properties.max_retries
        self._retry_delay = properties.retry_delay
        self._max_retry_delay = properties.max_retry_delay
        self._settle_delay = properties.settle_delay
        self.access_token = properties.access_token
        self.user = None

        self._session.headers.update({"Authorization": f"Bearer {properties.access_token}"})
        if properties.headers:
            self._session.headers.update(properties.headers)

    def close(self) -> None:
        self._session.close()

    def _build_url(self, path: str) -> str:
        """
        Builds a full URL for invoking the HackMD API.

        :param path: Path of API endpoint to invoke.
        :returns: A full URL.
        """

        return build_url(f"{self._api_url}{path}")

    def _send(self, method: str, path: str, *, body: Any = None) -> requests.Response:
        """
        Executes an HTTP request via HackMD API, repeating requests that have failed with a transient error.

        :raises HackMDError: The request has failed, or the server has responded with an error status code.
        """

        url = self._build_url(path)
        headers = {"Accept": "application/json"}
        data: bytes | None = None
        if body is not None:
            headers["Content-Type"] = "application/json"
            data = object_to_json_payload(body)
            LOGGER.debug("Sending HTTP payload:\n%s", data.decode("utf-8"))

        attempt = 0
        while True:
            try:
                response = self._session.request(method, url, data=data, headers=headers, timeout=self._timeout, verify=True)
            except (requests.ConnectionError, requests.Timeout) as e:
                raise HackMDError(f"Unable to connect to HackMD: {e}", ErrorKind.CONNECTION_FAILED, 0) from e
            except requests.RequestException as e:
                raise HackMDError(f"Request failed: {e}", ErrorKind.UNKNOWN) from e

            if response.text:
                LOGGER.debug("Received HTTP payload:\n%s", response.text)
            if response.ok:
                return response

            error = error_from_response(response)
            if not error.kind.is_transient or attempt >= self._max_retries:
                raise error

            delay = _retry_after(response)
            if delay is None:
                delay = self._retry_delay * (2**attempt) + random.uniform(0, 1)
            delay = min(delay, self._max_retry_delay)
            attempt += 1
            LOGGER.warning("%s %s failed with HTTP status %d, retrying in %.1f seconds (attempt %d/%d)", method, path, response.status_code, delay, attempt, self._max_retries)
            time.sleep(delay)

    @overload
    def _invoke(self, method: str, path: str, response_type: None, *, body: Any = None) -> None: ...

    @overload
    def _invoke(self, method: str, path: str, response_type: type[T], *, body: Any = None) -> T: ...

    def _invoke(self, method: str, path: str, response_type: type[T] | None, *, body: Any = None) -> T | None:
        "Executes an HTTP request via HackMD API, and converts the response body into the expected type."

        response = self._send(method, path, body=body)
        if response_type is None:
            return None
        return self._cast(response_type, response)

    def _cast(self, response_type: type[T], response: requests.Response) -> T:
        "Converts a response body into the expected type."

        try:
            return json_to_object(response_type, response.json())
        except (requests.JSONDecodeError, BaseValidationError, TypeError, ValueError) as e:
            raise HackMDError(f"Unexpected response from HackMD: {e}", ErrorKind.UNKNOWN, response.status_code) from e

    def _get_user(self) -> HackMDUser:
        user = self._invoke("GET", "/me", HackMDUser)
        if not user.id:
            raise HackMDError("Unexpected response from HackMD: user has no ID", ErrorKind.UNKNOWN)
        return user

    @as_result
    def authenticate(self) -> HackMDUser:
        """
        Verifies the access token by fetching the user it belongs to.

        :returns: Information about the authenticated user.
        """

        user = self._get_user()
        LOGGER.info("Authenticated as HackMD user: %s", user.name)
        self.user = user
        return user

    def _get_note(self, note_id: str) -> HackMDNote:
        if not is_valid_note_id(note_id):
            raise HackMDError(f"Invalid HackMD note ID: {note_id}", ErrorKind.INVALID_URL)
        return self._invoke("GET", f"/notes/{note_id}", HackMDNote)

    @as_result
    def get_note(self, note_id: str) -> HackMDNote:
        """
        Retrieves HackMD note details and content.

        :param note_id: The HackMD note ID.
        :returns: HackMD note info and content.
        """

        return self._get_note(note_id)

    @as_result
    def create_note(
        self,
        *,
        title: str | None = None,
        content: str | None = None,
        read_permission: NotePermissionRole | None = None,
        write_permission: NotePermissionRole | None = None,
        comment_permission: CommentPermissionType | None = None,
    ) -> HackMDNote:
        """
        Creates a new HackMD note.

        :param title: Note title. HackMD infers the title from the content if omitted.
        :param content: Markdown text of the note.
        :param read_permission: Who can read the note.
        :param write_permission: Who can edit the note.
        :param comment_permission: Who can comment on the note.
        :returns: HackMD note info of the newly created note.
        """

        request = HackMDCreateNoteRequest(
            title=title,
            content=content,
            readPermission=read_permission,
            writePermission=write_permission,
            commentPermission=comment_permission,
        )

        LOGGER.info("Creating new note with title: %s", title)
        note = self._invoke("POST", "/notes", HackMDNote, body=request)
        LOGGER.info("Created note: %s", note.id)
        return note

    @as_result
    def update_note(
        self,
        note_id: str,
        *,
        content: str | None = None,
        read_permission: NotePermissionRole | None = None,
        write_permission: NotePermissionRole | None = None,
    ) -> HackMDNote:
        """
        Updates an existing HackMD note.

        HackMD may accept an update without applying it immediately (HTTP 202). In this case, waits for the change to
        settle, and re-fetches the note.

        :param note_id: The HackMD note ID.
        :param content: New Markdown text to assign to the note.
        :param read_permission: Who can read the note.
        :param write_permission: Who can edit the note.
        :returns: HackMD note info after the update.
        """

        if not is_valid_note_id(note_id):
            raise HackMDError(f"Invalid HackMD note ID: {note_id}", ErrorKind.INVALID_URL)

        request = HackMDUpdateNoteRequest(content=content, readPermission=read_permission, writePermission=write_permission)

        LOGGER.info("Updating note: %s", note_id)
        response = self._send("PATCH", f"/notes/{note_id}", body=request)
        if response.status_code == 202 or not response.content:
            LOGGER.debug("Update of note %s accepted, re-fetching in %.1f seconds", note_id, self._settle_delay)
            time.sleep(self._settle_delay)
            return self._get_note(note_id)

        return self._cast(HackMDNote, response)

    @as_result
    def delete_note(self, note_id: str) -> bool:
        """
        Deletes a HackMD note.

        Deleting a note that no longer exists is not an error.

        :param note_id: The HackMD note ID.
        :returns: True if the note does not exist on HackMD anymore.
        """

        if not is_valid_note_id(note_id):
            raise HackMDError(f"Invalid HackMD note ID: {note_id}", ErrorKind.INVALID_URL)

        LOGGER.info("Deleting note: %s", note_id)
        try:
            self._send("DELETE", f"/notes/{note_id}")
        except HackMDError as e:
            if e.kind is not ErrorKind.NOTE_NOT_FOUND:
                raise
            LOGGER.info("Note %s was already deleted or does not exist", note_id)
        return True


class HackMDSessionCache:
    """
    Maintains at most one authenticated session, keyed by access token.

    A session is created and authenticated on first use, and re-used as long as the same access token is passed.
    Passing a different access token replaces the session. Requests still in flight on a replaced session are not
    cancelled.
    """

    _properties: ConnectionProperties
    _session: HackMDSession | None
    _lock: threading.Lock

    def __init__(self, properties: ConnectionProperties) -> None:
        self._properties = properties
        self._session = None
        self._lock = threading.Lock()

    def _create_session(self, properties: ConnectionProperties) -> HackMDSession:
        return HackMDSession(requests.Session(), properties)

    @as_result
    def get(self, access_token: str | None = None) -> HackMDSession:
        """
        Returns an authenticated session for an access token.

        :param access_token: Access token to authenticate with; defaults to the token in connection properties.
        """

        token = access_token or self._properties.access_token
        if not token:
            raise HackMDError("HackMD access token not specified. Set an access token to connect to HackMD.", ErrorKind.AUTH_REQUIRED)

        with self._lock:
            if self._session is not None and self._session.access_token == token:
                return self._session

            if self._session is not None:
                LOGGER.info("Access token has changed, discarding previous session")
                self._session = None

            properties = ConnectionProperties(
                api_url=self._properties.api_url,
                domain=self._properties.domain,
                access_token=token,
                timeout=self._properties.timeout,
                max_retries=self._properties.max_retries,
                retry_delay=self._properties.retry_delay,
                max_retry_delay=self._properties.max_retry_delay,
                settle_delay=self._properties.settle_delay,
                headers=self._properties.headers,
            )
            session = self._create_session(properties)
            result = session.authenticate()
            if not result.ok:
                session.close()
                result.unwrap()

            self._session = session
            return session

    def invalidate(self) -> None:
        "Discards the current session such that the next request authenticates again."

        with self._lock:
            if self._session is not None:
                LOGGER.info("Discarding HackMD session")
                self._session = None
