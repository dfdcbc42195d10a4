"""
Synchronize Markdown files with HackMD notes.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import json
import os
import sys
import unittest
from collections.abc import Container, Iterable
from datetime import datetime
from pathlib import Path
from typing import Any, TypeVar
from unittest.mock import MagicMock
from unittest.util import safe_repr

import requests

T = TypeVar("T")


class TypedTestCase(unittest.TestCase):
    def assertEqual(self, first: T, second: T, msg: str | None = None) -> None:
        super().assertEqual(first, second, msg)

    def assertNotEqual(self, first: T, second: T, msg: str | None = None) -> None:
        super().assertNotEqual(first, second, msg)

    def assertIn(self, member: T, container: Iterable[T] | Container[T], msg: str | None = None) -> None:
        super().assertIn(member, container, msg)

    def assertNotIn(self, member: T, container: Iterable[T] | Container[T], msg: str | None = None) -> None:
        super().assertNotIn(member, container, msg)

    if sys.version_info < (3, 14):

        def assertStartsWith(self, text: str, prefix: str, msg: str | None = None) -> None:
            """Just like self.assertTrue(text.startswith(prefix)), but with a nicer default message."""

            if not text.startswith(prefix):
                standardMsg = "%s does not start with %s" % (
                    safe_repr(text),
                    safe_repr(prefix),
                )
                self.fail(self._formatMessage(msg, standardMsg))


def mock_response(status_code: int = 200, payload: Any = None, *, headers: dict[str, str] | None = None) -> MagicMock:
    "Creates a stand-in for an HTTP response received with `requests`."

    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    response.ok = status_code < 400
    response.reason = "Test"
    response.headers = headers or {}
    if payload is None:
        response.text = ""
        response.content = b""
        response.json.side_effect = requests.JSONDecodeError("Expecting value", "", 0)
    else:
        text = json.dumps(payload)
        response.text = text
        response.content = text.encode("utf-8")
        response.json.return_value = payload
    return response


def to_epoch_ms(value: datetime) -> int:
    "Converts a date and time into the representation used by HackMD API."

    return int(value.timestamp() * 1000)


def write_document(path: Path, text: str, *, modified: datetime | None = None) -> None:
    "Writes a Markdown document, optionally back-dating its modification time."

    with open(path, "w", encoding="utf-8") as f:
        f.write(text)
    if modified is not None:
        timestamp = modified.timestamp()
        os.utime(path, (timestamp, timestamp))


def read_document(path: Path) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()
