"""
Synchronize Markdown files with HackMD notes.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import sys
from datetime import datetime, timezone
from typing import TypeVar

from cattrs.preconf.orjson import make_converter  # spellchecker:disable-line

JsonType = None | bool | int | float | str | dict[str, "JsonType"] | list["JsonType"]

T = TypeVar("T")


_converter = make_converter(forbid_extra_keys=False)

# request payloads carry only the fields that have been assigned
_payload_converter = make_converter(forbid_extra_keys=False, omit_if_default=True)


def parse_timestamp(value: str | int | float | datetime) -> datetime:
    """
    Interprets a timestamp as a timezone-aware date and time.

    HackMD reports timestamps as milliseconds elapsed since the epoch; front-matter holds ISO 8601 strings. Naive date
    and time values are assumed to be in UTC.
    """

    if isinstance(value, datetime):
        timestamp = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    elif isinstance(value, str):
        if sys.version_info < (3, 11) and value.endswith("Z"):
            # fromisoformat() prior to Python version 3.11 does not support military time zones like "Zulu" for UTC
            value = f"{value[:-1]}+00:00"
        timestamp = datetime.fromisoformat(value)
    else:
        raise TypeError(f"expected: timestamp as string, number or date-time; got: {type(value).__name__}")

    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp


def format_timestamp(value: datetime) -> str:
    "Formats a date and time as an ISO 8601 string in UTC with millisecond precision."

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    text = value.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


@_converter.register_structure_hook
def datetime_structure_hook(value: str | int | float, cls: type[datetime]) -> datetime:
    return parse_timestamp(value)


def json_to_object(typ: type[T], data: JsonType) -> T:
    """
    Converts a raw JSON object to a structured object, validating input data.

    :param typ: Target structured type.
    :param data: Source data as a JSON object.
    :returns: A valid object instance of the expected type.
    """

    return _converter.structure(data, typ)


def object_to_json_payload(data: object) -> bytes:
    """
    Converts a structured object to a JSON string encoded in UTF-8, omitting fields that have their default value.

    :param data: Object to convert to a JSON string.
    :returns: JSON string encoded in UTF-8.
    """

    return _payload_converter.dumps(data)
