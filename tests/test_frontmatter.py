"""
Synchronize Markdown files with HackMD notes.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import logging
import unittest
from datetime import datetime, timezone

from md2hmd.frontmatter import SyncMetadata, join, merge_metadata, split, strip_reserved
from tests.utility import TypedTestCase

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(funcName)s [%(lineno)d] - %(message)s",
)

document_with_front_matter = """---
title: Meeting notes
tags:
  - weekly
  - team
---
# Agenda

1. Status
"""


class TestFrontMatter(TypedTestCase):
    def test_split(self) -> None:
        front_matter = split(document_with_front_matter)
        self.assertEqual(front_matter.metadata, {"title": "Meeting notes", "tags": ["weekly", "team"]})
        self.assertEqual(front_matter.body, "# Agenda\n\n1. Status\n")
        self.assertEqual(document_with_front_matter[front_matter.header_length :], front_matter.body)

    def test_split_no_front_matter(self) -> None:
        text = "# Agenda\n\n---\n\nAfter a horizontal rule.\n"
        front_matter = split(text)
        self.assertIsNone(front_matter.metadata)
        self.assertEqual(front_matter.body, text)
        self.assertEqual(front_matter.header_length, 0)

    def test_split_not_at_start(self) -> None:
        text = "\n---\ntitle: Not front-matter\n---\nBody\n"
        front_matter = split(text)
        self.assertIsNone(front_matter.metadata)
        self.assertEqual(front_matter.body, text)

    def test_split_invalid_yaml(self) -> None:
        text = "---\ntitle: [unclosed\n---\nBody\n"
        front_matter = split(text)
        self.assertIsNone(front_matter.metadata)
        self.assertEqual(front_matter.body, text)
        self.assertEqual(front_matter.header_length, 0)

    def test_split_not_a_mapping(self) -> None:
        text = "---\n- one\n- two\n---\nBody\n"
        front_matter = split(text)
        self.assertIsNone(front_matter.metadata)
        self.assertEqual(front_matter.body, text)

    def test_split_unterminated(self) -> None:
        text = "---\ntitle: Untitled\n\nBody\n"
        self.assertIsNone(split(text).metadata)

    def test_split_crlf(self) -> None:
        front_matter = split("---\r\ntitle: Windows\r\n---\r\nBody\r\n")
        self.assertEqual(front_matter.metadata, {"title": "Windows"})
        self.assertEqual(front_matter.body, "Body\r\n")

    def test_join(self) -> None:
        text = join({"url": "https://hackmd.io/abc", "title": "Notes"}, "Body\n")
        self.assertEqual(text, "---\nurl: https://hackmd.io/abc\ntitle: Notes\n---\nBody\n")

    def test_join_empty(self) -> None:
        self.assertEqual(join({}, "Body\n"), "Body\n")
        self.assertEqual(join(None, "Body\n"), "Body\n")

    def test_round_trip(self) -> None:
        cases = [
            ({"title": "Notes"}, "Body\n"),
            ({"title": "Ünïcödé ábécé", "lastSync": "2024-05-01T10:00:00.000Z"}, ""),
            ({"nested": {"a": 1, "b": [True, None, 2.5]}, "url": "https://hackmd.io/@owner/abc"}, "# Heading\n\n---\n\nText"),
            ({"empty": {}, "number": 42}, "\n\nLeading blank lines\n"),
        ]
        for metadata, body in cases:
            with self.subTest(metadata=metadata):
                front_matter = split(join(metadata, body))
                self.assertEqual(front_matter.metadata, metadata)
                self.assertEqual(front_matter.body, body)

    def test_merge(self) -> None:
        target = {"url": "https://hackmd.io/old", "tags": ["a"], "author": "me"}
        source = {"url": "https://hackmd.io/new", "lastSync": "2024-05-01T10:00:00.000Z"}
        merged = merge_metadata(target, source)
        self.assertEqual(
            merged,
            {"url": "https://hackmd.io/new", "tags": ["a"], "author": "me", "lastSync": "2024-05-01T10:00:00.000Z"},
        )
        self.assertEqual(target["url"], "https://hackmd.io/old")

    def test_merge_prunes_empty_objects(self) -> None:
        merged = merge_metadata({"hackmd": {}, "keep": {"a": 1}, "blank": "", "none": None}, {"title": "T"})
        self.assertEqual(merged, {"keep": {"a": 1}, "blank": "", "none": None, "title": "T"})

        merged = merge_metadata({"hackmd": {"id": "abc"}}, {"hackmd": {}})
        self.assertNotIn("hackmd", merged)

    def test_merge_no_target(self) -> None:
        self.assertEqual(merge_metadata(None, {"title": "T"}), {"title": "T"})

    def test_strip_reserved(self) -> None:
        metadata = {"url": "u", "author": "me", "title": "t", "lastSync": "s", "teamPath": "p", "tags": []}
        self.assertEqual(strip_reserved(metadata), {"author": "me", "tags": []})
        self.assertEqual(strip_reserved(None), {})


class TestSyncMetadata(TypedTestCase):
    def test_from_metadata(self) -> None:
        metadata = SyncMetadata.from_metadata(
            {"url": "https://hackmd.io/abc", "title": "Notes", "lastSync": "2024-05-01T10:00:00.000Z", "teamPath": "team", "author": "me"}
        )
        self.assertEqual(metadata.url, "https://hackmd.io/abc")
        self.assertEqual(metadata.title, "Notes")
        self.assertEqual(metadata.last_sync, datetime(2024, 5, 1, 10, 0, 0, tzinfo=timezone.utc))
        self.assertEqual(metadata.team_path, "team")
        self.assertEqual(metadata.extra, {"author": "me"})

    def test_from_metadata_unquoted_timestamp(self) -> None:
        front_matter = split("---\nlastSync: 2024-05-01T10:00:00Z\n---\n")
        metadata = SyncMetadata.from_metadata(front_matter.metadata)
        self.assertEqual(metadata.last_sync, datetime(2024, 5, 1, 10, 0, 0, tzinfo=timezone.utc))

    def test_from_metadata_invalid_values(self) -> None:
        metadata = SyncMetadata.from_metadata({"url": 42, "lastSync": "yesterday"})
        self.assertIsNone(metadata.url)
        self.assertIsNone(metadata.last_sync)

    def test_from_metadata_absent(self) -> None:
        metadata = SyncMetadata.from_metadata(None)
        self.assertIsNone(metadata.url)
        self.assertEqual(metadata.extra, {})

    def test_to_metadata(self) -> None:
        metadata = SyncMetadata(
            url="https://hackmd.io/abc",
            title="Notes",
            last_sync=datetime(2024, 5, 1, 10, 0, 0, 123000, tzinfo=timezone.utc),
            extra={"author": "me", "legacy": {}},
        )
        self.assertEqual(
            metadata.to_metadata(),
            {"author": "me", "url": "https://hackmd.io/abc", "title": "Notes", "lastSync": "2024-05-01T10:00:00.123Z"},
        )

    def test_round_trip(self) -> None:
        metadata = SyncMetadata(url="https://hackmd.io/abc", title="Notes", last_sync=datetime(2024, 5, 1, tzinfo=timezone.utc), team_path="t", extra={"x": 1})
        self.assertEqual(SyncMetadata.from_metadata(split(join(metadata.to_metadata(), "")).metadata), metadata)


if __name__ == "__main__":
    unittest.main()
