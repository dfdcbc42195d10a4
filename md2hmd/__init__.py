"""
Synchronize Markdown files with HackMD notes.

Splits the front-matter of Markdown files, detects conflicting edits on either side, and invokes HackMD API endpoints
to create, update, fetch and delete the remote copy of a document.
"""

from ._version import __version__

__all__ = ["__version__"]

__author__ = "Levente Hunyadi"
__copyright__ = "Copyright 2022-2026, Levente Hunyadi"
__license__ = "MIT"
__maintainer__ = "Levente Hunyadi"
__status__ = "Production"
