"""
Synchronize Markdown files with HackMD notes.

Pushes Markdown files to HackMD, pulls HackMD notes into Markdown files, and keeps track of the linked note in the
front-matter of each Markdown file.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import argparse
import logging
import os.path
import sys
from io import StringIO
from pathlib import Path

from . import __version__
from .api import HackMDSessionCache
from .api_types import CommentPermissionType, NotePermissionRole
from .application import Application
from .environment import ArgumentError, ConnectionProperties, PermissionProperties
from .host import LocalDocumentHost
from .options import SyncMode, SyncOptions


class Arguments(argparse.Namespace):
    command: str
    loglevel: str
    access_token: str | None
    api_url: str | None
    domain: str | None
    root: Path
    read_permission: str | None
    write_permission: str | None
    comment_permission: str | None
    path: str
    url: str
    force: bool
    yes: bool
    directory: str | None


def confirm_on_terminal(name: str) -> bool:
    "Asks the user on the terminal whether to delete the note linked to a document."

    try:
        answer = input(f'Delete the HackMD note linked to "{name}"? This cannot be undone. [y/N] ')
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def get_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser()
    parser.prog = os.path.basename(os.path.dirname(__file__))
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "-l",
        "--loglevel",
        choices=[
            logging.getLevelName(level).lower()
            for level in (
                logging.DEBUG,
                logging.INFO,
                logging.WARN,
                logging.ERROR,
                logging.CRITICAL,
            )
        ],
        default=logging.getLevelName(logging.WARN).lower(),
        help="Use this option to set the log verbosity.",
    )
    parser.add_argument(
        "-a",
        "--access-token",
        dest="access_token",
        help="HackMD API access token (from HackMD Settings, API). Defaults to environment variable HACKMD_ACCESS_TOKEN.",
    )
    parser.add_argument("--api-url", dest="api_url", help="HackMD API URL (default: 'https://api.hackmd.io/v1').")
    parser.add_argument("-d", "--domain", help="HackMD domain in note URLs (default: 'hackmd.io').")
    parser.add_argument("-r", "--root", type=Path, default=Path("."), help="Directory that holds Markdown documents (default: current directory).")
    parser.add_argument(
        "--read-permission",
        dest="read_permission",
        choices=[p.value for p in NotePermissionRole],
        help="Who can read notes created on HackMD (default: 'owner').",
    )
    parser.add_argument(
        "--write-permission",
        dest="write_permission",
        choices=[p.value for p in NotePermissionRole],
        help="Who can edit notes created on HackMD (default: 'owner').",
    )
    parser.add_argument(
        "--comment-permission",
        dest="comment_permission",
        choices=[p.value for p in CommentPermissionType],
        help="Who can comment on notes created on HackMD (default: 'disabled').",
    )

    subparsers = parser.add_subparsers(dest="command", required=True, metavar="COMMAND")

    push = subparsers.add_parser("push", help="Upload a Markdown document to HackMD.")
    push.add_argument("path", help="Path to Markdown document.")
    push.add_argument("-f", "--force", action="store_true", default=False, help="Overwrite the HackMD note even if it has been edited since last sync.")

    pull = subparsers.add_parser("pull", help="Download the linked HackMD note into a Markdown document.")
    pull.add_argument("path", help="Path to Markdown document.")
    pull.add_argument("-f", "--force", action="store_true", default=False, help="Overwrite the Markdown document even if it has been edited since last sync.")

    url = subparsers.add_parser("url", help="Print the URL of the HackMD note linked to a Markdown document.")
    url.add_argument("path", help="Path to Markdown document.")

    delete = subparsers.add_parser("delete", help="Delete the linked HackMD note and unlink the Markdown document.")
    delete.add_argument("path", help="Path to Markdown document.")
    delete.add_argument("-y", "--yes", action="store_true", default=False, help="Do not ask for confirmation.")

    create = subparsers.add_parser("create", help="Create a Markdown document from a HackMD note URL.")
    create.add_argument("url", help="URL of HackMD note.")
    create.add_argument("--dir", dest="directory", help="Directory relative to the root in which to create the document.")

    return parser


def get_help() -> str:
    parser = get_parser()
    with StringIO() as buf:
        parser.print_help(file=buf)
        return buf.getvalue()


def notify(message: str) -> None:
    print(message, file=sys.stderr)


def main(argv: list[str] | None = None) -> None:
    parser = get_parser()
    args = Arguments()
    parser.parse_args(argv, namespace=args)

    logging.basicConfig(
        level=getattr(logging, args.loglevel.upper(), logging.INFO),
        format="%(asctime)s - %(levelname)s - %(funcName)s [%(lineno)d] - %(message)s",
    )

    try:
        properties = ConnectionProperties(api_url=args.api_url, domain=args.domain, access_token=args.access_token)
        permissions = PermissionProperties(args.read_permission, args.write_permission, args.comment_permission)
    except ArgumentError as e:
        parser.error(str(e))

    if not args.root.is_dir():
        parser.error(f"not a directory: {args.root}")

    options = SyncOptions(
        domain=properties.domain,
        read_permission=permissions.read_permission,
        write_permission=permissions.write_permission,
        comment_permission=permissions.comment_permission,
    )
    app = Application(
        HackMDSessionCache(properties),
        LocalDocumentHost(args.root, options.extension),
        options,
        notify=notify,
        confirm=(lambda name: True) if args.command == "delete" and args.yes else confirm_on_terminal,
        clipboard=print,
    )

    match args.command:
        case "push":
            success = app.push(Path(args.path).resolve(), SyncMode.FORCE if args.force else SyncMode.NORMAL)
        case "pull":
            success = app.pull(Path(args.path).resolve(), SyncMode.FORCE if args.force else SyncMode.NORMAL)
        case "url":
            success = app.copy_url(Path(args.path).resolve())
        case "delete":
            success = app.delete(Path(args.path).resolve())
        case "create":
            success = app.create_from_url(args.url, Path(args.directory) if args.directory else None)
        case _:
            parser.error(f"unknown command: {args.command}")

    if not success:
        sys.exit(1)


if __name__ == "__main__":
    main()
