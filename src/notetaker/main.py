#!/usr/bin/env python
"""Command line entry point for the notetaker package."""
import argparse
import logging
import os
import sys
from pathlib import Path

from notetaker import __version__
from notetaker.config import config
from notetaker.exceptions import NotetakerError
from notetaker.observability import configure_logging
from notetaker.services.note_service import NoteService
from notetaker.utils import get_content_snippet


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Notetaker note store")
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "--notes-dir",
        help="Directory for storing note files",
        type=str,
        default=os.environ.get("NOTETAKER_NOTES_DIR")
    )
    parser.add_argument(
        "--log-level",
        help="Logging level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=os.environ.get("NOTETAKER_LOG_LEVEL", "WARNING")
    )
    parser.add_argument(
        "--log-dir",
        help="Directory for rotating log files",
        type=str,
        default=os.environ.get("NOTETAKER_LOG_DIR")
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("list", help="List all notes")

    read = subparsers.add_parser("read", help="Read a note with its links")
    read.add_argument("title")

    save = subparsers.add_parser("save", help="Create or replace a note")
    save.add_argument("title")
    save.add_argument(
        "content",
        nargs="?",
        help="Header and body text (read from stdin when omitted)",
    )

    delete = subparsers.add_parser("delete", help="Delete a note")
    delete.add_argument("title")

    search = subparsers.add_parser("search", help="Search notes by keywords")
    search.add_argument("query")

    links = subparsers.add_parser("links", help="Show links of a note")
    links.add_argument("title")

    return parser.parse_args(argv)


def update_config(args):
    """Update the global config with command line arguments."""
    if args.notes_dir:
        config.notes_dir = Path(args.notes_dir)
    if args.log_dir:
        config.log_dir = Path(args.log_dir)
    config.log_level = args.log_level


def run_command(service: NoteService, args) -> int:
    """Execute one subcommand against an initialized service."""
    if args.command == "list":
        notes = service.list_notes()
        if not notes:
            print("No notes found.")
        for note in notes:
            print(f"- {note.title}")
        return 0

    if args.command == "read":
        note = service.get_note_with_links(args.title)
        if note is None:
            print(f'Note with title "{args.title}" not found.')
            return 1
        print(f"# {note.title}\n{note.content}")
        if note.outgoing_links:
            print(f"\nLinks: {', '.join(note.outgoing_links)}")
        if note.backlinks:
            print(f"Backlinks: {', '.join(note.backlinks)}")
        return 0

    if args.command == "save":
        content = args.content if args.content is not None else sys.stdin.read()
        note = service.save_note(args.title, content)
        print(f"Note saved: {note.title}")
        return 0

    if args.command == "delete":
        if not service.delete_note(args.title):
            print(f'Note with title "{args.title}" not found or could not be deleted.')
            return 1
        print(f'Note with title "{args.title}" was successfully deleted.')
        return 0

    if args.command == "search":
        notes = service.search_notes(args.query)
        if not notes:
            print(f'No notes found matching "{args.query}".')
            return 0
        print(f'Found {len(notes)} note(s) matching "{args.query}":\n')
        for note in notes:
            print(f"- {note.title}\n  {get_content_snippet(note.content, args.query, 100)}")
        return 0

    if args.command == "links":
        print("Outgoing:")
        for title in service.get_outgoing_links(args.title):
            print(f"  -> {title}")
        print("Backlinks:")
        for title in service.get_backlinks(args.title):
            print(f"  <- {title}")
        return 0

    raise ValueError(f"Unknown command: {args.command}")


def main(argv=None):
    """Run one notetaker command."""
    args = parse_args(argv)
    update_config(args)

    log_level = getattr(logging, args.log_level.upper(), logging.WARNING)
    if config.log_dir:
        try:
            configure_logging(log_dir=config.log_dir, level=log_level, console=False)
        except OSError as e:
            logging.basicConfig(level=log_level)
            logging.getLogger(__name__).warning(f"Failed to configure file logging: {e}")
    else:
        logging.basicConfig(level=log_level)

    logger = logging.getLogger(__name__)

    service = NoteService()
    try:
        service.initialize()
        return run_command(service, args)
    except NotetakerError as e:
        logger.error(f"Command failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        service.close()


if __name__ == "__main__":
    sys.exit(main())
