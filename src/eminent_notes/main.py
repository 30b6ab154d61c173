#!/usr/bin/env python
"""Command-line entry point for Eminent Notes."""
import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from eminent_notes import __version__
from eminent_notes.app import NotesApp
from eminent_notes.config import config
from eminent_notes.exceptions import NotesError
from eminent_notes.models.schema import Folder, Note, NoteFilter
from eminent_notes.observability import configure_logging

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="eminent-notes", description="Eminent Notes: folders, notes and tags"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--database-path",
        help="SQLite database file path",
        type=str,
        default=os.environ.get("EMINENT_NOTES_DATABASE_PATH"),
    )
    parser.add_argument(
        "--log-level",
        help="Logging level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=os.environ.get("EMINENT_NOTES_LOG_LEVEL", "WARNING"),
    )
    parser.add_argument(
        "--log-dir",
        help="Directory for rotating log files",
        type=str,
        default=os.environ.get("EMINENT_NOTES_LOG_DIR"),
    )

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("folders", help="Show the folder tree")

    p = sub.add_parser("mkdir", help="Create a folder")
    p.add_argument("name")
    p.add_argument("--parent", help="Parent folder ID")

    p = sub.add_parser("rename-folder", help="Rename a folder")
    p.add_argument("folder_id")
    p.add_argument("name")

    p = sub.add_parser("rmdir", help="Delete a folder, keeping its notes")
    p.add_argument("folder_id")

    p = sub.add_parser("notes", help="List notes")
    p.add_argument("--folder", help="Only notes in this folder")
    p.add_argument("--search", help="Search titles and content in every folder")
    p.add_argument("--archived", action="store_true", help="List archived notes")

    p = sub.add_parser("new", help="Create a note")
    p.add_argument("--folder", help="Folder ID")
    p.add_argument("--title")
    p.add_argument("--content", default="")
    p.add_argument("--tag", action="append", default=[], help="Tag name (repeatable)")

    for name, help_text in (
        ("pin", "Toggle the pinned flag of a note"),
        ("archive", "Archive a note"),
        ("unarchive", "Restore an archived note"),
        ("rm", "Delete a note"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("note_id")

    sub.add_parser("tags", help="List tags")

    p = sub.add_parser("tag", help="Create a tag")
    p.add_argument("name")
    p.add_argument("--color", help="Hex color such as #FF0000")

    sub.add_parser("seed", help="Add sample data")

    return parser.parse_args(argv)


def update_config(args):
    """Update the global config with command line arguments."""
    if args.database_path:
        config.database_path = Path(args.database_path)
    if args.log_dir:
        config.log_dir = Path(args.log_dir)
    config.log_level = args.log_level


def _format_note(note: Note) -> str:
    marker = "*" if note.is_pinned else " "
    tags = f"  [{', '.join(note.tag_names)}]" if note.tags else ""
    return f"{marker} {note.id}  {note.title}{tags}"


def _print_tree(app: NotesApp, folder: Folder, level: int) -> None:
    print(f"{'  ' * level}{folder.name}  ({folder.id})")
    for child in app.folders.children_of(folder):
        _print_tree(app, child, level + 1)


def _require_folder(app: NotesApp, folder_id: Optional[str]) -> Optional[Folder]:
    if folder_id is None:
        return None
    folder = app.folders.get(folder_id)
    if folder is None:
        raise LookupError(f"No folder with ID {folder_id}")
    return folder


def _require_note(app: NotesApp, note_id: str) -> Note:
    note = app.notes.get(note_id)
    if note is None:
        raise LookupError(f"No note with ID {note_id}")
    return note


def run_command(app: NotesApp, args) -> int:
    """Execute one subcommand. Returns the process exit code."""
    command = args.command

    if command == "folders":
        for root in app.folders.list_roots():
            _print_tree(app, root, 0)
        return 0

    if command == "mkdir":
        parent = _require_folder(app, args.parent)
        folder = app.folders.create_folder(args.name, parent)
        if folder is None:
            return 1
        print(folder.id)
        return 0

    if command == "rename-folder":
        folder = _require_folder(app, args.folder_id)
        return 0 if app.folders.rename_folder(folder, args.name) else 1

    if command == "rmdir":
        folder = _require_folder(app, args.folder_id)
        return 0 if app.delete_folder(folder) else 1

    if command == "notes":
        if args.archived:
            notes = app.notes.fetch_archived()
        elif args.search:
            notes = app.notes.fetch_notes(NoteFilter.for_search(args.search))
        else:
            folder = _require_folder(app, args.folder)
            notes = app.notes.fetch_notes(NoteFilter.for_folder(folder))
        for note in notes:
            print(_format_note(note))
        return 0

    if command == "new":
        folder = _require_folder(app, args.folder)
        note = app.notes.save(
            None,
            title=args.title if args.title is not None else config.default_note_title,
            content=args.content,
            is_pinned=False,
            tags=args.tag or None,
            folder=folder,
        )
        if note is None:
            return 1
        print(note.id)
        return 0

    if command in ("pin", "archive", "unarchive"):
        note = _require_note(app, args.note_id)
        if command == "pin":
            updated = app.notes.toggle_pin(note)
        elif command == "archive":
            updated = app.notes.archive(note)
        else:
            updated = app.notes.unarchive(note)
        if updated is None:
            return 1
        print(_format_note(updated))
        return 0

    if command == "rm":
        note = _require_note(app, args.note_id)
        return 0 if app.notes.delete_note(note) else 1

    if command == "tags":
        for tag in app.tags.list_all():
            print(f"{tag.name}  {tag.color}  ({tag.id})")
        return 0

    if command == "tag":
        tag = app.tags.create(args.name, args.color)
        if tag is None:
            return 1
        print(tag.id)
        return 0

    if command == "seed":
        notes = app.seed_sample_data()
        print(f"Created {len(notes)} sample notes")
        return 0

    raise ValueError(f"Unknown command {command!r}")


def main(argv: Optional[List[str]] = None):
    """Run the Eminent Notes command line."""
    args = parse_args(argv)
    update_config(args)

    log_level = getattr(logging, args.log_level.upper(), logging.WARNING)
    try:
        configure_logging(log_dir=config.get_log_dir(), level=log_level, console=False)
    except OSError as e:
        # Fall back to basic console logging if file logging fails
        logging.basicConfig(level=log_level)
        logger.warning(f"Failed to configure file logging: {e}")

    try:
        logger.info(f"Using SQLite database: {config.get_db_url()}")
        app = NotesApp.open(config)
    except (NotesError, OSError) as e:
        logger.error(f"Failed to initialize database: {e}")
        print(f"Error: failed to open the notes database: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        code = run_command(app, args)
    except (NotesError, LookupError) as e:
        print(f"Error: {e}", file=sys.stderr)
        code = 1
    finally:
        app.close()

    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()
