"""
Command-line entry point for importing and inspecting Yomitan dictionaries.

    yomidb import dictionary.zip [data/yomitan.db] [--bundled]
    yomidb import dictionary.zip --backend postgres
    yomidb import-dir resources/dictionaries [data/yomitan.db] --bundled
    yomidb lookup 猫 [ねこ]
    yomidb list
    yomidb remove "JMdict" "2024-01-01"
    yomidb stats
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from yomidb.backends.factory import BACKENDS, create_backend
from yomidb.config import get_import_config, get_sqlite_path
from yomidb.data.archive import read_index
from yomidb.data.import_dictionary import import_archive, import_directory
from yomidb.db.connection import check_schema_version, get_db_connection
from yomidb.errors import NotFoundError, UsageError, YomidbError
from yomidb.services import lookup

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_FAILURE = 2


class ArgumentParser(argparse.ArgumentParser):
    """argparse parser whose usage errors exit with status 1."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(EXIT_USAGE, f"{self.prog}: error: {message}\n")


def file_size(path: Path) -> int:
    return path.stat().st_size if path.exists() else 0


def format_size(size: float) -> str:
    for unit in ("B", "KB", "MB"):
        if size < 1024:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"


def open_store(db_path: Optional[str]):
    """Open an existing embedded store for reading."""
    path = Path(db_path) if db_path else get_sqlite_path()
    if not path.exists():
        raise NotFoundError(f"Database not found: {path}")
    conn = get_db_connection(path)
    check_schema_version(conn)
    return conn


def cmd_import(args) -> int:
    archive = Path(args.archive)
    if not archive.is_file():
        raise NotFoundError(f"Archive not found: {archive}")
    # A missing or unreadable index.json must fail before the store is created
    read_index(archive)

    destination = Path(args.destination) if args.destination else get_sqlite_path()
    size_before = file_size(destination)

    with create_backend(args.backend, destination) as backend:
        result = import_archive(
            archive,
            backend,
            is_bundled=args.bundled,
            batch_size=args.batch_size,
            progress=not args.quiet,
        )

    if result.skipped:
        return EXIT_OK
    if args.backend == "sqlite":
        print(
            f"Database size: {format_size(size_before)} -> "
            f"{format_size(file_size(destination))}"
        )
    print(f"Done in {result.elapsed:.1f}s")
    return EXIT_OK


def cmd_import_dir(args) -> int:
    if not Path(args.directory).is_dir():
        raise NotFoundError(f"Directory not found: {args.directory}")
    destination = Path(args.destination) if args.destination else get_sqlite_path()
    with create_backend(args.backend, destination) as backend:
        results = import_directory(
            args.directory,
            backend,
            is_bundled=args.bundled,
            batch_size=args.batch_size,
            progress=not args.quiet,
        )

    imported = sum(1 for r in results if not r.skipped)
    print(f"\nImported {imported} dictionaries ({len(results) - imported} already installed)")
    return EXIT_OK


def cmd_lookup(args) -> int:
    conn = open_store(args.db)
    try:
        results = lookup.lookup_terms(conn, args.term, args.reading)
        meta = lookup.lookup_term_meta(conn, args.term)
        kanji = lookup.lookup_kanji(conn, args.term) if len(args.term) == 1 else []
    finally:
        conn.close()

    if not (results or meta or kanji):
        print(f"No results for {args.term}")
        return EXIT_OK

    for entry in kanji:
        print(f"{entry['character']}  ({entry['dict_title']})")
        print(f"  on: {entry['onyomi']}  kun: {entry['kunyomi']}")
        print(f"  {', '.join(entry['meanings'])}")

    for entry in meta:
        reading = f" [{entry['reading']}]" if entry["reading"] else ""
        data = json.dumps(entry["data"], ensure_ascii=False)
        print(f"{entry['mode']}{reading}: {data}  ({entry['dict_title']})")

    for entry in results:
        heading = entry["term"]
        if entry["reading"]:
            heading += f" [{entry['reading']}]"
        print(f"{heading}  ({entry['dict_title']}, score {entry['score']})")
        tags = [t for t in (entry["definition_tags"], entry["term_tags"]) if t]
        if tags:
            print(f"  tags: {' '.join(tags)}")
        if entry["rules"]:
            print(f"  rules: {entry['rules']}")
        for item in entry["glossary"]:
            text = lookup.render_glossary(item)
            if text:
                print("  - " + text.replace("\n", "\n    "))
    return EXIT_OK


def cmd_list(args) -> int:
    conn = open_store(args.db)
    try:
        dictionaries = lookup.dictionary_summary(conn)
    finally:
        conn.close()

    if not dictionaries:
        print("No dictionaries installed")
        return EXIT_OK

    for d in dictionaries:
        status = "" if d["completed"] else "  (incomplete)"
        bundled = "  [bundled]" if d["is_bundled"] else ""
        print(f"{d['id']:>4}  {d['title']} ({d['revision']}){bundled}{status}")
        print(
            f"      terms {d['terms']:,}  meta {d['term_meta']:,}  tags {d['tags']:,}"
            f"  kanji {d['kanji']:,}  kanji meta {d['kanji_meta']:,}"
        )
    return EXIT_OK


def cmd_remove(args) -> int:
    path = Path(args.db) if args.db else get_sqlite_path()
    if not path.exists():
        raise NotFoundError(f"Database not found: {path}")

    with create_backend("sqlite", path) as backend:
        record = backend.find_dictionary(args.title, args.revision)
        if record is None:
            raise NotFoundError(f"Dictionary not installed: {args.title} ({args.revision})")
        backend.remove_dictionary(record.id)
        backend.finalize()
    print(f"Removed {args.title} ({args.revision})")
    return EXIT_OK


def cmd_stats(args) -> int:
    conn = open_store(args.db)
    try:
        counts = lookup.table_counts(conn)
        glossaries = lookup.glossary_stats(conn)
    finally:
        conn.close()

    print("Row counts:")
    for table, count in counts.items():
        print(f"  {table:<15} {count:>12,}")
    print("\nGlossaries:")
    print(f"  total size    {format_size(glossaries['total_bytes'])}")
    print(f"  average size  {glossaries['avg_bytes']:.1f} bytes")
    print(f"  largest       {glossaries['max_bytes']:,} bytes")
    return EXIT_OK


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1: {value}")
    return number


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="yomidb", description="Import Yomitan dictionaries into a lookup database"
    )
    subparsers = parser.add_subparsers(dest="command", parser_class=ArgumentParser)
    subparsers.required = True

    def add_import_options(sub):
        sub.add_argument(
            "destination",
            nargs="?",
            default=None,
            help="SQLite database file (default: YOMIDB_PATH or data/yomitan.db)",
        )
        sub.add_argument(
            "--bundled",
            action="store_true",
            help="Mark the dictionary as shipped with the application",
        )
        sub.add_argument(
            "--backend",
            choices=BACKENDS,
            default="sqlite",
            help="Storage backend (postgres reads DB_* settings from the environment)",
        )
        sub.add_argument(
            "--batch-size",
            type=positive_int,
            default=get_import_config()["batch_size"],
            help="Rows per remote write",
        )
        sub.add_argument(
            "--quiet", action="store_true", help="Hide per-bank progress bars"
        )

    sub = subparsers.add_parser("import", help="Import one dictionary archive")
    sub.add_argument("archive", help="Path to the dictionary .zip")
    add_import_options(sub)
    sub.set_defaults(handler=cmd_import)

    sub = subparsers.add_parser("import-dir", help="Import every archive in a directory")
    sub.add_argument("directory", help="Directory containing dictionary .zip files")
    add_import_options(sub)
    sub.set_defaults(handler=cmd_import_dir)

    sub = subparsers.add_parser("lookup", help="Look up a term")
    sub.add_argument("term")
    sub.add_argument("reading", nargs="?", default=None)
    sub.add_argument("--db", default=None, help="SQLite database file")
    sub.set_defaults(handler=cmd_lookup)

    sub = subparsers.add_parser("list", help="List installed dictionaries")
    sub.add_argument("--db", default=None, help="SQLite database file")
    sub.set_defaults(handler=cmd_list)

    sub = subparsers.add_parser("remove", help="Remove an installed dictionary")
    sub.add_argument("title")
    sub.add_argument("revision")
    sub.add_argument("--db", default=None, help="SQLite database file")
    sub.set_defaults(handler=cmd_remove)

    sub = subparsers.add_parser("stats", help="Show table sizes")
    sub.add_argument("--db", default=None, help="SQLite database file")
    sub.set_defaults(handler=cmd_stats)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        return args.handler(args)
    except (UsageError, NotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE
    except YomidbError as e:
        print(f"Import failed: {e}", file=sys.stderr)
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
